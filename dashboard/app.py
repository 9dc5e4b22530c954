"""
goal: small local JSON API over the address verification engine. a front end (browser extension,
wallet UI, desktop shell) posts what it pasted and gets back the network, the highlighted segments,
the visual fingerprint, and the trust score, and can compare two addresses character by character.
runs entirely locally without cloud dependencies.

endpoints:
- GET    /api/ping                 liveness + whether hashing is blocked
- POST   /api/analyze              {address} -> analysis, {"result": null} for too-short input
- POST   /api/diff                 {reference, candidate, ignore_case} -> per-position verdicts
- GET    /api/trust/<address>      trust entry or 404
- POST   /api/trust                {address, label?} -> trust entry
- DELETE /api/trust/<address>      remove from trust list
- GET    /api/history              most-recent-first analyses
- POST   /api/unlock               {address, typed} -> copy gate verdict

when the digest capability check fails, analysis endpoints answer 503 and nothing is fingerprinted.
"""

from __future__ import annotations

# --- standard library ---
import logging
from typing import Any

# --- third-party ---
from flask import Flask, jsonify, request

# --- local/project imports ---
from agent.integrity_check import Hasher, HashingUnavailable
from algorithm.analyzer import Analyzer, is_unlocked, unlock_hint
from algorithm.diff import diff, identical, mismatch_positions
from algorithm.trust_store import TrustStore
from dashboard.config import Config, load_config

# single waitress optional block
try:
    from waitress import serve as _serve  # type: ignore[import-untyped]

    HAVE_WAITRESS = True
except Exception:
    HAVE_WAITRESS = False
    _serve = None  # type: ignore

api_logger = logging.getLogger("cryptoguard.api")


def build_analyzer(cfg: Config, hasher: Hasher | None = None) -> Analyzer:
    # wire the store and analyzer from config; the store loads its state file right here
    store = TrustStore.from_path(cfg.store_path, history_max=cfg.history_max)
    return Analyzer(
        store,
        hasher=hasher,
        policy=cfg.validity_policy,
        min_input_len=cfg.min_input_len,
        prefix_len=cfg.prefix_len,
        suffix_len=cfg.suffix_len,
        grid_size=cfg.grid_size,
    )


def _json_body() -> dict[str, Any]:
    # tolerate missing or non-object bodies, routes validate their own fields
    data = request.get_json(silent=True)
    return data if isinstance(data, dict) else {}


def _error(message: str, status: int):
    return jsonify({"ok": False, "error": message}), status


def build_app(analyzer: Analyzer, unlock_chars: int = 3) -> Flask:
    app = Flask(__name__)
    store = analyzer.store

    @app.errorhandler(HashingUnavailable)
    def _hashing_unavailable(exc: HashingUnavailable):
        # blocking state: the fingerprint would be meaningless, refuse instead of degrading
        api_logger.error("analysis refused: %s", exc)
        return _error("hashing unavailable", 503)

    @app.get("/api/ping")
    def ping():
        return jsonify({"ok": True, "blocked": analyzer.blocked or not analyzer.hasher.available})

    @app.post("/api/analyze")
    def analyze():
        body = _json_body()
        address = body.get("address")
        if not isinstance(address, str):
            return _error("address must be a string", 400)
        seq = analyzer.begin()
        result = analyzer.analyze(address)
        committed = analyzer.commit(seq, result)
        if result is None:
            return jsonify({"ok": True, "result": None, "seq": seq})
        payload = result.to_dict()
        payload["unlockHint"] = unlock_hint(result.check.address, unlock_chars)
        return jsonify({"ok": True, "result": payload, "seq": seq, "committed": committed})

    @app.post("/api/diff")
    def compare():
        body = _json_body()
        reference = body.get("reference")
        candidate = body.get("candidate")
        if not isinstance(reference, str) or not isinstance(candidate, str):
            return _error("reference and candidate must be strings", 400)
        cells = diff(reference, candidate, bool(body.get("ignore_case", False)))
        return jsonify(
            {
                "ok": True,
                "identical": identical(reference, candidate),
                "cells": [c.to_dict() for c in cells],
                "mismatches": mismatch_positions(cells),
            }
        )

    @app.get("/api/trust/<path:address>")
    def get_trust(address: str):
        entry = store.lookup_trust(address)
        if entry is None:
            return _error("not trusted", 404)
        return jsonify({"ok": True, "address": address, "entry": entry.to_dict()})

    @app.post("/api/trust")
    def add_trust():
        body = _json_body()
        address = body.get("address")
        label = body.get("label")
        if isinstance(address, str):
            address = address.strip()  # analyses key on the trimmed form
        if not isinstance(address, str) or not address:
            return _error("address must be a non-empty string", 400)
        if label is not None and not isinstance(label, str):
            return _error("label must be a string", 400)
        entry = store.set_trusted(address, label)
        return jsonify({"ok": True, "address": address, "entry": entry.to_dict()})

    @app.delete("/api/trust/<path:address>")
    def remove_trust(address: str):
        removed = store.unset_trusted(address)
        return jsonify({"ok": True, "removed": removed})

    @app.get("/api/history")
    def history():
        return jsonify({"ok": True, "history": [c.to_dict() for c in store.history()]})

    @app.post("/api/unlock")
    def unlock():
        body = _json_body()
        address = body.get("address")
        typed = body.get("typed", "")
        if not isinstance(address, str) or not isinstance(typed, str):
            return _error("address and typed must be strings", 400)
        return jsonify({"ok": True, "unlocked": is_unlocked(address.strip(), typed, unlock_chars)})

    return app


# run the API: waitress when available, flask's dev server otherwise
def run_dashboard(cfg: Config | None = None) -> None:
    cfg = cfg or load_config()
    app = build_app(build_analyzer(cfg), unlock_chars=cfg.unlock_chars)
    api_logger.info("serving on http://%s:%s", cfg.host, cfg.port)
    if HAVE_WAITRESS:
        try:
            _serve(app, host=cfg.host, port=cfg.port)
        except KeyboardInterrupt:
            pass  # expected when shutting down
    else:
        try:
            app.run(host=cfg.host, port=cfg.port, debug=False)
        except KeyboardInterrupt:
            pass  # expected when shutting down


if __name__ == "__main__":
    logging.basicConfig(level=logging.INFO, format="%(message)s")
    run_dashboard()
