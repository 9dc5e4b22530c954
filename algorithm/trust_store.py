"""
goal: the only stateful part of the engine. keeps the user's trust list (address -> when it was
trusted and an optional label) and a short most-recent-first history of analysed addresses, and owns
the trust score policy.

how persistence works
state lives behind a small backend interface (load / get / set / remove / append_bounded) so the
storage can be swapped without touching classification, diff or fingerprint code. two backends ship:
an in-memory one for tests and embedding, and a JSON file one that loads once at startup and writes
after every mutation. a missing or corrupt file means "start clean", never a crash; the problem is
logged and the store carries on empty.

persisted layout (single JSON document):
{
  "version": 1,
  "trust":   { address: {"addedAt": epoch_ms, "label": str?} },
  "history": [ AddressCheck dict, ... ]          # most recent first, capped
}

trust keys are exact strings. a different-case variant of a trusted address is a different key.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import json  # for reading and writing the state file
import logging  # for reporting corrupt or unwritable state
import os  # for atomic replace of the state file
from collections.abc import Callable  # type hint for dedupe key functions
from pathlib import Path  # for creating the data directory
from typing import Any, Protocol  # type hints for flexible values and the backend interface

from algorithm.models import AddressCheck, TrustEntry, now_ms

logger = logging.getLogger("cryptoguard.store")

HISTORY_MAX = 10
STATE_VERSION = 1

TRUST_NS = "trust"
HISTORY_NS = "history"

# trust score policy
SCORE_TRUSTED = 100
SCORE_VALID = 85
SCORE_INVALID = 25


def _empty_state() -> dict[str, Any]:
    return {"version": STATE_VERSION, TRUST_NS: {}, HISTORY_NS: []}


# backends


class StateBackend(Protocol):
    def load(self) -> dict[str, Any]: ...

    def get(self, namespace: str, key: str) -> Any: ...

    def set(self, namespace: str, key: str, value: Any) -> None: ...

    def remove(self, namespace: str, key: str) -> bool: ...

    def items(self, namespace: str) -> dict[str, Any]: ...

    def sequence(self, namespace: str) -> list[Any]: ...

    def append_bounded(
        self, namespace: str, item: Any, bound: int, key: Callable[[Any], Any] | None = None
    ) -> None: ...

    def replace_sequence(self, namespace: str, items: list[Any]) -> None: ...


class MemoryBackend:
    """Keeps state in a dict. mutations go through _persist(), which is a no-op here."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._initial = initial
        self.state: dict[str, Any] = _empty_state()

    def load(self) -> dict[str, Any]:
        self.state = _coerce_state(self._initial) if self._initial is not None else _empty_state()
        return self.state

    def _persist(self) -> None:
        pass

    def get(self, namespace: str, key: str) -> Any:
        return self.state[namespace].get(key)

    def set(self, namespace: str, key: str, value: Any) -> None:
        self.state[namespace][key] = value
        self._persist()

    def remove(self, namespace: str, key: str) -> bool:
        if key not in self.state[namespace]:
            return False
        del self.state[namespace][key]
        self._persist()
        return True

    def items(self, namespace: str) -> dict[str, Any]:
        return dict(self.state[namespace])

    def sequence(self, namespace: str) -> list[Any]:
        return list(self.state[namespace])

    def append_bounded(
        self, namespace: str, item: Any, bound: int, key: Callable[[Any], Any] | None = None
    ) -> None:
        """Insert item at the front, drop any earlier item with the same key, cap at bound."""
        seq = self.state[namespace]
        if key is not None:
            k = key(item)
            seq = [x for x in seq if key(x) != k]  # repeat moves to the front
        seq.insert(0, item)
        self.state[namespace] = seq[: max(0, bound)]
        self._persist()

    def replace_sequence(self, namespace: str, items: list[Any]) -> None:
        self.state[namespace] = list(items)
        self._persist()


class JsonFileBackend(MemoryBackend):
    """Same as MemoryBackend, but loads from and saves to a JSON file."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        super().__init__()
        self.path = Path(path)

    def load(self) -> dict[str, Any]:
        self.state = _empty_state()
        if not self.path.exists():  # first run, nothing persisted yet
            return self.state
        try:
            content = self.path.read_text(encoding="utf-8").strip()
            if not content:  # empty file is treated like a missing one
                return self.state
            data = json.loads(content)
        except (json.JSONDecodeError, ValueError) as e:
            logger.warning("state file %s is corrupt (%s), starting with an empty store", self.path, e)
            return self.state
        except OSError as e:
            logger.warning("state file %s could not be read (%s), starting with an empty store", self.path, e)
            return self.state
        if not isinstance(data, dict):
            logger.warning("state file %s is not a JSON object, starting with an empty store", self.path)
            return self.state
        self.state = _coerce_state(data)
        return self.state

    def _persist(self) -> None:
        # best-effort: a failed write is logged, the in-memory state stays authoritative
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp = self.path.with_suffix(self.path.suffix + ".tmp")
            with open(tmp, "w", encoding="utf-8") as f:
                json.dump(self.state, f, indent=2, ensure_ascii=False)
            os.replace(tmp, self.path)  # readers never see a half-written file
        except OSError as e:
            logger.warning("could not save state to %s: %s", self.path, e)


def _coerce_state(data: dict[str, Any]) -> dict[str, Any]:
    # keep only the parts with the right shape; wrong-typed sections become empty
    state = _empty_state()
    trust = data.get(TRUST_NS)
    if isinstance(trust, dict):
        state[TRUST_NS] = {str(k): v for k, v in trust.items() if isinstance(v, dict)}
    history = data.get(HISTORY_NS)
    if isinstance(history, list):
        state[HISTORY_NS] = [row for row in history if isinstance(row, dict)]
    return state


# store


class TrustStore:
    """Trust list + bounded history on top of a backend. single-threaded; callers serialise writes."""

    def __init__(self, backend: StateBackend | None = None, history_max: int = HISTORY_MAX) -> None:
        self.backend: StateBackend = backend if backend is not None else MemoryBackend()
        self.history_max = history_max
        self.backend.load()  # load once at startup
        self._history: list[AddressCheck] = self._load_history()
        self._trust: dict[str, TrustEntry] = self._load_trust()
        if len(self._history) != len(self.backend.sequence(HISTORY_NS)):
            # bad or surplus rows were dropped, write back the cleaned list
            self.backend.replace_sequence(HISTORY_NS, [c.to_dict() for c in self._history])

    @classmethod
    def from_path(cls, path: str | os.PathLike[str], history_max: int = HISTORY_MAX) -> TrustStore:
        return cls(JsonFileBackend(path), history_max=history_max)

    def _load_trust(self) -> dict[str, TrustEntry]:
        out: dict[str, TrustEntry] = {}
        for address, row in self.backend.items(TRUST_NS).items():
            try:
                out[address] = TrustEntry.from_dict(row)
            except (TypeError, ValueError) as e:
                logger.warning("dropping unreadable trust entry for %s: %s", address, e)
        return out

    def _load_history(self) -> list[AddressCheck]:
        checks: list[AddressCheck] = []
        seen: set[str] = set()
        for row in self.backend.sequence(HISTORY_NS):
            try:
                check = AddressCheck.from_dict(row)
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("dropping unreadable history row: %s", e)
                continue
            if check.address in seen:  # keep the uniqueness invariant even for hand-edited files
                continue
            seen.add(check.address)
            checks.append(check)
        return checks[: self.history_max]

    # trust list

    def lookup_trust(self, address: str) -> TrustEntry | None:
        return self._trust.get(address)

    def is_trusted(self, address: str) -> bool:
        return address in self._trust

    def set_trusted(self, address: str, label: str | None = None) -> TrustEntry:
        existing = self._trust.get(address)
        if existing is not None and (label is None or label == existing.label):
            return existing  # already trusted, nothing to write
        entry = TrustEntry(
            added_at=existing.added_at if existing is not None else now_ms(),
            label=label if label is not None else (existing.label if existing else None),
        )
        self._trust[address] = entry
        self.backend.set(TRUST_NS, address, entry.to_dict())
        logger.info("trusted %s", address)
        return entry

    def unset_trusted(self, address: str) -> bool:
        if self._trust.pop(address, None) is None:
            return False
        self.backend.remove(TRUST_NS, address)
        logger.info("untrusted %s", address)
        return True

    def trusted(self) -> dict[str, TrustEntry]:
        return dict(self._trust)

    def snapshot(self) -> frozenset[str]:
        """Immutable view of trusted keys, for analyses running off the main thread."""
        return frozenset(self._trust)

    # history

    def record_check(self, check: AddressCheck) -> None:
        remaining = [c for c in self._history if c.address != check.address]
        self._history = [check, *remaining][: self.history_max]
        self.backend.append_bounded(
            HISTORY_NS, check.to_dict(), self.history_max, key=lambda row: row.get("address")
        )

    def history(self) -> list[AddressCheck]:
        return list(self._history)

    def clear_history(self) -> None:
        self._history = []
        self.backend.replace_sequence(HISTORY_NS, [])


def trust_score(address: str, is_valid: bool, is_trusted: bool) -> int:
    """100 when trusted, 85 when the shape is valid, 25 otherwise. address is not consulted."""
    if is_trusted:
        return SCORE_TRUSTED
    if is_valid:
        return SCORE_VALID
    return SCORE_INVALID
