"""
goal: configuration loader for CryptoGuard. loads settings from a JSON file and environment
      variables, with sensible defaults. handles PyInstaller frozen executables by detecting
      the base directory correctly. returns a frozen Config dataclass with the store path,
      analysis knobs, and server settings used by the console and the API.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path

# load environment variables from .env before anything reads CRYPTOGUARD_*
try:
    from dotenv import load_dotenv

    load_dotenv()
except ImportError:
    pass  # python-dotenv is optional, plain environment variables still work

from algorithm.classifier import ValidityPolicy


# figure out where the app is running from (handles PyInstaller bundles)
def _resolve_base_dir() -> Path:
    import sys

    # if we are frozen (PyInstaller), use the executable's directory
    if getattr(sys, "frozen", False):
        return Path(sys.executable).parent
    # otherwise, go up one level from this file (dashboard/config.py -> project root)
    return Path(__file__).resolve().parents[1]


# frozen dataclass to hold all config values (immutable once created)
@dataclass(frozen=True)
class Config:
    base_dir: Path  # root directory of the project
    store_path: Path  # trust list + history JSON
    history_max: int  # most-recent-first history cap
    prefix_len: int  # characters shown before the highlighted middle
    suffix_len: int  # characters shown after the highlighted middle
    grid_size: int  # fingerprint grid is grid_size x grid_size
    min_input_len: int  # shorter input is not analysed
    unknown_min_len: int  # validity gate for unrecognised shapes
    unknown_max_len: int
    unlock_chars: int  # trailing characters typed back to unlock copying
    host: str  # API server host address
    port: int  # API server port number
    log_level: str

    @property
    def validity_policy(self) -> ValidityPolicy:
        return ValidityPolicy(min_len=self.unknown_min_len, max_len=self.unknown_max_len)


# get a config value with priority: environment variable > JSON file > default
def _get(obj: dict, key: str, default):
    # check for environment variable first (CRYPTOGUARD_* prefix)
    env = os.getenv(f"CRYPTOGUARD_{key.upper()}")
    if env is not None:
        return _coerce(env, default)
    # fall back to JSON file value, or default if not found
    return _coerce(obj.get(key, default), default)


# convert value to the type of default (int/float/str), falling back to default when it will not convert
def _coerce(value, default):
    if default is None or type(value) is type(default):
        return value
    if isinstance(value, (dict, list)) or value is None:
        return default
    try:
        return type(default)(value)
    except (TypeError, ValueError):
        return default


# load configuration from JSON file and environment variables
def load_config() -> Config:
    # base directory can be overridden by env var, otherwise auto-detect
    base = Path(os.getenv("CRYPTOGUARD_BASE_DIR") or _resolve_base_dir())
    # config file lives in data/config.json
    cfg_file = base / "data" / "config.json"
    obj = {}
    # try to load the JSON config file if it exists
    if cfg_file.exists():
        try:
            obj = json.loads(cfg_file.read_text(encoding="utf-8") or "{}")
        except Exception:
            # if JSON is broken, just use empty dict (all defaults)
            obj = {}
        if not isinstance(obj, dict):
            obj = {}

    # each value checks: env var > JSON file > default
    return Config(
        base_dir=base,
        store_path=base / _get(obj, "store_path", "data/guard_state.json"),
        history_max=_get(obj, "history_max", 10),
        prefix_len=_get(obj, "prefix_len", 6),
        suffix_len=_get(obj, "suffix_len", 6),
        grid_size=_get(obj, "grid_size", 8),
        min_input_len=_get(obj, "min_input_len", 20),
        unknown_min_len=_get(obj, "unknown_min_len", 26),
        unknown_max_len=_get(obj, "unknown_max_len", 80),
        unlock_chars=_get(obj, "unlock_chars", 3),
        host=_get(obj, "host", "127.0.0.1"),
        port=_get(obj, "port", 8766),
        log_level=str(_get(obj, "log_level", "INFO")).upper(),
    )
