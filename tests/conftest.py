from __future__ import annotations

from typing import Any

import pytest

from agent.integrity_check import Hasher
from algorithm.analyzer import Analyzer
from algorithm.classifier import classify, is_valid, segment
from algorithm.models import AddressCheck, new_id, now_ms
from algorithm.trust_store import MemoryBackend, TrustStore

EVM_ADDR = "0x" + "a" * 40
BTC_LEGACY = "1A1zP1eP5QGefi2DMPTfTL5SLmv7DivfNa"
BTC_SEGWIT = "bc1qar0srrr7xfkvy5l643lydnw9re59gtzzwf5mdq"
SOLANA_ADDR = "7EcDhSYGxXyscszYEp35KHN8vvw3svAuLKTzXwCFLtV"


def make_check(address: str) -> AddressCheck:
    """Build an AddressCheck without going through the hasher."""
    prefix, middle, suffix = segment(address)
    return AddressCheck(
        id=new_id(),
        address=address,
        timestamp=now_ms(),
        network=classify(address),
        is_suspicious=not is_valid(address),
        prefix=prefix,
        middle=middle,
        suffix=suffix,
        fingerprint=address,
    )


@pytest.fixture
def store() -> TrustStore:
    return TrustStore(MemoryBackend())


@pytest.fixture
def file_store(tmp_path) -> TrustStore:
    return TrustStore.from_path(tmp_path / "state.json")


@pytest.fixture
def analyzer(store) -> Analyzer:
    return Analyzer(store, hasher=Hasher())


def assert_has_keys(obj: dict[str, Any], required: tuple[str, ...]) -> None:
    missing = [k for k in required if k not in obj]
    assert not missing, f"Missing keys: {missing} in {obj}"
