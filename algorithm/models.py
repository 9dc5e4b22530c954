"""
goal: value types shared by the verification engine. AddressCheck is the immutable record produced per
analysis, TrustEntry is one row of the user's trust list. both round-trip through the JSON shape the
store persists (camelCase keys, epoch milliseconds).
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import time  # for creation timestamps
import uuid  # for opaque record ids
from dataclasses import dataclass, field  # frozen records
from enum import Enum  # closed set of network labels
from typing import Any  # type hint for flexible dictionary values


class NetworkLabel(str, Enum):
    """Closed set of classifier outputs. the str value is what gets shown and persisted."""

    EVM = "Ethereum / EVM"
    BITCOIN_LEGACY = "Bitcoin (Legacy)"
    BITCOIN_SEGWIT = "Bitcoin (SegWit)"
    SOLANA = "Solana"
    ENS = "ENS Domain"
    UNKNOWN = "Unknown / Generic"

    @classmethod
    def parse(cls, value: Any) -> NetworkLabel:
        # tolerate both the enum name and its display value, anything else is Unknown
        for label in cls:
            if value == label.value or value == label.name:
                return label
        return cls.UNKNOWN


def now_ms() -> int:
    # epoch milliseconds, the unit used everywhere in persisted state
    return int(time.time() * 1000)


def new_id() -> str:
    return uuid.uuid4().hex


@dataclass(frozen=True)
class AddressCheck:
    id: str
    address: str  # trimmed input, canonical form downstream
    timestamp: int  # epoch ms
    network: NetworkLabel
    is_suspicious: bool  # not is_valid(address) at creation
    prefix: str
    middle: str
    suffix: str
    fingerprint: str  # currently identical to address

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "address": self.address,
            "timestamp": self.timestamp,
            "network": self.network.value,
            "isSuspicious": self.is_suspicious,
            "prefix": self.prefix,
            "middle": self.middle,
            "suffix": self.suffix,
            "fingerprint": self.fingerprint,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> AddressCheck:
        """Rebuild a record from persisted JSON. raises KeyError/TypeError/ValueError on bad rows."""
        address = data["address"]
        if not isinstance(address, str):
            raise TypeError("address must be a string")
        prefix = str(data["prefix"])
        middle = str(data["middle"])
        suffix = str(data["suffix"])
        if prefix + middle + suffix != address:
            raise ValueError("segments do not reconstruct the address")
        return cls(
            id=str(data.get("id") or new_id()),
            address=address,
            timestamp=int(data.get("timestamp", 0)),
            network=NetworkLabel.parse(data.get("network")),
            is_suspicious=bool(data.get("isSuspicious", False)),
            prefix=prefix,
            middle=middle,
            suffix=suffix,
            fingerprint=str(data.get("fingerprint", address)),
        )


@dataclass(frozen=True)
class TrustEntry:
    added_at: int  # epoch ms
    label: str | None = field(default=None)

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {"addedAt": self.added_at}
        if self.label is not None:
            out["label"] = self.label
        return out

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> TrustEntry:
        label = data.get("label")
        return cls(added_at=int(data.get("addedAt", 0)), label=str(label) if label is not None else None)
