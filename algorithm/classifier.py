"""
goal: shape-based network classification, the validity heuristic built on top of it, and the
prefix/middle/suffix segmenter used for highlighting. patterns are evaluated in order and the first
match wins, so they are ordered from most anchored to least anchored: solana has no version byte or
prefix, so it sits after both bitcoin forms to keep ambiguous base58 strings from landing there.
no checksum verification happens here, only string shape.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import re  # for the address shape patterns
from dataclasses import dataclass  # for the validity policy knobs

from algorithm.models import NetworkLabel

# ordered (label, pattern) pairs, first match wins
NETWORK_RULES: tuple[tuple[NetworkLabel, re.Pattern[str]], ...] = (
    (NetworkLabel.EVM, re.compile(r"^0x[a-fA-F0-9]{40}$")),
    (NetworkLabel.BITCOIN_LEGACY, re.compile(r"^[13][a-km-zA-HJ-NP-Z1-9]{25,34}$")),
    (NetworkLabel.BITCOIN_SEGWIT, re.compile(r"^bc1[ac-hj-np-z02-9]{11,71}$")),
    (NetworkLabel.SOLANA, re.compile(r"^[1-9A-HJ-NP-Za-km-z]{32,44}$")),
    (NetworkLabel.ENS, re.compile(r"\.eth$")),
)


@dataclass(frozen=True)
class ValidityPolicy:
    """Length gate applied only to Unknown addresses. the bounds are heuristic, not format-derived."""

    min_len: int = 26
    max_len: int = 80


DEFAULT_POLICY = ValidityPolicy()


def classify(address: str) -> NetworkLabel:
    """Return the network label for address. never fails, Unknown when nothing matches."""
    trimmed = (address or "").strip()  # trimming is our job, not the caller's
    for label, pattern in NETWORK_RULES:  # rules in priority order
        if pattern.search(trimmed):  # anchors live in the patterns themselves
            return label
    return NetworkLabel.UNKNOWN


def is_valid(address: str, policy: ValidityPolicy = DEFAULT_POLICY) -> bool:
    if classify(address) is not NetworkLabel.UNKNOWN:
        return True  # recognised shape is valid by construction
    # generic fallback for unknown networks
    return policy.min_len <= len(address or "") <= policy.max_len


def is_suspicious(address: str, policy: ValidityPolicy = DEFAULT_POLICY) -> bool:
    return not is_valid(address, policy)


def segment(address: str, prefix_len: int = 6, suffix_len: int = 6) -> tuple[str, str, str]:
    """
    Split address into (prefix, middle, suffix) by character offset.
    short strings come back whole as the prefix, nothing is masked.
    """
    n = len(address)
    if n <= prefix_len + suffix_len:
        return address, "", ""
    return address[:prefix_len], address[prefix_len : n - suffix_len], address[n - suffix_len :]
