"""
goal: glue for one paste. trims the input, classifies it, segments it, fingerprints it, and wraps the
result in an immutable AddressCheck together with its trust score. also owns request sequencing for
bursts of rapid input: every analysis gets a monotonically increasing sequence number and only the
latest one is allowed to update the current result and the history, stale results are dropped.

input shorter than the minimum length is not an error, analyze() just returns None.
a failed digest capability check is an error: HashingUnavailable propagates and the analyzer marks
itself blocked until a later check succeeds.
"""

from __future__ import annotations  # lets us use string annotations before classes are defined

import logging  # for analysis and stale-result messages
import threading  # for issuing sequence numbers from several worker threads
from collections.abc import Iterable  # type hint for trusted-key snapshots
from dataclasses import dataclass  # frozen analysis record
from typing import Any  # type hint for flexible dictionary values

from agent.integrity_check import Hasher, HashingUnavailable
from algorithm.classifier import DEFAULT_POLICY, ValidityPolicy, classify, is_valid, segment
from algorithm.fingerprint import VisualFingerprint, fingerprint
from algorithm.models import AddressCheck, new_id, now_ms
from algorithm.trust_store import TrustStore, trust_score

logger = logging.getLogger("cryptoguard.analyzer")

MIN_INPUT_LEN = 20  # anything shorter is not worth analysing
UNLOCK_CHARS = 3  # trailing characters the user types to unlock copying


@dataclass(frozen=True)
class Analysis:
    check: AddressCheck
    fingerprint: VisualFingerprint
    is_valid: bool
    is_trusted: bool
    trust_score: int

    def to_dict(self) -> dict[str, Any]:
        return {
            "check": self.check.to_dict(),
            "fingerprint": self.fingerprint.to_dict(),
            "isValid": self.is_valid,
            "isTrusted": self.is_trusted,
            "trustScore": self.trust_score,
        }


class Analyzer:
    def __init__(
        self,
        store: TrustStore,
        hasher: Hasher | None = None,
        policy: ValidityPolicy = DEFAULT_POLICY,
        min_input_len: int = MIN_INPUT_LEN,
        prefix_len: int = 6,
        suffix_len: int = 6,
        grid_size: int = 8,
    ) -> None:
        self.store = store
        self.hasher = hasher or Hasher()
        self.policy = policy
        self.min_input_len = min_input_len
        self.prefix_len = prefix_len
        self.suffix_len = suffix_len
        self.grid_size = grid_size
        self.blocked = False  # True after the digest capability check failed
        self.current: Analysis | None = None  # result of the latest committed request
        self._seq = 0  # last issued sequence number
        self._seq_lock = threading.Lock()

    def build_check(self, raw: str) -> AddressCheck | None:
        """Make the immutable record for raw, or None when the trimmed input is too short."""
        address = (raw or "").strip()
        if len(address) < self.min_input_len:
            return None
        prefix, middle, suffix = segment(address, self.prefix_len, self.suffix_len)
        return AddressCheck(
            id=new_id(),
            address=address,
            timestamp=now_ms(),
            network=classify(address),
            is_suspicious=not is_valid(address, self.policy),
            prefix=prefix,
            middle=middle,
            suffix=suffix,
            fingerprint=address,
        )

    def analyze(self, raw: str, trusted: Iterable[str] | None = None) -> Analysis | None:
        """
        Analyse raw without touching the store's history.

        :param trusted: optional snapshot of trusted keys (see TrustStore.snapshot) for analyses
            running off the main thread; the live store is used when omitted.
        """
        check = self.build_check(raw)
        if check is None:
            return None
        try:
            fp = fingerprint(check.fingerprint, self.grid_size, hasher=self.hasher)
        except HashingUnavailable:
            self.blocked = True
            raise
        self.blocked = False
        if trusted is None:
            is_trusted = self.store.is_trusted(check.address)
        else:
            is_trusted = check.address in set(trusted)
        valid = not check.is_suspicious
        return Analysis(
            check=check,
            fingerprint=fp,
            is_valid=valid,
            is_trusted=is_trusted,
            trust_score=trust_score(check.address, valid, is_trusted),
        )

    # request sequencing

    def begin(self) -> int:
        """Issue the next sequence number for an in-flight analysis."""
        with self._seq_lock:
            self._seq += 1
            return self._seq

    @property
    def latest_seq(self) -> int:
        return self._seq

    def commit(self, seq: int, analysis: Analysis | None) -> bool:
        """Publish analysis as the current result if seq is still the latest. returns False if stale."""
        with self._seq_lock:
            if seq != self._seq:
                logger.debug("discarding stale analysis #%d (latest is #%d)", seq, self._seq)
                return False
            self.current = analysis
            # history write stays under the lock so a newer commit can not land first
            if analysis is not None:
                self.store.record_check(analysis.check)
        return True

    def submit(self, raw: str) -> Analysis | None:
        """begin + analyze + commit in one go, for callers without their own worker threads."""
        seq = self.begin()
        analysis = self.analyze(raw)
        self.commit(seq, analysis)
        return analysis


def unlock_hint(address: str, chars: int = UNLOCK_CHARS) -> str:
    # the trailing characters the user is asked to type back
    return address[-chars:] if chars > 0 else ""


def is_unlocked(address: str, typed: str, chars: int = UNLOCK_CHARS) -> bool:
    """Copy gate: typed must equal the last chars of address, case-insensitively."""
    hint = unlock_hint(address, chars)
    if not hint:
        return False
    return (typed or "").strip().lower() == hint.lower()
