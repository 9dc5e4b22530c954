"""
goal: wraps the SHA-256 digest used by every fingerprint. before any digest is trusted, an injected
capability check verifies the platform primitive is present, native, and still produces the known
answer for "abc". if that check fails, hashing is refused with HashingUnavailable instead of silently
falling back to something weaker, because the whole fingerprint is only as honest as this digest.
"""

from __future__ import annotations  # lets us use string annotations like "Hasher" before the class is defined

import hashlib  # for the SHA-256 primitive itself
import inspect  # for checking the digest constructor is a builtin and not a python-level wrapper
import logging  # for reporting a failed capability check
from collections.abc import Callable  # type hint for the injected capability check

# known-answer vector for SHA-256("abc"), pins the hashing step
ABC_VECTOR = "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

# type alias for the capability check, takes nothing and returns True when hashing can be trusted
CapabilityCheck = Callable[[], bool]

logger = logging.getLogger("cryptoguard.hasher")


class HashingUnavailable(RuntimeError):
    """The digest primitive is missing, replaced, or broken. Callers must block, not degrade."""


def native_digest_available() -> bool:
    """Default capability check: hashlib.sha256 exists, is a builtin, and passes the "abc" vector."""
    fn = getattr(hashlib, "sha256", None)  # the digest constructor may have been deleted or swapped
    if fn is None:
        return False
    # openssl and _sha256 constructors are C builtins; a monkeypatched python function is not
    if not inspect.isbuiltin(fn):
        return False
    try:
        return fn(b"abc").hexdigest() == ABC_VECTOR  # a tampered primitive will not reproduce the vector
    except Exception:  # anything odd here means we can not trust it
        return False


class Hasher:
    """SHA-256 hex digests of address strings, guarded by a capability check."""

    def __init__(self, capability_check: CapabilityCheck | None = None) -> None:
        """
        :param capability_check: callable returning True when the digest can be trusted.
            defaults to native_digest_available.
        """
        self.capability_check = capability_check or native_digest_available
        self._verified = False  # set once the capability check has passed
        self._digest = None  # constructor that passed the check

    def verify(self) -> None:
        """Run the capability check, raising HashingUnavailable if it fails."""
        try:
            ok = bool(self.capability_check())
        except Exception as e:  # a check that blows up is treated as a failed check
            logger.error("digest capability check raised: %s", e)
            ok = False
        if not ok:
            self._verified = False
            self._digest = None
            logger.error("SHA-256 digest is unavailable or not native, refusing to fingerprint")
            raise HashingUnavailable("SHA-256 digest primitive is unavailable or has been modified")
        self._digest = hashlib.sha256
        self._verified = True

    @property
    def available(self) -> bool:
        """True when the capability check passes (runs it if it has not passed yet)."""
        if self._verified:
            return True
        try:
            self.verify()
        except HashingUnavailable:
            return False
        return True

    def sha256_hex(self, text: str) -> str:
        """Return the lowercase 64-char hex SHA-256 of text encoded as UTF-8."""
        if not self._verified:
            self.verify()  # raises if the primitive can not be trusted
        return self._digest(text.encode("utf-8")).hexdigest()


# module-level default so plain function callers do not need to build a Hasher
_default_hasher = Hasher()


def sha256_hex(text: str) -> str:
    """Digest text with the default, capability-checked hasher."""
    return _default_hasher.sha256_hex(text)
