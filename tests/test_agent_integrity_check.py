"""
Tests for agent.integrity_check - Hasher and the digest capability check
Tests the known-answer vector, blocking behaviour, and tamper detection of the digest primitive.
"""

from __future__ import annotations

import hashlib
from unittest.mock import MagicMock, patch

import pytest

from agent.integrity_check import (
    ABC_VECTOR,
    Hasher,
    HashingUnavailable,
    native_digest_available,
    sha256_hex,
)


class TestHasher:
    """Tests for Hasher class"""

    def test_abc_known_answer(self):
        """Test that the hash step reproduces the published SHA-256 vector for "abc" """
        assert Hasher().sha256_hex("abc") == ABC_VECTOR
        assert ABC_VECTOR == "ba7816bf8f01cfea414140de5dae2223b00361a396177a9cb410ff61f20015ad"

    def test_output_is_lowercase_hex(self):
        """Test that digests are 64 lowercase hex characters"""
        digest = sha256_hex("0x" + "A" * 40)
        assert len(digest) == 64
        assert digest == digest.lower()
        int(digest, 16)  # parses as hex

    def test_matches_hashlib_for_unicode(self):
        """Test that text is hashed as UTF-8"""
        text = "ünïcødé.eth"
        assert sha256_hex(text) == hashlib.sha256(text.encode("utf-8")).hexdigest()

    def test_failed_capability_check_raises(self):
        """Test that a failing capability check blocks hashing"""
        hasher = Hasher(capability_check=lambda: False)
        with pytest.raises(HashingUnavailable):
            hasher.sha256_hex("abc")
        assert hasher.available is False

    def test_capability_check_that_raises_is_treated_as_failure(self):
        """Test that an exploding capability check is a failed check, not a crash"""

        def boom():
            raise RuntimeError("probe failed")

        hasher = Hasher(capability_check=boom)
        with pytest.raises(HashingUnavailable):
            hasher.verify()

    def test_capability_check_runs_once_after_success(self):
        """Test that a passing check is remembered"""
        check = MagicMock(return_value=True)
        hasher = Hasher(capability_check=check)
        hasher.sha256_hex("a")
        hasher.sha256_hex("b")
        assert check.call_count == 1
        assert hasher.available is True

    def test_uses_constructor_that_passed_the_check(self):
        """Test that a sha256 swapped in after verification is never called"""
        hasher = Hasher()
        hasher.verify()
        with patch("agent.integrity_check.hashlib.sha256", hashlib.md5):
            assert hasher.sha256_hex("abc") == ABC_VECTOR


class TestNativeDigestAvailable:
    """Tests for the default capability check"""

    def test_native_digest_passes(self):
        """Test that the real hashlib passes"""
        assert native_digest_available() is True

    def test_python_wrapper_is_rejected(self):
        """Test that a monkeypatched python-level sha256 is not trusted"""
        real = hashlib.sha256

        def fake_sha256(data=b""):
            return real(data)

        with patch("agent.integrity_check.hashlib.sha256", fake_sha256):
            assert native_digest_available() is False

    def test_missing_digest_is_rejected(self):
        """Test that a removed sha256 constructor is not trusted"""
        with patch("agent.integrity_check.hashlib", MagicMock(spec=[])):
            assert native_digest_available() is False

    def test_wrong_answer_is_rejected(self):
        """Test that a builtin giving the wrong digest is not trusted"""
        # hashlib.md5 is a builtin too, but it can not reproduce the sha256 vector
        with patch("agent.integrity_check.hashlib.sha256", hashlib.md5):
            assert native_digest_available() is False
