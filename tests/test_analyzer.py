"""
Tests for algorithm.analyzer - end-to-end analysis, request sequencing, copy gate
"""

from __future__ import annotations

import threading

import pytest

from agent.integrity_check import Hasher, HashingUnavailable
from algorithm.analyzer import Analyzer, is_unlocked, unlock_hint
from algorithm.classifier import ValidityPolicy
from algorithm.models import NetworkLabel
from algorithm.trust_store import MemoryBackend, TrustStore
from conftest import BTC_SEGWIT, EVM_ADDR, assert_has_keys


class TestAnalyze:
    """Tests for Analyzer.analyze / build_check"""

    def test_evm_end_to_end(self, analyzer):
        result = analyzer.analyze(EVM_ADDR)
        assert result is not None
        check = result.check
        assert check.network is NetworkLabel.EVM
        assert result.is_valid is True
        assert check.is_suspicious is False
        assert result.trust_score == 85
        assert check.fingerprint == check.address == EVM_ADDR
        assert check.prefix + check.middle + check.suffix == EVM_ADDR

    def test_input_is_trimmed(self, analyzer):
        result = analyzer.analyze("   " + BTC_SEGWIT + "\n")
        assert result.check.address == BTC_SEGWIT
        assert result.check.network is NetworkLabel.BITCOIN_SEGWIT

    @pytest.mark.parametrize("raw", ["", "   ", "hello12345", "x" * 19, "  " + "x" * 19 + "  "])
    def test_too_short_returns_none(self, analyzer, raw):
        assert analyzer.analyze(raw) is None

    def test_unknown_but_long_enough(self, analyzer):
        # 22 chars: analysed, but suspicious because the unknown length gate starts at 26
        result = analyzer.analyze("-" * 22)
        assert result.check.network is NetworkLabel.UNKNOWN
        assert result.check.is_suspicious is True
        assert result.trust_score == 25

    def test_trusted_address_scores_100(self, analyzer, store):
        store.set_trusted(EVM_ADDR)
        assert analyzer.analyze(EVM_ADDR).trust_score == 100

    def test_trusted_snapshot_overrides_live_store(self, analyzer, store):
        snap = store.snapshot()  # empty
        store.set_trusted(EVM_ADDR)
        assert analyzer.analyze(EVM_ADDR, trusted=snap).is_trusted is False
        assert analyzer.analyze(EVM_ADDR, trusted={EVM_ADDR}).is_trusted is True

    def test_each_analysis_is_a_new_record(self, analyzer):
        a = analyzer.analyze(EVM_ADDR)
        b = analyzer.analyze(EVM_ADDR)
        assert a.check.id != b.check.id
        assert a.fingerprint == b.fingerprint

    def test_analyze_does_not_touch_history(self, analyzer, store):
        analyzer.analyze(EVM_ADDR)
        assert store.history() == []

    def test_policy_and_grid_size_are_honoured(self, store):
        custom = Analyzer(store, policy=ValidityPolicy(min_len=20, max_len=30), grid_size=6)
        result = custom.analyze("-" * 22)
        assert result.check.is_suspicious is False
        assert result.fingerprint.size == 6

    def test_to_dict_shape(self, analyzer):
        data = analyzer.analyze(EVM_ADDR).to_dict()
        assert_has_keys(data, ("check", "fingerprint", "isValid", "isTrusted", "trustScore"))
        assert_has_keys(data["check"], ("id", "address", "network", "isSuspicious", "prefix"))


class TestBlocked:
    """Hashing unavailable is a blocking state"""

    def test_failed_capability_blocks(self, store):
        analyzer = Analyzer(store, hasher=Hasher(capability_check=lambda: False))
        with pytest.raises(HashingUnavailable):
            analyzer.analyze(EVM_ADDR)
        assert analyzer.blocked is True
        assert store.history() == []

    def test_short_input_never_reaches_the_hasher(self, store):
        analyzer = Analyzer(store, hasher=Hasher(capability_check=lambda: False))
        assert analyzer.analyze("short") is None


class TestSequencing:
    """Only the latest in-flight request is committed"""

    def test_submit_records_history(self, analyzer, store):
        analyzer.submit(EVM_ADDR)
        assert [c.address for c in store.history()] == [EVM_ADDR]
        assert analyzer.current.check.address == EVM_ADDR

    def test_stale_result_is_discarded(self, analyzer, store):
        old_seq = analyzer.begin()
        old = analyzer.analyze(BTC_SEGWIT)
        new_seq = analyzer.begin()
        new = analyzer.analyze(EVM_ADDR)

        assert analyzer.commit(new_seq, new) is True
        assert analyzer.commit(old_seq, old) is False  # arrived late
        assert analyzer.current is new
        assert [c.address for c in store.history()] == [EVM_ADDR]

    def test_out_of_order_older_first(self, analyzer, store):
        s1 = analyzer.begin()
        s2 = analyzer.begin()
        assert analyzer.commit(s1, analyzer.analyze(BTC_SEGWIT)) is False
        assert analyzer.commit(s2, analyzer.analyze(EVM_ADDR)) is True
        assert [c.address for c in store.history()] == [EVM_ADDR]

    def test_latest_malformed_clears_current(self, analyzer, store):
        analyzer.submit(EVM_ADDR)
        assert analyzer.submit("nope") is None
        assert analyzer.current is None
        assert len(store.history()) == 1

    def test_sequence_numbers_are_unique_across_threads(self):
        analyzer = Analyzer(TrustStore(MemoryBackend()))
        seen: list[int] = []
        lock = threading.Lock()

        def worker():
            for _ in range(200):
                seq = analyzer.begin()
                with lock:
                    seen.append(seq)

        threads = [threading.Thread(target=worker) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert sorted(seen) == list(range(1, 801))
        assert analyzer.latest_seq == 800

    def test_stale_commit_can_not_reorder_history(self, analyzer, store, monkeypatch):
        """A commit already writing history finishes before a newer commit can land"""
        entered = threading.Event()
        release = threading.Event()
        record = store.record_check

        def slow_record(check):
            if check.address == BTC_SEGWIT:
                entered.set()
                release.wait(5)
            record(check)

        monkeypatch.setattr(store, "record_check", slow_record)

        old_seq = analyzer.begin()
        old = analyzer.analyze(BTC_SEGWIT)
        new = analyzer.analyze(EVM_ADDR)
        results = {}

        def commit_newer():
            seq = analyzer.begin()
            results["new"] = analyzer.commit(seq, new)

        older = threading.Thread(target=lambda: results.setdefault("old", analyzer.commit(old_seq, old)))
        older.start()
        assert entered.wait(5)
        newer = threading.Thread(target=commit_newer)
        newer.start()
        newer.join(0.2)
        assert newer.is_alive()  # waits for the in-flight history write
        release.set()
        older.join(5)
        newer.join(5)

        assert results == {"old": True, "new": True}
        assert analyzer.current is new
        assert [c.address for c in store.history()] == [EVM_ADDR, BTC_SEGWIT]


class TestCopyGate:
    """Tests for unlock_hint / is_unlocked"""

    def test_hint_is_last_three(self):
        assert unlock_hint(EVM_ADDR) == "aaa"
        assert unlock_hint("abcdefXyZ") == "XyZ"

    def test_unlock_is_case_insensitive(self):
        assert is_unlocked("abcdefXyZ", "xyz")
        assert is_unlocked("abcdefXyZ", " XYZ ")
        assert not is_unlocked("abcdefXyZ", "xy")
        assert not is_unlocked("abcdefXyZ", "abc")

    def test_custom_length(self):
        assert is_unlocked("abcdef", "cdef", chars=4)
        assert not is_unlocked("abcdef", "", chars=0)
