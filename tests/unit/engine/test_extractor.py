"""Test callback guarding and rule extraction outside of scans."""

import pytest

from yara_session.domain import ScanError
from yara_session.engine import CallbackGuard, MatchExtractor
from yara_session.infrastructure.native.types import RULE_CALLBACK


class TestCallbackGuard:
    def test_records_first_error_and_skips_later_calls(self):
        guard = CallbackGuard()
        calls = []

        @guard.wrap
        def callback(value):
            calls.append(value)
            raise ValueError(f"failed on {value}")

        callback(1)
        callback(2)

        assert calls == [1]
        with pytest.raises(ValueError, match="failed on 1"):
            guard.raise_if_failed()
        guard.raise_if_failed()

    def test_error_crosses_a_real_ctypes_callback(self):
        """The error is kept even though ctypes itself would swallow it."""
        guard = CallbackGuard()

        @guard.wrap
        def on_rule(rule, user_data):
            raise KeyError(rule)

        callback = RULE_CALLBACK(on_rule)
        callback(0x1234, None)

        with pytest.raises(KeyError):
            guard.raise_if_failed()


class TestMatchExtractor:
    def test_null_rule(self, fake_library):
        with pytest.raises(ScanError, match="NULL rule"):
            MatchExtractor(fake_library).match_record(None)

    def test_invalid_rule_handle(self, fake_library):
        with pytest.raises(ScanError, match="Failed to read rule identifier: invalid rule handle"):
            MatchExtractor(fake_library).identifier(0xDEAD)
