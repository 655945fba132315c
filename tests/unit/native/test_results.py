"""Test conversion of native result codes into exceptions."""

from unittest.mock import Mock

import pytest

from yara_session.domain import CompilationError, Diagnostic, ScanError
from yara_session.infrastructure.native import ResultCode, check_compile, check_scan


@pytest.fixture
def library() -> Mock:
    library = Mock()
    library.yrx_last_error.return_value = b"identifier `X` not defined"
    return library


class TestCheckCompile:
    def test_success_is_silent(self, library):
        check_compile(library, ResultCode.SUCCESS, "Failed to compile rules")
        library.yrx_last_error.assert_not_called()

    def test_failure_carries_native_text(self, library):
        diagnostics = [Diagnostic(message="bad")]
        with pytest.raises(CompilationError) as exc_info:
            check_compile(library, ResultCode.SYNTAX_ERROR, "Failed to add source", diagnostics)

        error = exc_info.value
        assert error.message == "Failed to add source: identifier `X` not defined"
        assert error.result_code == ResultCode.SYNTAX_ERROR
        assert error.diagnostics == diagnostics


class TestCheckScan:
    def test_failure_is_scan_error(self, library):
        with pytest.raises(ScanError) as exc_info:
            check_scan(library, ResultCode.VARIABLE_ERROR, "Failed to set global int X")

        assert exc_info.value.result_code == ResultCode.VARIABLE_ERROR
        assert not exc_info.value.timeout
        assert "not defined" in exc_info.value.message

    def test_timeout_is_flagged_and_mentioned(self, library):
        """A timeout always says so, whatever the native text."""
        library.yrx_last_error.return_value = b"scan aborted"
        with pytest.raises(ScanError) as exc_info:
            check_scan(library, ResultCode.SCAN_TIMEOUT, "Scan failed")

        assert exc_info.value.timeout
        assert exc_info.value.message == "Scan failed: scan aborted (timeout)"

    def test_timeout_message_not_repeated(self, library):
        library.yrx_last_error.return_value = b"timeout"
        with pytest.raises(ScanError, match=r"^Scan failed: timeout$"):
            check_scan(library, ResultCode.SCAN_TIMEOUT, "Scan failed")


class TestResultCode:
    def test_describe(self):
        assert ResultCode.describe(4) == "SCAN_TIMEOUT"
        assert ResultCode.describe(250) == "UNKNOWN(250)"
