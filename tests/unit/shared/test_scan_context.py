"""Test per-scan logging context."""

import structlog

from yara_session.shared.logging import generate_scan_id, get_scan_id, scan_context


class TestScanContext:
    def test_generate_scan_id(self):
        scan_id = generate_scan_id()
        assert scan_id.startswith("scan_")
        assert len(scan_id) == len("scan_") + 12
        assert scan_id != generate_scan_id()

    def test_binds_and_restores(self):
        assert get_scan_id() is None

        with scan_context(session_id="abc", size=10) as scan_id:
            assert get_scan_id() == scan_id
            bound = structlog.contextvars.get_contextvars()
            assert bound["scan_id"] == scan_id
            assert bound["session_id"] == "abc"
            assert bound["size"] == 10

        assert get_scan_id() is None
        assert "scan_id" not in structlog.contextvars.get_contextvars()

    def test_explicit_scan_id(self):
        with scan_context(scan_id="scan_fixed") as scan_id:
            assert scan_id == "scan_fixed"

    def test_nested_contexts_restore_outer(self):
        with scan_context(scan_id="outer"):
            with scan_context(scan_id="inner"):
                assert get_scan_id() == "inner"
            assert get_scan_id() == "outer"
            assert structlog.contextvars.get_contextvars()["scan_id"] == "outer"
