"""Test dispatch of global values to native setters."""

from unittest.mock import Mock

import pytest

from yara_session.domain import GlobalKind, UnsupportedTypeError
from yara_session.engine.globals import call_setter, native_setter_name, require_kind, to_native


class TestGlobalDispatch:
    @pytest.mark.parametrize(
        "kind, expected",
        [
            (GlobalKind.TEXT, "yrx_scanner_set_global_str"),
            (GlobalKind.BOOL, "yrx_scanner_set_global_bool"),
            (GlobalKind.INT, "yrx_scanner_set_global_int"),
            (GlobalKind.FLOAT, "yrx_scanner_set_global_float"),
        ],
    )
    def test_setter_names(self, kind, expected):
        assert native_setter_name("yrx_scanner_set_global", kind) == expected

    def test_text_is_encoded(self):
        assert to_native(GlobalKind.TEXT, "héllo") == "héllo".encode("utf-8")

    def test_int64_bounds(self):
        assert to_native(GlobalKind.INT, 2**63 - 1) == 2**63 - 1
        assert to_native(GlobalKind.INT, -(2**63)) == -(2**63)
        with pytest.raises(OverflowError):
            to_native(GlobalKind.INT, 2**63)

    def test_float_accepts_int_values(self):
        assert to_native(GlobalKind.FLOAT, 2) == 2.0

    def test_call_setter_uses_matching_function(self):
        library = Mock()
        library.yrx_compiler_define_global_int.return_value = 0

        result = call_setter(library, "yrx_compiler_define_global", 0x1000, "RETRIES", 3, GlobalKind.INT)

        assert result == 0
        library.yrx_compiler_define_global_int.assert_called_once_with(0x1000, b"RETRIES", 3)
        library.yrx_compiler_define_global_str.assert_not_called()

    @pytest.mark.parametrize(
        "kind, value",
        [
            (GlobalKind.TEXT, "fast"),
            (GlobalKind.BOOL, False),
            (GlobalKind.INT, -1),
            (GlobalKind.FLOAT, 0.5),
            (GlobalKind.FLOAT, 2),
        ],
    )
    def test_require_kind_accepts(self, kind, value):
        require_kind("NAME", value, kind)

    @pytest.mark.parametrize(
        "kind, value",
        [
            (GlobalKind.INT, 3.9),
            (GlobalKind.INT, "3"),
            (GlobalKind.INT, True),
            (GlobalKind.BOOL, "false"),
            (GlobalKind.BOOL, 1),
            (GlobalKind.FLOAT, True),
            (GlobalKind.TEXT, b"raw"),
            (GlobalKind.TEXT, None),
        ],
    )
    def test_require_kind_rejects(self, kind, value):
        with pytest.raises(UnsupportedTypeError) as exc_info:
            require_kind("NAME", value, kind)
        assert exc_info.value.value_type is type(value)

    def test_call_setter_rejects_before_native_call(self):
        library = Mock()

        with pytest.raises(UnsupportedTypeError, match="expected bool"):
            call_setter(library, "yrx_scanner_set_global", 0x1000, "FLAG", "false", GlobalKind.BOOL)

        library.yrx_scanner_set_global_bool.assert_not_called()
