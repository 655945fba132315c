"""Test decoding of native YRX_METADATA records."""

import ctypes

import pytest

from yara_session.domain import MetadataType, TaggedValue
from yara_session.infrastructure.native import decode_metadata, decode_sized_text, decode_text
from yara_session.infrastructure.native.types import YRX_METADATA, MetadataTypeCode


class RecordBuilder:
    """Builds YRX_METADATA records in ctypes memory and keeps them alive."""

    def __init__(self):
        self._keep = []

    def _cstring(self, text: bytes) -> int:
        buffer = ctypes.create_string_buffer(text)
        self._keep.append(buffer)
        return ctypes.addressof(buffer)

    def record(self, identifier: bytes = b"key", value_type: int = MetadataTypeCode.I64) -> YRX_METADATA:
        record = YRX_METADATA()
        self._keep.append(record)
        record.identifier = self._cstring(identifier) if identifier is not None else None
        record.value_type = value_type
        return record

    def address(self, record: YRX_METADATA) -> int:
        return ctypes.addressof(record)

    def bytes_payload(self, record: YRX_METADATA, payload: bytes) -> None:
        raw = (ctypes.c_uint8 * len(payload)).from_buffer_copy(payload)
        self._keep.append(raw)
        record.value.bytes.length = len(payload)
        record.value.bytes.data = ctypes.cast(raw, ctypes.POINTER(ctypes.c_uint8))

    def string_payload(self, record: YRX_METADATA, text: bytes) -> None:
        record.value.string = self._cstring(text)


@pytest.fixture
def builder() -> RecordBuilder:
    return RecordBuilder()


class TestDecodeMetadata:
    """Test discriminant-first decoding of each metadata type."""

    def test_integer(self, builder):
        record = builder.record(b"severity", MetadataTypeCode.I64)
        record.value.i64 = -42
        assert decode_metadata(builder.address(record)) == ("severity", TaggedValue.integer(-42))

    def test_float(self, builder):
        record = builder.record(b"score", MetadataTypeCode.F64)
        record.value.f64 = 0.25
        assert decode_metadata(builder.address(record)) == ("score", TaggedValue.float_(0.25))

    def test_boolean_reads_one_byte(self, builder):
        """Any nonzero byte is True; the rest of the union is ignored."""
        record = builder.record(b"enabled", MetadataTypeCode.BOOLEAN)
        record.value.i64 = 0x0100
        assert decode_metadata(builder.address(record)) == ("enabled", TaggedValue.boolean(False))

        record.value.i64 = 0x02
        assert decode_metadata(builder.address(record)) == ("enabled", TaggedValue.boolean(True))

    def test_text(self, builder):
        record = builder.record(b"author", MetadataTypeCode.STRING)
        builder.string_payload(record, "Zoë".encode("utf-8"))
        assert decode_metadata(builder.address(record)) == ("author", TaggedValue.text("Zoë"))

    def test_bytes_are_copied_with_exact_length(self, builder):
        """Embedded NULs are kept; the length decides the size."""
        record = builder.record(b"magic", MetadataTypeCode.BYTES)
        builder.bytes_payload(record, b"MZ\x00\x90")
        key, value = decode_metadata(builder.address(record))
        assert key == "magic"
        assert value.type is MetadataType.BYTES
        assert value.value == b"MZ\x00\x90"

    def test_zero_length_bytes_decode_to_empty(self, builder):
        record = builder.record(b"empty", MetadataTypeCode.BYTES)
        record.value.bytes.length = 0
        assert decode_metadata(builder.address(record)) == ("empty", TaggedValue.bytes_(b""))

    def test_bytes_with_null_data_are_skipped(self, builder):
        record = builder.record(b"broken", MetadataTypeCode.BYTES)
        record.value.bytes.length = 4
        assert decode_metadata(builder.address(record)) is None

    def test_null_text_is_skipped(self, builder):
        record = builder.record(b"author", MetadataTypeCode.STRING)
        assert decode_metadata(builder.address(record)) is None

    def test_unknown_discriminant_is_skipped(self, builder):
        """Newer native types are skipped instead of failing."""
        record = builder.record(b"future", 99)
        record.value.i64 = 1
        assert decode_metadata(builder.address(record)) is None

    def test_null_identifier_is_skipped(self, builder):
        record = builder.record(None, MetadataTypeCode.I64)
        assert decode_metadata(builder.address(record)) is None

    def test_null_record(self):
        assert decode_metadata(None) is None
        assert decode_metadata(0) is None


class TestDecodeText:
    """Test string helpers."""

    def test_decode_text(self):
        buffer = ctypes.create_string_buffer(b"namespace")
        assert decode_text(ctypes.addressof(buffer)) == "namespace"
        assert decode_text(None) is None

    def test_decode_sized_text_stops_at_length(self):
        buffer = ctypes.create_string_buffer(b"identifier_and_more")
        assert decode_sized_text(ctypes.addressof(buffer), 10) == "identifier"
        assert decode_sized_text(ctypes.addressof(buffer), 0) == ""
        assert decode_sized_text(None, 5) == ""
