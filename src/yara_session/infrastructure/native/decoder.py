"""
Decoder for YRX_METADATA records handed to the metadata callback.

The record is read discriminant first; only the union member implied by the
discriminant is touched afterwards. Records with an unknown discriminant come
from newer native releases and are skipped instead of failing the scan.
"""

from __future__ import annotations

import ctypes
from typing import Optional

from yara_session.domain.value_objects import MetadataType, TaggedValue
from yara_session.shared.logging import get_logger

from .types import YRX_METADATA, MetadataTypeCode

logger = get_logger("infrastructure.native.decoder")

_TYPE_BY_CODE = {
    MetadataTypeCode.I64: MetadataType.INTEGER,
    MetadataTypeCode.F64: MetadataType.FLOAT,
    MetadataTypeCode.BOOLEAN: MetadataType.BOOLEAN,
    MetadataTypeCode.STRING: MetadataType.TEXT,
    MetadataTypeCode.BYTES: MetadataType.BYTES,
}


def decode_text(address: Optional[int]) -> Optional[str]:
    """Read a NUL-terminated UTF-8 string, None for a NULL pointer."""
    if not address:
        return None
    return ctypes.string_at(address).decode("utf-8", errors="replace")


def decode_sized_text(address: Optional[int], length: int) -> str:
    """Read ``length`` bytes as UTF-8; the run is not NUL-terminated."""
    if not address or length == 0:
        return ""
    return ctypes.string_at(address, length).decode("utf-8", errors="replace")


def metadata_type_for(code: int) -> Optional[MetadataType]:
    """Map a native discriminant to a MetadataType, None when unknown."""
    try:
        return _TYPE_BY_CODE[MetadataTypeCode(code)]
    except ValueError:
        return None


def decode_value(record: YRX_METADATA) -> Optional[TaggedValue]:
    """
    Decode the value of a metadata record.

    Args:
        record: Metadata record living in native memory

    Returns:
        The tagged value, or None when the record must be skipped
    """
    kind = metadata_type_for(record.value_type)
    if kind is None:
        logger.debug("metadata_type_unknown", value_type=record.value_type)
        return None

    value = record.value
    if kind is MetadataType.INTEGER:
        return TaggedValue.integer(int(value.i64))
    if kind is MetadataType.FLOAT:
        return TaggedValue.float_(float(value.f64))
    if kind is MetadataType.BOOLEAN:
        # Read the raw byte; any nonzero value is true.
        raw = ctypes.c_uint8.from_address(ctypes.addressof(value)).value
        return TaggedValue.boolean(raw != 0)
    if kind is MetadataType.TEXT:
        text = decode_text(value.string)
        return TaggedValue.text(text) if text is not None else None

    length = int(value.bytes.length)
    if length == 0:
        return TaggedValue.bytes_(b"")
    if not value.bytes.data:
        return None
    return TaggedValue.bytes_(ctypes.string_at(value.bytes.data, length))


def decode_metadata(address: Optional[int]) -> Optional[tuple[str, TaggedValue]]:
    """
    Decode the metadata record at ``address``.

    Args:
        address: Pointer received by the metadata callback

    Returns:
        ``(identifier, value)`` or None when the record is skipped
    """
    if not address:
        return None

    record = YRX_METADATA.from_address(address)
    identifier = decode_text(record.identifier)
    if identifier is None:
        return None

    value = decode_value(record)
    if value is None:
        return None
    return identifier, value
