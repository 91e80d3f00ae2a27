"""Tag/length/value blob decoding.

WCDB_Contact.sqlite stores most contact fields as small protobuf-style blobs.
Only the framing is decoded here: each field is a varint key followed by a
payload whose size depends on the key's wire type (low 3 bits). Sections are
keyed by the full key value, so 0x0a, 0x12 and 0x1a are fields 1, 2 and 3 with
the length-delimited wire type.
"""

from typing import Dict, Optional, Tuple

from wechat_reader.core.errors import BlobDecodeError

WIRE_VARINT = 0
WIRE_FIXED64 = 1
WIRE_LENGTH = 2
WIRE_FIXED32 = 5

Sections = Dict[int, bytes]


def _read_varint(data: bytes, pos: int) -> Tuple[int, int]:
    result = 0
    shift = 0
    while True:
        if pos >= len(data):
            raise BlobDecodeError("Truncated varint")
        b = data[pos]
        pos += 1
        result |= (b & 0x7F) << shift
        if not b & 0x80:
            return result, pos
        shift += 7
        if shift > 63:
            raise BlobDecodeError("Varint too long")


def _take(data: bytes, pos: int, size: int) -> Tuple[bytes, int]:
    end = pos + size
    if end > len(data):
        raise BlobDecodeError(f"Field needs {size} bytes, {len(data) - pos} left")
    return data[pos:end], end


def decode(blob: Optional[bytes]) -> Optional[Sections]:
    """Split a blob into ``{key: payload}``.

    Args:
        blob: Raw column value. ``None`` or empty means the column is unset.

    Returns:
        Section map, or None for an unset column.

    Raises:
        BlobDecodeError: Truncated data or an unsupported wire type.
    """
    if not blob:
        return None

    data = bytes(blob)
    sections: Sections = {}
    pos = 0
    while pos < len(data):
        key, pos = _read_varint(data, pos)
        wire_type = key & 0x07
        if wire_type == WIRE_LENGTH:
            size, pos = _read_varint(data, pos)
            payload, pos = _take(data, pos, size)
        elif wire_type == WIRE_VARINT:
            start = pos
            _, pos = _read_varint(data, pos)
            payload = data[start:pos]
        elif wire_type == WIRE_FIXED64:
            payload, pos = _take(data, pos, 8)
        elif wire_type == WIRE_FIXED32:
            payload, pos = _take(data, pos, 4)
        else:
            raise BlobDecodeError(f"Unsupported wire type {wire_type} at key {key:#x}")
        sections[key] = payload
    return sections


def get_string(sections: Optional[Sections], tag: int) -> Optional[str]:
    if sections is None:
        return None
    payload = sections.get(tag)
    if payload is None:
        return None
    try:
        return payload.decode("utf-8")
    except UnicodeDecodeError:
        return None
