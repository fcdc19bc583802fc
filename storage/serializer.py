"""
osmindex Record Serializer
==========================
Fixed-width (id, value) records: the export format of an index dump.

Record binary layout (little-endian, no padding):
  [id: fixed_size(id_type) B] [value: fixed_size(value_type) B]

A dump is a flat array of such records. There is no header, trailer or
count: readers must know both types out of band, and the number of
records is len(data) // record_size.
"""

from typing import Any, Iterable

from storage.types import (
    DataType, fixed_size, is_id_type, serialize_value, deserialize_value,
)


def record_size(id_type: DataType, value_type: DataType) -> int:
    """Bytes per (id, value) record."""
    return fixed_size(id_type) + fixed_size(value_type)


def pack_record(id_: int, value: Any,
                id_type: DataType, value_type: DataType) -> bytes:
    """Serialize one (id, value) pair."""
    if not is_id_type(id_type):
        raise ValueError(f"{id_type.value} cannot be used as an id type")
    return serialize_value(id_, id_type) + serialize_value(value, value_type)


def pack_records(pairs: Iterable[tuple[int, Any]],
                 id_type: DataType, value_type: DataType) -> bytes:
    """
    Serialize pairs into one contiguous buffer, in iteration order.
    Ordering is the caller's concern.
    """
    buf = bytearray()
    for id_, value in pairs:
        buf.extend(pack_record(id_, value, id_type, value_type))
    return bytes(buf)


def unpack_records(data: bytes, id_type: DataType,
                   value_type: DataType) -> list[tuple[int, Any]]:
    """
    Deserialize a dump back into a list of (id, value) pairs.
    Raises ValueError if data is not a whole number of records.
    """
    rsize = record_size(id_type, value_type)
    if len(data) % rsize != 0:
        raise ValueError(
            f"Truncated dump: {len(data)} bytes is not a multiple of "
            f"record size {rsize}"
        )

    pairs: list[tuple[int, Any]] = []
    offset = 0
    while offset < len(data):
        id_, offset = deserialize_value(data, offset, id_type)
        value, offset = deserialize_value(data, offset, value_type)
        pairs.append((id_, value))
    return pairs
