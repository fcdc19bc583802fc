"""
osmindex Data Type System
=========================
Fixed-size id and value types that an index can hold.

Every type has a fixed byte size and a little-endian struct layout, so a
list of (id, value) records can be written as a flat array with no
per-record framing:
  UINT32   → 4 bytes
  UINT64   → 8 bytes (default id type, object ids)
  INT32    → 4 bytes
  INT64    → 8 bytes
  LOCATION → 8 bytes (int32 x + int32 y, see location.py)

Each type also has an "empty value": what a non-failing lookup returns
when an id is absent (0 for integers, an undefined Location).
"""

import struct
from enum import Enum
from typing import Any

from storage.location import Location, LOCATION_STRUCT


class DataType(Enum):
    """Supported id/value types."""
    UINT32 = "UINT32"
    UINT64 = "UINT64"
    INT32 = "INT32"
    INT64 = "INT64"
    LOCATION = "LOCATION"


# ─── Layout ─────────────────────────────────────────────────────────────────

STRUCTS: dict[DataType, struct.Struct] = {
    DataType.UINT32: struct.Struct("<I"),
    DataType.UINT64: struct.Struct("<Q"),
    DataType.INT32: struct.Struct("<i"),
    DataType.INT64: struct.Struct("<q"),
    DataType.LOCATION: LOCATION_STRUCT,
}

FIXED_SIZES: dict[DataType, int] = {t: s.size for t, s in STRUCTS.items()}

# Inclusive ranges for integer types
_INT_RANGES: dict[DataType, tuple[int, int]] = {
    DataType.UINT32: (0, 2**32 - 1),
    DataType.UINT64: (0, 2**64 - 1),
    DataType.INT32: (-2**31, 2**31 - 1),
    DataType.INT64: (-2**63, 2**63 - 1),
}

ID_TYPES = (DataType.UINT32, DataType.UINT64)


def fixed_size(dtype: DataType) -> int:
    """Return the byte size of one value of this type."""
    return FIXED_SIZES[dtype]


def is_id_type(dtype: DataType) -> bool:
    """Only unsigned integer types can be used as ids."""
    return dtype in ID_TYPES


# ─── Validation ─────────────────────────────────────────────────────────────

def validate(value: Any, dtype: DataType) -> bool:
    """
    Check if a Python value can be stored as the given DataType.
    Returns True if valid, False otherwise.
    """
    if dtype == DataType.LOCATION:
        if not isinstance(value, Location):
            return False
        return (validate(value.x, DataType.INT32)
                and validate(value.y, DataType.INT32))

    if not isinstance(value, int) or isinstance(value, bool):
        return False
    lo, hi = _INT_RANGES[dtype]
    return lo <= value <= hi


def empty_value(dtype: DataType) -> Any:
    """Return the "no value" marker for a type."""
    if dtype == DataType.LOCATION:
        return Location()
    return 0


# ─── Serialization ──────────────────────────────────────────────────────────

def serialize_value(value: Any, dtype: DataType) -> bytes:
    """
    Serialize a Python value to its fixed-width bytes.
    Raises ValueError if the value does not fit the type.
    """
    if not validate(value, dtype):
        raise ValueError(f"Value {value!r} is not a valid {dtype.value}")
    if dtype == DataType.LOCATION:
        return value.to_bytes()
    return STRUCTS[dtype].pack(value)


def deserialize_value(data: bytes, offset: int, dtype: DataType) -> tuple[Any, int]:
    """
    Deserialize a value from bytes at the given offset.
    Returns (value, new_offset).
    """
    if dtype == DataType.LOCATION:
        return Location.from_bytes(data, offset), offset + LOCATION_STRUCT.size
    s = STRUCTS[dtype]
    return s.unpack_from(data, offset)[0], offset + s.size


def type_from_string(type_str: str) -> DataType:
    """Convert a string like 'uint64' to a DataType enum member."""
    normalized = type_str.strip().upper()
    try:
        return DataType(normalized)
    except ValueError:
        raise ValueError(f"Unknown data type: {type_str!r}. "
                         f"Valid types: {[t.value for t in DataType]}")
