"""
osmindex Storage Layer
======================
Fixed-width value types, record serialization and reliable output sinks.

Usage:
    from storage import DataType, Location, empty_value
    from storage import pack_records, unpack_records, write_to_sink
"""

from storage.types import (
    DataType, fixed_size, is_id_type, validate, empty_value,
    serialize_value, deserialize_value, type_from_string,
)
from storage.location import Location, InvalidLocationError, UNDEFINED_COORDINATE
from storage.serializer import record_size, pack_record, pack_records, unpack_records
from storage.io import WriteFailureError, reliable_write, write_to_sink

__all__ = [
    "DataType", "fixed_size", "is_id_type", "validate", "empty_value",
    "serialize_value", "deserialize_value", "type_from_string",
    "Location", "InvalidLocationError", "UNDEFINED_COORDINATE",
    "record_size", "pack_record", "pack_records", "unpack_records",
    "WriteFailureError", "reliable_write", "write_to_sink",
]
