"""
osmindex Location
=================
Fixed-point geographic coordinate used as the typical index value.

Coordinates are stored as two int32 values in units of 1e-7 degrees
(the precision OSM data is published with). A Location whose coordinates
are both `UNDEFINED_COORDINATE` is the "empty" location: it is what a
non-failing lookup returns when an id is not in the index.

Binary layout (8 bytes, little-endian):
  [x: int32] [y: int32]
"""

import struct
from dataclasses import dataclass

# ─── Constants ──────────────────────────────────────────────────────────────

COORDINATE_PRECISION = 10_000_000
UNDEFINED_COORDINATE = 2**31 - 1

MAX_X = 180 * COORDINATE_PRECISION
MAX_Y = 90 * COORDINATE_PRECISION

LOCATION_STRUCT = struct.Struct("<ii")
LOCATION_SIZE = LOCATION_STRUCT.size  # 8


class InvalidLocationError(Exception):
    """Raised when reading degrees from an undefined or out-of-range Location."""
    pass


def double_to_fix(coordinate: float) -> int:
    """Convert degrees to fixed-point units, rounding half away from zero."""
    scaled = coordinate * COORDINATE_PRECISION
    if scaled < 0:
        return -int(-scaled + 0.5)
    return int(scaled + 0.5)


def fix_to_double(coordinate: int) -> float:
    return coordinate / COORDINATE_PRECISION


@dataclass(frozen=True)
class Location:
    """A (x, y) coordinate pair in 1e-7 degree units. Default is undefined."""
    x: int = UNDEFINED_COORDINATE
    y: int = UNDEFINED_COORDINATE

    @classmethod
    def from_degrees(cls, lon: float, lat: float) -> "Location":
        return cls(double_to_fix(lon), double_to_fix(lat))

    def is_defined(self) -> bool:
        return self.x != UNDEFINED_COORDINATE or self.y != UNDEFINED_COORDINATE

    def is_undefined(self) -> bool:
        return not self.is_defined()

    def valid(self) -> bool:
        """True if both coordinates are inside the WGS84 range."""
        return -MAX_X <= self.x <= MAX_X and -MAX_Y <= self.y <= MAX_Y

    @property
    def lon(self) -> float:
        if not self.valid():
            raise InvalidLocationError(f"invalid location {self!r}")
        return fix_to_double(self.x)

    @property
    def lat(self) -> float:
        if not self.valid():
            raise InvalidLocationError(f"invalid location {self!r}")
        return fix_to_double(self.y)

    def to_bytes(self) -> bytes:
        """Serialize to 8 bytes: x(4B) + y(4B), little-endian."""
        return LOCATION_STRUCT.pack(self.x, self.y)

    @classmethod
    def from_bytes(cls, data: bytes, offset: int = 0) -> "Location":
        x, y = LOCATION_STRUCT.unpack_from(data, offset)
        return cls(x, y)

    def __repr__(self) -> str:
        if self.is_undefined():
            return "Location(undefined)"
        return f"Location({self.x}, {self.y})"
