"""Value types for Spherical Mercator coordinate transforms.

Coordinate spaces:
  - GeoPoint: WGS84 longitude/latitude in degrees
  - PixelPoint: pixel position in the tile pyramid at a caller-tracked zoom,
    or Web Mercator meters when returned by ``forward``
  - GeoBBox: west/south/east/north box, degrees or meters depending on
    the SRS the caller passes alongside it
  - TileBounds: inclusive tile index range at one zoom level
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from dataclasses import dataclass
from enum import Enum

logger = logging.getLogger(__name__)

EARTH_RADIUS = 6378137.0  # meters, spherical Mercator datum
MAX_EXTENT = 20037508.342789244  # meters, half the projected world width
MAX_LATITUDE = 85.0511287798066  # degrees, where |y| reaches MAX_EXTENT
MAX_ZOOM = 29
DEFAULT_TILE_SIZE = 256
UINT32_MAX = 2**32 - 1


class SRS(str, Enum):
    """Spatial reference selector for bbox and convert operations."""
    WGS84 = "WGS84"
    WEB_MERCATOR = "900913"

    @classmethod
    def parse(cls, value: SRS | str | None) -> SRS:
        """Resolve a selector value.

        Only "900913" selects Web Mercator. Anything else, including
        unknown strings, falls back to WGS84.
        """
        if isinstance(value, SRS):
            return value
        if value == cls.WEB_MERCATOR.value:
            return cls.WEB_MERCATOR
        if value != cls.WGS84.value:
            logger.debug("Unrecognized SRS %r, using WGS84", value)
        return cls.WGS84


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """WGS84 coordinate. Values are not range-checked."""
    lon: float  # degrees
    lat: float  # degrees


@dataclass(frozen=True, slots=True)
class PixelPoint:
    """Pixel coordinate at some zoom, or Mercator meters."""
    x: float
    y: float


@dataclass(frozen=True, slots=True)
class GeoBBox:
    """Axis-aligned bounding box in degrees or Mercator meters."""
    w: float
    s: float
    e: float
    n: float

    def corners(self) -> tuple[tuple[float, float], tuple[float, float]]:
        """(south-west, north-east) corners as (x, y) pairs."""
        return (self.w, self.s), (self.e, self.n)


@dataclass(frozen=True, slots=True)
class TileBounds:
    """Inclusive tile index range at a zoom level."""
    min_x: int
    min_y: int
    max_x: int
    max_y: int

    @property
    def width(self) -> int:
        """Number of tile columns."""
        return self.max_x - self.min_x + 1

    @property
    def height(self) -> int:
        """Number of tile rows."""
        return self.max_y - self.min_y + 1

    @property
    def count(self) -> int:
        return self.width * self.height

    def contains(self, x: int, y: int) -> bool:
        return self.min_x <= x <= self.max_x and self.min_y <= y <= self.max_y

    def __iter__(self) -> Iterator[tuple[int, int]]:
        """Yield (x, y) tile indices, row by row from min_y."""
        for y in range(self.min_y, self.max_y + 1):
            for x in range(self.min_x, self.max_x + 1):
                yield x, y
