"""Spherical Mercator (EPSG:900913 / EPSG:3857) projection engine.

Converts between WGS84 lon/lat, tile pyramid pixel coordinates, tile
indices and Web Mercator meters.

Pixel space at zoom z is ``tile_size * 2^z`` pixels wide, origin at the
NW corner, x increasing eastward and y increasing southward. Tile indices
follow the XYZ (Google) scheme unless ``tms_style`` is set, in which case
y=0 is the southernmost row.
"""

from __future__ import annotations

import logging
import math

from mercator.config import MercatorConfig
from mercator.types import (
    DEFAULT_TILE_SIZE,
    EARTH_RADIUS,
    MAX_EXTENT,
    MAX_ZOOM,
    SRS,
    UINT32_MAX,
    GeoBBox,
    GeoPoint,
    PixelPoint,
    TileBounds,
)

logger = logging.getLogger(__name__)

SIN_LAT_LIMIT = 0.9999  # keeps the Mercator log term finite at the poles


# math raises on inputs where IEEE 754 yields inf/nan; keep the IEEE result.

def _sin(value: float) -> float:
    return math.nan if math.isinf(value) else math.sin(value)


def _tan(value: float) -> float:
    return math.nan if math.isinf(value) else math.tan(value)


def _exp(value: float) -> float:
    try:
        return math.exp(value)
    except OverflowError:
        return math.inf


def _ln(value: float) -> float:
    if value > 0 or math.isnan(value):
        return math.log(value)
    if value == 0:
        return -math.inf
    return math.nan


def _pow2(exponent: float) -> float:
    try:
        return 2.0 ** exponent
    except OverflowError:
        return math.inf


def _round_half_away(value: float) -> float:
    """Round to the nearest whole number, ties away from zero."""
    if not math.isfinite(value):
        return value
    whole = float(math.trunc(value))
    if abs(value - whole) >= 0.5:
        whole += math.copysign(1.0, value)
    return whole


def _is_fractional(zoom: float) -> bool:
    return not float(zoom).is_integer()


def _tile_index(quotient: float) -> int:
    """Floor a pixel/tile quotient, saturated into the uint32 index range."""
    if math.isnan(quotient) or quotient < 0:
        return 0
    if quotient >= UINT32_MAX:
        return UINT32_MAX
    return math.floor(quotient)


class SphericalMercator:
    """Projection engine with per-zoom scale tables.

    The tables are built once and never mutated, so one instance can be
    shared between threads.

    Usage:
        sm = SphericalMercator()
        sm.px(GeoPoint(lon=-179.0, lat=85.0), 9)       # PixelPoint(x=364.0, y=215.0)
        sm.bbox(0, 0, 1, tms_style=True)                 # GeoBBox(w=-180.0, ...)
        sm.xyz(GeoBBox(-180, -85.05, 0, 0), 1, tms_style=True)
    """

    def __init__(self, tile_size: int = DEFAULT_TILE_SIZE, antimeridian: bool = False):
        if isinstance(tile_size, bool) or not isinstance(tile_size, int) or tile_size <= 0:
            raise ValueError(f"Tile size must be a positive integer, got {tile_size!r}")
        self._tile_size = tile_size
        self._antimeridian = antimeridian
        self._expansion = 2.0 if antimeridian else 1.0

        bc, cc, zc, ac = [], [], [], []
        # Repeated doubling, not tile_size * 2**z: the last bit matters for
        # whole-zoom rounding.
        size = float(tile_size)
        for _ in range(MAX_ZOOM + 1):
            bc.append(size / 360.0)
            cc.append(size / (2.0 * math.pi))
            zc.append(size / 2.0)
            ac.append(size)
            size *= 2.0
        self._bc = tuple(bc)
        self._cc = tuple(cc)
        self._zc = tuple(zc)
        self._ac = tuple(ac)

        logger.debug("Scale tables built: tile_size=%d antimeridian=%s levels=%d",
                     tile_size, antimeridian, len(self._ac))

    @classmethod
    def from_config(cls, config: MercatorConfig) -> SphericalMercator:
        return cls(tile_size=config.tile_size, antimeridian=config.antimeridian)

    @property
    def tile_size(self) -> int:
        return self._tile_size

    @property
    def antimeridian(self) -> bool:
        return self._antimeridian

    @property
    def expansion(self) -> float:
        """Multiplier on the world width allowed for pixel x."""
        return self._expansion

    def _level(self, zoom: float) -> int:
        """Table index for a whole-number zoom. Negative zoom selects level 0."""
        level = int(zoom) if zoom > 0 else 0
        if level > MAX_ZOOM:
            raise ValueError(f"Zoom {zoom} exceeds maximum table zoom {MAX_ZOOM}")
        return level

    def tile_count(self, zoom: int) -> int:
        """Tiles per axis at a zoom level (2^zoom), within the uint32 range."""
        if zoom < 0:
            raise ValueError(f"Tile zoom must be non-negative, got {zoom}")
        n = 2 ** int(zoom)
        if n > UINT32_MAX:
            raise OverflowError(f"2^{zoom} tiles per axis exceeds the uint32 index range")
        return n

    def _flip_y(self, y: int, zoom: int) -> int:
        """Convert a row index between the XYZ and TMS schemes."""
        last = self.tile_count(zoom) - 1
        if y > last:
            raise OverflowError(f"Row {y} is outside the {last + 1} rows at zoom {zoom}")
        return last - y

    def resolution(self, zoom: float) -> float:
        """Web Mercator meters per pixel at the equator."""
        return 2.0 * MAX_EXTENT / (self._tile_size * _pow2(zoom))

    def px(self, point: GeoPoint, zoom: float) -> PixelPoint:
        """Convert lon/lat to pixel coordinates at a zoom level.

        Whole-number zooms read the scale tables and round to whole pixels;
        fractional zooms compute the scale directly and are not rounded.
        """
        f = _sin(math.radians(point.lat))
        if f > SIN_LAT_LIMIT:
            f = SIN_LAT_LIMIT
        elif f < -SIN_LAT_LIMIT:
            f = -SIN_LAT_LIMIT

        if _is_fractional(zoom):
            size = self._tile_size * _pow2(zoom)
            d = size / 2.0
            bc = size / 360.0
            cc = size / (2.0 * math.pi)
            ac = size
            x = d + point.lon * bc
            y = d + 0.5 * _ln((1.0 + f) / (1.0 - f)) * -cc
        else:
            level = self._level(zoom)
            d = self._zc[level]
            ac = self._ac[level]
            x = _round_half_away(d + point.lon * self._bc[level])
            y = _round_half_away(d + 0.5 * _ln((1.0 + f) / (1.0 - f)) * -self._cc[level])

        # Upper clamp only; negative pixel values pass through.
        if x > ac * self._expansion:
            x = ac * self._expansion
        if y > ac:
            y = ac
        return PixelPoint(x=x, y=y)

    def ll(self, point: PixelPoint, zoom: float) -> GeoPoint:
        """Convert pixel coordinates at a zoom level back to lon/lat.

        Never rounds and never clamps.
        """
        if _is_fractional(zoom):
            size = self._tile_size * _pow2(zoom)
            bc = size / 360.0
            cc = size / (2.0 * math.pi)
            zc = size / 2.0
        else:
            level = self._level(zoom)
            bc = self._bc[level]
            cc = self._cc[level]
            zc = self._zc[level]
        g = (point.y - zc) / -cc
        lon = (point.x - zc) / bc
        lat = math.degrees(2.0 * math.atan(_exp(g)) - 0.5 * math.pi)
        return GeoPoint(lon=lon, lat=lat)

    def bbox(
        self,
        x: int,
        y: int,
        zoom: int,
        tms_style: bool = False,
        srs: SRS | str = SRS.WGS84,
    ) -> GeoBBox:
        """Bounding box of tile (x, y, zoom), in WGS84 or Web Mercator."""
        if tms_style:
            y = self._flip_y(y, zoom)
        size = self._tile_size
        lower_left = self.ll(PixelPoint(x=float(x * size), y=float((y + 1) * size)), zoom)
        upper_right = self.ll(PixelPoint(x=float((x + 1) * size), y=float(y * size)), zoom)
        box = GeoBBox(w=lower_left.lon, s=lower_left.lat, e=upper_right.lon, n=upper_right.lat)
        if SRS.parse(srs) is SRS.WEB_MERCATOR:
            return self.convert(box, SRS.WEB_MERCATOR)
        return box

    def xyz(
        self,
        bbox: GeoBBox,
        zoom: int,
        tms_style: bool = False,
        srs: SRS | str = SRS.WGS84,
    ) -> TileBounds:
        """Range of tiles at a zoom level intersecting a bounding box."""
        if SRS.parse(srs) is SRS.WEB_MERCATOR:
            bbox = self.convert(bbox, SRS.WGS84)
        (w, s), (e, n) = bbox.corners()
        px_ll = self.px(GeoPoint(lon=w, lat=s), zoom)
        px_ur = self.px(GeoPoint(lon=e, lat=n), zoom)

        size = float(self._tile_size)
        # One pixel off the upper corner so an edge exactly on a tile
        # boundary does not pull in the neighbouring tile.
        x0 = _tile_index(px_ll.x / size)
        x1 = _tile_index((px_ur.x - 1.0) / size)
        y0 = _tile_index(px_ur.y / size)
        y1 = _tile_index((px_ll.y - 1.0) / size)

        # Rounding in px can leave x0 > x1 or y0 > y1 for narrow or
        # boundary-hugging boxes; always reorder rather than trust input order.
        min_y, max_y = min(y0, y1), max(y0, y1)
        if tms_style:
            # px clamps y to the world height, which floors to one row past
            # the last for boxes on or below the south edge.
            last = self.tile_count(zoom) - 1
            min_y, max_y = min(min_y, last), min(max_y, last)
            min_y, max_y = self._flip_y(max_y, zoom), self._flip_y(min_y, zoom)
        return TileBounds(min_x=min(x0, x1), min_y=min_y, max_x=max(x0, x1), max_y=max_y)

    def convert(self, bbox: GeoBBox, to: SRS | str = SRS.WEB_MERCATOR) -> GeoBBox:
        """Reproject a bbox corner by corner. Any target but 900913 means WGS84."""
        (w, s), (e, n) = bbox.corners()
        if SRS.parse(to) is SRS.WEB_MERCATOR:
            sw = self.forward(GeoPoint(lon=w, lat=s))
            ne = self.forward(GeoPoint(lon=e, lat=n))
            return GeoBBox(w=sw.x, s=sw.y, e=ne.x, n=ne.y)
        sw = self.inverse(PixelPoint(x=w, y=s))
        ne = self.inverse(PixelPoint(x=e, y=n))
        return GeoBBox(w=sw.lon, s=sw.lat, e=ne.lon, n=ne.lat)

    def forward(self, point: GeoPoint) -> PixelPoint:
        """WGS84 lon/lat to Web Mercator meters, clamped to the world extent."""
        x = math.radians(EARTH_RADIUS * point.lon)
        y = EARTH_RADIUS * _ln(_tan(math.pi * 0.25 + math.radians(0.5 * point.lat)))
        if x > MAX_EXTENT:
            x = MAX_EXTENT
        if x < -MAX_EXTENT:
            x = -MAX_EXTENT
        if y > MAX_EXTENT:
            y = MAX_EXTENT
        if y < -MAX_EXTENT:
            y = -MAX_EXTENT
        return PixelPoint(x=x, y=y)

    def inverse(self, point: PixelPoint) -> GeoPoint:
        """Web Mercator meters to WGS84 lon/lat. No clamping."""
        lon = math.degrees(point.x) / EARTH_RADIUS
        lat = math.degrees(math.pi * 0.5 - 2.0 * math.atan(_exp(-point.y / EARTH_RADIUS)))
        return GeoPoint(lon=lon, lat=lat)
