"""Geographic Value Models

Points, boundary polygons and the composite administrative key used to label
each city boundary. Coordinates are always (longitude, latitude), i.e. the
(x, y) order of WKT and KML.
"""

import math
from typing import ClassVar, Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel, ConfigDict, Field
from shapely.geometry import Point, Polygon
from shapely.geometry.base import BaseGeometry
from shapely.ops import unary_union
from shapely.validation import make_valid

from ..exceptions import InvalidAdministrativeKeyError, InvalidPolygonError

COORDINATE_TOLERANCE = 0.0001

# 3 distinct vertices + the closing vertex
MIN_POLYGON_VERTICES = 4

KEY_SEPARATOR = ","


class GeographicPoint(BaseModel):
    """A longitude/latitude pair compared with an absolute tolerance.

    Two points are equal when both coordinate deltas are strictly below
    ``COORDINATE_TOLERANCE``. The relation is symmetric but not transitive:
    a chain of near-equal points can link two points that are not equal.

    Hashing snaps each coordinate onto a grid of tolerance-sized cells.
    Equal points on opposite sides of a grid line hash differently, so
    points must not be relied on as dictionary keys for tolerant lookups.
    """

    model_config = ConfigDict(frozen=True)

    longitude: float = Field(..., description="Longitude in decimal degrees (x)")
    latitude: float = Field(..., description="Latitude in decimal degrees (y)")

    def __eq__(self, other) -> bool:
        if not isinstance(other, GeographicPoint):
            return NotImplemented
        return points_equal(self, other)

    def __ne__(self, other) -> bool:
        result = self.__eq__(other)
        if result is NotImplemented:
            return result
        return not result

    def __hash__(self) -> int:
        return hash((
            math.floor(self.longitude / COORDINATE_TOLERANCE),
            math.floor(self.latitude / COORDINATE_TOLERANCE),
        ))

    def to_shapely(self) -> Point:
        return Point(self.longitude, self.latitude)

    def to_wkt(self) -> str:
        return f"POINT({self.longitude} {self.latitude})"


def make_point(longitude: float, latitude: float) -> GeographicPoint:
    """Build a point without any range validation."""
    return GeographicPoint(longitude=longitude, latitude=latitude)


def points_equal(a: GeographicPoint, b: GeographicPoint,
                 tolerance: float = COORDINATE_TOLERANCE) -> bool:
    """Tolerant coordinate equality on both axes."""
    return (abs(a.latitude - b.latitude) < tolerance
            and abs(a.longitude - b.longitude) < tolerance)


class BoundaryPolygon:
    """A closed city boundary backed by a shapely geometry.

    Containment uses ``intersects`` so a point lying exactly on the
    boundary counts as inside.
    """

    __slots__ = ("geometry",)

    def __init__(self, geometry: BaseGeometry):
        self.geometry = geometry

    @property
    def bounds(self):
        return self.geometry.bounds

    @property
    def geom_type(self) -> str:
        return self.geometry.geom_type

    def contains_point(self, point: GeographicPoint) -> bool:
        return self.geometry.intersects(point.to_shapely())

    @classmethod
    def combine(cls, polygons: Sequence["BoundaryPolygon"]) -> "BoundaryPolygon":
        """Merge the members of a multi-geometry placemark into one boundary."""
        if not polygons:
            raise InvalidPolygonError("Cannot combine an empty list of polygons")
        if len(polygons) == 1:
            return polygons[0]
        return cls(unary_union([p.geometry for p in polygons]))

    def __repr__(self) -> str:
        return f"BoundaryPolygon({self.geom_type}, bounds={self.bounds})"


def build_polygon(points: Iterable[GeographicPoint]) -> BoundaryPolygon:
    """Build a boundary polygon from a closed ring of points.

    Raises:
        InvalidPolygonError: If the ring is empty, shorter than four points,
            or its first and last points differ beyond the tolerance
    """
    ring: List[GeographicPoint] = list(points)
    if not ring:
        raise InvalidPolygonError("Cannot build a polygon from an empty ring")

    first, last = ring[0], ring[-1]
    if not points_equal(first, last):
        raise InvalidPolygonError(
            "First and last point do not match. This is not a valid polygon",
            {"first": first.to_wkt(), "last": last.to_wkt()},
        )

    if len(ring) < MIN_POLYGON_VERTICES:
        raise InvalidPolygonError(
            f"A polygon ring needs at least {MIN_POLYGON_VERTICES} points, got {len(ring)}"
        )

    geometry = Polygon([(p.longitude, p.latitude) for p in ring])
    if not geometry.is_valid:
        geometry = make_valid(geometry)

    return BoundaryPolygon(geometry)


def point_in_polygon(point: GeographicPoint, polygon: BoundaryPolygon) -> bool:
    """Boundary-inclusive containment test."""
    return polygon.contains_point(point)


class AdministrativeKey(BaseModel):
    """Composite administrative identity of a city boundary.

    Serialized as the seven fields joined with commas, in declaration
    order. Field values are assumed to contain no commas.
    """

    model_config = ConfigDict(frozen=True)

    city_name: str
    state_name: str
    state_code: str
    meso_region_code: str
    meso_region_name: str
    micro_region_code: str
    micro_region_name: str

    FIELD_ORDER: ClassVar[Tuple[str, ...]] = (
        "city_name",
        "state_name",
        "state_code",
        "meso_region_code",
        "meso_region_name",
        "micro_region_code",
        "micro_region_name",
    )

    def to_key_string(self) -> str:
        return KEY_SEPARATOR.join(getattr(self, name) for name in self.FIELD_ORDER)

    @classmethod
    def from_key_string(cls, key: Optional[str]) -> "AdministrativeKey":
        """Split a serialized key back into its seven fields.

        Raises:
            InvalidAdministrativeKeyError: If the key does not have seven fields
        """
        if key is None:
            raise InvalidAdministrativeKeyError("Administrative key is missing")
        parts = key.split(KEY_SEPARATOR)
        if len(parts) != len(cls.FIELD_ORDER):
            raise InvalidAdministrativeKeyError(
                f"Administrative key must have {len(cls.FIELD_ORDER)} fields, got {len(parts)}",
                {"key": key},
            )
        return cls(**dict(zip(cls.FIELD_ORDER, parts)))
