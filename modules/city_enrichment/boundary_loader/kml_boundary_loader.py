"""KML Boundary Loader

Reads Brazilian municipality boundaries from a KML document into a
``BoundaryIndex``. Each ``Placemark`` carries the city name, IBGE attributes
in ``ExtendedData/SchemaData/SimpleData`` and either a ``Polygon`` or a
``MultiGeometry`` of polygons.

Placemark-level problems are collected rather than raised, so one broken
feature never blocks the others. When any were collected the loader raises
``AggregatedImportError`` after the index is built; the error carries the
usable partial index.
"""

import logging
import time
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from lxml import etree
from pydantic import BaseModel, Field

from fleetgeo.exceptions import FleetGeoConfigurationError, FleetGeoValidationError
from fleetgeo.utils import log_performance

from ..exceptions import AggregatedImportError, BoundaryFileError
from ..models.brazil import get_state
from ..models.geographic import (
    AdministrativeKey,
    BoundaryPolygon,
    build_polygon,
    make_point,
)
from ..models.settings import BoundarySettings
from ..spatial_index import BoundaryIndex, BoundaryIndexBuilder

logger = logging.getLogger(__name__)

BoundarySource = Union[str, Path, BinaryIO]

ATTR_CITY_CODE = "GEOCODIG_M"
ATTR_STATE_CODE = "SIGLA"
ATTR_MESO_CODE = "MESORREGIÃO"
ATTR_MESO_NAME = "NOME_MESO"
ATTR_MICRO_CODE = "MICRORREGI"
ATTR_MICRO_NAME = "NOME_MICRO"

# Shapefile exports truncate field names to 10 bytes, and some tools then
# mis-decode the trailing byte.
MESO_CODE_ALIASES = frozenset({ATTR_MESO_CODE, "MESORREGIÃ", "MESORREGIã"})

# A ring needs 3 distinct vertices plus the closing one.
MIN_COORDINATE_TOKENS = 4


class PlacemarkAttributes(BaseModel):
    """Values extracted from one placemark before geometry is considered."""

    city_name: Optional[str] = None
    city_code: Optional[str] = None
    state_code: Optional[str] = None
    state_name: Optional[str] = None
    meso_region_code: Optional[str] = None
    meso_region_name: Optional[str] = None
    micro_region_code: Optional[str] = None
    micro_region_name: Optional[str] = None

    def missing_key_fields(self) -> List[str]:
        """Attribute names that must be present before the feature is keyed."""
        required = {
            "name": self.city_name,
            ATTR_STATE_CODE: self.state_code,
            ATTR_MESO_CODE: self.meso_region_code,
            ATTR_MESO_NAME: self.meso_region_name,
            ATTR_MICRO_CODE: self.micro_region_code,
            ATTR_MICRO_NAME: self.micro_region_name,
        }
        return [name for name, value in required.items() if value is None]

    def to_key(self) -> AdministrativeKey:
        missing = self.missing_key_fields()
        if missing:
            raise FleetGeoValidationError(
                f"Missing required attributes: {', '.join(missing)}"
            )
        return AdministrativeKey(
            city_name=self.city_name,
            state_name=self.state_name,
            state_code=self.state_code,
            meso_region_code=self.meso_region_code,
            meso_region_name=self.meso_region_name,
            micro_region_code=self.micro_region_code,
            micro_region_name=self.micro_region_name,
        )


class LoadStatistics(BaseModel):
    """Counters for one boundary load."""

    placemarks: int = Field(0, ge=0)
    indexed: int = Field(0, ge=0, description="Index entries written, counting overwrites")
    skipped_without_geometry: int = Field(0, ge=0)
    overwritten: int = Field(0, ge=0)
    errors: List[str] = Field(default_factory=list)
    duration_seconds: float = Field(0.0, ge=0)

    def get_summary(self) -> str:
        return (f"{self.placemarks} placemarks, {self.indexed} boundaries indexed, "
                f"{self.skipped_without_geometry} without geometry, "
                f"{self.overwritten} duplicate keys overwritten, {len(self.errors)} errors "
                f"in {self.duration_seconds:.1f}s")


def _inner_text(element) -> str:
    return "".join(element.itertext())


def parse_coordinates(text: Optional[str]) -> Optional[BoundaryPolygon]:
    """Turn a KML ``coordinates`` blob into a boundary polygon.

    Returns None when the blob holds too few tuples to form a ring.

    Raises:
        FleetGeoValidationError: If a tuple is not ``lon,lat[,alt]`` numbers
        InvalidPolygonError: If the ring is not closed
    """
    if text is None or not text.strip():
        return None

    tokens = text.split()
    if len(tokens) < MIN_COORDINATE_TOKENS:
        return None

    points = []
    for token in tokens:
        fields = token.split(",")
        if len(fields) < 2:
            raise FleetGeoValidationError(f"Invalid coordinate tuple '{token}'")
        try:
            points.append(make_point(float(fields[0]), float(fields[1])))
        except ValueError:
            raise FleetGeoValidationError(f"Invalid coordinate tuple '{token}'") from None

    return build_polygon(points)


def polygon_from_element(polygon_element) -> Optional[BoundaryPolygon]:
    """Build the outer ring of a KML ``Polygon`` element."""
    if polygon_element is None:
        return None
    coordinates = next(polygon_element.iter("{*}coordinates"), None)
    if coordinates is None:
        return None
    return parse_coordinates(_inner_text(coordinates))


class KMLBoundaryLoader:
    """Loads KML city boundaries into an immutable BoundaryIndex."""

    def __init__(self, settings: Optional[BoundarySettings] = None):
        self.settings = settings or BoundarySettings()
        self.statistics = LoadStatistics()

    @log_performance
    def load(self, source: Optional[BoundarySource] = None) -> BoundaryIndex:
        """Parse the KML document and build the boundary index.

        Args:
            source: Path or binary stream; defaults to the configured kml_path

        Returns:
            The populated BoundaryIndex

        Raises:
            FleetGeoConfigurationError: If no source is configured or the file is missing
            BoundaryFileError: If the document is not well-formed XML
            AggregatedImportError: If some placemarks failed; ``error.index``
                holds every boundary that did load
        """
        start = time.perf_counter()
        self.statistics = LoadStatistics()
        root = self._parse_document(self._resolve_source(source))

        builder = BoundaryIndexBuilder()
        for placemark in root.iter("{*}Placemark"):
            self.statistics.placemarks += 1
            attributes = PlacemarkAttributes()
            try:
                self._load_placemark(placemark, attributes, builder)
            except Exception as e:
                city_name = attributes.city_name
                message = f"{city_name} - {e}" if city_name and city_name.strip() else str(e)
                self.statistics.errors.append(message)
                logger.warning(f"Failed to load placemark: {message}")

        self.statistics.overwritten = builder.overwritten
        index = builder.build(use_spatial_tree=self.settings.use_spatial_tree)
        self.statistics.duration_seconds = time.perf_counter() - start
        logger.info(f"Boundary load completed: {self.statistics.get_summary()}")

        if self.statistics.errors:
            raise AggregatedImportError(self.statistics.errors, index=index)
        return index

    def _resolve_source(self, source: Optional[BoundarySource]) -> BoundarySource:
        if source is None:
            source = self.settings.kml_path
        if source is None:
            raise FleetGeoConfigurationError("No KML boundary file configured")
        if isinstance(source, (str, Path)):
            path = Path(source)
            if not path.exists():
                raise FleetGeoConfigurationError(f"KML boundary file not found: {path}")
            logger.info(f"Loading city boundaries from {path}")
            return str(path)
        return source

    @staticmethod
    def _parse_document(source: BoundarySource):
        parser = etree.XMLParser(huge_tree=True, resolve_entities=False, no_network=True)
        try:
            return etree.parse(source, parser).getroot()
        except etree.XMLSyntaxError as e:
            raise BoundaryFileError(f"Malformed KML document: {e}") from e
        except OSError as e:
            raise BoundaryFileError(f"Cannot read KML document: {e}") from e

    def _load_placemark(self, placemark, attributes: PlacemarkAttributes,
                        builder: BoundaryIndexBuilder) -> None:
        self._read_attributes(placemark, attributes)

        polygons: List[BoundaryPolygon] = []
        single = polygon_from_element(placemark.find("{*}Polygon"))
        if single is not None:
            polygons.append(single)

        multi_members: List[BoundaryPolygon] = []
        multi_geometry = placemark.find("{*}MultiGeometry")
        if multi_geometry is not None:
            for member in multi_geometry.iter("{*}Polygon"):
                polygon = polygon_from_element(member)
                if polygon is not None:
                    multi_members.append(polygon)

        if not polygons and not multi_members:
            self.statistics.skipped_without_geometry += 1
            logger.debug(f"Placemark '{attributes.city_name}' has no usable geometry")
            return

        if not self.settings.legacy_multigeometry_keys:
            key = attributes.to_key()
            builder.add(key.to_key_string(), BoundaryPolygon.combine(polygons + multi_members))
            self.statistics.indexed += 1
            return

        # The placemark's own polygon goes in first under the full key. Multi-geometry
        # members follow, keyed by city name alone, each replacing the previous.
        if polygons:
            builder.add(attributes.to_key().to_key_string(), polygons[0])
            self.statistics.indexed += 1
        if attributes.city_name is not None:
            for polygon in multi_members:
                builder.add(attributes.city_name, polygon)
                self.statistics.indexed += 1

    @staticmethod
    def _read_attributes(placemark, attributes: PlacemarkAttributes) -> None:
        name_element = placemark.find("{*}name")
        if name_element is not None:
            attributes.city_name = _inner_text(name_element)

        extended_data = placemark.find("{*}ExtendedData")
        if extended_data is None:
            return

        for simple_data in extended_data.iter("{*}SimpleData"):
            attribute_name = simple_data.get("name")
            if attribute_name is None:
                continue
            value = _inner_text(simple_data)
            if attribute_name == ATTR_CITY_CODE:
                attributes.city_code = value
            elif attribute_name == ATTR_STATE_CODE:
                attributes.state_code = value
                attributes.state_name = get_state(value)
            elif attribute_name in MESO_CODE_ALIASES:
                attributes.meso_region_code = value
            elif attribute_name == ATTR_MESO_NAME:
                attributes.meso_region_name = value
            elif attribute_name == ATTR_MICRO_CODE:
                attributes.micro_region_code = value
            elif attribute_name == ATTR_MICRO_NAME:
                attributes.micro_region_name = value
