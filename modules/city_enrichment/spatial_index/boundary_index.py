"""Boundary Index

In-memory index of city boundaries keyed by composite administrative key.
Built once by the boundary loader through ``BoundaryIndexBuilder`` and
read-only afterwards, so enrichment workers share it without locking.
"""

import logging
from types import MappingProxyType
from typing import Dict, Iterator, Mapping, Optional, Tuple

from shapely.strtree import STRtree

from ..models.geographic import AdministrativeKey, BoundaryPolygon, GeographicPoint

logger = logging.getLogger(__name__)


class BoundaryIndexBuilder:
    """Mutable staging area filled during a boundary load."""

    def __init__(self):
        self._entries: Dict[str, BoundaryPolygon] = {}
        self.overwritten = 0

    def add(self, key: str, polygon: BoundaryPolygon) -> None:
        """Insert a boundary; an existing identical key is overwritten."""
        if key in self._entries:
            self.overwritten += 1
            logger.debug(f"Overwriting boundary for duplicate key '{key}'")
        self._entries[key] = polygon

    def __len__(self) -> int:
        return len(self._entries)

    def build(self, use_spatial_tree: bool = True) -> "BoundaryIndex":
        return BoundaryIndex(self._entries, use_spatial_tree=use_spatial_tree)


class BoundaryIndex:
    """Read-only point-in-polygon lookup over city boundaries.

    Lookups return the first matching key in insertion order. Overlapping
    or adjacent boundaries can both contain a point; which one was inserted
    first depends on the source file, so the winner among them is not a
    stable contract.

    With ``use_spatial_tree`` an STRtree narrows candidates by bounding box
    and exact intersection. The lowest matching insertion position is then
    chosen, which gives the same answer as the linear scan.
    """

    def __init__(self, entries: Mapping[str, BoundaryPolygon], use_spatial_tree: bool = True):
        self._keys: Tuple[str, ...] = tuple(entries.keys())
        self._polygons: Tuple[BoundaryPolygon, ...] = tuple(entries.values())
        self._lookup = MappingProxyType(dict(zip(self._keys, self._polygons)))
        self._tree: Optional[STRtree] = None
        if use_spatial_tree and self._polygons:
            self._tree = STRtree([p.geometry for p in self._polygons])

    @classmethod
    def empty(cls) -> "BoundaryIndex":
        return cls({})

    @property
    def uses_spatial_tree(self) -> bool:
        return self._tree is not None

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, key: object) -> bool:
        return key in self._lookup

    def contains_key(self, key: str) -> bool:
        return key in self._lookup

    def __iter__(self) -> Iterator[str]:
        return iter(self._keys)

    def keys(self) -> Tuple[str, ...]:
        return self._keys

    def get(self, key: str) -> Optional[BoundaryPolygon]:
        return self._lookup.get(key)

    def items(self):
        return self._lookup.items()

    def find_containing_key(self, point: GeographicPoint) -> Optional[str]:
        """Return the key of the first boundary containing ``point``, or None."""
        if self._tree is not None:
            hits = self._tree.query(point.to_shapely(), predicate="intersects")
            if len(hits) == 0:
                return None
            return self._keys[int(min(hits))]

        for key, polygon in zip(self._keys, self._polygons):
            if polygon.contains_point(point):
                return key
        return None

    def resolve(self, point: GeographicPoint) -> Optional[AdministrativeKey]:
        """Like ``find_containing_key`` but split into administrative fields.

        Raises:
            InvalidAdministrativeKeyError: If the matched key is not a full
                seven-field key (legacy multi-geometry entries)
        """
        key = self.find_containing_key(point)
        if key is None:
            return None
        return AdministrativeKey.from_key_string(key)
