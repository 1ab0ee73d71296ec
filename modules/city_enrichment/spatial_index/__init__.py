"""Spatial Index

Immutable point-in-polygon index over the loaded city boundaries.
"""

from .boundary_index import BoundaryIndex, BoundaryIndexBuilder

__all__ = ['BoundaryIndex', 'BoundaryIndexBuilder']
