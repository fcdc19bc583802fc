"""
osmindex Indexing Module
========================
In-memory id → value indexes.

Components:
  - map: abstract Map contract and its errors
  - btree: in-memory B+ Tree (ordered container)
  - sparse_mem_map: Map backed by the B+ Tree
  - factory: name-based selection of Map implementations

Importing this package registers "sparse_mem_map" for the node location
(UINT64 → LOCATION) and generic (UINT64 → UINT64) factories.
"""

from indexing.map import Map, NotFoundError, NotSupportedError
from indexing.btree import BTree
from indexing.sparse_mem_map import SparseMemMap
from indexing.factory import (
    MapFactory, MapFactoryError, get_map_factory, register_map, create_map,
)
from storage.types import DataType

for _value_type in (DataType.LOCATION, DataType.UINT64):
    register_map(DataType.UINT64, _value_type, "sparse_mem_map", SparseMemMap)

__all__ = [
    "Map", "NotFoundError", "NotSupportedError",
    "BTree", "SparseMemMap",
    "MapFactory", "MapFactoryError", "get_map_factory", "register_map", "create_map",
]
