"""
osmindex Map Factory
====================
Name-based registry of Map implementations.

One factory exists per (id_type, value_type) pair. Implementations
register under a short name ("sparse_mem_map"), and callers create a map
from a config string:
    "sparse_mem_map"          → default construction
    "sparse_mem_map,<order>"  → B-Tree order passed through
"""

import re
from typing import Callable, Dict, List, Tuple

from indexing.map import Map
from storage.types import DataType

MapConstructor = Callable[..., Map]

_INT_OPTION = re.compile(r"-?[0-9]+")


class MapFactoryError(Exception):
    """Raised for unknown or malformed map type configs."""
    pass


class MapFactory:
    """Registry of map constructors for one (id_type, value_type) pair."""

    def __init__(self, id_type: DataType, value_type: DataType):
        self.id_type = id_type
        self.value_type = value_type
        self._callbacks: Dict[str, MapConstructor] = {}

    def register_map(self, name: str, constructor: MapConstructor) -> bool:
        """
        Register a constructor under name. The constructor is called as
        constructor(id_type, value_type, *options).
        Returns False if the name was already registered (first one wins).
        """
        if name in self._callbacks:
            return False
        self._callbacks[name] = constructor
        return True

    def has_map_type(self, name: str) -> bool:
        return name in self._callbacks

    def map_types(self) -> List[str]:
        return sorted(self._callbacks)

    def create_map(self, config: str) -> Map:
        """
        Create a map from "name[,option...]".
        Integer-looking options are passed as ints.
        """
        parts = [p.strip() for p in config.split(",")]
        name = parts[0]
        if not name:
            raise MapFactoryError("Need non-empty map type name")

        constructor = self._callbacks.get(name)
        if constructor is None:
            raise MapFactoryError(
                f"Unknown map type '{name}'. "
                f"Available: {self.map_types()}"
            )

        try:
            options = [int(p) if _INT_OPTION.fullmatch(p) else p for p in parts[1:]]
            return constructor(self.id_type, self.value_type, *options)
        except (TypeError, ValueError) as e:
            raise MapFactoryError(f"Invalid options for map type '{name}': {e}") from e


_factories: Dict[Tuple[DataType, DataType], MapFactory] = {}


def get_map_factory(id_type: DataType = DataType.UINT64,
                    value_type: DataType = DataType.LOCATION) -> MapFactory:
    """Return the shared factory for an (id_type, value_type) pair."""
    key = (id_type, value_type)
    factory = _factories.get(key)
    if factory is None:
        factory = MapFactory(id_type, value_type)
        _factories[key] = factory
    return factory


def register_map(id_type: DataType, value_type: DataType,
                 name: str, constructor: MapConstructor) -> bool:
    return get_map_factory(id_type, value_type).register_map(name, constructor)


def create_map(config: str, id_type: DataType = DataType.UINT64,
               value_type: DataType = DataType.LOCATION) -> Map:
    return get_map_factory(id_type, value_type).create_map(config)
