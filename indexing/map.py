"""
osmindex Map Contract
=====================
Abstract interface shared by all id → value index implementations.

An implementation is chosen at construction time (see factory.py); code
that uses an index only depends on this contract.

Two lookups over the same data:
  - get(id)          raises NotFoundError when the id is absent
  - get_noexcept(id) returns the value type's empty value instead
Callers pick one depending on whether "absent" is exceptional or expected.
"""

from abc import ABC, abstractmethod
from typing import Any

from storage.io import Sink
from storage.types import DataType, is_id_type, validate


class NotFoundError(KeyError):
    """Raised by Map.get() when no entry exists for an id."""

    def __init__(self, id_: int):
        super().__init__(id_)
        self.id = id_

    def __str__(self) -> str:
        return f"id {self.id} not found"


class NotSupportedError(Exception):
    """Raised when an implementation does not offer an operation."""
    pass


class Map(ABC):
    """
    Base class for id → value indexes.

    Subclasses set id_type and value_type (DataType members) and implement
    the abstract operations.
    """

    def __init__(self, id_type: DataType = DataType.UINT64,
                 value_type: DataType = DataType.LOCATION):
        if not is_id_type(id_type):
            raise ValueError(f"{id_type.value} cannot be used as an id type")
        self.id_type = id_type
        self.value_type = value_type

    # ─── Contract ───────────────────────────────────────────────────

    @abstractmethod
    def set(self, id_: int, value: Any) -> None:
        """Insert or overwrite the value for id_."""

    @abstractmethod
    def get(self, id_: int) -> Any:
        """Return the value for id_, raise NotFoundError if absent."""

    @abstractmethod
    def get_noexcept(self, id_: int) -> Any:
        """Return the value for id_, or the empty value if absent."""

    @abstractmethod
    def size(self) -> int:
        """Number of entries stored."""

    @abstractmethod
    def used_memory(self) -> int:
        """Approximate number of bytes used by the entries."""

    @abstractmethod
    def clear(self) -> None:
        """Remove all entries."""

    @abstractmethod
    def dump_as_list(self, sink: Sink) -> None:
        """Write all (id, value) records to sink in ascending id order."""

    # ─── Optional operations ────────────────────────────────────────

    def reserve(self, size: int) -> None:
        """Hint the expected number of entries. Ignored by default."""

    def sort(self) -> None:
        """Bring entries into id order. No-op for self-ordering maps."""

    def dump_as_array(self, sink: Sink) -> None:
        raise NotSupportedError(
            f"{type(self).__name__} can not be dumped as array"
        )

    # ─── Helpers ────────────────────────────────────────────────────

    def _check_entry(self, id_: int, value: Any) -> None:
        """Reject ids and values the export format cannot represent."""
        if not validate(id_, self.id_type):
            raise ValueError(f"Invalid {self.id_type.value} id: {id_!r}")
        if not validate(value, self.value_type):
            raise ValueError(f"Invalid {self.value_type.value} value: {value!r}")

    def __len__(self) -> int:
        return self.size()

    def __getitem__(self, id_: int) -> Any:
        return self.get(id_)

    def __setitem__(self, id_: int, value: Any) -> None:
        self.set(id_, value)
