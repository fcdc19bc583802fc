"""
osmindex Sparse Memory Map
==========================
Index implementation backed by an in-memory ordered tree (BTree).

It uses rather a lot of memory per entry, but needs no up-front sizing
and keeps ids in order at all times, so it suits small or very sparse
id ranges. Dumps come out sorted without a separate sort step.

Concurrency: single-writer, no locking.
"""

from typing import Any, Iterator, Tuple

from indexing.btree import BTree, DEFAULT_ORDER
from indexing.map import Map, NotFoundError
from storage.io import Sink, write_to_sink
from storage.serializer import pack_records
from storage.types import DataType, empty_value, fixed_size

# ─── Memory estimate ────────────────────────────────────────────────────────

POINTER_SIZE = 8

# Per-entry bookkeeping of a balanced binary tree node: left, right and
# parent links plus the colour/balance field padded to a pointer.
NODE_OVERHEAD = 4 * POINTER_SIZE

_MISSING = object()


class SparseMemMap(Map):
    """
    Ordered id → value map.

    Usage:
        m = SparseMemMap(DataType.UINT64, DataType.LOCATION)
        m.set(17, Location(10, 20))
        m.get(17)            # Location(10, 20)
        m.get_noexcept(18)   # Location(undefined)
        with open("nodes.bin", "wb") as f:
            m.dump_as_list(f)
    """

    def __init__(self, id_type: DataType = DataType.UINT64,
                 value_type: DataType = DataType.LOCATION,
                 order: int = DEFAULT_ORDER):
        super().__init__(id_type, value_type)
        # Rough estimate of the memory needed for each element, not derived
        # from the actual container: id + value + NODE_OVERHEAD.
        self.element_size = fixed_size(id_type) + fixed_size(value_type) + NODE_OVERHEAD
        self._elements = BTree(order)

    def set(self, id_: int, value: Any) -> None:
        self._check_entry(id_, value)
        self._elements.insert(id_, value)

    def get(self, id_: int) -> Any:
        value = self._elements.find(id_, _MISSING)
        if value is _MISSING:
            raise NotFoundError(id_)
        return value

    def get_noexcept(self, id_: int) -> Any:
        value = self._elements.find(id_, _MISSING)
        if value is _MISSING:
            return empty_value(self.value_type)
        return value

    def size(self) -> int:
        return len(self._elements)

    def used_memory(self) -> int:
        """
        Approximate bytes used: size() * element_size.
        Ignores allocator overhead, fragmentation and interpreter object
        headers; use it to compare index implementations, not to measure
        the process.
        """
        return self.element_size * len(self._elements)

    def clear(self) -> None:
        self._elements.clear()

    def dump_as_list(self, sink: Sink) -> None:
        """
        Write all entries as fixed-width (id, value) records in ascending
        id order, as one buffer. Raises WriteFailureError if the sink does
        not accept every byte.
        """
        data = pack_records(self._elements.items(), self.id_type, self.value_type)
        write_to_sink(sink, data)

    def items(self) -> Iterator[Tuple[int, Any]]:
        """(id, value) pairs in ascending id order."""
        return self._elements.items()

    def __iter__(self) -> Iterator[Tuple[int, Any]]:
        return self._elements.items()

    def __contains__(self, id_: int) -> bool:
        return id_ in self._elements

    def __repr__(self) -> str:
        return (f"SparseMemMap({self.id_type.value} -> {self.value_type.value}, "
                f"size={self.size()})")
