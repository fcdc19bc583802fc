"""
osmindex Indexing Tests
=======================
Tests for the in-memory B-Tree, SparseMemMap (lookups, overwrite,
memory estimate, clear, ordered dump) and the map factory.
"""

import io
import os
import random
import shutil
import struct
import tempfile
import pytest

from storage.location import Location
from storage.types import DataType
from storage.serializer import pack_records, unpack_records
from storage.io import WriteFailureError

from indexing.btree import BTree
from indexing.map import Map, NotFoundError, NotSupportedError
from indexing.sparse_mem_map import SparseMemMap, NODE_OVERHEAD
from indexing.factory import MapFactory, MapFactoryError, get_map_factory, create_map


# ═══════════════════════════════════════════════════════════════════
# Fixtures
# ═══════════════════════════════════════════════════════════════════

@pytest.fixture
def tmpdir():
    d = tempfile.mkdtemp(prefix="osmindex_idx_")
    yield d
    shutil.rmtree(d, ignore_errors=True)

@pytest.fixture
def locmap():
    return SparseMemMap(DataType.UINT64, DataType.LOCATION)


X = Location.from_degrees(1.0, 2.0)
Y = Location.from_degrees(-3.5, 40.25)
Z = Location.from_degrees(179.9, -89.9)


def _dump_to_file(m, path):
    """Helper: dump through a raw file descriptor and read the bytes back."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, 0o644)
    try:
        m.dump_as_list(fd)
    finally:
        os.close(fd)
    with open(path, "rb") as f:
        return f.read()


# ═══════════════════════════════════════════════════════════════════
# B-Tree Tests
# ═══════════════════════════════════════════════════════════════════

class TestBTree:

    def test_insert_and_search(self):
        bt = BTree()
        assert bt.insert(10, "a") is True
        assert bt.insert(20, "b") is True
        assert bt.search(10) == "a"
        assert bt.search(20) == "b"
        assert bt.find(99) is None
        assert bt.find(99, "dflt") == "dflt"
        with pytest.raises(KeyError):
            bt.search(99)

    def test_overwrite_keeps_single_entry(self):
        bt = BTree()
        bt.insert(5, "old")
        assert bt.insert(5, "new") is False
        assert bt.search(5) == "new"
        assert len(bt) == 1

    def test_none_value_is_found(self):
        bt = BTree()
        bt.insert(1, None)
        assert 1 in bt
        assert 2 not in bt

    def test_split_and_structure(self):
        """Insert enough keys in random order to trigger many splits."""
        bt = BTree(order=4)
        keys = list(range(500))
        random.Random(7).shuffle(keys)
        for k in keys:
            bt.insert(k, k * 10)

        assert bt.entry_count == 500
        assert bt.height > 2
        issues = bt.verify_structure()
        assert issues == [], f"Structure issues: {issues}"

        for k in range(500):
            assert bt.search(k) == k * 10

    def test_overwrite_after_splits(self):
        bt = BTree(order=3)
        for k in range(100):
            bt.insert(k, "x")
        for k in range(0, 100, 3):
            assert bt.insert(k, "y") is False
        assert len(bt) == 100
        assert bt.verify_structure() == []
        assert bt.search(99) == "y"
        assert bt.search(98) == "x"

    def test_items_ascending(self):
        bt = BTree(order=3)
        for k in [50, 10, 30, 20, 40, 2**63, 0]:
            bt.insert(k, str(k))
        assert [k for k, _ in bt.items()] == [0, 10, 20, 30, 40, 50, 2**63]
        assert list(bt) == [0, 10, 20, 30, 40, 50, 2**63]

    def test_clear(self):
        bt = BTree(order=3)
        for i in range(50):
            bt.insert(i, i)
        bt.clear()
        assert len(bt) == 0
        assert bt.height == 1
        assert list(bt.items()) == []
        assert bt.verify_structure() == []
        bt.insert(3, "again")
        assert bt.search(3) == "again"

    def test_order_too_small(self):
        with pytest.raises(ValueError, match="order"):
            BTree(order=2)


# ═══════════════════════════════════════════════════════════════════
# SparseMemMap Tests
# ═══════════════════════════════════════════════════════════════════

class TestSparseMemMap:

    def test_is_a_map(self, locmap):
        assert isinstance(locmap, Map)
        assert locmap.size() == 0
        assert len(locmap) == 0

    def test_overwrite_scenario(self, locmap, tmpdir):
        locmap.set(10, X)
        locmap.set(5, Y)
        locmap.set(10, Z)

        assert locmap.size() == 2
        assert locmap.get(10) == Z
        assert locmap.get(5) == Y
        with pytest.raises(NotFoundError) as exc_info:
            locmap.get(7)
        assert exc_info.value.id == 7

        data = _dump_to_file(locmap, os.path.join(tmpdir, "scenario.bin"))
        assert data == struct.pack("<Qii", 5, Y.x, Y.y) + struct.pack("<Qii", 10, Z.x, Z.y)

    def test_last_write_wins(self, locmap):
        rng = random.Random(42)
        expected = {}
        for _ in range(2000):
            id_ = rng.randrange(300)
            loc = Location(rng.randrange(-10**9, 10**9), rng.randrange(-10**8, 10**8))
            locmap.set(id_, loc)
            expected[id_] = loc

        assert locmap.size() == len(expected)
        for id_, loc in expected.items():
            assert locmap.get(id_) == loc
            assert locmap.get_noexcept(id_) == loc

    def test_missing_id(self, locmap):
        locmap.set(1, X)
        with pytest.raises(NotFoundError) as exc_info:
            locmap.get(123456789)
        assert exc_info.value.id == 123456789
        assert str(exc_info.value) == "id 123456789 not found"
        # NotFoundError is a KeyError
        with pytest.raises(KeyError):
            locmap[2]

    def test_get_noexcept_returns_empty_value(self, locmap):
        loc = locmap.get_noexcept(42)
        assert loc == Location()
        assert loc.is_undefined()

        ints = SparseMemMap(DataType.UINT64, DataType.UINT64)
        assert ints.get_noexcept(42) == 0

    def test_size_counts_distinct_ids(self, locmap):
        for i in range(100):
            locmap.set(i * 7, X)
        assert locmap.size() == 100
        for i in range(0, 100, 2):
            locmap.set(i * 7, Y)
        assert locmap.size() == 100

    def test_clear(self, locmap):
        for i in range(1, 11):
            locmap.set(i, X)
        locmap.clear()
        assert locmap.size() == 0
        assert locmap.used_memory() == 0
        for i in range(1, 11):
            with pytest.raises(NotFoundError):
                locmap.get(i)
        locmap.set(3, Y)
        assert locmap.get(3) == Y

    def test_used_memory(self, locmap):
        assert locmap.used_memory() == 0
        assert locmap.element_size == 8 + 8 + NODE_OVERHEAD

        previous = 0
        for i in range(50):
            locmap.set(i, X)
            used = locmap.used_memory()
            assert used >= previous
            previous = used
        assert locmap.used_memory() == 50 * locmap.element_size

        # Overwrites do not change the estimate
        locmap.set(0, Y)
        assert locmap.used_memory() == 50 * locmap.element_size

    def test_used_memory_depends_on_types(self):
        m = SparseMemMap(DataType.UINT32, DataType.UINT32)
        m.set(1, 1)
        assert m.used_memory() == 4 + 4 + NODE_OVERHEAD

    def test_dump_ascending_regardless_of_insert_order(self, locmap, tmpdir):
        a, b, c = Location(1, 1), Location(2, 2), Location(3, 3)
        locmap.set(3, a)
        locmap.set(1, b)
        locmap.set(2, c)

        data = _dump_to_file(locmap, os.path.join(tmpdir, "abc.bin"))
        expected = pack_records([(1, b), (2, c), (3, a)],
                                DataType.UINT64, DataType.LOCATION)
        assert data == expected
        assert len(data) == 3 * 16

    def test_dump_many_to_file_object(self, tmpdir):
        m = SparseMemMap(DataType.UINT64, DataType.UINT64, order=8)
        ids = list(range(1000, 0, -1))
        random.Random(1).shuffle(ids)
        for i in ids:
            m.set(i, i * 2)

        path = os.path.join(tmpdir, "many.bin")
        with open(path, "wb") as f:
            m.dump_as_list(f)
        with open(path, "rb") as f:
            pairs = unpack_records(f.read(), DataType.UINT64, DataType.UINT64)

        assert pairs == [(i, i * 2) for i in range(1, 1001)]

    def test_dump_empty(self, locmap, tmpdir):
        assert _dump_to_file(locmap, os.path.join(tmpdir, "empty.bin")) == b""

    def test_dump_write_failure_propagates(self, locmap, tmpdir):
        locmap.set(1, X)
        path = os.path.join(tmpdir, "ro.bin")
        with open(path, "wb"):
            pass
        fd = os.open(path, os.O_RDONLY)
        try:
            with pytest.raises(WriteFailureError):
                locmap.dump_as_list(fd)
        finally:
            os.close(fd)

    def test_dump_as_array_not_supported(self, locmap):
        with pytest.raises(NotSupportedError):
            locmap.dump_as_array(0)

    def test_reserve_and_sort_are_noops(self, locmap):
        locmap.set(2, X)
        locmap.reserve(1000)
        locmap.sort()
        assert locmap.size() == 1
        assert locmap.get(2) == X

    def test_rejects_unrepresentable_entries(self, locmap):
        with pytest.raises(ValueError, match="id"):
            locmap.set(-1, X)
        with pytest.raises(ValueError, match="id"):
            locmap.set(2**64, X)
        with pytest.raises(ValueError, match="value"):
            locmap.set(1, (1.0, 2.0))
        with pytest.raises(ValueError, match="value"):
            locmap.set(1, Location(1.5, 2))
        with pytest.raises(ValueError, match="value"):
            locmap.set(1, Location(False, 2))
        assert locmap.size() == 0
        locmap.dump_as_list(io.BytesIO())

    def test_rejects_signed_id_type(self):
        with pytest.raises(ValueError, match="id type"):
            SparseMemMap(DataType.INT64, DataType.LOCATION)

    def test_mapping_protocol(self, locmap):
        locmap[9] = X
        locmap[4] = Y
        assert locmap[9] == X
        assert 4 in locmap
        assert 5 not in locmap
        assert list(locmap) == [(4, Y), (9, X)]
        assert list(locmap.items()) == [(4, Y), (9, X)]
        assert "size=2" in repr(locmap)


# ═══════════════════════════════════════════════════════════════════
# Factory Tests
# ═══════════════════════════════════════════════════════════════════

class TestMapFactory:

    def test_default_registrations(self):
        import indexing  # noqa: F401  (registers built-in map types)
        factory = get_map_factory(DataType.UINT64, DataType.LOCATION)
        assert factory.has_map_type("sparse_mem_map")
        assert "sparse_mem_map" in factory.map_types()
        assert get_map_factory(DataType.UINT64, DataType.UINT64).has_map_type("sparse_mem_map")

    def test_shared_factory(self):
        assert get_map_factory() is get_map_factory(DataType.UINT64, DataType.LOCATION)

    def test_create_map(self):
        import indexing  # noqa: F401
        m = create_map("sparse_mem_map")
        assert isinstance(m, SparseMemMap)
        assert m.id_type == DataType.UINT64
        assert m.value_type == DataType.LOCATION
        m.set(1, X)
        assert m.get(1) == X

    def test_create_map_with_order(self):
        import indexing  # noqa: F401
        m = create_map("sparse_mem_map, 5", DataType.UINT64, DataType.UINT64)
        assert m._elements.order == 5

    def test_create_map_bad_option(self):
        import indexing  # noqa: F401
        with pytest.raises(MapFactoryError, match="Invalid options"):
            create_map("sparse_mem_map,1")
        with pytest.raises(MapFactoryError, match="Invalid options"):
            create_map("sparse_mem_map,--5")
        with pytest.raises(MapFactoryError, match="Invalid options"):
            create_map("sparse_mem_map,\u00b2")

    def test_unknown_and_empty_names(self):
        factory = MapFactory(DataType.UINT64, DataType.LOCATION)
        factory.register_map("sparse_mem_map", SparseMemMap)
        with pytest.raises(MapFactoryError, match="Unknown map type 'dense_mmap_array'"):
            factory.create_map("dense_mmap_array")
        with pytest.raises(MapFactoryError, match="non-empty"):
            factory.create_map("")

    def test_first_registration_wins(self):
        factory = MapFactory(DataType.UINT32, DataType.UINT32)
        assert factory.register_map("m", SparseMemMap) is True
        assert factory.register_map("m", BTree) is False
        assert isinstance(factory.create_map("m"), SparseMemMap)
        assert factory.map_types() == ["m"]
