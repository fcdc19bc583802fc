"""
osmindex B-Tree
===============
In-memory B+ Tree mapping unique integer keys to values.
This is the ordered container behind SparseMemMap.

Node types:
  - LEAF: stores sorted keys with a parallel list of values.
    Linked via right_sibling for ordered iteration.
  - INTERNAL: stores sorted separator keys with child node references.
    Invariant: left subtree < K, right subtree >= K.

Keys are unique: inserting an existing key overwrites its value in place
(no split, no count change).

Concurrency: single-writer, no locking.
Delete: not supported.
"""

from bisect import bisect_left, bisect_right
from typing import Any, Iterator, List, Optional, Tuple

# ─── Constants ──────────────────────────────────────────────────────────────

NODE_TYPE_LEAF = 0
NODE_TYPE_INTERNAL = 1

# Max keys per node before it splits
DEFAULT_ORDER = 64
MIN_ORDER = 3

_MISSING = object()


# ─── Node ──────────────────────────────────────────────────────────────────

class BTreeNode:
    """In-memory representation of a B-Tree node (leaf or internal)."""
    __slots__ = ('node_type', 'keys', 'values', 'children', 'right_sibling')

    def __init__(self, node_type: int):
        self.node_type = node_type
        self.keys: List[int] = []
        self.values: List[Any] = []                  # leaf only: parallel to keys
        self.children: List["BTreeNode"] = []        # internal only
        self.right_sibling: Optional["BTreeNode"] = None  # leaf only

    @property
    def key_count(self) -> int:
        return len(self.keys)

    @property
    def is_leaf(self) -> bool:
        return self.node_type == NODE_TYPE_LEAF

    def find_key_pos(self, key: int) -> int:
        """Find position of first key >= key."""
        return bisect_left(self.keys, key)

    def find_child_index(self, key: int) -> int:
        """Which child of an internal node holds key. Left < K, right >= K."""
        return bisect_right(self.keys, key)


# ─── B-Tree ────────────────────────────────────────────────────────────────

class BTree:
    """
    In-memory B+ Tree with unique keys.

    Usage:
        bt = BTree()
        bt.insert(25, "a")
        bt.search(25)          # "a"
        list(bt.items())       # [(25, "a")]
    """

    def __init__(self, order: int = DEFAULT_ORDER):
        if order < MIN_ORDER:
            raise ValueError(f"B-Tree order must be at least {MIN_ORDER}, got {order}")
        self._order = order
        self._root = BTreeNode(NODE_TYPE_LEAF)
        self._entry_count = 0
        self._tree_height = 1

    @property
    def order(self) -> int:
        return self._order

    @property
    def entry_count(self) -> int:
        return self._entry_count

    @property
    def height(self) -> int:
        return self._tree_height

    def __len__(self) -> int:
        return self._entry_count

    def __contains__(self, key: int) -> bool:
        return self.find(key, _MISSING) is not _MISSING

    def __iter__(self) -> Iterator[int]:
        for key, _ in self.items():
            yield key

    def clear(self) -> None:
        """Drop every node; the tree becomes a single empty leaf."""
        self._root = BTreeNode(NODE_TYPE_LEAF)
        self._entry_count = 0
        self._tree_height = 1

    # ─── Search ─────────────────────────────────────────────────────

    def search(self, key: int) -> Any:
        """Exact-match search. Raises KeyError if the key is absent."""
        value = self.find(key, _MISSING)
        if value is _MISSING:
            raise KeyError(key)
        return value

    def find(self, key: int, default: Any = None) -> Any:
        """Exact-match search returning default if the key is absent."""
        leaf = self._find_leaf(key)
        pos = leaf.find_key_pos(key)
        if pos < leaf.key_count and leaf.keys[pos] == key:
            return leaf.values[pos]
        return default

    def items(self) -> Iterator[Tuple[int, Any]]:
        """Yield all (key, value) pairs in ascending key order."""
        leaf: Optional[BTreeNode] = self._find_leftmost_leaf()
        while leaf is not None:
            yield from zip(leaf.keys, leaf.values)
            leaf = leaf.right_sibling

    # ─── Insert ─────────────────────────────────────────────────────

    def insert(self, key: int, value: Any) -> bool:
        """
        Insert or overwrite a (key, value) pair.
        Handles node splits and root splits automatically.
        Returns True if the key was new, False if it was overwritten.
        """
        inserted, split = self._insert_recursive(self._root, key, value)
        if inserted:
            self._entry_count += 1

        if split is not None:
            # Root was split: create new root
            split_key, new_child = split
            new_root = BTreeNode(NODE_TYPE_INTERNAL)
            new_root.keys.append(split_key)
            new_root.children.append(self._root)
            new_root.children.append(new_child)
            self._root = new_root
            self._tree_height += 1

        return inserted

    def _insert_recursive(self, node: BTreeNode, key: int, value: Any
                          ) -> Tuple[bool, Optional[Tuple[int, BTreeNode]]]:
        """
        Recursive insert. Returns (inserted, split) where split is None or
        (promoted_key, new_right_node) if the node was split.
        """
        if node.is_leaf:
            return self._insert_into_leaf(node, key, value)

        child_idx = node.find_child_index(key)
        inserted, split = self._insert_recursive(node.children[child_idx], key, value)
        if split is None:
            return inserted, None

        # Child was split: insert promoted key into this internal node
        promoted_key, new_child = split
        node.keys.insert(child_idx, promoted_key)
        node.children.insert(child_idx + 1, new_child)
        if node.key_count > self._order:
            return inserted, self._split_internal(node)
        return inserted, None

    def _insert_into_leaf(self, node: BTreeNode, key: int, value: Any
                          ) -> Tuple[bool, Optional[Tuple[int, BTreeNode]]]:
        pos = node.find_key_pos(key)
        if pos < node.key_count and node.keys[pos] == key:
            node.values[pos] = value
            return False, None

        node.keys.insert(pos, key)
        node.values.insert(pos, value)
        if node.key_count > self._order:
            return True, self._split_leaf(node)
        return True, None

    # ─── Split ──────────────────────────────────────────────────────

    def _split_leaf(self, node: BTreeNode) -> Tuple[int, BTreeNode]:
        """
        Split a leaf node at the median.
        Median key is COPIED UP to parent (leaf retains it).
        """
        mid = node.key_count // 2

        new_leaf = BTreeNode(NODE_TYPE_LEAF)
        new_leaf.keys = node.keys[mid:]
        new_leaf.values = node.values[mid:]
        # Maintain sibling chain: new.right = old.right; old.right = new
        new_leaf.right_sibling = node.right_sibling

        node.keys = node.keys[:mid]
        node.values = node.values[:mid]
        node.right_sibling = new_leaf

        return new_leaf.keys[0], new_leaf

    def _split_internal(self, node: BTreeNode) -> Tuple[int, BTreeNode]:
        """
        Split an internal node at the median.
        Median key is PUSHED UP to parent (removed from this node).

        Before split: keys=[k0,k1,k2,k3,k4], children=[c0,c1,c2,c3,c4,c5]
        Mid=2: promoted=k2
        Left:  keys=[k0,k1],    children=[c0,c1,c2]
        Right: keys=[k3,k4],    children=[c3,c4,c5]
        """
        mid = node.key_count // 2
        promoted_key = node.keys[mid]

        new_internal = BTreeNode(NODE_TYPE_INTERNAL)
        new_internal.keys = node.keys[mid + 1:]
        new_internal.children = node.children[mid + 1:]

        node.keys = node.keys[:mid]
        node.children = node.children[:mid + 1]

        return promoted_key, new_internal

    # ─── Navigation ─────────────────────────────────────────────────

    def _find_leaf(self, key: int) -> BTreeNode:
        """Navigate from root to the leaf node that should contain the key."""
        node = self._root
        while not node.is_leaf:
            node = node.children[node.find_child_index(key)]
        return node

    def _find_leftmost_leaf(self) -> BTreeNode:
        node = self._root
        while not node.is_leaf:
            node = node.children[0]
        return node

    # ─── Debug / Verification ───────────────────────────────────────

    def verify_structure(self) -> List[str]:
        """
        Verify structural integrity.
        Returns list of issues found (empty = healthy).
        """
        issues: List[str] = []
        leaf_depths: set = set()
        self._verify_node(self._root, None, None, issues, 1, leaf_depths)
        if len(leaf_depths) > 1:
            issues.append(f"Leaves at different depths: {sorted(leaf_depths)}")
        self._verify_leaf_chain(issues)
        return issues

    def _verify_node(self, node: BTreeNode, min_key: Optional[int],
                     max_key: Optional[int], issues: List[str],
                     depth: int, leaf_depths: set) -> None:
        for i in range(1, node.key_count):
            if node.keys[i] <= node.keys[i - 1]:
                issues.append(f"Depth {depth}: keys not strictly sorted at position {i}")

        for k in node.keys:
            if min_key is not None and k < min_key:
                issues.append(f"Depth {depth}: key {k} below parent separator")
            if max_key is not None and k >= max_key:
                issues.append(f"Depth {depth}: key {k} at/above parent separator")

        if node.key_count > self._order:
            issues.append(f"Depth {depth}: node overfull ({node.key_count} keys)")

        if node.is_leaf:
            leaf_depths.add(depth)
            if len(node.values) != node.key_count:
                issues.append(f"Depth {depth}: values count mismatch")
            return

        if len(node.children) != node.key_count + 1:
            issues.append(f"Depth {depth}: children count mismatch")
            return

        for i, child in enumerate(node.children):
            lo = node.keys[i - 1] if i > 0 else min_key
            hi = node.keys[i] if i < node.key_count else max_key
            self._verify_node(child, lo, hi, issues, depth + 1, leaf_depths)

    def _verify_leaf_chain(self, issues: List[str]) -> None:
        """Verify the leaf sibling chain is ordered and matches entry_count."""
        leaf: Optional[BTreeNode] = self._find_leftmost_leaf()
        prev_max_key: Optional[int] = None
        visited = set()
        count = 0

        while leaf is not None:
            if id(leaf) in visited:
                issues.append("Leaf chain cycle")
                break
            visited.add(id(leaf))

            if leaf.keys and prev_max_key is not None and leaf.keys[0] <= prev_max_key:
                issues.append("Leaf chain ordering broken")
            if leaf.keys:
                prev_max_key = leaf.keys[-1]
            count += leaf.key_count
            leaf = leaf.right_sibling

        if count != self._entry_count:
            issues.append(f"Leaf chain holds {count} entries, expected {self._entry_count}")
