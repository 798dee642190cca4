"""R-tree spatial index with best-first k-nearest-neighbour search.

The tree stores axis-aligned bounding boxes with an opaque payload. It backs
the collision tests of the streamline tracer (is anything closer than the
local separation?) and of circle packing, and the neighbour graph of
constellations.

Key components:
- IndexEntry: A bounding box plus payload, owned by the tree once inserted
- RTree: Bulk loading, incremental insertion, removal, range and kNN queries
- PointIndex: Point-only convenience wrapper used by the flow tracer
"""

import heapq
import itertools
import math
from collections.abc import Callable, Iterable, Iterator
from dataclasses import dataclass, field
from typing import Any

from inkflow.exceptions import SpatialIndexError

BBox = tuple[float, float, float, float]


@dataclass(slots=True, eq=False)
class IndexEntry:
    """A bounding box with an opaque payload.

    Attributes:
        min_x: Left edge
        min_y: Top edge
        max_x: Right edge
        max_y: Bottom edge
        payload: Caller data returned with query results
        seq: Insertion sequence number, assigned by the tree
    """

    min_x: float
    min_y: float
    max_x: float
    max_y: float
    payload: Any = None
    seq: int = field(default=-1, repr=False)

    @classmethod
    def point(cls, x: float, y: float, payload: Any = None) -> "IndexEntry":
        """Create a degenerate entry for a single point."""
        return cls(x, y, x, y, payload)

    @property
    def center(self) -> tuple[float, float]:
        """Center of the bounding box."""
        return ((self.min_x + self.max_x) / 2, (self.min_y + self.max_y) / 2)


class _Node:
    __slots__ = ("children", "height", "leaf", "min_x", "min_y", "max_x", "max_y")

    def __init__(self, children: list[Any], height: int = 1, leaf: bool = True) -> None:
        self.children = children
        self.height = height
        self.leaf = leaf
        self.min_x = math.inf
        self.min_y = math.inf
        self.max_x = -math.inf
        self.max_y = -math.inf


def _reset_bbox(node: Any) -> None:
    node.min_x = math.inf
    node.min_y = math.inf
    node.max_x = -math.inf
    node.max_y = -math.inf


def _extend(a: Any, b: Any) -> Any:
    a.min_x = min(a.min_x, b.min_x)
    a.min_y = min(a.min_y, b.min_y)
    a.max_x = max(a.max_x, b.max_x)
    a.max_y = max(a.max_y, b.max_y)
    return a


def _calc_bbox(node: _Node) -> None:
    _dist_bbox(node, 0, len(node.children), node)


def _dist_bbox(node: _Node, k: int, p: int, dest: _Node | None = None) -> _Node:
    if dest is None:
        dest = _Node([])
    _reset_bbox(dest)
    for i in range(k, p):
        _extend(dest, node.children[i])
    return dest


def _area(a: Any) -> float:
    return (a.max_x - a.min_x) * (a.max_y - a.min_y)


def _margin(a: Any) -> float:
    return (a.max_x - a.min_x) + (a.max_y - a.min_y)


def _enlarged_area(a: Any, b: Any) -> float:
    return (max(b.max_x, a.max_x) - min(b.min_x, a.min_x)) * (
        max(b.max_y, a.max_y) - min(b.min_y, a.min_y)
    )


def _intersection_area(a: Any, b: Any) -> float:
    min_x = max(a.min_x, b.min_x)
    min_y = max(a.min_y, b.min_y)
    max_x = min(a.max_x, b.max_x)
    max_y = min(a.max_y, b.max_y)
    return max(0.0, max_x - min_x) * max(0.0, max_y - min_y)


def _contains(a: Any, b: Any) -> bool:
    return (
        a.min_x <= b.min_x and a.min_y <= b.min_y and b.max_x <= a.max_x and b.max_y <= a.max_y
    )


def _intersects(a: Any, b: Any) -> bool:
    return (
        b.min_x <= a.max_x and b.min_y <= a.max_y and b.max_x >= a.min_x and b.max_y >= a.min_y
    )


def _axis_dist(k: float, lo: float, hi: float) -> float:
    if k < lo:
        return lo - k
    if k > hi:
        return k - hi
    return 0.0


def box_dist_sq(x: float, y: float, box: Any) -> float:
    """Squared distance from a point to a bounding box (0 inside)."""
    dx = _axis_dist(x, box.min_x, box.max_x)
    dy = _axis_dist(y, box.min_y, box.max_y)
    return dx * dx + dy * dy


class _Query:
    __slots__ = ("min_x", "min_y", "max_x", "max_y")

    def __init__(self, bbox: BBox) -> None:
        self.min_x, self.min_y, self.max_x, self.max_y = bbox


class RTree:
    """Dynamic R-tree over bounding boxes.

    Nodes hold between ``min_entries`` and ``max_entries`` children. Insertion
    descends by least enlargement and splits overflowing nodes along the axis
    with the smallest total margin, at the position with the least overlap.

    Example:
        tree = RTree()
        tree.bulk_load([IndexEntry.point(x, y) for x, y in points])
        nearest = tree.knn(10.0, 20.0, k=3)
    """

    def __init__(self, max_entries: int = 9) -> None:
        self._max_entries = max(4, max_entries)
        self._min_entries = max(2, math.ceil(self._max_entries * 0.4))
        self._seq = itertools.count()
        self._size = 0
        self._root = _Node([])

    def __len__(self) -> int:
        return self._size

    @property
    def height(self) -> int:
        """Height of the tree (1 for a single leaf)."""
        return self._root.height

    def clear(self) -> "RTree":
        """Remove every entry."""
        self._root = _Node([])
        self._size = 0
        return self

    def all(self) -> list[IndexEntry]:
        """Return every entry in the tree."""
        return list(self._iter_entries(self._root))

    def _iter_entries(self, node: _Node) -> Iterator[IndexEntry]:
        stack = [node]
        while stack:
            current = stack.pop()
            if current.leaf:
                yield from current.children
            else:
                stack.extend(current.children)

    def search(self, bbox: BBox) -> list[IndexEntry]:
        """Return all entries whose boxes intersect ``bbox``."""
        query = _Query(bbox)
        node: _Node | None = self._root
        result: list[IndexEntry] = []
        if not self._size or not _intersects(query, self._root):
            return result

        stack: list[_Node] = []
        while node is not None:
            for child in node.children:
                if not _intersects(query, child):
                    continue
                if node.leaf:
                    result.append(child)
                elif _contains(query, child):
                    result.extend(self._iter_entries(child))
                else:
                    stack.append(child)
            node = stack.pop() if stack else None
        return result

    def collides(self, bbox: BBox) -> bool:
        """Check whether any entry intersects ``bbox``."""
        query = _Query(bbox)
        if not self._size or not _intersects(query, self._root):
            return False

        stack: list[_Node] = [self._root]
        while stack:
            node = stack.pop()
            for child in node.children:
                if not _intersects(query, child):
                    continue
                if node.leaf or _contains(query, child):
                    return True
                stack.append(child)
        return False

    def insert(self, entry: IndexEntry) -> "RTree":
        """Insert one entry without rebuilding the tree."""
        entry.seq = next(self._seq)
        self._insert(entry, self._root.height - 1)
        self._size += 1
        return self

    def bulk_load(self, entries: Iterable[IndexEntry]) -> "RTree":
        """Load many entries at once using top-down packing.

        Loading into a non-empty tree builds a separate packed subtree and
        merges it at the matching level.
        """
        items = list(entries)
        if not items:
            return self

        if len(items) < self._min_entries:
            for item in items:
                self.insert(item)
            return self

        for item in items:
            item.seq = next(self._seq)

        node = self._build(items, 0, len(items) - 1, 0)

        if not self._root.children:
            self._root = node
        elif self._root.height == node.height:
            self._split_root(self._root, node)
        else:
            if self._root.height < node.height:
                self._root, node = node, self._root
            self._insert(node, self._root.height - node.height - 1)

        self._size += len(items)
        return self

    def remove(self, entry: IndexEntry) -> bool:
        """Remove an entry (matched by identity).

        Returns:
            True if the entry was found and removed
        """
        node: _Node | None = self._root
        path: list[_Node] = []
        indexes: list[int] = []
        parent: _Node | None = None
        i = 0
        going_up = False

        while node is not None or path:
            if node is None:
                node = path.pop()
                parent = path[-1] if path else None
                i = indexes.pop()
                going_up = True

            if node.leaf:
                for idx, child in enumerate(node.children):
                    if child is entry:
                        del node.children[idx]
                        path.append(node)
                        self._condense(path)
                        self._size -= 1
                        return True

            if not going_up and not node.leaf and _contains(node, entry):
                path.append(node)
                indexes.append(i)
                i = 0
                parent = node
                node = node.children[0]
            elif parent is not None:
                i += 1
                node = parent.children[i] if i < len(parent.children) else None
                going_up = False
            else:
                node = None

        return False

    def knn(
        self,
        x: float,
        y: float,
        k: int = 1,
        predicate: Callable[[IndexEntry], bool] | None = None,
        max_distance: float = math.inf,
    ) -> list[IndexEntry]:
        """Find the ``k`` entries nearest to ``(x, y)``.

        Best-first traversal over a min-heap keyed on the squared distance to
        each box. Entries are emitted as soon as they reach the head of the
        heap, so the result is exact and sorted ascending by distance. Equal
        distances resolve by insertion order.

        Args:
            x: Query X coordinate
            y: Query Y coordinate
            k: Maximum number of results
            predicate: Optional filter; rejected entries are skipped
            max_distance: Ignore anything farther than this

        Returns:
            Up to ``k`` entries, nearest first
        """
        result: list[IndexEntry] = []
        if k <= 0 or not self._size:
            return result

        max_dist_sq = max_distance * max_distance if math.isfinite(max_distance) else math.inf
        counter = itertools.count()
        queue: list[tuple[float, int, int, int, Any]] = []
        node: _Node | None = self._root

        while node is not None:
            for child in node.children:
                dist = box_dist_sq(x, y, child)
                if dist > max_dist_sq:
                    continue
                if node.leaf:
                    heapq.heappush(queue, (dist, 1, child.seq, next(counter), child))
                else:
                    heapq.heappush(queue, (dist, 0, -1, next(counter), child))

            while queue and queue[0][1] == 1:
                candidate = heapq.heappop(queue)[4]
                if predicate is None or predicate(candidate):
                    result.append(candidate)
                    if len(result) == k:
                        return result

            node = heapq.heappop(queue)[4] if queue else None

        return result

    def _build(self, items: list[IndexEntry], left: int, right: int, height: int) -> _Node:
        n = right - left + 1
        m = self._max_entries

        if n <= m:
            node = _Node(items[left : right + 1])
            _calc_bbox(node)
            return node

        if not height:
            height = math.ceil(math.log(n) / math.log(m))
            m = math.ceil(n / m ** (height - 1))

        node = _Node([], height=height, leaf=False)

        n2 = math.ceil(n / m)
        n1 = n2 * math.ceil(math.sqrt(m))

        # Sorting a slice satisfies the partial-order contract the packing needs
        items[left : right + 1] = sorted(items[left : right + 1], key=lambda e: e.min_x)

        for i in range(left, right + 1, n1):
            right2 = min(i + n1 - 1, right)
            items[i : right2 + 1] = sorted(items[i : right2 + 1], key=lambda e: e.min_y)
            for j in range(i, right2 + 1, n2):
                right3 = min(j + n2 - 1, right2)
                node.children.append(self._build(items, j, right3, height - 1))

        _calc_bbox(node)
        return node

    def _choose_subtree(self, bbox: Any, node: _Node, level: int, path: list[_Node]) -> _Node:
        while True:
            path.append(node)
            if node.leaf or len(path) - 1 == level:
                return node

            min_area = math.inf
            min_enlargement = math.inf
            target: _Node | None = None

            for child in node.children:
                area = _area(child)
                enlargement = _enlarged_area(bbox, child) - area
                if enlargement < min_enlargement:
                    min_enlargement = enlargement
                    min_area = min(area, min_area)
                    target = child
                elif enlargement == min_enlargement and area < min_area:
                    min_area = area
                    target = child

            if target is None:
                if not node.children:
                    raise SpatialIndexError("Internal node without children")
                target = node.children[0]
            node = target

    def _insert(self, item: Any, level: int) -> None:
        path: list[_Node] = []
        node = self._choose_subtree(item, self._root, level, path)
        node.children.append(item)
        _extend(node, item)

        while level >= 0:
            if len(path[level].children) > self._max_entries:
                self._split(path, level)
                level -= 1
            else:
                break

        for i in range(level, -1, -1):
            _extend(path[i], item)

    def _split(self, path: list[_Node], level: int) -> None:
        node = path[level]
        total = len(node.children)
        m = self._min_entries

        self._choose_split_axis(node, m, total)
        split_index = self._choose_split_index(node, m, total)

        new_node = _Node(node.children[split_index:], height=node.height, leaf=node.leaf)
        node.children = node.children[:split_index]
        _calc_bbox(node)
        _calc_bbox(new_node)

        if level:
            path[level - 1].children.append(new_node)
        else:
            self._split_root(node, new_node)

    def _split_root(self, node: _Node, new_node: _Node) -> None:
        self._root = _Node([node, new_node], height=node.height + 1, leaf=False)
        _calc_bbox(self._root)

    def _choose_split_index(self, node: _Node, m: int, total: int) -> int:
        index: int | None = None
        min_overlap = math.inf
        min_area = math.inf

        for i in range(m, total - m + 1):
            bbox1 = _dist_bbox(node, 0, i)
            bbox2 = _dist_bbox(node, i, total)
            overlap = _intersection_area(bbox1, bbox2)
            area = _area(bbox1) + _area(bbox2)

            if overlap < min_overlap:
                min_overlap = overlap
                index = i
                min_area = min(area, min_area)
            elif overlap == min_overlap and area < min_area:
                min_area = area
                index = i

        return index if index is not None else total - m

    def _choose_split_axis(self, node: _Node, m: int, total: int) -> None:
        x_margin = self._all_dist_margin(node, m, total, lambda e: e.min_x)
        y_margin = self._all_dist_margin(node, m, total, lambda e: e.min_y)

        # Children are left sorted by y; re-sort when x is the better axis
        if x_margin < y_margin:
            node.children.sort(key=lambda e: e.min_x)

    def _all_dist_margin(
        self, node: _Node, m: int, total: int, key: Callable[[Any], float]
    ) -> float:
        node.children.sort(key=key)

        left = _dist_bbox(node, 0, m)
        right = _dist_bbox(node, total - m, total)
        margin = _margin(left) + _margin(right)

        for i in range(m, total - m):
            _extend(left, node.children[i])
            margin += _margin(left)

        for i in range(total - m - 1, m - 1, -1):
            _extend(right, node.children[i])
            margin += _margin(right)

        return margin

    def _condense(self, path: list[_Node]) -> None:
        for i in range(len(path) - 1, -1, -1):
            if not path[i].children:
                if i > 0:
                    siblings = path[i - 1].children
                    for idx, sibling in enumerate(siblings):
                        if sibling is path[i]:
                            del siblings[idx]
                            break
                else:
                    self.clear()
            else:
                _calc_bbox(path[i])


class PointIndex:
    """Point-only wrapper over :class:`RTree` for separation tests."""

    def __init__(self, max_entries: int = 9) -> None:
        self._tree = RTree(max_entries=max_entries)

    def __len__(self) -> int:
        return len(self._tree)

    @property
    def tree(self) -> RTree:
        """Underlying R-tree."""
        return self._tree

    def add_point(self, x: float, y: float, payload: Any = None) -> IndexEntry:
        """Insert a single point."""
        entry = IndexEntry.point(x, y, payload)
        self._tree.insert(entry)
        return entry

    def add_points(self, points: Iterable[tuple[float, float]], payload: Any = None) -> None:
        """Insert many points."""
        for x, y in points:
            self._tree.insert(IndexEntry.point(x, y, payload))

    def nearest(
        self,
        x: float,
        y: float,
        predicate: Callable[[IndexEntry], bool] | None = None,
    ) -> tuple[float, IndexEntry | None]:
        """Distance to and entry of the nearest point.

        Returns:
            ``(inf, None)`` when the index is empty or nothing matches
        """
        found = self._tree.knn(x, y, 1, predicate)
        if not found:
            return math.inf, None
        entry = found[0]
        return math.hypot(entry.min_x - x, entry.min_y - y), entry

    def any_within(self, x: float, y: float, radius: float) -> bool:
        """Check whether any point lies strictly closer than ``radius``."""
        found = self._tree.knn(x, y, 1, max_distance=radius)
        if not found:
            return False
        entry = found[0]
        return math.hypot(entry.min_x - x, entry.min_y - y) < radius
