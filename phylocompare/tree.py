from __future__ import annotations

from collections import Counter
from typing import Dict, Iterator, List, Optional, Sequence, Tuple

import numpy as np
from numpy.typing import NDArray

from phylocompare.exceptions import DuplicateLeafLabel, InvalidTree


class Node:
    """
    Tree node stored in a `Tree` arena.

    Parent and children are positions in the arena rather than object
    references, so a node never owns another node.
    """

    __slots__ = ("index", "parent", "children", "name", "length")

    def __init__(
        self,
        index: int,
        parent: Optional[int] = None,
        children: Optional[List[int]] = None,
        name: str = "",
        length: Optional[float] = None,
    ):
        self.index = index
        self.parent = parent
        self.children = list(children) if children is not None else []
        self.name = name
        self.length = length

    def is_leaf(self) -> bool:
        return not self.children

    def __repr__(self) -> str:
        return f"Node({self.index}, '{self.name}')"


class Tree:
    """
    Immutable phylogenetic tree backed by an arena of nodes.

    The lowest-common-ancestor table (Euler tour + sparse table) and the
    root-to-node path lengths are computed once at construction, so
    patristic distance queries are O(1) afterwards.
    """

    __slots__ = (
        "_nodes",
        "root",
        "_leaf_by_label",
        "_root_distance",
        "_euler",
        "_first_occurrence",
        "_sparse",
        "_log_table",
        "_node_depth",
    )

    def __init__(self, nodes: Sequence[Node], root: int = 0):
        if not nodes:
            raise InvalidTree("Tree has no nodes")
        self._nodes: Tuple[Node, ...] = tuple(nodes)
        self.root = root
        self._validate_links()
        self._leaf_by_label: Dict[str, int] = self._collect_leaves()
        self._root_distance: List[float] = [0.0] * len(self._nodes)
        self._node_depth: List[int] = [0] * len(self._nodes)
        self._euler: List[int] = []
        self._first_occurrence: List[int] = [0] * len(self._nodes)
        self._preprocess_lca()

    # ------------------------------------------------------------------------
    # Construction helpers
    # ------------------------------------------------------------------------

    @classmethod
    def from_parents(
        cls,
        parents: Sequence[Optional[int]],
        names: Sequence[str],
        lengths: Sequence[Optional[float]],
    ) -> "Tree":
        """Build a tree from parallel parent/name/length columns."""
        if not (len(parents) == len(names) == len(lengths)):
            raise InvalidTree("Node columns have different lengths")
        nodes = [
            Node(i, parent=parent, name=name, length=length)
            for i, (parent, name, length) in enumerate(zip(parents, names, lengths))
        ]
        roots = [node.index for node in nodes if node.parent is None]
        if len(roots) != 1:
            raise InvalidTree(f"Tree must have exactly one root, found {len(roots)}")
        for node in nodes:
            if node.parent is not None:
                if not 0 <= node.parent < len(nodes):
                    raise InvalidTree(f"Node {node.index} has unknown parent {node.parent}")
                nodes[node.parent].children.append(node.index)
        return cls(nodes, root=roots[0])

    def _validate_links(self) -> None:
        if not 0 <= self.root < len(self._nodes):
            raise InvalidTree(f"Root index {self.root} is outside the tree")
        if self._nodes[self.root].parent is not None:
            raise InvalidTree("Root node has a parent")
        seen = [False] * len(self._nodes)
        stack = [self.root]
        while stack:
            index = stack.pop()
            if seen[index]:
                raise InvalidTree(f"Node {index} is reachable twice")
            seen[index] = True
            for child in self._nodes[index].children:
                if self._nodes[child].parent != index:
                    raise InvalidTree(f"Node {child} does not point back to {index}")
                stack.append(child)
        if not all(seen):
            raise InvalidTree("Tree has nodes unreachable from the root")
        for node in self._nodes:
            if node.length is not None and node.length < 0:
                raise InvalidTree(
                    f"Negative branch length {node.length} on node '{node.name}'"
                )

    def _collect_leaves(self) -> Dict[str, int]:
        leaves = [node for node in self._nodes if node.is_leaf()]
        unlabeled = [node.index for node in leaves if not node.name]
        if unlabeled:
            raise InvalidTree(f"{len(unlabeled)} leaves have no label")
        counts = Counter(node.name for node in leaves)
        duplicates = [name for name, count in counts.items() if count > 1]
        if duplicates:
            raise DuplicateLeafLabel(duplicates)
        return {node.name: node.index for node in leaves}

    def _preprocess_lca(self) -> None:
        # Iterative Euler tour; recursion would hit the limit on deep caterpillars
        stack: List[Tuple[int, int]] = [(self.root, 0)]
        while stack:
            index, child_pos = stack.pop()
            node = self._nodes[index]
            if child_pos == 0:
                self._first_occurrence[index] = len(self._euler)
                if node.parent is not None:
                    self._root_distance[index] = self._root_distance[node.parent] + (
                        node.length or 0.0
                    )
                    self._node_depth[index] = self._node_depth[node.parent] + 1
            self._euler.append(index)
            if child_pos < len(node.children):
                stack.append((index, child_pos + 1))
                stack.append((node.children[child_pos], 0))

        n = len(self._euler)
        log_table = [0] * (n + 1)
        for i in range(2, n + 1):
            log_table[i] = log_table[i // 2] + 1
        levels = log_table[n] + 1
        sparse = [list(range(n))]
        for j in range(1, levels):
            previous = sparse[j - 1]
            half = 1 << (j - 1)
            row = []
            for i in range(n - (1 << j) + 1):
                left, right = previous[i], previous[i + half]
                row.append(left if self._euler_depth(left) <= self._euler_depth(right) else right)
            sparse.append(row)
        self._sparse: List[List[int]] = sparse
        self._log_table: List[int] = log_table

    def _euler_depth(self, position: int) -> int:
        return self._node_depth[self._euler[position]]

    # ------------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------------

    @property
    def nodes(self) -> Tuple[Node, ...]:
        return self._nodes

    def __len__(self) -> int:
        return len(self._nodes)

    def __getitem__(self, index: int) -> Node:
        return self._nodes[index]

    @property
    def leaf_labels(self) -> frozenset[str]:
        return frozenset(self._leaf_by_label)

    @property
    def n_leaves(self) -> int:
        return len(self._leaf_by_label)

    def leaf(self, label: str) -> Node:
        try:
            return self._nodes[self._leaf_by_label[label]]
        except KeyError:
            raise KeyError(f"Leaf '{label}' is not in the tree") from None

    def postorder(self) -> Iterator[Tuple[Node, Tuple[Node, ...], Optional[float]]]:
        """Yield ``(node, children, branch length)`` with children before parents."""
        order: List[int] = []
        stack = [self.root]
        while stack:
            index = stack.pop()
            order.append(index)
            stack.extend(self._nodes[index].children)
        for index in reversed(order):
            node = self._nodes[index]
            yield node, tuple(self._nodes[c] for c in node.children), node.length

    # ------------------------------------------------------------------------
    # Path queries
    # ------------------------------------------------------------------------

    def lowest_common_ancestor(self, a: int, b: int) -> int:
        left = self._first_occurrence[a]
        right = self._first_occurrence[b]
        if left > right:
            left, right = right, left
        j = self._log_table[right - left + 1]
        first = self._sparse[j][left]
        second = self._sparse[j][right - (1 << j) + 1]
        best = first if self._euler_depth(first) <= self._euler_depth(second) else second
        return self._euler[best]

    def patristic_distance(self, label_a: str, label_b: str) -> float:
        """Sum of branch lengths on the path between two leaves; unknown lengths count as 0."""
        return self._path_length(self.leaf(label_a).index, self.leaf(label_b).index)

    def distance_matrix(self, labels: Optional[Sequence[str]] = None) -> NDArray[np.float64]:
        """Square matrix of patristic distances between ``labels`` (default: sorted leaves)."""
        if labels is None:
            labels = sorted(self._leaf_by_label)
        indices = [self.leaf(label).index for label in labels]
        n = len(indices)
        matrix: NDArray[np.float64] = np.zeros((n, n), dtype=float)
        for i in range(n):
            for j in range(i + 1, n):
                dist = self._path_length(indices[i], indices[j])
                matrix[i, j] = dist
                matrix[j, i] = dist
        return matrix

    def _path_length(self, a: int, b: int) -> float:
        lca = self.lowest_common_ancestor(a, b)
        return self._root_distance[a] + self._root_distance[b] - 2 * self._root_distance[lca]

    def __repr__(self) -> str:
        return f"Tree(n_nodes={len(self._nodes)}, n_leaves={self.n_leaves})"
