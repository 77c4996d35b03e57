"""Canonical bipartitions (splits) induced by the edges of a tree."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional, Tuple

from phylocompare.elements.encoding import LeafEncoding
from phylocompare.elements.partition import Partition
from phylocompare.exceptions import MissingBranchLength
from phylocompare.tree import Tree


class MissingLengthPolicy(Enum):
    """How length-based metrics treat an edge without a branch length."""

    ZERO = "zero"
    ERROR = "error"


@dataclass(frozen=True)
class Branch:
    """One unrooted edge of a tree."""

    partition: Partition
    length: Optional[float]
    """Branch length, ``None`` when the tree does not provide one."""
    trivial: bool
    """True when the edge isolates a single leaf."""
    size: int
    """Number of leaves on the smaller side of the split."""

    def resolved_length(self, missing_length: MissingLengthPolicy) -> float:
        if self.length is not None:
            return self.length
        if missing_length is MissingLengthPolicy.ERROR:
            raise MissingBranchLength(
                f"Branch {self.partition} has no length"
            )
        return 0.0


class BipartitionIndex:
    """
    The set of branches of one tree, keyed by canonical bipartition.

    Built once per tree against the run-wide `LeafEncoding` and shared
    read-only between comparison jobs.
    """

    __slots__ = ("tree", "encoding", "leaf_mask", "_branches")

    def __init__(
        self,
        tree: Tree,
        encoding: LeafEncoding,
        leaf_mask: int,
        branches: Dict[Partition, Branch],
    ):
        self.tree = tree
        self.encoding = encoding
        self.leaf_mask = leaf_mask
        self._branches = branches

    @classmethod
    def build(cls, tree: Tree, encoding: LeafEncoding) -> "BipartitionIndex":
        """
        Accumulate descendant leaf masks in post-order and canonicalise each edge.

        Edges inducing the same split (the two edges under a bifurcating root,
        or a chain of unifurcations) are merged and their lengths summed.

        Raises:
            LeafUniverseMismatch: if the tree has a label missing from ``encoding``.
        """
        leaf_mask = encoding.encode(tree.leaf_labels)
        n_leaves = tree.n_leaves
        mapping = encoding.mapping
        masks: Dict[int, int] = {}
        lengths: Dict[int, Optional[float]] = {}
        order: List[int] = []

        for node, children, length in tree.postorder():
            if node.is_leaf():
                mask = 1 << mapping[node.name]
            else:
                mask = 0
                for child in children:
                    mask |= masks[child.index]
            masks[node.index] = mask
            if node.index == tree.root:
                continue
            # A subtree spanning every leaf induces no split
            if mask == 0 or mask == leaf_mask:
                continue
            key = Partition.canonical(mask, leaf_mask).bitmask
            if key in lengths:
                previous = lengths[key]
                lengths[key] = (
                    None if previous is None or length is None else previous + length
                )
            else:
                lengths[key] = length
                order.append(key)

        branches: Dict[Partition, Branch] = {}
        for key in order:
            partition = Partition.from_bitmask(key, encoding)
            size = min(len(partition), n_leaves - len(partition))
            branches[partition] = Branch(
                partition=partition,
                length=lengths[key],
                trivial=size == 1,
                size=size,
            )
        return cls(tree, encoding, leaf_mask, branches)

    def __len__(self) -> int:
        return len(self._branches)

    def __contains__(self, partition: object) -> bool:
        return partition in self._branches

    def __getitem__(self, partition: Partition) -> Branch:
        return self._branches[partition]

    def get(self, partition: Partition) -> Optional[Branch]:
        return self._branches.get(partition)

    @property
    def n_leaves(self) -> int:
        return self.tree.n_leaves

    @property
    def leaf_labels(self) -> frozenset[str]:
        return self.tree.leaf_labels

    def branches(self, include_tips: bool = False) -> Tuple[Branch, ...]:
        return tuple(
            branch
            for branch in self._branches.values()
            if include_tips or not branch.trivial
        )

    def splits(self, include_tips: bool = False) -> frozenset[Partition]:
        return frozenset(branch.partition for branch in self.branches(include_tips))

    def trivial_branches(self) -> Tuple[Branch, ...]:
        return tuple(branch for branch in self._branches.values() if branch.trivial)

    def lengths(
        self,
        include_tips: bool = False,
        missing_length: Optional[MissingLengthPolicy] = None,
    ) -> Dict[Partition, float]:
        policy = missing_length or MissingLengthPolicy.ZERO
        return {
            branch.partition: branch.resolved_length(policy)
            for branch in self.branches(include_tips)
        }

    def describe(self, partition: Partition) -> str:
        """Human-readable ``left | right`` form of a split of this tree."""
        return self.encoding.bipartition(partition.bitmask, self.leaf_mask)

