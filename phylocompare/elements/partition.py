from __future__ import annotations

from functools import total_ordering
from typing import TYPE_CHECKING, Any, FrozenSet, Iterator, List, Optional, Tuple

if TYPE_CHECKING:
    from phylocompare.elements.encoding import LeafEncoding


@total_ordering
class Partition:
    __slots__ = ("indices", "encoding", "bitmask")

    def __init__(
        self, indices: Tuple[int, ...], encoding: Optional[LeafEncoding] = None
    ):
        """
        Partition represents a subset of taxa as a tuple of integer indices.
        encoding: the shared leaf ordering the indices refer to.
        Indices are stored sorted and unique.
        """
        self.indices: Tuple[int, ...] = tuple(sorted(set(indices)))

        # Shared by every partition of a run; labels are looked up, never copied
        self.encoding: Optional[LeafEncoding] = encoding
        # Bitmask is the identity of the partition: hashing and equality use it
        bitmask = 0
        for idx in self.indices:
            bitmask |= 1 << idx
        self.bitmask: int = bitmask

    @classmethod
    def from_bitmask(
        cls, bitmask: int, encoding: Optional[LeafEncoding] = None
    ) -> "Partition":
        indices: List[int] = []
        remaining = bitmask
        while remaining:
            low = remaining & -remaining
            indices.append(low.bit_length() - 1)
            remaining ^= low
        return cls(tuple(indices), encoding)

    @classmethod
    def canonical(
        cls, bitmask: int, universe: int, encoding: Optional[LeafEncoding] = None
    ) -> "Partition":
        """
        Return the canonical side of the split ``bitmask | universe - bitmask``.

        The canonical side is the lexicographically smaller index tuple, which
        is always the side holding the lowest index of ``universe``.
        """
        if bitmask & ~universe:
            raise ValueError("Split is not a subset of its leaf universe")
        lowest = universe & -universe
        if not bitmask & lowest:
            bitmask = universe & ~bitmask
        return cls.from_bitmask(bitmask, encoding)

    def __iter__(self) -> Iterator[int]:
        return iter(self.indices)

    def __len__(self) -> int:
        return len(self.indices)

    def __lt__(self, other: Any) -> bool:
        if isinstance(other, Partition):
            return self.indices < other.indices
        return NotImplemented

    def __eq__(self, other: Any) -> bool:
        if isinstance(other, Partition):
            return self.bitmask == other.bitmask
        return NotImplemented

    def __getitem__(self, index: int) -> int:
        return self.indices[index]

    def __hash__(self) -> int:
        return hash(self.bitmask)

    @property
    def taxa(self) -> FrozenSet[str]:
        """
        Return the set of taxon names corresponding to the indices in this partition.
        """
        return frozenset(self._labels())

    def _labels(self) -> List[str]:
        if self.encoding is None:
            return [str(i) for i in self.indices]
        return list(self.encoding.decode(self.bitmask))

    def __str__(self) -> str:
        return f"({', '.join(self._labels())})"

    def __repr__(self) -> str:
        return f"Partition{self}"
