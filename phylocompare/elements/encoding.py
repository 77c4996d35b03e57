"""Shared leaf-label ordering used to encode splits as bitmasks."""

from __future__ import annotations

from typing import Dict, Iterable, Iterator, List, Tuple

from phylocompare.exceptions import LeafUniverseMismatch


class LeafEncoding:
    """
    Fixed mapping from leaf label to bit index.

    One encoding is built per comparison run from the union of all leaf
    labels and shared read-only by every worker.
    """

    __slots__ = ("order", "mapping")

    def __init__(self, labels: Iterable[str]):
        self.order: Tuple[str, ...] = tuple(sorted(set(labels)))
        self.mapping: Dict[str, int] = {name: i for i, name in enumerate(self.order)}

    @classmethod
    def from_label_sets(cls, label_sets: Iterable[Iterable[str]]) -> "LeafEncoding":
        union: set[str] = set()
        for labels in label_sets:
            union.update(labels)
        return cls(union)

    def __len__(self) -> int:
        return len(self.order)

    def __contains__(self, label: object) -> bool:
        return label in self.mapping

    def __iter__(self) -> Iterator[str]:
        return iter(self.order)

    def encode(self, labels: Iterable[str]) -> int:
        """Return the bitmask for ``labels``; every label must be known."""
        labels = list(labels)
        unknown = [label for label in labels if label not in self.mapping]
        if unknown:
            raise LeafUniverseMismatch(
                "Tree contains leaves absent from the shared leaf ordering",
                unknown_labels=unknown,
            )
        mask = 0
        for label in labels:
            mask |= 1 << self.mapping[label]
        return mask

    def decode(self, bitmask: int) -> Tuple[str, ...]:
        """Return labels of ``bitmask`` in encoding order."""
        labels: List[str] = []
        while bitmask:
            low = bitmask & -bitmask
            labels.append(self.order[low.bit_length() - 1])
            bitmask ^= low
        return tuple(labels)

    def bipartition(self, bitmask: int, universe: int) -> str:
        """Render the split ``bitmask | universe - bitmask`` as ``"A, B | C, D"``."""
        left = self.decode(bitmask)
        right = self.decode(universe & ~bitmask)
        return f"{', '.join(left)} | {', '.join(right)}"
