"""
Custom exceptions for tree comparison runs.
"""

from __future__ import annotations

from enum import Enum
from typing import TYPE_CHECKING, Iterable, Optional

if TYPE_CHECKING:
    from phylocompare.comparison.types import ErrorRecord


class ErrorStage(Enum):
    """Pipeline stage an error is attributed to."""

    PARSE = "parse"
    MATCH = "match"
    COMPUTE = "compute"


class TreeComparisonError(Exception):
    """Base exception for tree comparison errors."""

    stage: ErrorStage = ErrorStage.COMPUTE


class ParseError(TreeComparisonError):
    """Raised when tree text cannot be parsed."""

    stage = ErrorStage.PARSE

    def __init__(self, message: str, position: Optional[int] = None):
        if position is not None:
            message = f"{message} (at character {position})"
        super().__init__(message)
        self.position = position


class InvalidTree(TreeComparisonError):
    """Raised when nodes do not describe a valid tree."""

    stage = ErrorStage.PARSE


class DuplicateLeafLabel(InvalidTree):
    """Raised when a leaf label occurs more than once in a single tree."""

    def __init__(self, labels: Iterable[str]):
        self.labels = tuple(sorted(labels))
        super().__init__(f"Duplicate leaf labels: {', '.join(self.labels)}")


class LeafUniverseMismatch(TreeComparisonError):
    """Raised when trees do not share the leaf set a metric requires."""

    stage = ErrorStage.MATCH

    def __init__(
        self,
        message: str,
        missing_in_reference: Iterable[str] = (),
        missing_in_candidate: Iterable[str] = (),
        unknown_labels: Iterable[str] = (),
    ):
        self.missing_in_reference = tuple(sorted(missing_in_reference))
        self.missing_in_candidate = tuple(sorted(missing_in_candidate))
        self.unknown_labels = tuple(sorted(unknown_labels))
        details = []
        if self.unknown_labels:
            details.append(f"unknown labels: {_preview(self.unknown_labels)}")
        if self.missing_in_reference:
            details.append(f"missing in reference: {_preview(self.missing_in_reference)}")
        if self.missing_in_candidate:
            details.append(f"missing in candidate: {_preview(self.missing_in_candidate)}")
        if details:
            message = f"{message} ({'; '.join(details)})"
        super().__init__(message)

    @classmethod
    def compare(cls, reference: Iterable[str], candidate: Iterable[str]) -> None:
        """Raise unless both label collections are identical."""
        ref_set, cand_set = set(reference), set(candidate)
        if ref_set != cand_set:
            raise cls(
                "Trees have different leaf sets",
                missing_in_reference=cand_set - ref_set,
                missing_in_candidate=ref_set - cand_set,
            )


class InsufficientLeaves(TreeComparisonError):
    """Raised when a normalised topological distance needs at least 4 leaves."""

    def __init__(self, n_leaves: int, required: int = 4):
        self.n_leaves = n_leaves
        self.required = required
        super().__init__(
            f"Normalised topological distance needs at least {required} shared leaves, got {n_leaves}"
        )


class MissingBranchLength(TreeComparisonError):
    """Raised when a length-based metric meets an edge without a branch length."""


class ComparisonAborted(TreeComparisonError):
    """Raised in strict mode when the first job error terminates the run."""

    def __init__(self, record: ErrorRecord):
        self.record = record
        self.stage = record.stage
        super().__init__(
            f"Run aborted at job {record.job_index} "
            f"({record.reference_id} vs {record.candidate_id}, {record.stage.value}): "
            f"{record.message}"
        )


def _preview(labels: tuple[str, ...], limit: int = 5) -> str:
    shown = ", ".join(labels[:limit])
    if len(labels) > limit:
        shown += f", ... (+{len(labels) - limit})"
    return shown
