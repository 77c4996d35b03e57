"""Core type definitions for comparison runs."""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from phylocompare.bipartition_index import MissingLengthPolicy
from phylocompare.distances.results import MetricKind, MetricResult
from phylocompare.exceptions import ErrorStage

ALL_METRICS: FrozenSet[MetricKind] = frozenset(MetricKind)


class FailureMode(Enum):
    STRICT = "strict"
    """Abort the whole run on the first job error."""

    COLLECT = "collect"
    """Record every job error and finish the run."""


class DistanceGranularity(Enum):
    PAIRS = "pairs"
    SUMMARY = "summary"


@dataclass
class ComparisonConfig:
    """Configuration for a comparison run."""

    workers: int = 0
    """Worker threads; 0 uses every available CPU."""

    failure_mode: FailureMode = FailureMode.COLLECT
    metrics: FrozenSet[MetricKind] = ALL_METRICS
    include_tips: bool = False
    """Include terminal branches in branch-length and branch-set metrics."""

    missing_length: MissingLengthPolicy = MissingLengthPolicy.ZERO
    show_progress: bool = True
    logger_name: str = "phylocompare"

    def resolved_workers(self) -> int:
        if self.workers < 0:
            raise ValueError(f"Worker count must be >= 0, got {self.workers}")
        return self.workers or os.cpu_count() or 1

    def default_request(self) -> "MetricRequest":
        return MetricRequest(kinds=frozenset(self.metrics), include_tips=self.include_tips)


@dataclass(frozen=True)
class MetricRequest:
    """A bundle of metric kinds computed together for one tree pair."""

    kinds: FrozenSet[MetricKind] = ALL_METRICS
    include_tips: bool = False

    def __post_init__(self) -> None:
        if not self.kinds:
            raise ValueError("A metric request needs at least one metric kind")


@dataclass(frozen=True)
class TreeSource:
    """
    One tree input: identity plus either inline text or a file to read.

    The identity is the file stem used to match references and candidates.
    """

    identity: str
    text: Optional[str] = None
    path: Optional[Path] = None

    def __post_init__(self) -> None:
        if self.text is None and self.path is None:
            raise ValueError(f"Tree source '{self.identity}' needs text or a path")

    def read(self) -> str:
        if self.text is not None:
            return self.text
        assert self.path is not None
        return self.path.read_text(encoding="utf-8")

    @property
    def origin(self) -> str:
        return str(self.path) if self.path is not None else self.identity


@dataclass(frozen=True)
class CandidateSet:
    """Trees to compare against the references, with an optional output marker."""

    sources: Tuple[TreeSource, ...]
    marker: Optional[str] = None

    @classmethod
    def of(cls, sources: Sequence[TreeSource], marker: Optional[str] = None) -> "CandidateSet":
        return cls(tuple(sources), marker)

    @property
    def identities(self) -> List[str]:
        return [source.identity for source in self.sources]


@dataclass(frozen=True)
class ComparisonJob:
    """One reference/candidate pair and the metrics to compute for it."""

    job_index: int
    """Position in the deterministic output order."""

    reference_id: str
    candidate_id: str
    candidate_set: int
    request: MetricRequest
    marker: Optional[str] = None


@dataclass(frozen=True)
class UnmatchedTree:
    """A tree skipped because no counterpart with the same identity exists."""

    identity: str
    side: str
    """``"reference"`` or ``"candidate"``."""

    candidate_set: int

    def __str__(self) -> str:
        if self.side == "reference":
            return f"reference '{self.identity}' has no candidate in set {self.candidate_set}"
        return f"candidate '{self.identity}' in set {self.candidate_set} has no reference"


@dataclass(frozen=True)
class ErrorRecord:
    job_index: int
    stage: ErrorStage
    message: str
    reference_id: str = ""
    candidate_id: str = ""
    error_type: str = ""


@dataclass(frozen=True)
class JobResult:
    """All metric results of one job, keyed by metric kind."""

    job: ComparisonJob
    results: Dict[MetricKind, MetricResult] = field(default_factory=dict)

    def __getitem__(self, kind: MetricKind) -> MetricResult:
        return self.results[kind]

    def get(self, kind: MetricKind) -> Optional[MetricResult]:
        return self.results.get(kind)


@dataclass
class ComparisonReport:
    """Outcome of a run: ordered results, ordered errors and skipped trees."""

    results: List[JobResult] = field(default_factory=list)
    errors: List[ErrorRecord] = field(default_factory=list)
    unmatched: List[UnmatchedTree] = field(default_factory=list)
    jobs: List[ComparisonJob] = field(default_factory=list)
    processing_time: float = 0.0

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    def summary(self) -> Dict[str, int]:
        return {
            "jobs": len(self.jobs),
            "succeeded": len(self.results),
            "failed": len(self.errors),
            "unmatched": len(self.unmatched),
        }
