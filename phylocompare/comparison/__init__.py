"""Job matching and parallel execution of tree comparisons."""

from .types import (
    ALL_METRICS,
    CandidateSet,
    ComparisonConfig,
    ComparisonJob,
    ComparisonReport,
    DistanceGranularity,
    ErrorRecord,
    FailureMode,
    JobResult,
    MetricRequest,
    TreeSource,
    UnmatchedTree,
)
from .job_matching import MatchResult, match_jobs
from .orchestrator import ComparisonOrchestrator, compute_metrics, load_tree

__all__ = [
    "ALL_METRICS",
    "CandidateSet",
    "ComparisonConfig",
    "ComparisonJob",
    "ComparisonReport",
    "DistanceGranularity",
    "ErrorRecord",
    "FailureMode",
    "JobResult",
    "MetricRequest",
    "TreeSource",
    "UnmatchedTree",
    "MatchResult",
    "match_jobs",
    "ComparisonOrchestrator",
    "compute_metrics",
    "load_tree",
]
