"""Parallel execution of comparison jobs."""

from __future__ import annotations

import logging
import threading
import time
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Dict, Generic, List, Mapping, Optional, Sequence, Tuple, TypeVar

from tqdm import tqdm

from phylocompare.bipartition_index import BipartitionIndex, MissingLengthPolicy
from phylocompare.comparison.job_matching import match_jobs
from phylocompare.comparison.types import (
    CandidateSet,
    ComparisonConfig,
    ComparisonJob,
    ComparisonReport,
    ErrorRecord,
    FailureMode,
    JobResult,
    MetricRequest,
    TreeSource,
    UnmatchedTree,
)
from phylocompare.distances import (
    MetricKind,
    MetricResult,
    branch_score,
    branch_set_difference,
    pairwise_distances,
    robinson_foulds,
)
from phylocompare.elements.encoding import LeafEncoding
from phylocompare.exceptions import ComparisonAborted, ParseError, TreeComparisonError
from phylocompare.parser import parse_newick
from phylocompare.tree import Tree

T = TypeVar("T")

# (candidate set index, identity); references use set index -1
SourceKey = Tuple[int, str]
REFERENCE_SET = -1

MAX_LISTED_UNMATCHED = 10


class OrderedCollector(Generic[T]):
    """Append-only, thread-safe buffer of records keyed by job index."""

    def __init__(self) -> None:
        self._items: List[Tuple[int, T]] = []
        self._lock = threading.Lock()

    def append(self, job_index: int, item: T) -> None:
        with self._lock:
            self._items.append((job_index, item))

    def first(self) -> Optional[T]:
        """The earliest appended record."""
        with self._lock:
            return self._items[0][1] if self._items else None

    def ordered(self) -> List[T]:
        with self._lock:
            return [item for _, item in sorted(self._items, key=lambda pair: pair[0])]

    def __len__(self) -> int:
        with self._lock:
            return len(self._items)


def compute_metrics(
    job: ComparisonJob,
    reference: BipartitionIndex,
    candidate: BipartitionIndex,
    missing_length: MissingLengthPolicy = MissingLengthPolicy.ZERO,
) -> JobResult:
    """Run every metric the job requests on one reference/candidate pair."""
    request = job.request
    results: Dict[MetricKind, MetricResult] = {}
    if MetricKind.TOPOLOGY in request.kinds:
        results[MetricKind.TOPOLOGY] = robinson_foulds(reference, candidate)
    if MetricKind.BRANCH_LENGTH in request.kinds:
        results[MetricKind.BRANCH_LENGTH] = branch_score(
            reference, candidate, request.include_tips, missing_length
        )
    if MetricKind.PAIRWISE_DISTANCE in request.kinds:
        results[MetricKind.PAIRWISE_DISTANCE] = pairwise_distances(
            reference.tree, candidate.tree, reference.encoding
        )
    if MetricKind.BRANCH_SET in request.kinds:
        results[MetricKind.BRANCH_SET] = branch_set_difference(
            reference, candidate, request.include_tips
        )
    return JobResult(job=job, results=results)


def load_tree(source: TreeSource) -> Tree:
    """Read and parse one tree source; read failures are reported as `ParseError`."""
    try:
        text = source.read()
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(f"Could not read {source.origin}: {exc}") from exc
    return parse_newick(text)


class ComparisonOrchestrator:
    """
    Runs comparison jobs on a thread pool.

    Trees are parsed and indexed once per source file and shared read-only
    between all jobs using them. Results and errors go to two separate
    collectors and are put back into job order at the end, so the report
    does not depend on scheduling.
    """

    def __init__(
        self,
        config: Optional[ComparisonConfig] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initializes the orchestrator.

        Args:
            config: Run configuration settings.
            logger: Logger instance for run events.
        """
        self.config: ComparisonConfig = config or ComparisonConfig()
        self.logger = logger or logging.getLogger(self.config.logger_name)

    @property
    def strict(self) -> bool:
        return self.config.failure_mode is FailureMode.STRICT

    def run(
        self,
        references: Sequence[TreeSource],
        candidate_sets: Sequence[CandidateSet],
        requests: Optional[Sequence[MetricRequest]] = None,
    ) -> ComparisonReport:
        """
        Match references with candidates and compare every matched pair.

        Args:
            references: Reference tree sources
            candidate_sets: Candidate tree sources, one entry per directory
            requests: Metric bundles; defaults to the configured metrics

        Returns:
            ComparisonReport with results and errors in job order and the
            unmatched trees.

        Raises:
            ComparisonAborted: in strict mode, on the first job error.
        """
        start_time = time.time()
        sources: Dict[SourceKey, TreeSource] = {}
        self._register(sources, REFERENCE_SET, references)
        for set_index, candidate_set in enumerate(candidate_sets):
            self._register(sources, set_index, candidate_set.sources)

        match = match_jobs(
            [source.identity for source in references],
            [candidate_set.identities for candidate_set in candidate_sets],
            requests if requests is not None else [self.config.default_request()],
            markers=[candidate_set.marker for candidate_set in candidate_sets],
        )
        self._log_unmatched(match.unmatched)

        report = self.execute(match.jobs, sources)
        report.unmatched = match.unmatched
        report.processing_time = time.time() - start_time
        self.logger.info(
            f"Compared {len(report.results)} of {len(report.jobs)} tree pairs "
            f"in {report.processing_time:.2f} seconds"
        )
        return report

    def execute(
        self, jobs: Sequence[ComparisonJob], sources: Mapping[SourceKey, TreeSource]
    ) -> ComparisonReport:
        """
        Parse the sources the jobs need, then run the jobs concurrently.

        Args:
            jobs: Jobs in output order
            sources: Tree source per ``(candidate set, identity)``; references
                use candidate set ``-1``

        Returns:
            ComparisonReport with ordered results and errors.
        """
        needed = sorted(
            {key for job in jobs for key in (self._reference_key(job), self._candidate_key(job))}
        )
        missing = [key for key in needed if key not in sources]
        if missing:
            raise KeyError(f"No tree source for {missing[0]}")

        with ThreadPoolExecutor(max_workers=self.config.resolved_workers()) as executor:
            trees, failures = self._parse_sources(executor, needed, sources, jobs)
            encoding = LeafEncoding.from_label_sets(tree.leaf_labels for tree in trees.values())
            indices = self._build_indices(executor, trees, encoding, failures, jobs)
            results, errors = self._run_jobs(executor, jobs, indices, failures)

        self.logger.info(
            f"{len(results)} jobs succeeded, {len(errors)} failed, "
            f"{len(failures)} of {len(needed)} trees could not be loaded"
        )
        return ComparisonReport(results=results, errors=errors, jobs=list(jobs))

    # --- Private helpers ---

    def _log_unmatched(self, unmatched: Sequence[UnmatchedTree]) -> None:
        if not unmatched:
            return
        self.logger.warning(f"Could not find a counterpart for {len(unmatched)} trees:")
        for tree in unmatched[:MAX_LISTED_UNMATCHED]:
            self.logger.warning(f"\t- {tree}")
        if len(unmatched) > MAX_LISTED_UNMATCHED:
            self.logger.warning("\t- ...")
        for tree in unmatched[MAX_LISTED_UNMATCHED:]:
            self.logger.debug(f"Unmatched tree: {tree}")

    def _register(
        self,
        sources: Dict[SourceKey, TreeSource],
        set_index: int,
        entries: Sequence[TreeSource],
    ) -> None:
        for source in entries:
            key = (set_index, source.identity)
            if key in sources:
                self.logger.warning(
                    f"Duplicate tree identity '{source.identity}': keeping "
                    f"{sources[key].origin}, ignoring {source.origin}"
                )
                continue
            sources[key] = source

    @staticmethod
    def _reference_key(job: ComparisonJob) -> SourceKey:
        return (REFERENCE_SET, job.reference_id)

    @staticmethod
    def _candidate_key(job: ComparisonJob) -> SourceKey:
        return (job.candidate_set, job.candidate_id)

    def _progress(self, futures: Dict[Future, T], desc: str):
        return tqdm(
            as_completed(futures),
            total=len(futures),
            desc=desc,
            disable=not self.config.show_progress,
        )

    def _parse_sources(
        self,
        executor: ThreadPoolExecutor,
        keys: Sequence[SourceKey],
        sources: Mapping[SourceKey, TreeSource],
        jobs: Sequence[ComparisonJob],
    ) -> Tuple[Dict[SourceKey, Tree], Dict[SourceKey, TreeComparisonError]]:
        trees: Dict[SourceKey, Tree] = {}
        failures: Dict[SourceKey, TreeComparisonError] = {}
        futures = {executor.submit(load_tree, sources[key]): key for key in keys}
        for future in self._progress(futures, "Parsing trees"):
            key = futures[future]
            try:
                trees[key] = future.result()
            except TreeComparisonError as exc:
                self.logger.debug(f"Could not load {sources[key].origin}: {exc}")
                failures[key] = exc
                if self.strict:
                    self._abort(executor, self._source_error(jobs, key, exc), exc)
        return trees, failures

    def _build_indices(
        self,
        executor: ThreadPoolExecutor,
        trees: Mapping[SourceKey, Tree],
        encoding: LeafEncoding,
        failures: Dict[SourceKey, TreeComparisonError],
        jobs: Sequence[ComparisonJob],
    ) -> Dict[SourceKey, BipartitionIndex]:
        indices: Dict[SourceKey, BipartitionIndex] = {}
        futures = {
            executor.submit(BipartitionIndex.build, tree, encoding): key
            for key, tree in trees.items()
        }
        for future in self._progress(futures, "Indexing bipartitions"):
            key = futures[future]
            try:
                indices[key] = future.result()
            except TreeComparisonError as exc:
                failures[key] = exc
                if self.strict:
                    self._abort(executor, self._source_error(jobs, key, exc), exc)
        return indices

    def _run_jobs(
        self,
        executor: ThreadPoolExecutor,
        jobs: Sequence[ComparisonJob],
        indices: Mapping[SourceKey, BipartitionIndex],
        failures: Mapping[SourceKey, TreeComparisonError],
    ) -> Tuple[List[JobResult], List[ErrorRecord]]:
        results: OrderedCollector[JobResult] = OrderedCollector()
        errors: OrderedCollector[Tuple[ErrorRecord, TreeComparisonError]] = OrderedCollector()
        missing_length = self.config.missing_length

        def run_job(job: ComparisonJob) -> None:
            try:
                result = compute_metrics(
                    job,
                    indices[self._reference_key(job)],
                    indices[self._candidate_key(job)],
                    missing_length,
                )
            except TreeComparisonError as exc:
                errors.append(job.job_index, (self._job_error(job, exc), exc))
                return
            results.append(job.job_index, result)

        runnable: List[ComparisonJob] = []
        for job in jobs:
            failed = [
                key
                for key in (self._reference_key(job), self._candidate_key(job))
                if key in failures
            ]
            if failed:
                exc = failures[failed[0]]
                errors.append(job.job_index, (self._load_error(job, failed[0], exc), exc))
            else:
                runnable.append(job)

        if self.strict and len(errors):
            self._abort(executor, *errors.first())

        futures = {executor.submit(run_job, job): job for job in runnable}
        for future in self._progress(futures, "Comparing trees"):
            # Anything other than a TreeComparisonError is a bug and propagates
            future.result()
            if self.strict and len(errors):
                self._abort(executor, *errors.first())

        return results.ordered(), [record for record, _ in errors.ordered()]

    def _abort(
        self,
        executor: ThreadPoolExecutor,
        record: ErrorRecord,
        cause: TreeComparisonError,
    ) -> None:
        executor.shutdown(wait=False, cancel_futures=True)
        self.logger.error(f"Strict mode: aborting run after error in job {record.job_index}")
        raise ComparisonAborted(record) from cause

    @staticmethod
    def _job_error(job: ComparisonJob, exc: TreeComparisonError) -> ErrorRecord:
        return ErrorRecord(
            job_index=job.job_index,
            stage=exc.stage,
            message=str(exc),
            reference_id=job.reference_id,
            candidate_id=job.candidate_id,
            error_type=type(exc).__name__,
        )

    def _load_error(
        self, job: ComparisonJob, key: SourceKey, exc: TreeComparisonError
    ) -> ErrorRecord:
        side = "reference" if key[0] == REFERENCE_SET else "candidate"
        return ErrorRecord(
            job_index=job.job_index,
            stage=exc.stage,
            message=f"Could not load {side} tree '{key[1]}': {exc}",
            reference_id=job.reference_id,
            candidate_id=job.candidate_id,
            error_type=type(exc).__name__,
        )

    def _source_error(
        self, jobs: Sequence[ComparisonJob], key: SourceKey, exc: TreeComparisonError
    ) -> ErrorRecord:
        job = next(
            job
            for job in jobs
            if key in (self._reference_key(job), self._candidate_key(job))
        )
        return self._load_error(job, key, exc)
