#!/usr/bin/env python3
"""
Compare phylogenetic trees to reference trees.

Trees are matched by file name (up to the first '.') between the reference
directory and each candidate directory. For every matched pair the selected
metrics are computed and written as CSV files named
<output>.<category>.csv.gz.
"""

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional, Sequence

from phylocompare.bipartition_index import MissingLengthPolicy
from phylocompare.comparison.orchestrator import ComparisonOrchestrator
from phylocompare.comparison.types import (
    CandidateSet,
    ComparisonConfig,
    ComparisonReport,
    DistanceGranularity,
    FailureMode,
)
from phylocompare.distances.results import MetricKind
from phylocompare.exceptions import ComparisonAborted
from phylocompare.io import scan_tree_directory, write_report
from phylocompare.logging_config import configure_logging
from phylocompare.validators import MinimumIntegerAction

logger = logging.getLogger("phylocompare")

EXIT_OK = 0
EXIT_ERRORS = 1
EXIT_ABORTED = 2

def setup_argument_parser() -> argparse.ArgumentParser:
    """
    Configure and return the argument parser.

    Returns:
        Configured ArgumentParser instance.
    """
    parser = argparse.ArgumentParser(
        prog="phylocompare",
        description=__doc__,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )

    parser.add_argument(
        "reference",
        help="Directory containing reference trees",
        type=Path,
    )
    parser.add_argument(
        "candidates",
        help="Directories containing trees to compare",
        nargs="+",
        type=Path,
    )
    parser.add_argument(
        "-o",
        "--output",
        help="Output prefix for the CSV files",
        required=True,
        type=Path,
    )

    # Metric options
    metric_group = parser.add_argument_group("metric options")
    metric_group.add_argument(
        "--metrics",
        help="Metrics to compute (default: all)",
        nargs="+",
        choices=[kind.value for kind in MetricKind],
        default=[kind.value for kind in MetricKind],
    )
    metric_group.add_argument(
        "--include-tips",
        help="Include terminal branches in branch-length and branch comparisons",
        action="store_true",
    )
    metric_group.add_argument(
        "--missing-lengths",
        help="Treat absent branch lengths as 0 or fail the comparison (default: zero)",
        choices=[policy.value for policy in MissingLengthPolicy],
        default=MissingLengthPolicy.ZERO.value,
    )

    # Execution options
    execution_group = parser.add_argument_group("execution options")
    execution_group.add_argument(
        "-t",
        "--threads",
        help="Number of worker threads, 0 for all CPUs (default: 0)",
        default=0,
        type=int,
        action=MinimumIntegerAction,
        minimum=0,
    )
    execution_group.add_argument(
        "-s",
        "--strict",
        help="Exit on the first error instead of listing errors at the end",
        action="store_true",
    )
    execution_group.add_argument(
        "--no-progress",
        help="Do not show progress bars",
        action="store_true",
    )

    # Output options
    output_group = parser.add_argument_group("output options")
    output_group.add_argument(
        "-m",
        "--markers",
        help="Marker written in the output rows of each candidate directory",
        nargs="+",
    )
    output_group.add_argument(
        "--distance-summary",
        help="Write one summary row per tree pair instead of every leaf pair",
        action="store_true",
    )
    output_group.add_argument(
        "--no-compress",
        help="Write plain CSV instead of gzip-compressed CSV",
        action="store_true",
    )
    output_group.add_argument(
        "-v",
        "--verbose",
        help="Log debug messages",
        action="store_true",
    )
    output_group.add_argument(
        "-l",
        "--log-file",
        help="Also write the full debug log to this file",
        type=Path,
    )

    return parser


def build_config(args: argparse.Namespace) -> ComparisonConfig:
    return ComparisonConfig(
        workers=args.threads,
        failure_mode=FailureMode.STRICT if args.strict else FailureMode.COLLECT,
        metrics=frozenset(MetricKind(value) for value in args.metrics),
        include_tips=args.include_tips,
        missing_length=MissingLengthPolicy(args.missing_lengths),
        show_progress=not args.no_progress,
    )


def log_summary(report: ComparisonReport) -> None:
    """Log counts and all errors. Unmatched trees are listed when the run starts."""
    summary = report.summary()
    logger.info(
        f"{summary['succeeded']} comparisons succeeded, {summary['failed']} failed, "
        f"{summary['unmatched']} trees unmatched"
    )

    if report.errors:
        logger.error("There were errors comparing some trees:")
        for error in report.errors:
            logger.error(
                f"\t- [{error.stage.value}] {error.reference_id} vs {error.candidate_id}: "
                f"{error.message}"
            )


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Main entry point for the CLI."""
    parser = setup_argument_parser()
    args = parser.parse_args(argv)

    if args.markers is not None and len(args.markers) != len(args.candidates):
        parser.error(
            f"Got {len(args.markers)} markers for {len(args.candidates)} candidate directories"
        )

    configure_logging(
        logging.DEBUG if args.verbose else logging.INFO, log_file=args.log_file
    )

    try:
        references = scan_tree_directory(args.reference)
        markers: List[Optional[str]] = args.markers or [None] * len(args.candidates)
        candidate_sets = [
            CandidateSet.of(scan_tree_directory(directory), marker)
            for directory, marker in zip(args.candidates, markers)
        ]
    except NotADirectoryError as exc:
        logger.error(str(exc))
        return EXIT_ABORTED
    logger.info(f"Reference trees found: {len(references)}")

    orchestrator = ComparisonOrchestrator(build_config(args), logger=logger)
    try:
        report = orchestrator.run(references, candidate_sets)
    except ComparisonAborted as exc:
        logger.error(str(exc))
        return EXIT_ABORTED

    granularity = (
        DistanceGranularity.SUMMARY if args.distance_summary else DistanceGranularity.PAIRS
    )
    write_report(report, args.output, compress=not args.no_compress, granularity=granularity)
    log_summary(report)
    return EXIT_ERRORS if report.has_errors else EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
