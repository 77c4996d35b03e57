import logging
from pathlib import Path
from typing import Dict, List, Union

import pandas as pd

from phylocompare.comparison.records import category_rows, columns_for
from phylocompare.comparison.types import (
    ComparisonReport,
    DistanceGranularity,
    TreeSource,
)
from phylocompare.parser.newick_parser import parse_newick
from phylocompare.tree import Tree

logger = logging.getLogger(__name__)

NEWICK_EXTENSIONS = (".nwk", ".newick")


def is_newick(path: Path) -> bool:
    """Check if the file extension is a Newick one."""
    return path.suffix in NEWICK_EXTENSIONS


def get_file_id(path: Path) -> str:
    """Identity of a tree file: its name up to the first ``.``."""
    identity = path.name.split(".")[0]
    if not identity:
        raise ValueError(f"Could not get ID for {path}")
    return identity


def read_newick(path: Union[str, Path]) -> Tree:
    with open(path, encoding="utf-8") as f:
        newick_string: str = f.read()
    return parse_newick(newick_string)


def scan_tree_directory(directory: Union[str, Path]) -> List[TreeSource]:
    """
    List the Newick files of a directory as tree sources, sorted by file name.

    Files whose identity was already seen are skipped with a warning.

    Raises:
        NotADirectoryError: if ``directory`` is not a directory.
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise NotADirectoryError(f"{directory} is not a directory")

    sources: Dict[str, TreeSource] = {}
    for path in sorted(directory.iterdir()):
        if not path.is_file() or not is_newick(path):
            continue
        try:
            identity = get_file_id(path)
        except ValueError as exc:
            logger.warning(str(exc))
            continue
        if identity in sources:
            logger.warning(
                f"Skipping {path}: identity '{identity}' already used by {sources[identity].path}"
            )
            continue
        sources[identity] = TreeSource(identity=identity, path=path)

    logger.info(f"Found {len(sources)} trees in {directory}")
    return list(sources.values())


def output_path(output: Union[str, Path], category: str, compress: bool = True) -> Path:
    """``<output>.<category>.csv`` with ``.gz`` appended when compressing."""
    output = Path(output)
    name = output.name
    for suffix in (".gz", ".csv"):
        if name.endswith(suffix):
            name = name[: -len(suffix)]
    suffix = ".csv.gz" if compress else ".csv"
    return output.with_name(f"{name}.{category}{suffix}")


def write_report(
    report: ComparisonReport,
    output: Union[str, Path],
    compress: bool = True,
    granularity: DistanceGranularity = DistanceGranularity.PAIRS,
) -> List[Path]:
    """
    Write one CSV file per non-empty result category.

    Returns:
        The written paths, in category order.
    """
    written: List[Path] = []
    for category, rows in category_rows(report.results, granularity).items():
        path = output_path(output, category, compress)
        path.parent.mkdir(parents=True, exist_ok=True)
        frame = pd.DataFrame(rows, columns=list(columns_for(category, granularity)))
        frame.to_csv(path, index=False, compression="gzip" if compress else None)
        logger.info(f"Wrote {len(rows)} {category} rows to {path}")
        written.append(path)
    return written
