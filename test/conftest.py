import logging

import pytest

from phylocompare.bipartition_index import BipartitionIndex
from phylocompare.elements.encoding import LeafEncoding
from phylocompare.parser import parse_newick


def pytest_configure(config):
    """Set up test environment before tests run."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_indices(*newicks):
    """Parse trees and index them against one shared encoding."""
    trees = [parse_newick(s) for s in newicks]
    encoding = LeafEncoding.from_label_sets(t.leaf_labels for t in trees)
    return [BipartitionIndex.build(t, encoding) for t in trees]


@pytest.fixture
def indices():
    return build_indices
