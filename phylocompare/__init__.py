"""Core phylocompare package."""

__all__ = [
    "Tree",
    "Node",
    "parse_newick",
    "LeafEncoding",
    "BipartitionIndex",
    "ComparisonConfig",
    "ComparisonOrchestrator",
    "match_jobs",
]


def __getattr__(name):
    if name in {"Tree", "Node"}:
        from .tree import Tree, Node

        return locals()[name]
    if name == "parse_newick":
        from .parser import parse_newick

        return parse_newick
    if name == "LeafEncoding":
        from .elements.encoding import LeafEncoding

        return LeafEncoding
    if name == "BipartitionIndex":
        from .bipartition_index import BipartitionIndex

        return BipartitionIndex
    if name in {"ComparisonConfig", "ComparisonOrchestrator", "match_jobs"}:
        from .comparison import ComparisonConfig, ComparisonOrchestrator, match_jobs

        return locals()[name]
    raise AttributeError(name)
