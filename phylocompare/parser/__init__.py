"""
Newick format parser module for phylogenetic trees.

This module turns Newick text into `phylocompare.tree.Tree` objects.
"""

from .newick_parser import (
    parse_newick,
    flush_character_buffer,
    flush_length_buffer,
    flush_buffer,
)

__all__ = [
    "parse_newick",
    "flush_character_buffer",
    "flush_length_buffer",
    "flush_buffer",
]
