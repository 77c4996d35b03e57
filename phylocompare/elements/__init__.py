"""Leaf encodings and bitmask partitions."""
