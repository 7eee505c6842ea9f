"""Columnar graph model, structural operations, partitioning and persistence."""

from csb.graph.ops import adjacency, append, degrees, validate_graph, vertex_index
from csb.graph.partition import map_partitions, split_range
from csb.graph.persistence import (
    GraphPersistence,
    NpzPersistence,
    TextPersistence,
    get_persistence,
    read_npz_graph,
    write_npz_graph,
)
from csb.graph.types import Graph

__all__ = [
    "Graph",
    "GraphPersistence",
    "NpzPersistence",
    "TextPersistence",
    "adjacency",
    "append",
    "degrees",
    "get_persistence",
    "map_partitions",
    "read_npz_graph",
    "split_range",
    "validate_graph",
    "vertex_index",
    "write_npz_graph",
]
