"""Benchmark workloads over seed and synthetic graphs."""

from csb.workload.graph_workload import (
    WORKLOADS,
    bfs_path,
    closeness_centrality,
    connected_components,
    count_edges,
    count_vertices,
    degree,
    edges_with_property,
    in_degree,
    in_edges,
    neighbors,
    out_degree,
    out_edges,
    page_rank,
    run_workloads,
    sssp,
    strongly_connected_components,
    triangle_count,
)

__all__ = [
    "WORKLOADS",
    "bfs_path",
    "closeness_centrality",
    "connected_components",
    "count_edges",
    "count_vertices",
    "degree",
    "edges_with_property",
    "in_degree",
    "in_edges",
    "neighbors",
    "out_degree",
    "out_edges",
    "page_rank",
    "run_workloads",
    "sssp",
    "strongly_connected_components",
    "triangle_count",
]
