"""Structural operations on columnar graphs: indexing, degrees, adjacency, growth."""

import logging

import numpy as np
import scipy.sparse

from csb.graph.types import Graph

log = logging.getLogger(__name__)

DIRECTIONS = ("in", "out", "both")


def vertex_index(graph: Graph, ids: np.ndarray) -> np.ndarray:
    """Map vertex ids to their positions in ``graph.vertex_ids``.

    Works for unsorted vertex id arrays. Ids must exist in the graph;
    use validate_graph() to check untrusted input first.
    """
    positions = np.searchsorted(graph.sorted_ids, ids)
    return graph.id_order[positions]


def degrees(graph: Graph, direction: str = "both") -> np.ndarray:
    """Per-vertex degree aligned with ``graph.vertex_ids``.

    Multi-edges count once per edge; a self-loop contributes one in-degree
    and one out-degree.
    """
    if direction not in DIRECTIONS:
        raise ValueError(f"direction must be one of {DIRECTIONS}, got {direction!r}")
    n = graph.num_vertices
    result = np.zeros(n, dtype=np.int64)
    if graph.num_edges == 0:
        return result
    if direction in ("out", "both"):
        result += np.bincount(vertex_index(graph, graph.src), minlength=n)
    if direction in ("in", "both"):
        result += np.bincount(vertex_index(graph, graph.dst), minlength=n)
    return result


def adjacency(graph: Graph) -> scipy.sparse.csr_matrix:
    """Sparse (n x n) adjacency matrix indexed by vertex position.

    Parallel edges are summed, so entries hold edge multiplicities.
    """
    n = graph.num_vertices
    rows = vertex_index(graph, graph.src)
    cols = vertex_index(graph, graph.dst)
    data = np.ones(graph.num_edges, dtype=np.float64)
    adj = scipy.sparse.coo_matrix((data, (rows, cols)), shape=(n, n))
    return adj.tocsr()


def append(
    graph: Graph,
    vertex_ids: np.ndarray,
    src: np.ndarray,
    dst: np.ndarray,
    vertex_props: dict[str, np.ndarray] | None = None,
    edge_props: dict[str, np.ndarray] | None = None,
) -> Graph:
    """Return a new graph with vertices and edges appended.

    Attribute columns are kept only when both the existing graph and the
    appended batch provide them, so every column stays aligned.
    """
    vertex_props = vertex_props or {}
    edge_props = edge_props or {}
    new_vertex_props = {
        name: np.concatenate([col, vertex_props[name]])
        for name, col in graph.vertex_props.items()
        if name in vertex_props
    }
    new_edge_props = {
        name: np.concatenate([col, edge_props[name]])
        for name, col in graph.edge_props.items()
        if name in edge_props
    }
    return Graph(
        vertex_ids=np.concatenate([graph.vertex_ids, np.asarray(vertex_ids, dtype=np.int64)]),
        src=np.concatenate([graph.src, np.asarray(src, dtype=np.int64)]),
        dst=np.concatenate([graph.dst, np.asarray(dst, dtype=np.int64)]),
        vertex_props=new_vertex_props,
        edge_props=new_edge_props,
    )


def validate_graph(graph: Graph) -> list[str]:
    """Validate structural invariants of a graph.

    Checks (cheapest first):
    1. Vertex ids are unique
    2. Edge endpoint arrays have equal length
    3. Attribute columns align with vertices and edges
    4. Every edge endpoint references an existing vertex

    Returns:
        List of error strings (empty = valid graph).
    """
    errors: list[str] = []

    unique_ids = np.unique(graph.vertex_ids)
    if unique_ids.shape[0] != graph.num_vertices:
        errors.append(
            f"Duplicate vertex ids: {graph.num_vertices - unique_ids.shape[0]} repeated"
        )

    if graph.src.shape != graph.dst.shape:
        errors.append(
            f"Edge arrays differ in length: src={graph.src.shape[0]}, "
            f"dst={graph.dst.shape[0]}"
        )
        return errors

    for name, col in graph.vertex_props.items():
        if col.shape[0] != graph.num_vertices:
            errors.append(
                f"Vertex column {name!r} has {col.shape[0]} values "
                f"for {graph.num_vertices} vertices"
            )
    for name, col in graph.edge_props.items():
        if col.shape[0] != graph.num_edges:
            errors.append(
                f"Edge column {name!r} has {col.shape[0]} values "
                f"for {graph.num_edges} edges"
            )

    endpoints = np.concatenate([graph.src, graph.dst])
    dangling = np.setdiff1d(endpoints, unique_ids)
    if dangling.shape[0] > 0:
        errors.append(
            f"{dangling.shape[0]} edge endpoints reference missing vertices "
            f"(e.g. {dangling[:5].tolist()})"
        )

    return errors
