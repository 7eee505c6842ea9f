"""Graph analysis workloads used to benchmark seed and synthetic graphs.

Each workload is a plain function of a Graph. Positions returned by the
scipy csgraph routines are mapped back to vertex ids before returning.
"""

import logging
import time
from collections.abc import Callable

import numpy as np
from scipy.sparse import csgraph

from csb.errors import ConfigurationError, Phase
from csb.graph.ops import adjacency, degrees, vertex_index
from csb.graph.types import Graph
from csb.veracity.metrics import pagerank

log = logging.getLogger(__name__)


def count_vertices(graph: Graph) -> int:
    return graph.num_vertices


def count_edges(graph: Graph) -> int:
    return graph.num_edges


def _nonzero_degrees(graph: Graph, direction: str) -> dict[int, int]:
    deg = degrees(graph, direction)
    mask = deg > 0
    return dict(zip(graph.vertex_ids[mask].tolist(), deg[mask].tolist()))


def degree(graph: Graph) -> dict[int, int]:
    """Degree of each vertex; vertices with no edges are not considered."""
    return _nonzero_degrees(graph, "both")


def in_degree(graph: Graph) -> dict[int, int]:
    """In-degree of each vertex; vertices with no incoming edges are not considered."""
    return _nonzero_degrees(graph, "in")


def out_degree(graph: Graph) -> dict[int, int]:
    """Out-degree of each vertex; vertices with no outgoing edges are not considered."""
    return _nonzero_degrees(graph, "out")


def neighbors(graph: Graph, direction: str = "both") -> dict[int, np.ndarray]:
    """Sorted unique neighbour ids per vertex; vertices with no edges are ignored."""
    if direction == "out":
        pairs = [(graph.src, graph.dst)]
    elif direction == "in":
        pairs = [(graph.dst, graph.src)]
    elif direction == "both":
        pairs = [(graph.src, graph.dst), (graph.dst, graph.src)]
    else:
        raise ValueError(f"direction must be both, in or out, got {direction!r}")
    owners = np.concatenate([p[0] for p in pairs])
    others = np.concatenate([p[1] for p in pairs])
    order = np.lexsort((others, owners))
    owners, others = owners[order], others[order]
    result: dict[int, np.ndarray] = {}
    if owners.shape[0] == 0:
        return result
    splits = np.flatnonzero(np.diff(owners)) + 1
    for owner_group, other_group in zip(np.split(owners, splits), np.split(others, splits)):
        result[int(owner_group[0])] = np.unique(other_group)
    return result


def _edges_grouped_by(graph: Graph, key: np.ndarray) -> dict[int, np.ndarray]:
    order = np.argsort(key, kind="stable")
    sorted_key = key[order]
    result: dict[int, np.ndarray] = {}
    if sorted_key.shape[0] == 0:
        return result
    splits = np.flatnonzero(np.diff(sorted_key)) + 1
    for positions in np.split(order, splits):
        result[int(key[positions[0]])] = positions
    return result


def in_edges(graph: Graph) -> dict[int, np.ndarray]:
    """Edge positions entering each vertex, grouped by destination."""
    return _edges_grouped_by(graph, graph.dst)


def out_edges(graph: Graph) -> dict[int, np.ndarray]:
    """Edge positions leaving each vertex, grouped by source."""
    return _edges_grouped_by(graph, graph.src)


def bfs_path(graph: Graph, src: int, dst: int) -> list[int]:
    """Shortest directed path from ``src`` to ``dst`` as vertex ids.

    Returns an empty list when ``dst`` is unreachable.
    """
    if src == dst:
        return [src]
    s, d = vertex_index(graph, np.array([src, dst]))
    _, predecessors = csgraph.breadth_first_order(
        adjacency(graph), int(s), directed=True, return_predecessors=True
    )
    if predecessors[d] < 0:
        return []
    path = [int(d)]
    while path[-1] != s:
        path.append(int(predecessors[path[-1]]))
    return graph.vertex_ids[np.array(path[::-1])].tolist()


def sssp(graph: Graph, src: int) -> dict[int, float]:
    """Unweighted shortest path length from ``src`` to every reachable vertex."""
    s = int(vertex_index(graph, np.array([src]))[0])
    dist = csgraph.shortest_path(adjacency(graph), directed=True, unweighted=True, indices=s)
    reachable = np.isfinite(dist)
    return dict(zip(graph.vertex_ids[reachable].tolist(), dist[reachable].tolist()))


def _components(graph: Graph, connection: str) -> dict[int, int]:
    """Component label per vertex: the lowest vertex id in its component."""
    if graph.num_vertices == 0:
        return {}
    _, labels = csgraph.connected_components(
        adjacency(graph), directed=True, connection=connection
    )
    lowest = np.full(labels.max() + 1, np.iinfo(np.int64).max, dtype=np.int64)
    np.minimum.at(lowest, labels, graph.vertex_ids)
    return dict(zip(graph.vertex_ids.tolist(), lowest[labels].tolist()))


def connected_components(graph: Graph) -> dict[int, int]:
    """Weakly connected component of each vertex."""
    return _components(graph, "weak")


def strongly_connected_components(graph: Graph) -> dict[int, int]:
    """Strongly connected component of each vertex."""
    return _components(graph, "strong")


def triangle_count(graph: Graph) -> dict[int, int]:
    """Triangles through each vertex, ignoring direction, multi-edges and loops."""
    if graph.num_vertices == 0:
        return {}
    adj = adjacency(graph)
    sym = ((adj + adj.T) > 0).astype(np.int64)
    sym.setdiag(0)
    sym.eliminate_zeros()
    per_vertex = np.asarray((sym @ sym).multiply(sym).sum(axis=1)).ravel() // 2
    return dict(zip(graph.vertex_ids.tolist(), per_vertex.tolist()))


def closeness_centrality(graph: Graph, vertex: int) -> float:
    """N / sum(distances) over the vertices reachable from ``vertex``."""
    distances = sssp(graph, vertex)
    others = [d for v, d in distances.items() if v != vertex]
    total = sum(others)
    if total == 0:
        return 0.0
    return len(others) / total


def edges_with_property(
    graph: Graph, field: str, predicate: Callable[[np.ndarray], np.ndarray]
) -> np.ndarray:
    """Positions of edges whose ``field`` value satisfies a vectorized predicate."""
    return np.flatnonzero(predicate(graph.edge_props[field]))


def page_rank(graph: Graph, tol: float = 0.001, reset_prob: float = 0.15) -> dict[int, float]:
    """PageRank per vertex id."""
    return dict(zip(graph.vertex_ids.tolist(), pagerank(graph, tol, reset_prob).tolist()))


WORKLOADS: dict[str, Callable[[Graph], object]] = {
    "count_vertices": count_vertices,
    "count_edges": count_edges,
    "degree": degree,
    "in_degree": in_degree,
    "out_degree": out_degree,
    "neighbors": neighbors,
    "in_edges": in_edges,
    "out_edges": out_edges,
    "connected_components": connected_components,
    "strongly_connected_components": strongly_connected_components,
    "triangle_count": triangle_count,
    "page_rank": page_rank,
}


def run_workloads(graph: Graph, names: list[str] | None = None) -> dict[str, float]:
    """Run workloads on ``graph`` and return the elapsed seconds of each."""
    timings: dict[str, float] = {}
    for name in names or list(WORKLOADS):
        if name not in WORKLOADS:
            raise ConfigurationError(
                Phase.EVALUATION,
                f"unknown workload {name!r}, expected one of {sorted(WORKLOADS)}",
            )
        t0 = time.monotonic()
        WORKLOADS[name](graph)
        timings[name] = time.monotonic() - t0
        log.info("%s: %.3f s", name, timings[name])
    return timings
