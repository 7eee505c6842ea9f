"""Structural metrics compared by the veracity evaluator."""

import logging

import numpy as np
import scipy.sparse

from csb.distributions.extract import histogram, vertex_degrees
from csb.distributions.types import Distribution
from csb.graph.ops import adjacency
from csb.graph.types import Graph

log = logging.getLogger(__name__)


def degree_distribution(
    graph: Graph, direction: str = "both", partitions: int = 1, workers: int = 1
) -> Distribution:
    """Histogram of per-vertex degree in ``direction`` ("both", "in", "out").

    Vertices without a qualifying edge are left out, so a graph with no
    edges yields an empty distribution.
    """
    out_deg, in_deg = vertex_degrees(graph, partitions, workers)
    if direction == "out":
        values = out_deg
    elif direction == "in":
        values = in_deg
    elif direction == "both":
        values = out_deg + in_deg
    else:
        raise ValueError(f"direction must be both, in or out, got {direction!r}")
    return histogram(values[values > 0], partitions, workers)


def pagerank(
    graph: Graph,
    tol: float = 0.001,
    reset_prob: float = 0.15,
    max_iter: int = 100,
) -> np.ndarray:
    """Power-iteration PageRank aligned with ``graph.vertex_ids``.

    Uses the unnormalized convention

        r = reset_prob + (1 - reset_prob) * A^T (r / out_degree)

    starting from r = 1 and stopping once no rank moves by ``tol`` or
    more. Parallel edges weigh by multiplicity; rank held by vertices with
    no out-edges is not redistributed. A graph without edges converges to
    ``reset_prob`` for every vertex.

    Args:
        graph: Input graph.
        tol: Convergence tolerance on the largest per-vertex change.
        reset_prob: Random reset probability.
        max_iter: Iteration cap.

    Returns:
        float64 array of shape (num_vertices,).
    """
    n = graph.num_vertices
    if n == 0:
        return np.zeros(0, dtype=np.float64)

    adj = adjacency(graph)
    out_weight = np.asarray(adj.sum(axis=1)).ravel()
    inv_out = np.divide(
        1.0, out_weight, out=np.zeros_like(out_weight), where=out_weight > 0
    )
    # Row-normalized transition matrix, transposed to pull rank along in-edges
    transition_t = (scipy.sparse.diags(inv_out) @ adj).T.tocsr()

    ranks = np.ones(n, dtype=np.float64)
    for iteration in range(1, max_iter + 1):
        updated = reset_prob + (1.0 - reset_prob) * (transition_t @ ranks)
        delta = float(np.abs(updated - ranks).max())
        ranks = updated
        if delta < tol:
            log.debug("PageRank converged after %d iterations", iteration)
            break
    else:
        log.warning("PageRank did not converge within %d iterations", max_iter)
    return ranks


def pagerank_distribution(
    graph: Graph,
    tol: float = 0.001,
    reset_prob: float = 0.15,
    max_iter: int = 100,
    partitions: int = 1,
    workers: int = 1,
) -> Distribution:
    """Histogram of PageRank values over all vertices."""
    return histogram(pagerank(graph, tol, reset_prob, max_iter), partitions, workers)
