"""Stochastic Kronecker graph expansion (Leskovec et al. 2010).

The d-fold Kronecker power of a small k x k seed probability matrix P gives
the probability of every directed edge among k^d vertices. The power is
never materialized: the probability of edge (u, v) is the product of
P[u_i, v_i] over the d base-k digits of u and v.

Two samplers are provided:

- ``exact``: one independent Bernoulli trial per candidate cell, evaluated
  in bounded chunks of source rows per partition
- ``descent``: the fast sampler that drops round(sum(P)^d) edges by
  recursive quadrant descent and removes duplicates
"""

import logging
import threading
from pathlib import Path

import numpy as np

from csb.config.experiment import BenchmarkConfig
from csb.distributions.types import SeedDistributions
from csb.errors import ConfigurationError, GenerationCancelled, Phase, ResourceError
from csb.graph.partition import map_partitions, split_range
from csb.graph.types import Graph
from csb.reproducibility.seed import partition_rng
from csb.synth.properties import sample_columns

log = logging.getLogger(__name__)

# Largest supported vertex count, keeps src * n + dst within int64
MAX_VERTICES = 2**31

# Candidate cells evaluated at once by the exact sampler
MAX_CHUNK_CELLS = 1 << 22

# Redraw rounds the descent sampler uses to replace duplicate edges
DESCENT_REFILL_ROUNDS = 10

_EDGE_STREAM = 0
_REFILL_STREAM = 1
_PROPERTY_STREAM = 2


def validate_seed_matrix(P: np.ndarray) -> None:
    """Check that P is a non-empty square matrix of probabilities.

    Raises:
        ConfigurationError: On any violation.
    """
    if P.ndim != 2 or P.size == 0:
        raise ConfigurationError(
            Phase.GENERATION, f"seed matrix must be a non-empty 2-D matrix, got shape {P.shape}"
        )
    if P.shape[0] != P.shape[1]:
        raise ConfigurationError(
            Phase.GENERATION, f"seed matrix must be square, got shape {P.shape}"
        )
    if not np.all(np.isfinite(P)):
        raise ConfigurationError(Phase.GENERATION, "seed matrix contains NaN or infinite values")
    if P.min() < 0.0 or P.max() > 1.0:
        raise ConfigurationError(
            Phase.GENERATION,
            f"seed matrix probabilities must lie in [0, 1], "
            f"got range [{P.min()}, {P.max()}]",
        )


def load_seed_matrix(path: str | Path) -> np.ndarray:
    """Read a whitespace-separated square probability matrix.

    Returns:
        Read-only float64 array of shape (k, k).

    Raises:
        ResourceError: If the file does not exist.
        ConfigurationError: If the contents are not a valid seed matrix.
    """
    path = Path(path)
    if not path.is_file():
        raise ResourceError(Phase.GENERATION, f"seed matrix file {path} not found")
    try:
        P = np.loadtxt(path, dtype=np.float64, ndmin=2)
    except ValueError as exc:
        raise ConfigurationError(
            Phase.GENERATION, f"malformed seed matrix file {path}: {exc}"
        ) from exc
    validate_seed_matrix(P)
    P.setflags(write=False)
    log.info("Loaded %dx%d seed matrix from %s", P.shape[0], P.shape[1], path)
    return P


def kronecker_power(P: np.ndarray, depth: int) -> np.ndarray:
    """Dense d-fold Kronecker power of P. Only for small k^d."""
    result = np.ones((1, 1), dtype=np.float64)
    for _ in range(depth):
        result = np.kron(result, P)
    return result


def edge_probability(
    P: np.ndarray, src: np.ndarray, dst: np.ndarray, depth: int
) -> np.ndarray:
    """Probability of each edge (src[i], dst[i]) in the d-fold Kronecker power."""
    k = P.shape[0]
    src = np.asarray(src, dtype=np.int64)
    dst = np.asarray(dst, dtype=np.int64)
    prob = np.ones(np.broadcast(src, dst).shape, dtype=np.float64)
    for _ in range(depth):
        prob *= P[src % k, dst % k]
        src = src // k
        dst = dst // k
    return prob


def _check_cancel(cancel: threading.Event | None) -> None:
    if cancel is not None and cancel.is_set():
        raise GenerationCancelled(0, "Kronecker sampling cancelled before aggregation")


def _sample_rows(
    P: np.ndarray,
    depth: int,
    bounds: tuple[int, int],
    rng: np.random.Generator,
    cancel: threading.Event | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Bernoulli-sample every cell in source rows [start, end)."""
    n = P.shape[0] ** depth
    start, end = bounds
    rows_per_chunk = max(1, MAX_CHUNK_CELLS // n)
    srcs, dsts = [], []
    columns = np.arange(n, dtype=np.int64)
    for r0 in range(start, end, rows_per_chunk):
        _check_cancel(cancel)
        r1 = min(r0 + rows_per_chunk, end)
        src = np.repeat(np.arange(r0, r1, dtype=np.int64), n)
        dst = np.tile(columns, r1 - r0)
        keep = rng.random(src.shape[0]) < edge_probability(P, src, dst, depth)
        srcs.append(src[keep])
        dsts.append(dst[keep])
    return np.concatenate(srcs), np.concatenate(dsts)


def sample_exact(
    P: np.ndarray,
    depth: int,
    seed: int,
    partitions: int = 1,
    workers: int = 1,
    cancel: threading.Event | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Independent Bernoulli trial for every one of the k^(2d) cells.

    ``cancel`` is checked before every row chunk.
    """
    n = P.shape[0] ** depth
    slices = split_range(n, partitions)
    parts = map_partitions(
        lambda task: _sample_rows(
            P, depth, task[1], partition_rng(seed, _EDGE_STREAM, task[0]),
            cancel,
        ),
        list(enumerate(slices)),
        workers,
    )
    return (
        np.concatenate([p[0] for p in parts]),
        np.concatenate([p[1] for p in parts]),
    )


def _descend(
    P: np.ndarray, depth: int, count: int, rng: np.random.Generator
) -> tuple[np.ndarray, np.ndarray]:
    """Place ``count`` edges by picking one seed cell per level."""
    k = P.shape[0]
    flat = P.ravel() / P.sum()
    cells = rng.choice(k * k, size=(count, depth), p=flat)
    src = np.zeros(count, dtype=np.int64)
    dst = np.zeros(count, dtype=np.int64)
    for level in range(depth):
        src = src * k + cells[:, level] // k
        dst = dst * k + cells[:, level] % k
    return src, dst


def sample_descent(
    P: np.ndarray,
    depth: int,
    seed: int,
    partitions: int = 1,
    workers: int = 1,
    cancel: threading.Event | None = None,
) -> tuple[np.ndarray, np.ndarray]:
    """Fast sampler: expected edge count placed by recursive descent.

    Duplicate placements are dropped and redrawn for a bounded number of
    rounds, so the result can fall slightly short of the target. ``cancel``
    is checked before every partition and refill round.
    """
    n = P.shape[0] ** depth
    target = min(int(round(float(P.sum()) ** depth)), n * n)
    if target == 0:
        none = np.zeros(0, dtype=np.int64)
        return none, none

    def descend_partition(task):
        _check_cancel(cancel)
        index, (start, end) = task
        return _descend(P, depth, end - start, partition_rng(seed, _EDGE_STREAM, index))

    parts = map_partitions(
        descend_partition,
        list(enumerate(split_range(target, partitions))),
        workers,
    )
    keys = np.unique(np.concatenate([s * n + d for s, d in parts]))
    for attempt in range(DESCENT_REFILL_ROUNDS):
        missing = target - keys.shape[0]
        if missing == 0:
            break
        _check_cancel(cancel)
        src, dst = _descend(
            P, depth, missing, partition_rng(seed, _REFILL_STREAM, attempt)
        )
        keys = np.unique(np.concatenate([keys, src * n + dst]))
    keys = keys[:target]
    return keys // n, keys % n


class KroSynth:
    """Synthesizer expanding a seed probability matrix by Kronecker powers."""

    mode = "kro"

    def __init__(self, config: BenchmarkConfig, seed_matrix: np.ndarray | None = None) -> None:
        self.config = config
        if seed_matrix is None:
            seed_matrix = load_seed_matrix(config.kronecker.seed_matrix)
        else:
            validate_seed_matrix(seed_matrix)
        self.seed_matrix = seed_matrix
        k, depth = seed_matrix.shape[0], config.kronecker.depth
        if k**depth > MAX_VERTICES:
            raise ConfigurationError(
                Phase.GENERATION,
                f"{k}^{depth} vertices exceeds the supported maximum of {MAX_VERTICES}",
            )

    @property
    def num_vertices(self) -> int:
        return self.seed_matrix.shape[0] ** self.config.kronecker.depth

    def synthesize(
        self,
        seed_graph: Graph,
        seed_dists: SeedDistributions,
        generate_properties: bool,
        cancel: threading.Event | None = None,
    ) -> Graph:
        run, kro = self.config.run, self.config.kronecker
        P = self.seed_matrix
        log.info(
            "Kronecker synthesis: %dx%d seed, depth %d, %d vertices, method %s "
            "(seed graph has %d vertices, %d edges)",
            P.shape[0], P.shape[1], kro.depth, self.num_vertices, kro.method,
            seed_graph.num_vertices, seed_graph.num_edges,
        )
        sampler = sample_exact if kro.method == "exact" else sample_descent
        src, dst = sampler(P, kro.depth, run.seed, run.partitions, run.workers, cancel)
        _check_cancel(cancel)

        vertex_props: dict[str, np.ndarray] = {}
        edge_props: dict[str, np.ndarray] = {}
        if generate_properties:
            rng = partition_rng(run.seed, _PROPERTY_STREAM)
            vertex_props = sample_columns(seed_dists.vertex_fields, self.num_vertices, rng)
            edge_props = sample_columns(seed_dists.edge_fields, src.shape[0], rng)

        graph = Graph(
            vertex_ids=np.arange(self.num_vertices, dtype=np.int64),
            src=src,
            dst=dst,
            vertex_props=vertex_props,
            edge_props=edge_props,
        )
        log.info("Kronecker synthesis produced %d edges", graph.num_edges)
        return graph
