"""Empirical distribution extraction from a seed graph.

Every histogram is computed as a map over edge (or vertex) partitions that
produces partial counts, followed by an associative merge. The result is
therefore independent of edge order and of how the work is partitioned.
"""

import json
import logging
from functools import reduce
from pathlib import Path

import numpy as np

from csb.distributions.types import Distribution, SeedDistributions, empty_distribution
from csb.errors import Phase, ResourceError
from csb.graph.ops import vertex_index
from csb.graph.partition import map_partitions, split_range
from csb.graph.types import Graph

log = logging.getLogger(__name__)


def histogram(
    values: np.ndarray, partitions: int = 1, workers: int = 1
) -> Distribution:
    """Histogram of raw observations via per-partition counts and a merge."""
    values = np.asarray(values)
    slices = split_range(values.shape[0], partitions)
    partials = map_partitions(
        lambda bounds: Distribution.from_samples(values[bounds[0]:bounds[1]]),
        slices,
        workers,
    )
    return reduce(Distribution.merge, partials, empty_distribution())


def _partial_degrees(graph: Graph, bounds: tuple[int, int]) -> tuple[np.ndarray, np.ndarray]:
    """Out- and in-degree contributions of one edge partition."""
    start, end = bounds
    n = graph.num_vertices
    out_counts = np.bincount(vertex_index(graph, graph.src[start:end]), minlength=n)
    in_counts = np.bincount(vertex_index(graph, graph.dst[start:end]), minlength=n)
    return out_counts, in_counts


def vertex_degrees(
    graph: Graph, partitions: int = 1, workers: int = 1
) -> tuple[np.ndarray, np.ndarray]:
    """Per-vertex (out_degree, in_degree) summed over edge partitions."""
    n = graph.num_vertices
    out_deg = np.zeros(n, dtype=np.int64)
    in_deg = np.zeros(n, dtype=np.int64)
    slices = split_range(graph.num_edges, partitions)
    for out_counts, in_counts in map_partitions(
        lambda bounds: _partial_degrees(graph, bounds), slices, workers
    ):
        out_deg += out_counts
        in_deg += in_counts
    return out_deg, in_deg


def extract_distributions(
    graph: Graph,
    include_properties: bool = True,
    fields: list[str] | None = None,
    partitions: int = 1,
    workers: int = 1,
) -> SeedDistributions:
    """Compute the seed statistics that drive graph synthesis.

    Args:
        graph: Seed graph.
        include_properties: Whether to build attribute histograms.
        fields: Attribute fields to track; None tracks every column present.
        partitions: Number of partitions for the map step.
        workers: Worker threads used for the map step.

    Returns:
        SeedDistributions with degree, out-degree and attribute histograms.
    """
    out_deg, in_deg = vertex_degrees(graph, partitions, workers)
    degree = histogram(out_deg + in_deg, partitions, workers)
    out_degree = histogram(out_deg, partitions, workers)

    edge_fields: dict[str, Distribution] = {}
    vertex_fields: dict[str, Distribution] = {}
    if include_properties:
        for name, col in graph.edge_props.items():
            if fields is None or name in fields:
                edge_fields[name] = histogram(col, partitions, workers)
        for name, col in graph.vertex_props.items():
            if fields is None or name in fields:
                vertex_fields[name] = histogram(col, partitions, workers)

    log.info(
        "Extracted distributions: %d degree buckets, %d edge fields, %d vertex fields",
        degree.values.shape[0], len(edge_fields), len(vertex_fields),
    )
    return SeedDistributions(
        degree=degree,
        out_degree=out_degree,
        edge_fields=edge_fields,
        vertex_fields=vertex_fields,
        num_vertices=graph.num_vertices,
        num_edges=graph.num_edges,
    )


def save_distributions(
    dists: SeedDistributions, path: str | Path, overwrite: bool = False
) -> Path:
    """Write seed distributions as JSON.

    Raises:
        ResourceError: If the file exists and overwrite is off.
    """
    path = Path(path)
    if path.exists() and not overwrite:
        raise ResourceError(
            Phase.EXTRACTION, f"distribution file {path} exists and overwrite is off"
        )
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w") as f:
        json.dump(dists.to_dict(), f, indent=2)
    log.info("Distributions written to %s", path)
    return path


def load_distributions(path: str | Path) -> SeedDistributions:
    """Read seed distributions written by save_distributions().

    Raises:
        ResourceError: If the file is missing or unreadable.
    """
    path = Path(path)
    if not path.exists():
        raise ResourceError(Phase.EXTRACTION, f"distribution file {path} not found")
    try:
        with open(path) as f:
            return SeedDistributions.from_dict(json.load(f))
    except (json.JSONDecodeError, KeyError) as exc:
        raise ResourceError(
            Phase.EXTRACTION, f"malformed distribution file {path}: {exc}"
        ) from exc
