"""Veracity evaluation: compare seed and synthetic graphs metric by metric.

Each metric maps both graphs to a distribution (degree, in-degree,
out-degree or PageRank values) and reduces the pair to one
Kolmogorov-Smirnov distance, where 0 means identical distributions.
"""

import logging
import time
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from csb.config.experiment import VeracityConfig
from csb.distributions.types import Distribution
from csb.errors import ConfigurationError, Phase, ResourceError
from csb.graph.types import Graph
from csb.veracity.distance import ks_distance
from csb.veracity.metrics import degree_distribution, pagerank_distribution

log = logging.getLogger(__name__)

METRICS = ("degree", "inDegree", "outDegree", "pageRank")

_DIRECTIONS = {"degree": "both", "inDegree": "in", "outDegree": "out"}


@dataclass(frozen=True, eq=False)
class VeracityResult:
    """Fidelity score of one metric plus both raw distributions."""

    metric: str
    score: float  # KS statistic in [0, 1]; 0 = identical distributions
    seed_distribution: Distribution
    synth_distribution: Distribution
    elapsed: float = 0.0  # seconds spent computing this metric


def metric_distribution(
    metric: str,
    graph: Graph,
    config: VeracityConfig = VeracityConfig(),
    partitions: int = 1,
    workers: int = 1,
) -> Distribution:
    """Distribution of ``metric`` over the vertices of ``graph``."""
    if metric in _DIRECTIONS:
        return degree_distribution(graph, _DIRECTIONS[metric], partitions, workers)
    if metric == "pageRank":
        return pagerank_distribution(
            graph, config.tol, config.reset_prob, config.max_iter, partitions, workers
        )
    raise ConfigurationError(
        Phase.EVALUATION, f"invalid metric {metric!r}, expected one of {METRICS}"
    )


def csv_paths(metric: str, output_dir: str | Path) -> tuple[Path, Path]:
    """Seed and synthetic CSV locations for ``metric``."""
    output_dir = Path(output_dir)
    return output_dir / f"{metric}_seed.csv", output_dir / f"{metric}_synth.csv"


def save_distribution_csv(dist: Distribution, path: Path) -> None:
    """Write a histogram as ``value,count`` rows with a header."""
    table = np.column_stack([dist.values.astype(np.float64), dist.counts])
    np.savetxt(path, table, fmt=["%.17g", "%d"], delimiter=",", header="value,count", comments="")


def evaluate(
    metric: str,
    seed_graph: Graph,
    synth_graph: Graph,
    save_as_csv: bool = False,
    overwrite: bool = False,
    config: VeracityConfig = VeracityConfig(),
    partitions: int = 1,
    workers: int = 1,
) -> VeracityResult:
    """Score how closely ``synth_graph`` reproduces ``seed_graph`` on ``metric``.

    Args:
        metric: One of "degree", "inDegree", "outDegree", "pageRank".
        seed_graph: Reference graph.
        synth_graph: Synthetic graph.
        save_as_csv: Persist both raw distributions under config.output_dir.
        overwrite: Replace existing CSV files instead of failing.
        config: PageRank parameters and CSV output directory.
        partitions: Partitions used by the aggregation steps.
        workers: Worker threads used by the aggregation steps.

    Returns:
        VeracityResult with the KS distance and both distributions.

    Raises:
        ConfigurationError: If the metric name is unknown (nothing computed).
        ResourceError: If CSV output exists and overwrite is off, or the
            write fails.
    """
    if metric not in METRICS:
        raise ConfigurationError(
            Phase.EVALUATION, f"invalid metric {metric!r}, expected one of {METRICS}"
        )
    paths = csv_paths(metric, config.output_dir)
    if save_as_csv and not overwrite:
        existing = [str(p) for p in paths if p.exists()]
        if existing:
            raise ResourceError(
                Phase.EVALUATION,
                f"veracity output exists and overwrite is off: {existing}",
            )

    t0 = time.monotonic()
    seed_dist = metric_distribution(metric, seed_graph, config, partitions, workers)
    synth_dist = metric_distribution(metric, synth_graph, config, partitions, workers)
    score = ks_distance(seed_dist, synth_dist)
    elapsed = time.monotonic() - t0

    if save_as_csv:
        try:
            paths[0].parent.mkdir(parents=True, exist_ok=True)
            save_distribution_csv(seed_dist, paths[0])
            save_distribution_csv(synth_dist, paths[1])
        except OSError as exc:
            raise ResourceError(
                Phase.EVALUATION, f"failed to write veracity output: {exc}"
            ) from exc
        log.info("%s distributions written to %s", metric, paths[0].parent)

    log.info("%s veracity: %.6f [%.3f s]", metric, score, elapsed)
    return VeracityResult(
        metric=metric,
        score=score,
        seed_distribution=seed_dist,
        synth_distribution=synth_dist,
        elapsed=elapsed,
    )


def evaluate_all(
    seed_graph: Graph,
    synth_graph: Graph,
    metrics: tuple[str, ...] = METRICS,
    config: VeracityConfig = VeracityConfig(),
    partitions: int = 1,
    workers: int = 1,
) -> dict[str, VeracityResult]:
    """Evaluate several metrics; invalid names fail before any computation."""
    unknown = [m for m in metrics if m not in METRICS]
    if unknown:
        raise ConfigurationError(
            Phase.EVALUATION, f"invalid metrics {unknown}, expected any of {METRICS}"
        )
    return {
        metric: evaluate(
            metric, seed_graph, synth_graph,
            config=config, partitions=partitions, workers=workers,
        )
        for metric in metrics
    }
