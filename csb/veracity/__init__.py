"""Veracity evaluation of synthetic graphs against their seed."""

from csb.veracity.distance import ks_distance
from csb.veracity.evaluate import (
    METRICS,
    VeracityResult,
    csv_paths,
    evaluate,
    evaluate_all,
    metric_distribution,
    save_distribution_csv,
)
from csb.veracity.metrics import degree_distribution, pagerank, pagerank_distribution

__all__ = [
    "METRICS",
    "VeracityResult",
    "csv_paths",
    "degree_distribution",
    "evaluate",
    "evaluate_all",
    "ks_distance",
    "metric_distribution",
    "pagerank",
    "pagerank_distribution",
    "save_distribution_csv",
]
