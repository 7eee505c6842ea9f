"""Seed statistics: histogram containers and the distribution extractor."""

from csb.distributions.extract import (
    extract_distributions,
    histogram,
    load_distributions,
    save_distributions,
    vertex_degrees,
)
from csb.distributions.types import Distribution, SeedDistributions, empty_distribution

__all__ = [
    "Distribution",
    "SeedDistributions",
    "empty_distribution",
    "extract_distributions",
    "histogram",
    "load_distributions",
    "save_distributions",
    "vertex_degrees",
]
