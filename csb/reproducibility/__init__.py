"""Reproducibility infrastructure: seed management."""

from csb.reproducibility.seed import partition_rng

__all__ = [
    "partition_rng",
]
