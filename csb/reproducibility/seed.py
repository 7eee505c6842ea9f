"""Seed management for reproducible partitioned work.

Every random draw in the pipeline comes from a generator derived from the
single master seed, so parallel work is reproducible for a fixed partition
count. Nothing reads the global Python or NumPy RNG state.
"""

import numpy as np


def partition_rng(seed: int, *keys: int) -> np.random.Generator:
    """Independent generator for one unit of partitioned work.

    The stream depends only on the master seed and the keys (for example
    round and partition index), never on which worker runs the partition
    or in what order partitions complete.

    Args:
        seed: Master seed value.
        *keys: Non-negative integers identifying the unit of work.

    Returns:
        A numpy Generator seeded from ``(seed, *keys)``.
    """
    return np.random.default_rng([seed, *keys])
