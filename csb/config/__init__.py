"""Benchmark configuration system with frozen, hashable, serializable dataclasses."""

from csb.config.experiment import (
    BaConfig,
    BenchmarkConfig,
    KroneckerConfig,
    RunConfig,
    VeracityConfig,
)
from csb.config.defaults import DEFAULT_CONFIG
from csb.config.hashing import config_hash, full_config_hash, growth_config_hash
from csb.config.serialization import (
    config_from_dict,
    config_from_json,
    config_to_dict,
    config_to_json,
)

__all__ = [
    "BaConfig",
    "BenchmarkConfig",
    "KroneckerConfig",
    "RunConfig",
    "VeracityConfig",
    "DEFAULT_CONFIG",
    "config_hash",
    "full_config_hash",
    "growth_config_hash",
    "config_from_dict",
    "config_from_json",
    "config_to_dict",
    "config_to_json",
]
