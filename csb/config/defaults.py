"""Default configuration: single source of truth for default benchmark parameters."""

from csb.config.experiment import BenchmarkConfig

# 120 partitions, 1000 BA iterations of 120 nodes, Kronecker depth 10,
# fs backend, seed=42.
DEFAULT_CONFIG = BenchmarkConfig()
