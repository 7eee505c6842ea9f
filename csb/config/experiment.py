"""Benchmark configuration dataclasses, all frozen and slotted."""

from dataclasses import dataclass, field

from csb.errors import ConfigurationError, Phase

BACKENDS = ("fs", "text")
ATTACHMENT_POLICIES = ("mean", "sample")
KRONECKER_METHODS = ("exact", "descent")


@dataclass(frozen=True, slots=True)
class RunConfig:
    """Parameters shared by every run mode."""

    partitions: int = 120  # number of data partitions
    workers: int = 1  # worker threads used to process partitions
    backend: str = "fs"  # persistence backend: fs or text
    data_dir: str = "data"  # root directory of the persistence backend
    checkpoint_dir: str | None = None
    checkpoint_interval: int = 10  # rounds between checkpoints
    seed: int = 42

    def __post_init__(self) -> None:
        if self.partitions < 1:
            raise ConfigurationError(
                Phase.GENERATION,
                f"partition count must be greater than 0, got {self.partitions}",
            )
        if self.workers < 1:
            raise ConfigurationError(
                Phase.GENERATION,
                f"worker count must be greater than 0, got {self.workers}",
            )
        if self.backend not in BACKENDS:
            raise ConfigurationError(
                Phase.PERSISTENCE,
                f"backend must be one of {BACKENDS}, got {self.backend!r}",
            )
        if self.checkpoint_interval < 1:
            raise ConfigurationError(
                Phase.GENERATION,
                f"checkpoint_interval must be greater than 0, "
                f"got {self.checkpoint_interval}",
            )
        if self.seed < 0:
            raise ConfigurationError(
                Phase.GENERATION, f"seed must not be negative, got {self.seed}"
            )


@dataclass(frozen=True, slots=True)
class BaConfig:
    """Barabasi-Albert preferential attachment parameters."""

    iterations: int = 1000
    nodes_per_iter: int = 120
    edges_per_node: int | None = None  # None: derived from the seed
    attachment: str = "mean"  # mean: average seed degree, sample: out-degree draw

    def __post_init__(self) -> None:
        if self.iterations < 1:
            raise ConfigurationError(
                Phase.GENERATION,
                f"iteration count must be greater than 0, got {self.iterations}",
            )
        if self.nodes_per_iter < 1:
            raise ConfigurationError(
                Phase.GENERATION,
                f"nodes_per_iter must be greater than 0, got {self.nodes_per_iter}",
            )
        if self.edges_per_node is not None and self.edges_per_node < 1:
            raise ConfigurationError(
                Phase.GENERATION,
                f"edges_per_node must be greater than 0, got {self.edges_per_node}",
            )
        if self.attachment not in ATTACHMENT_POLICIES:
            raise ConfigurationError(
                Phase.GENERATION,
                f"attachment must be one of {ATTACHMENT_POLICIES}, "
                f"got {self.attachment!r}",
            )


@dataclass(frozen=True, slots=True)
class KroneckerConfig:
    """Stochastic Kronecker expansion parameters."""

    seed_matrix: str = "seed.mtx"
    depth: int = 10
    method: str = "exact"  # exact: Bernoulli per cell, descent: fast sampler

    def __post_init__(self) -> None:
        if self.depth < 1:
            raise ConfigurationError(
                Phase.GENERATION,
                f"iteration count must be greater than 0, got {self.depth}",
            )
        if self.method not in KRONECKER_METHODS:
            raise ConfigurationError(
                Phase.GENERATION,
                f"method must be one of {KRONECKER_METHODS}, got {self.method!r}",
            )


@dataclass(frozen=True, slots=True)
class VeracityConfig:
    """Veracity metric parameters."""

    tol: float = 0.001  # PageRank convergence tolerance
    reset_prob: float = 0.15  # PageRank random reset probability
    max_iter: int = 100  # PageRank iteration cap
    output_dir: str = "veracity"  # where CSV distributions are written

    def __post_init__(self) -> None:
        if self.tol <= 0:
            raise ConfigurationError(
                Phase.EVALUATION, f"tol must be positive, got {self.tol}"
            )
        if not 0.0 < self.reset_prob < 1.0:
            raise ConfigurationError(
                Phase.EVALUATION,
                f"reset_prob must be in (0, 1), got {self.reset_prob}",
            )
        if self.max_iter < 1:
            raise ConfigurationError(
                Phase.EVALUATION,
                f"max_iter must be greater than 0, got {self.max_iter}",
            )


@dataclass(frozen=True, slots=True)
class BenchmarkConfig:
    """Top-level configuration composing all sub-configs."""

    run: RunConfig = field(default_factory=RunConfig)
    ba: BaConfig = field(default_factory=BaConfig)
    kronecker: KroneckerConfig = field(default_factory=KroneckerConfig)
    veracity: VeracityConfig = field(default_factory=VeracityConfig)
    generate_properties: bool = True
    seed_graph: str = "seed"  # name of the seed graph in the backend
    output_graph: str = "synth"  # name the synthetic graph is saved under
    description: str = ""
    tags: tuple[str, ...] = ()
