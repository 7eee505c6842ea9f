"""Generator contract and configuration-driven selection."""

import threading
from typing import Protocol

from csb.config.experiment import BenchmarkConfig
from csb.distributions.types import SeedDistributions
from csb.errors import ConfigurationError, Phase
from csb.graph.types import Graph
from csb.synth.barabasi_albert import BaSynth
from csb.synth.kronecker import KroSynth

MODES = ("ba", "kro")


class GraphSynth(Protocol):
    """A generative model producing a synthetic graph from a seed."""

    mode: str

    def synthesize(
        self,
        seed_graph: Graph,
        seed_dists: SeedDistributions,
        generate_properties: bool,
        cancel: threading.Event | None = None,
    ) -> Graph: ...


def make_synthesizer(mode: str, config: BenchmarkConfig) -> GraphSynth:
    """Build the synthesizer for ``mode``.

    Construction validates everything the generator needs (for Kronecker,
    loading the seed matrix), so configuration and resource errors surface
    before any generation work starts.

    Raises:
        ConfigurationError: If the mode is unknown.
    """
    if mode == "ba":
        return BaSynth(config)
    if mode == "kro":
        return KroSynth(config)
    raise ConfigurationError(
        Phase.GENERATION, f"unknown synthesis mode {mode!r}, expected one of {MODES}"
    )
