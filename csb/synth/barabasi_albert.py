"""Barabasi-Albert style preferential attachment grower.

Grows a synthetic graph from the seed graph in bulk-synchronous rounds:

1. Take an immutable DegreeSnapshot of the current graph (the round barrier)
2. Split the round's new vertices into partitions
3. Each partition draws attachment targets with probability proportional to
   snapshot degree, using its own (seed, round, partition) generator
4. Concatenate the partition results in order and append them atomically

Edges added within a round never influence sampling in the same round.
"""

import logging
import threading
from dataclasses import dataclass
from pathlib import Path

import numpy as np

from csb.config.experiment import BenchmarkConfig
from csb.config.hashing import growth_config_hash
from csb.distributions.extract import vertex_degrees
from csb.distributions.types import SeedDistributions
from csb.errors import ConfigurationError, GenerationCancelled, Phase
from csb.graph.ops import append
from csb.graph.partition import map_partitions, split_range
from csb.graph.types import Graph
from csb.reproducibility.seed import partition_rng
from csb.synth.checkpoint import (
    cleanup_old_checkpoints,
    find_latest_checkpoint,
    load_checkpoint,
    run_checkpoint_dir,
    save_checkpoint,
)
from csb.synth.properties import prepare_seed, sample_columns

log = logging.getLogger(__name__)

# RNG stream tags keep seed preparation and round sampling independent
_PREPARE_STREAM = 0
_ROUND_STREAM = 1


@dataclass(frozen=True, eq=False)
class DegreeSnapshot:
    """Degrees of every vertex at a round boundary.

    ``version`` is the number of rounds completed when the snapshot was
    taken. Arrays are read-only; a new snapshot is built for every round.
    """

    version: int
    vertex_ids: np.ndarray
    degrees: np.ndarray

    @classmethod
    def from_graph(
        cls, graph: Graph, version: int, partitions: int = 1, workers: int = 1
    ) -> "DegreeSnapshot":
        out_deg, in_deg = vertex_degrees(graph, partitions, workers)
        degrees = out_deg + in_deg
        degrees.setflags(write=False)
        return cls(version=version, vertex_ids=graph.vertex_ids, degrees=degrees)

    @property
    def size(self) -> int:
        return int(self.vertex_ids.shape[0])

    def attachment_probabilities(self) -> np.ndarray:
        """Degree-proportional probabilities; uniform if every degree is 0."""
        total = self.degrees.sum()
        if total == 0:
            return np.full(self.size, 1.0 / self.size)
        return self.degrees / total


def attachment_counts(
    n_new: int,
    dists: SeedDistributions,
    edges_per_node: int | None,
    attachment: str,
    rng: np.random.Generator,
) -> np.ndarray:
    """Number of edges each new vertex attaches."""
    if edges_per_node is not None:
        return np.full(n_new, edges_per_node, dtype=np.int64)
    if attachment == "sample" and not dists.out_degree.is_empty:
        return dists.out_degree.sample(rng, n_new).astype(np.int64)
    m = max(1, int(round(dists.average_degree())))
    return np.full(n_new, m, dtype=np.int64)


def _grow_round(
    graph: Graph,
    snapshot: DegreeSnapshot,
    round_idx: int,
    dists: SeedDistributions,
    generate_properties: bool,
    nodes_per_iter: int,
    edges_per_node: int | None,
    attachment: str,
    seed: int,
    partitions: int,
    workers: int,
) -> Graph:
    """Run one round against a fixed snapshot and return the grown graph."""
    first_id = graph.next_vertex_id()
    probs = snapshot.attachment_probabilities() if snapshot.size > 0 else None
    slices = split_range(nodes_per_iter, partitions)

    def attach(task: tuple[int, tuple[int, int]]):
        part_idx, (start, end) = task
        rng = partition_rng(seed, _ROUND_STREAM, round_idx, part_idx)
        new_ids = np.arange(first_id + start, first_id + end, dtype=np.int64)
        counts = attachment_counts(end - start, dists, edges_per_node, attachment, rng)
        if probs is None:
            counts = np.zeros_like(counts)
        total = int(counts.sum())
        src = np.repeat(new_ids, counts)
        if total > 0:
            dst = rng.choice(snapshot.vertex_ids, size=total, p=probs)
        else:
            dst = np.zeros(0, dtype=np.int64)
        vertex_props: dict[str, np.ndarray] = {}
        edge_props: dict[str, np.ndarray] = {}
        if generate_properties:
            vertex_props = sample_columns(dists.vertex_fields, new_ids.shape[0], rng)
            edge_props = sample_columns(dists.edge_fields, total, rng)
        return new_ids, src, dst, vertex_props, edge_props

    parts = map_partitions(attach, list(enumerate(slices)), workers)

    # Barrier: the whole round is applied at once
    vertex_fields = list(graph.vertex_props)
    edge_fields = list(graph.edge_props)
    return append(
        graph,
        vertex_ids=np.concatenate([p[0] for p in parts]),
        src=np.concatenate([p[1] for p in parts]),
        dst=np.concatenate([p[2] for p in parts]),
        vertex_props={
            k: np.concatenate([p[3][k] for p in parts])
            for k in vertex_fields
            if all(k in p[3] for p in parts)
        },
        edge_props={
            k: np.concatenate([p[4][k] for p in parts])
            for k in edge_fields
            if all(k in p[4] for p in parts)
        },
    )


def grow_preferential(
    seed_graph: Graph,
    dists: SeedDistributions,
    generate_properties: bool,
    iterations: int,
    nodes_per_iter: int,
    edges_per_node: int | None = None,
    attachment: str = "mean",
    seed: int = 42,
    partitions: int = 1,
    workers: int = 1,
    checkpoint_dir: Path | str | None = None,
    checkpoint_interval: int = 10,
    signature: str = "",
    cancel: threading.Event | None = None,
) -> Graph:
    """Grow a graph by preferential attachment for exactly ``iterations`` rounds.

    Args:
        seed_graph: Initial population; its vertices and edges are kept.
        dists: Seed statistics (average degree, out-degree, attributes).
        generate_properties: Sample attributes for new vertices and edges.
        iterations: Number of rounds; 0 returns the prepared seed.
        nodes_per_iter: New vertices per round.
        edges_per_node: Fixed edges per new vertex, or None for the policy.
        attachment: "mean" or "sample" edge-count policy.
        seed: Master seed.
        partitions: Partitions the new vertices of a round are split into.
        workers: Worker threads processing partitions.
        checkpoint_dir: Directory for round checkpoints, or None.
        checkpoint_interval: Rounds between checkpoints.
        signature: Run signature stored in and matched against checkpoints.
        cancel: Event checked at every round boundary.

    Returns:
        The grown graph with ``|V_seed| + iterations * nodes_per_iter`` vertices.

    Raises:
        ConfigurationError: On negative counts, before any work.
        GenerationCancelled: If ``cancel`` is set at a round boundary.
    """
    if iterations < 0:
        raise ConfigurationError(
            Phase.GENERATION, f"iteration count must not be negative, got {iterations}"
        )
    if nodes_per_iter < 1:
        raise ConfigurationError(
            Phase.GENERATION, f"nodes_per_iter must be greater than 0, got {nodes_per_iter}"
        )

    graph: Graph | None = None
    completed = 0
    run_dir = None
    if checkpoint_dir is not None:
        run_dir = run_checkpoint_dir(checkpoint_dir, signature)
        latest = find_latest_checkpoint(run_dir, signature, max_rounds=iterations)
        if latest is not None:
            completed, graph = load_checkpoint(latest)
    if graph is None:
        graph = prepare_seed(
            seed_graph, dists, generate_properties,
            partition_rng(seed, _PREPARE_STREAM),
        )

    for round_idx in range(completed, iterations):
        if cancel is not None and cancel.is_set():
            raise GenerationCancelled(round_idx)

        snapshot = DegreeSnapshot.from_graph(graph, round_idx, partitions, workers)
        graph = _grow_round(
            graph, snapshot, round_idx, dists, generate_properties,
            nodes_per_iter, edges_per_node, attachment, seed, partitions, workers,
        )
        log.debug(
            "Round %d: %d vertices, %d edges",
            round_idx + 1, graph.num_vertices, graph.num_edges,
        )

        done = round_idx + 1
        if run_dir is not None and done % checkpoint_interval == 0:
            save_checkpoint(run_dir, done, graph, signature)
            cleanup_old_checkpoints(run_dir, signature, up_to=done)

    log.info(
        "Preferential attachment finished after %d rounds: %d vertices, %d edges",
        iterations, graph.num_vertices, graph.num_edges,
    )
    return graph


class BaSynth:
    """Synthesizer growing the seed by preferential attachment."""

    mode = "ba"

    def __init__(self, config: BenchmarkConfig) -> None:
        self.config = config

    def synthesize(
        self,
        seed_graph: Graph,
        seed_dists: SeedDistributions,
        generate_properties: bool,
        cancel: threading.Event | None = None,
    ) -> Graph:
        run, ba = self.config.run, self.config.ba
        log.info(
            "BA synthesis: %d iterations x %d nodes, %d partitions",
            ba.iterations, ba.nodes_per_iter, run.partitions,
        )
        return grow_preferential(
            seed_graph,
            seed_dists,
            generate_properties,
            iterations=ba.iterations,
            nodes_per_iter=ba.nodes_per_iter,
            edges_per_node=ba.edges_per_node,
            attachment=ba.attachment,
            seed=run.seed,
            partitions=run.partitions,
            workers=run.workers,
            checkpoint_dir=run.checkpoint_dir,
            checkpoint_interval=run.checkpoint_interval,
            signature=growth_config_hash(self.config),
            cancel=cancel,
        )
