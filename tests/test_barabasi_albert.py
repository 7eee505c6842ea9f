"""Tests for the preferential attachment grower and its checkpoints."""

import shutil
import threading

import numpy as np
import pytest

from csb.config import BaConfig, BenchmarkConfig, RunConfig
from csb.distributions import extract_distributions
from csb.errors import ConfigurationError, GenerationCancelled, ResourceError
from csb.graph import Graph, degrees, validate_graph
from csb.synth import (
    BaSynth,
    DegreeSnapshot,
    attachment_counts,
    find_latest_checkpoint,
    grow_preferential,
    make_synthesizer,
    run_checkpoint_dir,
    save_checkpoint,
)


@pytest.fixture
def path_seed() -> Graph:
    """Directed path 0 -> 1 -> ... -> 9."""
    return Graph.from_edges(np.arange(9), np.arange(1, 10))


@pytest.fixture
def star_seed() -> Graph:
    """Hub 0 pointing at leaves 1..9."""
    return Graph.from_edges(np.zeros(9, dtype=np.int64), np.arange(1, 10))


@pytest.fixture
def flow_seed() -> Graph:
    return Graph.from_edges(
        [0, 1, 2, 3],
        [1, 2, 3, 0],
        vertex_props={"role": np.array(["a", "b", "a", "a"])},
        edge_props={"proto": np.array(["tcp", "udp", "tcp", "tcp"])},
    )


def _grow(seed_graph: Graph, iterations: int, nodes_per_iter: int, **kwargs) -> Graph:
    dists = extract_distributions(seed_graph)
    return grow_preferential(
        seed_graph, dists, kwargs.pop("generate_properties", False),
        iterations=iterations, nodes_per_iter=nodes_per_iter, **kwargs,
    )


class CountdownEvent:
    """Cancel flag that becomes set after a number of checks."""

    def __init__(self, checks: int) -> None:
        self.remaining = checks

    def is_set(self) -> bool:
        self.remaining -= 1
        return self.remaining < 0


class TestDegreeSnapshot:
    """Attachment probabilities from a frozen degree view."""

    def test_probabilities_proportional_to_degree(self, star_seed) -> None:
        snap = DegreeSnapshot.from_graph(star_seed, version=0)
        probs = snap.attachment_probabilities()
        assert probs.sum() == pytest.approx(1.0)
        assert probs[0] == pytest.approx(0.5)
        assert probs[1] == pytest.approx(1 / 18)

    def test_uniform_when_no_edges(self) -> None:
        snap = DegreeSnapshot.from_graph(Graph.from_edges([], [], vertex_ids=[0, 1, 2, 3]), 0)
        assert snap.attachment_probabilities().tolist() == [0.25] * 4

    def test_snapshot_read_only(self, star_seed) -> None:
        snap = DegreeSnapshot.from_graph(star_seed, version=3)
        assert snap.version == 3
        with pytest.raises(ValueError):
            snap.degrees[0] = 0


class TestAttachmentCounts:
    """Edges per new vertex under each policy."""

    def test_explicit_edges_per_node(self, path_seed) -> None:
        dists = extract_distributions(path_seed)
        counts = attachment_counts(4, dists, 3, "mean", np.random.default_rng(0))
        assert counts.tolist() == [3, 3, 3, 3]

    def test_mean_policy_is_at_least_one(self, path_seed) -> None:
        dists = extract_distributions(path_seed)
        counts = attachment_counts(5, dists, None, "mean", np.random.default_rng(0))
        assert counts.tolist() == [1] * 5

    def test_sample_policy_uses_seed_out_degrees(self, star_seed) -> None:
        dists = extract_distributions(star_seed)
        counts = attachment_counts(100, dists, None, "sample", np.random.default_rng(0))
        assert set(counts.tolist()) <= {0, 9}


class TestGrowth:
    """Round-based growth of the seed graph."""

    def test_path_seed_two_rounds(self, path_seed) -> None:
        grown = _grow(path_seed, iterations=2, nodes_per_iter=5)
        assert grown.num_vertices == 20
        assert grown.num_edges == 9 + 10
        assert validate_graph(grown) == []

    @pytest.mark.parametrize("iterations,nodes_per_iter", [(1, 1), (3, 7), (5, 2)])
    def test_vertex_count(self, path_seed, iterations, nodes_per_iter) -> None:
        grown = _grow(path_seed, iterations, nodes_per_iter, partitions=3)
        assert grown.num_vertices == path_seed.num_vertices + iterations * nodes_per_iter

    def test_seed_is_preserved(self, path_seed) -> None:
        grown = _grow(path_seed, iterations=3, nodes_per_iter=4)
        np.testing.assert_array_equal(grown.vertex_ids[:10], path_seed.vertex_ids)
        np.testing.assert_array_equal(grown.src[:9], path_seed.src)
        np.testing.assert_array_equal(grown.dst[:9], path_seed.dst)

    def test_new_edges_point_from_new_to_existing(self, path_seed) -> None:
        grown = _grow(path_seed, iterations=1, nodes_per_iter=6)
        new_src = grown.src[9:]
        new_dst = grown.dst[9:]
        assert np.all(new_src >= 10)
        assert np.all(new_dst < 10)

    def test_hub_attracts_attachments(self, star_seed) -> None:
        grown = _grow(star_seed, iterations=1, nodes_per_iter=200, edges_per_node=1)
        targets = np.bincount(grown.dst[9:], minlength=10)
        assert targets[0] > 60
        assert targets[0] > 3 * targets[1:].max()

    def test_hub_degree_grows_fastest(self, star_seed) -> None:
        grown = _grow(star_seed, iterations=5, nodes_per_iter=20, partitions=4)
        deg = degrees(grown)
        assert deg[0] == deg.max()

    def test_zero_iterations_returns_seed(self, path_seed) -> None:
        grown = _grow(path_seed, iterations=0, nodes_per_iter=5)
        np.testing.assert_array_equal(grown.vertex_ids, path_seed.vertex_ids)
        np.testing.assert_array_equal(grown.src, path_seed.src)

    def test_negative_iterations_rejected(self, path_seed) -> None:
        with pytest.raises(ConfigurationError):
            _grow(path_seed, iterations=-1, nodes_per_iter=5)

    def test_empty_seed_first_round_has_no_targets(self) -> None:
        first = _grow(Graph.empty(), iterations=1, nodes_per_iter=3)
        assert first.num_vertices == 3
        assert first.num_edges == 0

        # Second round attaches uniformly to the degree-0 vertices of the first
        grown = _grow(Graph.empty(), iterations=2, nodes_per_iter=3)
        assert grown.num_vertices == 6
        assert grown.num_edges == 3
        assert np.all(grown.src >= 3)
        assert np.all(grown.dst < 3)


class TestDeterminism:
    """Same seed and parameters give the same graph."""

    def test_same_seed_same_graph(self, star_seed) -> None:
        a = _grow(star_seed, iterations=4, nodes_per_iter=10, seed=7, partitions=3)
        b = _grow(star_seed, iterations=4, nodes_per_iter=10, seed=7, partitions=3, workers=3)
        np.testing.assert_array_equal(a.src, b.src)
        np.testing.assert_array_equal(a.dst, b.dst)

    def test_different_seed_differs(self, star_seed) -> None:
        a = _grow(star_seed, iterations=4, nodes_per_iter=10, seed=7)
        b = _grow(star_seed, iterations=4, nodes_per_iter=10, seed=8)
        assert not np.array_equal(a.dst, b.dst)


class TestProperties:
    """Attribute generation for new vertices and edges."""

    def test_properties_sampled_from_seed_values(self, flow_seed) -> None:
        grown = _grow(flow_seed, iterations=2, nodes_per_iter=5, generate_properties=True)
        assert set(grown.edge_props) == {"proto"}
        assert set(grown.vertex_props) == {"role"}
        assert grown.edge_props["proto"].shape[0] == grown.num_edges
        assert set(grown.edge_props["proto"].tolist()) <= {"tcp", "udp"}
        assert validate_graph(grown) == []

    def test_no_properties(self, flow_seed) -> None:
        grown = _grow(flow_seed, iterations=2, nodes_per_iter=5, generate_properties=False)
        assert grown.edge_props == {}
        assert grown.vertex_props == {}


class TestCheckpoints:
    """Resume and cancellation at round boundaries."""

    def test_resume_matches_uninterrupted_run(self, flow_seed, tmp_path) -> None:
        kwargs = dict(
            nodes_per_iter=4, seed=3, generate_properties=True,
            checkpoint_dir=tmp_path, checkpoint_interval=2, signature="run-a",
        )
        _grow(flow_seed, iterations=2, **kwargs)
        run_dir = run_checkpoint_dir(tmp_path, "run-a")
        assert find_latest_checkpoint(run_dir, "run-a").name == "round_000002"

        resumed = _grow(flow_seed, iterations=4, **kwargs)
        fresh = _grow(flow_seed, iterations=4, nodes_per_iter=4, seed=3, generate_properties=True)
        np.testing.assert_array_equal(resumed.src, fresh.src)
        np.testing.assert_array_equal(resumed.dst, fresh.dst)
        np.testing.assert_array_equal(resumed.edge_props["proto"], fresh.edge_props["proto"])

    def test_signature_mismatch_starts_over(self, path_seed, tmp_path) -> None:
        _grow(path_seed, iterations=2, nodes_per_iter=3, checkpoint_dir=tmp_path,
              checkpoint_interval=1, signature="one")
        assert find_latest_checkpoint(run_checkpoint_dir(tmp_path, "two"), "two") is None
        assert find_latest_checkpoint(run_checkpoint_dir(tmp_path, "one"), "two") is None

    def test_runs_sharing_a_directory_keep_their_checkpoints(self, path_seed, tmp_path) -> None:
        _grow(path_seed, iterations=6, nodes_per_iter=2, seed=1, checkpoint_dir=tmp_path,
              checkpoint_interval=2, signature="A")
        _grow(path_seed, iterations=2, nodes_per_iter=2, seed=2, checkpoint_dir=tmp_path,
              checkpoint_interval=2, signature="B")

        dir_a = run_checkpoint_dir(tmp_path, "A")
        dir_b = run_checkpoint_dir(tmp_path, "B")
        assert sorted(p.name for p in dir_a.glob("round_*")) == [
            "round_000004", "round_000006",
        ]
        assert find_latest_checkpoint(dir_b, "B").name == "round_000002"
        assert find_latest_checkpoint(dir_a, "A").name == "round_000006"

    def test_foreign_checkpoint_not_overwritten(self, path_seed, tmp_path) -> None:
        save_checkpoint(tmp_path, 2, path_seed, "A")
        with pytest.raises(ResourceError, match="refusing to overwrite"):
            save_checkpoint(tmp_path, 2, path_seed, "B")
        assert find_latest_checkpoint(tmp_path, "A").name == "round_000002"

    def test_checkpoint_past_target_uses_earlier_round(self, path_seed, tmp_path) -> None:
        kwargs = dict(nodes_per_iter=3, checkpoint_dir=tmp_path, checkpoint_interval=2)
        _grow(path_seed, iterations=4, **kwargs)
        short = _grow(path_seed, iterations=2, **kwargs)
        fresh = _grow(path_seed, iterations=2, nodes_per_iter=3)
        assert short.num_vertices == 10 + 2 * 3
        np.testing.assert_array_equal(short.dst, fresh.dst)

    def test_restart_keeps_later_checkpoints(self, path_seed, tmp_path) -> None:
        kwargs = dict(nodes_per_iter=2, checkpoint_dir=tmp_path, checkpoint_interval=1)
        _grow(path_seed, iterations=6, **kwargs)
        run_dir = run_checkpoint_dir(tmp_path, "")
        for path in run_dir.glob("round_*"):
            if path.name != "round_000006":
                shutil.rmtree(path)

        _grow(path_seed, iterations=3, **kwargs)
        names = sorted(p.name for p in run_dir.glob("round_*"))
        assert names == ["round_000002", "round_000003", "round_000006"]

    def test_old_checkpoints_cleaned(self, path_seed, tmp_path) -> None:
        _grow(path_seed, iterations=5, nodes_per_iter=2, checkpoint_dir=tmp_path,
              checkpoint_interval=1)
        names = sorted(p.name for p in run_checkpoint_dir(tmp_path, "").glob("round_*"))
        assert names == ["round_000004", "round_000005"]

    def test_cancel_before_start(self, path_seed) -> None:
        cancel = threading.Event()
        cancel.set()
        with pytest.raises(GenerationCancelled) as exc_info:
            _grow(path_seed, iterations=3, nodes_per_iter=2, cancel=cancel)
        assert exc_info.value.completed_rounds == 0

    def test_cancel_then_resume(self, path_seed, tmp_path) -> None:
        kwargs = dict(nodes_per_iter=3, checkpoint_dir=tmp_path, checkpoint_interval=1)
        with pytest.raises(GenerationCancelled) as exc_info:
            _grow(path_seed, iterations=5, cancel=CountdownEvent(3), **kwargs)
        assert exc_info.value.completed_rounds == 3

        resumed = _grow(path_seed, iterations=5, **kwargs)
        fresh = _grow(path_seed, iterations=5, nodes_per_iter=3)
        np.testing.assert_array_equal(resumed.dst, fresh.dst)


class TestBaSynth:
    """Configuration-driven BA synthesizer."""

    def test_synthesize_from_config(self, path_seed) -> None:
        config = BenchmarkConfig(
            run=RunConfig(partitions=2, seed=5),
            ba=BaConfig(iterations=3, nodes_per_iter=4),
        )
        synth = make_synthesizer("ba", config)
        assert isinstance(synth, BaSynth)
        graph = synth.synthesize(path_seed, extract_distributions(path_seed), False)
        assert graph.num_vertices == 10 + 12

    def test_unknown_mode(self) -> None:
        with pytest.raises(ConfigurationError, match="unknown synthesis mode"):
            make_synthesizer("er", BenchmarkConfig())
