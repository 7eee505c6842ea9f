"""Tests for the fs and text graph persistence backends."""

import numpy as np
import pytest

from csb.errors import ConfigurationError, ResourceError
from csb.graph import Graph, NpzPersistence, TextPersistence, get_persistence
from csb.graph.persistence import write_npz_graph


@pytest.fixture
def attributed_graph() -> Graph:
    return Graph.from_edges(
        [0, 1, 2, 2],
        [1, 2, 0, 3],
        vertex_ids=[0, 1, 2, 3, 9],
        vertex_props={"role": np.array(["host", "host", "router", "host", "dns"])},
        edge_props={
            "bytes": np.array([10, 250, 3, 42]),
            "duration": np.array([0.5, 1.25, 0.0, 3.0]),
            "ok": np.array([True, False, True, True]),
        },
    )


def _assert_same_graph(a: Graph, b: Graph) -> None:
    np.testing.assert_array_equal(a.vertex_ids, b.vertex_ids)
    np.testing.assert_array_equal(a.src, b.src)
    np.testing.assert_array_equal(a.dst, b.dst)
    assert set(a.vertex_props) == set(b.vertex_props)
    assert set(a.edge_props) == set(b.edge_props)
    for name in a.vertex_props:
        np.testing.assert_array_equal(a.vertex_props[name], b.vertex_props[name])
    for name in a.edge_props:
        np.testing.assert_array_equal(a.edge_props[name], b.edge_props[name])


@pytest.mark.parametrize("backend", ["fs", "text"])
class TestRoundTrip:
    """Saved graphs load back with identical structure and attributes."""

    def test_round_trip(self, backend, tmp_path, attributed_graph) -> None:
        store = get_persistence(backend, tmp_path)
        store.save_graph(attributed_graph, "seed")
        loaded = store.load_graph("seed")
        _assert_same_graph(attributed_graph, loaded)
        assert loaded.edge_props["ok"].dtype == np.bool_

    def test_round_trip_without_edges(self, backend, tmp_path) -> None:
        g = Graph.from_edges([], [], vertex_ids=[0, 1, 2])
        store = get_persistence(backend, tmp_path)
        store.save_graph(g, "isolated")
        loaded = store.load_graph("isolated")
        assert loaded.num_vertices == 3
        assert loaded.num_edges == 0

    def test_overwrite_off_raises(self, backend, tmp_path, attributed_graph) -> None:
        store = get_persistence(backend, tmp_path)
        store.save_graph(attributed_graph, "seed")
        with pytest.raises(ResourceError, match="already exists"):
            store.save_graph(attributed_graph, "seed")

    def test_overwrite_on_replaces(self, backend, tmp_path, attributed_graph) -> None:
        store = get_persistence(backend, tmp_path)
        store.save_graph(attributed_graph, "seed")
        smaller = Graph.from_edges([0], [1])
        store.save_graph(smaller, "seed", overwrite=True)
        assert store.load_graph("seed").num_edges == 1

    def test_missing_graph_raises(self, backend, tmp_path) -> None:
        store = get_persistence(backend, tmp_path)
        with pytest.raises(ResourceError, match="not found"):
            store.load_graph("nope")

    def test_no_staging_left_behind(self, backend, tmp_path, attributed_graph) -> None:
        store = get_persistence(backend, tmp_path)
        store.save_graph(attributed_graph, "seed")
        assert [p.name for p in tmp_path.iterdir()] == ["seed"]


@pytest.fixture
def dangling_graph() -> Graph:
    """Edge 0 -> 3 where vertex 3 falls in the id gap between 2 and 4."""
    return Graph(
        vertex_ids=np.array([0, 2, 4]),
        src=np.array([0]),
        dst=np.array([3]),
    )


class TestEndpointIntegrity:
    """Graphs whose edges reference missing vertices are rejected at the store."""

    def test_load_rejects_endpoint_in_id_gap(self, tmp_path, dangling_graph) -> None:
        (tmp_path / "gap").mkdir()
        write_npz_graph(tmp_path / "gap", dangling_graph)
        with pytest.raises(ResourceError, match="missing vertices"):
            get_persistence("fs", tmp_path).load_graph("gap")

    def test_load_rejects_endpoint_past_max_id(self, tmp_path) -> None:
        store = get_persistence("text", tmp_path)
        store.save_graph(Graph.from_edges([0, 1], [1, 2]), "seed")
        edges = tmp_path / "seed" / "edges.tsv"
        edges.write_text("src\tdst\n0\t1\n1\t7\n")
        with pytest.raises(ResourceError, match=r"^\[persistence\].*missing vertices"):
            store.load_graph("seed")

    @pytest.mark.parametrize("backend", ["fs", "text"])
    def test_save_rejects_dangling_graph(self, backend, tmp_path, dangling_graph) -> None:
        store = get_persistence(backend, tmp_path)
        with pytest.raises(ResourceError, match="cannot save invalid graph"):
            store.save_graph(dangling_graph, "bad")
        assert not store.exists("bad")
        assert list(tmp_path.iterdir()) == []


class TestBackendSelection:
    """Backend names map to their implementations."""

    def test_known_backends(self, tmp_path) -> None:
        assert isinstance(get_persistence("fs", tmp_path), NpzPersistence)
        assert isinstance(get_persistence("text", tmp_path), TextPersistence)

    def test_unknown_backend(self, tmp_path) -> None:
        with pytest.raises(ConfigurationError, match="unsupported backend"):
            get_persistence("neo4j", tmp_path)

    @pytest.mark.parametrize("name", ["", "a/b", ".hidden"])
    def test_invalid_graph_name(self, tmp_path, name) -> None:
        with pytest.raises(ConfigurationError):
            get_persistence("fs", tmp_path).load_graph(name)

    def test_exists(self, tmp_path) -> None:
        store = get_persistence("fs", tmp_path)
        assert not store.exists("seed")
        store.save_graph(Graph.from_edges([0], [1]), "seed")
        assert store.exists("seed")
