"""Tests for the columnar graph model, structural operations and partitioning."""

import numpy as np
import pytest

from csb.distributions import vertex_degrees
from csb.graph import (
    Graph,
    adjacency,
    append,
    degrees,
    map_partitions,
    split_range,
    validate_graph,
    vertex_index,
)


@pytest.fixture
def path_graph() -> Graph:
    """0 -> 1 -> 2 -> 3 plus an isolated vertex 7."""
    return Graph.from_edges([0, 1, 2], [1, 2, 3], vertex_ids=[0, 1, 2, 3, 7])


class TestGraphConstruction:
    """Graph construction and immutability."""

    def test_counts(self, path_graph: Graph) -> None:
        assert path_graph.num_vertices == 5
        assert path_graph.num_edges == 3

    def test_vertex_set_inferred_from_edges(self) -> None:
        g = Graph.from_edges([5, 3], [3, 9])
        assert g.vertex_ids.tolist() == [3, 5, 9]

    def test_arrays_are_read_only(self, path_graph: Graph) -> None:
        with pytest.raises(ValueError):
            path_graph.src[0] = 5

    def test_construction_copies_writable_input(self) -> None:
        src = np.array([0, 1])
        g = Graph.from_edges(src, [1, 0])
        src[0] = 1
        assert g.src[0] == 0

    def test_empty_graph(self) -> None:
        g = Graph.empty()
        assert g.num_vertices == 0
        assert g.num_edges == 0
        assert g.next_vertex_id() == 0

    def test_next_vertex_id(self, path_graph: Graph) -> None:
        assert path_graph.next_vertex_id() == 8

    def test_without_properties(self) -> None:
        g = Graph.from_edges([0], [1], edge_props={"proto": np.array(["tcp"])})
        assert g.without_properties().edge_props == {}


class TestOps:
    """Indexing, degrees, adjacency and append."""

    def test_vertex_index_unsorted_ids(self) -> None:
        g = Graph.from_edges([], [], vertex_ids=[30, 10, 20])
        assert vertex_index(g, np.array([10, 20, 30])).tolist() == [1, 2, 0]

    def test_id_order_cached_and_read_only(self) -> None:
        g = Graph.from_edges([], [], vertex_ids=[30, 10, 20])
        assert g.id_order is g.id_order
        assert g.sorted_ids.tolist() == [10, 20, 30]
        assert not g.id_order.flags.writeable

    def test_partitioned_degrees_sort_ids_once(self, monkeypatch) -> None:
        g = Graph.from_edges(np.arange(50), np.arange(1, 51)[::-1])
        calls = []
        argsort = np.argsort

        def counting_argsort(*args, **kwargs):
            calls.append(1)
            return argsort(*args, **kwargs)

        monkeypatch.setattr(np, "argsort", counting_argsort)
        out_deg, in_deg = vertex_degrees(g, partitions=8)
        assert len(calls) == 1
        assert out_deg.sum() == in_deg.sum() == 50

    def test_degrees(self, path_graph: Graph) -> None:
        assert degrees(path_graph, "out").tolist() == [1, 1, 1, 0, 0]
        assert degrees(path_graph, "in").tolist() == [0, 1, 1, 1, 0]
        assert degrees(path_graph, "both").tolist() == [1, 2, 2, 1, 0]

    def test_self_loop_counts_twice(self) -> None:
        g = Graph.from_edges([0], [0])
        assert degrees(g).tolist() == [2]

    def test_degrees_invalid_direction(self, path_graph: Graph) -> None:
        with pytest.raises(ValueError):
            degrees(path_graph, "sideways")

    def test_adjacency_counts_multi_edges(self) -> None:
        g = Graph.from_edges([0, 0, 1], [1, 1, 0])
        adj = adjacency(g).toarray()
        assert adj.tolist() == [[0.0, 2.0], [1.0, 0.0]]

    def test_append_returns_new_graph(self, path_graph: Graph) -> None:
        grown = append(path_graph, [8], [8], [0])
        assert grown.num_vertices == 6
        assert grown.num_edges == 4
        assert path_graph.num_vertices == 5

    def test_append_keeps_shared_columns_only(self) -> None:
        g = Graph.from_edges(
            [0], [1],
            edge_props={"a": np.array([1]), "b": np.array([2])},
        )
        grown = append(g, [2], [2], [0], edge_props={"a": np.array([3])})
        assert set(grown.edge_props) == {"a"}
        assert grown.edge_props["a"].tolist() == [1, 3]


class TestValidation:
    """validate_graph reports every broken invariant."""

    def test_valid_graph(self, path_graph: Graph) -> None:
        assert validate_graph(path_graph) == []

    def test_dangling_endpoint(self) -> None:
        g = Graph(
            vertex_ids=np.array([0, 1]),
            src=np.array([0]),
            dst=np.array([5]),
        )
        errors = validate_graph(g)
        assert len(errors) == 1
        assert "missing vertices" in errors[0]

    def test_duplicate_ids(self) -> None:
        g = Graph(vertex_ids=np.array([0, 0]), src=np.array([0]), dst=np.array([0]))
        assert any("Duplicate" in e for e in validate_graph(g))

    def test_misaligned_column(self) -> None:
        g = Graph(
            vertex_ids=np.array([0, 1]),
            src=np.array([0]),
            dst=np.array([1]),
            edge_props={"bytes": np.array([1, 2])},
        )
        assert any("bytes" in e for e in validate_graph(g))


class TestPartitions:
    """Partition splitting and ordered mapping."""

    def test_split_covers_range(self) -> None:
        slices = split_range(10, 3)
        assert slices[0][0] == 0
        assert slices[-1][1] == 10
        assert sum(end - start for start, end in slices) == 10

    def test_split_never_empty(self) -> None:
        slices = split_range(3, 8)
        assert len(slices) == 3
        assert all(end > start for start, end in slices)

    def test_split_empty_range(self) -> None:
        assert split_range(0, 4) == []

    def test_map_partitions_preserves_order_with_workers(self) -> None:
        tasks = list(range(20))
        assert map_partitions(lambda x: x * x, tasks, workers=4) == [x * x for x in tasks]
