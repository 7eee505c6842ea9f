"""Columnar graph data structure shared by generators, evaluator and persistence."""

from dataclasses import dataclass, field
from functools import cached_property

import numpy as np


def _frozen(arr: np.ndarray) -> np.ndarray:
    arr = np.asarray(arr)
    if arr.flags.writeable:
        arr = arr.copy()
        arr.setflags(write=False)
    return arr


@dataclass(frozen=True, eq=False)
class Graph:
    """Immutable directed multigraph stored column-wise.

    Vertices are identified by unique int64 ids; edges are parallel
    ``src``/``dst`` id arrays. Vertex and edge attributes (VertexData and
    EdgeData) are one numpy column per field name, aligned with
    ``vertex_ids`` and ``src`` respectively. All arrays are made read-only
    on construction; growth always builds a new Graph.
    """

    vertex_ids: np.ndarray  # int64 array of shape (n_vertices,)
    src: np.ndarray  # int64 array of shape (n_edges,)
    dst: np.ndarray  # int64 array of shape (n_edges,)
    vertex_props: dict[str, np.ndarray] = field(default_factory=dict)
    edge_props: dict[str, np.ndarray] = field(default_factory=dict)

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "vertex_ids", _frozen(np.asarray(self.vertex_ids, dtype=np.int64))
        )
        object.__setattr__(self, "src", _frozen(np.asarray(self.src, dtype=np.int64)))
        object.__setattr__(self, "dst", _frozen(np.asarray(self.dst, dtype=np.int64)))
        object.__setattr__(
            self, "vertex_props", {k: _frozen(v) for k, v in self.vertex_props.items()}
        )
        object.__setattr__(
            self, "edge_props", {k: _frozen(v) for k, v in self.edge_props.items()}
        )

    @property
    def num_vertices(self) -> int:
        return int(self.vertex_ids.shape[0])

    @property
    def num_edges(self) -> int:
        return int(self.src.shape[0])

    @cached_property
    def id_order(self) -> np.ndarray:
        """Permutation sorting ``vertex_ids``, computed once per graph."""
        return _frozen(np.argsort(self.vertex_ids, kind="stable"))

    @cached_property
    def sorted_ids(self) -> np.ndarray:
        return _frozen(self.vertex_ids[self.id_order])

    @classmethod
    def from_edges(
        cls,
        src,
        dst,
        vertex_ids=None,
        vertex_props: dict[str, np.ndarray] | None = None,
        edge_props: dict[str, np.ndarray] | None = None,
    ) -> "Graph":
        """Build a graph from edge endpoint lists.

        When ``vertex_ids`` is omitted the vertex set is the sorted union
        of all endpoints.
        """
        src = np.asarray(src, dtype=np.int64).ravel()
        dst = np.asarray(dst, dtype=np.int64).ravel()
        if vertex_ids is None:
            vertex_ids = np.union1d(src, dst)
        return cls(
            vertex_ids=np.asarray(vertex_ids, dtype=np.int64).ravel(),
            src=src,
            dst=dst,
            vertex_props=dict(vertex_props or {}),
            edge_props=dict(edge_props or {}),
        )

    @classmethod
    def empty(cls) -> "Graph":
        none = np.zeros(0, dtype=np.int64)
        return cls(vertex_ids=none, src=none, dst=none)

    def without_properties(self) -> "Graph":
        """Same structure with every attribute column dropped."""
        return Graph(vertex_ids=self.vertex_ids, src=self.src, dst=self.dst)

    def next_vertex_id(self) -> int:
        """Smallest id strictly greater than every existing vertex id."""
        if self.num_vertices == 0:
            return 0
        return int(self.vertex_ids.max()) + 1
