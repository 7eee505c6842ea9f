"""Graph persistence backends with a load-by-name / save-by-name contract.

Two interchangeable backends are provided:

- ``fs``: NpzPersistence, one compressed columnar numpy archive per graph
- ``text``: TextPersistence, tab-separated vertex and edge files

Both store a metadata.json alongside the data recording counts, column
dtypes and a timestamp. Saves go to a temporary sibling directory that is
renamed into place, so a failed or interrupted save never leaves a
half-written graph under the target name.
"""

import json
import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path
from typing import Protocol

import numpy as np

from csb.errors import ConfigurationError, Phase, ResourceError
from csb.graph.ops import validate_graph
from csb.graph.types import Graph

log = logging.getLogger(__name__)

METADATA_FILE = "metadata.json"
NPZ_FILE = "graph.npz"
VERTEX_FILE = "vertices.tsv"
EDGE_FILE = "edges.tsv"


class GraphPersistence(Protocol):
    """Load and save graphs by name; backend choice is opaque to callers."""

    def load_graph(self, name: str) -> Graph: ...

    def save_graph(self, graph: Graph, name: str, overwrite: bool = False) -> Path: ...


def _storable(col: np.ndarray) -> np.ndarray:
    """Object columns are stored as unicode so archives never need pickle."""
    if col.dtype == object:
        return col.astype(str)
    return col


def _metadata(graph: Graph, backend: str) -> dict:
    return {
        "backend": backend,
        "num_vertices": graph.num_vertices,
        "num_edges": graph.num_edges,
        "vertex_fields": {k: _storable(v).dtype.str for k, v in graph.vertex_props.items()},
        "edge_fields": {k: _storable(v).dtype.str for k, v in graph.edge_props.items()},
        "timestamp": datetime.now(timezone.utc).isoformat(),
    }


def write_npz_graph(directory: Path, graph: Graph) -> None:
    """Write a graph as graph.npz + metadata.json into an existing directory."""
    arrays = {
        "vertex_ids": graph.vertex_ids,
        "src": graph.src,
        "dst": graph.dst,
    }
    for name, col in graph.vertex_props.items():
        arrays[f"v.{name}"] = _storable(col)
    for name, col in graph.edge_props.items():
        arrays[f"e.{name}"] = _storable(col)
    np.savez_compressed(directory / NPZ_FILE, **arrays)
    with open(directory / METADATA_FILE, "w") as f:
        json.dump(_metadata(graph, "fs"), f, indent=2)


def read_npz_graph(directory: Path) -> Graph:
    """Read a graph written by write_npz_graph()."""
    with open(directory / METADATA_FILE) as f:
        metadata = json.load(f)
    with np.load(directory / NPZ_FILE, allow_pickle=False) as data:
        return Graph(
            vertex_ids=data["vertex_ids"],
            src=data["src"],
            dst=data["dst"],
            vertex_props={k: data[f"v.{k}"] for k in metadata["vertex_fields"]},
            edge_props={k: data[f"e.{k}"] for k in metadata["edge_fields"]},
        )


def _to_text(columns: list[np.ndarray], n_rows: int) -> np.ndarray:
    if not columns:
        return np.zeros((n_rows, 0), dtype=str)
    return np.column_stack([np.asarray(c).astype(str) for c in columns])


def _from_text(col: np.ndarray, dtype: str) -> np.ndarray:
    target = np.dtype(dtype)
    if target.kind == "b":
        return col == "True"
    return col.astype(target)


def _read_table(path: Path, n_rows: int, n_cols: int) -> np.ndarray:
    if n_rows == 0:
        return np.zeros((0, n_cols), dtype=str)
    return np.loadtxt(
        path, dtype=str, delimiter="\t", skiprows=1, ndmin=2, comments=None
    )


def _check_valid(graph: Graph, name: str, action: str) -> None:
    errors = validate_graph(graph)
    if errors:
        raise ResourceError(
            Phase.PERSISTENCE,
            f"cannot {action} invalid graph {name!r}: {'; '.join(errors)}",
        )


class _DirectoryPersistence:
    """Shared naming, overwrite and atomic-rename logic for both backends."""

    backend = ""

    def __init__(self, root: str | Path) -> None:
        self.root = Path(root)

    def graph_path(self, name: str) -> Path:
        if not name or "/" in name or name.startswith("."):
            raise ConfigurationError(
                Phase.PERSISTENCE, f"invalid graph name {name!r}"
            )
        return self.root / name

    def exists(self, name: str) -> bool:
        return (self.graph_path(name) / METADATA_FILE).exists()

    def save_graph(self, graph: Graph, name: str, overwrite: bool = False) -> Path:
        target = self.graph_path(name)
        if target.exists() and not overwrite:
            raise ResourceError(
                Phase.PERSISTENCE,
                f"graph {name!r} already exists at {target} and overwrite is off",
            )
        _check_valid(graph, name, "save")
        self.root.mkdir(parents=True, exist_ok=True)
        staging = self.root / f".{name}.tmp-{os.getpid()}"
        if staging.exists():
            shutil.rmtree(staging)
        staging.mkdir()
        try:
            self._write(staging, graph)
            if target.exists():
                shutil.rmtree(target)
            os.replace(staging, target)
        except OSError as exc:
            shutil.rmtree(staging, ignore_errors=True)
            raise ResourceError(
                Phase.PERSISTENCE, f"failed to save graph {name!r}: {exc}"
            ) from exc
        log.info(
            "Saved graph %r (%d vertices, %d edges) to %s",
            name, graph.num_vertices, graph.num_edges, target,
        )
        return target

    def load_graph(self, name: str) -> Graph:
        path = self.graph_path(name)
        if not (path / METADATA_FILE).exists():
            raise ResourceError(
                Phase.PERSISTENCE, f"graph {name!r} not found under {self.root}"
            )
        try:
            graph = self._read(path)
        except (OSError, KeyError, ValueError) as exc:
            raise ResourceError(
                Phase.PERSISTENCE, f"failed to load graph {name!r}: {exc}"
            ) from exc
        _check_valid(graph, name, "load")
        log.info(
            "Loaded graph %r (%d vertices, %d edges) from %s",
            name, graph.num_vertices, graph.num_edges, path,
        )
        return graph

    def _write(self, directory: Path, graph: Graph) -> None:
        raise NotImplementedError

    def _read(self, directory: Path) -> Graph:
        raise NotImplementedError


class NpzPersistence(_DirectoryPersistence):
    """Columnar store: one compressed .npz archive per graph."""

    backend = "fs"

    def _write(self, directory: Path, graph: Graph) -> None:
        write_npz_graph(directory, graph)

    def _read(self, directory: Path) -> Graph:
        return read_npz_graph(directory)


class TextPersistence(_DirectoryPersistence):
    """Flat-file store: tab-separated vertices.tsv and edges.tsv with headers.

    String attribute values must not contain tabs or newlines.
    """

    backend = "text"

    def _write(self, directory: Path, graph: Graph) -> None:
        vertex_fields = list(graph.vertex_props)
        edge_fields = list(graph.edge_props)
        vertices = _to_text(
            [graph.vertex_ids] + [graph.vertex_props[k] for k in vertex_fields],
            graph.num_vertices,
        )
        edges = _to_text(
            [graph.src, graph.dst] + [graph.edge_props[k] for k in edge_fields],
            graph.num_edges,
        )
        np.savetxt(
            directory / VERTEX_FILE, vertices, fmt="%s", delimiter="\t",
            header="\t".join(["id"] + vertex_fields), comments="",
        )
        np.savetxt(
            directory / EDGE_FILE, edges, fmt="%s", delimiter="\t",
            header="\t".join(["src", "dst"] + edge_fields), comments="",
        )
        metadata = _metadata(graph, self.backend)
        with open(directory / METADATA_FILE, "w") as f:
            json.dump(metadata, f, indent=2)

    def _read(self, directory: Path) -> Graph:
        with open(directory / METADATA_FILE) as f:
            metadata = json.load(f)
        vertex_fields = metadata["vertex_fields"]
        edge_fields = metadata["edge_fields"]
        vertices = _read_table(
            directory / VERTEX_FILE, metadata["num_vertices"], 1 + len(vertex_fields)
        )
        edges = _read_table(
            directory / EDGE_FILE, metadata["num_edges"], 2 + len(edge_fields)
        )
        return Graph(
            vertex_ids=vertices[:, 0].astype(np.int64),
            src=edges[:, 0].astype(np.int64),
            dst=edges[:, 1].astype(np.int64),
            vertex_props={
                k: _from_text(vertices[:, 1 + i], dtype)
                for i, (k, dtype) in enumerate(vertex_fields.items())
            },
            edge_props={
                k: _from_text(edges[:, 2 + i], dtype)
                for i, (k, dtype) in enumerate(edge_fields.items())
            },
        )


_BACKENDS: dict[str, type[_DirectoryPersistence]] = {
    "fs": NpzPersistence,
    "text": TextPersistence,
}


def get_persistence(backend: str, root: str | Path) -> GraphPersistence:
    """Instantiate the persistence backend selected by configuration.

    Raises:
        ConfigurationError: If the backend name is not supported.
    """
    try:
        cls = _BACKENDS[backend]
    except KeyError:
        raise ConfigurationError(
            Phase.PERSISTENCE,
            f"unsupported backend {backend!r}, expected one of {sorted(_BACKENDS)}",
        ) from None
    return cls(root)
