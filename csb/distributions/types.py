"""Histogram containers for empirical seed statistics."""

from dataclasses import dataclass, field
from typing import Any

import numpy as np


@dataclass(frozen=True, eq=False)
class Distribution:
    """Immutable histogram mapping observed value -> count.

    ``values`` is sorted ascending with no duplicates and ``counts`` is
    aligned with it. Built by grouping and counting, never by position, so
    the same multiset of observations always yields the same histogram.
    """

    values: np.ndarray  # sorted unique observed values (numeric or str)
    counts: np.ndarray  # int64 count per value

    def __post_init__(self) -> None:
        values = np.array(self.values)
        counts = np.array(self.counts, dtype=np.int64)
        values.setflags(write=False)
        counts.setflags(write=False)
        object.__setattr__(self, "values", values)
        object.__setattr__(self, "counts", counts)

    @classmethod
    def from_samples(cls, samples) -> "Distribution":
        samples = np.asarray(samples)
        if samples.dtype == object:
            samples = samples.astype(str)
        values, counts = np.unique(samples, return_counts=True)
        return cls(values=values, counts=counts)

    @property
    def total(self) -> int:
        return int(self.counts.sum())

    @property
    def is_empty(self) -> bool:
        return self.total == 0

    def probabilities(self) -> np.ndarray:
        """Probability mass per value; sums to 1.0 for a non-empty histogram."""
        if self.is_empty:
            return np.zeros(0, dtype=np.float64)
        return self.counts / self.counts.sum()

    def mean(self) -> float:
        if self.is_empty:
            return 0.0
        return float(np.dot(self.values, self.counts) / self.total)

    def as_samples(self) -> np.ndarray:
        """Expand back into one observation per count."""
        return np.repeat(self.values, self.counts)

    def sample(self, rng: np.random.Generator, size: int) -> np.ndarray:
        """Draw ``size`` values independently with the histogram's mass."""
        if self.is_empty:
            raise ValueError("cannot sample from an empty distribution")
        return rng.choice(self.values, size=size, p=self.probabilities())

    def merge(self, other: "Distribution") -> "Distribution":
        """Combine two partial histograms (associative and commutative)."""
        if self.is_empty:
            return other
        if other.is_empty:
            return self
        values = np.concatenate([self.values, other.values])
        counts = np.concatenate([self.counts, other.counts])
        merged, inverse = np.unique(values, return_inverse=True)
        merged_counts = np.bincount(
            inverse.ravel(), weights=counts, minlength=merged.shape[0]
        ).astype(np.int64)
        return Distribution(values=merged, counts=merged_counts)

    def to_dict(self) -> dict[str, Any]:
        return {"values": self.values.tolist(), "counts": self.counts.tolist()}

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "Distribution":
        return cls(values=np.asarray(d["values"]), counts=np.asarray(d["counts"]))


def empty_distribution() -> Distribution:
    return Distribution(values=np.zeros(0, dtype=np.int64), counts=np.zeros(0, dtype=np.int64))


@dataclass(frozen=True, eq=False)
class SeedDistributions:
    """All statistics extracted from one seed graph.

    Built once per seed and shared read-only by every generator partition.
    """

    degree: Distribution  # total degree per vertex, isolated vertices at 0
    out_degree: Distribution  # out-degree per vertex, zeros included
    edge_fields: dict[str, Distribution] = field(default_factory=dict)
    vertex_fields: dict[str, Distribution] = field(default_factory=dict)
    num_vertices: int = 0
    num_edges: int = 0

    def average_degree(self) -> float:
        """Mean out-degree of the seed, i.e. edges per vertex."""
        if self.num_vertices == 0:
            return 0.0
        return self.num_edges / self.num_vertices

    def to_dict(self) -> dict[str, Any]:
        return {
            "num_vertices": self.num_vertices,
            "num_edges": self.num_edges,
            "degree": self.degree.to_dict(),
            "out_degree": self.out_degree.to_dict(),
            "edge_fields": {k: v.to_dict() for k, v in self.edge_fields.items()},
            "vertex_fields": {k: v.to_dict() for k, v in self.vertex_fields.items()},
        }

    @classmethod
    def from_dict(cls, d: dict[str, Any]) -> "SeedDistributions":
        return cls(
            degree=Distribution.from_dict(d["degree"]),
            out_degree=Distribution.from_dict(d["out_degree"]),
            edge_fields={
                k: Distribution.from_dict(v) for k, v in d["edge_fields"].items()
            },
            vertex_fields={
                k: Distribution.from_dict(v) for k, v in d["vertex_fields"].items()
            },
            num_vertices=d["num_vertices"],
            num_edges=d["num_edges"],
        )
