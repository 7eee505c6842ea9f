"""Attribute generation: sample vertex/edge columns from seed histograms."""

import logging

import numpy as np

from csb.distributions.types import Distribution, SeedDistributions
from csb.graph.types import Graph

log = logging.getLogger(__name__)


def sample_columns(
    fields: dict[str, Distribution], size: int, rng: np.random.Generator
) -> dict[str, np.ndarray]:
    """Draw ``size`` independent values for every non-empty field histogram."""
    return {
        name: dist.sample(rng, size)
        for name, dist in sorted(fields.items())
        if not dist.is_empty
    }


def prepare_seed(
    seed: Graph,
    dists: SeedDistributions,
    generate_properties: bool,
    rng: np.random.Generator,
) -> Graph:
    """Starting population for growth, with columns matching the histograms.

    Without property generation all columns are dropped. Otherwise the seed
    keeps the columns it has for every tracked field and gets sampled values
    for tracked fields it lacks; untracked columns are dropped so that every
    later batch can supply the same column set.
    """
    if not generate_properties:
        return seed.without_properties()

    vertex_props = {}
    for name, dist in sorted(dists.vertex_fields.items()):
        if name in seed.vertex_props:
            vertex_props[name] = seed.vertex_props[name]
        elif not dist.is_empty:
            vertex_props[name] = dist.sample(rng, seed.num_vertices)
    edge_props = {}
    for name, dist in sorted(dists.edge_fields.items()):
        if name in seed.edge_props:
            edge_props[name] = seed.edge_props[name]
        elif not dist.is_empty:
            edge_props[name] = dist.sample(rng, seed.num_edges)

    empty = [n for n, d in dists.edge_fields.items() if d.is_empty]
    if empty:
        log.warning("Edge fields with no observations are not generated: %s", empty)
    return Graph(
        vertex_ids=seed.vertex_ids,
        src=seed.src,
        dst=seed.dst,
        vertex_props=vertex_props,
        edge_props=edge_props,
    )
