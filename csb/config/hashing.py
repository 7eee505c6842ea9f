"""Deterministic config hashing using SHA-256 over sorted JSON."""

import hashlib
import json
from dataclasses import asdict
from typing import Any

from csb.config.experiment import BenchmarkConfig


def _remove_nested(d: dict[str, Any], field_path: str) -> None:
    """Remove a dotted-path key from a nested dict.

    Example: _remove_nested(d, "ba.iterations") removes d["ba"]["iterations"].
    Single-level paths like "description" remove d["description"].
    """
    parts = field_path.split(".")
    current = d
    for part in parts[:-1]:
        if part not in current or not isinstance(current[part], dict):
            return
        current = current[part]
    current.pop(parts[-1], None)


def config_hash(config: Any, exclude_fields: list[str] | None = None) -> str:
    """Deterministic SHA-256 hash of a config object.

    Args:
        config: Any dataclass instance (or sub-config).
        exclude_fields: Optional list of dotted field paths to exclude.

    Returns:
        First 16 hex characters of the SHA-256 hash.
    """
    d = asdict(config)
    if exclude_fields:
        for field_path in exclude_fields:
            _remove_nested(d, field_path)
    serialized = json.dumps(
        d,
        sort_keys=True,
        ensure_ascii=True,
        separators=(",", ":"),
        indent=None,
    )
    return hashlib.sha256(serialized.encode("utf-8")).hexdigest()[:16]


def growth_config_hash(config: BenchmarkConfig) -> str:
    """Signature of a preferential attachment run, used to match checkpoints.

    Covers everything that changes the graph produced by a given round.
    The iteration count is excluded so a run can be resumed with a larger
    round budget, as are the worker count and checkpoint settings, which
    never affect the output.
    """
    return config_hash(
        config,
        exclude_fields=[
            "ba.iterations",
            "run.workers",
            "run.backend",
            "run.data_dir",
            "run.checkpoint_dir",
            "run.checkpoint_interval",
            "kronecker",
            "veracity",
            "output_graph",
            "description",
            "tags",
        ],
    )


def full_config_hash(config: BenchmarkConfig) -> str:
    """Hash for full run identity, seed included."""
    return config_hash(config)
