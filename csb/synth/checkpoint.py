"""Round checkpoints for the preferential attachment grower.

A checkpoint is a directory ``round_NNNNNN`` holding the graph after that
many completed rounds (graph.npz + metadata.json) and a checkpoint.json
manifest with the run signature. Each signature gets its own ``run_<sig>``
subdirectory, so runs sharing a checkpoint directory never prune or
overwrite each other. Checkpoints are staged in a temporary directory and
renamed into place, so an aborted run never leaves a partially written
checkpoint behind.
"""

import json
import logging
import os
import shutil
from datetime import datetime, timezone
from pathlib import Path

from csb.errors import Phase, ResourceError
from csb.graph.persistence import read_npz_graph, write_npz_graph
from csb.graph.types import Graph

log = logging.getLogger(__name__)

MANIFEST_FILE = "checkpoint.json"


def run_checkpoint_dir(checkpoint_dir: Path | str, signature: str) -> Path:
    """Directory holding the checkpoints of the run with ``signature``."""
    return Path(checkpoint_dir) / f"run_{signature or 'unsigned'}"


def _read_manifest(path: Path) -> dict | None:
    manifest_path = path / MANIFEST_FILE
    if not manifest_path.exists():
        return None
    with open(manifest_path) as f:
        return json.load(f)


def save_checkpoint(
    checkpoint_dir: Path | str, completed_rounds: int, graph: Graph, signature: str
) -> Path:
    """Persist the graph after ``completed_rounds`` rounds.

    Args:
        checkpoint_dir: Directory holding all checkpoints of a run.
        completed_rounds: Number of rounds reflected in ``graph``.
        graph: Graph state at the round boundary.
        signature: Run parameter hash; resumes only match the same signature.

    Returns:
        Path to the checkpoint directory.

    Raises:
        ResourceError: If the write fails, or a checkpoint for the same
            round from a run with another signature is already there.
    """
    checkpoint_dir = Path(checkpoint_dir)
    checkpoint_dir.mkdir(parents=True, exist_ok=True)

    path = checkpoint_dir / f"round_{completed_rounds:06d}"
    existing = _read_manifest(path)
    if existing is not None and existing.get("signature") != signature:
        raise ResourceError(
            Phase.GENERATION,
            f"checkpoint {path} belongs to run {existing.get('signature')!r}, "
            f"refusing to overwrite it from run {signature!r}",
        )

    staging = checkpoint_dir / f".round_{completed_rounds:06d}.tmp"
    if staging.exists():
        shutil.rmtree(staging)
    staging.mkdir()
    try:
        write_npz_graph(staging, graph)
        manifest = {
            "completed_rounds": completed_rounds,
            "signature": signature,
            "num_vertices": graph.num_vertices,
            "num_edges": graph.num_edges,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        with open(staging / MANIFEST_FILE, "w") as f:
            json.dump(manifest, f, indent=2)
        if path.exists():
            shutil.rmtree(path)
        os.replace(staging, path)
    except OSError as exc:
        shutil.rmtree(staging, ignore_errors=True)
        raise ResourceError(
            Phase.GENERATION, f"failed to write checkpoint {path}: {exc}"
        ) from exc

    log.info("Checkpoint written after round %d: %s", completed_rounds, path)
    return path


def load_checkpoint(path: Path | str) -> tuple[int, Graph]:
    """Load a checkpoint.

    Returns:
        (completed_rounds, graph) tuple.
    """
    path = Path(path)
    with open(path / MANIFEST_FILE) as f:
        manifest = json.load(f)
    graph = read_npz_graph(path)
    log.info(
        "Resuming from checkpoint %s (%d rounds, %d vertices)",
        path, manifest["completed_rounds"], graph.num_vertices,
    )
    return manifest["completed_rounds"], graph


def _matching_checkpoints(
    checkpoint_dir: Path, signature: str | None, max_rounds: int | None
) -> list[Path]:
    """Complete checkpoints of one run, oldest first."""
    if not checkpoint_dir.exists():
        return []
    matches = []
    for path in sorted(checkpoint_dir.glob("round_*")):
        manifest = _read_manifest(path)
        if manifest is None:
            continue
        if signature is not None and manifest.get("signature") != signature:
            continue
        if max_rounds is not None and manifest["completed_rounds"] > max_rounds:
            continue
        matches.append(path)
    return matches


def find_latest_checkpoint(
    checkpoint_dir: Path | str,
    signature: str | None = None,
    max_rounds: int | None = None,
) -> Path | None:
    """Find the most recent complete checkpoint.

    Args:
        checkpoint_dir: Directory containing checkpoints.
        signature: When given, only checkpoints from a run with this
            signature are considered.
        max_rounds: When given, checkpoints past this many rounds are skipped.

    Returns:
        Path to the latest checkpoint, or None if none match.
    """
    matches = _matching_checkpoints(Path(checkpoint_dir), signature, max_rounds)
    return matches[-1] if matches else None


def cleanup_old_checkpoints(
    checkpoint_dir: Path | str,
    signature: str | None = None,
    max_keep: int = 2,
    up_to: int | None = None,
) -> None:
    """Remove old round checkpoints of one run, keeping the last ``max_keep``.

    Only checkpoints whose manifest carries ``signature`` and that are at
    most ``up_to`` rounds old are candidates; later ones are left alone.
    """
    checkpoints = _matching_checkpoints(Path(checkpoint_dir), signature, up_to)
    if len(checkpoints) <= max_keep:
        return

    for ckpt in checkpoints[:-max_keep]:
        shutil.rmtree(ckpt)
