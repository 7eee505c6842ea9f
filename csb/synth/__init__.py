"""Graph synthesis: preferential attachment growth and Kronecker expansion."""

from csb.synth.barabasi_albert import (
    BaSynth,
    DegreeSnapshot,
    attachment_counts,
    grow_preferential,
)
from csb.synth.base import MODES, GraphSynth, make_synthesizer
from csb.synth.checkpoint import (
    cleanup_old_checkpoints,
    find_latest_checkpoint,
    load_checkpoint,
    run_checkpoint_dir,
    save_checkpoint,
)
from csb.synth.kronecker import (
    KroSynth,
    edge_probability,
    kronecker_power,
    load_seed_matrix,
    sample_descent,
    sample_exact,
    validate_seed_matrix,
)
from csb.synth.properties import prepare_seed, sample_columns

__all__ = [
    "BaSynth",
    "DegreeSnapshot",
    "GraphSynth",
    "KroSynth",
    "MODES",
    "attachment_counts",
    "cleanup_old_checkpoints",
    "edge_probability",
    "find_latest_checkpoint",
    "grow_preferential",
    "kronecker_power",
    "load_checkpoint",
    "load_seed_matrix",
    "make_synthesizer",
    "prepare_seed",
    "run_checkpoint_dir",
    "sample_columns",
    "sample_descent",
    "sample_exact",
    "save_checkpoint",
    "validate_seed_matrix",
]
