"""Error taxonomy shared by extraction, generation, evaluation and persistence."""

from enum import Enum


class Phase(str, Enum):
    """Pipeline phase an error originated from."""

    EXTRACTION = "extraction"
    GENERATION = "generation"
    EVALUATION = "evaluation"
    PERSISTENCE = "persistence"


class CsbError(Exception):
    """Base error carrying the phase that failed.

    The phase is prefixed to the message so user-visible failures always
    say where they happened.
    """

    def __init__(self, phase: Phase, message: str) -> None:
        self.phase = phase
        self.message = message
        super().__init__(f"[{phase.value}] {message}")


class ConfigurationError(CsbError, ValueError):
    """Invalid parameters, detected before any work starts."""


class ResourceError(CsbError):
    """Missing input files or persistence read/write failures."""


class GenerationCancelled(CsbError):
    """Raised when a generation run is aborted at a safe boundary.

    Growth runs stop at a round boundary; Kronecker runs stop between
    sampling chunks, before the final aggregation.
    """

    def __init__(self, completed_rounds: int, message: str | None = None) -> None:
        self.completed_rounds = completed_rounds
        super().__init__(
            Phase.GENERATION,
            message or f"generation cancelled after {completed_rounds} rounds",
        )
