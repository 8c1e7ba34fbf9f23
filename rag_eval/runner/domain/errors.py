"""Error types raised by runners."""

from enum import StrEnum

from rag_eval.core.errors import RagEvalError


class RunnerPhase(StrEnum):
    RETRIEVAL = "retrieval"
    GENERATION = "generation"


class RunnerError(RagEvalError):
    """Raised when a runner fails to produce output for one query.

    phase records which half of the pipeline failed. A generation failure
    implies retrieval succeeded.
    """

    def __init__(
        self,
        reason: str,
        phase: RunnerPhase = RunnerPhase.RETRIEVAL,
        retriable: bool = False,
    ) -> None:
        self.reason = reason
        self.phase = phase
        super().__init__(f"Failed to run agent ({phase}): {reason}", retriable=retriable)


class RunnerNotSupportedError(RagEvalError):
    """Raised when no runner can be built for a target id."""

    def __init__(self, target_id: str) -> None:
        self.target_id = target_id
        super().__init__(f"Failed to create runner: unsupported target '{target_id}'")
