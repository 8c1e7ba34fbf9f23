"""Error types raised by runner infrastructure."""

from rag_eval.core.errors import RagEvalError


class RecordingLoadError(RagEvalError):
    """Raised when a file of recorded agent outputs cannot be loaded."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Failed to load recorded outputs: {reason}")
