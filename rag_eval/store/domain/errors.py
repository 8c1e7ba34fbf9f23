"""Error types raised by store implementations."""

from rag_eval.core.errors import RagEvalError


class PersistenceError(RagEvalError):
    """Raised when a store operation fails.

    Marked retriable by default: most store failures are transient.
    """

    def __init__(self, operation: str, reason: str, retriable: bool = True) -> None:
        self.operation = operation
        super().__init__(f"Failed to {operation}: {reason}", retriable=retriable)
