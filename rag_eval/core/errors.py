"""Base exception class for all rag-eval-specific errors."""


class RagEvalError(Exception):
    """Base class for all rag-eval errors."""

    def __init__(self, message: str, retriable: bool = False) -> None:
        super().__init__(message)
        self.retriable = retriable
