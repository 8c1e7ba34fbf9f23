"""Error types raised by the metric library."""

from rag_eval.core.errors import RagEvalError


class MetricInputError(RagEvalError):
    """Raised by Metric.validate when the input lacks fields the metric needs."""

    def __init__(self, metric: str, reason: str) -> None:
        self.metric = metric
        super().__init__(f"Failed to validate input for metric '{metric}': {reason}")


class MetricNotSupportedError(RagEvalError):
    """Raised when a configured metric name is not known to the registry."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f"Failed to create metric: unsupported metric '{name}'")
