"""Metric Protocol — structural interface for every scoring function."""

from typing import Protocol

from rag_eval.metrics.domain.input import MetricInput


class Metric(Protocol):
    """A pure, deterministic scoring function over a MetricInput.

    compute() always returns a score in [0, 1]. validate() raises MetricInputError
    when fields the metric relies on are missing; compute() still returns the
    documented convention (usually 0.0) for such inputs.
    """

    @property
    def name(self) -> str: ...

    def compute(self, metric_input: MetricInput) -> float: ...

    def validate(self, metric_input: MetricInput) -> None: ...
