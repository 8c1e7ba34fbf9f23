"""Retrieval quality metrics: Recall, Precision, MRR and F1.

Retrieved and relevant identifiers are compared with set semantics, so a
document retrieved twice is only counted once and every score stays in [0, 1].
"""

from rag_eval.metrics.domain.errors import MetricInputError
from rag_eval.metrics.domain.input import MetricInput


def _require_ids(name: str, metric_input: MetricInput) -> None:
    if not metric_input.retrieved_ids or not metric_input.relevant_ids:
        raise MetricInputError(
            metric=name, reason="retrieved_ids and relevant_ids are required"
        )


def _hit_count(metric_input: MetricInput) -> int:
    return len(set(metric_input.retrieved_ids) & set(metric_input.relevant_ids))


class RecallMetric:
    """Recall = |Retrieved ∩ Relevant| / |Relevant|, 0 when Relevant is empty."""

    name = "recall"

    def compute(self, metric_input: MetricInput) -> float:
        relevant = set(metric_input.relevant_ids)
        if not relevant:
            return 0.0
        return _hit_count(metric_input) / len(relevant)

    def validate(self, metric_input: MetricInput) -> None:
        _require_ids(self.name, metric_input)


class PrecisionMetric:
    """Precision = |Retrieved ∩ Relevant| / |Retrieved|, 0 when Retrieved is empty."""

    name = "precision"

    def compute(self, metric_input: MetricInput) -> float:
        retrieved = set(metric_input.retrieved_ids)
        if not retrieved:
            return 0.0
        return _hit_count(metric_input) / len(retrieved)

    def validate(self, metric_input: MetricInput) -> None:
        _require_ids(self.name, metric_input)


class MRRMetric:
    """Reciprocal rank of the first relevant document in retrieval order.

    Ranks are 1-based over retrieved_ids as given. Returns 0.0 when nothing
    relevant was retrieved.
    """

    name = "mrr"

    def compute(self, metric_input: MetricInput) -> float:
        relevant = set(metric_input.relevant_ids)
        for rank, doc_id in enumerate(metric_input.retrieved_ids, start=1):
            if doc_id in relevant:
                return 1.0 / rank
        return 0.0

    def validate(self, metric_input: MetricInput) -> None:
        return None


class F1Metric:
    """Harmonic mean of precision and recall, 0 when both are 0."""

    name = "f1"

    def __init__(self) -> None:
        self._recall = RecallMetric()
        self._precision = PrecisionMetric()

    def compute(self, metric_input: MetricInput) -> float:
        recall = self._recall.compute(metric_input)
        precision = self._precision.compute(metric_input)
        if precision + recall == 0:
            return 0.0
        return 2 * precision * recall / (precision + recall)

    def validate(self, metric_input: MetricInput) -> None:
        _require_ids(self.name, metric_input)
