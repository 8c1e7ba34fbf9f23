"""Metric registry — maps configured metric names to Metric instances."""

from collections.abc import Sequence

from rag_eval.config.domain.metrics import DEFAULT_METRICS, MetricsConfig
from rag_eval.metrics.domain.errors import MetricNotSupportedError
from rag_eval.metrics.domain.generation import BLEUMetric, ROUGEMetric, RougeType
from rag_eval.metrics.domain.input import MetricInput
from rag_eval.metrics.domain.metric import Metric
from rag_eval.metrics.domain.retrieval import (
    F1Metric,
    MRRMetric,
    PrecisionMetric,
    RecallMetric,
)


def _create_metric(name: str, bleu_max_n: int) -> Metric:
    match name:
        case "recall":
            return RecallMetric()
        case "precision":
            return PrecisionMetric()
        case "mrr":
            return MRRMetric()
        case "f1":
            return F1Metric()
        case "bleu":
            return BLEUMetric(max_n=bleu_max_n)
        case "rouge1":
            return ROUGEMetric(RougeType.ROUGE_1)
        case "rouge2":
            return ROUGEMetric(RougeType.ROUGE_2)
        case "rougel":
            return ROUGEMetric(RougeType.ROUGE_L)
    raise MetricNotSupportedError(name=name)


def create_metrics(config: MetricsConfig | None = None) -> list[Metric]:
    """Return the enabled metrics in canonical order, each name at most once.

    Raises:
        MetricNotSupportedError: if config.enabled names an unknown metric.
    """
    config = config or MetricsConfig()
    for name in config.enabled:
        if name not in DEFAULT_METRICS:
            raise MetricNotSupportedError(name=name)
    return [
        _create_metric(name=name, bleu_max_n=config.bleu_max_n)
        for name in DEFAULT_METRICS
        if name in config.enabled
    ]


def compute_scores(metrics: Sequence[Metric], metric_input: MetricInput) -> dict[str, float]:
    """Score metric_input with every metric, keyed by metric name."""
    return {metric.name: metric.compute(metric_input) for metric in metrics}
