"""Metric selection configuration."""

from pydantic import BaseModel, Field

DEFAULT_METRICS: tuple[str, ...] = (
    "recall",
    "precision",
    "mrr",
    "f1",
    "bleu",
    "rouge1",
    "rouge2",
    "rougel",
)


class MetricsConfig(BaseModel, frozen=True):
    enabled: list[str] = Field(default_factory=lambda: list(DEFAULT_METRICS), min_length=1)
    bleu_max_n: int = Field(default=4, ge=1, le=8)
