"""Top-level EngineConfig aggregate — the root configuration object."""

from pydantic import BaseModel, Field

from rag_eval.config.domain.execution import ExecutionConfig
from rag_eval.config.domain.metrics import MetricsConfig


class EngineConfig(BaseModel, frozen=True):
    """Root configuration aggregate for the evaluation engine."""

    name: str = Field(min_length=1)
    version: str = Field(min_length=1)
    execution: ExecutionConfig = Field(default_factory=ExecutionConfig)
    metrics: MetricsConfig = Field(default_factory=MetricsConfig)
