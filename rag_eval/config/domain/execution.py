"""Execution configuration models."""

from pydantic import BaseModel, Field


class RetryConfig(BaseModel, frozen=True):
    max_attempts: int = Field(default=3, ge=1)
    initial_backoff_seconds: float = Field(default=0.5, ge=0)
    backoff_multiplier: float = Field(default=2.0, ge=1)


class ExecutionConfig(BaseModel, frozen=True):
    """How a single evaluation run is scheduled.

    item_timeout_seconds bounds each runner call; run_deadline_seconds bounds the
    whole run. Either may be None for no limit. task_write_retry governs retries of
    task-row writes, which are the only writes a run cannot tolerate losing.
    """

    max_concurrent: int = Field(default=4, ge=1)
    item_timeout_seconds: float | None = Field(default=None, gt=0)
    run_deadline_seconds: float | None = Field(default=None, gt=0)
    task_write_retry: RetryConfig = Field(default_factory=RetryConfig)
