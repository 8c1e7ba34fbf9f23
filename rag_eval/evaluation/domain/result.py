"""EvaluationResult — the write-once outcome of evaluating one dataset item."""

import statistics
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import Annotated
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

Score = Annotated[float, Field(ge=0.0, le=1.0)]


class TokenUsage(BaseModel, frozen=True):
    """Token accounting reported by a runner, when it has any."""

    model_config = ConfigDict(frozen=True)

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class EvaluationResult(BaseModel, frozen=True):
    """Per-item record: what the agent returned and how it scored.

    Failed items are recorded too, with retrieval_ok/generation_ok reflecting the
    phase that failed, empty scores and the failure in error_message.
    """

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    task_id: str
    item_id: str
    retrieved_doc_ids: tuple[str, ...] = Field(default_factory=tuple)
    generated_answer: str = ""
    scores: dict[str, Score] = Field(default_factory=dict)
    retrieval_ok: bool
    generation_ok: bool
    error_message: str | None = None
    latency_ms: int = Field(default=0, ge=0)
    usage: TokenUsage | None = None
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    @property
    def succeeded(self) -> bool:
        return self.retrieval_ok and self.generation_ok


def average_metrics(
    results: Iterable[EvaluationResult], metric_names: Sequence[str]
) -> dict[str, float]:
    """Mean of each metric over results whose retrieval and generation both succeeded.

    Every name in metric_names appears in the output; it is 0.0 when no result
    succeeded.
    """
    succeeded = [r for r in results if r.succeeded]
    return {
        name: statistics.fmean(r.scores.get(name, 0.0) for r in succeeded)
        if succeeded
        else 0.0
        for name in metric_names
    }
