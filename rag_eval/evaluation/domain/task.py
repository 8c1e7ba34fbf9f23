"""EvaluationTask — one evaluation run of a dataset against a target agent.

Tasks are immutable snapshots. The executor's aggregator moves a task through
its lifecycle by calling the transition methods, each of which returns the next
snapshot:

    pending --start()--> running --advance()*--> running --finish()--> completed | failed

finish() is also accepted from pending so that a run which cannot even be
started still converges to a terminal state.
"""

from datetime import UTC, datetime
from enum import StrEnum
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from rag_eval.evaluation.domain.errors import InvalidTaskTransitionError


class TaskStatus(StrEnum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        return self in (TaskStatus.COMPLETED, TaskStatus.FAILED)


def compute_progress(processed: int, total: int) -> int:
    """Percentage of processed items, rounded half-up and capped at 99.

    100 is reserved for the terminal snapshot produced by finish().
    """
    if total <= 0:
        return 0
    return min(99, (processed * 200 + total) // (2 * total))


class EvaluationTask(BaseModel, frozen=True):
    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=lambda: str(uuid4()))
    tenant_id: str = Field(min_length=1)
    dataset_id: str = Field(min_length=1)
    target_id: str = Field(min_length=1)
    knowledge_scope: str | None = None

    status: TaskStatus = TaskStatus.PENDING
    total_items: int = Field(ge=0)
    progress: int = Field(default=0, ge=0, le=100)
    completed_items: int = Field(default=0, ge=0)
    failed_items: int = Field(default=0, ge=0)

    avg_metrics: dict[str, float] = Field(default_factory=dict)
    error_message: str | None = None

    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    started_at: datetime | None = None
    completed_at: datetime | None = None

    def start(self) -> "EvaluationTask":
        self._require(TaskStatus.PENDING, action="start")
        return self.model_copy(
            update={"status": TaskStatus.RUNNING, "started_at": datetime.now(UTC)}
        )

    def advance(self, completed_items: int, failed_items: int) -> "EvaluationTask":
        """Record item counts and recompute progress while the task is running."""
        self._require(TaskStatus.RUNNING, action="advance")
        if completed_items < self.completed_items or failed_items < self.failed_items:
            raise InvalidTaskTransitionError(
                task_id=self.id,
                reason="item counts may not decrease",
            )
        if completed_items + failed_items > self.total_items:
            raise InvalidTaskTransitionError(
                task_id=self.id,
                reason=(
                    f"{completed_items + failed_items} items processed but only"
                    f" {self.total_items} exist"
                ),
            )
        return self.model_copy(
            update={
                "completed_items": completed_items,
                "failed_items": failed_items,
                "progress": max(
                    self.progress,
                    compute_progress(completed_items + failed_items, self.total_items),
                ),
            }
        )

    def finish(
        self,
        avg_metrics: dict[str, float],
        completed_items: int,
        failed_items: int,
        reason: str | None = None,
    ) -> "EvaluationTask":
        """Produce the terminal snapshot.

        The task fails when any item failed or when a run-level reason is given;
        the error summary always names the failed item count.
        """
        if self.status.is_terminal:
            raise InvalidTaskTransitionError(
                task_id=self.id, reason=f"task is already {self.status}"
            )

        summary_parts: list[str] = []
        if reason:
            summary_parts.append(reason)
        if failed_items:
            summary_parts.append(f"{failed_items} items failed")
        failed = bool(summary_parts)

        now = datetime.now(UTC)
        return self.model_copy(
            update={
                "status": TaskStatus.FAILED if failed else TaskStatus.COMPLETED,
                "progress": 100,
                "completed_items": completed_items,
                "failed_items": failed_items,
                "avg_metrics": dict(avg_metrics),
                "error_message": "; ".join(summary_parts) if failed else None,
                "started_at": self.started_at or now,
                "completed_at": now,
            }
        )

    def _require(self, status: TaskStatus, action: str) -> None:
        if self.status != status:
            raise InvalidTaskTransitionError(
                task_id=self.id,
                reason=f"cannot {action} a task that is {self.status}",
            )
