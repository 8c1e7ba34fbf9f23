"""Observer port for the evaluation domain — defines events in domain language."""

from typing import Protocol


class EvaluationObserver(Protocol):
    """Observer port emitting structured events during an evaluation run.

    Implementations may log to structlog, render progress, or record for tests.
    """

    def evaluation_started(
        self,
        task_id: str,
        dataset_id: str,
        target_id: str,
        total_items: int,
        max_concurrent: int,
    ) -> None: ...

    def evaluation_progress(
        self,
        task_id: str,
        completed: int,
        failed: int,
        total: int,
        progress: int,
    ) -> None: ...

    def evaluation_completed(
        self,
        task_id: str,
        status: str,
        completed: int,
        failed: int,
        elapsed_seconds: float,
        error_message: str | None,
    ) -> None: ...

    def evaluation_deadline_exceeded(
        self,
        task_id: str,
        deadline_seconds: float,
        unreported: int,
    ) -> None: ...

    def item_started(self, task_id: str, item_id: str) -> None: ...

    def item_completed(
        self,
        task_id: str,
        item_id: str,
        scores: dict[str, float],
    ) -> None: ...

    def item_failed(self, task_id: str, item_id: str, reason: str) -> None: ...

    def metric_input_invalid(
        self,
        task_id: str,
        item_id: str,
        metric: str,
        reason: str,
    ) -> None: ...

    def result_write_failed(self, task_id: str, item_id: str, reason: str) -> None: ...

    def task_write_retry(
        self,
        task_id: str,
        attempt: int,
        reason: str,
        backoff_seconds: float,
    ) -> None: ...

    def task_write_failed(self, task_id: str, reason: str) -> None: ...
