"""StructlogEvaluationObserver — production observer that delegates to structlog."""

import structlog


class StructlogEvaluationObserver:
    """Logs evaluation domain events to structlog.

    Does NOT inherit from EvaluationObserver (structural typing via Protocol).
    """

    def __init__(self) -> None:
        self._log = structlog.get_logger()

    def evaluation_started(
        self,
        task_id: str,
        dataset_id: str,
        target_id: str,
        total_items: int,
        max_concurrent: int,
    ) -> None:
        self._log.info(
            "evaluation.started",
            task_id=task_id,
            dataset_id=dataset_id,
            target_id=target_id,
            total_items=total_items,
            max_concurrent=max_concurrent,
        )

    def evaluation_progress(
        self,
        task_id: str,
        completed: int,
        failed: int,
        total: int,
        progress: int,
    ) -> None:
        self._log.info(
            "evaluation.progress",
            task_id=task_id,
            completed=completed,
            failed=failed,
            total=total,
            progress=progress,
        )

    def evaluation_completed(
        self,
        task_id: str,
        status: str,
        completed: int,
        failed: int,
        elapsed_seconds: float,
        error_message: str | None,
    ) -> None:
        log = self._log.info if error_message is None else self._log.warning
        log(
            "evaluation.completed",
            task_id=task_id,
            status=status,
            completed=completed,
            failed=failed,
            elapsed_seconds=round(elapsed_seconds, 2),
            error_message=error_message,
        )

    def evaluation_deadline_exceeded(
        self,
        task_id: str,
        deadline_seconds: float,
        unreported: int,
    ) -> None:
        self._log.error(
            "evaluation.deadline_exceeded",
            task_id=task_id,
            deadline_seconds=deadline_seconds,
            unreported=unreported,
        )

    def item_started(self, task_id: str, item_id: str) -> None:
        self._log.debug("evaluation.item.started", task_id=task_id, item_id=item_id)

    def item_completed(
        self,
        task_id: str,
        item_id: str,
        scores: dict[str, float],
    ) -> None:
        self._log.debug(
            "evaluation.item.completed",
            task_id=task_id,
            item_id=item_id,
            scores={name: round(score, 4) for name, score in scores.items()},
        )

    def item_failed(self, task_id: str, item_id: str, reason: str) -> None:
        self._log.error(
            "evaluation.item.failed", task_id=task_id, item_id=item_id, reason=reason
        )

    def metric_input_invalid(
        self,
        task_id: str,
        item_id: str,
        metric: str,
        reason: str,
    ) -> None:
        self._log.warning(
            "evaluation.item.metric_input_invalid",
            task_id=task_id,
            item_id=item_id,
            metric=metric,
            reason=reason,
        )

    def result_write_failed(self, task_id: str, item_id: str, reason: str) -> None:
        self._log.error(
            "evaluation.result.write_failed",
            task_id=task_id,
            item_id=item_id,
            reason=reason,
        )

    def task_write_retry(
        self,
        task_id: str,
        attempt: int,
        reason: str,
        backoff_seconds: float,
    ) -> None:
        self._log.warning(
            "evaluation.task.write_retry",
            task_id=task_id,
            attempt=attempt,
            reason=reason,
            backoff_seconds=backoff_seconds,
        )

    def task_write_failed(self, task_id: str, reason: str) -> None:
        self._log.error("evaluation.task.write_failed", task_id=task_id, reason=reason)
