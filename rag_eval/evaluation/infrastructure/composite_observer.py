"""CompositeEvaluationObserver — fans out all events to a list of observers."""

from rag_eval.evaluation.domain.observer import EvaluationObserver


class CompositeEvaluationObserver:
    """Delegates every observer event to each observer in order.

    Does NOT inherit from EvaluationObserver (structural typing via Protocol).
    """

    def __init__(self, observers: list[EvaluationObserver]) -> None:
        self._observers = observers

    def evaluation_started(
        self,
        task_id: str,
        dataset_id: str,
        target_id: str,
        total_items: int,
        max_concurrent: int,
    ) -> None:
        for obs in self._observers:
            obs.evaluation_started(
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
        for obs in self._observers:
            obs.evaluation_progress(
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
        for obs in self._observers:
            obs.evaluation_completed(
                task_id=task_id,
                status=status,
                completed=completed,
                failed=failed,
                elapsed_seconds=elapsed_seconds,
                error_message=error_message,
            )

    def evaluation_deadline_exceeded(
        self,
        task_id: str,
        deadline_seconds: float,
        unreported: int,
    ) -> None:
        for obs in self._observers:
            obs.evaluation_deadline_exceeded(
                task_id=task_id,
                deadline_seconds=deadline_seconds,
                unreported=unreported,
            )

    def item_started(self, task_id: str, item_id: str) -> None:
        for obs in self._observers:
            obs.item_started(task_id=task_id, item_id=item_id)

    def item_completed(
        self,
        task_id: str,
        item_id: str,
        scores: dict[str, float],
    ) -> None:
        for obs in self._observers:
            obs.item_completed(task_id=task_id, item_id=item_id, scores=scores)

    def item_failed(self, task_id: str, item_id: str, reason: str) -> None:
        for obs in self._observers:
            obs.item_failed(task_id=task_id, item_id=item_id, reason=reason)

    def metric_input_invalid(
        self,
        task_id: str,
        item_id: str,
        metric: str,
        reason: str,
    ) -> None:
        for obs in self._observers:
            obs.metric_input_invalid(
                task_id=task_id, item_id=item_id, metric=metric, reason=reason
            )

    def result_write_failed(self, task_id: str, item_id: str, reason: str) -> None:
        for obs in self._observers:
            obs.result_write_failed(task_id=task_id, item_id=item_id, reason=reason)

    def task_write_retry(
        self,
        task_id: str,
        attempt: int,
        reason: str,
        backoff_seconds: float,
    ) -> None:
        for obs in self._observers:
            obs.task_write_retry(
                task_id=task_id,
                attempt=attempt,
                reason=reason,
                backoff_seconds=backoff_seconds,
            )

    def task_write_failed(self, task_id: str, reason: str) -> None:
        for obs in self._observers:
            obs.task_write_failed(task_id=task_id, reason=reason)
