"""EvaluationExecutor — runs one evaluation task to a terminal state."""

import asyncio
import time
from dataclasses import dataclass

from rag_eval.config.domain.execution import ExecutionConfig
from rag_eval.dataset.domain.dataset import DatasetItem
from rag_eval.evaluation.domain.observer import EvaluationObserver
from rag_eval.evaluation.domain.result import EvaluationResult, average_metrics
from rag_eval.evaluation.domain.task import EvaluationTask
from rag_eval.metrics.domain.errors import MetricInputError
from rag_eval.metrics.domain.input import MetricInput
from rag_eval.metrics.domain.metric import Metric
from rag_eval.metrics.infrastructure.registry import compute_scores
from rag_eval.runner.domain.errors import RunnerError, RunnerPhase
from rag_eval.runner.domain.runner import Runner, RunnerOutput
from rag_eval.store.domain.errors import PersistenceError
from rag_eval.store.domain.store import Store


@dataclass(frozen=True)
class _ItemOutcome:
    """What a worker reports for one item. failure is None on success."""

    item: DatasetItem
    result: EvaluationResult
    failure: str | None = None


class EvaluationExecutor:
    """Evaluates every item of a dataset against a runner and aggregates the scores.

    Items are processed by a pool of at most ``max_concurrent`` worker coroutines
    that report to a single completion queue. The coroutine running execute() is
    the aggregator: it is the only writer of the task, so progress and state
    updates are totally ordered without locking. Item-level failures (runner
    errors, timeouts, result writes) are counted, never fatal. A task-row write
    that still fails after retries ends the run early.
    """

    def __init__(
        self,
        store: Store,
        metrics: list[Metric],
        config: ExecutionConfig,
        observer: EvaluationObserver,
    ) -> None:
        self._store = store
        self._metrics = metrics
        self._config = config
        self._observer = observer

    @property
    def metric_names(self) -> list[str]:
        return [metric.name for metric in self._metrics]

    async def execute(
        self,
        task: EvaluationTask,
        items: list[DatasetItem],
        runner: Runner,
    ) -> EvaluationTask:
        """Drive task from pending to completed or failed and return the final snapshot.

        Never raises for run-level failures; they are reported through the
        returned task's status and error_message.
        """
        started_at = time.monotonic()
        loop = asyncio.get_running_loop()
        deadline = (
            None
            if self._config.run_deadline_seconds is None
            else loop.time() + self._config.run_deadline_seconds
        )

        try:
            self._observer.evaluation_started(
                task_id=task.id,
                dataset_id=task.dataset_id,
                target_id=task.target_id,
                total_items=len(items),
                max_concurrent=self._config.max_concurrent,
            )
            task = await self._write_task(task.start(), deadline)
        except Exception as exc:
            return await self._finish(
                task=task,
                results=[],
                completed=0,
                total=len(items),
                reason=_run_failure_reason(exc),
                started_at=started_at,
                deadline=deadline,
            )

        work: asyncio.Queue[DatasetItem] = asyncio.Queue()
        for item in items:
            work.put_nowait(item)
        completions: asyncio.Queue[_ItemOutcome] = asyncio.Queue()
        workers = [
            asyncio.create_task(self._worker(task, runner, work, completions))
            for _ in range(min(self._config.max_concurrent, len(items)))
        ]

        results: list[EvaluationResult] = []
        reported: set[str] = set()
        completed = 0
        failed = 0
        reason: str | None = None

        try:
            while len(reported) < len(items):
                try:
                    outcome = await self._next_outcome(completions, deadline)
                except TimeoutError:
                    reason = (
                        "run cancelled: deadline of"
                        f" {self._config.run_deadline_seconds:g}s exceeded"
                    )
                    self._observer.evaluation_deadline_exceeded(
                        task_id=task.id,
                        deadline_seconds=float(self._config.run_deadline_seconds or 0),
                        unreported=len(items) - len(reported),
                    )
                    break

                reported.add(outcome.item.id)
                if await self._record(task, outcome):
                    completed += 1
                    results.append(outcome.result)
                else:
                    failed += 1

                # The final item is reflected by the terminal write instead.
                if len(reported) < len(items):
                    task = await self._write_task(
                        task.advance(completed, failed), deadline
                    )
                    self._observer.evaluation_progress(
                        task_id=task.id,
                        completed=completed,
                        failed=failed,
                        total=task.total_items,
                        progress=task.progress,
                    )
        except Exception as exc:
            reason = _run_failure_reason(exc)
        finally:
            for worker in workers:
                worker.cancel()
            await asyncio.gather(*workers, return_exceptions=True)

        for item in items:
            if item.id in reported:
                continue
            try:
                await self._record(
                    task,
                    self._failure(
                        task=task,
                        item=item,
                        reason="cancelled before completion",
                        latency_ms=0,
                    ),
                )
            except Exception as exc:
                reason = reason or _run_failure_reason(exc)

        # Anything not counted as completed failed, including an item whose
        # recording was interrupted.
        return await self._finish(
            task=task,
            results=results,
            completed=completed,
            total=len(items),
            reason=reason,
            started_at=started_at,
            deadline=deadline,
        )

    async def _next_outcome(
        self,
        completions: asyncio.Queue[_ItemOutcome],
        deadline: float | None,
    ) -> _ItemOutcome:
        """Next reported outcome, raising TimeoutError once the run deadline passes."""
        if not completions.empty() or deadline is None:
            return await completions.get()
        remaining = deadline - asyncio.get_running_loop().time()
        if remaining <= 0:
            raise TimeoutError
        return await asyncio.wait_for(completions.get(), timeout=remaining)

    async def _worker(
        self,
        task: EvaluationTask,
        runner: Runner,
        work: asyncio.Queue[DatasetItem],
        completions: asyncio.Queue[_ItemOutcome],
    ) -> None:
        while True:
            try:
                item = work.get_nowait()
            except asyncio.QueueEmpty:
                return
            started = time.monotonic()
            try:
                outcome = await self._evaluate_item(task, runner, item)
            except Exception as exc:
                # Every dequeued item must be reported or the aggregator waits forever.
                outcome = self._failure(
                    task=task,
                    item=item,
                    reason=f"unexpected error: {type(exc).__name__}: {exc}",
                    latency_ms=_elapsed_ms(started),
                )
            completions.put_nowait(outcome)

    async def _evaluate_item(
        self,
        task: EvaluationTask,
        runner: Runner,
        item: DatasetItem,
    ) -> _ItemOutcome:
        self._observer.item_started(task_id=task.id, item_id=item.id)
        started = time.monotonic()
        try:
            output = await self._call_runner(runner, item, task.knowledge_scope)
        except RunnerError as exc:
            return self._failure(
                task=task,
                item=item,
                reason=str(exc),
                latency_ms=_elapsed_ms(started),
                retrieval_ok=exc.phase == RunnerPhase.GENERATION,
            )
        latency_ms = _elapsed_ms(started)

        metric_input = MetricInput(
            retrieved_ids=output.retrieved_ids,
            relevant_ids=item.relevant_doc_ids,
            generated_text=output.generated_text,
            expected_text=item.expected_answer,
        )
        for metric in self._metrics:
            try:
                metric.validate(metric_input)
            except MetricInputError as exc:
                self._observer.metric_input_invalid(
                    task_id=task.id, item_id=item.id, metric=metric.name, reason=str(exc)
                )

        return _ItemOutcome(
            item=item,
            result=EvaluationResult(
                task_id=task.id,
                item_id=item.id,
                retrieved_doc_ids=output.retrieved_ids,
                generated_answer=output.generated_text,
                scores=compute_scores(self._metrics, metric_input),
                retrieval_ok=True,
                generation_ok=True,
                latency_ms=latency_ms,
                usage=output.usage,
            ),
        )

    async def _call_runner(
        self,
        runner: Runner,
        item: DatasetItem,
        knowledge_scope: str | None,
    ) -> RunnerOutput:
        """Call the runner under the per-item timeout, normalising failures to RunnerError."""
        timeout = self._config.item_timeout_seconds
        try:
            async with asyncio.timeout(timeout):
                return await runner.run(query=item.query, knowledge_scope=knowledge_scope)
        except TimeoutError as exc:
            if timeout is None:
                raise RunnerError(reason=f"TimeoutError: {exc}") from exc
            raise RunnerError(reason=f"runner timed out after {timeout:g}s") from exc
        except RunnerError:
            raise
        except Exception as exc:
            raise RunnerError(reason=f"{type(exc).__name__}: {exc}") from exc

    def _failure(
        self,
        task: EvaluationTask,
        item: DatasetItem,
        reason: str,
        latency_ms: int,
        retrieval_ok: bool = False,
    ) -> _ItemOutcome:
        return _ItemOutcome(
            item=item,
            result=EvaluationResult(
                task_id=task.id,
                item_id=item.id,
                retrieval_ok=retrieval_ok,
                generation_ok=False,
                error_message=reason,
                latency_ms=latency_ms,
            ),
            failure=reason,
        )

    async def _record(self, task: EvaluationTask, outcome: _ItemOutcome) -> bool:
        """Persist an item's result. Returns True only for a stored, successful item."""
        try:
            await self._store.save_result(outcome.result)
        except Exception as exc:
            reason = _describe(exc)
            self._observer.result_write_failed(
                task_id=task.id, item_id=outcome.item.id, reason=reason
            )
            if outcome.failure is None:
                self._observer.item_failed(
                    task_id=task.id, item_id=outcome.item.id, reason=reason
                )
                return False

        if outcome.failure is not None:
            self._observer.item_failed(
                task_id=task.id, item_id=outcome.item.id, reason=outcome.failure
            )
            return False

        self._observer.item_completed(
            task_id=task.id, item_id=outcome.item.id, scores=dict(outcome.result.scores)
        )
        return True

    async def _write_task(
        self, task: EvaluationTask, deadline: float | None = None
    ) -> EvaluationTask:
        """Persist a task snapshot, retrying retriable failures with exponential backoff.

        A backoff never sleeps past the run deadline.

        Raises:
            PersistenceError: once retries are exhausted or the failure is not retriable.
        """
        retry = self._config.task_write_retry
        backoff = retry.initial_backoff_seconds
        attempt = 1
        while True:
            try:
                await self._store.save_task(task)
                return task
            except Exception as exc:
                retriable = isinstance(exc, PersistenceError) and exc.retriable
                if not retriable or attempt >= retry.max_attempts:
                    self._observer.task_write_failed(task_id=task.id, reason=_describe(exc))
                    raise
                delay = backoff
                if deadline is not None:
                    remaining = deadline - asyncio.get_running_loop().time()
                    delay = min(delay, max(0.0, remaining))
                self._observer.task_write_retry(
                    task_id=task.id,
                    attempt=attempt,
                    reason=str(exc),
                    backoff_seconds=delay,
                )
            await asyncio.sleep(delay)
            backoff *= retry.backoff_multiplier
            attempt += 1

    async def _finish(
        self,
        task: EvaluationTask,
        results: list[EvaluationResult],
        completed: int,
        total: int,
        reason: str | None,
        started_at: float,
        deadline: float | None,
    ) -> EvaluationTask:
        failed = total - completed
        final = task.finish(
            avg_metrics=average_metrics(results, self.metric_names),
            completed_items=completed,
            failed_items=failed,
            reason=reason,
        )
        try:
            await self._write_task(final, deadline)
        except Exception:
            # Already reported via task_write_failed; the snapshot is still returned.
            pass

        self._observer.evaluation_completed(
            task_id=final.id,
            status=final.status,
            completed=completed,
            failed=failed,
            elapsed_seconds=time.monotonic() - started_at,
            error_message=final.error_message,
        )
        return final


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _describe(exc: Exception) -> str:
    if isinstance(exc, PersistenceError):
        return str(exc)
    return f"{type(exc).__name__}: {exc}"


def _run_failure_reason(exc: Exception) -> str:
    if isinstance(exc, PersistenceError):
        return f"task persistence failed: {exc}"
    return f"unexpected error: {type(exc).__name__}: {exc}"
