"""Tests for EvaluationExecutor: scheduling, aggregation and failure handling."""

import time

import pytest

from rag_eval.config.domain.execution import ExecutionConfig, RetryConfig
from rag_eval.dataset.domain.dataset import DatasetItem
from rag_eval.evaluation.application.executor import EvaluationExecutor
from rag_eval.evaluation.domain.result import TokenUsage
from rag_eval.evaluation.domain.task import EvaluationTask, TaskStatus
from rag_eval.metrics.infrastructure.registry import create_metrics
from rag_eval.runner.domain.errors import RunnerError, RunnerPhase
from rag_eval.runner.domain.runner import RunnerOutput
from rag_eval.store.infrastructure.memory import InMemoryStore
from tests.evaluation.fake_observer import FakeEvaluationObserver
from tests.runner.fake_runner import FakeRunner
from tests.store.failing_store import FailingStore

_GOOD_OUTPUT = RunnerOutput(
    retrieved_ids=("d1",),
    generated_text="paris is the capital of france",
    usage=TokenUsage(prompt_tokens=12, completion_tokens=6),
)


def _make_items(count: int) -> list[DatasetItem]:
    return [
        DatasetItem(
            dataset_id="ds1",
            query=f"q{i}",
            relevant_doc_ids=("d1",),
            expected_answer="paris is the capital of france",
        )
        for i in range(count)
    ]


def _make_task(items: list[DatasetItem], knowledge_scope: str | None = None) -> EvaluationTask:
    return EvaluationTask(
        tenant_id="t1",
        dataset_id="ds1",
        target_id="agent-a",
        knowledge_scope=knowledge_scope,
        total_items=len(items),
    )


def _make_config(
    max_concurrent: int = 4,
    item_timeout_seconds: float | None = None,
    run_deadline_seconds: float | None = None,
    max_attempts: int = 3,
    initial_backoff_seconds: float = 0,
) -> ExecutionConfig:
    return ExecutionConfig(
        max_concurrent=max_concurrent,
        item_timeout_seconds=item_timeout_seconds,
        run_deadline_seconds=run_deadline_seconds,
        task_write_retry=RetryConfig(
            max_attempts=max_attempts,
            initial_backoff_seconds=initial_backoff_seconds,
            backoff_multiplier=1,
        ),
    )


def _make_executor(
    store: InMemoryStore,
    observer: FakeEvaluationObserver,
    config: ExecutionConfig | None = None,
) -> EvaluationExecutor:
    return EvaluationExecutor(
        store=store,
        metrics=create_metrics(),
        config=config or _make_config(),
        observer=observer,
    )


class _CrashingProgressObserver(FakeEvaluationObserver):
    """Raises from every progress event, as a broken display would."""

    def evaluation_progress(
        self,
        task_id: str,
        completed: int,
        failed: int,
        total: int,
        progress: int,
    ) -> None:
        raise RuntimeError("progress display crashed")


class TestAllItemsSucceed:
    """Every item scored: the task completes with averaged metrics."""

    async def test_task_completes_with_all_items_counted(self) -> None:
        items = _make_items(3)
        store = InMemoryStore()
        executor = _make_executor(store, FakeEvaluationObserver())

        task = await executor.execute(_make_task(items), items, FakeRunner(default_output=_GOOD_OUTPUT))

        assert task.status == TaskStatus.COMPLETED
        assert task.completed_items == 3
        assert task.failed_items == 0
        assert task.progress == 100
        assert task.error_message is None

    async def test_averages_cover_every_metric(self) -> None:
        items = _make_items(2)
        executor = _make_executor(InMemoryStore(), FakeEvaluationObserver())

        task = await executor.execute(_make_task(items), items, FakeRunner(default_output=_GOOD_OUTPUT))

        assert set(task.avg_metrics) == set(executor.metric_names)
        assert task.avg_metrics["recall"] == 1.0
        assert task.avg_metrics["rougel"] == 1.0

    async def test_progress_snapshots_are_monotonic_and_end_at_100(self) -> None:
        items = _make_items(3)
        store = FailingStore()
        executor = _make_executor(store, FakeEvaluationObserver())

        await executor.execute(_make_task(items), items, FakeRunner(default_output=_GOOD_OUTPUT))

        assert [t.progress for t in store.task_snapshots] == [0, 33, 67, 100]
        assert [t.status for t in store.task_snapshots] == [
            TaskStatus.RUNNING,
            TaskStatus.RUNNING,
            TaskStatus.RUNNING,
            TaskStatus.COMPLETED,
        ]

    async def test_one_result_per_item_is_stored(self) -> None:
        items = _make_items(3)
        store = InMemoryStore()
        executor = _make_executor(store, FakeEvaluationObserver())

        task = await executor.execute(_make_task(items), items, FakeRunner(default_output=_GOOD_OUTPUT))

        results = await store.list_results(task.id)
        assert sorted(r.item_id for r in results) == sorted(i.id for i in items)
        assert all(r.succeeded for r in results)
        assert all(r.usage is not None and r.usage.total_tokens == 18 for r in results)

    async def test_final_task_is_persisted(self) -> None:
        items = _make_items(2)
        store = InMemoryStore()
        executor = _make_executor(store, FakeEvaluationObserver())

        task = await executor.execute(_make_task(items), items, FakeRunner(default_output=_GOOD_OUTPUT))

        assert await store.get_task("t1", task.id) == task

    async def test_knowledge_scope_is_passed_to_runner(self) -> None:
        items = _make_items(2)
        runner = FakeRunner(default_output=_GOOD_OUTPUT)
        executor = _make_executor(InMemoryStore(), FakeEvaluationObserver())

        await executor.execute(_make_task(items, knowledge_scope="kb-1"), items, runner)

        assert {scope for _, scope in runner.calls} == {"kb-1"}

    async def test_observer_sees_lifecycle_events(self) -> None:
        items = _make_items(3)
        observer = FakeEvaluationObserver()
        executor = _make_executor(InMemoryStore(), observer)

        task = await executor.execute(_make_task(items), items, FakeRunner(default_output=_GOOD_OUTPUT))

        assert len(observer.started) == 1
        assert observer.started[0].total_items == 3
        assert len(observer.items_started) == 3
        assert len(observer.items_completed) == 3
        assert [e.progress for e in observer.progress] == [33, 67]
        assert len(observer.completed) == 1
        assert observer.completed[0].task_id == task.id
        assert observer.completed[0].status == TaskStatus.COMPLETED


class TestItemFailures:
    """A failing item is recorded and counted but never aborts the run."""

    async def test_runner_error_fails_task_but_scores_other_items(self) -> None:
        items = _make_items(3)
        runner = FakeRunner(
            outputs={"q1": RunnerError(reason="search backend down")},
            default_output=_GOOD_OUTPUT,
        )
        store = InMemoryStore()
        observer = FakeEvaluationObserver()
        executor = _make_executor(store, observer)

        task = await executor.execute(_make_task(items), items, runner)

        assert task.status == TaskStatus.FAILED
        assert task.completed_items == 2
        assert task.failed_items == 1
        assert task.error_message == "1 items failed"
        assert task.avg_metrics["recall"] == 1.0
        assert len(observer.items_failed) == 1
        assert "search backend down" in observer.items_failed[0].reason

    async def test_failed_item_is_recorded_with_error(self) -> None:
        items = _make_items(2)
        runner = FakeRunner(
            outputs={"q0": RunnerError(reason="boom")}, default_output=_GOOD_OUTPUT
        )
        store = InMemoryStore()
        executor = _make_executor(store, FakeEvaluationObserver())

        task = await executor.execute(_make_task(items), items, runner)

        failed = [r for r in await store.list_results(task.id) if not r.succeeded]
        assert len(failed) == 1
        assert failed[0].item_id == items[0].id
        assert failed[0].scores == {}
        assert failed[0].retrieval_ok is False
        assert "boom" in (failed[0].error_message or "")

    async def test_generation_failure_keeps_retrieval_ok(self) -> None:
        items = _make_items(1)
        runner = FakeRunner(
            outputs={"q0": RunnerError(reason="llm refused", phase=RunnerPhase.GENERATION)}
        )
        store = InMemoryStore()
        executor = _make_executor(store, FakeEvaluationObserver())

        task = await executor.execute(_make_task(items), items, runner)

        [result] = await store.list_results(task.id)
        assert result.retrieval_ok is True
        assert result.generation_ok is False

    async def test_unexpected_exception_is_wrapped(self) -> None:
        items = _make_items(1)
        runner = FakeRunner(outputs={"q0": ValueError("bad payload")})
        observer = FakeEvaluationObserver()
        executor = _make_executor(InMemoryStore(), observer)

        task = await executor.execute(_make_task(items), items, runner)

        assert task.status == TaskStatus.FAILED
        assert "ValueError: bad payload" in observer.items_failed[0].reason

    async def test_all_items_failing_gives_zero_averages(self) -> None:
        items = _make_items(2)
        runner = FakeRunner(default_output=_GOOD_OUTPUT, outputs={
            "q0": RunnerError(reason="x"),
            "q1": RunnerError(reason="y"),
        })
        executor = _make_executor(InMemoryStore(), FakeEvaluationObserver())

        task = await executor.execute(_make_task(items), items, runner)

        assert task.failed_items == 2
        assert set(task.avg_metrics.values()) == {0.0}

    async def test_averages_exclude_the_failed_item(self) -> None:
        items = [
            DatasetItem(
                dataset_id="ds1",
                query=f"q{i}",
                relevant_doc_ids=("d1", "d2"),
                expected_answer="paris",
            )
            for i in range(5)
        ]
        runner = FakeRunner(
            outputs={
                "q0": RunnerOutput(retrieved_ids=("d1", "d2"), generated_text="paris"),
                "q1": RunnerOutput(retrieved_ids=("d1",), generated_text="paris"),
                "q2": RunnerOutput(retrieved_ids=("d1",), generated_text="paris"),
                "q3": RunnerOutput(retrieved_ids=("x",), generated_text="paris"),
                "q4": RunnerError(reason="search backend down"),
            }
        )
        executor = _make_executor(InMemoryStore(), FakeEvaluationObserver())

        task = await executor.execute(_make_task(items), items, runner)

        assert task.status == TaskStatus.FAILED
        assert task.completed_items == 4
        assert task.failed_items == 1
        assert task.error_message == "1 items failed"
        # Including the failed item would give 0.4 and 0.6.
        assert task.avg_metrics["recall"] == pytest.approx(0.5)
        assert task.avg_metrics["precision"] == pytest.approx(0.75)

    async def test_missing_ground_truth_is_reported_and_scored_zero(self) -> None:
        items = [DatasetItem(dataset_id="ds1", query="q0", expected_answer="paris")]
        observer = FakeEvaluationObserver()
        executor = _make_executor(InMemoryStore(), observer)

        task = await executor.execute(
            _make_task(items), items, FakeRunner(default_output=_GOOD_OUTPUT)
        )

        assert task.status == TaskStatus.COMPLETED
        assert task.avg_metrics["recall"] == 0.0
        assert {e.metric for e in observer.metric_inputs_invalid} == {
            "recall",
            "precision",
            "f1",
        }


class TestTimeouts:
    async def test_item_timeout_fails_only_the_slow_item(self) -> None:
        items = _make_items(3)
        runner = FakeRunner(default_output=_GOOD_OUTPUT, hang={"q1"})
        observer = FakeEvaluationObserver()
        executor = _make_executor(
            InMemoryStore(), observer, _make_config(item_timeout_seconds=0.05)
        )

        task = await executor.execute(_make_task(items), items, runner)

        assert task.completed_items == 2
        assert task.failed_items == 1
        assert "runner timed out after 0.05s" in observer.items_failed[0].reason

    async def test_run_deadline_cancels_outstanding_items(self) -> None:
        items = _make_items(3)
        runner = FakeRunner(default_output=_GOOD_OUTPUT, hang={"q2"})
        store = InMemoryStore()
        observer = FakeEvaluationObserver()
        executor = _make_executor(store, observer, _make_config(run_deadline_seconds=0.2))

        task = await executor.execute(_make_task(items), items, runner)

        assert task.status == TaskStatus.FAILED
        assert task.completed_items == 2
        assert task.failed_items == 1
        assert task.error_message == "run cancelled: deadline of 0.2s exceeded; 1 items failed"
        assert observer.deadline_exceeded[0].unreported == 1

        cancelled = [r for r in await store.list_results(task.id) if not r.succeeded]
        assert [r.item_id for r in cancelled] == [items[2].id]
        assert cancelled[0].error_message == "cancelled before completion"
        assert runner.in_flight == 0


class TestConcurrency:
    async def test_in_flight_calls_never_exceed_max_concurrent(self) -> None:
        items = _make_items(10)
        runner = FakeRunner(default_output=_GOOD_OUTPUT, delay=0.01)
        executor = _make_executor(
            InMemoryStore(), FakeEvaluationObserver(), _make_config(max_concurrent=2)
        )

        task = await executor.execute(_make_task(items), items, runner)

        assert task.completed_items == 10
        assert runner.max_in_flight == 2
        assert runner.call_count == 10

    async def test_single_worker_processes_items_in_order(self) -> None:
        items = _make_items(4)
        runner = FakeRunner(default_output=_GOOD_OUTPUT)
        executor = _make_executor(
            InMemoryStore(), FakeEvaluationObserver(), _make_config(max_concurrent=1)
        )

        await executor.execute(_make_task(items), items, runner)

        assert [query for query, _ in runner.calls] == ["q0", "q1", "q2", "q3"]


class TestEmptyDataset:
    async def test_completes_immediately_with_zero_averages(self) -> None:
        store = FailingStore()
        runner = FakeRunner()
        executor = _make_executor(store, FakeEvaluationObserver())

        task = await executor.execute(_make_task([]), [], runner)

        assert task.status == TaskStatus.COMPLETED
        assert task.progress == 100
        assert set(task.avg_metrics.values()) == {0.0}
        assert runner.call_count == 0
        assert [t.status for t in store.task_snapshots] == [
            TaskStatus.RUNNING,
            TaskStatus.COMPLETED,
        ]


class TestPersistenceFailures:
    async def test_transient_task_write_failures_are_retried(self) -> None:
        items = _make_items(2)
        store = FailingStore(task_failures=2)
        observer = FakeEvaluationObserver()
        executor = _make_executor(store, observer)

        task = await executor.execute(_make_task(items), items, FakeRunner(default_output=_GOOD_OUTPUT))

        assert task.status == TaskStatus.COMPLETED
        assert [e.attempt for e in observer.task_write_retries] == [1, 2]
        assert observer.task_writes_failed == []

    async def test_non_retriable_start_failure_fails_without_running_items(self) -> None:
        items = _make_items(2)
        store = FailingStore(task_failures=1, task_failures_retriable=False)
        runner = FakeRunner(default_output=_GOOD_OUTPUT)
        observer = FakeEvaluationObserver()
        executor = _make_executor(store, observer)

        task = await executor.execute(_make_task(items), items, runner)

        assert task.status == TaskStatus.FAILED
        assert task.failed_items == 2
        assert (task.error_message or "").startswith("task persistence failed:")
        assert runner.call_count == 0
        assert observer.task_write_retries == []
        assert len(observer.task_writes_failed) == 1
        assert store.task_snapshots[-1].status == TaskStatus.FAILED

    async def test_exhausted_retries_end_the_run(self) -> None:
        items = _make_items(3)
        store = FailingStore(fail_task_writes_after=1)
        observer = FakeEvaluationObserver()
        executor = _make_executor(store, observer, _make_config(max_attempts=2))

        task = await executor.execute(_make_task(items), items, FakeRunner(default_output=_GOOD_OUTPUT))

        assert task.status == TaskStatus.FAILED
        assert task.completed_items == 1
        assert task.failed_items == 2
        assert (task.error_message or "").startswith(
            "task persistence failed: Failed to save task: database unavailable"
        )
        assert len(observer.completed) == 1

    async def test_result_write_failure_counts_item_as_failed(self) -> None:
        items = _make_items(2)
        store = FailingStore(failing_items={items[0].id})
        observer = FakeEvaluationObserver()
        executor = _make_executor(store, observer)

        task = await executor.execute(_make_task(items), items, FakeRunner(default_output=_GOOD_OUTPUT))

        assert task.status == TaskStatus.FAILED
        assert task.completed_items == 1
        assert task.failed_items == 1
        assert [e.item_id for e in observer.result_writes_failed] == [items[0].id]
        assert [e.item_id for e in observer.items_failed] == [items[0].id]

    async def test_unexpected_result_write_error_still_finishes_task(self) -> None:
        items = _make_items(3)
        store = FailingStore(result_error=RuntimeError("driver crashed"))
        observer = FakeEvaluationObserver()
        executor = _make_executor(store, observer)

        task = await executor.execute(_make_task(items), items, FakeRunner(default_output=_GOOD_OUTPUT))

        assert task.status == TaskStatus.FAILED
        assert task.progress == 100
        assert task.completed_items == 0
        assert task.failed_items == 3
        stored = await store.get_task("t1", task.id)
        assert stored is not None
        assert stored.status == TaskStatus.FAILED
        assert stored.progress == 100
        assert len(observer.result_writes_failed) == 3
        assert "RuntimeError: driver crashed" in observer.result_writes_failed[0].reason
        assert len(observer.completed) == 1

    async def test_task_write_backoff_never_sleeps_past_run_deadline(self) -> None:
        items = _make_items(2)
        store = FailingStore(task_failures=1)
        observer = FakeEvaluationObserver()
        executor = _make_executor(
            store,
            observer,
            _make_config(run_deadline_seconds=0.1, initial_backoff_seconds=5.0),
        )

        started = time.monotonic()
        task = await executor.execute(_make_task(items), items, FakeRunner(default_output=_GOOD_OUTPUT))

        assert time.monotonic() - started < 1.0
        assert task.status.is_terminal
        assert len(observer.task_write_retries) == 1
        assert observer.task_write_retries[0].backoff_seconds <= 0.1


class TestUnexpectedErrors:
    """A bug outside the item path still drives the task to a terminal state."""

    async def test_crashing_observer_fails_the_run_and_cancels_the_rest(self) -> None:
        items = _make_items(3)
        store = InMemoryStore()
        observer = _CrashingProgressObserver()
        executor = _make_executor(store, observer, _make_config(max_concurrent=1))

        task = await executor.execute(_make_task(items), items, FakeRunner(default_output=_GOOD_OUTPUT))

        assert task.status == TaskStatus.FAILED
        assert task.completed_items == 1
        assert task.failed_items == 2
        assert task.completed_items + task.failed_items == task.total_items
        assert task.error_message == (
            "unexpected error: RuntimeError: progress display crashed; 2 items failed"
        )
        assert await store.get_task("t1", task.id) == task
        cancelled = [r for r in await store.list_results(task.id) if not r.succeeded]
        assert {r.error_message for r in cancelled} == {"cancelled before completion"}
