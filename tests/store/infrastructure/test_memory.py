"""Tests for the in-memory Store implementation."""

from datetime import UTC, datetime, timedelta

import pytest

from rag_eval.dataset.domain.dataset import Dataset, DatasetItem
from rag_eval.evaluation.domain.result import EvaluationResult
from rag_eval.evaluation.domain.task import EvaluationTask
from rag_eval.store.domain.errors import PersistenceError
from rag_eval.store.infrastructure.memory import InMemoryStore


def _dataset(tenant_id: str = "t1") -> Dataset:
    return Dataset(tenant_id=tenant_id, name="ds", item_count=1)


def _item(dataset_id: str) -> DatasetItem:
    return DatasetItem(dataset_id=dataset_id, query="what?")


def _task(
    tenant_id: str = "t1", dataset_id: str = "ds1", created_at: datetime | None = None
) -> EvaluationTask:
    return EvaluationTask(
        tenant_id=tenant_id,
        dataset_id=dataset_id,
        target_id="agent-a",
        total_items=1,
        created_at=created_at or datetime.now(UTC),
    )


def _result(task_id: str, item_id: str = "i1") -> EvaluationResult:
    return EvaluationResult(
        task_id=task_id, item_id=item_id, retrieval_ok=True, generation_ok=True
    )


class TestDatasets:
    async def test_create_and_get(self) -> None:
        store = InMemoryStore()
        dataset = _dataset()
        await store.create_dataset(dataset, [_item(dataset.id)])

        assert await store.get_dataset("t1", dataset.id) == dataset
        assert len(await store.list_dataset_items(dataset.id)) == 1

    async def test_other_tenant_cannot_see_dataset(self) -> None:
        store = InMemoryStore()
        dataset = _dataset()
        await store.create_dataset(dataset, [])

        assert await store.get_dataset("t2", dataset.id) is None
        assert await store.list_datasets("t2") == []
        assert await store.delete_dataset("t2", dataset.id) is False

    async def test_duplicate_dataset_is_rejected(self) -> None:
        store = InMemoryStore()
        dataset = _dataset()
        await store.create_dataset(dataset, [])

        with pytest.raises(PersistenceError) as exc_info:
            await store.create_dataset(dataset, [])
        assert exc_info.value.retriable is False

    async def test_items_of_another_dataset_are_rejected_atomically(self) -> None:
        store = InMemoryStore()
        dataset = _dataset()

        with pytest.raises(PersistenceError):
            await store.create_dataset(dataset, [_item(dataset.id), _item("other")])

        assert await store.get_dataset("t1", dataset.id) is None
        assert await store.list_dataset_items(dataset.id) == []

    async def test_delete_cascades_to_items(self) -> None:
        store = InMemoryStore()
        dataset = _dataset()
        await store.create_dataset(dataset, [_item(dataset.id)])

        assert await store.delete_dataset("t1", dataset.id) is True
        assert await store.list_dataset_items(dataset.id) == []


class TestTasks:
    async def test_save_is_an_upsert(self) -> None:
        store = InMemoryStore()
        task = _task()
        await store.save_task(task)
        running = task.start()
        await store.save_task(running)

        assert await store.get_task("t1", task.id) == running

    async def test_list_is_newest_first_and_filterable(self) -> None:
        store = InMemoryStore()
        now = datetime.now(UTC)
        old = _task(dataset_id="ds1", created_at=now - timedelta(minutes=5))
        new = _task(dataset_id="ds2", created_at=now)
        await store.save_task(old)
        await store.save_task(new)

        assert [t.id for t in await store.list_tasks("t1")] == [new.id, old.id]
        assert [t.id for t in await store.list_tasks("t1", "ds1")] == [old.id]

    async def test_task_cannot_change_tenant(self) -> None:
        store = InMemoryStore()
        task = _task(tenant_id="t1")
        await store.save_task(task)

        with pytest.raises(PersistenceError):
            await store.save_task(task.model_copy(update={"tenant_id": "t2"}))

    async def test_delete_cascades_to_results(self) -> None:
        store = InMemoryStore()
        task = _task()
        await store.save_task(task)
        await store.save_result(_result(task.id))

        assert await store.delete_task("t1", task.id) is True
        assert await store.list_results(task.id) == []
        assert await store.get_task("t1", task.id) is None

    async def test_other_tenant_cannot_delete_task(self) -> None:
        store = InMemoryStore()
        task = _task()
        await store.save_task(task)

        assert await store.delete_task("t2", task.id) is False
        assert await store.get_task("t1", task.id) == task


class TestResults:
    async def test_save_result_is_idempotent(self) -> None:
        store = InMemoryStore()
        result = _result("task-1")
        await store.save_result(result)
        await store.save_result(result)

        assert await store.list_results("task-1") == [result]

    async def test_second_result_for_same_item_is_rejected(self) -> None:
        store = InMemoryStore()
        await store.save_result(_result("task-1", item_id="i1"))

        with pytest.raises(PersistenceError, match="already has a result"):
            await store.save_result(_result("task-1", item_id="i1"))
