"""InMemoryStore — reference Store implementation backed by dictionaries."""

import asyncio

from rag_eval.dataset.domain.dataset import Dataset, DatasetItem
from rag_eval.evaluation.domain.result import EvaluationResult
from rag_eval.evaluation.domain.task import EvaluationTask
from rag_eval.store.domain.errors import PersistenceError


class InMemoryStore:
    """Satisfies the Store protocol structurally.

    A single asyncio.Lock serialises every operation, which makes multi-row
    operations (dataset creation, cascading deletes) atomic with respect to
    other callers. Stored entities are frozen pydantic models, so they are
    shared rather than copied.
    """

    def __init__(self) -> None:
        self._lock = asyncio.Lock()
        self._datasets: dict[str, Dataset] = {}
        self._items: dict[str, list[DatasetItem]] = {}
        self._tasks: dict[str, EvaluationTask] = {}
        self._results: dict[str, dict[str, EvaluationResult]] = {}

    async def create_dataset(self, dataset: Dataset, items: list[DatasetItem]) -> None:
        async with self._lock:
            if dataset.id in self._datasets:
                raise PersistenceError(
                    operation="create dataset",
                    reason=f"dataset {dataset.id} already exists",
                    retriable=False,
                )
            foreign = [item.id for item in items if item.dataset_id != dataset.id]
            if foreign:
                raise PersistenceError(
                    operation="create dataset",
                    reason=f"items {foreign} belong to another dataset",
                    retriable=False,
                )
            self._datasets[dataset.id] = dataset
            self._items[dataset.id] = list(items)

    async def get_dataset(self, tenant_id: str, dataset_id: str) -> Dataset | None:
        async with self._lock:
            dataset = self._datasets.get(dataset_id)
            if dataset is None or dataset.tenant_id != tenant_id:
                return None
            return dataset

    async def list_datasets(self, tenant_id: str) -> list[Dataset]:
        async with self._lock:
            return [d for d in self._datasets.values() if d.tenant_id == tenant_id]

    async def list_dataset_items(self, dataset_id: str) -> list[DatasetItem]:
        async with self._lock:
            return list(self._items.get(dataset_id, []))

    async def delete_dataset(self, tenant_id: str, dataset_id: str) -> bool:
        async with self._lock:
            dataset = self._datasets.get(dataset_id)
            if dataset is None or dataset.tenant_id != tenant_id:
                return False
            self._items.pop(dataset_id, None)
            del self._datasets[dataset_id]
            return True

    async def save_task(self, task: EvaluationTask) -> None:
        async with self._lock:
            existing = self._tasks.get(task.id)
            if existing is not None and existing.tenant_id != task.tenant_id:
                raise PersistenceError(
                    operation="save task",
                    reason=f"task {task.id} belongs to another tenant",
                    retriable=False,
                )
            self._tasks[task.id] = task

    async def get_task(self, tenant_id: str, task_id: str) -> EvaluationTask | None:
        async with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.tenant_id != tenant_id:
                return None
            return task

    async def list_tasks(
        self, tenant_id: str, dataset_id: str | None = None
    ) -> list[EvaluationTask]:
        async with self._lock:
            tasks = [
                t
                for t in self._tasks.values()
                if t.tenant_id == tenant_id
                and (dataset_id is None or t.dataset_id == dataset_id)
            ]
        return sorted(tasks, key=lambda t: t.created_at, reverse=True)

    async def save_result(self, result: EvaluationResult) -> None:
        async with self._lock:
            results = self._results.setdefault(result.task_id, {})
            for existing in results.values():
                if existing.item_id == result.item_id and existing.id != result.id:
                    raise PersistenceError(
                        operation="save result",
                        reason=(
                            f"task {result.task_id} already has a result for"
                            f" item {result.item_id}"
                        ),
                        retriable=False,
                    )
            results[result.id] = result

    async def list_results(self, task_id: str) -> list[EvaluationResult]:
        async with self._lock:
            return list(self._results.get(task_id, {}).values())

    async def delete_task(self, tenant_id: str, task_id: str) -> bool:
        async with self._lock:
            task = self._tasks.get(task_id)
            if task is None or task.tenant_id != tenant_id:
                return False
            self._results.pop(task_id, None)
            del self._tasks[task_id]
            return True
