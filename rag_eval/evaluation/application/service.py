"""EvaluationService — the engine's public operations on datasets, tasks and results."""

import asyncio

from rag_eval.dataset.domain.dataset import Dataset, DatasetItem, NewDataset
from rag_eval.dataset.domain.errors import DatasetNotFoundError, ItemValidationError
from rag_eval.dataset.domain.observer import DatasetObserver
from rag_eval.evaluation.application.executor import EvaluationExecutor
from rag_eval.evaluation.domain.errors import TaskInProgressError, TaskNotFoundError
from rag_eval.evaluation.domain.result import EvaluationResult
from rag_eval.evaluation.domain.task import EvaluationTask
from rag_eval.runner.infrastructure.registry import RunnerRegistry
from rag_eval.store.domain.store import Store


class EvaluationService:
    """Synchronous CRUD over the store plus asynchronous evaluation runs.

    run_evaluation() returns the pending task immediately and hands execution to
    a background asyncio.Task owned by this service, so cancelling the caller
    does not abort the run. Call close() to wait for outstanding runs.
    """

    def __init__(
        self,
        store: Store,
        runners: RunnerRegistry,
        executor: EvaluationExecutor,
        observer: DatasetObserver,
    ) -> None:
        self._store = store
        self._runners = runners
        self._executor = executor
        self._observer = observer
        self._running: dict[str, asyncio.Task[EvaluationTask]] = {}

    # ------------------------------------------------------------------
    # Datasets
    # ------------------------------------------------------------------

    async def create_dataset(self, request: NewDataset) -> Dataset:
        """Validate every item, then create the dataset and its items atomically.

        Raises:
            ItemValidationError: listing every malformed item; nothing is written.
            PersistenceError: if the store rejects the write.
        """
        problems = [
            f"item {index}: query is required"
            for index, item in enumerate(request.items)
            if not item.query.strip()
        ]
        if problems:
            error = ItemValidationError(problems=problems)
            self._observer.dataset_rejected(
                tenant_id=request.tenant_id, name=request.name, reason=str(error)
            )
            raise error

        dataset = Dataset(
            tenant_id=request.tenant_id,
            name=request.name,
            description=request.description,
            source=request.source,
            item_count=len(request.items),
        )
        items = [
            DatasetItem(
                dataset_id=dataset.id,
                query=item.query,
                query_id=item.query_id,
                relevant_doc_ids=tuple(item.relevant_doc_ids),
                expected_answer=item.expected_answer,
                metadata=item.metadata,
            )
            for item in request.items
        ]
        await self._store.create_dataset(dataset, items)
        self._observer.dataset_created(
            tenant_id=dataset.tenant_id, dataset_id=dataset.id, item_count=len(items)
        )
        return dataset

    async def get_dataset(self, tenant_id: str, dataset_id: str) -> Dataset:
        dataset = await self._store.get_dataset(tenant_id, dataset_id)
        if dataset is None:
            raise DatasetNotFoundError(dataset_id=dataset_id)
        return dataset

    async def list_datasets(self, tenant_id: str) -> list[Dataset]:
        return await self._store.list_datasets(tenant_id)

    async def get_dataset_items(self, tenant_id: str, dataset_id: str) -> list[DatasetItem]:
        dataset = await self.get_dataset(tenant_id, dataset_id)
        return await self._store.list_dataset_items(dataset.id)

    async def delete_dataset(self, tenant_id: str, dataset_id: str) -> None:
        if not await self._store.delete_dataset(tenant_id, dataset_id):
            raise DatasetNotFoundError(dataset_id=dataset_id)
        self._observer.dataset_deleted(tenant_id=tenant_id, dataset_id=dataset_id)

    # ------------------------------------------------------------------
    # Evaluation runs
    # ------------------------------------------------------------------

    async def run_evaluation(
        self,
        tenant_id: str,
        dataset_id: str,
        target_id: str,
        knowledge_scope: str | None = None,
    ) -> EvaluationTask:
        """Create a pending task and start evaluating it in the background.

        Raises:
            DatasetNotFoundError: if the dataset is not visible to tenant_id.
            RunnerNotSupportedError: if no runner can be built for target_id.
            PersistenceError: if the pending task cannot be created.
        """
        items = await self.get_dataset_items(tenant_id, dataset_id)
        runner = self._runners.get_or_create(target_id)

        task = EvaluationTask(
            tenant_id=tenant_id,
            dataset_id=dataset_id,
            target_id=target_id,
            knowledge_scope=knowledge_scope,
            total_items=len(items),
        )
        await self._store.save_task(task)

        background = asyncio.create_task(
            self._executor.execute(task, items, runner),
            name=f"evaluation-{task.id}",
        )
        self._running[task.id] = background
        background.add_done_callback(lambda _: self._running.pop(task.id, None))
        return task

    async def wait_for_task(self, tenant_id: str, task_id: str) -> EvaluationTask:
        """Wait for a background run to finish and return the stored task."""
        background = self._running.get(task_id)
        if background is not None:
            await asyncio.shield(background)
        return await self.get_task(tenant_id, task_id)

    async def close(self) -> None:
        """Wait for every outstanding background run to reach a terminal state."""
        if self._running:
            await asyncio.gather(*self._running.values())

    # ------------------------------------------------------------------
    # Tasks and results
    # ------------------------------------------------------------------

    async def get_task(self, tenant_id: str, task_id: str) -> EvaluationTask:
        task = await self._store.get_task(tenant_id, task_id)
        if task is None:
            raise TaskNotFoundError(task_id=task_id)
        return task

    async def list_tasks(
        self, tenant_id: str, dataset_id: str | None = None
    ) -> list[EvaluationTask]:
        return await self._store.list_tasks(tenant_id, dataset_id)

    async def get_task_results(self, tenant_id: str, task_id: str) -> list[EvaluationResult]:
        task = await self.get_task(tenant_id, task_id)
        return await self._store.list_results(task.id)

    async def delete_task(self, tenant_id: str, task_id: str) -> None:
        """Delete a finished task and its results.

        Raises:
            TaskNotFoundError: if the task does not exist for tenant_id.
            TaskInProgressError: if the task is still being evaluated.
        """
        task = await self.get_task(tenant_id, task_id)
        if task.id in self._running:
            raise TaskInProgressError(task_id=task.id)
        if not await self._store.delete_task(tenant_id, task.id):
            raise TaskNotFoundError(task_id=task_id)
