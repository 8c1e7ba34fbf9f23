"""Store Protocol — tenant-scoped persistence for datasets, tasks and results."""

from typing import Protocol

from rag_eval.dataset.domain.dataset import Dataset, DatasetItem
from rag_eval.evaluation.domain.result import EvaluationResult
from rag_eval.evaluation.domain.task import EvaluationTask


class Store(Protocol):
    """Persistence port consumed by the evaluation service and executor.

    Implementations must be safe for concurrent use and give read-after-write
    consistency within a tenant. Every method may raise PersistenceError.
    """

    async def create_dataset(self, dataset: Dataset, items: list[DatasetItem]) -> None:
        """Insert the dataset and all of its items as one atomic unit."""
        ...

    async def get_dataset(self, tenant_id: str, dataset_id: str) -> Dataset | None: ...

    async def list_datasets(self, tenant_id: str) -> list[Dataset]: ...

    async def list_dataset_items(self, dataset_id: str) -> list[DatasetItem]: ...

    async def delete_dataset(self, tenant_id: str, dataset_id: str) -> bool:
        """Remove the dataset's items, then the dataset, atomically."""
        ...

    async def save_task(self, task: EvaluationTask) -> None:
        """Idempotent upsert keyed by task id."""
        ...

    async def get_task(self, tenant_id: str, task_id: str) -> EvaluationTask | None: ...

    async def list_tasks(
        self, tenant_id: str, dataset_id: str | None = None
    ) -> list[EvaluationTask]:
        """Tasks for the tenant, newest first, optionally filtered by dataset."""
        ...

    async def save_result(self, result: EvaluationResult) -> None:
        """Idempotent upsert keyed by result id."""
        ...

    async def list_results(self, task_id: str) -> list[EvaluationResult]: ...

    async def delete_task(self, tenant_id: str, task_id: str) -> bool:
        """Remove the task's results, then the task, atomically."""
        ...
