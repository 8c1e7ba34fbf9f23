"""Observer port for the dataset domain — defines events in domain language."""

from typing import Protocol


class DatasetObserver(Protocol):
    def dataset_loading_started(self, path: str) -> None: ...

    def dataset_item_loaded(self, line: int) -> None: ...

    def dataset_loading_completed(self, path: str, total_items: int) -> None: ...

    def dataset_loading_failed(self, path: str, reason: str) -> None: ...

    def dataset_created(self, tenant_id: str, dataset_id: str, item_count: int) -> None: ...

    def dataset_rejected(self, tenant_id: str, name: str, reason: str) -> None: ...

    def dataset_deleted(self, tenant_id: str, dataset_id: str) -> None: ...
