"""Structlog implementation of the DatasetObserver port."""

import structlog


class StructlogDatasetObserver:
    """Delegates dataset domain events to structlog.

    Satisfies the DatasetObserver protocol structurally.
    """

    def __init__(self) -> None:
        self._log = structlog.get_logger()

    def dataset_loading_started(self, path: str) -> None:
        self._log.info("dataset.loading_started", path=path)

    def dataset_item_loaded(self, line: int) -> None:
        self._log.debug("dataset.item_loaded", line=line)

    def dataset_loading_completed(self, path: str, total_items: int) -> None:
        self._log.info("dataset.loading_completed", path=path, total_items=total_items)

    def dataset_loading_failed(self, path: str, reason: str) -> None:
        self._log.error("dataset.loading_failed", path=path, reason=reason)

    def dataset_created(self, tenant_id: str, dataset_id: str, item_count: int) -> None:
        self._log.info(
            "dataset.created",
            tenant_id=tenant_id,
            dataset_id=dataset_id,
            item_count=item_count,
        )

    def dataset_rejected(self, tenant_id: str, name: str, reason: str) -> None:
        self._log.warning("dataset.rejected", tenant_id=tenant_id, name=name, reason=reason)

    def dataset_deleted(self, tenant_id: str, dataset_id: str) -> None:
        self._log.info("dataset.deleted", tenant_id=tenant_id, dataset_id=dataset_id)
