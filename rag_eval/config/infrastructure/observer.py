"""Structlog implementation of the ConfigObserver port."""

import structlog


class StructlogConfigObserver:
    """Delegates config domain events to structlog.

    Satisfies the ConfigObserver protocol structurally.
    """

    def __init__(self) -> None:
        self._log = structlog.get_logger()

    def config_loaded(
        self, name: str, version: str, metrics: list[str], max_concurrent: int
    ) -> None:
        self._log.info(
            "config.loaded",
            name=name,
            version=version,
            metrics=metrics,
            max_concurrent=max_concurrent,
        )

    def config_no_run_deadline_warning(self, max_concurrent: int) -> None:
        self._log.warning(
            "config.execution.unbounded_warning",
            max_concurrent=max_concurrent,
            message="execution sets neither run_deadline_seconds nor "
            "item_timeout_seconds; a runner that never answers keeps the task "
            "running indefinitely",
        )
