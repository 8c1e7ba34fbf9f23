"""Observer port for the config domain — defines events in domain language."""

from typing import Protocol


class ConfigObserver(Protocol):
    def config_loaded(
        self, name: str, version: str, metrics: list[str], max_concurrent: int
    ) -> None: ...

    def config_no_run_deadline_warning(self, max_concurrent: int) -> None: ...
