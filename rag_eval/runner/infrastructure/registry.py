"""RunnerRegistry — owns the live Runner instance for each evaluated target."""

import threading

from rag_eval.runner.domain.runner import Runner, RunnerFactory


class RunnerRegistry:
    """Caches one Runner per target id, creating it on first use.

    Lookup and creation happen under a single lock so two concurrent runs against
    the same target share one Runner instead of racing to build two.
    """

    def __init__(self, factory: RunnerFactory) -> None:
        self._factory = factory
        self._runners: dict[str, Runner] = {}
        self._lock = threading.Lock()

    def get_or_create(self, target_id: str) -> Runner:
        """Return the cached Runner for target_id, building it if needed.

        Raises:
            RunnerNotSupportedError: propagated from the factory for unknown targets.
        """
        with self._lock:
            runner = self._runners.get(target_id)
            if runner is None:
                runner = self._factory.create(target_id=target_id)
                self._runners[target_id] = runner
            return runner

    def evict(self, target_id: str) -> bool:
        """Drop the cached Runner for target_id. Returns whether one was cached."""
        with self._lock:
            return self._runners.pop(target_id, None) is not None

    def __len__(self) -> int:
        with self._lock:
            return len(self._runners)
