"""ProgressEvaluationObserver — renders a Rich progress bar per evaluation task to stderr."""

from __future__ import annotations

from rich.console import Console
from rich.progress import (
    Progress,
    ProgressColumn,
    Task,
    TaskID,
    TextColumn,
    TimeElapsedColumn,
    TimeRemainingColumn,
)
from rich.text import Text


class _ThreeSegmentBarColumn(ProgressColumn):
    """ProgressColumn that renders three segments: succeeded, failed, remaining."""

    def __init__(self, bar_width: int = 40) -> None:
        super().__init__()
        self.bar_width = bar_width

    def render(self, task: Task) -> Text:
        bar_width = self.bar_width or 40
        total = task.total or 0
        if total > 0:
            failed = int(task.fields.get("failed", 0))
            failed_cells = int(failed / total * bar_width)
            done_cells = min(
                int((task.completed - failed) / total * bar_width),
                bar_width - failed_cells,
            )
        else:
            done_cells = 0
            failed_cells = 0
        remaining_cells = bar_width - done_cells - failed_cells

        result = Text()
        result.append("█" * done_cells, style="bright_green")
        result.append("█" * failed_cells, style="red")
        result.append("░" * remaining_cells, style="dim white")
        return result


class ProgressEvaluationObserver:
    """Shows one progress row per running task, with succeeded and failed items.

    Only evaluation_started, item_completed, item_failed and evaluation_completed
    produce output; all other events are no-ops. The Rich display is started on
    the first task and stopped when the last running task completes.

    Pass ``disabled=True`` to track counts without rendering (useful in tests).

    Does NOT inherit from EvaluationObserver (structural typing via Protocol).
    """

    def __init__(self, disabled: bool = False) -> None:
        self._disabled = disabled
        self._done: dict[str, int] = {}
        self._failed: dict[str, int] = {}
        self._task_ids: dict[str, TaskID] = {}
        self._progress: Progress | None = None

    def done(self, task_id: str) -> int:
        return self._done.get(task_id, 0)

    def failed(self, task_id: str) -> int:
        return self._failed.get(task_id, 0)

    def _bump(self, task_id: str, failed: bool) -> None:
        if task_id not in self._done:
            return
        self._done[task_id] += 1
        if failed:
            self._failed[task_id] += 1
        if self._progress is not None and task_id in self._task_ids:
            self._progress.update(
                self._task_ids[task_id],
                completed=self._done[task_id],
                failed=self._failed[task_id],
            )

    def evaluation_started(
        self,
        task_id: str,
        dataset_id: str,
        target_id: str,
        total_items: int,
        max_concurrent: int,
    ) -> None:
        self._done[task_id] = 0
        self._failed[task_id] = 0

        if self._disabled:
            return

        if self._progress is None:
            self._progress = Progress(
                TextColumn("{task.description}"),
                _ThreeSegmentBarColumn(bar_width=40),
                TextColumn("{task.completed:.0f}/{task.total:.0f}"),
                TextColumn("[red]{task.fields[failed]} failed[/red]"),
                TimeElapsedColumn(),
                TextColumn("eta"),
                TimeRemainingColumn(),
                console=Console(stderr=True),
                refresh_per_second=10,
                transient=False,
            )
            self._progress.start()

        self._task_ids[task_id] = self._progress.add_task(
            description=f"{target_id} [{task_id[:8]}]",
            total=float(total_items),
            failed=0,
        )

    def evaluation_progress(
        self,
        task_id: str,
        completed: int,
        failed: int,
        total: int,
        progress: int,
    ) -> None:
        pass

    def evaluation_completed(
        self,
        task_id: str,
        status: str,
        completed: int,
        failed: int,
        elapsed_seconds: float,
        error_message: str | None,
    ) -> None:
        if self._progress is not None and task_id in self._task_ids:
            self._progress.update(
                self._task_ids.pop(task_id),
                completed=completed + failed,
                failed=failed,
            )
            if not self._task_ids:
                self._progress.stop()
                self._progress = None

        self._done.pop(task_id, None)
        self._failed.pop(task_id, None)

    def evaluation_deadline_exceeded(
        self,
        task_id: str,
        deadline_seconds: float,
        unreported: int,
    ) -> None:
        pass

    def item_started(self, task_id: str, item_id: str) -> None:
        pass

    def item_completed(
        self,
        task_id: str,
        item_id: str,
        scores: dict[str, float],
    ) -> None:
        self._bump(task_id=task_id, failed=False)

    def item_failed(self, task_id: str, item_id: str, reason: str) -> None:
        self._bump(task_id=task_id, failed=True)

    def metric_input_invalid(
        self,
        task_id: str,
        item_id: str,
        metric: str,
        reason: str,
    ) -> None:
        pass

    def result_write_failed(self, task_id: str, item_id: str, reason: str) -> None:
        pass

    def task_write_retry(
        self,
        task_id: str,
        attempt: int,
        reason: str,
        backoff_seconds: float,
    ) -> None:
        pass

    def task_write_failed(self, task_id: str, reason: str) -> None:
        pass
