"""Error types raised by the evaluation domain."""

from rag_eval.core.errors import RagEvalError


class TaskNotFoundError(RagEvalError):
    """Raised when an evaluation task does not exist within the caller's tenant."""

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Failed to find evaluation task: {task_id}")


class InvalidTaskTransitionError(RagEvalError):
    """Raised when a task lifecycle transition is not allowed from its current state."""

    def __init__(self, task_id: str, reason: str) -> None:
        self.task_id = task_id
        super().__init__(f"Failed to transition evaluation task {task_id}: {reason}")


class TaskInProgressError(RagEvalError):
    """Raised when an operation needs a finished task but the task is still running."""

    def __init__(self, task_id: str) -> None:
        self.task_id = task_id
        super().__init__(f"Failed to modify evaluation task {task_id}: still running")
