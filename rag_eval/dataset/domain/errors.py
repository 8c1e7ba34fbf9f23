"""Error types raised by the dataset domain."""

from rag_eval.core.errors import RagEvalError


class DatasetNotFoundError(RagEvalError):
    """Raised when a dataset does not exist within the caller's tenant."""

    def __init__(self, dataset_id: str) -> None:
        self.dataset_id = dataset_id
        super().__init__(f"Failed to find dataset: {dataset_id}")


class ItemValidationError(RagEvalError):
    """Raised when one or more items of a create-dataset request are malformed.

    The whole request is rejected; no dataset or item is written.
    """

    def __init__(self, problems: list[str]) -> None:
        self.problems = problems
        super().__init__(f"Failed to validate dataset items: {'; '.join(problems)}")
