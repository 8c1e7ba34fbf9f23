"""MetricInput value object — everything a metric needs to score one dataset item."""

from pydantic import BaseModel, ConfigDict, Field


class MetricInput(BaseModel, frozen=True):
    """Immutable per-item bundle of retrieval and generation inputs.

    Assembled from a DatasetItem's ground truth and the runner's output, consumed
    synchronously by the metric library and then discarded.
    """

    model_config = ConfigDict(frozen=True)

    retrieved_ids: tuple[str, ...] = Field(default_factory=tuple)
    relevant_ids: tuple[str, ...] = Field(default_factory=tuple)
    generated_text: str = ""
    expected_text: str = ""
