"""Dataset aggregate — a named, tenant-scoped set of ground-truth items."""

from datetime import UTC, datetime
from enum import StrEnum
from typing import Any
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


def _new_id() -> str:
    return str(uuid4())


def _now() -> datetime:
    return datetime.now(UTC)


class DatasetSource(StrEnum):
    MANUAL = "manual"
    FILE = "file"
    TRACE = "trace"


class DatasetItem(BaseModel, frozen=True):
    """One ground-truth test case. Owned by exactly one Dataset, never edited."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    dataset_id: str
    query: str = Field(min_length=1)
    query_id: str | None = None
    relevant_doc_ids: tuple[str, ...] = Field(default_factory=tuple)
    expected_answer: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)
    created_at: datetime = Field(default_factory=_now)


class Dataset(BaseModel, frozen=True):
    """Dataset header row. Its item set is fixed at creation time."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(default_factory=_new_id)
    tenant_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str = ""
    source: DatasetSource = DatasetSource.MANUAL
    item_count: int = Field(default=0, ge=0)
    version: int = Field(default=1, ge=1)
    created_at: datetime = Field(default_factory=_now)


class NewDatasetItem(BaseModel, frozen=True):
    """Caller-supplied item before it is validated and bound to a dataset."""

    query: str
    query_id: str | None = None
    relevant_doc_ids: list[str] = Field(default_factory=list)
    expected_answer: str = ""
    metadata: dict[str, Any] = Field(default_factory=dict)


class NewDataset(BaseModel, frozen=True):
    """Request to create a dataset together with all of its items."""

    tenant_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: str = ""
    source: DatasetSource = DatasetSource.MANUAL
    items: list[NewDatasetItem] = Field(default_factory=list)
