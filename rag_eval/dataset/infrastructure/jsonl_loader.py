"""JSONL dataset loader — reads a ground-truth file into a NewDataset request."""

import json
from pathlib import Path
from typing import Any

from pydantic import ValidationError

from rag_eval.dataset.domain.dataset import DatasetSource, NewDataset, NewDatasetItem
from rag_eval.dataset.domain.observer import DatasetObserver
from rag_eval.dataset.infrastructure.errors import DatasetLoadError


class JsonlDatasetLoader:
    """Loads a JSONL file where each line is one dataset item.

    Recognised keys per line: ``query`` (required), ``relevant_doc_ids``,
    ``expected_answer``, ``query_id`` and ``metadata``. Unknown keys are folded
    into metadata so nothing in the source file is silently dropped.
    """

    _KNOWN_KEYS = frozenset(
        {"query", "relevant_doc_ids", "expected_answer", "query_id", "metadata"}
    )

    def __init__(self, observer: DatasetObserver) -> None:
        self._observer = observer

    def load(
        self,
        path: Path,
        tenant_id: str,
        name: str | None = None,
        description: str = "",
    ) -> NewDataset:
        """
        Load all items from the JSONL file at path.

        Collects ALL per-line errors before raising a single DatasetLoadError
        listing every issue found.

        Raises:
            DatasetLoadError: if the file is not found, any line is invalid JSON,
                or any line does not describe a valid item.
        """
        path_str = str(path)
        self._observer.dataset_loading_started(path=path_str)

        try:
            with open(path, encoding="utf-8") as fh:
                lines = [line for line in fh if line.strip()]
        except FileNotFoundError:
            reason = f"file not found: {path_str}"
            self._observer.dataset_loading_failed(path=path_str, reason=reason)
            raise DatasetLoadError(reason=reason)

        items: list[NewDatasetItem] = []
        errors: list[str] = []
        for index, line in enumerate(lines):
            result = self._parse_line(line=line, index=index)
            if isinstance(result, str):
                errors.append(result)
            else:
                items.append(result)
                self._observer.dataset_item_loaded(line=index)

        if errors:
            reason = "; ".join(errors)
            self._observer.dataset_loading_failed(path=path_str, reason=reason)
            raise DatasetLoadError(reason=reason)

        self._observer.dataset_loading_completed(path=path_str, total_items=len(items))
        return NewDataset(
            tenant_id=tenant_id,
            name=name or path.stem,
            description=description,
            source=DatasetSource.FILE,
            items=items,
        )

    def _parse_line(self, line: str, index: int) -> NewDatasetItem | str:
        """Parse one line, returning the item or an error string describing the problem."""
        try:
            data: Any = json.loads(line)
        except json.JSONDecodeError as exc:
            return f"line {index}: invalid JSON: {exc}"

        if not isinstance(data, dict):
            return f"line {index}: expected a JSON object"
        if "query" not in data:
            return f"line {index}: missing key 'query'"

        raw_metadata = data.get("metadata") or {}
        if not isinstance(raw_metadata, dict):
            return f"line {index}: 'metadata' must be a JSON object"
        relevant = data.get("relevant_doc_ids") or []
        if not isinstance(relevant, list):
            return f"line {index}: 'relevant_doc_ids' must be a JSON array"
        metadata = dict(raw_metadata)
        for key, value in data.items():
            if key not in self._KNOWN_KEYS:
                metadata[key] = value

        try:
            return NewDatasetItem(
                query=str(data["query"]),
                query_id=None if data.get("query_id") is None else str(data["query_id"]),
                relevant_doc_ids=[str(i) for i in relevant],
                expected_answer=str(data.get("expected_answer") or ""),
                metadata=metadata,
            )
        except ValidationError as exc:
            return f"line {index}: {exc.errors()[0]['msg']}"
