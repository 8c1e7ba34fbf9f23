"""ReplayRunner — scores agent outputs that were recorded ahead of time.

Each line of the recordings file is a JSON object:

    {"query": "...", "retrieved_doc_ids": ["d1"], "generated_answer": "...",
     "target_id": "agent-a", "prompt_tokens": 10, "completion_tokens": 20}

``target_id`` and the token counts are optional. A line may carry
``"error": "..."`` (and ``"error_phase": "generation"``) to replay a failure.
"""

import json
from pathlib import Path
from typing import Any

from rag_eval.evaluation.domain.result import TokenUsage
from rag_eval.runner.domain.errors import RunnerError, RunnerPhase
from rag_eval.runner.domain.runner import RunnerOutput
from rag_eval.runner.infrastructure.errors import RecordingLoadError


class ReplayRunner:
    """Satisfies the Runner protocol by looking queries up in recorded outputs."""

    def __init__(self, records: dict[str, dict[str, Any]]) -> None:
        self._records = records

    async def run(self, query: str, knowledge_scope: str | None) -> RunnerOutput:
        record = self._records.get(query)
        if record is None:
            raise RunnerError(reason=f"no recorded output for query {query!r}")

        if record.get("error"):
            phase = RunnerPhase(record.get("error_phase", RunnerPhase.RETRIEVAL))
            raise RunnerError(reason=str(record["error"]), phase=phase)

        usage = None
        if "prompt_tokens" in record or "completion_tokens" in record:
            usage = TokenUsage(
                prompt_tokens=int(record.get("prompt_tokens", 0)),
                completion_tokens=int(record.get("completion_tokens", 0)),
            )
        return RunnerOutput(
            retrieved_ids=tuple(str(i) for i in record.get("retrieved_doc_ids") or []),
            generated_text=str(record.get("generated_answer") or ""),
            usage=usage,
        )


class ReplayRunnerFactory:
    """Builds ReplayRunners from one recordings file.

    The file is read once, on construction, so create() never touches the disk.
    Lines without a target_id apply to every target; lines with one only to that
    target, and they win over untargeted lines for the same query.

    Raises:
        RecordingLoadError: if the file is missing or any line is malformed.
    """

    def __init__(self, path: Path) -> None:
        self._path = path
        self._records = self._load(path)

    def create(self, target_id: str) -> ReplayRunner:
        shared: dict[str, dict[str, Any]] = {}
        targeted: dict[str, dict[str, Any]] = {}
        for record in self._records:
            record_target = record.get("target_id")
            if record_target is None:
                shared[str(record["query"])] = record
            elif record_target == target_id:
                targeted[str(record["query"])] = record
        return ReplayRunner(records={**shared, **targeted})

    def _load(self, path: Path) -> list[dict[str, Any]]:
        records: list[dict[str, Any]] = []
        errors: list[str] = []

        try:
            with open(path, encoding="utf-8") as fh:
                lines = [line for line in fh if line.strip()]
        except FileNotFoundError:
            raise RecordingLoadError(reason=f"file not found: {path}")

        for index, line in enumerate(lines):
            try:
                record = json.loads(line)
            except json.JSONDecodeError as exc:
                errors.append(f"line {index}: invalid JSON: {exc}")
                continue
            if not isinstance(record, dict) or "query" not in record:
                errors.append(f"line {index}: missing key 'query'")
                continue
            records.append(record)

        if errors:
            raise RecordingLoadError(reason="; ".join(errors))
        return records
