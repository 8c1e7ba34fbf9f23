"""Report writers — serialise a finished task and its results to disk."""

import json
from datetime import datetime
from pathlib import Path
from typing import Any

from rag_eval.dataset.domain.dataset import DatasetItem
from rag_eval.evaluation.domain.result import EvaluationResult
from rag_eval.evaluation.domain.task import EvaluationTask


def output_stem(config_name: str, task_id: str) -> str:
    """Build the output file stem: {config_name}_{YYYYMMDD}_{short_task_id}."""
    date_str = datetime.now().strftime("%Y%m%d")
    return f"{config_name}_{date_str}_{task_id[:8]}"


def build_task_json(task: EvaluationTask, dataset_name: str) -> dict[str, Any]:
    data = task.model_dump(mode="json")
    data["dataset_name"] = dataset_name
    return data


def build_result_lines(
    results: list[EvaluationResult], items: list[DatasetItem]
) -> list[dict[str, Any]]:
    """One JSON object per result, joined with the item's query and ground truth.

    Lines follow dataset order so repeated runs diff cleanly.
    """
    by_item = {result.item_id: result for result in results}
    lines: list[dict[str, Any]] = []
    for item in items:
        result = by_item.get(item.id)
        if result is None:
            continue
        line = result.model_dump(mode="json")
        line["query"] = item.query
        line["query_id"] = item.query_id
        line["relevant_doc_ids"] = list(item.relevant_doc_ids)
        line["expected_answer"] = item.expected_answer
        lines.append(line)
    return lines


def write_outputs(
    output_dir: Path,
    stem: str,
    task: EvaluationTask,
    dataset_name: str,
    results: list[EvaluationResult],
    items: list[DatasetItem],
) -> tuple[Path, Path]:
    """Write the task JSON and the per-item JSONL. Returns (json_path, jsonl_path)."""
    output_dir.mkdir(parents=True, exist_ok=True)
    json_path = output_dir / f"{stem}.json"
    jsonl_path = output_dir / f"{stem}.results.jsonl"

    task_data = build_task_json(task=task, dataset_name=dataset_name)
    task_data["results_file"] = jsonl_path.name
    json_path.write_text(json.dumps(task_data, indent=2), encoding="utf-8")

    lines = build_result_lines(results=results, items=items)
    jsonl_path.write_text(
        "".join(json.dumps(line) + "\n" for line in lines),
        encoding="utf-8",
    )
    return json_path, jsonl_path
