"""CLI entrypoint for rag-eval — typer app with `run` and `score` commands."""

import asyncio
from pathlib import Path

import structlog
import typer
from rich.console import Console
from rich.table import Table

from rag_eval.config.domain.config import EngineConfig
from rag_eval.config.domain.metrics import MetricsConfig
from rag_eval.config.infrastructure.observer import StructlogConfigObserver
from rag_eval.config.infrastructure.yaml_loader import YamlConfigLoader
from rag_eval.core.errors import RagEvalError
from rag_eval.cli.output.report import output_stem, write_outputs
from rag_eval.dataset.infrastructure.jsonl_loader import JsonlDatasetLoader
from rag_eval.dataset.infrastructure.observer import StructlogDatasetObserver
from rag_eval.evaluation.application.executor import EvaluationExecutor
from rag_eval.evaluation.application.service import EvaluationService
from rag_eval.evaluation.domain.observer import EvaluationObserver
from rag_eval.evaluation.domain.task import EvaluationTask, TaskStatus
from rag_eval.evaluation.infrastructure.composite_observer import (
    CompositeEvaluationObserver,
)
from rag_eval.evaluation.infrastructure.observer import StructlogEvaluationObserver
from rag_eval.evaluation.infrastructure.progress_observer import (
    ProgressEvaluationObserver,
)
from rag_eval.metrics.domain.input import MetricInput
from rag_eval.metrics.infrastructure.registry import compute_scores, create_metrics
from rag_eval.runner.infrastructure.registry import RunnerRegistry
from rag_eval.runner.infrastructure.replay import ReplayRunnerFactory
from rag_eval.store.infrastructure.memory import InMemoryStore

app = typer.Typer(add_completion=False)

_CLI_TENANT = "cli"


def _configure_structlog(log_format: str) -> None:
    """Configure structlog based on the requested format."""
    if log_format == "console":
        renderer: structlog.types.Processor = structlog.dev.ConsoleRenderer()
    elif log_format == "json":
        renderer = structlog.processors.JSONRenderer()
    else:
        typer.echo(f"Invalid log format: {log_format!r}. Must be 'console' or 'json'.")
        raise typer.Exit(code=1)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso"),
            renderer,
        ],
        wrapper_class=structlog.make_filtering_bound_logger(0),
        context_class=dict,
        logger_factory=structlog.PrintLoggerFactory(),
    )


def _print_summary(task: EvaluationTask, dataset_name: str) -> None:
    console = Console()
    color = "green" if task.status == TaskStatus.COMPLETED else "red"

    table = Table(title=f"{dataset_name} → {task.target_id}", title_justify="left")
    table.add_column("Metric")
    table.add_column("Average", justify="right")
    for name, value in task.avg_metrics.items():
        table.add_row(name, f"{value:.4f}")

    console.print(table)
    console.print(
        f"[{color}]{task.status}[/{color}]  "
        f"{task.completed_items}/{task.total_items} items scored"
        + (f"  [red]{task.error_message}[/red]" if task.error_message else "")
    )


async def _run(
    config: EngineConfig,
    dataset_path: Path,
    recordings_path: Path,
    target: str,
    knowledge_scope: str | None,
    output_dir: Path,
    observer: EvaluationObserver,
) -> EvaluationTask:
    store = InMemoryStore()
    executor = EvaluationExecutor(
        store=store,
        metrics=create_metrics(config.metrics),
        config=config.execution,
        observer=observer,
    )
    dataset_observer = StructlogDatasetObserver()
    service = EvaluationService(
        store=store,
        runners=RunnerRegistry(factory=ReplayRunnerFactory(path=recordings_path)),
        executor=executor,
        observer=dataset_observer,
    )

    request = JsonlDatasetLoader(observer=dataset_observer).load(
        path=dataset_path, tenant_id=_CLI_TENANT
    )
    dataset = await service.create_dataset(request)
    pending = await service.run_evaluation(
        tenant_id=_CLI_TENANT,
        dataset_id=dataset.id,
        target_id=target,
        knowledge_scope=knowledge_scope,
    )
    task = await service.wait_for_task(tenant_id=_CLI_TENANT, task_id=pending.id)

    results = await service.get_task_results(tenant_id=_CLI_TENANT, task_id=task.id)
    items = await service.get_dataset_items(tenant_id=_CLI_TENANT, dataset_id=dataset.id)
    json_path, jsonl_path = write_outputs(
        output_dir=output_dir,
        stem=output_stem(config_name=config.name, task_id=task.id),
        task=task,
        dataset_name=dataset.name,
        results=results,
        items=items,
    )
    typer.echo(f"Results written to {json_path} and {jsonl_path}", err=True)
    _print_summary(task=task, dataset_name=dataset.name)
    return task


@app.command()
def run(
    config_path: Path = typer.Argument(..., help="Path to the engine YAML config."),
    dataset_path: Path = typer.Option(
        ..., "--dataset", help="JSONL file of dataset items (query, relevant_doc_ids, expected_answer)."
    ),
    recordings_path: Path = typer.Option(
        ..., "--recordings", help="JSONL file of recorded agent outputs to score."
    ),
    target: str = typer.Option("replay", "--target", help="Target agent id."),
    knowledge_scope: str | None = typer.Option(
        None, "--knowledge-scope", help="Knowledge base scope passed to the runner."
    ),
    output_dir: Path = typer.Option(
        Path("results"), "--output-dir", help="Directory for result files."
    ),
    log_format: str = typer.Option(
        "console", "--log-format", help="Log format: 'console' or 'json'."
    ),
    progress: bool = typer.Option(
        True, "--progress/--no-progress", help="Render a progress bar on stderr."
    ),
) -> None:
    """Evaluate recorded agent outputs against a dataset and report quality scores."""
    _configure_structlog(log_format=log_format)

    observers: list[EvaluationObserver] = [StructlogEvaluationObserver()]
    if progress:
        observers.append(ProgressEvaluationObserver())

    try:
        config = YamlConfigLoader(observer=StructlogConfigObserver()).load(config_path)
        task = asyncio.run(
            _run(
                config=config,
                dataset_path=dataset_path,
                recordings_path=recordings_path,
                target=target,
                knowledge_scope=knowledge_scope,
                output_dir=output_dir,
                observer=CompositeEvaluationObserver(observers=observers),
            )
        )
    except RagEvalError as exc:
        typer.echo(f"Error: {exc}", err=True)
        raise typer.Exit(code=1)

    if task.status == TaskStatus.FAILED:
        raise typer.Exit(code=1)


@app.command()
def score(
    generated: str = typer.Option("", "--generated", help="Generated answer text."),
    expected: str = typer.Option("", "--expected", help="Expected answer text."),
    retrieved: list[str] = typer.Option(
        [], "--retrieved", help="Retrieved document id, in rank order (repeatable)."
    ),
    relevant: list[str] = typer.Option(
        [], "--relevant", help="Relevant document id (repeatable)."
    ),
    bleu_max_n: int = typer.Option(4, "--bleu-max-n", min=1, max=8),
) -> None:
    """Score a single answer/retrieval pair with every metric."""
    metrics = create_metrics(MetricsConfig(bleu_max_n=bleu_max_n))
    scores = compute_scores(
        metrics,
        MetricInput(
            retrieved_ids=tuple(retrieved),
            relevant_ids=tuple(relevant),
            generated_text=generated,
            expected_text=expected,
        ),
    )
    for name, value in scores.items():
        typer.echo(f"{name:<10} {value:.4f}")


if __name__ == "__main__":
    app()
