"""Runner Protocol — the agent under evaluation, seen from the engine's side."""

from typing import Protocol

from pydantic import BaseModel, ConfigDict, Field

from rag_eval.evaluation.domain.result import TokenUsage


class RunnerOutput(BaseModel, frozen=True):
    """Typed outcome of one successful runner call.

    Failures are not encoded here; runners raise RunnerError instead.
    """

    model_config = ConfigDict(frozen=True)

    retrieved_ids: tuple[str, ...] = Field(default_factory=tuple)
    generated_text: str = ""
    usage: TokenUsage | None = None


class Runner(Protocol):
    """Produces retrieval and generation output for a query.

    Must be safe to call concurrently from many workers. Cancellation of the
    calling task must abort any outstanding I/O.
    """

    async def run(self, query: str, knowledge_scope: str | None) -> RunnerOutput: ...


class RunnerFactory(Protocol):
    """Builds the Runner that evaluates a given agent/target id.

    create() runs on the event loop under the registry lock, so it must not
    block on I/O.
    """

    def create(self, target_id: str) -> Runner: ...
