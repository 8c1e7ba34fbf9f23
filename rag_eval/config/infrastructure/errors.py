"""Errors raised while loading the engine config file."""

from pathlib import Path

from rag_eval.core.errors import RagEvalError


class MissingEnvVarsError(RagEvalError):
    """A ${VAR} reference has no value in the environment and no :-default."""

    def __init__(self, missing_vars: list[str]) -> None:
        self.missing_vars = missing_vars
        var_list = ", ".join(sorted(missing_vars))
        super().__init__(
            "Failed to load engine config: environment variables are unset"
            f" and have no default: {var_list}"
        )


class ConfigValidationError(RagEvalError):
    """The config parsed but an execution or metrics setting is invalid.

    ``sections`` names the top-level keys at fault (e.g. ``execution``,
    ``metrics``) so the message points at the part of the file to fix.
    """

    def __init__(self, reason: str, sections: list[str] | None = None) -> None:
        self.reason = reason
        self.sections = sections or []
        where = ""
        if self.sections:
            where = " in " + ", ".join(f"'{s}'" for s in self.sections)
        super().__init__(f"Failed to validate engine config{where}: {reason}")


class ConfigLoadError(RagEvalError):
    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"Failed to load engine config: file not found: {path}")
