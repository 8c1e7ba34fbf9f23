"""YAML config loader — parses, interpolates env vars, validates, and emits observer events."""

from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from rag_eval.config.domain.config import EngineConfig
from rag_eval.config.domain.metrics import DEFAULT_METRICS
from rag_eval.config.domain.observer import ConfigObserver
from rag_eval.config.infrastructure.env_interpolation import (
    collect_missing_vars,
    interpolate,
)
from rag_eval.config.infrastructure.errors import (
    ConfigLoadError,
    ConfigValidationError,
    MissingEnvVarsError,
)


class YamlConfigLoader:
    """Loads, interpolates, validates, and returns an EngineConfig from a YAML file."""

    def __init__(self, observer: ConfigObserver) -> None:
        self._observer = observer

    def load(self, path: Path) -> EngineConfig:
        """
        Load, interpolate, validate, and return an EngineConfig from a YAML file.

        Raises:
            ConfigLoadError: if the file does not exist.
            MissingEnvVarsError: if any ${ENV_VAR} references are unset (all collected first).
            ConfigValidationError: if the schema is violated or an enabled metric is unknown.
            yaml.YAMLError: if the file is not valid YAML.
        """
        raw = _parse_yaml(path=path)
        _check_missing_env_vars(raw=raw)
        cfg = _build_config(resolved=interpolate(raw))
        _check_metric_names(cfg=cfg)
        _emit_warnings(cfg=cfg, observer=self._observer)
        self._observer.config_loaded(
            name=cfg.name,
            version=cfg.version,
            metrics=list(cfg.metrics.enabled),
            max_concurrent=cfg.execution.max_concurrent,
        )
        return cfg


def _parse_yaml(path: Path) -> Any:
    try:
        with path.open("r", encoding="utf-8") as fh:
            return yaml.safe_load(fh) or {}
    except FileNotFoundError:
        raise ConfigLoadError(path=path)


def _check_missing_env_vars(raw: Any) -> None:
    """Raise MissingEnvVarsError if any ${ENV_VAR} references in raw are unset."""
    missing = collect_missing_vars(raw)
    if missing:
        raise MissingEnvVarsError(missing)


def _build_config(resolved: Any) -> EngineConfig:
    try:
        return EngineConfig.model_validate(resolved)
    except ValidationError as exc:
        sections = sorted({str(err["loc"][0]) for err in exc.errors() if err["loc"]})
        raise ConfigValidationError(str(exc), sections=sections) from exc


def _check_metric_names(cfg: EngineConfig) -> None:
    """Reject ALL unknown metric names in one error rather than the first one."""
    unknown = [name for name in cfg.metrics.enabled if name not in DEFAULT_METRICS]
    if unknown:
        names = ", ".join(f"'{name}'" for name in unknown)
        known = ", ".join(DEFAULT_METRICS)
        raise ConfigValidationError(
            f"unknown metric(s) {names}; known metrics are {known}",
            sections=["metrics"],
        )


def _emit_warnings(cfg: EngineConfig, observer: ConfigObserver) -> None:
    execution = cfg.execution
    if execution.run_deadline_seconds is None and execution.item_timeout_seconds is None:
        observer.config_no_run_deadline_warning(max_concurrent=execution.max_concurrent)
