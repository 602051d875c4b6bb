"""Configuration loading and validation."""

import logging
import os
from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import BaseModel, Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)


class OrchestratorConfig(BaseModel):
    """Owner phases and outcome policy for workflow execution."""
    start_phase: str = "in_progress"  # Owner status while the workflow runs
    completion_phase: str = "review"  # Owner status once every node finished
    failure_phase: str = "failed"

    # False: every completion advances the graph, whatever its outcome.
    # True: a completion reported as unsuccessful fails the whole instance.
    failure_stops_workflow: bool = False

    # Prefix for node results exposed to condition nodes (node_<id>)
    result_key_prefix: str = "node_"

    # Final snapshots kept for finished runs (last_finished_state)
    history_size: int = Field(default=100, ge=0)

    @field_validator("result_key_prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        # An empty prefix would let node ids shadow owner snapshot fields
        if not v:
            raise ValueError("result_key_prefix must not be empty")
        return v


class WorkerDefinition(BaseModel):
    """A worker known to the local dispatcher."""
    id: str
    role: str
    active: bool = True


class EventsConfig(BaseModel):
    """JSONL progress event log."""
    enabled: bool = True
    path: Path = Field(default=Path("logs/events.jsonl"))


class DagflowConfig(BaseSettings):
    """Main configuration."""

    model_config = SettingsConfigDict(env_prefix="DAGFLOW_", env_file=".env", extra="allow")

    workspace: Path = Field(default=Path("."))
    workflows_dir: Path = Field(default=Path("config/workflows"))
    logs_dir: Path = Field(default=Path("logs"))
    log_level: str = "INFO"

    orchestrator: OrchestratorConfig = Field(default_factory=OrchestratorConfig)
    workers: List[WorkerDefinition] = Field(default_factory=list)
    events: EventsConfig = Field(default_factory=EventsConfig)

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        if v.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"log_level must be a standard logging level, got '{v}'")
        return v.upper()

    @model_validator(mode="after")
    def validate_unique_workers(self) -> "DagflowConfig":
        seen = set()
        for worker in self.workers:
            if worker.id in seen:
                raise ValueError(f"Duplicate worker id '{worker.id}'")
            seen.add(worker.id)
        return self

    def resolve(self, path: Path) -> Path:
        """Resolve a configured path against the workspace."""
        return path if path.is_absolute() else self.workspace / path


# Module-level mtime-based config cache: path -> (parsed_config, file_mtime)
_config_cache: Dict[str, tuple] = {}


def _get_cached_or_load(resolved_path: Path, loader):
    """Return cached config if file mtime unchanged, else reload."""
    key = str(resolved_path)
    try:
        current_mtime = resolved_path.stat().st_mtime
    except FileNotFoundError:
        _config_cache.pop(key, None)
        return None

    cached = _config_cache.get(key)
    if cached is not None:
        cached_result, cached_mtime = cached
        if cached_mtime == current_mtime:
            return cached_result

    result = loader(resolved_path)
    _config_cache[key] = (result, current_mtime)
    return result


def _load_config_from_file(config_path: Path) -> DagflowConfig:
    """Internal loader (no caching)."""
    with open(config_path) as f:
        data = yaml.safe_load(f) or {}

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping at the top level")

    data = _expand_env_vars(data)
    return DagflowConfig(**data)


def load_config(config_path: Path = Path("dagflow.yaml")) -> DagflowConfig:
    """Load configuration from a YAML file.

    Uses mtime-based caching: returns the cached config if the file hasn't changed.
    """
    if not config_path.exists():
        logger.warning(
            f"Config file not found: {config_path}. Using default configuration. "
            "To customize settings, create a config file at this path."
        )
        return DagflowConfig()

    resolved = config_path.resolve()
    result = _get_cached_or_load(resolved, _load_config_from_file)
    return result if result is not None else DagflowConfig()


def clear_config_cache() -> None:
    """Clear the module-level config cache. Useful for tests."""
    _config_cache.clear()


def _expand_env_vars(data: Any, _path: str = "") -> Any:
    """Recursively expand ``${VAR}`` strings from the environment.

    Args:
        data: Config data to process
        _path: Internal tracking for error messages (e.g., "events.path")
    """
    if isinstance(data, dict):
        return {k: _expand_env_vars(v, f"{_path}.{k}" if _path else k) for k, v in data.items()}
    elif isinstance(data, list):
        return [_expand_env_vars(item, f"{_path}[{i}]") for i, item in enumerate(data)]
    elif isinstance(data, str) and data.startswith("${") and data.endswith("}"):
        env_var = data[2:-1]
        value = os.environ.get(env_var)
        if value is None:
            logger.warning(
                f"Environment variable '{env_var}' not set (referenced at config path: {_path or 'root'}). "
                f"The literal string '{data}' will be used, which may cause errors."
            )
            return data
        return value
    return data
