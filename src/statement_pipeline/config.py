"""
Configuration management (SSOT).

This module defines ALL configuration for the statement pipeline.
All config keys are defined here; no other module should invent config keys.

Two independent sources:
- Processor settings: optional YAML file, overridden by environment variables
- Watch definitions: a JSON array, one object per watched directory

Key invariants:
- A watch file is all-or-nothing: the first missing field fails the whole load
- Loading never touches the filesystem beyond reading the config file itself
"""

import json
import os
from dataclasses import dataclass, field
from pathlib import Path

import yaml


class ConfigValidationError(Exception):
    """Raised when configuration validation fails."""

    pass


# Order matters: validation reports the first missing field in this order.
WATCH_REQUIRED_FIELDS = (
    "watch_id",
    "watch_path",
    "file_pattern",
    "executable_path",
    "processed_path",
)


@dataclass(frozen=True)
class WatchConfig:
    """One watched directory.

    - watch_path: directory scanned on every run
    - file_pattern: glob matched against file names in watch_path
    - executable_path: processor invoked with the file path as its only argument
    - processed_path: destination for files the processor accepted
    """

    watch_id: str
    watch_path: str
    file_pattern: str
    executable_path: str
    processed_path: str

    @classmethod
    def from_dict(cls, data: dict, index: int) -> "WatchConfig":
        """Build from one JSON object, failing on the first missing field."""
        if not isinstance(data, dict):
            raise ConfigValidationError(f"watch {index}: entry must be a JSON object")

        for name in WATCH_REQUIRED_FIELDS:
            value = data.get(name)
            if not isinstance(value, str) or not value.strip():
                raise ConfigValidationError(f"watch {index}: {name} is required")

        return cls(**{name: data[name] for name in WATCH_REQUIRED_FIELDS})


def load_watch_configs(config_path: Path) -> list[WatchConfig]:
    """
    Load and validate the watch configuration file.

    Raises:
        ConfigValidationError: if the file is unreadable, is not a JSON array,
            any entry misses a required field, or watch_ids collide.
    """
    try:
        with open(config_path) as f:
            data = json.load(f)
    except OSError as e:
        raise ConfigValidationError(f"read config file {config_path}: {e}") from e
    except json.JSONDecodeError as e:
        raise ConfigValidationError(f"parse config JSON {config_path}: {e}") from e

    if not isinstance(data, list):
        raise ConfigValidationError("watch config must be a JSON array of watch objects")

    watches: list[WatchConfig] = []
    seen_ids: set[str] = set()
    for index, entry in enumerate(data):
        watch = WatchConfig.from_dict(entry, index)
        if watch.watch_id in seen_ids:
            raise ConfigValidationError(f"watch {index}: duplicate watch_id '{watch.watch_id}'")
        seen_ids.add(watch.watch_id)
        watches.append(watch)

    return watches


@dataclass
class LLMConfig:
    """Local LLM (Ollama) configuration.

    - ollama_url: base URL of the inference service (no trailing path)
    - timeout_seconds: per-attempt request timeout; the only timeout in the pipeline.
      A read timeout is not retried, so a page waits at most this long on a
      model that never answers
    - max_retries: bounded retries for transient failures of a page request
    """

    ollama_url: str = "http://localhost:11434"
    model: str = "dolphin3"
    timeout_seconds: int = 120
    max_retries: int = 2
    backoff_factor: float = 0.5


@dataclass
class ProcessorConfig:
    """Document processor configuration (SSOT)."""

    db_path: Path = field(default_factory=lambda: Path("transactions.db"))
    llm: LLMConfig = field(default_factory=LLMConfig)

    def validate(self) -> list[str]:
        """Validate configuration completeness and consistency.

        Returns:
            List of validation errors (empty if valid)
        """
        errors: list[str] = []

        if not str(self.db_path).strip():
            errors.append("db_path is required")
        if not self.llm.ollama_url:
            errors.append("llm.ollama_url is required")
        elif not self.llm.ollama_url.startswith(("http://", "https://")):
            errors.append("llm.ollama_url must start with http:// or https://")
        if not self.llm.model:
            errors.append("llm.model is required")
        if self.llm.timeout_seconds <= 0:
            errors.append("llm.timeout_seconds must be positive")
        if self.llm.max_retries < 0:
            errors.append("llm.max_retries must be >= 0")

        return errors


def _expand_home(path: str) -> Path:
    """Expand a leading ~ to the user's home directory."""
    return Path(path).expanduser()


def _int_setting(name: str, env_value: str | None, file_value, default: int) -> int:
    raw = env_value if env_value else file_value
    if raw is None:
        return default
    try:
        return int(raw)
    except (TypeError, ValueError) as e:
        raise ConfigValidationError(f"{name} must be an integer, got: {raw!r}") from e


def _float_setting(name: str, file_value, default: float) -> float:
    if file_value is None:
        return default
    try:
        return float(file_value)
    except (TypeError, ValueError) as e:
        raise ConfigValidationError(f"{name} must be a number, got: {file_value!r}") from e


def load_config(config_path: Path | None = None) -> ProcessorConfig:
    """
    Load processor configuration from an optional YAML file.

    A missing file is not an error; defaults apply. Environment variables
    override file values:
    - DB_PATH (~ is expanded)
    - OLLAMA_HOST or OLLAMA_URL
    - OLLAMA_MODEL
    - OLLAMA_TIMEOUT (seconds)
    - OLLAMA_MAX_RETRIES

    Raises:
        ConfigValidationError: malformed YAML, bad values, or failed validation.
    """
    data: dict = {}
    if config_path is not None and config_path.exists():
        try:
            with open(config_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigValidationError(f"parse config YAML {config_path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigValidationError(f"config file {config_path} must contain a mapping")

    llm_data = data.get("llm") or {}

    llm = LLMConfig(
        ollama_url=(
            os.environ.get("OLLAMA_HOST")
            or os.environ.get("OLLAMA_URL")
            or llm_data.get("ollama_url", "http://localhost:11434")
        ).rstrip("/"),
        model=os.environ.get("OLLAMA_MODEL") or llm_data.get("model", "dolphin3"),
        timeout_seconds=_int_setting(
            "llm.timeout_seconds",
            os.environ.get("OLLAMA_TIMEOUT"),
            llm_data.get("timeout_seconds"),
            120,
        ),
        max_retries=_int_setting(
            "llm.max_retries",
            os.environ.get("OLLAMA_MAX_RETRIES"),
            llm_data.get("max_retries"),
            2,
        ),
        backoff_factor=_float_setting("llm.backoff_factor", llm_data.get("backoff_factor"), 0.5),
    )

    db_path = os.environ.get("DB_PATH") or data.get("db_path", "transactions.db")

    config = ProcessorConfig(db_path=_expand_home(str(db_path)), llm=llm)

    errors = config.validate()
    if errors:
        raise ConfigValidationError("; ".join(errors))

    return config


def create_default_config(config_path: Path) -> None:
    """Create a default configuration file."""
    default_config = """# Statement Processor Configuration
#
# Environment variables take precedence over this file:
#   DB_PATH, OLLAMA_HOST (or OLLAMA_URL), OLLAMA_MODEL,
#   OLLAMA_TIMEOUT, OLLAMA_MAX_RETRIES

# SQLite file holding transactions and the processing log
db_path: "~/.local/share/statement-pipeline/transactions.db"

# Local LLM settings (Ollama)
llm:
  ollama_url: "http://localhost:11434"   # Inference service base URL
  model: "dolphin3"                       # Model used for statement extraction
  timeout_seconds: 120                    # Per-page request timeout
  max_retries: 2                          # Retries for transient failures
  backoff_factor: 0.5                     # Exponential backoff base (seconds)
"""

    config_path.parent.mkdir(parents=True, exist_ok=True)
    with open(config_path, "w") as f:
        f.write(default_config)
