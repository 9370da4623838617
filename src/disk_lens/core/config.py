"""Configuration system for disk-lens.

Configuration is a YAML file validated by Pydantic models. String values
may reference environment variables as ``${NAME}``. Every section has
defaults, so an empty (or absent) file yields a working setup.
"""

import os
import re
from collections.abc import Mapping
from pathlib import Path
from typing import Annotated, Final, Literal

import yaml
from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from disk_lens.core.data.filesystem.size_calculator import SizeMode
from disk_lens.types.models import ScanOptions

# Matches ${VARIABLE_NAME} where VARIABLE_NAME contains letters, digits and underscores
ENV_VAR_PATTERN: Final[re.Pattern[str]] = re.compile(r"\$\{([A-Z0-9_]+)\}")


class ScanConfig(BaseModel):
    """Defaults and tuning for directory scans."""

    model_config = ConfigDict(extra="forbid")

    default_depth: Annotated[
        int,
        Field(
            ge=1,
            le=4,
            description="Depth used when a scan request does not specify one",
        ),
    ] = 2
    fast_mode: Annotated[
        bool,
        Field(
            description="Trust listing metadata and estimate directories at the depth limit",
        ),
    ] = True
    skip_hidden: Annotated[
        bool,
        Field(
            description="Omit dot-files and entries carrying the platform hidden attribute",
        ),
    ] = True
    size_mode: Annotated[
        SizeMode,
        Field(
            description="Report apparent sizes or allocated disk usage",
        ),
    ] = SizeMode.APPARENT
    workers: Annotated[
        int,
        Field(
            ge=1,
            le=32,
            description="Worker threads for comprehensive scans",
        ),
    ] = 4
    exclude_patterns: Annotated[
        list[str],
        Field(
            description="Glob patterns of entries to omit (names, or full paths when they contain a separator)",
        ),
    ] = []
    skip_system_directories: Annotated[
        bool,
        Field(
            description="Omit well-known Windows system directories",
        ),
    ] = True

    @field_validator("exclude_patterns", mode="after")
    @classmethod
    def validate_patterns_not_blank(cls, v: list[str]) -> list[str]:
        """Validate that no exclusion pattern is blank.

        Args:
            v: Exclusion patterns

        Returns:
            Validated patterns

        Raises:
            ValueError: If a pattern is empty or whitespace only
        """
        for pattern in v:
            if not pattern.strip():
                msg = "Exclusion patterns must not be blank"
                raise ValueError(msg)
        return v

    def default_options(self) -> ScanOptions:
        """Scan options used when the caller does not supply any."""
        return ScanOptions(fast_mode=self.fast_mode, skip_hidden=self.skip_hidden)


class ProgressConfig(BaseModel):
    """Progress event cadence and total estimation."""

    model_config = ConfigDict(extra="forbid")

    emit_every: Annotated[
        int,
        Field(
            gt=0,
            description="Emit a progress event every N items after the initial burst",
        ),
    ] = 100
    min_interval_seconds: Annotated[
        float,
        Field(
            ge=0,
            description="Emit at least this often while items are being processed",
        ),
    ] = 0.1
    estimate_total: Annotated[
        bool,
        Field(
            description="Count items before walking to give progress a total",
        ),
    ] = True
    estimate_limit: Annotated[
        int,
        Field(
            gt=0,
            description="Stop estimating after this many items and report an unknown total",
        ),
    ] = 50_000
    queue_size: Annotated[
        int,
        Field(
            gt=0,
            description="Per-subscriber buffer of undelivered progress events",
        ),
    ] = 256


class ApplicationConfig(BaseModel):
    """Configuration for application-level settings."""

    model_config = ConfigDict(extra="forbid")

    log_level: Annotated[
        Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        Field(
            description="Minimum level of emitted log records",
        ),
    ] = "WARNING"
    syslog_enabled: Annotated[
        bool,
        Field(
            description="Also send log records to the local syslog daemon",
        ),
    ] = False

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, v: object) -> object:
        """Accept log levels in any case."""
        if isinstance(v, str):
            return v.strip().upper()
        return v


class MainConfig(BaseModel):
    """Root of the YAML configuration file.

    Sections:
    - scan: depth, mode and exclusion defaults for directory scans
    - progress: cadence and buffering of progress snapshots
    - application: log level and syslog output
    """

    model_config = ConfigDict(extra="forbid")

    scan: Annotated[
        ScanConfig,
        Field(
            default_factory=ScanConfig,
            description="Directory scan configuration",
        ),
    ]
    progress: Annotated[
        ProgressConfig,
        Field(
            default_factory=ProgressConfig,
            description="Progress reporting configuration",
        ),
    ]
    application: Annotated[
        ApplicationConfig,
        Field(
            default_factory=ApplicationConfig,
            description="Logging configuration",
        ),
    ]


class EnvironmentVariableError(Exception):
    """A ``${NAME}`` reference names a variable that is not set."""


def resolve_env_var(value: str) -> str:
    """Substitute ``${NAME}`` references with environment values.

    Lets configuration files point at machine-specific locations, for
    example ``exclude_patterns: ["${BACKUP_ROOT}/*"]``.

    Args:
        value: Raw string from the configuration file

    Returns:
        The string with every reference substituted

    Raises:
        EnvironmentVariableError: If a referenced variable is not set

    Examples:
        >>> os.environ["SCAN_ROOT"] = "/data"
        >>> resolve_env_var("${SCAN_ROOT}/media")
        '/data/media'
    """

    def substitute(match: re.Match[str]) -> str:
        name = match.group(1)
        try:
            return os.environ[name]
        except KeyError:
            msg = f"Environment variable '{name}' referenced in the configuration is not set"
            raise EnvironmentVariableError(msg) from None

    return ENV_VAR_PATTERN.sub(substitute, value)


def _resolve_value(value: object) -> object:
    if isinstance(value, str):
        return resolve_env_var(value)
    if isinstance(value, dict):
        # Untyped YAML mapping; Pydantic validates the result
        return resolve_env_vars_in_dict(value)  # pyright: ignore[reportUnknownArgumentType]
    if isinstance(value, list):
        return [_resolve_value(item) for item in value]  # pyright: ignore[reportUnknownVariableType]
    return value


def resolve_env_vars_in_dict(data: Mapping[str, object]) -> dict[str, object]:
    """Apply ``resolve_env_var`` to every string in a nested mapping.

    Lists and nested mappings are walked; other values are kept as they are.

    Raises:
        EnvironmentVariableError: If a referenced variable is not set
    """
    return {key: _resolve_value(value) for key, value in data.items()}


class ConfigurationError(Exception):
    """The configuration file is missing, unreadable or invalid.

    The message is meant for the terminal: it names the file and, for
    validation failures, every offending field.
    """


def _read_yaml(config_path: Path) -> object:
    if not config_path.exists():
        msg = f"Configuration file not found: {config_path}\nCreate it, or run without --config to use defaults."
        raise ConfigurationError(msg)
    try:
        with config_path.open("r", encoding="utf-8") as f:
            return yaml.safe_load(f)  # pyright: ignore[reportAny]
    except yaml.YAMLError as e:
        msg = f"Failed to parse YAML in {config_path}:\n{e}"
        raise ConfigurationError(msg) from e
    except OSError as e:
        msg = f"Cannot read configuration file {config_path}: {e}"
        raise ConfigurationError(msg) from e


def _describe_validation_error(config_path: Path, error: ValidationError) -> str:
    lines = ["Configuration validation failed:", ""]
    for detail in error.errors():
        location = " → ".join(str(part) for part in detail["loc"])
        lines.append(f"  {location}: {detail['msg']} ({detail['type']})")
    lines.extend(["", f"in {config_path}"])
    return "\n".join(lines)


def load_main_config(config_path: Path) -> MainConfig:
    """Load and validate a YAML configuration file.

    An empty file yields the defaults of every section.

    Args:
        config_path: YAML file to load

    Returns:
        Validated configuration

    Raises:
        ConfigurationError: If the file is missing, malformed or invalid
    """
    raw_data = _read_yaml(config_path)
    if raw_data is None:
        raw_data = {}
    if not isinstance(raw_data, dict):
        msg = (
            f"Expected YAML dictionary at the top of {config_path}, "
            f"found {type(raw_data).__name__}"
        )
        raise ConfigurationError(msg)

    try:
        resolved = resolve_env_vars_in_dict(raw_data)  # pyright: ignore[reportUnknownArgumentType]
    except EnvironmentVariableError as e:
        msg = f"Environment variable resolution failed in {config_path}: {e}"
        raise ConfigurationError(msg) from e

    try:
        return MainConfig.model_validate(resolved)
    except ValidationError as e:
        raise ConfigurationError(_describe_validation_error(config_path, e)) from e


def load_config_or_default(config_path: Path | None) -> MainConfig:
    """Load configuration from ``config_path``, or return defaults when it is None."""
    if config_path is None:
        return MainConfig()
    return load_main_config(config_path)
