"""Configuration loader for flinkgen pipelines.

Configuration lives outside the code, in either a Java-style
``.properties`` file or a YAML file. Environment variables override file
values (``kafka.bootstrap.servers`` -> ``KAFKA_BOOTSTRAP_SERVERS``).

Example (config.properties):
    schema.definition.path=./schemas/posts.json
    bigquery.credentials.path=/secrets/bq.json
    kafka.bootstrap.servers=broker:9092
    kafka.value.format=json
    flink.execution.mode=streaming

Example (config.yaml):
    schema:
      definition:
        path: ./schemas/posts.json
    kafka:
      bootstrap:
        servers: broker:9092

Usage:
    from flinkgen.lib.config_loader import load_settings
    settings = load_settings("./config.properties")
"""

from __future__ import annotations

import logging
import os
import re
from dataclasses import dataclass, field
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Iterator, List, Mapping, Optional, Tuple, Union

import yaml

from flinkgen.lib.engine import ExecutionMode
from flinkgen.lib.env import apply_env_overrides, expand_env_vars
from flinkgen.lib.errors import ConfigurationError

logger = logging.getLogger(__name__)

__all__ = [
    "DEFAULT_CONFIG_PATH",
    "PipelineSettings",
    "load_properties",
    "load_settings",
    "resolve_config_path",
    "settings_from_properties",
]

DEFAULT_CONFIG_PATH = "./config.properties"
CONFIG_PATH_ENV = "CONFIG_PATH"

SCHEMA_PATH_KEY = "schema.definition.path"
CREDENTIALS_PATH_KEY = "bigquery.credentials.path"
BOOTSTRAP_SERVERS_KEY = "kafka.bootstrap.servers"
VALUE_FORMAT_KEY = "kafka.value.format"
EXECUTION_MODE_KEY = "flink.execution.mode"

REQUIRED_KEYS = (SCHEMA_PATH_KEY, CREDENTIALS_PATH_KEY, BOOTSTRAP_SERVERS_KEY)
KNOWN_KEYS = REQUIRED_KEYS + (VALUE_FORMAT_KEY, EXECUTION_MODE_KEY)

DEFAULT_VALUE_FORMAT = "json"

YAML_SUFFIXES = (".yaml", ".yml")

_PROPERTIES_WHITESPACE = " \t\f"
_PROPERTIES_ESCAPES = {"t": "\t", "n": "\n", "r": "\r", "f": "\f"}
_UNICODE_ESCAPE = re.compile(r"[0-9a-fA-F]{4}")


@dataclass(frozen=True)
class PipelineSettings:
    """Immutable configuration snapshot for one run."""

    schema_path: str
    credentials_path: str
    bootstrap_servers: str
    value_format: str = DEFAULT_VALUE_FORMAT
    execution_mode: ExecutionMode = ExecutionMode.BATCH
    properties: Mapping[str, str] = field(
        default_factory=lambda: MappingProxyType({}),
        compare=False,
        repr=False,
    )

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Look up a raw property by its dotted key."""
        return self.properties.get(key, default)


def resolve_config_path(cli_path: Optional[str] = None) -> str:
    """Pick the configuration file location.

    CONFIG_PATH wins, then the command-line argument, then the default.
    """
    env_path = os.environ.get(CONFIG_PATH_ENV)
    if env_path:
        return env_path
    if cli_path:
        return cli_path
    return DEFAULT_CONFIG_PATH


def _logical_lines(text: str) -> Iterator[str]:
    """Join continued lines, dropping blanks and comments."""
    pending: Optional[str] = None
    for natural in text.splitlines():
        line = natural.lstrip(_PROPERTIES_WHITESPACE)
        if pending is None and (not line or line[0] in "#!"):
            continue

        trailing = len(line) - len(line.rstrip("\\"))
        if trailing % 2:
            pending = (pending or "") + line[:-1]
            continue

        yield (pending or "") + line
        pending = None

    if pending is not None:
        yield pending


def _unescape(text: str) -> str:
    """Resolve backslash escapes in a properties key or value.

    Raises:
        ValueError: On a malformed \\uXXXX escape
    """
    out: List[str] = []
    i = 0
    while i < len(text):
        char = text[i]
        i += 1
        if char != "\\":
            out.append(char)
            continue
        if i >= len(text):
            break

        escaped = text[i]
        i += 1
        if escaped == "u":
            digits = text[i : i + 4]
            if not _UNICODE_ESCAPE.fullmatch(digits):
                raise ValueError(f"Malformed \\uxxxx encoding: \\u{digits}")
            out.append(chr(int(digits, 16)))
            i += 4
        else:
            out.append(_PROPERTIES_ESCAPES.get(escaped, escaped))
    return "".join(out)


def _split_property(line: str) -> Tuple[str, str]:
    """Split a logical line at the first unescaped separator."""
    end = 0
    while end < len(line):
        char = line[end]
        if char == "\\":
            end += 2
            continue
        if char in "=:" or char in _PROPERTIES_WHITESPACE:
            break
        end += 1

    key = line[:end]
    rest = line[end:].lstrip(_PROPERTIES_WHITESPACE)
    if rest[:1] in ("=", ":"):
        rest = rest[1:].lstrip(_PROPERTIES_WHITESPACE)
    return key, rest


def _parse_properties(text: str) -> Dict[str, str]:
    """Parse a .properties document the way java.util.Properties does.

    Raises:
        ValueError: On a malformed \\uXXXX escape
    """
    properties: Dict[str, str] = {}
    for line in _logical_lines(text):
        key, value = _split_property(line)
        properties[_unescape(key)] = _unescape(value)
    return properties


def _flatten(data: Mapping[str, Any], prefix: str = "") -> Dict[str, str]:
    """Flatten nested YAML mappings into dotted keys."""
    flat: Dict[str, str] = {}
    for key, value in data.items():
        dotted = f"{prefix}.{key}" if prefix else str(key)
        if isinstance(value, Mapping):
            flat.update(_flatten(value, dotted))
        elif value is None:
            continue
        elif isinstance(value, bool):
            flat[dotted] = "true" if value else "false"
        else:
            flat[dotted] = str(value)
    return flat


def load_properties(config_path: Union[str, Path]) -> Dict[str, str]:
    """Read a configuration file into a flat dotted-key mapping.

    Raises:
        ConfigurationError: If the file is missing, unreadable or malformed
    """
    config_path = Path(config_path)

    if not config_path.is_file():
        raise ConfigurationError(
            f"Configuration file not found: {config_path}",
            path=str(config_path),
            suggestion=f"Pass the config path as an argument or set {CONFIG_PATH_ENV}.",
        )

    try:
        text = config_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read configuration file: {e}", path=str(config_path)
        ) from e

    if config_path.suffix.lower() not in YAML_SUFFIXES:
        try:
            return _parse_properties(text)
        except ValueError as e:
            raise ConfigurationError(
                f"Invalid properties syntax: {e}", path=str(config_path)
            ) from e

    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ConfigurationError(
            f"Invalid YAML syntax: {e}", path=str(config_path)
        ) from e

    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise ConfigurationError(
            "Configuration root must be a mapping", path=str(config_path)
        )
    return _flatten(data)


def _resolve_schema_path(schema_path: str, config_dir: Optional[Path]) -> str:
    """Resolve a relative schema path against the working directory.

    Falls back to the config file's directory only when the working
    directory has no such file and the config directory does.
    """
    if config_dir is None or os.path.isabs(schema_path):
        return schema_path
    if Path(schema_path).exists():
        return schema_path

    beside_config = config_dir / schema_path
    if beside_config.exists():
        logger.debug("Schema path '%s' resolved beside the config file", schema_path)
        return str(beside_config)
    return schema_path


def settings_from_properties(
    properties: Mapping[str, str],
    *,
    config_dir: Optional[Path] = None,
) -> PipelineSettings:
    """Build validated settings from already-resolved properties.

    Args:
        properties: Flat dotted-key mapping (overrides already applied)
        config_dir: Fallback directory for relative schema paths that do
            not exist under the working directory

    Raises:
        ConfigurationError: If a required key is missing or a value is invalid
    """
    for key in REQUIRED_KEYS:
        if not properties.get(key):
            raise ConfigurationError(
                f"Missing required configuration key: {key}",
                field=key,
            )

    schema_path = _resolve_schema_path(properties[SCHEMA_PATH_KEY], config_dir)

    mode_value = properties.get(EXECUTION_MODE_KEY) or ExecutionMode.BATCH.value
    try:
        execution_mode = ExecutionMode.parse(mode_value)
    except ValueError as e:
        raise ConfigurationError(str(e), field=EXECUTION_MODE_KEY) from e

    return PipelineSettings(
        schema_path=schema_path,
        credentials_path=properties[CREDENTIALS_PATH_KEY],
        bootstrap_servers=properties[BOOTSTRAP_SERVERS_KEY],
        value_format=properties.get(VALUE_FORMAT_KEY) or DEFAULT_VALUE_FORMAT,
        execution_mode=execution_mode,
        properties=MappingProxyType(dict(properties)),
    )


def load_settings(config_path: Union[str, Path]) -> PipelineSettings:
    """Load configuration, apply environment overrides and validate it.

    Args:
        config_path: Path to a .properties or YAML configuration file

    Returns:
        Immutable PipelineSettings snapshot

    Raises:
        ConfigurationError: If the file is missing or the configuration is invalid
    """
    config_path = Path(config_path)
    logger.info("Loading configuration from: %s", config_path)

    file_properties = load_properties(config_path)
    overridden = apply_env_overrides(file_properties, extra_keys=KNOWN_KEYS)
    resolved = {key: expand_env_vars(value) for key, value in overridden.items()}

    return settings_from_properties(resolved, config_dir=config_path.parent)
