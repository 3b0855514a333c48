"""Environment variable utilities.

Provides expansion of ${VAR_NAME} patterns in configuration values,
environment overrides for configuration keys and loading of .env files.

Uses python-dotenv for .env file loading.
"""

from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import Dict, Iterable, Mapping, Optional, Union

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

__all__ = [
    "apply_env_overrides",
    "env_override_name",
    "expand_env_vars",
    "load_env_file",
]

# Pattern for ${VAR_NAME} or $VAR_NAME
ENV_VAR_PATTERN = re.compile(r"\$\{([^}]+)\}|\$([A-Za-z_][A-Za-z0-9_]*)")

# Separators in config keys that map to "_" in variable names
_KEY_SEPARATORS = re.compile(r"[.\-]")


def load_env_file(
    path: Optional[Union[str, Path]] = None,
    *,
    override: bool = False,
) -> bool:
    """Load environment variables from a .env file.

    Args:
        path: Path to .env file. If None, searches for .env in current
              directory and parent directories.
        override: If True, override existing environment variables.

    Returns:
        True if a .env file was found and loaded, False otherwise.
    """
    return load_dotenv(dotenv_path=path, override=override)


def expand_env_vars(value: str) -> str:
    """Expand environment variables in a string.

    Supports both ${VAR_NAME} and $VAR_NAME syntax.

    Args:
        value: String potentially containing env var references

    Returns:
        String with environment variables expanded

    Example:
        >>> os.environ["KAFKA_HOST"] = "broker"
        >>> expand_env_vars("${KAFKA_HOST}:9092")
        'broker:9092'
    """

    def replacer(match: re.Match[str]) -> str:
        var_name = match.group(1) or match.group(2)
        env_value = os.environ.get(var_name)
        if env_value is None:
            return str(match.group(0))
        return env_value

    return ENV_VAR_PATTERN.sub(replacer, value)


def env_override_name(key: str) -> str:
    """Return the environment variable that overrides a config key.

    Example:
        >>> env_override_name("kafka.bootstrap.servers")
        'KAFKA_BOOTSTRAP_SERVERS'
    """
    return _KEY_SEPARATORS.sub("_", key.upper())


def apply_env_overrides(
    properties: Mapping[str, str],
    *,
    extra_keys: Iterable[str] = (),
    environ: Optional[Mapping[str, str]] = None,
) -> Dict[str, str]:
    """Return a new mapping with environment overrides applied.

    Every key in ``properties`` (plus ``extra_keys``) is looked up under
    its override name; a set, non-empty variable wins over the file value.
    The input mapping is left untouched.

    Args:
        properties: Values loaded from the configuration file
        extra_keys: Known keys that may be supplied by the environment only
        environ: Environment to read (defaults to os.environ)

    Returns:
        New dictionary with overrides applied
    """
    env = os.environ if environ is None else environ
    result = dict(properties)

    keys = list(properties)
    keys.extend(k for k in extra_keys if k not in properties)

    for key in keys:
        env_value = env.get(env_override_name(key))
        if env_value:
            result[key] = env_value
            logger.info("Property '%s' overridden by environment variable", key)

    return result
