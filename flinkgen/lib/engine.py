"""Execution adapter for the Flink SQL engine.

Statements are submitted one at a time, in order, to anything exposing
``execute_sql(statement)`` (``pyflink.table.TableEnvironment`` does). The
first failure stops the run; nothing is retried here.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Any, Iterable, List, Protocol, Tuple

from flinkgen.lib.errors import ConfigurationError, ExecutionError
from flinkgen.lib.synth import StatementRole

logger = logging.getLogger(__name__)

__all__ = [
    "ExecutionMode",
    "StatementExecutor",
    "create_table_environment",
    "submit_statements",
]


class ExecutionMode(Enum):
    """Flink runtime mode selected by ``flink.execution.mode``."""

    BATCH = "batch"
    STREAMING = "streaming"

    @classmethod
    def parse(cls, value: str) -> "ExecutionMode":
        normalized = value.strip().lower()
        for mode in cls:
            if mode.value == normalized:
                return mode
        valid = ", ".join(mode.value for mode in cls)
        raise ValueError(f"Invalid execution mode '{value}'. Valid options: {valid}")


class StatementExecutor(Protocol):
    """Anything that can run a single SQL statement."""

    def execute_sql(self, stmt: str) -> Any: ...


def create_table_environment(mode: ExecutionMode) -> StatementExecutor:
    """Create a PyFlink TableEnvironment for the given mode.

    Raises:
        ConfigurationError: If PyFlink is not installed
    """
    try:
        from pyflink.table import EnvironmentSettings, TableEnvironment
    except ImportError as e:
        raise ConfigurationError(
            "PyFlink is required to execute statements",
            suggestion="Install the flink extra: pip install 'flinkgen[flink]'",
        ) from e

    if mode is ExecutionMode.STREAMING:
        env_settings = EnvironmentSettings.in_streaming_mode()
    else:
        env_settings = EnvironmentSettings.in_batch_mode()

    t_env = TableEnvironment.create(env_settings)
    logger.info("Flink configured in %s mode", mode.value.upper())
    return t_env


def submit_statements(
    executor: StatementExecutor,
    statements: Iterable[Tuple[StatementRole, str]],
) -> List[Any]:
    """Submit statements in order, stopping at the first failure.

    Args:
        executor: Execution capability (e.g. a Flink TableEnvironment)
        statements: ``(role, sql)`` pairs in submission order

    Returns:
        Engine acknowledgements, one per statement, in order

    Raises:
        ExecutionError: Carrying the role of the statement that failed
    """
    results: List[Any] = []
    for role, statement in statements:
        logger.debug("Submitting %s statement:\n%s", role.value, statement)
        try:
            result = executor.execute_sql(statement)
        except Exception as e:
            logger.error("Error executing %s statement", role.value, exc_info=True)
            raise ExecutionError(
                f"Execution engine rejected the {role.value} statement: {e}",
                role=role,
                statement=statement,
                cause=e,
            ) from e
        logger.info("Submitted %s statement", role.value)
        results.append(result)
    return results
