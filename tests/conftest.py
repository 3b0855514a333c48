"""Pytest configuration and fixtures."""

import json
import logging
import sys
from pathlib import Path
from typing import Any, Dict, List, Optional

import pytest

# Add the project root to the Python path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from flinkgen.lib.config_loader import PipelineSettings  # noqa: E402


class RecordingExecutor:
    """Stands in for a Flink TableEnvironment and records submissions."""

    def __init__(self, fail_on: Optional[str] = None):
        self.fail_on = fail_on
        self.statements: List[str] = []

    def execute_sql(self, stmt: str) -> str:
        self.statements.append(stmt)
        if self.fail_on and self.fail_on in stmt:
            raise RuntimeError(f"engine rejected statement containing {self.fail_on!r}")
        return f"ack-{len(self.statements)}"


@pytest.fixture
def schema_doc() -> Dict[str, Any]:
    """A small valid schema document."""
    return {
        "sourceTableName": "bq_posts",
        "sinkTableName": "kafka_posts",
        "bigQueryProject": "my-project",
        "bigQueryDataset": "stackoverflow",
        "bigQueryTable": "posts_questions",
        "kafkaTopic": "posts",
        "columns": [
            {
                "name": "id",
                "sourceType": "STRING",
                "sinkType": "STRING",
                "nullable": False,
                "keyField": True,
            },
            {
                "name": "vote_count",
                "sourceType": "STRING",
                "sinkType": "BIGINT",
                "nullable": True,
            },
        ],
    }


@pytest.fixture
def settings() -> PipelineSettings:
    return PipelineSettings(
        schema_path="schema.json",
        credentials_path="/secrets/bq.json",
        bootstrap_servers="broker:9092",
    )


@pytest.fixture
def write_schema(tmp_path):
    """Write a schema document to tmp_path and return its path."""

    def _write(doc: Dict[str, Any], name: str = "schema.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(doc), encoding="utf-8")
        return path

    return _write


@pytest.fixture
def config_file(tmp_path, schema_doc, write_schema):
    """A .properties config pointing at a valid schema document."""
    write_schema(schema_doc)
    path = tmp_path / "config.properties"
    path.write_text(
        "\n".join(
            [
                "# test config",
                "schema.definition.path=schema.json",
                "bigquery.credentials.path=/secrets/bq.json",
                "kafka.bootstrap.servers=broker:9092",
                "flink.execution.mode=streaming",
            ]
        ),
        encoding="utf-8",
    )
    return path


@pytest.fixture
def clean_env(monkeypatch):
    """Remove override variables that would leak into config tests."""
    for name in (
        "CONFIG_PATH",
        "SCHEMA_DEFINITION_PATH",
        "BIGQUERY_CREDENTIALS_PATH",
        "KAFKA_BOOTSTRAP_SERVERS",
        "KAFKA_VALUE_FORMAT",
        "FLINK_EXECUTION_MODE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def recording_executor():
    return RecordingExecutor()


@pytest.fixture
def failing_executor():
    """Build an executor that fails on the first statement containing a marker."""

    def _make(marker: str) -> RecordingExecutor:
        return RecordingExecutor(fail_on=marker)

    return _make


@pytest.fixture(autouse=True)
def restore_root_logging():
    """Undo handlers installed by setup_logging during a test."""
    root = logging.getLogger()
    handlers = root.handlers[:]
    level = root.level
    yield
    for handler in root.handlers[:]:
        if handler not in handlers:
            handler.close()
            root.removeHandler(handler)
    for handler in handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(level)
