"""Schema definition model and loader.

A schema document declares one BigQuery -> Kafka mapping: the logical
table names used in the generated SQL, the physical locators of the
source table and sink topic, and the ordered column list.

Example (posts.json):
    {
      "sourceTableName": "bq_posts",
      "sinkTableName": "kafka_posts",
      "bigQueryProject": "bigquery-public-data",
      "bigQueryDataset": "stackoverflow",
      "bigQueryTable": "posts_questions",
      "kafkaTopic": "posts",
      "columns": [
        {"name": "id", "sourceType": "STRING", "sinkType": "STRING",
         "nullable": false, "keyField": true},
        {"name": "vote_count", "sourceType": "STRING", "sinkType": "BIGINT",
         "nullable": true}
      ]
    }
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Tuple, Union

import yaml

from flinkgen.lib.errors import ConfigurationError, SchemaValidationError

logger = logging.getLogger(__name__)

__all__ = [
    "BigQueryLocator",
    "ColumnSpec",
    "KafkaLocator",
    "TableSchema",
    "load_schema",
    "parse_schema",
]

REQUIRED_TABLE_FIELDS = (
    "sourceTableName",
    "sinkTableName",
    "bigQueryProject",
    "bigQueryDataset",
    "bigQueryTable",
    "kafkaTopic",
    "columns",
)

REQUIRED_COLUMN_FIELDS = ("name", "sourceType", "sinkType", "nullable")

# Accepted spellings of the key-membership flag, first match wins
KEY_FLAG_FIELDS = ("keyField", "isKey")


@dataclass(frozen=True)
class ColumnSpec:
    """One column of the source -> sink mapping."""

    name: str
    source_type: str
    sink_type: str
    nullable: bool
    is_key: bool = False
    transform: Optional[str] = None

    @property
    def needs_cast(self) -> bool:
        # Literal comparison: "STRING" and "string" are different types
        return self.source_type != self.sink_type

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "sourceType": self.source_type,
            "sinkType": self.sink_type,
            "nullable": self.nullable,
            "keyField": self.is_key,
        }
        if self.transform is not None:
            data["transform"] = self.transform
        return data


@dataclass(frozen=True)
class BigQueryLocator:
    """Physical BigQuery table (project.dataset.table)."""

    project: str
    dataset: str
    table: str

    def __str__(self) -> str:
        return f"{self.project}.{self.dataset}.{self.table}"


@dataclass(frozen=True)
class KafkaLocator:
    """Physical Kafka topic."""

    topic: str

    def __str__(self) -> str:
        return self.topic


@dataclass(frozen=True)
class TableSchema:
    """Immutable source -> sink table mapping."""

    source_table_name: str
    sink_table_name: str
    source_locator: BigQueryLocator
    sink_locator: KafkaLocator
    columns: Tuple[ColumnSpec, ...]

    @property
    def column_names(self) -> List[str]:
        return [column.name for column in self.columns]

    @property
    def key_columns(self) -> List[ColumnSpec]:
        """Key columns in declaration order."""
        return [column for column in self.columns if column.is_key]

    def to_dict(self) -> Dict[str, Any]:
        """Serialize back to the document layout (round-trips with parse_schema)."""
        return {
            "sourceTableName": self.source_table_name,
            "sinkTableName": self.sink_table_name,
            "bigQueryProject": self.source_locator.project,
            "bigQueryDataset": self.source_locator.dataset,
            "bigQueryTable": self.source_locator.table,
            "kafkaTopic": self.sink_locator.topic,
            "columns": [column.to_dict() for column in self.columns],
        }


def _require_string(data: Mapping[str, Any], key: str, label: str) -> str:
    if key not in data or data[key] is None:
        raise SchemaValidationError(f"Missing required field: {label}", field=label)
    value = data[key]
    if not isinstance(value, str) or not value.strip():
        raise SchemaValidationError(
            f"Field {label} must be a non-empty string, got {value!r}",
            field=label,
        )
    return value


def _require_bool(value: Any, label: str) -> bool:
    if not isinstance(value, bool):
        raise SchemaValidationError(
            f"Field {label} must be true or false, got {value!r}",
            field=label,
        )
    return value


def _parse_column(data: Any, index: int) -> ColumnSpec:
    prefix = f"columns[{index}]"
    if not isinstance(data, Mapping):
        raise SchemaValidationError(f"{prefix} must be an object", field=prefix)

    for key in REQUIRED_COLUMN_FIELDS:
        if key not in data or data[key] is None:
            raise SchemaValidationError(
                f"Missing required field: {prefix}.{key}",
                field=f"{prefix}.{key}",
            )

    name = _require_string(data, "name", f"{prefix}.name")
    source_type = _require_string(data, "sourceType", f"{prefix}.sourceType")
    sink_type = _require_string(data, "sinkType", f"{prefix}.sinkType")
    nullable = _require_bool(data["nullable"], f"{prefix}.nullable")

    is_key = False
    for key in KEY_FLAG_FIELDS:
        if data.get(key) is not None:
            is_key = _require_bool(data[key], f"{prefix}.{key}")
            break

    transform = data.get("transform")
    if transform is not None and not isinstance(transform, str):
        raise SchemaValidationError(
            f"Field {prefix}.transform must be a string, got {transform!r}",
            field=f"{prefix}.transform",
        )

    return ColumnSpec(
        name=name,
        source_type=source_type,
        sink_type=sink_type,
        nullable=nullable,
        is_key=is_key,
        transform=transform,
    )


def parse_schema(data: Any) -> TableSchema:
    """Build a TableSchema from a parsed schema document.

    Raises:
        SchemaValidationError: If a required field is missing, a value has
            the wrong type, or a column name is repeated
    """
    if not isinstance(data, Mapping):
        raise SchemaValidationError("Schema document root must be an object")

    missing = [key for key in REQUIRED_TABLE_FIELDS if data.get(key) is None]
    if missing:
        raise SchemaValidationError(
            f"Missing required field: {missing[0]}",
            field=missing[0],
            issues=[f"missing field: {key}" for key in missing]
            if len(missing) > 1
            else None,
        )

    raw_columns = data["columns"]
    if not isinstance(raw_columns, list) or not raw_columns:
        raise SchemaValidationError(
            "Field columns must be a non-empty list", field="columns"
        )

    columns = [_parse_column(item, i) for i, item in enumerate(raw_columns)]

    seen = set()
    for column in columns:
        if column.name in seen:
            raise SchemaValidationError(
                f"Duplicate column name: {column.name}",
                field="columns",
                details={"column": column.name},
            )
        seen.add(column.name)

    return TableSchema(
        source_table_name=_require_string(data, "sourceTableName", "sourceTableName"),
        sink_table_name=_require_string(data, "sinkTableName", "sinkTableName"),
        source_locator=BigQueryLocator(
            project=_require_string(data, "bigQueryProject", "bigQueryProject"),
            dataset=_require_string(data, "bigQueryDataset", "bigQueryDataset"),
            table=_require_string(data, "bigQueryTable", "bigQueryTable"),
        ),
        sink_locator=KafkaLocator(
            topic=_require_string(data, "kafkaTopic", "kafkaTopic"),
        ),
        columns=tuple(columns),
    )


def load_schema(schema_path: Union[str, Path]) -> TableSchema:
    """Load and validate a schema document (JSON, or YAML by suffix).

    Raises:
        ConfigurationError: If the file is missing or unreadable
        SchemaValidationError: If the document is malformed
    """
    schema_path = Path(schema_path)
    logger.info("Loading schema definition from: %s", schema_path)

    if not schema_path.is_file():
        raise ConfigurationError(
            f"Schema definition file not found: {schema_path}",
            path=str(schema_path),
            suggestion="Check schema.definition.path in the configuration.",
        )

    try:
        text = schema_path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(
            f"Cannot read schema definition: {e}", path=str(schema_path)
        ) from e

    try:
        if schema_path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(text)
        else:
            data = json.loads(text)
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        raise SchemaValidationError(
            f"Cannot parse schema definition: {e}", path=str(schema_path)
        ) from e

    schema = parse_schema(data)
    logger.info("Loaded schema with %d columns", len(schema.columns))
    return schema
