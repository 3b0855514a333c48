"""Flink SQL statement synthesis.

Turns a TableSchema plus PipelineSettings into the three statements a run
submits, always in this order:

1. source DDL   - ``CREATE TABLE`` over the BigQuery connector
2. sink DDL     - ``CREATE TABLE`` over the Kafka connector
3. transform    - ``INSERT INTO <sink> SELECT ... FROM <source>``

All functions are pure; identical inputs give byte-identical output.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING, Iterator, List, Sequence, Tuple

from flinkgen.lib.errors import SynthesisError
from flinkgen.lib.schema import ColumnSpec, TableSchema

if TYPE_CHECKING:
    from flinkgen.lib.config_loader import PipelineSettings

__all__ = [
    "COLUMN_PLACEHOLDER",
    "KEY_FIELDS_DELIMITER",
    "RESERVED_KEYWORDS",
    "StatementRole",
    "SynthesizedStatements",
    "generate_insert_sql",
    "generate_sink_ddl",
    "generate_source_ddl",
    "is_reserved_keyword",
    "render_identifier",
    "render_projection",
    "synthesize",
]

RESERVED_KEYWORDS = frozenset(
    {"cast", "key", "value", "order", "group", "select", "from", "where", "table"}
)

COLUMN_PLACEHOLDER = "${column}"
KEY_FIELDS_DELIMITER = ";"
KEY_FORMAT = "raw"

SOURCE_CONNECTOR = "bigquery"
SINK_CONNECTOR = "kafka"


class StatementRole(Enum):
    """Purpose of a synthesized statement, in submission order."""

    SOURCE = "source"
    SINK = "sink"
    TRANSFORM = "transform"


@dataclass(frozen=True)
class SynthesizedStatements:
    """The three statements of a run, iterable in submission order."""

    source_ddl: str
    sink_ddl: str
    insert_sql: str

    def __iter__(self) -> Iterator[Tuple[StatementRole, str]]:
        yield StatementRole.SOURCE, self.source_ddl
        yield StatementRole.SINK, self.sink_ddl
        yield StatementRole.TRANSFORM, self.insert_sql

    def as_list(self) -> List[Tuple[StatementRole, str]]:
        return list(self)


def is_reserved_keyword(name: str) -> bool:
    """Check if an identifier collides with a Flink SQL reserved word."""
    return name.lower() in RESERVED_KEYWORDS


def render_identifier(name: str) -> str:
    """Render an identifier, backtick-quoting it when it is reserved."""
    if is_reserved_keyword(name):
        return "`" + name.replace("`", "``") + "`"
    return name


def _literal(value: str) -> str:
    return "'" + str(value).replace("'", "''") + "'"


def _render_options(options: Sequence[Tuple[str, str]]) -> str:
    lines = [f"  {_literal(key)} = {_literal(value)}" for key, value in options]
    return ",\n".join(lines)


def _render_column_list(schema: TableSchema, *, sink: bool) -> str:
    if not schema.columns:
        raise SynthesisError(
            f"Table {schema.source_table_name} -> {schema.sink_table_name} has no columns"
        )
    lines = []
    for column in schema.columns:
        column_type = column.sink_type if sink else column.source_type
        lines.append(f"  {render_identifier(column.name)} {column_type}")
    return ",\n".join(lines)


def _create_table(table_name: str, columns: str, options: str) -> str:
    return (
        f"CREATE TABLE {render_identifier(table_name)} (\n"
        f"{columns}\n"
        f") WITH (\n"
        f"{options}\n"
        f")"
    )


def generate_source_ddl(schema: TableSchema, settings: "PipelineSettings") -> str:
    """Generate the BigQuery source table DDL."""
    locator = schema.source_locator
    options = [
        ("connector", SOURCE_CONNECTOR),
        ("project", locator.project),
        ("dataset", locator.dataset),
        ("table", locator.table),
        ("credentials.file", settings.credentials_path),
    ]
    return _create_table(
        schema.source_table_name,
        _render_column_list(schema, sink=False),
        _render_options(options),
    )


def generate_sink_ddl(schema: TableSchema, settings: "PipelineSettings") -> str:
    """Generate the Kafka sink table DDL.

    ``key.fields`` lists the rendered key column names in declaration
    order and is left out entirely when no column is a key.
    """
    options = [
        ("connector", SINK_CONNECTOR),
        ("topic", schema.sink_locator.topic),
        ("properties.bootstrap.servers", settings.bootstrap_servers),
        ("key.format", KEY_FORMAT),
    ]

    key_fields = [render_identifier(column.name) for column in schema.key_columns]
    if key_fields:
        options.append(("key.fields", KEY_FIELDS_DELIMITER.join(key_fields)))

    options.append(("value.format", settings.value_format))

    return _create_table(
        schema.sink_table_name,
        _render_column_list(schema, sink=True),
        _render_options(options),
    )


def render_projection(column: ColumnSpec) -> str:
    """Render the select expression for one column.

    A non-empty transform template wins; otherwise nullable columns with a
    type change are null-guarded before the cast, other type changes get a
    plain cast, and matching types pass through.
    """
    column_ref = render_identifier(column.name)

    if column.transform:
        return column.transform.replace(COLUMN_PLACEHOLDER, column_ref)
    if column.nullable and column.needs_cast:
        return f"CAST(NULLIF({column_ref}, '') AS {column.sink_type})"
    if column.needs_cast:
        return f"CAST({column_ref} AS {column.sink_type})"
    return column_ref


def generate_insert_sql(schema: TableSchema) -> str:
    """Generate the INSERT ... SELECT statement feeding the sink."""
    if not schema.columns:
        raise SynthesisError(
            f"Table {schema.source_table_name} -> {schema.sink_table_name} has no columns"
        )
    projections = ",\n".join(f"  {render_projection(c)}" for c in schema.columns)
    return (
        f"INSERT INTO {render_identifier(schema.sink_table_name)}\n"
        f"SELECT\n"
        f"{projections}\n"
        f"FROM {render_identifier(schema.source_table_name)}"
    )


def synthesize(schema: TableSchema, settings: "PipelineSettings") -> SynthesizedStatements:
    """Generate all three statements for a run."""
    return SynthesizedStatements(
        source_ddl=generate_source_ddl(schema, settings),
        sink_ddl=generate_sink_ddl(schema, settings),
        insert_sql=generate_insert_sql(schema),
    )
