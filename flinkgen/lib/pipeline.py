"""BigQuery -> Kafka pipeline built from external configuration.

Usage:
    from flinkgen.lib.pipeline import load_pipeline
    pipeline = load_pipeline("./config.properties")
    result = pipeline.run()
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Dict, Optional, Union

from flinkgen.lib.config_loader import PipelineSettings, load_settings
from flinkgen.lib.engine import (
    StatementExecutor,
    create_table_environment,
    submit_statements,
)
from flinkgen.lib.observability import get_pipeline_logger
from flinkgen.lib.run_helpers import maybe_dry_run
from flinkgen.lib.schema import TableSchema, load_schema
from flinkgen.lib.synth import SynthesizedStatements, render_projection, synthesize

logger = get_pipeline_logger(__name__)

__all__ = ["StreamPipeline", "load_pipeline"]


class StreamPipeline:
    """One source -> sink mapping ready to be synthesized and submitted."""

    def __init__(self, settings: PipelineSettings, schema: TableSchema):
        self.settings = settings
        self.schema = schema

    @property
    def name(self) -> str:
        return f"{self.schema.source_table_name}->{self.schema.sink_table_name}"

    def statements(self) -> SynthesizedStatements:
        return synthesize(self.schema, self.settings)

    def run(
        self,
        executor: Optional[StatementExecutor] = None,
        *,
        dry_run: bool = False,
    ) -> Dict[str, Any]:
        """Synthesize and submit source DDL, sink DDL and the transform.

        Args:
            executor: Execution capability; a Flink TableEnvironment in the
                configured mode is created when omitted
            dry_run: If True, return the statements without submitting them

        Returns:
            Dictionary describing what was submitted

        Raises:
            ExecutionError: If the engine rejects a statement
        """
        logger.clear_context()
        logger.set_context(
            source_table=self.schema.source_table_name,
            sink_table=self.schema.sink_table_name,
        )
        statements = self.statements()

        dry = maybe_dry_run(
            dry_run=dry_run,
            logger=logger,
            message="[DRY RUN] Would submit %d statements for %s",
            message_args=(len(statements.as_list()), self.name),
            target=str(self.schema.sink_locator),
            extra={
                "statements": {role.value: sql for role, sql in statements},
            },
        )
        if dry:
            return dry

        if executor is None:
            executor = create_table_environment(self.settings.execution_mode)

        submit_statements(executor, statements)
        logger.info(
            "Flink pipeline submitted successfully: %s -> Kafka topic %s",
            self.schema.source_locator,
            self.schema.sink_locator,
        )

        return {
            "source_table": self.schema.source_table_name,
            "sink_table": self.schema.sink_table_name,
            "execution_mode": self.settings.execution_mode.value,
            "submitted": [role.value for role, _ in statements],
        }

    def explain(self) -> str:
        """Return a human-readable explanation of what this pipeline does."""
        schema = self.schema
        lines = [
            f"Pipeline:       {self.name}",
            f"Execution Mode: {self.settings.execution_mode.value}",
            "",
            "SOURCE (BigQuery):",
            f"  Table:        {schema.source_table_name}",
            f"  Location:     {schema.source_locator}",
            "",
            "SINK (Kafka):",
            f"  Table:        {schema.sink_table_name}",
            f"  Topic:        {schema.sink_locator}",
            f"  Brokers:      {self.settings.bootstrap_servers}",
            f"  Value Format: {self.settings.value_format}",
            f"  Key Fields:   {', '.join(c.name for c in schema.key_columns) or '(none)'}",
            "",
            "COLUMNS:",
        ]
        for column in schema.columns:
            lines.append(
                f"  {column.name:<20} {column.source_type} -> {column.sink_type}"
                f"  as {render_projection(column)}"
            )
        lines.append("")
        return "\n".join(lines)


def load_pipeline(config_path: Union[str, Path]) -> StreamPipeline:
    """Load configuration and schema into a StreamPipeline.

    Raises:
        ConfigurationError: If the configuration or schema file is missing
        SchemaValidationError: If the schema document is malformed
    """
    settings = load_settings(config_path)
    schema = load_schema(settings.schema_path)
    return StreamPipeline(settings, schema)
