"""Config-driven BigQuery -> Kafka pipelines on Flink SQL.

A schema document and a configuration file are turned into three Flink
SQL statements (source DDL, sink DDL, INSERT ... SELECT) that are
submitted to a Flink TableEnvironment.

Usage:
    flinkgen ./config.properties
    python -m flinkgen ./config.yaml --dry-run
"""

from flinkgen.lib.pipeline import StreamPipeline, load_pipeline
from flinkgen.lib.schema import ColumnSpec, TableSchema
from flinkgen.lib.synth import StatementRole, synthesize

__version__ = "1.0.0"

__all__ = [
    "ColumnSpec",
    "StatementRole",
    "StreamPipeline",
    "TableSchema",
    "load_pipeline",
    "synthesize",
]
