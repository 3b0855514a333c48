"""flinkgen library modules.

Configuration and schema loading, Flink SQL synthesis and ordered
submission to the execution engine.
"""

from flinkgen.lib.config_loader import PipelineSettings, load_settings, resolve_config_path
from flinkgen.lib.engine import (
    ExecutionMode,
    StatementExecutor,
    create_table_environment,
    submit_statements,
)
from flinkgen.lib.env import apply_env_overrides, env_override_name, expand_env_vars, load_env_file
from flinkgen.lib.errors import (
    ConfigurationError,
    ExecutionError,
    FlinkgenError,
    SchemaValidationError,
    SynthesisError,
)
from flinkgen.lib.pipeline import StreamPipeline, load_pipeline
from flinkgen.lib.schema import (
    BigQueryLocator,
    ColumnSpec,
    KafkaLocator,
    TableSchema,
    load_schema,
    parse_schema,
)
from flinkgen.lib.synth import (
    RESERVED_KEYWORDS,
    StatementRole,
    SynthesizedStatements,
    generate_insert_sql,
    generate_sink_ddl,
    generate_source_ddl,
    is_reserved_keyword,
    render_identifier,
    render_projection,
    synthesize,
)

__all__ = [
    # Configuration
    "PipelineSettings",
    "load_settings",
    "resolve_config_path",
    "apply_env_overrides",
    "env_override_name",
    "expand_env_vars",
    "load_env_file",
    # Schema
    "BigQueryLocator",
    "ColumnSpec",
    "KafkaLocator",
    "TableSchema",
    "load_schema",
    "parse_schema",
    # Synthesis
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
    # Execution
    "ExecutionMode",
    "StatementExecutor",
    "create_table_environment",
    "submit_statements",
    "StreamPipeline",
    "load_pipeline",
    # Errors
    "FlinkgenError",
    "ConfigurationError",
    "SchemaValidationError",
    "SynthesisError",
    "ExecutionError",
]
