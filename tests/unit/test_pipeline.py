"""Tests for flinkgen/lib/pipeline.py - load -> synthesize -> submit."""

import json
import logging

import pytest

import flinkgen.lib.pipeline as pipeline_module
from flinkgen.lib.engine import ExecutionMode
from flinkgen.lib.errors import ExecutionError, SchemaValidationError
from flinkgen.lib.pipeline import load_pipeline


@pytest.mark.usefixtures("clean_env")
class TestStreamPipeline:
    """Tests for StreamPipeline built from a config file."""

    def test_load(self, config_file):
        pipeline = load_pipeline(config_file)

        assert pipeline.name == "bq_posts->kafka_posts"
        assert pipeline.settings.execution_mode is ExecutionMode.STREAMING
        assert pipeline.schema.column_names == ["id", "vote_count"]

    def test_run_with_injected_executor(self, config_file, recording_executor):
        result = load_pipeline(config_file).run(recording_executor)

        assert result == {
            "source_table": "bq_posts",
            "sink_table": "kafka_posts",
            "execution_mode": "streaming",
            "submitted": ["source", "sink", "transform"],
        }
        assert len(recording_executor.statements) == 3

    def test_run_creates_environment_for_configured_mode(
        self, config_file, recording_executor, monkeypatch
    ):
        modes = []

        def fake_create(mode):
            modes.append(mode)
            return recording_executor

        monkeypatch.setattr(pipeline_module, "create_table_environment", fake_create)
        load_pipeline(config_file).run()

        assert modes == [ExecutionMode.STREAMING]
        assert len(recording_executor.statements) == 3

    def test_dry_run_submits_nothing(self, config_file, recording_executor):
        result = load_pipeline(config_file).run(recording_executor, dry_run=True)

        assert result["dry_run"] is True
        assert result["target"] == "posts"
        assert set(result["statements"]) == {"source", "sink", "transform"}
        assert recording_executor.statements == []

    def test_sink_failure_propagates(self, config_file, failing_executor):
        executor = failing_executor("'connector' = 'kafka'")
        with pytest.raises(ExecutionError) as exc_info:
            load_pipeline(config_file).run(executor)

        assert exc_info.value.stage == "sink"
        assert not any(s.startswith("INSERT") for s in executor.statements)

    def test_invalid_schema_never_reaches_engine(
        self, config_file, schema_doc, write_schema
    ):
        schema_doc["columns"].append(dict(schema_doc["columns"][1]))
        write_schema(schema_doc)

        with pytest.raises(SchemaValidationError, match="vote_count"):
            load_pipeline(config_file)

    def test_explain(self, config_file):
        text = load_pipeline(config_file).explain()

        assert "bq_posts->kafka_posts" in text
        assert "my-project.stackoverflow.posts_questions" in text
        assert "Key Fields:   id" in text
        assert "CAST(NULLIF(vote_count, '') AS BIGINT)" in text

    def test_schema_path_relative_to_working_directory(
        self, tmp_path, schema_doc, monkeypatch
    ):
        config_dir = tmp_path / "config"
        config_dir.mkdir()
        (config_dir / "schema.json").write_text(json.dumps(schema_doc), encoding="utf-8")
        (config_dir / "app.properties").write_text(
            "schema.definition.path=./config/schema.json\n"
            "bigquery.credentials.path=/secrets/bq.json\n"
            "kafka.bootstrap.servers=broker:9092\n",
            encoding="utf-8",
        )
        monkeypatch.chdir(tmp_path)

        pipeline = load_pipeline("config/app.properties")

        assert pipeline.settings.schema_path == "./config/schema.json"
        assert pipeline.schema.sink_locator.topic == "posts"

    def test_run_context_does_not_leak_between_pipelines(
        self, config_file, recording_executor, caplog
    ):
        pipeline_module.logger.set_context(source_table="stale", run_id="previous")

        with caplog.at_level(logging.INFO, logger="flinkgen.lib.pipeline"):
            load_pipeline(config_file).run(recording_executor)

        assert pipeline_module.logger.context == {
            "source_table": "bq_posts",
            "sink_table": "kafka_posts",
        }
        records = [r for r in caplog.records if r.name == "flinkgen.lib.pipeline"]
        assert records
        assert all(not hasattr(r, "run_id") for r in records)
        assert all(r.source_table == "bq_posts" for r in records)
