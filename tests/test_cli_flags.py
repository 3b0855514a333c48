"""Tests for the flinkgen command line entry point."""

import pytest

import flinkgen.lib.pipeline as pipeline_module
from flinkgen.__main__ import main

pytestmark = pytest.mark.usefixtures("clean_env")


def test_dry_run_prints_statements_in_order(config_file, capsys):
    rc = main([str(config_file), "--dry-run"])
    out = capsys.readouterr().out

    assert rc == 0
    source_at = out.index("-- source")
    sink_at = out.index("-- sink")
    transform_at = out.index("-- transform")
    assert source_at < sink_at < transform_at
    assert "CAST(NULLIF(vote_count, '') AS BIGINT)" in out


def test_dry_run_goes_through_pipeline_without_engine(
    config_file, monkeypatch, capsys
):
    def no_engine(mode):
        raise AssertionError("dry run must not create a table environment")

    monkeypatch.setattr(pipeline_module, "create_table_environment", no_engine)

    rc = main([str(config_file), "--dry-run"])
    out = capsys.readouterr().out

    assert rc == 0
    assert "[DRY RUN] Would submit 3 statements for bq_posts->kafka_posts" in out
    assert "INSERT INTO kafka_posts" in out


def test_explain_exits_zero(config_file, capsys):
    rc = main([str(config_file), "--explain"])
    assert rc == 0
    assert "Execution Mode: streaming" in capsys.readouterr().out


def test_config_path_from_environment(config_file, monkeypatch, capsys):
    monkeypatch.setenv("CONFIG_PATH", str(config_file))
    rc = main(["does-not-exist.properties", "--explain"])
    assert rc == 0


def test_missing_config_returns_one(tmp_path, capsys):
    rc = main([str(tmp_path / "missing.properties")])
    err = capsys.readouterr().err

    assert rc == 1
    assert "Error (config)" in err
    assert "missing.properties" in err


def test_schema_error_returns_one(config_file, schema_doc, write_schema, capsys):
    del schema_doc["kafkaTopic"]
    write_schema(schema_doc)

    rc = main([str(config_file)])
    err = capsys.readouterr().err

    assert rc == 1
    assert "Error (schema)" in err
    assert "kafkaTopic" in err


def test_engine_failure_names_stage(
    config_file, failing_executor, monkeypatch, capsys
):
    executor = failing_executor("'connector' = 'kafka'")
    monkeypatch.setattr(
        pipeline_module, "create_table_environment", lambda mode: executor
    )

    rc = main([str(config_file), "--json-log"])
    err = capsys.readouterr().err

    assert rc == 1
    assert "Error (sink)" in err
    assert len(executor.statements) == 2


def test_successful_submission(config_file, recording_executor, monkeypatch):
    monkeypatch.setattr(
        pipeline_module, "create_table_environment", lambda mode: recording_executor
    )

    assert main([str(config_file), "-v"]) == 0
    assert recording_executor.statements[2].startswith("INSERT INTO kafka_posts")


def test_env_file_is_loaded(tmp_path, config_file, monkeypatch, capsys):
    monkeypatch.delenv("KAFKA_VALUE_FORMAT", raising=False)
    env_file = tmp_path / "run.env"
    env_file.write_text("KAFKA_VALUE_FORMAT=avro-confluent\n", encoding="utf-8")

    rc = main([str(config_file), "--dry-run", "--env-file", str(env_file)])
    monkeypatch.delenv("KAFKA_VALUE_FORMAT", raising=False)

    assert rc == 0
    assert "'value.format' = 'avro-confluent'" in capsys.readouterr().out
