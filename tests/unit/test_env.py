"""Tests for flinkgen/lib/env.py - environment helpers."""

from flinkgen.lib.env import (
    apply_env_overrides,
    env_override_name,
    expand_env_vars,
    load_env_file,
)


def test_override_name_replaces_separators():
    assert env_override_name("kafka.bootstrap.servers") == "KAFKA_BOOTSTRAP_SERVERS"
    assert env_override_name("flink.execution-mode") == "FLINK_EXECUTION_MODE"


def test_overrides_return_new_mapping():
    props = {"kafka.bootstrap.servers": "file:9092"}
    result = apply_env_overrides(
        props, environ={"KAFKA_BOOTSTRAP_SERVERS": "env:9092"}
    )

    assert result == {"kafka.bootstrap.servers": "env:9092"}
    assert props == {"kafka.bootstrap.servers": "file:9092"}


def test_extra_keys_only_added_when_set():
    result = apply_env_overrides(
        {},
        extra_keys=["kafka.value.format", "flink.execution.mode"],
        environ={"KAFKA_VALUE_FORMAT": "avro"},
    )
    assert result == {"kafka.value.format": "avro"}


def test_resolve_simple_string(monkeypatch):
    monkeypatch.setenv("TOKEN", "abc123")
    assert expand_env_vars("${TOKEN}") == "abc123"
    assert expand_env_vars("$TOKEN/x") == "abc123/x"


def test_missing_env_var_leaves_placeholder(monkeypatch):
    monkeypatch.delenv("MISSING", raising=False)
    assert expand_env_vars("${MISSING}") == "${MISSING}"


def test_load_env_file(tmp_path, monkeypatch):
    monkeypatch.delenv("FLINKGEN_TEST_VALUE", raising=False)
    env_file = tmp_path / ".env"
    env_file.write_text("FLINKGEN_TEST_VALUE=loaded\n", encoding="utf-8")

    assert load_env_file(env_file) is True
    assert expand_env_vars("${FLINKGEN_TEST_VALUE}") == "loaded"
    monkeypatch.delenv("FLINKGEN_TEST_VALUE", raising=False)
