"""Tests for settings loading and validation."""

import pytest
import yaml

from tainter.exceptions import ConfigurationError
from tainter.models import Settings


def write_yaml(tmp_path, data, name="tainter.yaml"):
    path = tmp_path / name
    path.write_text(yaml.dump(data, default_flow_style=False))
    return path


def test_load_yaml(settings_file):
    settings = Settings.load(settings_file)

    assert settings.server.host == "0.0.0.0"
    assert settings.server.port == 8080
    assert settings.log.max_level == "info"
    matcher = settings.reconciler.matchers[0]
    assert (matcher.taint.key, matcher.taint.value, matcher.taint.effect) == (
        "pressure",
        "memory",
        "NoExecute",
    )
    assert [(c.type_, c.status) for c in matcher.conditions] == [
        ("NetworkInterfaceCard", "Kaput|Ruined"),
        ("PrivateLink", "severed"),
    ]


def test_load_toml(tmp_path):
    path = tmp_path / "tainter.toml"
    path.write_text(
        """
[server]
host = "127.0.0.1"
port = 9090

[log]
max_level = "debug"

[[reconciler.matchers]]
taint = { effect = "NoSchedule", key = "maintenance", value = "scheduled" }
conditions = [{ type = "VMEventScheduled", status = "True" }]
"""
    )

    settings = Settings.load(path)

    assert settings.server.port == 9090
    assert settings.log.max_level == "debug"
    assert settings.reconciler.matchers[0].conditions[0].type_ == "VMEventScheduled"


def test_build_matchers_compiles_patterns(settings_file):
    matchers = Settings.load(settings_file).build_matchers()

    assert len(matchers) == 1
    assert str(matchers[0].taint) == "pressure=memory:NoExecute"
    assert matchers[0].conditions[0].type_pattern.pattern == "NetworkInterfaceCard"
    assert matchers[0].conditions[0].status_pattern.search("Ruined")


def test_log_level_is_normalized(tmp_path, sample_settings_data):
    sample_settings_data["log"]["max_level"] = "WARN"

    settings = Settings.load(write_yaml(tmp_path, sample_settings_data))

    assert settings.log.max_level == "warn"


def test_unquoted_condition_values_are_read_as_text(tmp_path):
    path = tmp_path / "tainter.yaml"
    path.write_text(
        """
server:
  host: 0.0.0.0
  port: 8080
log:
  max_level: info
reconciler:
  matchers:
    - taint: {effect: NoSchedule, key: not-ready, value: "yes"}
      conditions:
        - type: Ready
          status: False
        - type: KernelDeadlock
          status: True
"""
    )

    matcher = Settings.load(path).build_matchers()[0]

    assert [c.status_pattern.pattern for c in matcher.conditions] == ["False", "True"]


def test_matcher_without_conditions_is_allowed(tmp_path, sample_settings_data):
    del sample_settings_data["reconciler"]["matchers"][0]["conditions"]

    settings = Settings.load(write_yaml(tmp_path, sample_settings_data))

    assert settings.build_matchers()[0].conditions == ()


def test_missing_file():
    with pytest.raises(ConfigurationError) as exc_info:
        Settings.load("does-not-exist.yaml")

    assert "not found" in exc_info.value.message
    assert "does-not-exist.yaml" in exc_info.value.message


def test_malformed_yaml(tmp_path):
    path = tmp_path / "broken.yaml"
    path.write_text("server: [unclosed\n")

    with pytest.raises(ConfigurationError) as exc_info:
        Settings.load(path)

    assert "Failed to parse" in exc_info.value.message


@pytest.mark.parametrize("content", ["", "- just\n- a list\n"], ids=["empty", "list"])
def test_document_must_be_a_mapping(tmp_path, content):
    path = tmp_path / "tainter.yaml"
    path.write_text(content)

    with pytest.raises(ConfigurationError) as exc_info:
        Settings.load(path)

    assert "not a mapping" in exc_info.value.message


@pytest.mark.parametrize(
    "mutate,expected",
    [
        (lambda d: d["reconciler"]["matchers"][0]["conditions"][0].update(type="("), "regex parse error"),
        (lambda d: d["reconciler"]["matchers"][0]["conditions"][1].update(status="[a-"), "regex parse error"),
        (lambda d: d["reconciler"]["matchers"][0]["taint"].update(key=""), "must not be empty"),
        (lambda d: d["reconciler"]["matchers"][0]["taint"].update(value=""), "must not be empty"),
        (lambda d: d["reconciler"]["matchers"][0]["taint"].update(effect="NoWay"), "effect must be one of"),
        (lambda d: d["log"].update(max_level="loud"), "max_level must be one of"),
        (lambda d: d["server"].update(port=70000), "server.port"),
        (lambda d: d.pop("server"), "server: Field required"),
    ],
    ids=[
        "bad-type-regex",
        "bad-status-regex",
        "empty-key",
        "empty-value",
        "unknown-effect",
        "unknown-log-level",
        "port-out-of-range",
        "missing-server",
    ],
)
def test_invalid_settings(tmp_path, sample_settings_data, mutate, expected):
    mutate(sample_settings_data)

    with pytest.raises(ConfigurationError) as exc_info:
        Settings.load(write_yaml(tmp_path, sample_settings_data))

    assert "Invalid settings" in exc_info.value.message
    assert expected in exc_info.value.details
