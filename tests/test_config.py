# tests/test_config.py
from pathlib import Path

import pytest

from portwatch.core.config import DEFAULT_COMMAND_TIMEOUT, Config
from portwatch.core.exceptions import ConfigurationError

ENV_VARS = [
    "PORTWATCH_DATA_DIR", "PORTWATCH_CONFIG", "PORTWATCH_MACHINE_ID", "PORTWATCH_COMMAND_TIMEOUT",
    "PORTWATCH_RESOLVE_PATHS", "PORTWATCH_LOG_FILE", "PORTWATCH_LOG_LEVEL",
]


@pytest.fixture(autouse=True)
def clean_env(monkeypatch, tmp_path):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)


def write_yaml(tmp_path, text):
    path = tmp_path / "config.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_defaults_without_any_source():
    config = Config()

    assert config.data_dir == Path("data")
    assert config.machine_id is None
    assert config.command_timeout == DEFAULT_COMMAND_TIMEOUT
    assert config.resolve_paths is True
    assert config.console_limit == 10
    assert config.log_file == Path("data") / "portwatch.log"
    assert config.log_level == "INFO"


def test_yaml_values_are_used(tmp_path):
    path = write_yaml(tmp_path, """
storage:
  data_dir: /var/lib/portwatch
machine:
  id: edge-7
collectors:
  timeout: 30
  resolve_paths: false
output:
  console_limit: 25
logging:
  level: DEBUG
""")
    config = Config(config_path=path)

    assert config.data_dir == Path("/var/lib/portwatch")
    assert config.machine_id == "edge-7"
    assert config.command_timeout == 30.0
    assert config.resolve_paths is False
    assert config.console_limit == 25
    assert config.log_level == "DEBUG"


def test_env_overrides_yaml_and_override_beats_env(tmp_path, monkeypatch):
    path = write_yaml(tmp_path, "storage:\n  data_dir: from-yaml\n")
    monkeypatch.setenv("PORTWATCH_DATA_DIR", "from-env")
    monkeypatch.setenv("PORTWATCH_COMMAND_TIMEOUT", "2.5")

    assert Config(config_path=path).data_dir == Path("from-env")
    assert Config(config_path=path).command_timeout == 2.5
    assert Config(config_path=path, data_dir="explicit").data_dir == Path("explicit")


def test_config_path_from_environment(tmp_path, monkeypatch):
    path = tmp_path / "elsewhere.yaml"
    path.write_text("machine:\n  id: from-env-config\n", encoding="utf-8")
    monkeypatch.setenv("PORTWATCH_CONFIG", str(path))

    assert Config().machine_id == "from-env-config"


@pytest.mark.parametrize("text", ["storage: [unclosed", "- just\n- a list\n"])
def test_malformed_yaml_is_a_configuration_error(tmp_path, text):
    with pytest.raises(ConfigurationError):
        Config(config_path=write_yaml(tmp_path, text))


@pytest.mark.parametrize("value", ["0", "-1", "soon"])
def test_invalid_timeout(monkeypatch, value):
    monkeypatch.setenv("PORTWATCH_COMMAND_TIMEOUT", value)
    with pytest.raises(ConfigurationError):
        _ = Config().command_timeout
