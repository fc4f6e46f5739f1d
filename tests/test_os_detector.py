# tests/test_os_detector.py
from unittest.mock import patch

import pytest

from portwatch.utils.os_detector import OsType, detect_os, resolve_machine_id, sanitize_machine_id


@pytest.mark.parametrize("system, expected", [
    ("Windows", OsType.WINDOWS),
    ("Linux", OsType.LINUX),
    ("Darwin", OsType.MAC),
    ("AIX", OsType.LINUX),
    ("Plan9", OsType.UNKNOWN),
])
def test_detect_os(system, expected):
    assert detect_os(system) == expected


def test_sanitize_machine_id():
    assert sanitize_machine_id("my host/01:a") == "my_host_01_a"
    assert sanitize_machine_id("web-01.example") == "web-01.example"


def test_override_wins():
    assert resolve_machine_id("  lab box ") == "lab_box"


@patch("portwatch.utils.os_detector.socket.gethostname", return_value="localhost")
def test_localhost_falls_back_to_environment(mock_host, monkeypatch):
    monkeypatch.delenv("COMPUTERNAME", raising=False)
    monkeypatch.setenv("HOSTNAME", "build-agent-3")
    assert resolve_machine_id() == "build-agent-3"


@patch("portwatch.utils.os_detector.socket.gethostname", return_value="")
def test_unknown_when_nothing_is_available(mock_host, monkeypatch):
    monkeypatch.delenv("COMPUTERNAME", raising=False)
    monkeypatch.delenv("HOSTNAME", raising=False)
    assert resolve_machine_id() == "UNKNOWN"
