# tests/test_cli.py
from unittest.mock import patch

import pytest

from portwatch import cli
from portwatch.core.exceptions import AcquisitionError
from tests.helpers import FakeCollector, rec

MACHINE = "cli-box"


@pytest.fixture(autouse=True)
def isolated(monkeypatch, tmp_path):
    monkeypatch.chdir(tmp_path)
    for name in ("PORTWATCH_DATA_DIR", "PORTWATCH_CONFIG", "PORTWATCH_LOG_FILE", "PORTWATCH_COMMAND_TIMEOUT"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("PORTWATCH_MACHINE_ID", MACHINE)


def run_cli(collector, *args):
    with patch("portwatch.cli.build_collector", return_value=collector):
        return cli.main(list(args))


def test_first_run_then_diff(tmp_path, capsys):
    collector = FakeCollector([rec("0.0.0.0", 22, 1, "sshd")],
                              [rec("0.0.0.0", 22, 1, "sshd"), rec("0.0.0.0", 8080, 7, "java")])
    data = tmp_path / "data"

    assert run_cli(collector, "--output-dir", str(data)) == 0
    first = capsys.readouterr().out
    assert "Baseline snapshot created:" in first

    assert run_cli(collector, "--output-dir", str(data)) == 0
    second = capsys.readouterr().out
    assert "Diff saved:" in second
    assert "Added: 1" in second
    assert len(list((data / "snapshots" / MACHINE).iterdir())) == 2
    assert len(list((data / "diffs" / MACHINE).iterdir())) == 1


def test_diff_with_report(tmp_path, capsys):
    data = tmp_path / "data"
    collector = FakeCollector([rec("127.0.0.1", 631, 3, "cupsd")], [])
    run_cli(collector, "--output-dir", str(data))

    assert run_cli(collector, "--diff", "--report", "html", "--output-dir", str(data)) == 0

    assert "Report generated:" in capsys.readouterr().out
    assert len(list((data / "reports" / MACHINE).glob("*.html"))) == 1


def test_report_on_first_run_exits_with_config_error(tmp_path, capsys):
    data = tmp_path / "data"

    assert run_cli(FakeCollector([]), "--diff", "--report", "md", "--output-dir", str(data)) == 2

    assert "Baseline snapshot created:" in capsys.readouterr().out
    assert not (data / "reports").exists()


@pytest.mark.parametrize("args", [
    ["--report", "md"],
    ["--diff", "--output", "console", "--report", "pdf"],
    ["--output-dir", "  "],
])
def test_configuration_errors_exit_2_without_acquiring(args):
    collector = FakeCollector([])
    assert run_cli(collector, *args) == 2
    assert collector.calls == 0


def test_snapshot_and_diff_are_mutually_exclusive():
    with pytest.raises(SystemExit) as exc:
        run_cli(FakeCollector([]), "--snapshot", "--diff")
    assert exc.value.code == 2


def test_acquisition_failure_exits_1(tmp_path):
    collector = FakeCollector(error=AcquisitionError("ss failed", command=["ss"], exit_code=1))
    assert run_cli(collector, "--output-dir", str(tmp_path / "data")) == 1
    assert not (tmp_path / "data" / "snapshots").exists()


def test_snapshot_console_prints_json(tmp_path, capsys):
    data = tmp_path / "data"
    collector = FakeCollector([rec("::", 80, 5, "nginx")])
    run_cli(collector, "--snapshot", "--output-dir", str(data))
    capsys.readouterr()

    assert run_cli(collector, "--snapshot", "--output", "console", "--output-dir", str(data)) == 0

    assert '"LocalPort": 80' in capsys.readouterr().out
    assert len(list((data / "snapshots" / MACHINE).iterdir())) == 1


def test_write_failure_still_prints_diff_in_combined_mode(tmp_path, capsys):
    data = tmp_path / "data"
    collector = FakeCollector([rec("0.0.0.0", 22, 1, "sshd")], [rec("0.0.0.0", 22, 2, "sshd")])
    run_cli(collector, "--output-dir", str(data))
    capsys.readouterr()

    (data / "diffs").write_text("not a directory")

    assert run_cli(collector, "--output-dir", str(data)) == 1
    assert "[*] CHANGED 0.0.0.0:22 sshd (PID 1) => sshd (PID 2)" in capsys.readouterr().out


def test_snapshot_console_on_empty_data_dir_prints_json(tmp_path, capsys):
    data = tmp_path / "data"

    assert run_cli(FakeCollector([rec("::", 80, 5, "nginx")]), "--snapshot", "--output", "console",
                   "--output-dir", str(data)) == 0

    out = capsys.readouterr().out
    assert "Baseline snapshot created:" in out
    assert '"LocalPort": 80' in out
    assert len(list((data / "snapshots" / MACHINE).iterdir())) == 1
