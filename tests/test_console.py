# tests/test_console.py
import io
import json

from portwatch.core.orchestrator import ExecutionMode, OutputMode, RunOptions, RunOrchestrator, RunResult, RunState
from portwatch.core.schemas import ChangedSocket, SnapshotDiff
from portwatch.utils.console import print_diff, render
from tests.helpers import MACHINE, FakeCollector, rec, snap


def rendered(result, limit=10):
    out = io.StringIO()
    render(result, limit, out)
    return out.getvalue()


def test_baseline_message(tmp_path):
    result = RunResult(RunState.BASELINE_CREATED, RunOptions(), MACHINE, current=snap([]),
                       snapshot_file=tmp_path / "snapshot.json")

    text = rendered(result)

    assert "No previous snapshot found." in text
    assert f"Baseline snapshot created: {tmp_path / 'snapshot.json'}" in text
    assert "Run again in a few minutes" in text


def test_console_diff_listing():
    diff = SnapshotDiff(
        added=(rec("0.0.0.0", 8080, 7, "java", "/usr/bin/java"),),
        removed=(rec("127.0.0.1", 631, 3, "cupsd"),),
        changed=(ChangedSocket(before=rec("0.0.0.0", 22, 1, "sshd"), after=rec("0.0.0.0", 22, 2, "sshd")),),
    )
    result = RunResult(RunState.DIFF_COMPUTED, RunOptions(output_mode=OutputMode.CONSOLE), MACHINE, diff=diff)

    text = rendered(result)

    assert "Added: 1\nRemoved: 1\nChanged: 1" in text
    assert "[+] NEW     0.0.0.0:8080 -> java (PID 7) (/usr/bin/java)" in text
    assert "[-] CLOSED  127.0.0.1:631 -> cupsd (PID 3)" in text
    assert "[*] CHANGED 0.0.0.0:22 sshd (PID 1) => sshd (PID 2)" in text
    assert "Diff saved" not in text


def test_listing_is_capped():
    diff = SnapshotDiff(added=tuple(rec("0.0.0.0", port) for port in range(1000, 1015)))
    out = io.StringIO()

    print_diff(diff, limit=10, out=out)

    assert out.getvalue().count("[+] NEW") == 10
    assert "... (5 more added)" in out.getvalue()


def test_file_mode_prints_paths_only(tmp_path):
    result = RunResult(RunState.DIFF_COMPUTED, RunOptions(output_mode=OutputMode.FILE), MACHINE,
                       previous_file=tmp_path / "prev.json", snapshot_file=tmp_path / "snap.json",
                       diff_file=tmp_path / "diff.json", diff=SnapshotDiff(added=(rec("::", 80),)))

    text = rendered(result)

    assert "Previous:" in text and "Snapshot saved:" in text and "Diff saved:" in text
    assert "[+] NEW" not in text


def test_snapshot_only_console_prints_json():
    current = snap([rec("::", 80, 5, "nginx")])
    result = RunResult(RunState.SNAPSHOT_TAKEN, RunOptions(ExecutionMode.SNAPSHOT_ONLY, OutputMode.CONSOLE),
                       MACHINE, current=current)

    data = json.loads(rendered(result))

    assert data == [{"LocalAddress": "::", "LocalPort": 80, "ProcessId": 5, "ProcessName": "nginx", "Path": None}]


def test_snapshot_only_console_baseline_prints_json(store, clock):
    collector = FakeCollector([rec("::", 80, 5, "nginx")])
    orchestrator = RunOrchestrator(collector, store, MACHINE, os_name="Linux", clock=clock)

    result = orchestrator.run(RunOptions(ExecutionMode.SNAPSHOT_ONLY, OutputMode.CONSOLE))
    text = rendered(result)

    assert result.baseline_created
    assert "Baseline snapshot created:" in text
    assert '"LocalPort": 80' in text


def test_snapshot_only_file_baseline_prints_paths_only(tmp_path):
    result = RunResult(RunState.BASELINE_CREATED, RunOptions(ExecutionMode.SNAPSHOT_ONLY, OutputMode.FILE),
                       MACHINE, current=snap([rec("::", 80)]), snapshot_file=tmp_path / "snapshot.json")

    text = rendered(result)

    assert "Baseline snapshot created:" in text
    assert "LocalPort" not in text
