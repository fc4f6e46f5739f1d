"""
PortWatch Console Renderer
Prints run outcomes and diffs to stdout. Formatting only: no computation, no persistence.
"""
import json
import sys
from pathlib import Path
from typing import List, Optional, TextIO

from portwatch.core.orchestrator import OutputMode, RunResult
from portwatch.core.schemas import SnapshotDiff, SocketRecord

DEFAULT_LIMIT = 10


def _safe(value: Optional[str]) -> str:
    return value if value and value.strip() else "?"


def _abs(path: Optional[Path]) -> str:
    return str(Path(path).absolute()) if path else "?"


def format_socket(record: SocketRecord) -> str:
    path = f" ({record.executable_path})" if record.executable_path else ""
    return f"{_safe(record.local_address)}:{record.local_port} -> {_safe(record.process_name)} (PID {record.process_id}){path}"


def format_changed(before: SocketRecord, after: SocketRecord) -> str:
    return (f"{_safe(after.local_address)}:{after.local_port} "
            f"{_safe(before.process_name)} (PID {before.process_id}) => "
            f"{_safe(after.process_name)} (PID {after.process_id})")


def snapshot_json(result: RunResult) -> str:
    sockets = [s.model_dump(by_alias=True) for s in result.current.sockets] if result.current else []
    return json.dumps(sockets, indent=2, ensure_ascii=False)


def _section(out: TextIO, title: str, lines: List[str], noun: str, limit: int) -> None:
    if not lines:
        return
    out.write(f"\n=== {title} ===\n")
    for line in lines[:limit]:
        out.write(f"{line}\n")
    remaining = len(lines) - min(len(lines), limit)
    if remaining > 0:
        out.write(f"    ... ({remaining} more {noun})\n")


def print_diff(diff: SnapshotDiff, limit: int = DEFAULT_LIMIT, out: Optional[TextIO] = None) -> None:
    """Prints every section of the diff, capped at ``limit`` entries each."""
    out = out or sys.stdout
    _section(out, "ADDED", [f"[+] NEW     {format_socket(s)}" for s in diff.added], "added", limit)
    _section(out, "REMOVED", [f"[-] CLOSED  {format_socket(s)}" for s in diff.removed], "removed", limit)
    _section(out, "CHANGED", [f"[*] CHANGED {format_changed(c.before, c.after)}" for c in diff.changed], "changed", limit)


def render_files(result: RunResult, out: TextIO) -> None:
    if result.baseline_created:
        if result.suggest_diff:
            out.write("No previous snapshot found.\n")
        out.write(f"Baseline snapshot created: {_abs(result.snapshot_file)}\n")
        if result.suggest_diff:
            out.write("Run again in a few minutes to generate a diff.\n")
        return

    combined = result.options.output_mode is None
    if result.previous_file and not combined:
        out.write(f"Previous: {_abs(result.previous_file)}\n")
    if result.snapshot_file:
        out.write(f"Snapshot saved: {_abs(result.snapshot_file)}\n")
    if result.diff_file:
        out.write(f"Diff saved: {_abs(result.diff_file)}\n")
    if result.report_file:
        out.write(f"Report generated: {_abs(result.report_file)}\n")


def render_console(result: RunResult, out: TextIO, limit: int) -> None:
    if result.diff is None:
        if result.current is not None:
            out.write(snapshot_json(result) + "\n")
        return

    out.write(f"Previous: {_abs(result.previous_file)}\n")
    out.write(f"Added: {len(result.diff.added)}\n")
    out.write(f"Removed: {len(result.diff.removed)}\n")
    out.write(f"Changed: {len(result.diff.changed)}\n")
    print_diff(result.diff, limit, out)


def render(result: RunResult, limit: int = DEFAULT_LIMIT, out: Optional[TextIO] = None) -> None:
    """Prints what the selected output mode asks for."""
    out = out or sys.stdout
    mode = result.options.output_mode

    if result.baseline_created:
        render_files(result, out)
        # Snapshot-only runs also show what was captured, unless output goes to files only.
        if mode != OutputMode.FILE and result.diff is None and not result.suggest_diff:
            render_console(result, out, limit)
        return

    if mode == OutputMode.FILE:
        render_files(result, out)
    elif mode == OutputMode.CONSOLE:
        render_console(result, out, limit)
    else:
        render_files(result, out)
        render_console(result, out, limit)
