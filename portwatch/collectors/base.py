"""
Collector contract shared by every platform strategy, plus the parsing helpers they have in common.
"""
from typing import Callable, List, Optional, Protocol, Tuple

import psutil

from portwatch.core.schemas import SocketRecord
from portwatch.utils.command_runner import DEFAULT_TIMEOUT, CommandResult, run_command

Runner = Callable[..., CommandResult]


class ListenerCollector(Protocol):
    """Produces the TCP endpoints currently in LISTEN state.

    Implementations return every endpoint they see (no deduplication), leave process fields
    as None when the OS does not disclose them, and raise AcquisitionError on failure.
    """

    def collect(self) -> List[SocketRecord]:
        ...


class CommandCollector:
    """Common wiring for collectors that shell out to a native tool."""

    def __init__(self, runner: Runner = run_command, timeout: float = DEFAULT_TIMEOUT, resolve_paths: bool = False):
        self.runner = runner
        self.timeout = timeout
        self.resolve_paths = resolve_paths

    def _run(self, cmd: List[str]) -> CommandResult:
        return self.runner(cmd, timeout=self.timeout)


def safe_int(value: Optional[str]) -> Optional[int]:
    try:
        return int(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None


def parse_host_port(local: Optional[str]) -> Optional[Tuple[str, int]]:
    """
    Splits 'host:port' as printed by ss / lsof.

    Handles '127.0.0.1:631', '[::1]:631', '[::ffff:127.0.0.1]:63342', '127.0.0.53%lo:53' and '*:22'.
    IPv6 brackets are stripped, '*' becomes '0.0.0.0', interface scopes ('%lo') are kept.
    """
    if not local or not local.strip():
        return None
    s = local.strip()

    if s.startswith("[") and "]" in s:
        end = s.index("]")
        s = s[1:end] + s[end + 1:]

    idx = s.rfind(":")
    if idx <= 0 or idx >= len(s) - 1:
        return None

    host = s[:idx]
    if host == "*":
        host = "0.0.0.0"

    port = safe_int(s[idx + 1:])
    if port is None or not 0 <= port <= 65535:
        return None
    return host, port


def resolve_executable(pid: Optional[int]) -> Optional[str]:
    """Best-effort executable path for a PID; None when the OS refuses or the process is gone."""
    if not pid:
        return None
    try:
        return psutil.Process(pid).exe() or None
    except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
        return None
    except OSError:
        return None


def with_executable_paths(records: List[SocketRecord]) -> List[SocketRecord]:
    """Fills executable_path where it is missing and a PID is known. Records are immutable, so copies are returned."""
    cache: dict = {}
    enriched: List[SocketRecord] = []
    for record in records:
        if record.executable_path is not None or record.process_id is None:
            enriched.append(record)
            continue
        if record.process_id not in cache:
            cache[record.process_id] = resolve_executable(record.process_id)
        path = cache[record.process_id]
        enriched.append(record.model_copy(update={"executable_path": path}) if path else record)
    return enriched
