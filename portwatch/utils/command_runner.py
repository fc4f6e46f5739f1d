"""
PortWatch Command Runner
Runs an external listing tool with a hard timeout. stdout and stderr are drained by two
daemon reader threads so a chatty tool cannot deadlock on a full pipe buffer.

Readers are never joined without a deadline: a grandchild that inherited the pipes can keep
them open long after the tool itself exited or was killed, and the run must not wait for it.
"""
import subprocess
import threading
import time
from dataclasses import dataclass
from typing import IO, Dict, List, Optional

from portwatch.core.exceptions import AcquisitionError, CommandTimeoutError
from portwatch.utils.logger import Logger

DEFAULT_TIMEOUT = 15.0

# Extra time granted to the reader threads once the process has exited.
READER_GRACE_SECONDS = 2.0


@dataclass(frozen=True)
class CommandResult:
    exit_code: int
    stdout: str
    stderr: str


def _read_all(stream: Optional[IO[bytes]]) -> str:
    if stream is None:
        return ""
    return stream.read().decode("utf-8", errors="replace")


class _PipeReader:
    """Drains one pipe on a daemon thread; the outcome is picked up with a bounded join."""

    def __init__(self, stream: Optional[IO[bytes]], name: str) -> None:
        self.stream = stream
        self.text = ""
        self.error: Optional[BaseException] = None
        self.thread = threading.Thread(target=self._run, name=f"portwatch-{name}", daemon=True)
        self.thread.start()

    def _run(self) -> None:
        try:
            self.text = _read_all(self.stream)
        except (OSError, ValueError) as e:
            self.error = e

    def join(self, deadline: float) -> bool:
        self.thread.join(max(deadline - time.monotonic(), 0.0))
        return not self.thread.is_alive()


def run_command(cmd: List[str], timeout: float = DEFAULT_TIMEOUT) -> CommandResult:
    """
    Executes ``cmd`` and returns its exit code and decoded output.

    Raises:
        AcquisitionError: the binary cannot be started or its output cannot be collected
            within READER_GRACE_SECONDS after it exited.
        CommandTimeoutError: the process did not finish within ``timeout`` seconds (it is killed).
    """
    logger = Logger()
    logger.debug(f"Running command: {' '.join(cmd)} (timeout {timeout:g}s)")

    try:
        process = subprocess.Popen(cmd, stdout=subprocess.PIPE, stderr=subprocess.PIPE, stdin=subprocess.DEVNULL)
    except FileNotFoundError as e:
        raise AcquisitionError(f"Command not found: {cmd[0]}", command=cmd) from e
    except OSError as e:
        raise AcquisitionError(f"Cannot start command: {e}", command=cmd) from e

    readers: Dict[str, _PipeReader] = {
        "stdout": _PipeReader(process.stdout, "stdout"),
        "stderr": _PipeReader(process.stderr, "stderr"),
    }

    try:
        exit_code = process.wait(timeout=timeout)
    except subprocess.TimeoutExpired:
        process.kill()
        process.wait()
        logger.error(f"Command killed after {timeout:g}s: {' '.join(cmd)}")
        raise CommandTimeoutError(cmd, timeout) from None

    deadline = time.monotonic() + READER_GRACE_SECONDS
    pending = [name for name, reader in readers.items() if not reader.join(deadline)]
    if pending:
        raise AcquisitionError(
            f"Output streams still open {READER_GRACE_SECONDS:g}s after exit: {', '.join(pending)}",
            command=cmd,
            exit_code=exit_code,
        )

    for name, reader in readers.items():
        if reader.error is not None:
            raise AcquisitionError(f"Cannot read command {name}: {reader.error}", command=cmd, exit_code=exit_code)

    stdout, stderr = readers["stdout"].text, readers["stderr"].text
    logger.debug(f"Command exited with {exit_code} ({len(stdout)} bytes stdout, {len(stderr)} bytes stderr)")
    return CommandResult(exit_code=exit_code, stdout=stdout, stderr=stderr)
