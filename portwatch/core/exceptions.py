"""
PortWatch Error Taxonomy
Every failure raised by the core derives from PortWatchError so the CLI can map it to an exit code.
"""
from typing import Any, List, Optional


class PortWatchError(Exception):
    """Base class for all PortWatch failures."""


class ConfigurationError(PortWatchError):
    """Invalid flag / mode combination or unreadable configuration file."""


class AcquisitionError(PortWatchError):
    """The OS listing tool is missing, failed, or produced unparsable output."""

    def __init__(
        self,
        message: str,
        command: Optional[List[str]] = None,
        exit_code: Optional[int] = None,
        stderr: Optional[str] = None,
    ) -> None:
        super().__init__(message)
        self.command = command
        self.exit_code = exit_code
        self.stderr = stderr

    def __str__(self) -> str:
        text = super().__str__()
        if self.command:
            text += f" [command: {' '.join(self.command)}]"
        if self.exit_code is not None:
            text += f" [exit code: {self.exit_code}]"
        if self.stderr and self.stderr.strip():
            text += f"\n{self.stderr.strip()}"
        return text


class CommandTimeoutError(AcquisitionError):
    """The listing tool did not finish within its timeout and was killed."""

    def __init__(self, command: List[str], timeout: float) -> None:
        super().__init__(f"Command timeout after {timeout:g}s", command=command)
        self.timeout = timeout


class ReadError(PortWatchError):
    """A persisted snapshot or diff is missing, unreadable or structurally invalid."""

    def __init__(self, message: str, path: Any = None) -> None:
        super().__init__(message)
        self.path = path

    def __str__(self) -> str:
        text = super().__str__()
        return f"{text} ({self.path})" if self.path else text


class WriteError(PortWatchError):
    """A destination directory or file could not be written.

    ``partial_result`` holds whatever the run had already computed in memory
    (for example the diff), so callers can still render it to the console.
    """

    def __init__(self, message: str, path: Any = None) -> None:
        super().__init__(message)
        self.path = path
        self.partial_result: Any = None

    def __str__(self) -> str:
        text = super().__str__()
        return f"{text} ({self.path})" if self.path else text
