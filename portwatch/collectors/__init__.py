from typing import Optional

from portwatch.collectors.base import ListenerCollector
from portwatch.collectors.linux_ss import LinuxSsCollector
from portwatch.collectors.macos_lsof import MacOsLsofCollector
from portwatch.collectors.psutil_collector import PsutilCollector
from portwatch.collectors.windows_powershell import WindowsPowerShellCollector
from portwatch.utils.command_runner import DEFAULT_TIMEOUT
from portwatch.utils.os_detector import OsType, detect_os


def build_collector(
    os_type: Optional[OsType] = None,
    timeout: float = DEFAULT_TIMEOUT,
    resolve_paths: bool = True,
) -> ListenerCollector:
    """Picks the listing strategy for the running platform (or the one given)."""
    os_type = os_type or detect_os()
    if os_type == OsType.WINDOWS:
        # Win32_Process already supplies the executable path.
        return WindowsPowerShellCollector(timeout=timeout)
    if os_type == OsType.LINUX:
        return LinuxSsCollector(timeout=timeout, resolve_paths=resolve_paths)
    if os_type == OsType.MAC:
        return MacOsLsofCollector(timeout=timeout, resolve_paths=resolve_paths)
    return PsutilCollector(resolve_paths=resolve_paths)


__all__ = [
    "ListenerCollector",
    "LinuxSsCollector",
    "MacOsLsofCollector",
    "PsutilCollector",
    "WindowsPowerShellCollector",
    "build_collector",
]
