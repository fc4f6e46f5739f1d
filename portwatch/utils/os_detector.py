import os
import platform
import re
import socket
from enum import Enum
from typing import Optional


class OsType(str, Enum):
    WINDOWS = "WINDOWS"
    LINUX = "LINUX"
    MAC = "MAC"
    UNKNOWN = "UNKNOWN"


def detect_os(system: Optional[str] = None) -> OsType:
    """Normalizes platform.system() (or the given name) into the platforms PortWatch has collectors for."""
    name = (system if system is not None else platform.system()).lower()

    if name.startswith("win") or "windows" in name:
        return OsType.WINDOWS
    if "darwin" in name or "mac" in name:
        return OsType.MAC
    if "linux" in name or "nix" in name or "nux" in name or "aix" in name:
        return OsType.LINUX
    return OsType.UNKNOWN


def os_display_name() -> str:
    """Value stored in snapshot metadata (e.g. 'Linux', 'Windows', 'Darwin')."""
    return platform.system() or "Unknown"


def sanitize_machine_id(value: str) -> str:
    return re.sub(r"[^a-zA-Z0-9._-]", "_", value)


def resolve_machine_id(override: Optional[str] = None) -> str:
    """
    Stable, filesystem-safe identifier of this host, used as the snapshot/diff scope.
    Order: explicit override > host name > COMPUTERNAME / HOSTNAME > 'UNKNOWN'.
    """
    if override and override.strip():
        return sanitize_machine_id(override.strip())

    try:
        host = socket.gethostname().strip()
    except OSError:
        host = ""

    if not host or host.lower() == "localhost":
        host = (os.getenv("COMPUTERNAME") or os.getenv("HOSTNAME") or "").strip()

    return sanitize_machine_id(host or "UNKNOWN")
