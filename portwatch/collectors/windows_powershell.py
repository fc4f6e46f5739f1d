# portwatch/collectors/windows_powershell.py
import json
from typing import List, Optional

from pydantic import ValidationError

from portwatch.collectors.base import CommandCollector
from portwatch.core.exceptions import AcquisitionError
from portwatch.core.schemas import SocketRecord
from portwatch.utils.logger import Logger

# Emits JSON whose objects already carry the SocketRecord wire names.
LISTENERS_SCRIPT = r"""
$ErrorActionPreference='Stop';

@(
  Get-NetTCPConnection -State Listen |
  ForEach-Object {
    $procId = $_.OwningProcess
    $proc = Get-CimInstance Win32_Process -Filter "ProcessId=$procId" -ErrorAction SilentlyContinue

    [PSCustomObject]@{
      LocalAddress   = $_.LocalAddress
      LocalPort      = $_.LocalPort
      ProcessId      = $procId
      ProcessName    = $proc.Name
      Path           = $proc.ExecutablePath
    }
  }
) | ConvertTo-Json -Depth 3
"""

POWERSHELL_COMMAND = ["powershell.exe", "-NoProfile", "-ExecutionPolicy", "Bypass", "-Command", LISTENERS_SCRIPT]


class WindowsPowerShellCollector(CommandCollector):
    """TCP listeners from Get-NetTCPConnection, enriched with Win32_Process name and path."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.logger = Logger()

    def collect(self) -> List[SocketRecord]:
        result = self._run(POWERSHELL_COMMAND)
        if result.exit_code != 0:
            raise AcquisitionError(
                "PowerShell failed", command=POWERSHELL_COMMAND[:5], exit_code=result.exit_code, stderr=result.stderr
            )
        records = self.parse(result.stdout)
        self.logger.debug(f"Get-NetTCPConnection reported {len(records)} listening sockets")
        return records

    def parse(self, stdout: Optional[str]) -> List[SocketRecord]:
        text = (stdout or "").lstrip("\ufeff").strip()
        if not text:
            return []

        try:
            payload = json.loads(text)
        except json.JSONDecodeError as e:
            raise AcquisitionError(f"Unparsable PowerShell output: {e}", stderr=text[:500]) from e

        # ConvertTo-Json unwraps single-element arrays.
        if isinstance(payload, dict):
            payload = [payload]
        if not isinstance(payload, list):
            raise AcquisitionError("Unexpected PowerShell output: expected a JSON array", stderr=text[:500])

        try:
            return [SocketRecord.model_validate(item) for item in payload]
        except ValidationError as e:
            raise AcquisitionError(f"Invalid listener entry in PowerShell output: {e}") from e
