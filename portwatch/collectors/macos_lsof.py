# portwatch/collectors/macos_lsof.py
from typing import List, Optional

from portwatch.collectors.base import CommandCollector, parse_host_port, safe_int, with_executable_paths
from portwatch.core.exceptions import AcquisitionError
from portwatch.core.schemas import SocketRecord
from portwatch.utils.logger import Logger

# -n no DNS, -P numeric ports, only TCP sockets in LISTEN state
LSOF_COMMAND = ["lsof", "-nP", "-iTCP", "-sTCP:LISTEN"]
LISTEN_TOKEN = "(LISTEN)"


class MacOsLsofCollector(CommandCollector):
    """TCP listeners from `lsof` (macOS)."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.logger = Logger()

    def collect(self) -> List[SocketRecord]:
        result = self._run(LSOF_COMMAND)

        # lsof exits 1 without output when nothing matches the filter.
        if result.exit_code == 1 and not result.stdout.strip() and not result.stderr.strip():
            return []
        if result.exit_code != 0:
            raise AcquisitionError("lsof failed", command=LSOF_COMMAND, exit_code=result.exit_code, stderr=result.stderr)

        records = self.parse(result.stdout)
        if self.resolve_paths:
            records = with_executable_paths(records)
        self.logger.debug(f"lsof reported {len(records)} listening sockets")
        return records

    def parse(self, stdout: Optional[str]) -> List[SocketRecord]:
        """
        Expected columns: COMMAND PID USER FD TYPE DEVICE SIZE/OFF NODE NAME
        e.g. 'ControlCe 123 user 7u IPv4 0x1 0t0 TCP 127.0.0.1:631 (LISTEN)'
        """
        rows: List[SocketRecord] = []
        if not stdout or not stdout.strip():
            return rows

        lines = [line.strip() for line in stdout.splitlines() if line.strip()]
        if lines and lines[0].upper().startswith("COMMAND "):
            lines = lines[1:]

        for line in lines:
            parts = line.split()
            if len(parts) < 3:
                continue

            name = parts[-2] if parts[-1] == LISTEN_TOKEN else parts[-1]
            hp = parse_host_port(self._local_endpoint(name))
            if hp is None:
                self.logger.debug(f"Skipping lsof line without a local endpoint: {line}")
                continue

            rows.append(SocketRecord(
                local_address=hp[0],
                local_port=hp[1],
                process_id=safe_int(parts[1]),
                # lsof escapes spaces in COMMAND as \x20
                process_name=parts[0].replace("\\x20", " "),
            ))

        if lines and not rows:
            raise AcquisitionError("Unparsable lsof output", command=LSOF_COMMAND, stderr=stdout[:500])
        return rows

    @staticmethod
    def _local_endpoint(name: str) -> str:
        name = name.strip()
        if name.endswith(LISTEN_TOKEN):
            name = name[: -len(LISTEN_TOKEN)].strip()
        # LISTEN rows have no peer, but keep only the local side if one shows up.
        if "->" in name:
            name = name.split("->", 1)[0].strip()
        return name
