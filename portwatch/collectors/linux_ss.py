# portwatch/collectors/linux_ss.py
import re
from typing import List, Optional

from portwatch.collectors.base import CommandCollector, parse_host_port, safe_int, with_executable_paths
from portwatch.core.exceptions import AcquisitionError
from portwatch.core.schemas import SocketRecord
from portwatch.utils.logger import Logger

# -l listening, -n numeric, -t TCP, -p process info (restricted without root), -H no header
SS_COMMAND = ["ss", "-lntpH"]

# LISTEN 0 4096 127.0.0.53%lo:53 0.0.0.0:* users:(("systemd-resolve",pid=725,fd=13))
# Several owners may be listed for one socket; the first one is kept.
USERS_RE = re.compile(r'users:\(\("(?P<name>[^"]+)",pid=(?P<pid>\d+),fd=\d+\)')


class LinuxSsCollector(CommandCollector):
    """TCP listeners from iproute2's `ss`."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.logger = Logger()

    def collect(self) -> List[SocketRecord]:
        result = self._run(SS_COMMAND)
        if result.exit_code != 0:
            raise AcquisitionError("ss failed", command=SS_COMMAND, exit_code=result.exit_code, stderr=result.stderr)

        records = self.parse(result.stdout)
        if result.stdout.strip() and not records:
            raise AcquisitionError("Unparsable ss output", command=SS_COMMAND, stderr=result.stdout[:500])

        if self.resolve_paths:
            records = with_executable_paths(records)
        self.logger.debug(f"ss reported {len(records)} listening sockets")
        return records

    def parse(self, stdout: Optional[str]) -> List[SocketRecord]:
        rows: List[SocketRecord] = []
        if not stdout or not stdout.strip():
            return rows

        for raw in stdout.splitlines():
            line = raw.strip()
            if not line:
                continue

            # STATE RECV-Q SEND-Q LOCAL:PORT PEER:PORT [PROCESS]
            parts = line.split()
            if len(parts) < 5:
                self.logger.debug(f"Skipping malformed ss line: {line}")
                continue

            hp = parse_host_port(parts[3])
            if hp is None:
                self.logger.debug(f"Skipping ss line without a local endpoint: {line}")
                continue

            match = USERS_RE.search(line)
            rows.append(SocketRecord(
                local_address=hp[0],
                local_port=hp[1],
                process_id=safe_int(match.group("pid")) if match else None,
                process_name=match.group("name") if match else None,
            ))
        return rows
