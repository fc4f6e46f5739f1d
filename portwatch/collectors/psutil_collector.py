# portwatch/collectors/psutil_collector.py
from typing import List, Optional

import psutil

from portwatch.collectors.base import with_executable_paths
from portwatch.core.exceptions import AcquisitionError
from portwatch.core.schemas import SocketRecord
from portwatch.utils.logger import Logger


class PsutilCollector:
    """Fallback for platforms without a native collector: psutil's TCP connection table, LISTEN rows only."""

    def __init__(self, resolve_paths: bool = True):
        self.resolve_paths = resolve_paths
        self.logger = Logger()

    def _process_name(self, pid: Optional[int]) -> Optional[str]:
        if not pid:
            return None
        try:
            return psutil.Process(pid).name()
        except (psutil.NoSuchProcess, psutil.AccessDenied, psutil.ZombieProcess):
            return None

    def collect(self) -> List[SocketRecord]:
        try:
            conns = psutil.net_connections(kind="tcp")
        except psutil.AccessDenied as e:
            raise AcquisitionError(f"psutil access denied listing TCP sockets: {e}") from e
        except (psutil.Error, OSError) as e:
            raise AcquisitionError(f"psutil failed listing TCP sockets: {e}") from e

        records: List[SocketRecord] = []
        names: dict = {}
        for conn in conns:
            if conn.status != psutil.CONN_LISTEN or not conn.laddr:
                continue
            pid = conn.pid or None
            if pid not in names:
                names[pid] = self._process_name(pid)
            records.append(SocketRecord(
                local_address=conn.laddr.ip,
                local_port=conn.laddr.port,
                process_id=pid,
                process_name=names[pid],
            ))

        if self.resolve_paths:
            records = with_executable_paths(records)
        self.logger.debug(f"psutil reported {len(records)} listening sockets")
        return records
