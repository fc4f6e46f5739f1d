# tests/helpers.py
from datetime import datetime, timedelta
from typing import List, Optional

from portwatch.core.schemas import Snapshot, SnapshotMetadata, SocketRecord

MACHINE = "test-host"


def rec(address: str, port: int, pid: Optional[int] = None, name: Optional[str] = None,
        path: Optional[str] = None) -> SocketRecord:
    return SocketRecord(local_address=address, local_port=port, process_id=pid, process_name=name,
                        executable_path=path)


def snap(records: List[SocketRecord], timestamp: str = "20250101-120000", machine: str = MACHINE) -> Snapshot:
    return Snapshot(metadata=SnapshotMetadata(machine_id=machine, os="Linux", timestamp=timestamp),
                    sockets=tuple(records))


class FakeCollector:
    """Returns queued listener lists, one per collect() call; the last list repeats."""

    def __init__(self, *batches: List[SocketRecord], error: Optional[Exception] = None):
        self.batches = list(batches)
        self.error = error
        self.calls = 0

    def collect(self) -> List[SocketRecord]:
        self.calls += 1
        if self.error is not None:
            raise self.error
        if len(self.batches) > 1:
            return list(self.batches.pop(0))
        return list(self.batches[0]) if self.batches else []


class StepClock:
    """Deterministic clock advancing one minute per call."""

    def __init__(self, start: datetime = datetime(2025, 1, 14, 9, 30, 0)):
        self.current = start

    def __call__(self) -> datetime:
        value = self.current
        self.current += timedelta(minutes=1)
        return value
