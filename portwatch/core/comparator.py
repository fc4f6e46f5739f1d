"""
PortWatch Diff Engine
Structural comparison of two snapshots, matched by endpoint identity (TCP + address + port).
Pure functions: no I/O, deterministic output ordering.
"""
from typing import Dict, Iterable, List

from portwatch.core.schemas import ChangedSocket, Snapshot, SnapshotDiff, SocketKey, SocketRecord


def index_by_key(records: Iterable[SocketRecord]) -> Dict[SocketKey, SocketRecord]:
    """Maps each endpoint to its record. Duplicate keys inside one snapshot: the last one wins."""
    index: Dict[SocketKey, SocketRecord] = {}
    for record in records:
        index[record.key()] = record
    return index


def duplicate_keys(records: Iterable[SocketRecord]) -> List[SocketKey]:
    seen = set()
    dupes: List[SocketKey] = []
    for record in records:
        key = record.key()
        if key in seen and key not in dupes:
            dupes.append(key)
        seen.add(key)
    return sorted(dupes, key=str)


def _by_key(record: SocketRecord) -> str:
    return str(record.key())


def compare_records(previous: Iterable[SocketRecord], current: Iterable[SocketRecord]) -> SnapshotDiff:
    before = index_by_key(previous)
    after = index_by_key(current)

    added = sorted((rec for key, rec in after.items() if key not in before), key=_by_key)
    removed = sorted((rec for key, rec in before.items() if key not in after), key=_by_key)
    changed = sorted(
        (
            ChangedSocket(before=before[key], after=rec)
            for key, rec in after.items()
            if key in before and not before[key].same_owner(rec)
        ),
        key=lambda c: _by_key(c.after),
    )

    return SnapshotDiff(added=tuple(added), removed=tuple(removed), changed=tuple(changed))


def compare(previous: Snapshot, current: Snapshot) -> SnapshotDiff:
    """
    Compares the previous run's snapshot with the current one.

    - added:   endpoints only present in ``current``
    - removed: endpoints only present in ``previous``
    - changed: endpoints in both whose pid, process name or executable path differ
    """
    return compare_records(previous.sockets, current.sockets)
