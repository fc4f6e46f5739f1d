"""
PortWatch Data Contracts
Defines the strict structure of the listening-socket data shared across collectors, store and diff engine.

Two notions of equality live here and must not be mixed:
- ``SocketRecord.__eq__`` compares every field (snapshot-level equality).
- ``SocketRecord.key()`` is the endpoint identity used to match records across snapshots.
"""
from typing import Any, Optional, Tuple
from pydantic import BaseModel, ConfigDict, Field, field_validator

TCP = "TCP"


class SocketKey(BaseModel):
    """Identity of a listening endpoint: protocol + local address + local port. Process data is excluded."""
    model_config = ConfigDict(frozen=True)

    protocol: str = TCP
    local_address: str
    local_port: int

    def __str__(self) -> str:
        return f"{self.protocol} {self.local_address}:{self.local_port}"


class SocketRecord(BaseModel):
    """One observed TCP listening endpoint."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    local_address: str = Field(alias="LocalAddress")
    local_port: int = Field(alias="LocalPort", ge=0, le=65535)
    process_id: Optional[int] = Field(default=None, alias="ProcessId")
    process_name: Optional[str] = Field(default=None, alias="ProcessName")
    executable_path: Optional[str] = Field(default=None, alias="Path")

    @field_validator("process_name", "executable_path", mode="before")
    @classmethod
    def _blank_is_unknown(cls, value: Any) -> Any:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    def key(self) -> SocketKey:
        return SocketKey(local_address=self.local_address, local_port=self.local_port)

    def same_owner(self, other: "SocketRecord") -> bool:
        """True when pid, process name and executable path all match (None == None)."""
        return (
            self.process_id == other.process_id
            and self.process_name == other.process_name
            and self.executable_path == other.executable_path
        )

    @property
    def has_process_info(self) -> bool:
        return any(v is not None for v in (self.process_id, self.process_name, self.executable_path))

    @property
    def owner_label(self) -> str:
        if not self.has_process_info:
            return "unknown"
        name = self.process_name or "?"
        pid = self.process_id if self.process_id is not None else "?"
        return f"{name} (PID {pid})"

    @property
    def endpoint(self) -> str:
        return f"{self.local_address}:{self.local_port}"


class SnapshotMetadata(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    machine_id: str = Field(alias="machineId")
    os: str
    timestamp: str


class Snapshot(BaseModel):
    """Timestamped capture of every listening socket seen in one run. Never mutated after creation."""
    model_config = ConfigDict(frozen=True)

    metadata: SnapshotMetadata
    sockets: Tuple[SocketRecord, ...] = ()

    @field_validator("sockets", mode="before")
    @classmethod
    def _missing_list_is_empty(cls, value: Any) -> Any:
        return () if value is None else value


class ChangedSocket(BaseModel):
    """Same endpoint in both snapshots, different owning process data."""
    model_config = ConfigDict(frozen=True)

    before: SocketRecord
    after: SocketRecord


class SnapshotDiff(BaseModel):
    model_config = ConfigDict(frozen=True)

    added: Tuple[SocketRecord, ...] = ()
    removed: Tuple[SocketRecord, ...] = ()
    changed: Tuple[ChangedSocket, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.changed)


class DiffFile(BaseModel):
    """Persisted diff payload: the metadata of the run that produced it plus the diff."""
    model_config = ConfigDict(frozen=True)

    metadata: SnapshotMetadata
    diff: SnapshotDiff


def to_json(model: BaseModel) -> str:
    """Pretty JSON with wire field names; absent values are written as null, never omitted."""
    return model.model_dump_json(by_alias=True, indent=2) + "\n"
