"""
PortWatch Snapshot Store
File-based persistence of snapshots, diffs and reports, segregated per machine scope:

    <base>/snapshots/<machineId>/snapshot-<machineId>-<timestamp>.json
    <base>/diffs/<machineId>/diff-<machineId>-<timestamp>.json
    <base>/reports/<machineId>/report-<machineId>-<timestamp>.<ext>

Timestamps are fixed-width 'yyyyMMdd-HHmmss', so the newest file is simply the greatest filename.
Every write goes to a hidden temp file in the destination directory and is renamed into place,
so a reader never observes a partially written file.
"""
import json
import os
import re
import tempfile
from pathlib import Path
from typing import List, Optional, Union

from pydantic import ValidationError

from portwatch.core.exceptions import ReadError, WriteError
from portwatch.core.schemas import DiffFile, Snapshot, SnapshotMetadata, to_json
from portwatch.utils.logger import Logger

SNAPSHOT_PREFIX = "snapshot-"
DIFF_PREFIX = "diff-"
REPORT_PREFIX = "report-"
JSON_SUFFIX = ".json"

# Two runs within the same second get '_01', '_02'... ('_' sorts after '.', before the next second).
MAX_COLLISIONS = 99

_FILENAME_RE = re.compile(r"^snapshot-(?P<machine>.+)-(?P<ts>\d{8}-\d{6})(?:_\d+)?\.json$")


class SnapshotStore:
    """Reads and writes the on-disk history of one base data directory."""

    def __init__(self, base_dir: Union[str, Path]) -> None:
        self.base_dir = Path(base_dir)
        self.logger = Logger()

    # --- Layout ---

    def snapshots_dir(self, machine_id: str) -> Path:
        return self.base_dir / "snapshots" / machine_id

    def diffs_dir(self, machine_id: str) -> Path:
        return self.base_dir / "diffs" / machine_id

    def reports_dir(self, machine_id: str) -> Path:
        return self.base_dir / "reports" / machine_id

    # --- Lookup ---

    def history(self, machine_id: str) -> List[Path]:
        """All snapshot files of a machine scope, oldest first. Missing directory means no history."""
        directory = self.snapshots_dir(machine_id)
        if not directory.is_dir():
            return []
        try:
            files = [
                p for p in directory.iterdir()
                if p.is_file() and p.name.startswith(SNAPSHOT_PREFIX) and p.name.endswith(JSON_SUFFIX)
            ]
        except OSError as e:
            raise ReadError(f"Cannot list snapshot directory: {e}", directory) from e
        return sorted(files, key=lambda p: p.name)

    def latest_reference(self, machine_id: str) -> Optional[Path]:
        files = self.history(machine_id)
        return files[-1] if files else None

    def latest(self, machine_id: str) -> Optional[Snapshot]:
        """Most recent snapshot, or None when this scope never had one."""
        reference = self.latest_reference(machine_id)
        return self.read(reference) if reference else None

    # --- Read ---

    def _load_json(self, reference: Union[str, Path]):
        path = Path(reference)
        try:
            text = path.read_text(encoding="utf-8")
        except FileNotFoundError as e:
            raise ReadError("File not found", path) from e
        except (OSError, UnicodeDecodeError) as e:
            raise ReadError(f"Cannot read file: {e}", path) from e

        if not text.strip():
            raise ReadError("File is empty", path)
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise ReadError(f"Invalid JSON: {e}", path) from e

    def read(self, reference: Union[str, Path]) -> Snapshot:
        path = Path(reference)
        data = self._load_json(path)

        # Early releases stored the bare record list; recover metadata from the filename.
        if isinstance(data, list):
            data = {"metadata": self._metadata_from_filename(path), "sockets": data}

        if not isinstance(data, dict):
            raise ReadError("Snapshot must be a JSON object", path)
        try:
            return Snapshot.model_validate(data)
        except ValidationError as e:
            raise ReadError(f"Invalid snapshot structure: {e.error_count()} error(s): {e}", path) from e

    def read_diff(self, reference: Union[str, Path]) -> DiffFile:
        path = Path(reference)
        data = self._load_json(path)
        if not isinstance(data, dict):
            raise ReadError("Diff must be a JSON object", path)
        try:
            return DiffFile.model_validate(data)
        except ValidationError as e:
            raise ReadError(f"Invalid diff structure: {e.error_count()} error(s): {e}", path) from e

    @staticmethod
    def _metadata_from_filename(path: Path) -> dict:
        match = _FILENAME_RE.match(path.name)
        if not match:
            raise ReadError("Legacy snapshot without metadata has an unrecognised filename", path)
        return {"machineId": match.group("machine"), "os": "unknown", "timestamp": match.group("ts")}

    # --- Write ---

    def write_snapshot(self, snapshot: Snapshot) -> Path:
        meta = snapshot.metadata
        target = self._unique_target(
            self.snapshots_dir(meta.machine_id), f"{SNAPSHOT_PREFIX}{meta.machine_id}-{meta.timestamp}", JSON_SUFFIX
        )
        self._atomic_write(target, to_json(snapshot).encode("utf-8"))
        self.logger.info(f"Snapshot written: {target} ({len(snapshot.sockets)} sockets)")
        return target

    def write_diff(self, diff_file: DiffFile) -> Path:
        meta = diff_file.metadata
        target = self._unique_target(
            self.diffs_dir(meta.machine_id), f"{DIFF_PREFIX}{meta.machine_id}-{meta.timestamp}", JSON_SUFFIX
        )
        self._atomic_write(target, to_json(diff_file).encode("utf-8"))
        self.logger.info(f"Diff written: {target}")
        return target

    def write_report(self, metadata: SnapshotMetadata, extension: str, content: Union[str, bytes]) -> Path:
        data = content.encode("utf-8") if isinstance(content, str) else content
        target = self._unique_target(
            self.reports_dir(metadata.machine_id),
            f"{REPORT_PREFIX}{metadata.machine_id}-{metadata.timestamp}",
            f".{extension.lstrip('.')}",
        )
        self._atomic_write(target, data)
        self.logger.info(f"Report written: {target}")
        return target

    def _unique_target(self, directory: Path, stem: str, suffix: str) -> Path:
        candidate = directory / f"{stem}{suffix}"
        if not candidate.exists():
            return candidate
        for n in range(1, MAX_COLLISIONS + 1):
            candidate = directory / f"{stem}_{n:02d}{suffix}"
            if not candidate.exists():
                self.logger.warning(f"Filename collision, writing {candidate.name} instead")
                return candidate
        raise WriteError("Too many files with the same timestamp", directory / f"{stem}{suffix}")

    def _atomic_write(self, target: Path, data: bytes) -> None:
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            raise WriteError(f"Cannot create directory: {e}", target.parent) from e

        try:
            fd, tmp_name = tempfile.mkstemp(prefix=f".{target.name}.", suffix=".tmp", dir=target.parent)
        except OSError as e:
            raise WriteError(f"Cannot create temporary file: {e}", target.parent) from e

        try:
            with os.fdopen(fd, "wb") as fh:
                fh.write(data)
                fh.flush()
                os.fsync(fh.fileno())
            os.replace(tmp_name, target)
        except OSError as e:
            try:
                os.unlink(tmp_name)
            except OSError:
                pass
            raise WriteError(f"Cannot write file: {e}", target) from e
