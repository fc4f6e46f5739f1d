"""
PortWatch Run Orchestrator
One invocation = one run: acquisition -> persistence -> diff -> persistence of the diff.

Execution modes:
- DEFAULT / DIFF_ONLY: first run on a machine scope writes the baseline and stops; later runs diff
  against the latest snapshot. DIFF_ONLY may additionally render a report (md / html / pdf).
- SNAPSHOT_ONLY: captures and stores a snapshot, never diffs.

Output modes:
- FILE: persist snapshot + diff.
- CONSOLE: keep results in memory; the disk is only touched to create a missing baseline.
- None (combined): persist and print.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Callable, Optional, Union

from portwatch.collectors.base import ListenerCollector
from portwatch.core.comparator import compare, duplicate_keys
from portwatch.core.exceptions import ConfigurationError, WriteError
from portwatch.core.schemas import DiffFile, Snapshot, SnapshotDiff, SnapshotMetadata
from portwatch.core.store import SnapshotStore
from portwatch.utils.logger import Logger
from portwatch.utils.os_detector import os_display_name
from portwatch.utils.report_generator import render_report

TIMESTAMP_FORMAT = "%Y%m%d-%H%M%S"


class ExecutionMode(str, Enum):
    DEFAULT = "DEFAULT"
    SNAPSHOT_ONLY = "SNAPSHOT_ONLY"
    DIFF_ONLY = "DIFF_ONLY"


class OutputMode(str, Enum):
    CONSOLE = "console"
    FILE = "file"


class ReportFormat(str, Enum):
    MD = "md"
    HTML = "html"
    PDF = "pdf"


class RunState(str, Enum):
    NO_BASELINE = "NO_BASELINE"
    BASELINE_CREATED = "BASELINE_CREATED"
    SNAPSHOT_TAKEN = "SNAPSHOT_TAKEN"
    DIFF_COMPUTED = "DIFF_COMPUTED"


def _parse_enum(enum_cls, value, flag: str):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(str(value).strip().lower())
    except ValueError:
        allowed = "|".join(m.value for m in enum_cls)
        raise ConfigurationError(f"Invalid {flag} value: {value} (allowed: {allowed})") from None


@dataclass(frozen=True)
class RunOptions:
    execution_mode: ExecutionMode = ExecutionMode.DEFAULT
    output_mode: Optional[OutputMode] = None
    report_format: Optional[ReportFormat] = None

    @classmethod
    def from_flags(
        cls,
        snapshot: bool = False,
        diff: bool = False,
        output: Optional[Union[str, OutputMode]] = None,
        report: Optional[Union[str, ReportFormat]] = None,
    ) -> "RunOptions":
        if snapshot and diff:
            raise ConfigurationError("Cannot use --snapshot and --diff together.")
        if snapshot:
            mode = ExecutionMode.SNAPSHOT_ONLY
        elif diff:
            mode = ExecutionMode.DIFF_ONLY
        else:
            mode = ExecutionMode.DEFAULT
        options = cls(
            execution_mode=mode,
            output_mode=_parse_enum(OutputMode, output, "--output"),
            report_format=_parse_enum(ReportFormat, report, "--report"),
        )
        options.validate()
        return options

    def validate(self) -> None:
        if self.report_format is None:
            return
        if self.execution_mode != ExecutionMode.DIFF_ONLY:
            raise ConfigurationError("--report requires --diff.")
        if self.output_mode == OutputMode.CONSOLE:
            raise ConfigurationError("--report requires file output (use --output=file or omit --output).")

    @property
    def persists(self) -> bool:
        return self.output_mode != OutputMode.CONSOLE


@dataclass
class RunResult:
    state: RunState
    options: RunOptions
    machine_id: str
    current: Optional[Snapshot] = None
    previous: Optional[Snapshot] = None
    previous_file: Optional[Path] = None
    snapshot_file: Optional[Path] = None
    diff_file: Optional[Path] = None
    report_file: Optional[Path] = None
    diff: Optional[SnapshotDiff] = None
    diff_payload: Optional[DiffFile] = None

    @property
    def baseline_created(self) -> bool:
        return self.state == RunState.BASELINE_CREATED

    @property
    def suggest_diff(self) -> bool:
        """A baseline created by a diffing mode: the user should simply run again later."""
        return self.baseline_created and self.options.execution_mode != ExecutionMode.SNAPSHOT_ONLY


class RunOrchestrator:
    """Sequences one PortWatch run for a single machine scope."""

    def __init__(
        self,
        collector: ListenerCollector,
        store: SnapshotStore,
        machine_id: str,
        os_name: Optional[str] = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.collector = collector
        self.store = store
        self.machine_id = machine_id
        self.os_name = os_name or os_display_name()
        self.clock = clock
        self.state = RunState.NO_BASELINE
        self.logger = Logger()

    def run(self, options: Optional[RunOptions] = None) -> RunResult:
        options = options or RunOptions()
        options.validate()

        if options.execution_mode == ExecutionMode.SNAPSHOT_ONLY:
            result = self._run_snapshot_only(options)
        else:
            result = self._run_diff(options)
        self.state = result.state
        return result

    # --- Pipelines ---

    def _run_snapshot_only(self, options: RunOptions) -> RunResult:
        previous_file = self.store.latest_reference(self.machine_id)
        current = self._acquire()
        is_baseline = previous_file is None

        result = RunResult(
            state=RunState.BASELINE_CREATED if is_baseline else RunState.SNAPSHOT_TAKEN,
            options=options,
            machine_id=self.machine_id,
            current=current,
            previous_file=previous_file,
        )

        # Console output keeps the history untouched unless there is no baseline at all.
        if not options.persists and not is_baseline:
            self.logger.info("Snapshot captured (console only, not persisted).")
            return result

        result.snapshot_file = self._persist(result, lambda: self.store.write_snapshot(current))
        if is_baseline:
            self.logger.success(f"Baseline snapshot created for {self.machine_id}.")
        return result

    def _run_diff(self, options: RunOptions) -> RunResult:
        previous_file = self.store.latest_reference(self.machine_id)

        if previous_file is None:
            self.logger.info(f"No previous snapshot for {self.machine_id}; creating baseline.")
            current = self._acquire()
            result = RunResult(
                state=RunState.BASELINE_CREATED, options=options, machine_id=self.machine_id, current=current
            )
            result.snapshot_file = self._persist(result, lambda: self.store.write_snapshot(current))
            if options.report_format is not None:
                self.logger.warning("No diff available for report generation (baseline created).")
            return result

        previous = self.store.read(previous_file)
        current = self._acquire()
        diff = compare(previous, current)
        self.logger.info(
            f"Diff against {previous.metadata.timestamp}: "
            f"{len(diff.added)} added, {len(diff.removed)} removed, {len(diff.changed)} changed."
        )

        result = RunResult(
            state=RunState.DIFF_COMPUTED,
            options=options,
            machine_id=self.machine_id,
            current=current,
            previous=previous,
            previous_file=previous_file,
            diff=diff,
            diff_payload=DiffFile(metadata=current.metadata, diff=diff),
        )

        if not options.persists:
            return result

        result.snapshot_file = self._persist(result, lambda: self.store.write_snapshot(current))
        result.diff_file = self._persist(result, lambda: self.store.write_diff(result.diff_payload))

        if options.report_format is not None:
            content = render_report(options.report_format.value, result.diff_payload, previous.metadata)
            result.report_file = self._persist(
                result,
                lambda: self.store.write_report(current.metadata, options.report_format.value, content),
            )
        return result

    # --- Helpers ---

    def _persist(self, result: RunResult, write: Callable[[], Path]) -> Path:
        try:
            return write()
        except WriteError as e:
            self.logger.error(f"Persistence failed: {e}")
            e.partial_result = result
            raise

    def _acquire(self) -> Snapshot:
        """Collects current listeners. Any AcquisitionError propagates before anything is written."""
        records = self.collector.collect()

        for key in duplicate_keys(records):
            self.logger.debug(f"Duplicate endpoint {key} in acquisition output; keeping the last entry.")

        metadata = SnapshotMetadata(machine_id=self.machine_id, os=self.os_name, timestamp=self.timestamp())
        return Snapshot(metadata=metadata, sockets=tuple(records))

    def timestamp(self) -> str:
        return self.clock().strftime(TIMESTAMP_FORMAT)
