"""
PortWatch Command Line Entry Point
Wires configuration, logging, the platform collector and the snapshot store into one run.

Exit codes: 0 success, 1 runtime failure (acquisition / read / write), 2 configuration error.
"""
import argparse
import sys
from typing import List, Optional

from portwatch import __version__
from portwatch.collectors import build_collector
from portwatch.core.config import Config
from portwatch.core.exceptions import (
    AcquisitionError,
    ConfigurationError,
    PortWatchError,
    ReadError,
    WriteError,
)
from portwatch.core.orchestrator import OutputMode, ReportFormat, RunOptions, RunOrchestrator
from portwatch.core.store import SnapshotStore
from portwatch.utils import console
from portwatch.utils.logger import Logger
from portwatch.utils.os_detector import resolve_machine_id

EXIT_OK = 0
EXIT_RUNTIME_ERROR = 1
EXIT_CONFIG_ERROR = 2


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(
        prog="portwatch",
        description="Snapshot TCP listening sockets and report what changed since the last run.",
    )
    mode = ap.add_mutually_exclusive_group()
    mode.add_argument("--snapshot", action="store_true", help="capture and store a snapshot, never diff")
    mode.add_argument("--diff", action="store_true", help="diff against the latest snapshot (enables --report)")
    ap.add_argument("--output", choices=[m.value for m in OutputMode], default=None,
                    help="console: print only; file: write only (default: both)")
    ap.add_argument("--output-dir", type=str, default=None, help="base data directory (overrides config)")
    ap.add_argument("--report", choices=[f.value for f in ReportFormat], default=None,
                    help="also render a human readable report of the diff")
    ap.add_argument("--config", type=str, default=None, help="path to config.yaml")
    ap.add_argument("--verbose", "-v", action="store_true", help="debug logging")
    ap.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    return ap


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)
    logger = Logger()

    try:
        if args.output_dir is not None and not args.output_dir.strip():
            raise ConfigurationError("--output-dir must not be empty.")
        options = RunOptions.from_flags(
            snapshot=args.snapshot, diff=args.diff, output=args.output, report=args.report
        )
        config = Config(config_path=args.config, data_dir=args.output_dir)
        logger.set_level("DEBUG" if args.verbose else config.log_level)
        if not logger.attach_file(config.log_file):
            logger.warning(f"Cannot open log file {config.log_file}; logging to console only.")

        machine_id = resolve_machine_id(config.machine_id)
        orchestrator = RunOrchestrator(
            collector=build_collector(timeout=config.command_timeout, resolve_paths=config.resolve_paths),
            store=SnapshotStore(config.data_dir),
            machine_id=machine_id,
        )
        limit = config.console_limit
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR

    logger.debug(f"Run options: {options} (machine scope: {machine_id})")

    try:
        result = orchestrator.run(options)
    except WriteError as e:
        logger.error(str(e))
        partial = e.partial_result
        # Combined mode still shows the diff that could not be saved.
        if partial is not None and options.output_mode is None and partial.diff is not None:
            console.render_console(partial, sys.stdout, limit)
        return EXIT_RUNTIME_ERROR
    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        return EXIT_CONFIG_ERROR
    except (AcquisitionError, ReadError) as e:
        logger.error(str(e))
        return EXIT_RUNTIME_ERROR
    except PortWatchError as e:
        logger.error(f"Unexpected PortWatch error: {e}")
        return EXIT_RUNTIME_ERROR

    console.render(result, limit)

    if options.report_format is not None and result.report_file is None:
        logger.error("No diff available for report generation (baseline created).")
        return EXIT_CONFIG_ERROR
    return EXIT_OK


if __name__ == "__main__":
    sys.exit(main())
