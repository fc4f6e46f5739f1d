"""
PortWatch Logging System
Singleton logger with UTF-8 support. Console output goes to stderr so stdout stays clean for
snapshot JSON and diff listings; a file handler can be attached once the data directory is known.
"""
import logging
import sys
from pathlib import Path
from typing import Optional, Union


class Logger:
    """Singleton logger with automatic UTF-8 encoding and optional file output."""

    _instance = None

    def __new__(cls):
        if cls._instance is None:
            cls._instance = super(Logger, cls).__new__(cls)
            cls._instance._initialize_logger()
        return cls._instance

    def _initialize_logger(self) -> None:
        """Configure logger with a console handler."""
        self.logger = logging.getLogger("portwatch")
        self.logger.setLevel(logging.INFO)
        self.logger.propagate = False
        self.file_path: Optional[Path] = None

        if self.logger.hasHandlers():
            self.logger.handlers.clear()

        self.formatter = logging.Formatter(
            '%(asctime)s [%(levelname)s] %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        )

        if sys.platform == "win32":
            try:
                sys.stderr.reconfigure(encoding='utf-8')
            except (AttributeError, ValueError):
                pass

        console_handler = logging.StreamHandler(sys.stderr)
        console_handler.setFormatter(self.formatter)
        self.logger.addHandler(console_handler)

    def attach_file(self, path: Union[str, Path]) -> bool:
        """Adds a UTF-8 file handler. Only the first successful call has an effect."""
        if self.file_path is not None:
            return True
        target = Path(path)
        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            file_handler = logging.FileHandler(target, encoding='utf-8')
        except OSError:
            return False
        file_handler.setFormatter(self.formatter)
        self.logger.addHandler(file_handler)
        self.file_path = target
        return True

    def set_level(self, level: str) -> None:
        self.logger.setLevel(getattr(logging, str(level).upper(), logging.INFO))

    def debug(self, msg: str) -> None:
        self.logger.debug(msg)

    def info(self, msg: str) -> None:
        self.logger.info(msg)

    def warning(self, msg: str) -> None:
        self.logger.warning(msg)

    def error(self, msg: str) -> None:
        self.logger.error(msg)

    def success(self, msg: str) -> None:
        self.logger.info(f"[SUCCESS] {msg}")
