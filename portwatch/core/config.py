# portwatch/core/config.py
from pathlib import Path
from typing import Any, Dict, Optional, Union
import yaml
import os
from dotenv import load_dotenv

from portwatch.core.exceptions import ConfigurationError

DEFAULT_DATA_DIR = "data"
DEFAULT_COMMAND_TIMEOUT = 15.0
DEFAULT_CONSOLE_LIMIT = 10


class Config:
    """
    Loads configuration from an explicit override (Priority 1), environment variables (Priority 2),
    'config.yaml' (Priority 3) and built-in defaults.
    The .env file is looked up next to the project first, then in the working directory.
    """
    def __init__(
        self,
        config_path: Optional[Union[str, Path]] = None,
        data_dir: Optional[Union[str, Path]] = None,
    ) -> None:
        current_dir = os.path.dirname(os.path.abspath(__file__))
        project_root = os.path.abspath(os.path.join(current_dir, '..', '..'))
        env_path = os.path.join(project_root, '.env')

        if os.path.exists(env_path):
            load_dotenv(dotenv_path=env_path, override=False)
        else:
            load_dotenv(override=False)

        self.config_path = Path(config_path or os.getenv("PORTWATCH_CONFIG", "config.yaml"))
        self._data_dir_override = Path(data_dir) if data_dir else None
        self.data = self._load_yaml()

    def _load_yaml(self) -> Dict[str, Any]:
        if not self.config_path.exists():
            return {}
        try:
            with open(self.config_path, "r", encoding="utf-8") as f:
                loaded = yaml.safe_load(f) or {}
        except (yaml.YAMLError, OSError) as e:
            raise ConfigurationError(f"Cannot load configuration file {self.config_path}: {e}") from e
        if not isinstance(loaded, dict):
            raise ConfigurationError(f"Configuration file {self.config_path} must contain a mapping")
        return loaded

    def _section(self, name: str) -> Dict[str, Any]:
        section = self.data.get(name) or {}
        return section if isinstance(section, dict) else {}

    @property
    def data_dir(self) -> Path:
        if self._data_dir_override is not None:
            return self._data_dir_override
        env = os.getenv("PORTWATCH_DATA_DIR", "").strip()
        if env:
            return Path(env)
        return Path(self._section("storage").get("data_dir") or DEFAULT_DATA_DIR)

    @property
    def machine_id(self) -> Optional[str]:
        value = os.getenv("PORTWATCH_MACHINE_ID") or self._section("machine").get("id")
        return str(value) if value else None

    @property
    def command_timeout(self) -> float:
        raw = os.getenv("PORTWATCH_COMMAND_TIMEOUT") or self._section("collectors").get("timeout")
        if raw in (None, ""):
            return DEFAULT_COMMAND_TIMEOUT
        try:
            timeout = float(raw)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid command timeout: {raw!r}") from e
        if timeout <= 0:
            raise ConfigurationError(f"Command timeout must be positive, got {timeout:g}")
        return timeout

    @property
    def resolve_paths(self) -> bool:
        env = os.getenv("PORTWATCH_RESOLVE_PATHS")
        if env is not None:
            return env.strip().lower() in ("1", "true", "yes", "on")
        return bool(self._section("collectors").get("resolve_paths", True))

    @property
    def console_limit(self) -> int:
        raw = self._section("output").get("console_limit", DEFAULT_CONSOLE_LIMIT)
        try:
            return max(int(raw), 0)
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid output.console_limit: {raw!r}") from e

    @property
    def log_file(self) -> Path:
        value = os.getenv("PORTWATCH_LOG_FILE") or self._section("logging").get("file")
        return Path(value) if value else self.data_dir / "portwatch.log"

    @property
    def log_level(self) -> str:
        return os.getenv("PORTWATCH_LOG_LEVEL") or self._section("logging").get("level", "INFO")
