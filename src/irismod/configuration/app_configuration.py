from __future__ import annotations

import fcntl
import os
from pathlib import Path
from typing import Any, Dict

import yaml

from irismod.configuration.moderation_settings import ModerationSettings
from irismod.util.logger import get_logger

logger = get_logger("app_configuration")

# ``IRISMOD_CONFIG`` points a deployment at a different YAML file
CONFIG_PATH = Path(os.environ.get("IRISMOD_CONFIG", "./config/app_config.yml")).resolve()


def _read_locked(path: Path) -> Any:
    """Parse ``path`` as YAML while holding a shared fcntl lock on it."""
    with path.open("r", encoding="utf-8") as handle:
        fcntl.flock(handle.fileno(), fcntl.LOCK_SH)
        try:
            return yaml.safe_load(handle)
        finally:
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)


class AppConfig:
    """Cached view of ``app_config.yml`` with typed accessors.

    The file is read once on construction and again on :meth:`reload`. A
    missing, unreadable or non-mapping file leaves the cache empty, so every
    accessor falls back to its default.
    """

    def __init__(self, config_path: Path) -> None:
        self.config_path = config_path
        self._data: Dict[str, Any] = {}
        self.reload()

    def reload(self) -> Dict[str, Any]:
        """Re-read the file and return the new mapping (empty on error)."""
        try:
            loaded = _read_locked(self.config_path)
        except FileNotFoundError:
            logger.error("[APP CONFIGURATION] %s does not exist, using defaults", self.config_path)
            loaded = None
        except (OSError, yaml.YAMLError) as exc:
            logger.error("[APP CONFIGURATION] Could not read %s: %s", self.config_path, exc)
            loaded = None
        self._data = loaded if isinstance(loaded, dict) else {}
        return self._data

    @property
    def data(self) -> Dict[str, Any]:
        """The cached mapping. Treat it as read-only."""
        return self._data

    def get(self, key: str, default: Any = None) -> Any:
        return self._data.get(key, default)

    def section(self, key: str) -> Dict[str, Any]:
        """Return a nested mapping, or an empty dict when absent or malformed."""
        value = self._data.get(key)
        return value if isinstance(value, dict) else {}

    @property
    def database_path(self) -> Path:
        return Path(self.section("database").get("path") or "./data/irismod.db").resolve()

    @property
    def vault_env_file(self) -> Path:
        """``.env`` file holding the vault master key."""
        return Path(self.section("vault").get("env_file") or "./.env").resolve()

    @property
    def vault_key_variable(self) -> str:
        return str(self.section("vault").get("key_variable") or "APIKEY_ENCRYPT_KEY")

    @property
    def adapter_timeout_seconds(self) -> float:
        """Upper bound on each platform adapter call (default 10 seconds)."""
        return float(self.section("platform").get("adapter_timeout_seconds", 10.0))

    @property
    def moderation(self) -> ModerationSettings:
        return ModerationSettings(self.section("moderation"))


app_config = AppConfig(CONFIG_PATH)
