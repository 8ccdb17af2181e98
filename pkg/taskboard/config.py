# Taskboard — configuration
# Override defaults via taskboard.yaml or TASKBOARD_* environment variables.

import os
import logging
from pathlib import Path
from dataclasses import dataclass, fields
from typing import Optional

import yaml

logger = logging.getLogger(__name__)

CONFIG_PATH = Path(__file__).resolve().parents[2] / "taskboard.yaml"

# Environment variable → config field
ENV_OVERRIDES = {
    "TASKBOARD_DB": "db_path",
    "TASKBOARD_SECRET_KEY": "secret_key",
    "TASKBOARD_TOKEN_MAX_AGE": "token_max_age",
    "TASKBOARD_HOST": "host",
    "TASKBOARD_PORT": "port",
    "TASKBOARD_LOG_LEVEL": "log_level",
    "TASKBOARD_API_URL": "api_url",
    "TASKBOARD_REQUEST_TIMEOUT": "request_timeout",
}


class ConfigError(Exception):
    """Raised when configuration is invalid or incomplete."""
    pass


@dataclass
class Config:
    """Runtime configuration for the server and the board client."""

    # Server
    db_path: str = "~/.local/share/taskboard/taskboard.db"
    secret_key: str = ""
    token_max_age: int = 30 * 24 * 3600  # 30 days
    host: str = "127.0.0.1"
    port: int = 5000
    log_level: str = "INFO"

    # Client
    api_url: str = "http://127.0.0.1:5000/api"
    request_timeout: float = 10.0

    def resolve_paths(self):
        """Expand ~ in filesystem paths."""
        self.db_path = str(Path(self.db_path).expanduser())

    def apply_env(self, environ=None):
        """Let TASKBOARD_* variables win over file values."""
        environ = os.environ if environ is None else environ
        types = {f.name: f.type for f in fields(self)}
        for var, name in ENV_OVERRIDES.items():
            raw = environ.get(var)
            if raw is None or raw == "":
                continue
            kind = types[name]
            try:
                if kind in (int, "int"):
                    value = int(raw)
                elif kind in (float, "float"):
                    value = float(raw)
                else:
                    value = raw
            except ValueError:
                raise ConfigError(f"{var} must be a number, got {raw!r}")
            setattr(self, name, value)

    @classmethod
    def load(cls, path: Optional[str] = None, environ=None) -> "Config":
        """Load config from YAML file, falling back to defaults."""
        cfg_path = Path(path) if path else CONFIG_PATH
        if cfg_path.exists():
            try:
                with open(cfg_path, "r") as f:
                    data = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigError(f"Cannot parse {cfg_path}: {e}")
            if not isinstance(data, dict):
                raise ConfigError(f"{cfg_path} must contain a mapping")
            unknown = sorted(k for k in data if not hasattr(cls, k))
            if unknown:
                logger.warning(f"Ignoring unknown config keys in {cfg_path}: {unknown}")
            cfg = cls(**{k: v for k, v in data.items() if hasattr(cls, k)})
        else:
            cfg = cls()
        cfg.apply_env(environ)
        cfg.resolve_paths()
        return cfg
