"""Settings loaded from ``<data dir>/config.yaml``.

The data directory defaults to ``~/.api-workbench`` and can be moved with the
``API_WORKBENCH_HOME`` environment variable.
"""

import os
from pathlib import Path
from typing import Literal

import yaml
from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError

from api_workbench.errors import ValidationError

HOME_ENV = "API_WORKBENCH_HOME"
PASSPHRASE_ENV = "API_WORKBENCH_VAULT_PASSPHRASE"
CONFIG_FILENAME = "config.yaml"
STATE_FILENAME = "state.json"
VAULT_FILENAME = "vault.json"


def default_data_dir() -> Path:
    return Path(os.getenv(HOME_ENV) or Path.home() / ".api-workbench")


class Settings(BaseModel):
    """Application settings."""

    data_dir: Path = Path()
    vault_backend: Literal["keyring", "file"] = "keyring"
    keyring_service: str = "api-workbench"
    strict_ssl: bool = True
    timeout: float | None = 30.0
    follow_redirects: bool = True

    @property
    def state_path(self) -> Path:
        return self.data_dir / STATE_FILENAME

    @property
    def vault_path(self) -> Path:
        return self.data_dir / VAULT_FILENAME


def load_settings(data_dir: Path | None = None) -> Settings:
    """Read settings for ``data_dir``. A missing config file means defaults."""
    data_dir = data_dir or default_data_dir()
    config_path = data_dir / CONFIG_FILENAME

    values: dict = {}
    if config_path.exists():
        try:
            loaded = yaml.safe_load(config_path.read_text(encoding="utf-8"))
        except yaml.YAMLError as e:
            raise ValidationError(f"Invalid config file {config_path}: {e}") from e
        if loaded is not None and not isinstance(loaded, dict):
            raise ValidationError(f"Config file {config_path} must be a mapping")
        values = loaded or {}

    values["data_dir"] = data_dir
    try:
        return Settings(**values)
    except PydanticValidationError as e:
        raise ValidationError(f"Invalid settings in {config_path}: {e}") from e
