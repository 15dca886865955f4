"""Core configuration.

Why here:
- Centralizes environment variables (pydantic-settings) without leaking
  them into the CLI.
- Adapters (Azure CLI, exporters) read the same settings contract.
"""

from __future__ import annotations

import os
import sys
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

APP_DIR_NAME = "atm-deploy"
ENV_PREFIX = "ATM_DEPLOY_"
USER_ENV_FILENAME = "settings.env"


def get_user_config_dir() -> Path:
    """Per-user config directory.

    `ATM_DEPLOY_CONFIG_DIR` takes precedence over the platform default.
    """

    override = os.environ.get(f"{ENV_PREFIX}CONFIG_DIR")
    if override:
        return Path(override).expanduser()

    if sys.platform.startswith("win"):
        base = Path(os.environ.get("APPDATA", str(Path.home())))
        return base / APP_DIR_NAME
    if sys.platform == "darwin":
        return Path.home() / "Library" / "Application Support" / APP_DIR_NAME

    xdg = os.environ.get("XDG_CONFIG_HOME")
    if xdg:
        return Path(xdg) / APP_DIR_NAME
    return Path.home() / ".config" / APP_DIR_NAME


def get_user_env_file() -> Path:
    return get_user_config_dir() / USER_ENV_FILENAME


class AppSettings(BaseSettings):
    """Application settings.

    Why pydantic-settings:
    - Typed, validated at the edge (env vars / .env files).
    - One configuration contract for the CLI and the adapters.
    """

    model_config = SettingsConfigDict(
        env_prefix=ENV_PREFIX,
        extra="ignore",
        case_sensitive=False,
        # Project .env first (dev), then the per-user config.
        env_file=(".env", str(get_user_env_file())),
        env_file_encoding="utf-8",
    )

    az_path: str = Field(
        default="az",
        min_length=1,
        description="Azure CLI executable (name on PATH or absolute path).",
    )
    templates_dir: Path = Field(
        default=Path("infrastructure/templates"),
        description="Directory holding the network template and parameters files.",
    )
    template_file: str = Field(
        default="network.json",
        min_length=1,
        description="ARM template filename inside `templates_dir`.",
    )
    parameters_file: str = Field(
        default="network.parameters.json",
        min_length=1,
        description="Base parameters filename; `<stem>.<environment>.json` overrides it when present.",
    )
    outputs_dir: Path = Field(
        default=Path("."),
        description="Where `network-deployment-outputs-<environment>.json` is written.",
    )
    deployment_name_prefix: str = Field(
        default="atm-network",
        min_length=1,
        max_length=40,
        description="Prefix for generated deployment names.",
    )
    debug: bool = Field(
        default=False,
        description="Verbose logging (provider commands and payload sizes).",
    )

    def outputs_path_for(self, environment: str) -> Path:
        return self.outputs_dir / f"network-deployment-outputs-{environment}.json"


def load_user_settings(env_path: Path | None = None) -> dict[str, str]:
    """Read the per-user settings file, keyed by `AppSettings` field name.

    Lines that do not carry the `ATM_DEPLOY_` prefix or name an unknown
    field are ignored.
    """

    path = env_path or get_user_env_file()
    if not path.is_file():
        return {}

    values: dict[str, str] = {}
    for line in path.read_text(encoding="utf-8").splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, value = line.split("=", 1)
        key = key.strip().upper()
        if not key.startswith(ENV_PREFIX):
            continue
        name = key[len(ENV_PREFIX):].lower()
        if name in AppSettings.model_fields:
            values[name] = value.strip().strip("\"'")
    return values


def save_user_settings(values: dict[str, str], *, env_path: Path | None = None) -> Path:
    """Merge `values` into the per-user settings file and return its path.

    Keys are `AppSettings` field names. The merged result is validated
    before anything is written, so a bad answer never lands on disk.
    Raises `ValueError` for unknown fields and `pydantic.ValidationError`
    for values the settings model rejects.
    """

    unknown = sorted(set(values) - set(AppSettings.model_fields))
    if unknown:
        raise ValueError("Unknown setting(s): " + ", ".join(unknown))

    path = env_path or get_user_env_file()
    merged = load_user_settings(path)
    merged.update({name: str(value) for name, value in values.items() if value is not None})
    AppSettings(_env_file=None, **merged)

    path.parent.mkdir(parents=True, exist_ok=True)
    lines = ["# atm-deploy user settings (managed by `atm-deploy doctor configure`)"]
    lines += [f"{ENV_PREFIX}{name.upper()}={merged[name]}" for name in AppSettings.model_fields if name in merged]
    path.write_text("\n".join(lines) + "\n", encoding="utf-8")
    return path
