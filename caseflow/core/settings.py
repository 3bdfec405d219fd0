"""Caseflow - Configuration system with Pydantic Settings"""

from __future__ import annotations

import os
from pathlib import Path

import pydantic_settings
from pydantic import Field
from pydantic_settings import (
    DotEnvSettingsSource,
    EnvSettingsSource,
    PydanticBaseSettingsSource,
)
from pydantic_settings.main import SettingsConfigDict

__all__ = [
    "Settings",
    "settings",
    "get_settings",
    "reload_settings",
]


class Settings(pydantic_settings.BaseSettings):
    """Application settings with type-safe validation"""

    app_name: str = Field(default="caseflow", min_length=1)
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Workflow snapshots
    storage_dir: str = Field(default_factory=lambda: str(_resolve_app_dir("data")))

    # Generated session ids look like "<prefix>-<millis>-<suffix>"
    session_prefix: str = Field(default="workflow", min_length=1)

    model_config = SettingsConfigDict(
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[pydantic_settings.BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        del env_settings, dotenv_settings

        model_case_sensitive = settings_cls.model_config.get("case_sensitive")
        case_sensitive = model_case_sensitive if isinstance(model_case_sensitive, bool) else None

        return (
            init_settings,
            EnvSettingsSource(
                settings_cls,
                env_prefix="CASEFLOW_",
                case_sensitive=case_sensitive,
            ),
            DotEnvSettingsSource(
                settings_cls,
                env_prefix="CASEFLOW_",
                env_file=_dotenv_paths(settings_cls),
                case_sensitive=case_sensitive,
            ),
            file_secret_settings,
        )

    def storage_dir_path(self) -> Path:
        """
        Get the storage directory path as a Path object.

        Returns:
            The storage directory path as a Path object with ~ expanded.
        """
        return Path(self.storage_dir).expanduser()


APP_DIR_NAME = "caseflow"


def _xdg_base_dir(env_var_name: str, fallback: Path) -> Path:
    env_value = os.getenv(env_var_name)
    if env_value:
        return Path(env_value).expanduser()
    return fallback


def _resolve_app_dir(kind: str) -> Path:
    home = Path.home()
    if kind == "config":
        base = _xdg_base_dir("XDG_CONFIG_HOME", home / ".config")
    elif kind == "data":
        base = _xdg_base_dir("XDG_DATA_HOME", home / ".local" / "share")
    else:
        raise ValueError(f"Unsupported app dir kind: {kind}")

    return base / APP_DIR_NAME


def _dotenv_paths(settings_cls: type[pydantic_settings.BaseSettings]) -> tuple[Path | str, ...]:
    explicit_env_files = settings_cls.model_config.get("env_file")
    if explicit_env_files is not None:
        if isinstance(explicit_env_files, (str, Path)):
            return (explicit_env_files,)
        return tuple(explicit_env_files)

    return (".env", _resolve_app_dir("config") / ".env")


settings: Settings = Settings()


def get_settings() -> Settings:
    """
    Get the global settings singleton instance.

    Returns:
        The global Settings instance.
    """
    return settings


def reload_settings() -> Settings:
    """
    Reload settings by creating a new Settings instance.

    Returns:
        A new Settings instance with current environment values.
    """
    return Settings()
