"""Application configuration using pydantic-settings."""

import functools
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


def _find_project_root() -> Path:
    """Find project root by locating pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    # Fallback to the src/ layout position
    return Path(__file__).resolve().parent.parent.parent


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from config/settings.yaml."""

    def get_field_value(self, field_name: str) -> tuple[Any, str, bool]:
        """Not used - we implement __call__ instead."""
        return None, "", False

    def __call__(self) -> dict[str, Any]:
        """Load settings from YAML file."""
        yaml_path = _find_project_root() / "config" / "settings.yaml"
        if not yaml_path.exists():
            return {}

        with open(yaml_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}

        # Flatten nested structure to match Settings field names
        flattened = {}
        if 'storage' in data:
            flattened['data_dir'] = data['storage'].get('data_dir')
            flattened['bank_dir'] = data['storage'].get('bank_dir')
        if 'session' in data:
            flattened['default_user'] = data['session'].get('default_user')
            flattened['history_display_limit'] = data['session'].get('history_display_limit')
        if 'logging' in data:
            flattened['log_level'] = data['logging'].get('level')
            flattened['log_format'] = data['logging'].get('format')

        # Remove None values
        return {k: v for k, v in flattened.items() if v is not None}


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_prefix="BASH_SKILL_TESTER_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Paths
    project_root: Path = Field(default_factory=_find_project_root)
    data_dir: Path | None = Field(default=None)
    bank_dir: Path | None = Field(default=None)

    # Session
    default_user: str = Field(default="default")
    history_display_limit: int = Field(default=10, ge=1)

    # Logging
    log_level: Literal["debug", "info", "warning", "error"] = Field(default="warning")
    log_format: Literal["console", "json"] = Field(default="console")

    @property
    def resolved_data_dir(self) -> Path:
        """Directory holding profiles and assessment history."""
        return self.data_dir if self.data_dir is not None else self.project_root / "data"

    @property
    def resolved_bank_dir(self) -> Path:
        return self.bank_dir if self.bank_dir is not None else self.project_root / "config" / "bank"

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        """Customise settings sources to include YAML file.

        Priority order (highest to lowest):
        1. init_settings (arguments passed to Settings())
        2. env_settings (environment variables)
        3. dotenv_settings (.env file)
        4. YamlSettingsSource (settings.yaml)
        5. file_secret_settings
        """
        return (
            init_settings,
            env_settings,
            dotenv_settings,
            YamlSettingsSource(settings_cls),
            file_secret_settings,
        )


@functools.lru_cache
def get_settings() -> Settings:
    """Get application settings singleton."""
    return Settings()
