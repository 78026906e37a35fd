"""Application configuration using pydantic-settings."""

import functools
from pathlib import Path
from typing import Any

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, PydanticBaseSettingsSource, SettingsConfigDict


def _find_project_root() -> Path:
    """Find project root by locating pyproject.toml."""
    current = Path(__file__).resolve()
    for parent in [current] + list(current.parents):
        if (parent / "pyproject.toml").exists():
            return parent
    return Path(__file__).resolve().parent.parent.parent


class YamlSettingsSource(PydanticBaseSettingsSource):
    """Custom settings source that loads from settings.yaml."""

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
        if 'server' in data:
            flattened['host'] = data['server'].get('host')
            flattened['port'] = data['server'].get('port')
        if 'openai' in data:
            openai_cfg = data['openai']
            flattened['llm_model'] = openai_cfg.get('model')
            flattened['generation_temperature'] = openai_cfg.get('generation_temperature')
            flattened['grading_temperature'] = openai_cfg.get('grading_temperature')
            flattened['followup_temperature'] = openai_cfg.get('followup_temperature')
        if 'vocabulary' in data:
            flattened['vocabulary_path'] = data['vocabulary'].get('path')
            flattened['inspiration_sample_size'] = data['vocabulary'].get('sample_size')
        if 'storage' in data:
            flattened['data_dir'] = data['storage'].get('data_dir')
            flattened['profile_retention_days'] = data['storage'].get('profile_retention_days')

        # Remove None values
        return {k: v for k, v in flattened.items() if v is not None}


class Settings(BaseSettings):
    """Application settings loaded from environment and config files."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # OpenAI
    openai_api_key: str = Field(description="OpenAI API key")
    llm_model: str = Field(default="gpt-4o-mini")
    generation_temperature: float = Field(default=0.8)
    grading_temperature: float = Field(default=0.5)
    followup_temperature: float = Field(default=0.3)

    # Vocabulary inspiration
    vocabulary_path: Path | None = Field(default=None)
    inspiration_sample_size: int = Field(default=10)

    # Storage
    data_dir: Path | None = Field(default=None)
    profile_retention_days: int = Field(default=365)

    # Server
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)

    # Paths
    project_root: Path = Field(default_factory=_find_project_root)

    def _resolve(self, path: Path) -> Path:
        """Resolve relative paths against the project root."""
        return path if path.is_absolute() else self.project_root / path

    @property
    def storage_dir(self) -> Path:
        d = self._resolve(self.data_dir or Path("data") / "state")
        d.mkdir(parents=True, exist_ok=True)
        return d

    @property
    def vocabulary_file(self) -> Path:
        return self._resolve(self.vocabulary_path or Path("data") / "vocabulary.csv")

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
