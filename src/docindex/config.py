"""Settings for docindex: defaults, optional YAML file, environment overrides."""

import logging
import os
from dataclasses import asdict, dataclass, field
from pathlib import Path
from typing import Any, Optional

import yaml

from docindex.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_FILE = "docindex.yaml"
API_KEY_ENV = "GEMINI_API_KEY"
DB_PATH_ENV = "DOCINDEX_DB"


@dataclass
class IndexingSettings:
    chunk_size: int = 1000
    max_concurrent_files: int = 50
    max_concurrent_pdfs: int = 2
    pdf_task_delay: float = 1.0
    max_scan_depth: int = 100


@dataclass
class ProviderSettings:
    embedding_provider: str = "gemini"  # "gemini" | "sentence-transformers"
    embedding_model: str = "text-embedding-004"
    local_embedding_model: str = "all-MiniLM-L6-v2"
    generation_model: str = "gemini-2.5-flash"
    api_key: str = ""
    base_url: str = "https://generativelanguage.googleapis.com"
    timeout: float = 600.0
    min_interval: float = 4.0
    retry_backoff: float = 5.0
    cloud_fallback: bool = True


@dataclass
class OcrSettings:
    enabled: bool = True
    languages: list[str] = field(default_factory=lambda: ["eng"])
    dpi: int = 300
    max_probe_pages: int = 100
    signature_scan_bytes: int = 10 * 1024
    min_text_length: int = 10
    inline_size_limit: int = 20 * 1024 * 1024


@dataclass
class StorageSettings:
    database: str = "docindex.db"


@dataclass
class Settings:
    """All runtime configuration consumed by the core."""

    indexing: IndexingSettings = field(default_factory=IndexingSettings)
    provider: ProviderSettings = field(default_factory=ProviderSettings)
    ocr: OcrSettings = field(default_factory=OcrSettings)
    storage: StorageSettings = field(default_factory=StorageSettings)

    def validate(self) -> None:
        """Raise ConfigError for settings that make the core unusable."""
        if self.provider.embedding_provider not in ("gemini", "sentence-transformers"):
            raise ConfigError(
                f"Unknown embedding provider: {self.provider.embedding_provider}"
            )
        if self.provider.embedding_provider == "gemini" and not self.provider.api_key:
            raise ConfigError(
                f"Gemini API key not configured. Set {API_KEY_ENV} or provider.api_key."
            )
        if self.indexing.chunk_size < 1:
            raise ConfigError("indexing.chunk_size must be positive")
        if self.indexing.max_concurrent_files < 1 or self.indexing.max_concurrent_pdfs < 1:
            raise ConfigError("Concurrency limits must be at least 1")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_settings(config_path: Optional[str | Path] = None) -> Settings:
    """Build settings from defaults, an optional YAML file and the environment.

    Args:
        config_path: YAML file to load. Defaults to ``docindex.yaml`` in the
            working directory; a missing default file is not an error.
    """
    data = Settings().to_dict()

    config_file = Path(config_path or DEFAULT_CONFIG_FILE)
    if config_file.exists():
        try:
            with open(config_file, "r", encoding="utf-8") as f:
                user_config = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML format in {config_file}: {e}") from e
        if not isinstance(user_config, dict):
            raise ConfigError(f"Config file {config_file} must contain a mapping")
        _merge_configs(data, user_config)
        logger.debug(f"Loaded config from {config_file}")
    elif config_path:
        raise ConfigError(f"Config file not found: {config_file}")

    if os.environ.get(API_KEY_ENV):
        data["provider"]["api_key"] = os.environ[API_KEY_ENV]
    if os.environ.get(DB_PATH_ENV):
        data["storage"]["database"] = os.environ[DB_PATH_ENV]

    try:
        return Settings(
            indexing=IndexingSettings(**data["indexing"]),
            provider=ProviderSettings(**data["provider"]),
            ocr=OcrSettings(**data["ocr"]),
            storage=StorageSettings(**data["storage"]),
        )
    except TypeError as e:
        raise ConfigError(f"Unknown configuration key: {e}") from e


def _merge_configs(default: dict[str, Any], user: dict[str, Any]) -> None:
    """Recursively merge user config into default config."""
    for key, value in user.items():
        if key in default and isinstance(default[key], dict) and isinstance(value, dict):
            _merge_configs(default[key], value)
        else:
            default[key] = value
