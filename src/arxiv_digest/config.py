"""Configuration for the arXiv digest pipeline.

Every concern has its own settings class with an environment prefix, e.g.
``ARXIV_DIGEST_LLM_MODEL`` or ``ARXIV_DIGEST_API_TIMEOUT``. A YAML or JSON
file named by ``config_file`` / ``ARXIV_DIGEST_CONFIG_FILE`` supplies values
that were not passed explicitly.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, List, Literal, Optional

import yaml
from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigurationError

CONFIG_FILE_ENV = "ARXIV_DIGEST_CONFIG_FILE"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class LoggingConfig(BaseSettings):
    """Logging settings."""

    model_config = SettingsConfigDict(env_prefix="ARXIV_DIGEST_LOG_")

    level: str = Field(default="INFO", description="Root log level")
    format: Literal["json", "text", "colored"] = Field(default="colored", description="Console format")
    file_path: Optional[str] = Field(default=None, description="Rotating JSON log file")
    max_file_size: int = Field(default=10 * 1024 * 1024, description="Bytes before the log file rotates")
    backup_count: int = Field(default=5, description="Rotated log files to keep")

    @field_validator('level')
    @classmethod
    def validate_log_level(cls, v):
        level = v.upper()
        if level not in LOG_LEVELS:
            raise ValueError(f"Invalid log level: {v}. Must be one of {', '.join(LOG_LEVELS)}")
        return level


class ArxivAPIConfig(BaseSettings):
    """arXiv endpoints used by the metadata fetcher."""

    model_config = SettingsConfigDict(env_prefix="ARXIV_DIGEST_API_")

    base_url: str = Field(default="https://export.arxiv.org/api/query", description="Atom API query endpoint")
    abs_base_url: str = Field(default="https://arxiv.org/abs", description="Abstract page prefix")
    user_agent: str = Field(default="arxiv-digest/0.1.0", description="User-Agent header")
    timeout: int = Field(default=30, ge=1, le=300, description="Request timeout in seconds")

    @field_validator('abs_base_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip('/')


class LLMConfig(BaseSettings):
    """Gemini generateContent settings."""

    model_config = SettingsConfigDict(env_prefix="ARXIV_DIGEST_LLM_", populate_by_name=True)

    # GOOGLE_API_KEY / GEMINI_API_KEY are what Google's own tooling reads
    api_key: Optional[SecretStr] = Field(
        default=None,
        validation_alias=AliasChoices("ARXIV_DIGEST_LLM_API_KEY", "GOOGLE_API_KEY", "GEMINI_API_KEY"),
    )
    model: str = Field(default="gemini-2.5-flash", description="Generation model")
    base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Generative Language API root",
    )
    timeout: int = Field(default=120, ge=1, le=600, description="Generation timeout in seconds")

    @field_validator('base_url')
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip('/')


class ServerConfig(BaseSettings):
    """MCP server identity."""

    model_config = SettingsConfigDict(env_prefix="ARXIV_DIGEST_SERVER_")

    name: str = "arxiv-digest"
    version: str = "0.1.0"
    description: str = "Structured, practitioner-friendly summaries of arXiv papers"
    debug: bool = False


class SecurityConfig(BaseSettings):
    """Outbound domain allow-list and inbound input limits."""

    model_config = SettingsConfigDict(env_prefix="ARXIV_DIGEST_SECURITY_")

    allowed_domains: List[str] = Field(
        default=["arxiv.org", "export.arxiv.org", "generativelanguage.googleapis.com"],
        description="Hosts (and their subdomains) the pipeline may call",
    )
    sanitize_inputs: bool = True
    max_input_length: int = Field(default=2048, ge=16, description="Longest accepted paper reference")


def load_config_file(path: str) -> Dict[str, Any]:
    """
    Read a YAML or JSON settings file.

    Raises:
        ConfigurationError: For other extensions and unreadable or malformed files
    """
    config_path = Path(path)
    suffix = config_path.suffix.lower()
    if suffix not in ('.yaml', '.yml', '.json'):
        raise ConfigurationError(f"Unsupported config file format: {path}", config_key="config_file")

    try:
        with config_path.open('r', encoding='utf-8') as f:
            data = json.load(f) if suffix == '.json' else yaml.safe_load(f)
    except (OSError, ValueError, yaml.YAMLError) as e:
        raise ConfigurationError(f"Error loading config file {path}: {e}", config_key="config_file")

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigurationError(f"Config file {path} must contain a mapping", config_key="config_file")
    return data


class Settings(BaseSettings):
    """Top-level settings passed into the pipeline."""

    model_config = SettingsConfigDict(env_prefix="ARXIV_DIGEST_", case_sensitive=False)

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    arxiv_api: ArxivAPIConfig = Field(default_factory=ArxivAPIConfig)
    llm: LLMConfig = Field(default_factory=LLMConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    security: SecurityConfig = Field(default_factory=SecurityConfig)

    environment: Literal["development", "production", "testing"] = "development"
    config_file: Optional[str] = None

    def __init__(self, **kwargs):
        config_file = kwargs.get('config_file') or os.getenv(CONFIG_FILE_ENV)
        if config_file and Path(config_file).exists():
            for key, value in load_config_file(config_file).items():
                kwargs.setdefault(key, value)
        super().__init__(**kwargs)


_settings: Optional[Settings] = None


def get_settings(reload: bool = False) -> Settings:
    """Return the process-wide settings, building them on first use."""
    global _settings
    if _settings is None or reload:
        try:
            _settings = Settings()
        except ConfigurationError:
            raise
        except Exception as e:
            raise ConfigurationError(f"Failed to load configuration: {e}")
    return _settings


def reset_settings() -> None:
    """Drop the cached settings so the next ``get_settings`` re-reads the environment."""
    global _settings
    _settings = None


def validate_configuration(settings: Optional[Settings] = None) -> List[str]:
    """
    Check a configuration for problems that only show up at request time.

    Returns:
        Human-readable problems; empty when the configuration is usable
    """
    settings = settings or get_settings()
    problems = []

    api_key = settings.llm.api_key
    if api_key is None or not api_key.get_secret_value():
        problems.append("No LLM API key configured (set GOOGLE_API_KEY or ARXIV_DIGEST_LLM_API_KEY)")

    if not settings.security.allowed_domains:
        problems.append("At least one allowed domain must be specified")

    for url in (settings.arxiv_api.base_url, settings.arxiv_api.abs_base_url, settings.llm.base_url):
        if not url.startswith(('http://', 'https://')):
            problems.append(f"Not an absolute URL: {url}")

    return problems


get_config = get_settings
