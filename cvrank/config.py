"""
Runtime configuration.

Settings come from three layers, later ones winning:

1. Dataclass defaults below.
2. An optional YAML file with ``embedding``, ``ranking``, ``skills`` and
   ``logging`` sections (see ``config.example.yaml``).
3. Environment variables (``CVRANK_*``), with a ``.env`` file loaded via
   python-dotenv first.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import yaml  # type: ignore
from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# YAML section -> {yaml key: Settings attribute}
_YAML_KEYS: Dict[str, Dict[str, str]] = {
    "embedding": {
        "provider": "embedding_provider",
        "model": "embedding_model",
        "openai_model": "openai_embedding_model",
        "max_chars": "max_embed_chars",
        "hashing_dimension": "hashing_dimension",
    },
    "ranking": {"concurrency": "batch_concurrency"},
    "skills": {"file": "skills_file"},
    "logging": {"level": "log_level"},
}

_ENV_KEYS: Dict[str, str] = {
    "CVRANK_EMBEDDING_PROVIDER": "embedding_provider",
    "CVRANK_EMBEDDING_MODEL": "embedding_model",
    "CVRANK_OPENAI_EMBEDDING_MODEL": "openai_embedding_model",
    "CVRANK_MAX_EMBED_CHARS": "max_embed_chars",
    "CVRANK_HASHING_DIMENSION": "hashing_dimension",
    "CVRANK_BATCH_CONCURRENCY": "batch_concurrency",
    "CVRANK_SKILLS_FILE": "skills_file",
    "CVRANK_LOG_LEVEL": "log_level",
    "OPENAI_API_KEY": "openai_api_key",
}

_INT_FIELDS = {"max_embed_chars", "hashing_dimension", "batch_concurrency"}


@dataclass
class Settings:
    """Configuration for the embedding engine and batch ranking."""

    embedding_provider: str = "sentence-transformers"
    embedding_model: str = "all-MiniLM-L6-v2"
    openai_embedding_model: str = "text-embedding-3-small"
    openai_api_key: Optional[str] = None
    max_embed_chars: int = 5000
    hashing_dimension: int = 384
    batch_concurrency: int = 4
    skills_file: Optional[str] = None
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if self.max_embed_chars <= 0:
            raise ValueError("max_embed_chars must be positive")
        if self.batch_concurrency < 1:
            raise ValueError("batch_concurrency must be at least 1")
        self.embedding_provider = self.embedding_provider.lower()

    @classmethod
    def from_mapping(cls, values: Dict[str, Any]) -> "Settings":
        kwargs = {}
        for name, value in values.items():
            kwargs[name] = int(value) if name in _INT_FIELDS and value is not None else value
        return cls(**kwargs)


def _read_yaml(path: Path) -> Dict[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Configuration file not found: {path}")
    with open(path, "r", encoding="utf-8") as f:
        data = yaml.safe_load(f) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Configuration file {path} must contain a mapping")
    return data


def load_settings(path: Optional[str] = None) -> Settings:
    """Load settings from defaults, an optional YAML file and the environment.

    Args:
        path: Optional path to a YAML configuration file.

    Returns:
        A populated :class:`Settings` instance.

    Raises:
        FileNotFoundError: If ``path`` is given but does not exist.
        ValueError: If a value is out of range or the file is malformed.
    """
    load_dotenv()
    values: Dict[str, Any] = {}
    if path:
        config = _read_yaml(Path(path))
        for section, body in config.items():
            keys = _YAML_KEYS.get(section)
            if keys is None or not isinstance(body, dict):
                logger.warning("Ignoring unknown configuration section '%s'", section)
                continue
            for key, value in body.items():
                if key in keys:
                    values[keys[key]] = value
                else:
                    logger.warning("Ignoring unknown key '%s.%s'", section, key)
        logger.info("Loaded configuration from %s", path)
    for env_name, attr in _ENV_KEYS.items():
        env_value = os.getenv(env_name)
        if env_value:
            values[attr] = env_value
    return Settings.from_mapping(values)
