"""Configuration management using Pydantic for validation."""

import math
from pathlib import Path
from typing import Any, Dict, List

import yaml
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SIMILARITY_WEIGHTS: Dict[str, float] = {
    "levenshtein": 0.25,
    "jaro_winkler": 0.35,
    "dice": 0.25,
    "token_sort": 0.15,
}


class MatchingConfig(BaseSettings):
    """Fuzzy matching and deduplication configuration."""

    weights: Dict[str, float] = Field(default=dict(DEFAULT_SIMILARITY_WEIGHTS))
    dedupe_threshold: float = Field(default=90.0, ge=0.0, le=100.0)
    result_match_threshold: float = Field(default=80.0, ge=0.0, le=100.0)
    similar_name_threshold: float = Field(default=85.0, ge=0.0, le=100.0)
    use_fuzzy_matching: bool = True
    candidate_min_similarity: float = Field(default=0.78, ge=0.0, le=1.0)
    adjudication_limit: int = Field(default=50, ge=1)

    @field_validator("weights")
    @classmethod
    def validate_weights(cls, v: Dict[str, float]) -> Dict[str, float]:
        """Validate the weight keys and that they sum to 1.0."""
        unknown = set(v) - set(DEFAULT_SIMILARITY_WEIGHTS)
        if unknown:
            raise ValueError(f"Unknown similarity weights: {sorted(unknown)}")
        merged = {**{key: 0.0 for key in DEFAULT_SIMILARITY_WEIGHTS}, **v}
        total = sum(merged.values())
        if not math.isclose(total, 1.0, abs_tol=1e-6):
            raise ValueError(f"Similarity weights must sum to 1.0, got {total:.4f}")
        return merged


class StorageConfig(BaseSettings):
    """Dedupe link storage configuration."""

    dedupe_links_path: str = "data/dedupe/dedupe_links.json"


class KeywordConfig(BaseSettings):
    """Keyword exclusion configuration."""

    extra_exclusion_keywords: List[str] = []
    use_builtin_keywords: bool = True


class LoggingConfig(BaseSettings):
    """Logging configuration."""

    model_config = SettingsConfigDict(env_prefix="LOG_", case_sensitive=False)

    level: str = "INFO"
    file: str | None = None
    rotation: str = "10 MB"
    retention: int = 3


class Config(BaseSettings):
    """Main configuration class."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="allow",
        env_nested_delimiter="__",
    )

    matching: MatchingConfig = Field(default_factory=MatchingConfig)
    storage: StorageConfig = Field(default_factory=StorageConfig)
    keywords: KeywordConfig = Field(default_factory=KeywordConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    data_path: Path = Field(default=Path("data"))

    @staticmethod
    def _deep_merge_dict(base: Dict[str, Any], overrides: Dict[str, Any]) -> Dict[str, Any]:
        """Deep-merge two dicts (overrides win)."""
        merged: Dict[str, Any] = dict(base)
        for key, value in overrides.items():
            if key in merged and isinstance(merged[key], dict) and isinstance(value, dict):
                merged[key] = Config._deep_merge_dict(merged[key], value)
            else:
                merged[key] = value
        return merged

    @classmethod
    def from_yaml(cls, yaml_path: str | Path = "config/config.yaml") -> "Config":
        """Load configuration from YAML file and environment variables.

        Precedence (highest to lowest):
        1) Environment variables / .env
        2) YAML file
        3) Model defaults

        Args:
            yaml_path: Path to YAML configuration file

        Returns:
            Config instance with loaded settings

        Raises:
            FileNotFoundError: If YAML file doesn't exist
            yaml.YAMLError: If YAML file is invalid
        """
        yaml_path = Path(yaml_path)
        if not yaml_path.exists():
            raise FileNotFoundError(f"Configuration file not found: {yaml_path}")

        with open(yaml_path) as f:
            yaml_config = yaml.safe_load(f) or {}

        if not isinstance(yaml_config, dict):
            raise ValueError(f"YAML config root must be a mapping/dict: {yaml_path}")

        # Only non-default env values are layered over the YAML file.
        env_overrides = cls().model_dump(exclude_defaults=True)
        merged = cls._deep_merge_dict(yaml_config, env_overrides)

        return cls(**merged)

    def validate_config(self) -> None:
        """Validate configuration settings.

        Raises:
            ValueError: If configuration is invalid
        """
        self.data_path.mkdir(parents=True, exist_ok=True)
        Path(self.storage.dedupe_links_path).parent.mkdir(parents=True, exist_ok=True)

        if not self.keywords.use_builtin_keywords and not self.keywords.extra_exclusion_keywords:
            raise ValueError(
                "Keyword exclusion needs builtin keywords or extra_exclusion_keywords"
            )


# Global configuration instance
_config: Config | None = None


def get_config() -> Config:
    """Get or create global configuration instance.

    Returns:
        Global Config instance

    Raises:
        RuntimeError: If configuration hasn't been initialized
    """
    global _config
    if _config is None:
        raise RuntimeError("Configuration not initialized. Call load_config() first.")
    return _config


def load_config(yaml_path: str | Path = "config/config.yaml") -> Config:
    """Load and validate configuration.

    Args:
        yaml_path: Path to YAML configuration file

    Returns:
        Loaded and validated Config instance
    """
    global _config
    _config = Config.from_yaml(yaml_path)
    _config.validate_config()
    return _config


def reset_config() -> None:
    """Reset global configuration (mainly for testing)."""
    global _config
    _config = None
