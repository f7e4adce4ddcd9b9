"""Configuration management for Grocery Resolver."""

import tomllib
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field, field_validator, model_validator


class MatchWeights(BaseModel):
    """Weight of each matching signal. Weights must add up to 100."""

    token_overlap: float = Field(default=35, ge=0)
    category_match: float = Field(default=20, ge=0)
    price_proximity: float = Field(default=15, ge=0)
    learned_mapping: float = Field(default=20, ge=0)
    fuzzy_similarity: float = Field(default=10, ge=0)

    @model_validator(mode="after")
    def validate_total(self) -> "MatchWeights":
        total = (
            self.token_overlap
            + self.category_match
            + self.price_proximity
            + self.learned_mapping
            + self.fuzzy_similarity
        )
        if abs(total - 100) > 1e-6:
            raise ValueError(f"Match weights must sum to 100, got {total:g}")
        return self


class MatchConfig(BaseModel):
    """Thresholds and weights used by the item matcher."""

    high_confidence_threshold: float = Field(default=70, ge=0, le=100)
    medium_confidence_threshold: float = Field(default=45, ge=0, le=100)
    price_proximity_percent: float = Field(default=25, gt=0)
    duplicate_name_bonus: float = Field(default=15, ge=0)
    weights: MatchWeights = Field(default_factory=MatchWeights)

    @model_validator(mode="after")
    def validate_thresholds(self) -> "MatchConfig":
        if self.medium_confidence_threshold > self.high_confidence_threshold:
            raise ValueError("medium_confidence_threshold cannot exceed high_confidence_threshold")
        return self


class PricingConfig(BaseModel):
    """Settings for the price cascade."""

    default_region: str = "UK"
    recency_window_days: float = Field(default=90, gt=0)
    ai_confidence: float = Field(default=0.5, ge=0, le=1)

    @field_validator("default_region")
    @classmethod
    def validate_region(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("default_region cannot be empty")
        return v.strip()


@dataclass
class DataConfig:
    """Data storage configuration."""

    storage_dir: Path
    backend: str = "json"


@dataclass
class MappingsConfig:
    """Learned mapping lookup configuration."""

    scan_limit: int = 100


@dataclass
class Config:
    """Complete application configuration."""

    data: DataConfig
    matching: MatchConfig
    mappings: MappingsConfig
    pricing: PricingConfig
    stores: dict[str, Any] = field(default_factory=dict)


class ConfigManager:
    """Manages application configuration from TOML files."""

    def __init__(self, config_path: Path | None = None):
        """Initialize configuration manager.

        Args:
            config_path: Optional explicit path to config file.
                        If not provided, searches standard locations.

        Raises:
            pydantic.ValidationError: If matching or pricing values are invalid
        """
        self.config_path = config_path or self._find_config()
        self._config = self._load_config()

    @property
    def data(self) -> DataConfig:
        """Get data configuration."""
        return self._config.data

    @property
    def matching(self) -> MatchConfig:
        """Get matcher configuration."""
        return self._config.matching

    @property
    def mappings(self) -> MappingsConfig:
        """Get learned mapping configuration."""
        return self._config.mappings

    @property
    def pricing(self) -> PricingConfig:
        """Get price cascade configuration."""
        return self._config.pricing

    @property
    def stores(self) -> dict[str, Any]:
        """Get stores configuration."""
        return self._config.stores

    def _find_config(self) -> Path:
        """Find config file in standard locations."""
        locations = [
            Path.cwd() / "config.toml",
            Path.home() / ".config" / "grocery-resolver" / "config.toml",
            Path.home() / ".grocery-resolver" / "config.toml",
        ]

        for loc in locations:
            if loc.exists():
                return loc

        return Path.home() / ".config" / "grocery-resolver" / "config.toml"

    def _load_config(self) -> Config:
        """Load configuration from TOML file."""
        if not self.config_path.exists():
            return self._default_config()

        with open(self.config_path, "rb") as f:
            data = tomllib.load(f)

        return Config(
            data=DataConfig(
                storage_dir=Path(
                    data.get("data", {}).get("storage_dir", "~/grocery-resolver/data")
                ).expanduser(),
                backend=data.get("data", {}).get("backend", "json"),
            ),
            matching=MatchConfig.model_validate(data.get("matching", {})),
            mappings=MappingsConfig(
                scan_limit=data.get("mappings", {}).get("scan_limit", 100),
            ),
            pricing=PricingConfig.model_validate(data.get("pricing", {})),
            stores=data.get("stores", {}),
        )

    def _default_config(self) -> Config:
        """Return default configuration."""
        return Config(
            data=DataConfig(storage_dir=Path.home() / "grocery-resolver" / "data"),
            matching=MatchConfig(),
            mappings=MappingsConfig(),
            pricing=PricingConfig(),
            stores={},
        )

    def get(self, key_path: str, default: Any = None) -> Any:
        """Get config value by dot-notation path.

        Args:
            key_path: Dot-separated path like 'matching.weights.token_overlap'
            default: Default value if path not found

        Returns:
            Configuration value or default
        """
        keys = key_path.split(".")
        value: Any = self._config

        for key in keys:
            if hasattr(value, key):
                value = getattr(value, key)
            elif isinstance(value, dict):
                value = value.get(key)
                if value is None:
                    return default
            else:
                return default

        return value if value is not None else default
