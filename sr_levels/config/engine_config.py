"""
Configuration management for the support/resistance level engine.

Pydantic settings for the three timeframe tiers, proximity tolerance,
touch thresholds, store capacity and retention. Read once at construction
and immutable afterwards.
"""

from typing import Dict, List, Optional, Union, Any, Tuple
from pathlib import Path

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator
from pydantic.types import PositiveInt, PositiveFloat
from pydantic_settings import BaseSettings, SettingsConfigDict

from ..utils.exceptions import ConfigurationException
from ..utils.helpers import validate_timeframe, parse_timeframe_to_timedelta

# Tier value -> config field name
_TIER_FIELDS = {"D1": "daily", "H4": "h4", "H1": "h1"}


class TierSettings(BaseModel):
    """
    Settings for one timeframe tier
    """
    model_config = ConfigDict(frozen=True, extra="forbid")

    timeframe: str = Field(..., description="Bar timeframe code fetched for the tier")
    lookback_bars: PositiveInt = Field(..., description="Bars requested per scan")
    strength_weight: PositiveInt = Field(..., description="Ranking weight per touch")
    consolidation_multiplier: PositiveFloat = Field(
        ...,
        description="Consolidation tolerance as a multiple of the base tolerance"
    )

    @field_validator("timeframe")
    @classmethod
    def validate_timeframe_code(cls, v):
        if not validate_timeframe(v, raise_error=False):
            raise ValueError(f"Unsupported timeframe: {v}")
        return v.lower()

    @property
    def bar_seconds(self) -> int:
        return int(parse_timeframe_to_timedelta(self.timeframe).total_seconds())


class EngineConfig(BaseSettings):
    """
    Main engine configuration

    Values come from keyword arguments, SR_LEVELS_* environment variables
    or a YAML file. Tiers are replaced as whole objects.
    """

    model_config = SettingsConfigDict(
        env_prefix="SR_LEVELS_",
        case_sensitive=False,
        frozen=True,
        extra="forbid",
    )

    # === Tiers ===
    daily: TierSettings = Field(
        default=TierSettings(
            timeframe="1d", lookback_bars=200, strength_weight=5, consolidation_multiplier=2.0
        )
    )
    h4: TierSettings = Field(
        default=TierSettings(
            timeframe="4h", lookback_bars=300, strength_weight=3, consolidation_multiplier=1.5
        )
    )
    h1: TierSettings = Field(
        default=TierSettings(
            timeframe="1h", lookback_bars=400, strength_weight=1, consolidation_multiplier=1.0
        )
    )

    # === Proximity ===
    tick_size: PositiveFloat = Field(default=0.0001, description="Default instrument tick")
    symbol_tick_sizes: Dict[str, PositiveFloat] = Field(
        default_factory=dict,
        description="Per-symbol tick overrides, e.g. {'USDJPY': 0.01}"
    )
    proximity_ticks: PositiveInt = Field(default=10, description="Base tolerance in ticks")

    # === Detection ===
    min_touches: PositiveInt = Field(default=2, description="Touches required for a valid level")
    pivot_window: PositiveInt = Field(default=5, description="Pivot neighbourhood radius")
    max_pivots: PositiveInt = Field(default=100, description="Pivot cap per series")
    min_bars: PositiveInt = Field(default=10, description="Minimum usable bars per tier")
    recency_bars: PositiveInt = Field(
        default=20,
        description="Bars of the tier timeframe within which a touch earns the recency bonus"
    )

    # === Storage ===
    store_capacity: PositiveInt = Field(default=500, description="Levels per tier store")
    retention_seconds: PositiveInt = Field(default=604800, description="Expiry window")
    shared_stores: bool = Field(
        default=False,
        description="Legacy mode: every symbol writes into one store set"
    )

    # === Queries ===
    max_distance_multiplier: PositiveFloat = Field(
        default=50.0,
        description="Default StrongestLevel distance as a multiple of the base tolerance"
    )

    symbols: List[str] = Field(default_factory=list, description="Monitored symbols")

    @field_validator("symbol_tick_sizes")
    @classmethod
    def normalize_tick_keys(cls, v):
        return {k.upper().strip(): t for k, t in v.items()}

    @field_validator("symbols")
    @classmethod
    def normalize_symbols(cls, v):
        return [s.upper().strip() for s in v]

    def tier_settings(self, tier) -> TierSettings:
        """
        Settings for a tier

        Args:
            tier: Tier enum member or its value ("D1", "H4", "H1")
        """
        try:
            return getattr(self, _TIER_FIELDS[getattr(tier, "value", tier)])
        except KeyError:
            raise ConfigurationException(f"Unknown tier: {tier}", config_section="tiers")

    def tick_size_for(self, symbol: Optional[str]) -> float:
        if symbol is None:
            return self.tick_size
        return self.symbol_tick_sizes.get(symbol.upper().strip(), self.tick_size)

    def tolerance_for(self, symbol: Optional[str] = None) -> float:
        """Base proximity tolerance for a symbol, in price units"""
        return self.proximity_ticks * self.tick_size_for(symbol)

    def strength_weights(self) -> Dict[str, int]:
        return {value: getattr(self, name).strength_weight for value, name in _TIER_FIELDS.items()}

    def tier_items(self) -> List[Tuple[str, TierSettings]]:
        """(tier value, settings) pairs in Daily, H4, H1 order"""
        return [(value, getattr(self, name)) for value, name in _TIER_FIELDS.items()]


def build_config(**overrides: Any) -> EngineConfig:
    """
    Build a validated configuration

    Args:
        **overrides: Field values overriding defaults and environment

    Returns:
        EngineConfig instance

    Raises:
        ConfigurationException: If any value is invalid
    """
    try:
        return EngineConfig(**overrides)
    except ValidationError as e:
        raise ConfigurationException(
            f"Invalid engine configuration: {e.error_count()} error(s)",
            config_section="engine",
            invalid_params={
                ".".join(str(p) for p in err["loc"]): err["msg"] for err in e.errors()
            },
            original_exception=e
        )


_config: Optional[EngineConfig] = None


def get_config() -> EngineConfig:
    """
    Get the process-wide default configuration

    Returns:
        EngineConfig instance
    """
    global _config
    if _config is None:
        _config = build_config()
    return _config


def reload_config() -> EngineConfig:
    global _config
    _config = build_config()
    return _config


def load_config_from_file(config_path: Union[str, Path]) -> EngineConfig:
    """
    Load configuration from a YAML file

    Args:
        config_path: Path to the YAML file

    Returns:
        EngineConfig instance

    Raises:
        FileNotFoundError: If the file does not exist
        ConfigurationException: If the file content is invalid
    """
    import yaml

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        config_data = yaml.safe_load(f) or {}

    if not isinstance(config_data, dict):
        raise ConfigurationException(
            f"Config file must contain a mapping: {config_path}",
            config_section="file"
        )

    return build_config(**config_data)


def save_config_to_file(config: EngineConfig, config_path: Union[str, Path]) -> None:
    """
    Save configuration to a YAML file

    Args:
        config: Configuration to save
        config_path: Destination path
    """
    import yaml

    config_path = Path(config_path)
    config_path.parent.mkdir(parents=True, exist_ok=True)

    with open(config_path, 'w', encoding='utf-8') as f:
        yaml.safe_dump(config.model_dump(mode="json"), f, default_flow_style=False, allow_unicode=True)
