"""
Risk configuration model.

A RiskConfig is resolved once per run and never mutated afterwards;
per-run variations are produced with with_overrides().
"""

from collections.abc import Mapping
from dataclasses import asdict, dataclass, fields, replace
from typing import Any

from quantlab.core.constants import (
    DEFAULT_ADX_PERIOD,
    DEFAULT_ATR_MULTIPLIER,
    DEFAULT_ATR_PERIOD,
    DEFAULT_MAX_DRAWDOWN_PCT,
    DEFAULT_RISK_PER_TRADE_PCT,
)
from quantlab.core.exceptions.backtest import ConfigurationError, ValidationError
from quantlab.core.utils.validation import (
    validate_fraction,
    validate_non_negative,
    validate_period,
    validate_positive,
)


@dataclass(frozen=True)
class RiskConfig:
    """Risk policy for one backtest run.

    Optional guards are disabled while their field is None.

    Attributes:
        risk_per_trade_pct: Fraction of equity lost if an entry's stop is hit
        max_drawdown_pct: Drawdown fraction from the high-water mark that halts a run
        atr_multiplier: Stop distance in ATR units
        atr_period: ATR window used for stops and trailing
        trailing_stop: Ratchet stops with price
        adx_threshold: Minimum ADX for new entries (regime filter)
        adx_period: ADX window for the regime filter
        daily_loss_limit_pct: Realized daily loss fraction that blocks new entries
        max_correlation: Maximum return correlation with open positions
        max_sector_exposure_pct: Reserved sector exposure cap (not enforced)
        volume_limit_pct: Maximum fill size as a fraction of bar volume
        use_bollinger_take_profit: Attach a Bollinger band target to entries
    """

    risk_per_trade_pct: float = DEFAULT_RISK_PER_TRADE_PCT
    max_drawdown_pct: float = DEFAULT_MAX_DRAWDOWN_PCT
    atr_multiplier: float = DEFAULT_ATR_MULTIPLIER
    atr_period: int = DEFAULT_ATR_PERIOD
    trailing_stop: bool = True
    adx_threshold: float | None = None
    adx_period: int = DEFAULT_ADX_PERIOD
    daily_loss_limit_pct: float | None = None
    max_correlation: float | None = None
    max_sector_exposure_pct: float | None = None
    volume_limit_pct: float | None = None
    use_bollinger_take_profit: bool = False

    def __post_init__(self) -> None:
        """Validate the configuration, reporting problems as ConfigurationError."""
        try:
            validate_fraction(self.risk_per_trade_pct, "risk_per_trade_pct")
            validate_fraction(self.max_drawdown_pct, "max_drawdown_pct")
            validate_positive(self.atr_multiplier, "atr_multiplier")
            validate_period(self.atr_period, "atr_period")
            validate_period(self.adx_period, "adx_period")
            if self.adx_threshold is not None:
                validate_non_negative(self.adx_threshold, "adx_threshold")
            if self.daily_loss_limit_pct is not None:
                validate_fraction(self.daily_loss_limit_pct, "daily_loss_limit_pct")
            if self.max_correlation is not None:
                validate_fraction(self.max_correlation, "max_correlation", allow_zero=True)
            if self.max_sector_exposure_pct is not None:
                validate_fraction(self.max_sector_exposure_pct, "max_sector_exposure_pct")
            if self.volume_limit_pct is not None:
                validate_fraction(self.volume_limit_pct, "volume_limit_pct")
        except ValidationError as e:
            raise ConfigurationError(f"Invalid risk configuration: {e}") from e

    @classmethod
    def field_names(cls) -> frozenset[str]:
        """Names of all configurable fields."""
        return frozenset(f.name for f in fields(cls))

    def with_overrides(self, **overrides: Any) -> "RiskConfig":
        """Return a new validated config with the given fields replaced.

        Raises:
            ConfigurationError: If an override names an unknown field or is invalid
        """
        unknown = set(overrides) - self.field_names()
        if unknown:
            raise ConfigurationError(f"Unknown risk configuration fields: {sorted(unknown)}")
        return replace(self, **overrides)

    def to_dict(self) -> dict[str, Any]:
        """Convert config to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RiskConfig":
        """Build a config from a mapping, ignoring keys that are not fields."""
        known = cls.field_names()
        return cls(**{key: value for key, value in data.items() if key in known})
