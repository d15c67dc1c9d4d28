"""
Core constants and defaults.

Defines engine-wide defaults for risk policy, indicator windows and
numerical tolerances so every component resolves them the same way.
"""

# Calendar
TRADING_DAYS_PER_YEAR = 252  # Annualization factor for daily equity curves
SECONDS_PER_DAY = 86400

# Portfolio Defaults
DEFAULT_INITIAL_CAPITAL = 10000.0
DEFAULT_SYMBOL = "ASSET"  # Symbol used when a single series is replayed

# Risk Defaults
DEFAULT_RISK_PER_TRADE_PCT = 0.01  # 1% of equity at risk per entry
DEFAULT_MAX_DRAWDOWN_PCT = 0.1  # 10% drawdown from high-water mark halts a run
DEFAULT_ATR_MULTIPLIER = 2.0
DEFAULT_ATR_PERIOD = 14
DEFAULT_ADX_PERIOD = 14
DEFAULT_ADX_THRESHOLD = 25.0
DEFAULT_MAX_CORRELATION = 0.7
CORRELATION_LOOKBACK = 30  # Number of returns compared by the correlation guard

# Bollinger Bands
BOLLINGER_PERIOD = 20
BOLLINGER_STD_MULTIPLIER = 2.0

# Numerical Tolerances
STDDEV_EPSILON = 1e-9  # Standard deviations below this are treated as zero
QUANTITY_EPSILON = 1e-9  # Residual position sizes below this are closed
