"""
Custom exception hierarchy for the backtesting engine.

This module defines domain-specific exceptions for better error handling.
Economically invalid trades and guard rejections are not errors and never
raise; these exceptions cover broken inputs, configuration and storage.
"""


class BacktestException(Exception):
    """Base exception for all backtesting-related errors."""

    pass


class ValidationError(BacktestException):
    """Raised when input validation fails."""

    pass


class DataError(BacktestException):
    """Raised when data access or processing fails."""

    pass


class InsufficientDataError(DataError):
    """Raised when a run or window has no candles to replay."""

    def __init__(self, message: str = "No candles provided for backtest"):
        super().__init__(message)


class StrategyError(BacktestException):
    """Raised when strategy execution fails."""

    pass


class ConfigurationError(BacktestException):
    """Raised when configuration is invalid."""

    pass


class PortfolioError(BacktestException):
    """Raised when portfolio operations fail."""

    pass


class PositionNotFoundError(PortfolioError):
    """Raised when trying to operate on a non-existent position."""

    def __init__(self, symbol: str):
        self.symbol = symbol
        super().__init__(f"Position not found for symbol: {symbol}")


class StorageError(BacktestException):
    """Raised when the ledger store cannot read or write state."""

    def __init__(self, operation: str, location: str, reason: str):
        self.operation = operation
        self.location = location
        self.reason = reason
        super().__init__(f"Ledger store {operation} failed for {location}: {reason}")
