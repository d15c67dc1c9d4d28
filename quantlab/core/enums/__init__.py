"""
Core enumerations for the backtesting engine.

This module provides centralized enumerations for domain concepts
like signal actions, exit reasons and search methods.
"""

from .trading import ExitReason, ParameterKind, SearchMethod, SignalAction

__all__ = ["SignalAction", "ExitReason", "SearchMethod", "ParameterKind"]
