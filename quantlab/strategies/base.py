"""
Shared strategy configuration helpers.
"""

from collections.abc import Mapping
from dataclasses import dataclass, fields
from typing import Any, Self

from quantlab.core.exceptions.backtest import ConfigurationError, ValidationError
from quantlab.core.utils.validation import validate_period


@dataclass(frozen=True)
class StrategyConfig:
    """Base class for frozen strategy parameter sets.

    Subclasses declare their parameters as typed fields; from_params()
    builds an instance from an optimizer's parameter mapping.
    """

    @classmethod
    def from_params(cls, params: Mapping[str, Any] | None = None) -> Self:
        """
        Build a config from a parameter mapping.

        Unknown keys are ignored (they usually belong to the risk config).
        Integer fields accept floats and are rounded, since optimizers
        sample every parameter as a number.

        Raises:
            ConfigurationError: If a value cannot be converted
        """
        values: dict[str, Any] = {}
        for config_field in fields(cls):
            if not params or config_field.name not in params:
                continue
            raw = params[config_field.name]
            try:
                values[config_field.name] = (
                    int(round(raw)) if config_field.type is int else float(raw)
                )
            except (TypeError, ValueError) as e:
                raise ConfigurationError(
                    f"Invalid value for {cls.__name__}.{config_field.name}: {raw!r}"
                ) from e
        return cls(**values)

    def _validate_periods(self, *names: str) -> None:
        try:
            for name in names:
                validate_period(getattr(self, name), name)
        except ValidationError as e:
            raise ConfigurationError(f"Invalid {type(self).__name__}: {e}") from e
