"""
Random search optimizer.
"""

from collections.abc import Mapping, Sequence

import numpy as np

from quantlab.core.exceptions.backtest import ConfigurationError
from quantlab.core.interfaces.optimizer import IOptimizer, ParameterSet

from .parameters import OptimizationRun, ParameterRange


class RandomOptimizer(IOptimizer):
    """
    Uniform random sampling of every parameter range.

    A fixed seed reproduces the same sequence of parameter sets.
    """

    def __init__(
        self,
        parameters: Mapping[str, ParameterRange],
        max_iterations: int,
        seed: int | None = None,
    ):
        if max_iterations <= 0:
            raise ConfigurationError(f"max_iterations must be positive, got {max_iterations}")
        self.parameters = dict(parameters)
        self.max_iterations = max_iterations
        self._rng = np.random.default_rng(seed)
        self._issued = 0

    def get_next_params(self, history: Sequence[OptimizationRun]) -> ParameterSet | None:
        if self._issued >= self.max_iterations:
            return None
        self._issued += 1

        params: ParameterSet = {}
        for name, parameter_range in self.parameters.items():
            value = float(self._rng.uniform(parameter_range.min, parameter_range.max))
            params[name] = int(round(value)) if parameter_range.is_integer else round(value, 4)
        return params
