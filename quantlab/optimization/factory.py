"""
Optimizer factory.
"""

from quantlab.core.enums import SearchMethod
from quantlab.core.exceptions.backtest import ConfigurationError
from quantlab.core.interfaces.optimizer import IOptimizer

from .grid_optimizer import GridOptimizer
from .parameters import OptimizationConfig
from .random_optimizer import RandomOptimizer
from .tpe_optimizer import DEFAULT_TPE_ITERATIONS, TPEOptimizer


def create_optimizer(config: OptimizationConfig) -> IOptimizer:
    """Build the optimizer selected by config.search_method."""
    if config.search_method == SearchMethod.GRID:
        return GridOptimizer(config.parameters)
    if config.search_method == SearchMethod.RANDOM:
        return RandomOptimizer(config.parameters, config.max_iterations or 0, config.seed)
    if config.search_method == SearchMethod.TPE:
        return TPEOptimizer(
            config.parameters, config.max_iterations or DEFAULT_TPE_ITERATIONS, config.seed
        )
    raise ConfigurationError(f"Unsupported search method: {config.search_method}")
