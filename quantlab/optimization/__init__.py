"""
Parameter search: grid, random and TPE optimizers, the optimization runner
and walk-forward testing.
"""

from .factory import create_optimizer
from .grid_optimizer import GridOptimizer, grid_values
from .parameters import (
    OptimizationConfig,
    OptimizationRun,
    ParameterRange,
    WalkForwardConfig,
    WalkForwardWindow,
)
from .random_optimizer import RandomOptimizer
from .runner import OptimizationRunner, best_run
from .tpe_optimizer import TPEOptimizer
from .walk_forward import WalkForwardRunner, build_windows

__all__ = [
    "GridOptimizer",
    "OptimizationConfig",
    "OptimizationRun",
    "OptimizationRunner",
    "ParameterRange",
    "RandomOptimizer",
    "TPEOptimizer",
    "WalkForwardConfig",
    "WalkForwardRunner",
    "WalkForwardWindow",
    "best_run",
    "build_windows",
    "create_optimizer",
    "grid_values",
]
