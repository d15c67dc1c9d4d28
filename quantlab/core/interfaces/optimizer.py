"""
Parameter search interface definition.
"""

from abc import ABC, abstractmethod
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from quantlab.optimization.parameters import OptimizationRun

ParameterSet = dict[str, float]


class IOptimizer(ABC):
    """Abstract interface for parameter search methods."""

    @abstractmethod
    def get_next_params(self, history: Sequence["OptimizationRun"]) -> ParameterSet | None:
        """Next parameter set to evaluate, None once the search is exhausted."""
        pass
