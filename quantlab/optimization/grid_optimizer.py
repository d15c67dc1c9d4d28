"""
Grid search optimizer.
"""

from collections.abc import Mapping, Sequence

from quantlab.core.interfaces.optimizer import IOptimizer, ParameterSet

from .parameters import OptimizationRun, ParameterRange

_GRID_TOLERANCE = 1e-9


def grid_values(parameter_range: ParameterRange) -> list[float]:
    """
    Enumerate the grid points of one range, bounds included.

    Examples:
        >>> grid_values(ParameterRange(10, 20, 5, "integer"))
        [10, 15, 20]
    """
    step = parameter_range.resolved_step()
    values: list[float] = []
    k = 0
    while True:
        value = parameter_range.min + k * step
        if value > parameter_range.max + _GRID_TOLERANCE:
            break
        values.append(round(value, 10))
        k += 1

    if parameter_range.is_integer:
        return sorted({int(round(value)) for value in values})
    return values


class GridOptimizer(IOptimizer):
    """
    Exhaustive enumeration of the parameter grid.

    Combinations are produced like an odometer: the last parameter varies
    fastest. The search ends when every combination has been returned.
    """

    def __init__(self, parameters: Mapping[str, ParameterRange]):
        self._names = list(parameters)
        self._grids = [grid_values(parameters[name]) for name in self._names]
        self._indices = [0] * len(self._names)
        self._exhausted = any(not grid for grid in self._grids)

    @property
    def total_combinations(self) -> int:
        total = 1
        for grid in self._grids:
            total *= len(grid)
        return total

    def get_next_params(self, history: Sequence[OptimizationRun]) -> ParameterSet | None:
        if self._exhausted:
            return None

        params = {
            name: grid[index]
            for name, grid, index in zip(self._names, self._grids, self._indices, strict=True)
        }
        self._advance()
        return params

    def _advance(self) -> None:
        for position in reversed(range(len(self._indices))):
            self._indices[position] += 1
            if self._indices[position] < len(self._grids[position]):
                return
            self._indices[position] = 0
        self._exhausted = True
