"""
Tree-structured Parzen Estimator optimizer.

Bayesian search in two phases. A uniform random warm-up seeds the model,
then each proposal perturbs a parameter set drawn from the best runs so far
and keeps the candidate that maximizes the ratio of the good-run density
l(x) to the bad-run density g(x). Both densities are Gaussian kernel
estimates with a bandwidth of a tenth of each parameter's range.
"""

import math
from collections.abc import Mapping, Sequence

import numpy as np

from quantlab.core.constants import STDDEV_EPSILON
from quantlab.core.exceptions.backtest import ConfigurationError
from quantlab.core.interfaces.optimizer import IOptimizer, ParameterSet

from .parameters import OptimizationRun, ParameterRange

DEFAULT_TPE_ITERATIONS = 50
GOOD_QUANTILE = 0.15  # Share of runs treated as "good" when splitting history
CANDIDATES_PER_PROPOSAL = 100
MIN_WARMUP_ITERATIONS = 5
WARMUP_FRACTION = 0.2
BANDWIDTH_FRACTION = 0.1
DENSITY_FLOOR = 1e-10


def _kde_density(x: float, observations: Sequence[float], bandwidth: float) -> float:
    """Mean Gaussian kernel density of x; 1 when there is nothing to compare."""
    if len(observations) == 0:
        return 1.0
    sigma = max(bandwidth, STDDEV_EPSILON)
    points = np.asarray(observations, dtype=float)
    kernels = np.exp(-((x - points) ** 2) / (2 * sigma**2)) / (sigma * math.sqrt(2 * math.pi))
    return float(kernels.mean())


class TPEOptimizer(IOptimizer):
    """
    Bayesian parameter search guided by the evaluated run history.

    The first max(5, 20% of the budget) parameter sets are sampled
    uniformly. Later proposals are drawn from the top 15% of runs by
    objective value. A fixed seed together with the same history
    reproduces the same proposals.
    """

    def __init__(
        self,
        parameters: Mapping[str, ParameterRange],
        max_iterations: int = DEFAULT_TPE_ITERATIONS,
        seed: int | None = None,
        gamma: float = GOOD_QUANTILE,
        n_candidates: int = CANDIDATES_PER_PROPOSAL,
    ):
        if max_iterations <= 0:
            raise ConfigurationError(f"max_iterations must be positive, got {max_iterations}")
        if not 0 < gamma <= 1:
            raise ConfigurationError(f"gamma must be in (0, 1], got {gamma}")
        if n_candidates <= 0:
            raise ConfigurationError(f"n_candidates must be positive, got {n_candidates}")
        self.parameters = dict(parameters)
        self.max_iterations = max_iterations
        self.gamma = gamma
        self.n_candidates = n_candidates
        self.warmup_iterations = max(MIN_WARMUP_ITERATIONS, int(max_iterations * WARMUP_FRACTION))
        self._rng = np.random.default_rng(seed)
        self._issued = 0

    def get_next_params(self, history: Sequence[OptimizationRun]) -> ParameterSet | None:
        if self._issued >= self.max_iterations:
            return None
        self._issued += 1

        if self._issued <= self.warmup_iterations or not history:
            return self._sample_uniform()
        return self._propose(history)

    def split_history(
        self, history: Sequence[OptimizationRun]
    ) -> tuple[list[OptimizationRun], list[OptimizationRun]]:
        """Split runs into (good, bad) by objective value, best first.

        NaN objectives rank as 0. At least one run is always good.
        """
        ranked = sorted(history, key=lambda run: -self._score(run))
        split = max(1, math.ceil(len(ranked) * self.gamma))
        return ranked[:split], ranked[split:]

    def expected_improvement(
        self,
        candidate: ParameterSet,
        good: Sequence[OptimizationRun],
        bad: Sequence[OptimizationRun],
    ) -> float:
        """log l(x) - log g(x), summed over parameters."""
        score = 0.0
        for name, parameter_range in self.parameters.items():
            bandwidth = self._bandwidth(parameter_range)
            value = candidate[name]
            good_values = [run.parameters[name] for run in good]
            bad_values = [run.parameters[name] for run in bad]
            score += math.log(_kde_density(value, good_values, bandwidth) + DENSITY_FLOOR)
            score -= math.log(_kde_density(value, bad_values, bandwidth) + DENSITY_FLOOR)
        return score

    def _propose(self, history: Sequence[OptimizationRun]) -> ParameterSet:
        good, bad = self.split_history(history)
        best_candidate: ParameterSet | None = None
        best_score = -math.inf
        for _ in range(self.n_candidates):
            candidate = self._sample_near(good)
            score = self.expected_improvement(candidate, good, bad)
            if score > best_score:
                best_score = score
                best_candidate = candidate
        return best_candidate if best_candidate is not None else self._sample_uniform()

    def _sample_uniform(self) -> ParameterSet:
        params: ParameterSet = {}
        for name, parameter_range in self.parameters.items():
            value = float(self._rng.uniform(parameter_range.min, parameter_range.max))
            params[name] = self._normalize(value, parameter_range)
        return params

    def _sample_near(self, runs: Sequence[OptimizationRun]) -> ParameterSet:
        """Perturb a randomly chosen run with Gaussian noise, clipped to range."""
        base = runs[int(self._rng.integers(len(runs)))]
        params: ParameterSet = {}
        for name, parameter_range in self.parameters.items():
            value = base.parameters[name] + self._rng.normal() * self._bandwidth(parameter_range)
            value = min(max(value, parameter_range.min), parameter_range.max)
            params[name] = self._normalize(value, parameter_range)
        return params

    @staticmethod
    def _bandwidth(parameter_range: ParameterRange) -> float:
        return (parameter_range.max - parameter_range.min) * BANDWIDTH_FRACTION

    @staticmethod
    def _normalize(value: float, parameter_range: ParameterRange) -> float:
        return int(round(value)) if parameter_range.is_integer else round(float(value), 4)

    @staticmethod
    def _score(run: OptimizationRun) -> float:
        return 0.0 if math.isnan(run.objective_value) else run.objective_value
