"""
Unit tests for parameter search configuration and optimizers.
"""

from datetime import datetime

import pytest

from quantlab.core.enums import ParameterKind, SearchMethod
from quantlab.core.exceptions.backtest import ConfigurationError
from quantlab.core.models.backtest import BacktestMetrics
from quantlab.optimization import (
    GridOptimizer,
    OptimizationConfig,
    OptimizationRun,
    ParameterRange,
    RandomOptimizer,
    TPEOptimizer,
    WalkForwardConfig,
    best_run,
    build_windows,
    create_optimizer,
    grid_values,
)

START = datetime(2023, 1, 1)
END = datetime(2023, 1, 31)


def make_config(**overrides) -> OptimizationConfig:
    values = {
        "strategy_name": "RSI Reversal",
        "assets": ("AAA",),
        "start": START,
        "end": END,
        "parameters": {"rsi_period": ParameterRange(10, 20, 5, ParameterKind.INTEGER)},
    }
    values.update(overrides)
    return OptimizationConfig(**values)


def drain(optimizer) -> list[dict]:
    produced = []
    while (params := optimizer.get_next_params([])) is not None:
        produced.append(params)
    return produced


class TestParameterRange:
    """Test suite for ParameterRange and grid enumeration."""

    def test_should_enumerate_integer_grid(self) -> None:
        """Test inclusive integer bounds."""
        assert grid_values(ParameterRange(10, 20, 5, "integer")) == [10, 15, 20]

    def test_should_enumerate_float_grid_without_drift(self) -> None:
        """Test that accumulated float error does not drop the upper bound."""
        assert grid_values(ParameterRange(0.1, 0.3, 0.1)) == [0.1, 0.2, 0.3]

    def test_should_default_step_to_tenth_of_range(self) -> None:
        """Test the implicit step."""
        values = grid_values(ParameterRange(0.0, 1.0))

        assert len(values) == 11
        assert values[-1] == pytest.approx(1.0)

    def test_should_handle_degenerate_range(self) -> None:
        """Test min equal to max."""
        assert grid_values(ParameterRange(5, 5)) == [5]

    def test_should_deduplicate_rounded_integers(self) -> None:
        """Test fractional steps over an integer parameter."""
        assert grid_values(ParameterRange(1, 2, 0.4, "integer")) == [1, 2]

    @pytest.mark.parametrize(
        ("low", "high", "step"),
        [(10, 5, None), (1, 5, 0), (1, 5, -1)],
    )
    def test_should_reject_invalid_ranges(self, low, high, step) -> None:
        """Test inverted bounds and non-positive steps."""
        with pytest.raises(ConfigurationError):
            ParameterRange(low, high, step)


class TestOptimizationConfig:
    """Test suite for OptimizationConfig."""

    def test_should_normalize_inputs(self) -> None:
        """Test list assets and string search methods."""
        config = make_config(assets=["AAA", "BBB"], search_method="random", max_iterations=5)

        assert config.assets == ("AAA", "BBB")
        assert config.search_method is SearchMethod.RANDOM

    @pytest.mark.parametrize(
        ("overrides", "message"),
        [
            ({"assets": ()}, "At least one asset"),
            ({"start": END, "end": START}, "must be before"),
            ({"objective": "profit"}, "Unknown objective"),
            ({"search_method": SearchMethod.RANDOM}, "requires max_iterations"),
            ({"max_iterations": -1}, "max_iterations must be positive"),
            ({"initial_capital": 0}, "initial_capital"),
        ],
    )
    def test_should_reject_invalid_config(self, overrides: dict, message: str) -> None:
        """Test configuration validation."""
        with pytest.raises(ConfigurationError, match=message):
            make_config(**overrides)

    def test_should_split_strategy_and_risk_parameters(self) -> None:
        """Test routing by RiskConfig field names."""
        strategy_params, risk_overrides = make_config().split_parameters(
            {"rsi_period": 14, "atr_multiplier": 3.0, "max_drawdown_pct": 0.2}
        )

        assert strategy_params == {"rsi_period": 14}
        assert risk_overrides == {"atr_multiplier": 3.0, "max_drawdown_pct": 0.2}

    def test_should_copy_with_new_window(self) -> None:
        """Test with_window keeps everything but the dates."""
        config = make_config(objective="total_return_pct")

        moved = config.with_window(datetime(2023, 2, 1), datetime(2023, 3, 1))

        assert moved.start == datetime(2023, 2, 1)
        assert moved.objective == "total_return_pct"
        assert moved.parameters == config.parameters


class TestGridOptimizer:
    """Test suite for GridOptimizer."""

    def test_should_enumerate_like_odometer(self) -> None:
        """Test that the last parameter varies fastest."""
        optimizer = GridOptimizer(
            {
                "a": ParameterRange(1, 2, 1, "integer"),
                "b": ParameterRange(10, 20, 10, "integer"),
            }
        )

        assert optimizer.total_combinations == 4
        assert drain(optimizer) == [
            {"a": 1, "b": 10},
            {"a": 1, "b": 20},
            {"a": 2, "b": 10},
            {"a": 2, "b": 20},
        ]

    def test_should_stay_exhausted(self) -> None:
        """Test repeated calls after exhaustion."""
        optimizer = GridOptimizer({"a": ParameterRange(1, 1)})

        drain(optimizer)

        assert optimizer.get_next_params([]) is None

    def test_should_yield_single_empty_set_without_parameters(self) -> None:
        """Test a search with nothing to vary."""
        assert drain(GridOptimizer({})) == [{}]


class TestRandomOptimizer:
    """Test suite for RandomOptimizer."""

    @pytest.fixture
    def parameters(self) -> dict[str, ParameterRange]:
        return {
            "rsi_period": ParameterRange(5, 30, kind="integer"),
            "buy_threshold": ParameterRange(10.0, 40.0),
        }

    def test_should_issue_max_iterations(self, parameters) -> None:
        """Test the iteration budget."""
        assert len(drain(RandomOptimizer(parameters, 7, seed=1))) == 7

    def test_should_sample_within_bounds(self, parameters) -> None:
        """Test range and integer rounding."""
        for params in drain(RandomOptimizer(parameters, 50, seed=3)):
            assert isinstance(params["rsi_period"], int)
            assert 5 <= params["rsi_period"] <= 30
            assert 10.0 <= params["buy_threshold"] <= 40.0

    def test_should_reproduce_sequence_with_seed(self, parameters) -> None:
        """Test deterministic sampling."""
        first = drain(RandomOptimizer(parameters, 5, seed=42))
        second = drain(RandomOptimizer(parameters, 5, seed=42))

        assert first == second

    def test_should_reject_non_positive_budget(self, parameters) -> None:
        """Test max_iterations validation."""
        with pytest.raises(ConfigurationError):
            RandomOptimizer(parameters, 0)


def scored_runs(values: list[float]) -> list[OptimizationRun]:
    """Runs over parameter x whose objective equals x."""
    return [OptimizationRun({"x": value}, BacktestMetrics(), float(value)) for value in values]


def propose(optimizer, history, count: int) -> list[dict]:
    return [optimizer.get_next_params(history) for _ in range(count)]


class TestTPEOptimizer:
    """Test suite for TPEOptimizer."""

    @pytest.fixture
    def parameters(self) -> dict[str, ParameterRange]:
        return {"x": ParameterRange(0.0, 100.0)}

    def test_should_size_warmup_from_budget(self, parameters) -> None:
        """Test the random warm-up of max(5, 20% of iterations)."""
        assert TPEOptimizer(parameters, 10).warmup_iterations == 5
        assert TPEOptimizer(parameters, 50).warmup_iterations == 10

    def test_should_issue_max_iterations(self, parameters) -> None:
        """Test the iteration budget without any history."""
        assert len(drain(TPEOptimizer(parameters, 12, seed=1))) == 12

    def test_should_split_history_by_objective(self) -> None:
        """Test the good/bad split at the 15% quantile, best first."""
        optimizer = TPEOptimizer({"x": ParameterRange(0, 10)})
        history = scored_runs([3, 9, 1, 8, 5, 0, 2, 7, 4, 6])

        good, bad = optimizer.split_history(history)

        assert [run.objective_value for run in good] == [9, 8]
        assert len(bad) == 8

    def test_should_keep_one_good_run_and_rank_nan_as_zero(self) -> None:
        """Test the split edge cases."""
        optimizer = TPEOptimizer({"x": ParameterRange(0, 10)})
        history = [
            OptimizationRun({"x": 1}, BacktestMetrics(), float("nan")),
            OptimizationRun({"x": 2}, BacktestMetrics(), -1.0),
        ]

        good, bad = optimizer.split_history(history)

        assert [run.parameters for run in good] == [{"x": 1}]
        assert [run.parameters for run in bad] == [{"x": 2}]

    def test_should_favor_region_of_good_runs(self, parameters) -> None:
        """Test that guided proposals concentrate where the objective is high."""
        # Arrange
        optimizer = TPEOptimizer(parameters, 20, seed=3)
        history = scored_runs([5.0 * i for i in range(20)])
        propose(optimizer, [], optimizer.warmup_iterations)

        # Act
        guided = propose(optimizer, history, 5)

        # Assert
        assert all(params["x"] > 75.0 for params in guided)
        assert all(params["x"] <= 100.0 for params in guided)

    def test_should_score_candidates_near_good_runs_higher(self) -> None:
        """Test the l(x)/g(x) ratio."""
        optimizer = TPEOptimizer({"x": ParameterRange(0, 100)})
        good, bad = scored_runs([90.0]), scored_runs([10.0, 20.0])

        near_good = optimizer.expected_improvement({"x": 88.0}, good, bad)
        near_bad = optimizer.expected_improvement({"x": 15.0}, good, bad)

        assert near_good > 0 > near_bad

    def test_should_round_integer_parameters(self) -> None:
        """Test integer kinds in both phases."""
        optimizer = TPEOptimizer({"period": ParameterRange(5, 30, kind="integer")}, 10, seed=9)
        history = [
            OptimizationRun({"period": p}, BacktestMetrics(), float(p)) for p in range(5, 31, 5)
        ]

        produced = propose(optimizer, history, 10)

        assert all(isinstance(params["period"], int) for params in produced)
        assert all(5 <= params["period"] <= 30 for params in produced)

    def test_should_reproduce_proposals_with_seed(self, parameters) -> None:
        """Test determinism for the same seed and history."""
        history = scored_runs([10.0, 40.0, 70.0, 95.0, 20.0, 60.0])

        first = propose(TPEOptimizer(parameters, 12, seed=42), history, 12)
        second = propose(TPEOptimizer(parameters, 12, seed=42), history, 12)

        assert first == second

    def test_should_reject_invalid_settings(self, parameters) -> None:
        """Test constructor validation."""
        with pytest.raises(ConfigurationError, match="max_iterations"):
            TPEOptimizer(parameters, 0)
        with pytest.raises(ConfigurationError, match="gamma"):
            TPEOptimizer(parameters, gamma=0)


class TestOptimizerFactoryAndSelection:
    """Test suite for create_optimizer and best_run."""

    def test_should_create_grid_optimizer(self) -> None:
        """Test the default search method."""
        assert isinstance(create_optimizer(make_config()), GridOptimizer)

    def test_should_create_random_optimizer(self) -> None:
        """Test random search wiring."""
        config = make_config(search_method="random", max_iterations=3, seed=7)

        optimizer = create_optimizer(config)

        assert isinstance(optimizer, RandomOptimizer)
        assert len(drain(optimizer)) == 3

    def test_should_create_tpe_optimizer_with_default_budget(self) -> None:
        """Test TPE wiring; the budget defaults to 50 iterations."""
        optimizer = create_optimizer(make_config(search_method="tpe", seed=7))

        assert isinstance(optimizer, TPEOptimizer)
        assert optimizer.max_iterations == 50
        assert len(drain(optimizer)) == 50

    def test_should_pick_highest_objective_with_earliest_tie(self) -> None:
        """Test best_run ordering."""
        runs = [
            OptimizationRun({"p": 1}, BacktestMetrics(), 0.5),
            OptimizationRun({"p": 2}, BacktestMetrics(), 1.5),
            OptimizationRun({"p": 3}, BacktestMetrics(), 1.5),
        ]

        assert best_run(runs).parameters == {"p": 2}
        assert best_run([]) is None


class TestWalkForwardWindows:
    """Test suite for window layout."""

    def test_should_lay_out_rolling_windows(self) -> None:
        """Test train windows that move with the test window."""
        config = WalkForwardConfig(make_config(), train_window_days=10, test_window_days=5)

        windows = build_windows(config)

        assert len(windows) == 4
        assert windows[0] == (
            datetime(2023, 1, 1),
            datetime(2023, 1, 11),
            datetime(2023, 1, 11),
            datetime(2023, 1, 16),
        )
        assert windows[-1][0] == datetime(2023, 1, 16)
        assert windows[-1][3] == END

    def test_should_anchor_train_start(self) -> None:
        """Test anchored windows always train from the search start."""
        config = WalkForwardConfig(
            make_config(), train_window_days=10, test_window_days=5, anchored=True
        )

        assert all(window[0] == START for window in build_windows(config))

    def test_should_clip_last_test_window(self) -> None:
        """Test that the final window ends at the search end."""
        config = WalkForwardConfig(
            make_config(end=datetime(2023, 1, 29)), train_window_days=10, test_window_days=5
        )

        assert build_windows(config)[-1][2:] == (datetime(2023, 1, 26), datetime(2023, 1, 29))

    def test_should_reject_non_positive_windows(self) -> None:
        """Test window length validation."""
        with pytest.raises(ConfigurationError, match="Window lengths"):
            WalkForwardConfig(make_config(), train_window_days=0, test_window_days=5)
