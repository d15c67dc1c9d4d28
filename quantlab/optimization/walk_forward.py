"""
Walk-forward testing.

Optimizes on a train window, replays the best parameters on the test
window that follows, then moves forward by one test window.
"""

from datetime import datetime, timedelta

from loguru import logger

from quantlab.core.exceptions.backtest import InsufficientDataError

from .parameters import WalkForwardConfig, WalkForwardWindow
from .runner import OptimizationRunner, best_run


def build_windows(
    config: WalkForwardConfig,
) -> list[tuple[datetime, datetime, datetime, datetime]]:
    """
    Lay out (train_start, train_end, test_start, test_end) windows.

    The first test window starts train_window_days after the search start.
    Test windows are test_window_days long and the last one is clipped to
    the search end.
    """
    start = config.optimization.start
    end = config.optimization.end
    train_length = timedelta(days=config.train_window_days)
    test_length = timedelta(days=config.test_window_days)

    windows = []
    test_start = start + train_length
    while test_start < end:
        test_end = min(test_start + test_length, end)
        train_start = start if config.anchored else test_start - train_length
        windows.append((train_start, test_start, test_start, test_end))
        test_start = test_end
    return windows


class WalkForwardRunner:
    """Runs walk-forward analysis with an OptimizationRunner."""

    def __init__(self, runner: OptimizationRunner):
        self.runner = runner

    def run(self, config: WalkForwardConfig) -> list[WalkForwardWindow]:
        """
        Optimize and validate every window.

        Windows whose train or test slice holds no data are logged and
        skipped.

        Returns:
            One result per evaluated window, in time order
        """
        search = config.optimization
        results: list[WalkForwardWindow] = []
        windows = build_windows(config)
        logger.info(
            f"Walk-forward {search.strategy_name}: {len(windows)} windows "
            f"({'anchored' if config.anchored else 'rolling'})"
        )

        for train_start, train_end, test_start, test_end in windows:
            try:
                runs = self.runner.run(search.with_window(train_start, train_end))
                best = best_run(runs)
                if best is None:
                    logger.warning(
                        f"No valid parameters for train window {train_start} - {train_end}"
                    )
                    continue
                test_window = self.runner.window_universe(search.assets, test_start, test_end)
                test_run = self.runner.evaluate(
                    search.with_window(test_start, test_end), best.parameters, test_window
                )
            except InsufficientDataError as e:
                logger.warning(f"Skipping window {train_start} - {test_end}: {e}")
                continue

            results.append(
                WalkForwardWindow(
                    train_start=train_start,
                    train_end=train_end,
                    test_start=test_start,
                    test_end=test_end,
                    best_parameters=best.parameters,
                    train_objective=best.objective_value,
                    test_metrics=test_run.metrics,
                )
            )
            logger.info(
                f"Window {test_start.date()} - {test_end.date()}: {best.parameters} -> "
                f"test {search.objective}={test_run.objective_value:.4f}"
            )

        return results
