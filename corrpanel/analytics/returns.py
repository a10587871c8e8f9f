"""
Functions for computing returns and aligning entity series.

This module provides pure functions that turn prices into a return Panel
and align two entities of a Panel on their common dates.
"""

from typing import Tuple
import pandas as pd
import numpy as np
from corrpanel.entities import Panel
from corrpanel.errors import DataError


def compute_returns(prices: pd.Series, method: str = "log") -> pd.Series:
    """
    Compute returns from a price series.

    Preconditions:
        - prices is a pd.Series with positive numeric values (NaN allowed)
        - method is either "log" or "simple"

    Postconditions:
        - Returns a pd.Series with the same index as prices
        - First observation is NaN (no prior price to compute return from)

    Args:
        prices: Price series (must be positive)
        method: "log" for log returns, "simple" for simple returns

    Returns:
        Series of returns, same index as prices (first value is NaN)

    Raises:
        TypeError: If prices is not a pd.Series
        DataError: If prices contains non-positive values
        ValueError: If method is invalid
    """
    if not isinstance(prices, pd.Series):
        raise TypeError("prices must be a pd.Series")

    if method not in ["log", "simple"]:
        raise ValueError(f"method must be 'log' or 'simple', got {method}")

    if (prices <= 0).any():
        raise DataError(f"prices must be positive ({prices.name or 'series'})")

    if method == "log":
        returns = np.log(prices / prices.shift(1))
    else:  # simple
        returns = (prices / prices.shift(1)) - 1

    return returns


def panel_from_prices(prices: pd.DataFrame, method: str = "log") -> Panel:
    """
    Build a return Panel from a date x entity price table.

    Each column's returns are computed from its own consecutive non-missing
    prices, so an entity that lists later simply starts later in the panel.

    Args:
        prices: Wide price table (index: dates, columns: entity ids)
        method: "log" or "simple" returns

    Returns:
        Panel of returns
    """
    returns = {}
    for col in prices.columns:
        col_prices = prices[col].dropna()
        returns[str(col)] = compute_returns(col_prices, method=method).dropna()
    return Panel(returns)


def align_pair(panel: Panel, entity_a: str, entity_b: str) -> Tuple[pd.DatetimeIndex, np.ndarray, np.ndarray]:
    """
    Align two entities on the dates where both are active (inner join).

    Preconditions:
        - entity_a and entity_b are in the panel

    Postconditions:
        - Returned arrays have equal length and follow the returned dates
        - Dates are sorted ascending

    Args:
        panel: Source panel
        entity_a: First entity id
        entity_b: Second entity id

    Returns:
        Tuple of (common dates, values of entity_a, values of entity_b)

    Raises:
        DataError: If either entity is not in the panel
    """
    series_a = panel.series(entity_a)
    series_b = panel.series(entity_b)

    common_dates = series_a.index.intersection(series_b.index).sort_values()
    return (
        common_dates,
        series_a.reindex(common_dates).to_numpy(dtype=np.float64),
        series_b.reindex(common_dates).to_numpy(dtype=np.float64),
    )
