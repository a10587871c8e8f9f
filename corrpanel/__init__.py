"""
Rolling Pairwise Correlation

A research utility for measuring how tightly a panel of assets moves
together: trailing-window correlations for every pair of entities,
aggregated to a daily mean.
"""

from corrpanel.config import CorrelationConfig, load_config
from corrpanel.entities import DailyMeanCorrelation, Observation, PairKey, Panel
from corrpanel.logging_config import setup_logging
from corrpanel.analytics.rolling_corr import (
    RollingPairwiseCorrelation,
    compute_daily_mean_correlations,
)

__version__ = "0.1.0"

__all__ = [
    "CorrelationConfig",
    "DailyMeanCorrelation",
    "Observation",
    "PairKey",
    "Panel",
    "RollingPairwiseCorrelation",
    "compute_daily_mean_correlations",
    "load_config",
    "setup_logging",
]
