"""
Rolling pairwise correlation across a panel of entities.

For every unordered pair of entities this module computes the Pearson
correlation of their returns over a trailing window of date-aligned
observations, and aggregates the defined values into a mean per date.

Pairs are streamed one at a time into per-date (sum, count) accumulators, so
the full pair x date table is never held in memory. With n_workers > 1 the
canonical pairs are split into disjoint subsets, each accumulated by its own
worker, and the partial accumulators are added together.
"""

import itertools
import time
from concurrent.futures import ProcessPoolExecutor, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple
import pandas as pd
import numpy as np
from corrpanel.analytics.grouping import aggregate_by, nanmean
from corrpanel.analytics.pearson import trailing_pearson
from corrpanel.analytics.returns import align_pair
from corrpanel.config import CorrelationConfig, build_config
from corrpanel.entities import DailyMeanCorrelation, PairKey, Panel
from corrpanel.errors import ConfigurationError
from corrpanel.logging_config import get_logger

logger = get_logger(__name__)


@dataclass
class _PanelArrays:
    """Plain-array view of a Panel, cheap to ship to worker processes."""
    positions: List[np.ndarray]
    values: List[np.ndarray]
    n_dates: int

    @classmethod
    def from_panel(cls, panel: Panel) -> "_PanelArrays":
        entities = panel.entities
        return cls(
            positions=[panel.positions(e) for e in entities],
            values=[panel.values(e) for e in entities],
            n_dates=len(panel.dates),
        )


def _accumulate_pairs(
    arrays: _PanelArrays,
    pairs: Sequence[Tuple[int, int]],
    window: int,
    min_periods: int
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Accumulate rolling correlations of the given pairs per date.

    Args:
        arrays: Panel arrays
        pairs: (i, j) entity index pairs, i < j
        window: Trailing window length
        min_periods: Smallest usable window

    Returns:
        Tuple of (sum of defined correlations, count of defined correlations),
        both of length arrays.n_dates
    """
    sums = np.zeros(arrays.n_dates, dtype=np.float64)
    counts = np.zeros(arrays.n_dates, dtype=np.int64)

    for i, j in pairs:
        common, idx_a, idx_b = np.intersect1d(
            arrays.positions[i], arrays.positions[j],
            assume_unique=True, return_indices=True
        )
        if len(common) < min_periods:
            continue

        corr = trailing_pearson(
            arrays.values[i][idx_a], arrays.values[j][idx_b], window, min_periods
        )
        defined = ~np.isnan(corr)
        # common holds each date position at most once
        sums[common[defined]] += corr[defined]
        counts[common[defined]] += 1

    return sums, counts


def _records_from_accumulators(
    dates: pd.DatetimeIndex,
    sums: np.ndarray,
    counts: np.ndarray
) -> List[DailyMeanCorrelation]:
    """Turn per-date (sum, count) accumulators into output records."""
    means = np.where(counts > 0, sums / np.maximum(counts, 1), np.nan)

    return [
        DailyMeanCorrelation(date=date, mean_correlation=float(mean), n_pairs=int(count))
        for date, mean, count in zip(dates, means, counts)
    ]


class RollingPairwiseCorrelation:
    """
    Computes the daily mean of trailing-window correlations over all pairs.

    Representation Invariants:
        - self.config is a validated CorrelationConfig
        - self.window > 0
    """

    def __init__(self, config: Optional[CorrelationConfig] = None, **params):
        """
        Initialize the calculator.

        Preconditions:
            - Either config or keyword parameters are given, not both

        Postconditions:
            - Configuration is validated before any computation

        Args:
            config: Validated configuration
            **params: CorrelationConfig fields (window, window_policy,
                min_periods, n_workers, executor, ...)

        Raises:
            ConfigurationError: If the configuration is invalid
        """
        if config is None:
            if "window" not in params:
                raise ConfigurationError("window is required")
            config = build_config(**params)
        elif params:
            raise ConfigurationError("pass either config or keyword parameters, not both")
        elif not isinstance(config, CorrelationConfig):
            raise ConfigurationError(f"config must be a CorrelationConfig, got {type(config).__name__}")

        self.config = config

    @property
    def window(self) -> int:
        return self.config.window

    @property
    def min_periods(self) -> int:
        return self.config.effective_min_periods

    def iter_pairs(self, panel: Panel) -> Iterator[PairKey]:
        """
        Enumerate the canonical pairs of a panel.

        Pairs are produced directly in canonical order (i < j over the sorted
        entity ids), never by filtering a full cross join.
        """
        for a, b in itertools.combinations(panel.entities, 2):
            yield PairKey(a, b)

    def pair_correlation(self, panel: Panel, entity_a: str, entity_b: str) -> pd.Series:
        """
        Rolling correlation of one pair over their aligned dates.

        The result does not depend on the order of entity_a and entity_b.

        Args:
            panel: Source panel
            entity_a: First entity id
            entity_b: Second entity id

        Returns:
            Series of correlations indexed by the pair's common dates,
            NaN where undefined
        """
        pair = PairKey.of(entity_a, entity_b)
        dates, values_a, values_b = align_pair(panel, pair.entity_a, pair.entity_b)
        corr = trailing_pearson(values_a, values_b, self.window, self.min_periods)
        return pd.Series(corr, index=dates, name=str(pair))

    def compute_daily_mean_correlations(self, panel: Panel) -> List[DailyMeanCorrelation]:
        """
        Compute the mean pairwise rolling correlation for every panel date.

        Preconditions:
            - panel is a Panel

        Postconditions:
            - Exactly one record per distinct panel date, ascending
            - Undefined pair correlations are excluded from each mean
            - A date with no defined pair correlation has NaN mean, n_pairs 0
            - panel is not modified

        Args:
            panel: Panel of per-entity returns

        Returns:
            List of DailyMeanCorrelation records
        """
        if not isinstance(panel, Panel):
            raise TypeError("panel must be a Panel")

        n_entities = len(panel)
        n_pairs = n_entities * (n_entities - 1) // 2
        n_workers = min(self.config.n_workers, max(n_pairs, 1))

        logger.info(
            "Computing rolling correlations: %d entities, %d pairs, %d dates, "
            "window=%d (%s), workers=%d",
            n_entities, n_pairs, len(panel.dates), self.window,
            self.config.window_policy, n_workers
        )
        started = time.perf_counter()

        arrays = _PanelArrays.from_panel(panel)
        if n_workers <= 1:
            sums, counts = _accumulate_pairs(
                arrays,
                itertools.combinations(range(n_entities), 2),
                self.window,
                self.min_periods,
            )
        else:
            sums, counts = self._accumulate_parallel(arrays, n_entities, n_workers)

        records = _records_from_accumulators(panel.dates, sums, counts)

        logger.info(
            "Finished %d dates in %.3fs (%d with a defined mean)",
            len(records), time.perf_counter() - started,
            sum(1 for r in records if r.is_defined)
        )
        return records

    def _accumulate_parallel(
        self,
        arrays: _PanelArrays,
        n_entities: int,
        n_workers: int
    ) -> Tuple[np.ndarray, np.ndarray]:
        """Split pairs round-robin across workers and add up their partials."""
        all_pairs = list(itertools.combinations(range(n_entities), 2))
        chunks = [all_pairs[k::n_workers] for k in range(n_workers)]

        pool_cls = ProcessPoolExecutor if self.config.executor == "process" else ThreadPoolExecutor
        sums = np.zeros(arrays.n_dates, dtype=np.float64)
        counts = np.zeros(arrays.n_dates, dtype=np.int64)

        with pool_cls(max_workers=n_workers) as pool:
            futures = [
                pool.submit(_accumulate_pairs, arrays, chunk, self.window, self.min_periods)
                for chunk in chunks
            ]
            for k, future in enumerate(futures):
                part_sums, part_counts = future.result()
                logger.debug("Worker %d finished %d pairs", k, len(chunks[k]))
                sums += part_sums
                counts += part_counts

        return sums, counts

    @staticmethod
    def to_frame(records: Sequence[DailyMeanCorrelation]) -> pd.DataFrame:
        """
        Convert records to a table with date, mean_correlation and n_pairs columns.
        """
        return pd.DataFrame({
            "date": pd.DatetimeIndex([r.date for r in records]),
            "mean_correlation": np.array([r.mean_correlation for r in records], dtype=np.float64),
            "n_pairs": np.array([r.n_pairs for r in records], dtype=np.int64),
        })


def compute_daily_mean_correlations(panel: Panel, window: int, **options) -> List[DailyMeanCorrelation]:
    """
    Compute the daily mean pairwise rolling correlation (convenience function).

    Args:
        panel: Panel of per-entity returns
        window: Trailing window length
        **options: Other CorrelationConfig fields

    Returns:
        List of DailyMeanCorrelation records, one per panel date

    Raises:
        ConfigurationError: If window or options are invalid
    """
    return RollingPairwiseCorrelation(window=window, **options).compute_daily_mean_correlations(panel)


def materialized_daily_mean_correlations(
    panel: Panel,
    window: int,
    **options
) -> List[DailyMeanCorrelation]:
    """
    Compute daily mean correlations by materializing every pair's series.

    Builds one (date, pair, correlation) row per pair and aligned date, then
    groups the rows by date. Memory grows with pairs x dates, so this is only
    meant for small panels and for cross-checking the streaming computation.

    Args:
        panel: Panel of per-entity returns
        window: Trailing window length
        **options: Other CorrelationConfig fields

    Returns:
        List of DailyMeanCorrelation records, one per panel date
    """
    calc = RollingPairwiseCorrelation(window=window, **options)

    n_entities = len(panel)
    est_rows = n_entities * (n_entities - 1) // 2 * len(panel.dates)
    if est_rows > calc.config.materialize_warn_rows:
        logger.warning(
            "Materializing up to %d pair-date rows (%d entities x %d dates); "
            "use compute_daily_mean_correlations for large panels",
            est_rows, n_entities, len(panel.dates)
        )

    rows = []
    for pair in calc.iter_pairs(panel):
        corr = calc.pair_correlation(panel, pair.entity_a, pair.entity_b)
        rows.extend((date, pair, value) for date, value in corr.items())

    def summarize(group):
        values = [value for _, _, value in group]
        return nanmean(values), sum(1 for v in values if not np.isnan(v))

    by_date = aggregate_by(rows, key=lambda row: row[0], func=summarize)

    records = []
    for date in panel.dates:
        mean, count = by_date.get(date, (np.nan, 0))
        records.append(DailyMeanCorrelation(date=date, mean_correlation=float(mean), n_pairs=count))
    return records
