"""
Core entity classes (ADTs) for the correlation panel.

These classes represent the fundamental data structures used throughout
the correlation pipeline, with strong encapsulation and representation invariants.
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List
import pandas as pd
import numpy as np
from corrpanel.errors import DataError


@dataclass(frozen=True)
class Observation:
    """
    One return observation for one entity on one date.

    Attributes:
        entity_id: Identifier of the entity (e.g., ticker "AAPL")
        date: Observation date
        value: Return value (float64)

    Representation Invariants:
        - entity_id is a non-empty string
        - date is a pd.Timestamp
    """
    entity_id: str
    date: pd.Timestamp
    value: float

    def __post_init__(self):
        """Validate representation invariants."""
        if not isinstance(self.entity_id, str) or not self.entity_id:
            raise ValueError("entity_id must be a non-empty string")
        object.__setattr__(self, "date", pd.Timestamp(self.date))
        object.__setattr__(self, "value", float(self.value))


@dataclass(frozen=True, order=True)
class PairKey:
    """
    Canonical unordered pair of distinct entities.

    Use PairKey.of() to build a key from two ids in any order; {A, B} and
    {B, A} collapse to the same key.

    Representation Invariants:
        - entity_a < entity_b (lexicographic)
    """
    entity_a: str
    entity_b: str

    def __post_init__(self):
        """Validate representation invariants."""
        if self.entity_a == self.entity_b:
            raise ValueError(f"pair members must differ, got {self.entity_a!r} twice")
        if self.entity_a > self.entity_b:
            raise ValueError(
                f"pair is not canonical: {self.entity_a!r} > {self.entity_b!r} "
                "(use PairKey.of)"
            )

    @classmethod
    def of(cls, first: str, second: str) -> "PairKey":
        """Build the canonical key for an unordered pair."""
        if first == second:
            raise ValueError(f"pair members must differ, got {first!r} twice")
        if first > second:
            first, second = second, first
        return cls(first, second)

    def __str__(self) -> str:
        return f"{self.entity_a}-{self.entity_b}"


@dataclass(frozen=True)
class DailyMeanCorrelation:
    """
    Mean pairwise correlation for one date.

    Attributes:
        date: Date of the record
        mean_correlation: Mean of defined pair correlations, NaN if none
        n_pairs: Number of pairs with a defined correlation on this date
    """
    date: pd.Timestamp
    mean_correlation: float
    n_pairs: int

    def __post_init__(self):
        object.__setattr__(self, "date", pd.Timestamp(self.date))

    @property
    def is_defined(self) -> bool:
        return self.n_pairs > 0

    def __repr__(self) -> str:
        """String representation."""
        return (
            f"DailyMeanCorrelation(date={self.date.date()}, "
            f"mean={self.mean_correlation:.3f}, n_pairs={self.n_pairs})"
        )


class Panel:
    """
    A collection of per-entity return series sharing a common date axis.

    Entities may join or leave the panel over time: each entity only carries
    the dates on which it is active. The panel is immutable once built.

    Attributes:
        entities: Entity ids, sorted lexicographically
        dates: Sorted union of all observation dates (pd.DatetimeIndex)

    Representation Invariants:
        - every entity series is float64, sorted by date, without duplicates
        - no entity series contains NaN (missing values are absent dates)
        - every entity series is non-empty
        - dates is the sorted union of all entity series indices
    """

    def __init__(self, series: Dict[str, pd.Series]):
        """
        Initialize a Panel from per-entity series.

        Preconditions:
            - series maps entity ids to pd.Series indexed by date

        Postconditions:
            - NaN values are dropped; entities left empty are omitted
            - self.dates is the union of the remaining dates

        Raises:
            DataError: If an entity id is invalid or a series has duplicate dates
        """
        cleaned = {}
        for entity_id, values in series.items():
            if not isinstance(entity_id, str) or not entity_id:
                raise DataError(f"entity ids must be non-empty strings, got {entity_id!r}")

            values = pd.Series(values).astype("float64")
            values.index = pd.DatetimeIndex(values.index)
            if values.index.has_duplicates:
                dup = values.index[values.index.duplicated()][0]
                raise DataError(
                    f"duplicate observation for {entity_id} on {dup.date()}"
                )

            values = values.dropna().sort_index()
            if len(values) == 0:
                continue
            values.name = entity_id
            cleaned[entity_id] = values

        self._series = {k: cleaned[k] for k in sorted(cleaned)}
        self._entities = list(self._series)

        if self._series:
            dates = pd.DatetimeIndex([])
            for values in self._series.values():
                dates = dates.union(values.index)
            self._dates = dates.sort_values()
        else:
            self._dates = pd.DatetimeIndex([])

        self._check_invariants()

    def _check_invariants(self):
        """Check representation invariants."""
        for entity_id, values in self._series.items():
            if not values.index.is_monotonic_increasing:
                raise DataError(f"{entity_id}: dates must be sorted in ascending order")
            if values.isna().any():
                raise DataError(f"{entity_id}: series must not contain NaN values")
        if self._dates.has_duplicates:
            raise DataError("panel dates must not contain duplicates")

    @classmethod
    def from_observations(cls, observations: Iterable[Observation]) -> "Panel":
        """
        Build a Panel from Observation records.

        Raises:
            DataError: If two observations share (entity_id, date)
        """
        by_entity: Dict[str, Dict[pd.Timestamp, float]] = {}
        for obs in observations:
            bucket = by_entity.setdefault(obs.entity_id, {})
            if obs.date in bucket:
                raise DataError(
                    f"duplicate observation for {obs.entity_id} on {obs.date.date()}"
                )
            bucket[obs.date] = obs.value

        return cls({
            entity_id: pd.Series(list(bucket.values()), index=list(bucket.keys()))
            for entity_id, bucket in by_entity.items()
        })

    @classmethod
    def from_frame(
        cls,
        df: pd.DataFrame,
        entity_col: str = "entity_id",
        date_col: str = "date",
        value_col: str = "value"
    ) -> "Panel":
        """
        Build a Panel from a long table with one row per observation.

        Args:
            df: Table with entity, date and value columns
            entity_col: Name of the entity id column
            date_col: Name of the date column
            value_col: Name of the return value column

        Returns:
            Panel

        Raises:
            DataError: If a column is missing or (entity, date) repeats
        """
        missing = [c for c in (entity_col, date_col, value_col) if c not in df.columns]
        if missing:
            raise DataError(f"missing columns: {missing}")

        long = df[[entity_col, date_col, value_col]].copy()
        long[entity_col] = long[entity_col].astype(str)
        long[date_col] = pd.to_datetime(long[date_col])

        dup_mask = long.duplicated(subset=[entity_col, date_col])
        if dup_mask.any():
            row = long[dup_mask].iloc[0]
            raise DataError(
                f"duplicate observation for {row[entity_col]} on {row[date_col].date()}"
            )

        series = {
            entity_id: group.set_index(date_col)[value_col]
            for entity_id, group in long.groupby(entity_col, sort=True)
        }
        return cls(series)

    @classmethod
    def from_wide(cls, df: pd.DataFrame) -> "Panel":
        """
        Build a Panel from a date x entity table (NaN = not active).

        Raises:
            DataError: If the index has duplicate dates
        """
        if df.index.has_duplicates:
            raise DataError("wide table index must not contain duplicate dates")
        return cls({str(col): df[col] for col in df.columns})

    @property
    def entities(self) -> List[str]:
        """Return the sorted entity ids (copy)."""
        return list(self._entities)

    @property
    def dates(self) -> pd.DatetimeIndex:
        """Return the sorted union of observation dates (read-only)."""
        return self._dates

    def series(self, entity_id: str) -> pd.Series:
        """
        Return the return series for one entity.

        Raises:
            DataError: If the entity is not in the panel
        """
        return self._lookup(entity_id).copy()

    def _lookup(self, entity_id: str) -> pd.Series:
        """Return the stored series for an entity, DataError if unknown."""
        try:
            return self._series[entity_id]
        except KeyError:
            raise DataError(f"unknown entity: {entity_id}") from None

    def active_entities(self, date) -> List[str]:
        """Return the entities with an observation on the given date."""
        date = pd.Timestamp(date)
        return [e for e, values in self._series.items() if date in values.index]

    def to_wide(self) -> pd.DataFrame:
        """Return a date x entity table, NaN where an entity is inactive."""
        if not self._series:
            return pd.DataFrame(index=self._dates)
        return pd.DataFrame(self._series).reindex(self._dates)

    def positions(self, entity_id: str) -> np.ndarray:
        """Return the integer positions of an entity's dates within self.dates."""
        return self._dates.get_indexer(self._lookup(entity_id).index)

    def values(self, entity_id: str) -> np.ndarray:
        """Return an entity's values as a float64 array, in date order."""
        return self._lookup(entity_id).to_numpy(dtype=np.float64)

    def __len__(self) -> int:
        """Return the number of entities."""
        return len(self._entities)

    def __contains__(self, entity_id) -> bool:
        return entity_id in self._series

    def __repr__(self) -> str:
        """String representation."""
        return f"Panel({len(self)} entities, {len(self._dates)} dates)"
