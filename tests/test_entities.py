"""
Tests for core entities.

Tests cover:
- Observation and PairKey invariants
- Panel construction from observations, long tables and wide tables
- Duplicate detection and NaN handling
"""

from datetime import date
import pytest
import pandas as pd
import numpy as np
from corrpanel.entities import DailyMeanCorrelation, Observation, PairKey, Panel
from corrpanel.errors import DataError


class TestObservation:
    """Tests for Observation."""

    def test_basic_creation(self):
        """Test creating an observation coerces date and value."""
        obs = Observation("AAPL", "2023-01-03", 1)
        assert obs.date == pd.Timestamp("2023-01-03")
        assert isinstance(obs.value, float)

    def test_empty_entity_raises(self):
        """Test that an empty entity id raises ValueError."""
        with pytest.raises(ValueError, match="entity_id"):
            Observation("", "2023-01-03", 0.01)


class TestPairKey:
    """Tests for PairKey canonicalization."""

    def test_of_canonicalizes(self):
        """Test {A, B} and {B, A} collapse to one key."""
        assert PairKey.of("MSFT", "AAPL") == PairKey.of("AAPL", "MSFT")
        assert PairKey.of("MSFT", "AAPL").entity_a == "AAPL"

    def test_same_entity_raises(self):
        """Test that a pair needs two distinct entities."""
        with pytest.raises(ValueError, match="must differ"):
            PairKey.of("AAPL", "AAPL")

    def test_non_canonical_raises(self):
        """Test that direct construction enforces ordering."""
        with pytest.raises(ValueError, match="not canonical"):
            PairKey("MSFT", "AAPL")

    def test_str(self):
        """Test pair string form."""
        assert str(PairKey.of("B", "A")) == "A-B"


class TestDailyMeanCorrelation:
    """Tests for DailyMeanCorrelation."""

    def test_plain_date_is_coerced(self):
        """Test a datetime.date is stored as a Timestamp and repr works."""
        record = DailyMeanCorrelation(date(2023, 1, 15), 0.25, 4)
        assert record.date == pd.Timestamp("2023-01-15")
        assert "2023-01-15" in repr(record)


class TestPanel:
    """Tests for Panel ADT."""

    def test_from_observations(self):
        """Test building a panel from observations."""
        panel = Panel.from_observations([
            Observation("B", "2023-01-04", 0.02),
            Observation("A", "2023-01-03", 0.01),
            Observation("B", "2023-01-03", -0.01),
        ])
        assert panel.entities == ["A", "B"]
        assert list(panel.dates) == [pd.Timestamp("2023-01-03"), pd.Timestamp("2023-01-04")]
        assert panel.series("B").tolist() == [-0.01, 0.02]

    def test_duplicate_observation_raises(self):
        """Test that two observations for the same entity and date raise."""
        with pytest.raises(DataError, match="duplicate observation for A"):
            Panel.from_observations([
                Observation("A", "2023-01-03", 0.01),
                Observation("A", "2023-01-03", 0.02),
            ])

    def test_from_frame(self):
        """Test building a panel from a long table."""
        df = pd.DataFrame({
            "ticker": ["A", "A", "B", "B", "B"],
            "day": ["2023-01-04", "2023-01-03", "2023-01-03", "2023-01-04", "2023-01-05"],
            "ret": [0.02, 0.01, -0.01, 0.00, 0.03],
        })
        panel = Panel.from_frame(df, entity_col="ticker", date_col="day", value_col="ret")

        assert len(panel) == 2
        assert len(panel.dates) == 3
        assert panel.series("A").tolist() == [0.01, 0.02]
        assert panel.active_entities("2023-01-05") == ["B"]

    def test_from_frame_missing_column_raises(self):
        """Test that missing columns raise DataError."""
        df = pd.DataFrame({"entity_id": ["A"], "date": ["2023-01-03"]})
        with pytest.raises(DataError, match="missing columns"):
            Panel.from_frame(df)

    def test_from_frame_duplicates_raise(self):
        """Test that duplicate rows in a long table raise DataError."""
        df = pd.DataFrame({
            "entity_id": ["A", "A"],
            "date": ["2023-01-03", "2023-01-03"],
            "value": [0.01, 0.02],
        })
        with pytest.raises(DataError, match="duplicate"):
            Panel.from_frame(df)

    def test_from_wide_drops_nan(self):
        """Test that NaN cells mean the entity is inactive that date."""
        dates = pd.date_range("2023-01-02", periods=4)
        wide = pd.DataFrame({"A": [0.01, np.nan, 0.02, 0.03], "B": [np.nan] * 4}, index=dates)
        panel = Panel.from_wide(wide)

        assert panel.entities == ["A"]
        assert len(panel.series("A")) == 3
        assert len(panel.dates) == 3

    def test_unknown_entity_raises(self):
        """Test that looking up an unknown entity raises DataError."""
        panel = Panel({"A": pd.Series([0.01], index=pd.date_range("2023-01-02", periods=1))})
        with pytest.raises(DataError, match="unknown entity"):
            panel.series("Z")
        assert "A" in panel
        assert "Z" not in panel

    def test_unknown_entity_arrays_raise(self):
        """Test positions and values raise DataError for an unknown entity."""
        panel = Panel({"A": pd.Series([0.01], index=pd.date_range("2023-01-02", periods=1))})
        with pytest.raises(DataError, match="unknown entity"):
            panel.positions("Z")
        with pytest.raises(DataError, match="unknown entity"):
            panel.values("Z")

    def test_input_not_modified(self):
        """Test that building a panel leaves the input series untouched."""
        original = pd.Series([0.03, np.nan, 0.01], index=["2023-01-05", "2023-01-04", "2023-01-03"])
        copy = original.copy()
        Panel({"A": original})
        pd.testing.assert_series_equal(original, copy)

    def test_series_sorted(self):
        """Test that entity series are sorted by date."""
        values = pd.Series([0.03, 0.02, 0.01], index=pd.to_datetime(["2023-01-05", "2023-01-04", "2023-01-03"]))
        panel = Panel({"A": values})
        assert panel.series("A").index.is_monotonic_increasing
        assert panel.series("A").tolist() == [0.01, 0.02, 0.03]

    def test_positions(self):
        """Test positions index into the panel date axis."""
        dates = pd.date_range("2023-01-02", periods=4)
        panel = Panel.from_wide(pd.DataFrame({
            "A": [0.01, 0.02, 0.03, 0.04],
            "B": [np.nan, 0.01, np.nan, 0.02],
        }, index=dates))
        assert panel.positions("B").tolist() == [1, 3]
        np.testing.assert_array_equal(panel.values("B"), [0.01, 0.02])

    def test_to_wide_roundtrip_shape(self):
        """Test to_wide restores a date x entity table."""
        dates = pd.date_range("2023-01-02", periods=3)
        wide = pd.DataFrame({"A": [0.01, np.nan, 0.02], "B": [0.0, 0.01, 0.02]}, index=dates)
        out = Panel.from_wide(wide).to_wide()
        assert out.shape == (3, 2)
        assert np.isnan(out.loc[dates[1], "A"])

    def test_repr(self):
        """Test Panel string representation."""
        panel = Panel({"A": pd.Series([0.01, 0.02], index=pd.date_range("2023-01-02", periods=2))})
        assert repr(panel) == "Panel(1 entities, 2 dates)"
