"""
Configuration for rolling pairwise correlation runs.

Parameters are validated with Pydantic when the configuration is built, so a
bad window or worker count fails before any data is touched.
"""

from pathlib import Path
from typing import Literal, Optional, Union
import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from corrpanel.errors import ConfigurationError


class CorrelationConfig(BaseModel):
    """
    Settings for a rolling pairwise correlation computation.

    Attributes:
        window: Trailing window length, in aligned observations
        window_policy: "full" leaves dates undefined until a full window is
            available; "partial" estimates from shorter windows at the start
            of a series
        min_periods: Minimum points for a partial-window estimate (default 2,
            only used with window_policy="partial")
        n_workers: Number of parallel workers (1 = serial)
        executor: Worker pool kind used when n_workers > 1
        materialize_warn_rows: Pair x date row count above which the
            materialized reference path logs a memory warning
        log_level: Logging level name
    """

    model_config = {"frozen": True, "extra": "forbid"}

    window: int
    window_policy: Literal["full", "partial"] = "full"
    min_periods: Optional[int] = None
    n_workers: int = Field(default=1, ge=1)
    executor: Literal["thread", "process"] = "process"
    materialize_warn_rows: int = Field(default=10_000_000, gt=0)
    log_level: str = "INFO"

    @field_validator("window")
    @classmethod
    def validate_window(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"window must be positive, got {v}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"invalid log_level: {v}")
        return level

    @model_validator(mode="after")
    def validate_min_periods(self) -> "CorrelationConfig":
        if self.min_periods is None:
            return self
        if self.window_policy == "full":
            if self.min_periods != self.window:
                raise ValueError("min_periods only applies when window_policy is 'partial'")
        elif not 2 <= self.min_periods <= self.window:
            raise ValueError(
                f"min_periods must be between 2 and window ({self.window}), "
                f"got {self.min_periods}"
            )
        return self

    @property
    def effective_min_periods(self) -> int:
        """Smallest window that yields a correlation under this policy."""
        if self.window_policy == "full":
            return self.window
        if self.min_periods is not None:
            return self.min_periods
        return min(2, self.window)


def build_config(**params) -> CorrelationConfig:
    """
    Build a CorrelationConfig, reporting validation failures as ConfigurationError.

    Raises:
        ConfigurationError: If any parameter is invalid
    """
    try:
        return CorrelationConfig(**params)
    except ValidationError as e:
        raise ConfigurationError(f"invalid configuration: {e}") from e


def load_config(path: Union[str, Path]) -> CorrelationConfig:
    """
    Load a CorrelationConfig from a YAML file.

    The file holds a mapping of CorrelationConfig fields, e.g.::

        window: 60
        window_policy: full
        n_workers: 4

    Raises:
        ConfigurationError: If the file is missing, unparsable, or invalid
    """
    path = Path(path)
    if not path.exists():
        raise ConfigurationError(f"config file not found: {path}")

    try:
        with open(path) as f:
            params = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"failed to parse {path}: {e}") from e

    if not isinstance(params, dict):
        raise ConfigurationError(f"{path} must contain a mapping of settings")

    return build_config(**params)
