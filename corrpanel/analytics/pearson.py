"""
Trailing-window Pearson correlation on two aligned arrays.

Pure numpy functions; no pandas objects cross this boundary so the kernel can
run inside worker processes with cheap pickling.
"""

from typing import Optional
import numpy as np
from numpy.lib.stride_tricks import sliding_window_view


def _window_corr(xw: np.ndarray, yw: np.ndarray) -> np.ndarray:
    """
    Pearson correlation for each row of two (n_windows, width) arrays.

    Rows where either side is constant get NaN.
    """
    flat = (xw.max(axis=1) == xw.min(axis=1)) | (yw.max(axis=1) == yw.min(axis=1))

    xc = xw - xw.mean(axis=1, keepdims=True)
    yc = yw - yw.mean(axis=1, keepdims=True)

    with np.errstate(invalid="ignore", divide="ignore"):
        # Rescale deviations to O(1) so squares neither underflow nor overflow
        xc = xc / np.abs(xc).max(axis=1, keepdims=True)
        yc = yc / np.abs(yc).max(axis=1, keepdims=True)
        cov = np.einsum("ij,ij->i", xc, yc)
        sxx = np.einsum("ij,ij->i", xc, xc)
        syy = np.einsum("ij,ij->i", yc, yc)
        corr = cov / (np.sqrt(sxx) * np.sqrt(syy))

    corr[flat] = np.nan
    return np.clip(corr, -1.0, 1.0)


def trailing_pearson(
    x: np.ndarray,
    y: np.ndarray,
    window: int,
    min_periods: Optional[int] = None
) -> np.ndarray:
    """
    Compute the trailing-window Pearson correlation of two aligned series.

    Position k of the result is the correlation of x[k-window+1:k+1] and
    y[k-window+1:k+1]. Near the start of the series, where fewer than
    `window` points exist, a shorter window x[:k+1] is used when it holds at
    least `min_periods` points; otherwise the result is NaN.

    Preconditions:
        - x and y are 1-D float arrays of equal length without NaN
        - window > 0
        - min_periods is None or 2 <= min_periods <= window

    Postconditions:
        - Returns array of len(x)
        - Values are in [-1, 1] or NaN
        - A window where x or y is constant yields NaN

    Args:
        x: First series values
        y: Second series values, aligned with x
        window: Trailing window length
        min_periods: Smallest usable window (default: window, i.e. full only)

    Returns:
        Array of correlations, NaN where undefined
    """
    x = np.asarray(x, dtype=np.float64)
    y = np.asarray(y, dtype=np.float64)
    if x.shape != y.shape or x.ndim != 1:
        raise ValueError(f"x and y must be 1-D arrays of equal length, got {x.shape} and {y.shape}")
    if window <= 0:
        raise ValueError("window must be positive")
    if min_periods is None:
        min_periods = window

    n = len(x)
    out = np.full(n, np.nan)

    # Correlation needs at least two points
    if window < 2 or n < min(min_periods, window) or n < 2:
        return out

    if n >= window:
        out[window - 1:] = _window_corr(
            sliding_window_view(x, window),
            sliding_window_view(y, window),
        )

    for k in range(max(min_periods, 2) - 1, min(window - 1, n)):
        out[k] = _window_corr(x[None, :k + 1], y[None, :k + 1])[0]

    return out
