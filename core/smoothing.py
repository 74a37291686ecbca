# core/smoothing.py
"""
Boxcar smoothing of spike trains into windowed spike counts.
"""

import numpy as np


def smoothing_window(timewin: float, sample_rate: float) -> int:
    """Odd number of samples spanning `timewin` seconds, centered on each sample."""
    return int(2 * np.floor(0.5 * timewin * sample_rate) + 1)


def smooth_spike_counts(spike_train: np.ndarray, window: int) -> np.ndarray:
    """
    Convert spike trains into spike counts over a sliding window.

    Moving average multiplied by the window length, i.e. a moving sum. Near
    the edges the window shrinks symmetrically (sample k averages over
    min(h, k, n-1-k) samples on each side) instead of zero-padding. NaN
    samples are ignored; a window without any valid sample gives NaN.

    Args:
        spike_train: Spike counts, shape (n_samples,) or (n_samples, n_cells)
        window: Odd window length in samples

    Returns:
        Smoothed spike counts, same shape as spike_train
    """
    if window < 1 or window % 2 == 0:
        raise ValueError(f"Smoothing window must be a positive odd integer, got {window}")

    x = np.asarray(spike_train, dtype=float)
    squeeze = x.ndim == 1
    if squeeze:
        x = x[:, None]

    n = x.shape[0]
    if n == 0:
        return np.asarray(spike_train, dtype=float).copy()

    valid = ~np.isnan(x)
    csum = np.vstack([np.zeros((1, x.shape[1])), np.cumsum(np.where(valid, x, 0.0), axis=0)])
    ccount = np.vstack([np.zeros((1, x.shape[1])), np.cumsum(valid, axis=0)])

    k = np.arange(n)
    half = np.minimum.reduce([np.full(n, window // 2), k, n - 1 - k])
    lo = k - half
    hi = k + half + 1

    total = csum[hi] - csum[lo]
    count = ccount[hi] - ccount[lo]
    with np.errstate(invalid='ignore', divide='ignore'):
        smoothed = np.where(count > 0, total / count, np.nan) * window

    return smoothed[:, 0] if squeeze else smoothed
