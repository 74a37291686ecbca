# analysis/cross_correlation.py
"""
Pair-wise cross-correlograms of smoothed spike counts.

Since spike trains are sparse it is much cheaper to build the
cross-correlation from the spike-triggered snippets of the other cell than
from a full cross-correlation of both signals.
"""

import warnings
import numpy as np
from typing import Optional, Tuple
from joblib import Parallel, delayed

from core.triggered_average import compute_triggered_average
from .common_utils import nan_sum

# Upper bound on the number of snippet entries held in memory at once
MAX_SNIPPET_ELEMENTS = 2 ** 24


def compute_lag_window(lag: float, sample_rate: float) -> Tuple[np.ndarray, np.ndarray]:
    """
    Symmetric lag axis of the cross-correlograms.

    Returns:
        idxwin: Integer sample offsets from -round(lag*fs) to round(lag*fs)
        lag_bins: Corresponding lags in seconds
    """
    nlag = int(round(lag * sample_rate))
    idxwin = np.arange(-nlag, nlag + 1)
    return idxwin, idxwin / sample_rate


def mask_time_window(spk_count: np.ndarray, tidx: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Spike counts restricted to the time window, and their zero-lag energy.

    Returns:
        masked: Spike counts with NaN outside the time window
        energy: Per-cell sum of squared counts within the window, shape (n_cells,)
    """
    masked = np.where(tidx[:, None], spk_count, np.nan)
    return masked, nan_sum(masked ** 2, axis=0)


def compute_cross_correlation_row(spk_count: np.ndarray, tidx: np.ndarray,
                                  icell: int, idxwin: np.ndarray,
                                  masked: Optional[np.ndarray] = None,
                                  energy: Optional[np.ndarray] = None) -> np.ndarray:
    """
    Cross-correlograms between cell `icell` and every cell j > icell.

    cc(i, j, lag) = sum_t sp_i(t) sp_j(t + lag) / sqrt(sum sp_i^2 * sum sp_j^2),
    with both signals restricted to the time window. Pairs with a zero
    normalization get NaN.

    Args:
        spk_count: Smoothed spike counts, shape (n_samples, n_cells)
        tidx: Boolean time mask
        icell: Index of the triggering cell
        idxwin: Integer lag offsets
        masked, energy: Output of mask_time_window, computed here if None

    Returns:
        Array of shape (n_cells, n_lags), NaN for j <= icell
    """
    n_cells = spk_count.shape[1]
    row = np.full((n_cells, idxwin.size), np.nan)
    targets = np.arange(icell + 1, n_cells)
    if targets.size == 0:
        return row

    # Spike indices of cell 1 within the time window
    st1 = np.flatnonzero(tidx & (spk_count[:, icell] > 0))

    # Values outside the time window never enter the correlogram
    if masked is None or energy is None:
        masked, energy = mask_time_window(spk_count, tidx)
    weights = spk_count[st1, icell]

    # Auto-correlations at zero lag
    c1 = energy[icell]
    c2 = energy[targets]

    chunk = max(1, MAX_SNIPPET_ELEMENTS // max(1, st1.size * idxwin.size))
    for start in range(0, targets.size, chunk):
        block = targets[start:start + chunk]

        # Snippets of the target cells around cell 1's spikes
        _, _, snippets = compute_triggered_average(masked[:, block], st1, idxwin, weights)

        # Unnormalized cross-correlation, (n_block, n_lags)
        c12 = nan_sum(snippets, axis=0).T

        denom = np.sqrt(c1 * c2[start:start + chunk])
        with np.errstate(invalid='ignore', divide='ignore'):
            row[block] = np.where(denom[:, None] > 0, c12 / denom[:, None], np.nan)

    return row


def _safe_row(spk_count: np.ndarray, tidx: np.ndarray, icell: int,
              idxwin: np.ndarray, masked: np.ndarray, energy: np.ndarray) -> np.ndarray:
    """Row computation that degrades to NaN instead of aborting the whole pass."""
    try:
        return compute_cross_correlation_row(spk_count, tidx, icell, idxwin, masked, energy)
    except (ValueError, FloatingPointError, IndexError, MemoryError) as e:
        warnings.warn(f"Cross-correlation of cell {icell} failed ({e}); "
                      f"its pairs are set to NaN", RuntimeWarning)
        return np.full((spk_count.shape[1], idxwin.size), np.nan)


def symmetrize_with_lag_reversal(cc: np.ndarray) -> np.ndarray:
    """
    Fill the strict lower triangle from the strict upper triangle.

    Uses cc(j, i, lag) = cc(i, j, -lag): the upper triangle is transposed and
    its lag axis (axis 2) reversed. Trailing axes (e.g. shuffles) are carried
    along slice-wise.

    Args:
        cc: Array of shape (n_cells, n_cells, n_lags, ...)

    Returns:
        Symmetrized copy of cc
    """
    cc = np.array(cc, dtype=float, copy=True)
    n_cells = cc.shape[0]
    if cc.ndim < 3 or cc.shape[1] != n_cells:
        raise ValueError(f"Expected an (n, n, n_lags, ...) array, got shape {cc.shape}")

    mirrored = np.swapaxes(cc, 0, 1)[:, :, ::-1]
    lower = np.tril(np.ones((n_cells, n_cells), dtype=bool), k=-1)
    cc[lower] = mirrored[lower]
    return cc


def compute_pairwise_cross_correlation(spk_count: np.ndarray, tidx: np.ndarray,
                                       idxwin: np.ndarray, n_jobs: int = 1,
                                       backend: Optional[str] = None) -> np.ndarray:
    """
    Cross-correlograms of all cell pairs.

    Rows of the upper triangle are independent and distributed over joblib
    workers; each worker returns its own row.

    Args:
        spk_count: Smoothed spike counts, shape (n_samples, n_cells)
        tidx: Boolean time mask
        idxwin: Integer lag offsets
        n_jobs: Number of joblib workers
        backend: joblib backend

    Returns:
        Symmetric correlation tensor of shape (n_cells, n_cells, n_lags)
    """
    spk_count = np.asarray(spk_count, dtype=float)
    tidx = np.asarray(tidx, dtype=bool)
    idxwin = np.asarray(idxwin, dtype=int)
    n_cells = spk_count.shape[1]
    masked, energy = mask_time_window(spk_count, tidx)

    if n_jobs == 1:
        rows = [_safe_row(spk_count, tidx, icell, idxwin, masked, energy)
                for icell in range(n_cells)]
    else:
        rows = Parallel(n_jobs=n_jobs, backend=backend)(
            delayed(_safe_row)(spk_count, tidx, icell, idxwin, masked, energy)
            for icell in range(n_cells)
        )

    cc = np.full((n_cells, n_cells, idxwin.size), np.nan)
    for icell, row in enumerate(rows):
        cc[icell] = row

    return symmetrize_with_lag_reversal(cc)
