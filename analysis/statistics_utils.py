# analysis/statistics_utils.py
"""
Statistics of real vs. shuffled cross-correlograms, and remapping of
per-pair results onto the original cell indices.
"""

import numpy as np
from typing import Any, Dict, List, Tuple

from .common_utils import nan_mean, nan_std


def compute_signal_noise(cc_all: np.ndarray, cc_shf: np.ndarray) -> Dict[str, np.ndarray]:
    """
    Split cross-correlations into signal and noise components.

    The signal correlation is the average over shuffle controls; the noise
    correlation is what remains. cc_sig_sd is the dispersion of the noise
    estimate itself, i.e. the std over shuffles of (cc_all - cc_shf).

    Args:
        cc_all: Real correlations, shape (n, n, n_lags)
        cc_shf: Shuffled correlations, shape (n, n, n_lags, n_shuffle)

    Returns:
        Dictionary with 'cc_sig', 'cc_noise' and 'cc_sig_sd'
    """
    cc_sig = nan_mean(cc_shf, axis=-1)
    return {
        'cc_sig': cc_sig,
        'cc_noise': cc_all - cc_sig,
        'cc_sig_sd': nan_std(cc_all[..., None] - cc_shf, axis=-1, ddof=1)
    }


def find_peak_over_lags(cc: np.ndarray, lag_bins: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Largest-magnitude value along the lag axis (axis 2) and its lag.

    Ties go to the first lag; NaN lags are ignored; an all-NaN correlogram
    gives NaN for both outputs.

    Args:
        cc: Correlations, shape (n, n, n_lags, ...)
        lag_bins: Lags in seconds, shape (n_lags,)

    Returns:
        best_cc, best_lag: Arrays of shape cc.shape without the lag axis
    """
    magnitude = np.where(np.isnan(cc), -np.inf, np.abs(cc))
    imax = np.argmax(magnitude, axis=2)

    best_cc = np.take_along_axis(cc, np.expand_dims(imax, axis=2), axis=2).squeeze(axis=2)
    best_lag = np.asarray(lag_bins, dtype=float)[imax]

    undefined = np.all(np.isnan(cc), axis=2)
    best_cc[undefined] = np.nan
    best_lag[undefined] = np.nan
    return best_cc, best_lag


def compute_shuffle_pvalue(best_cc: np.ndarray, cc_shf: np.ndarray) -> np.ndarray:
    """
    Empirical p-value of the correlogram peak.

    Fraction of shuffle controls whose own peak magnitude is strictly larger
    than |best_cc|. Always a multiple of 1/n_shuffle; NaN where best_cc is NaN.
    An all-NaN shuffle (failed draw) never exceeds the real peak but stays in
    the denominator.

    Args:
        best_cc: Real peak correlations, shape (n, n)
        cc_shf: Shuffled correlations, shape (n, n, n_lags, n_shuffle)

    Returns:
        p-values, shape (n, n)
    """
    n_shuffle = cc_shf.shape[-1]
    shf_peak = np.max(np.where(np.isnan(cc_shf), -np.inf, np.abs(cc_shf)), axis=2)

    with np.errstate(invalid='ignore'):
        n_larger = np.sum(shf_peak > np.abs(best_cc)[..., None], axis=-1)

    pval = n_larger / n_shuffle
    pval[np.isnan(best_cc)] = np.nan
    return pval


def finalize_statistics(cc_all: np.ndarray, cc_shf: np.ndarray,
                        lag_bins: np.ndarray) -> Dict[str, np.ndarray]:
    """Signal/noise split, correlogram peaks and shuffle p-values."""
    stats = compute_signal_noise(cc_all, cc_shf)
    best_cc, best_lag = find_peak_over_lags(cc_all, lag_bins)
    stats.update({
        'best_cc': best_cc,
        'best_lag': best_lag,
        'pval': compute_shuffle_pvalue(best_cc, cc_shf)
    })
    return stats


def scatter_to_full(values: np.ndarray, cell_idx: np.ndarray, n_cells_orig: int) -> np.ndarray:
    """
    Place per-pair values of the selected cells at their original indices.

    Args:
        values: Array of shape (n, n, ...) over the selected cells
        cell_idx: Original index of each selected cell, shape (n,)
        n_cells_orig: Number of cells in the original spike matrix

    Returns:
        Array of shape (n_cells_orig, n_cells_orig, ...), NaN elsewhere
    """
    cell_idx = np.asarray(cell_idx, dtype=int)
    full = np.full((n_cells_orig, n_cells_orig) + values.shape[2:], np.nan)
    full[np.ix_(cell_idx, cell_idx)] = values
    return full


def significant_pairs(results: Dict[str, Any], alpha: float = 0.05) -> List[Dict[str, float]]:
    """
    List cell pairs whose correlogram peak is significant.

    Args:
        results: Output of the cross-correlation analysis
        alpha: p-value threshold (strict)

    Returns:
        One entry per pair (i < j, original indices), sorted by p-value and
        then by decreasing |best_cc|
    """
    pval = results['pval']
    with np.errstate(invalid='ignore'):
        i_idx, j_idx = np.nonzero(np.triu(pval < alpha, k=1))

    pairs = [{
        'cell_1': int(i),
        'cell_2': int(j),
        'best_cc': float(results['best_cc'][i, j]),
        'best_lag': float(results['best_lag'][i, j]),
        'pval': float(pval[i, j])
    } for i, j in zip(i_idx, j_idx)]

    pairs.sort(key=lambda p: (p['pval'], -abs(p['best_cc'])))
    return pairs
