# core/triggered_average.py
"""
Event-triggered averaging of sampled signals.
"""

import warnings
import numpy as np
from typing import Optional, Sequence, Tuple
from scipy.stats import sem


def compute_triggered_average(signal: np.ndarray, triggers: Sequence[int],
                              idxwin: Sequence[int],
                              weights: Optional[Sequence[float]] = None
                              ) -> Tuple[np.ndarray, np.ndarray, np.ndarray]:
    """
    Compute the average of a signal around a set of trigger indices.

    Entries falling before the start or after the end of the signal are NaN
    (no wraparound). When weights are given, each snippet is multiplied by
    the weight of its trigger, e.g. the spike count of the triggering cell
    so that a bin with 3 spikes counts 3 times.

    Args:
        signal: Target signal, shape (n_samples,) or (n_samples, n_targets)
        triggers: Trigger sample indices
        idxwin: Integer offsets around each trigger
        weights: Optional per-trigger weights

    Returns:
        mean: NaN-ignoring mean over triggers, shape (n_lags,) or (n_lags, n_targets)
        sem: NaN-ignoring standard error of the mean, same shape as mean
        snippets: Per-trigger snippets, shape (n_triggers, n_lags[, n_targets])

    Example:
        >>> sig = np.array([0., 1., 2., 3., 4.])
        >>> m, s, r = compute_triggered_average(sig, [0, 4], [-1, 0, 1])
        >>> r
        array([[nan,  0.,  1.],
               [ 3.,  4., nan]])
    """
    signal = np.asarray(signal, dtype=float)
    triggers = np.asarray(triggers, dtype=int).ravel()
    idxwin = np.asarray(idxwin, dtype=int).ravel()
    n_samples = signal.shape[0]

    idx = triggers[:, None] + idxwin[None, :]
    valid = (idx >= 0) & (idx < n_samples)

    snippets = np.full(idx.shape + signal.shape[1:], np.nan)
    snippets[valid] = signal[idx[valid]]

    if weights is not None:
        weights = np.asarray(weights, dtype=float).ravel()
        if weights.size != triggers.size:
            raise ValueError(f"Got {weights.size} weights for {triggers.size} triggers")
        snippets *= weights.reshape((-1,) + (1,) * (snippets.ndim - 1))

    if triggers.size == 0:
        empty = np.full(snippets.shape[1:], np.nan)
        return empty, empty.copy(), snippets

    with warnings.catch_warnings():
        warnings.filterwarnings('ignore', category=RuntimeWarning)
        mean = np.nanmean(snippets, axis=0)
        stderr = np.asarray(sem(snippets, axis=0, nan_policy='omit'), dtype=float)

    return mean, stderr, snippets
