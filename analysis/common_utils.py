# analysis/common_utils.py
"""
Common utility functions shared across all analysis modules:
missing-value reductions, sampling rate, time-window and cell selection.
"""

import warnings
import numpy as np
from typing import Any, List, Mapping, Optional, Sequence

from core.params import Predicate


def nan_sum(array: np.ndarray, axis=None) -> np.ndarray:
    """Sum ignoring missing values (all-missing sums to 0)."""
    return np.nansum(array, axis=axis)


def nan_mean(array: np.ndarray, axis=None) -> np.ndarray:
    """Mean ignoring missing values, NaN when nothing is left, without empty slice warnings."""
    with warnings.catch_warnings():
        warnings.filterwarnings('ignore', category=RuntimeWarning,
                                message='Mean of empty slice')
        return np.nanmean(array, axis=axis)


def nan_std(array: np.ndarray, axis=None, ddof: int = 1) -> np.ndarray:
    """Standard deviation ignoring missing values, without degrees of freedom warnings."""
    with warnings.catch_warnings():
        warnings.filterwarnings('ignore', category=RuntimeWarning,
                                message='Degrees of freedom')
        return np.nanstd(array, axis=axis, ddof=ddof)


def sample_rate_from_times(sample_times: Sequence[float]) -> float:
    """Sampling rate as the reciprocal of the mean inter-sample interval."""
    sample_times = np.asarray(sample_times, dtype=float)
    if sample_times.size < 2:
        raise ValueError("At least two timestamps are needed to derive a sampling rate")
    dt = nan_mean(np.diff(sample_times))
    if not dt > 0:
        raise ValueError(f"Timestamps must be increasing, mean interval is {dt}")
    return float(1.0 / dt)


def select_time_window(nav: Mapping[str, Any], predicates: List[Predicate],
                       n_samples: Optional[int] = None) -> np.ndarray:
    """
    Build the boolean mask of samples satisfying all inclusion predicates.

    Predicates on columns absent from nav are skipped with a warning, since a
    parameter set may reference fields that a given session does not have.
    Predicates whose reference value cannot be compared sample-wise with the
    column (e.g. a list against a scalar comparison) are skipped the same way.
    Column vectors of shape (n, 1) are flattened.

    Args:
        nav: Behavior table (column name -> values)
        predicates: Inclusion predicates
        n_samples: Number of samples (length of the first matching column if None)

    Returns:
        Boolean mask of shape (n_samples,)
    """
    tidx = None if n_samples is None else np.ones(n_samples, dtype=bool)

    for predicate in predicates:
        if predicate.column not in nav:
            warnings.warn(f"Subset field '{predicate.column}' does not match any "
                          f"field of the behavior table; ignoring it", UserWarning)
            continue

        values = np.asarray(nav[predicate.column]).ravel()
        if tidx is None:
            tidx = np.ones(values.shape[0], dtype=bool)
        if values.shape[0] != tidx.shape[0]:
            raise ValueError(f"Field '{predicate.column}' has {values.shape[0]} samples, "
                             f"expected {tidx.shape[0]}")

        try:
            keep = predicate.apply(values)
        except (TypeError, ValueError) as e:
            keep = None
            reason = str(e)
        else:
            reason = f"comparison gives shape {keep.shape}"
        if keep is None or keep.shape != tidx.shape:
            warnings.warn(f"Subset entry on '{predicate.column}' cannot be evaluated "
                          f"({reason}); ignoring it", UserWarning)
            continue
        tidx &= keep

    if tidx is None:
        raise ValueError("n_samples is required when no predicate matches the behavior table")
    return tidx


def select_cells(spike_counts: np.ndarray, tidx: np.ndarray,
                 cell_idx: Optional[Sequence[Any]] = None,
                 nspk_th: float = 0) -> np.ndarray:
    """
    Keep candidate cells with more than nspk_th spikes within the time window.

    Args:
        spike_counts: Spike counts, shape (n_samples, n_cells)
        tidx: Boolean time mask
        cell_idx: Candidate cells: None (all), boolean mask or index sequence
        nspk_th: Spike count threshold (strict)

    Returns:
        Indices of the selected cells, in candidate order
    """
    n_cells = spike_counts.shape[1]

    if cell_idx is None:
        candidates = np.arange(n_cells)
    else:
        cell_idx = np.asarray(cell_idx)
        if cell_idx.dtype == bool:
            if cell_idx.size != n_cells:
                raise ValueError(f"Boolean cell_idx has {cell_idx.size} entries for {n_cells} cells")
            candidates = np.flatnonzero(cell_idx.ravel())
        else:
            candidates = cell_idx.ravel().astype(int)
            if np.any((candidates < 0) | (candidates >= n_cells)):
                raise ValueError(f"cell_idx out of range for {n_cells} cells")

    nspk = nan_sum(spike_counts[np.ix_(tidx, candidates)], axis=0)
    return candidates[nspk > nspk_th]
