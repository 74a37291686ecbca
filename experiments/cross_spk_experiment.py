# experiments/cross_spk_experiment.py
"""
Cross-correlation analysis between spike trains recorded during behavior.

Noise correlations are estimated by shuffling spike trains within bins of
behavioral variables (position, speed, direction): the average of the
shuffle controls estimates the correlation expected from shared tuning to
these variables, the remainder is the noise correlation.
"""

import time
import warnings
import numpy as np
from dataclasses import replace
from typing import Any, Dict, Mapping, Optional

from .base_experiment import BaseExperiment
from core.params import CrossParams
from core.smoothing import smoothing_window, smooth_spike_counts
from analysis.common_utils import sample_rate_from_times, select_time_window, select_cells
from analysis.cross_correlation import compute_lag_window, compute_pairwise_cross_correlation
from analysis.shuffle_analysis import discretize_variables, shuffle_within_bins
from analysis.statistics_utils import finalize_statistics, scatter_to_full

# Relative mismatch tolerated between parameter and timeline sampling rates
SAMPLE_RATE_TOLERANCE = 0.01


def compute_one_shuffle(spike_train: np.ndarray, bin_id: np.ndarray, tidx: np.ndarray,
                        idxwin: np.ndarray, window: int, base_seed: int,
                        shuffle_id: int) -> np.ndarray:
    """
    Cross-correlograms of one shuffle control.

    Shuffles raw spike trains within bins, smooths them and computes all
    pair-wise cross-correlations.

    Returns:
        Correlation tensor of shape (n_cells, n_cells, n_lags)
    """
    spike_train_shf = shuffle_within_bins(spike_train, bin_id, base_seed, shuffle_id)
    spk_count_shf = smooth_spike_counts(spike_train_shf, window)
    return compute_pairwise_cross_correlation(spk_count_shf, tidx, idxwin)


def _safe_shuffle(*args) -> Optional[np.ndarray]:
    try:
        return compute_one_shuffle(*args)
    except (ValueError, FloatingPointError, IndexError, MemoryError) as e:
        warnings.warn(f"Shuffle {args[-1]} failed ({e}); its correlations are set to NaN",
                      RuntimeWarning)
        return None


class CrossSpkExperiment(BaseExperiment):
    """Shuffle-corrected pair-wise cross-correlation analysis."""

    def __init__(self, params: Optional[CrossParams] = None, **overrides):
        """
        Initialize the analysis.

        Args:
            params: Analysis parameters (defaults if None)
            **overrides: Parameter fields to override

        Raises:
            ValueError: If the parameters are malformed
        """
        params = replace(params or CrossParams(), **overrides)
        params.validate()
        super().__init__(n_jobs=params.n_jobs, backend=params.backend,
                         verbose=params.verbose)
        self.params = params

    def resolve_sample_rate(self, timeline_rate: float) -> float:
        """Sampling rate used for the smoothing window, cross-checked against the timeline."""
        if self.params.sample_rate is None:
            return timeline_rate

        mismatch = abs(self.params.sample_rate - timeline_rate) / timeline_rate
        if mismatch > SAMPLE_RATE_TOLERANCE:
            warnings.warn(f"sample_rate parameter ({self.params.sample_rate:.3f} Hz) differs "
                          f"from the timeline sampling rate ({timeline_rate:.3f} Hz)",
                          UserWarning)
        return float(self.params.sample_rate)

    def compute_shuffle_distribution(self, spike_train: np.ndarray, bin_id: np.ndarray,
                                     tidx: np.ndarray, idxwin: np.ndarray,
                                     window: int) -> np.ndarray:
        """
        Cross-correlograms of all shuffle controls.

        Shuffles are independent and distributed over workers; each one
        fills its own slab of the output.

        Returns:
            Array of shape (n_cells, n_cells, n_lags, n_shuffle)
        """
        n_cells = spike_train.shape[1]
        n_shuffle = int(self.params.n_shuffle)

        jobs = [(spike_train, bin_id, tidx, idxwin, window, self.params.seed, ishf)
                for ishf in range(n_shuffle)]
        slabs = self.run_parallel(_safe_shuffle, jobs)

        cc_shf = np.full((n_cells, n_cells, idxwin.size, n_shuffle), np.nan)
        for ishf, slab in enumerate(slabs):
            if slab is not None:
                cc_shf[..., ishf] = slab

        n_failed = sum(slab is None for slab in slabs)
        if n_failed:
            warnings.warn(f"{n_failed}/{n_shuffle} shuffle controls failed; p-values keep "
                          f"n_shuffle={n_shuffle} as denominator and count failed draws as "
                          f"not exceeding the real peak", RuntimeWarning)
        self.log(f"  ✓ {n_shuffle - n_failed}/{n_shuffle} shuffle controls computed")
        return cc_shf

    def run(self, nav: Mapping[str, Any], spike_counts: np.ndarray) -> Dict[str, Any]:
        """
        Run the cross-correlation analysis.

        Args:
            nav: Behavior table (column name -> values), including timestamps
                 under params.time_key
            spike_counts: Spike counts, shape (n_samples, n_cells)

        Returns:
            Dictionary with the effective parameters ('params'), the lag axis
            ('lag_bins', seconds), the analyzed cells ('cell_idx'), correlation
            tensors of shape (n_cells, n_cells, n_lags) ('cc_all', 'cc_noise',
            'cc_sig', 'cc_sig_sd') and peak statistics of shape
            (n_cells, n_cells) ('best_cc', 'best_lag', 'pval'), indexed by
            original cell and NaN for cells that were not analyzed.
        """
        start_time = time.time()
        params = self.params

        spike_counts = np.asarray(spike_counts, dtype=float)
        if spike_counts.ndim != 2:
            raise ValueError(f"Expected a 2D spike count matrix, got shape {spike_counts.shape}")
        if params.time_key not in nav:
            raise ValueError(f"Behavior table has no '{params.time_key}' field")
        sample_times = np.asarray(nav[params.time_key], dtype=float).ravel()
        n_samples = sample_times.size
        if spike_counts.shape[0] != n_samples:
            raise ValueError(f"Spike count matrix has {spike_counts.shape[0]} samples, "
                             f"timeline has {n_samples}")

        sample_rate = sample_rate_from_times(sample_times)
        smoothing_rate = self.resolve_sample_rate(sample_rate)

        # Time indices and cells over which correlations are estimated
        tidx = select_time_window(nav, params.subset, n_samples)
        cell_idx = select_cells(spike_counts, tidx, params.cell_idx, params.nspk_th)
        spike_train = spike_counts[:, cell_idx]

        # Fail on missing shuffle variables before any heavy computation
        bin_id, n_bins = discretize_variables(nav, params.variable_names,
                                              params.bin_edges, n_samples)

        self.log(f"Cross-correlation analysis: {cell_idx.size}/{spike_counts.shape[1]} cells, "
                 f"{int(np.sum(tidx))}/{n_samples} samples, {n_bins} shuffle bins")

        window = smoothing_window(params.timewin, smoothing_rate)
        idxwin, lag_bins = compute_lag_window(params.lag, sample_rate)

        spk_count = smooth_spike_counts(spike_train, window)
        cc_all = compute_pairwise_cross_correlation(spk_count, tidx, idxwin,
                                                    self.n_jobs, self.backend)
        self.log("  ✓ Cross-correlations of original spike trains computed")

        cc_shf = self.compute_shuffle_distribution(spike_train, bin_id, tidx, idxwin, window)
        stats = finalize_statistics(cc_all, cc_shf, lag_bins)

        n_cells_orig = spike_counts.shape[1]
        results = {
            'params': replace(params, sample_rate=smoothing_rate, tidx=tidx),
            'lag_bins': lag_bins,
            'cell_idx': cell_idx,
            'sample_rate': sample_rate,
            'n_shuffle': int(params.n_shuffle),
            'n_bins': n_bins,
            'cc_all': scatter_to_full(cc_all, cell_idx, n_cells_orig),
        }
        for key in ['cc_noise', 'cc_sig', 'cc_sig_sd', 'best_cc', 'best_lag', 'pval']:
            results[key] = scatter_to_full(stats[key], cell_idx, n_cells_orig)
        results['computation_time'] = time.time() - start_time

        self.log(f"  ✓ Done in {results['computation_time']:.1f}s")
        return results


def cross_spk_analysis(nav: Mapping[str, Any], spike_counts: np.ndarray,
                       params: Optional[CrossParams] = None, **overrides) -> Dict[str, Any]:
    """Convenience function running CrossSpkExperiment(params, **overrides)."""
    return CrossSpkExperiment(params, **overrides).run(nav, spike_counts)
