# analysis/__init__.py
"""
Analysis modules for pair-wise spike train correlations.
"""

# Common utilities (used by multiple analysis modules)
from .common_utils import (
    nan_sum,
    nan_mean,
    nan_std,
    sample_rate_from_times,
    select_time_window,
    select_cells
)

# Cross-correlograms
from .cross_correlation import (
    compute_lag_window,
    mask_time_window,
    compute_cross_correlation_row,
    symmetrize_with_lag_reversal,
    compute_pairwise_cross_correlation
)

# Shuffle controls
from .shuffle_analysis import (
    discretize_variable,
    discretize_variables,
    shuffle_within_bins
)

# Statistics utilities
from .statistics_utils import (
    compute_signal_noise,
    find_peak_over_lags,
    compute_shuffle_pvalue,
    finalize_statistics,
    scatter_to_full,
    significant_pairs
)

__all__ = [
    # Common utilities
    'nan_sum',
    'nan_mean',
    'nan_std',
    'sample_rate_from_times',
    'select_time_window',
    'select_cells',

    # Cross-correlograms
    'compute_lag_window',
    'mask_time_window',
    'compute_cross_correlation_row',
    'symmetrize_with_lag_reversal',
    'compute_pairwise_cross_correlation',

    # Shuffle controls
    'discretize_variable',
    'discretize_variables',
    'shuffle_within_bins',

    # Statistics utilities
    'compute_signal_noise',
    'find_peak_over_lags',
    'compute_shuffle_pvalue',
    'finalize_statistics',
    'scatter_to_full',
    'significant_pairs'
]
