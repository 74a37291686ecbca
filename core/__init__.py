# core/__init__.py
"""
Core numeric primitives for spike train correlation analyses.
"""

from .rng_utils import HierarchicalRNG, get_rng
from .params import ComparisonOp, Predicate, CrossParams, coerce_predicates
from .triggered_average import compute_triggered_average
from .smoothing import smoothing_window, smooth_spike_counts

__all__ = [
    'HierarchicalRNG',
    'get_rng',
    'ComparisonOp',
    'Predicate',
    'CrossParams',
    'coerce_predicates',
    'compute_triggered_average',
    'smoothing_window',
    'smooth_spike_counts'
]

__version__ = '1.0.0'
