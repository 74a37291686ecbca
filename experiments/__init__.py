# experiments/__init__.py
"""
Experiment coordination and execution modules.
"""
from .base_experiment import BaseExperiment
from .cross_spk_experiment import (
    CrossSpkExperiment,
    compute_one_shuffle,
    cross_spk_analysis
)

__all__ = [
    'BaseExperiment',
    'CrossSpkExperiment',
    'compute_one_shuffle',
    'cross_spk_analysis'
]
