# tests/__init__.py
"""
Test suite for the spike cross-correlation analysis.

This package contains tests for:
- Installation verification
- Numeric primitives (triggered average, smoothing, RNG)
- Cross-correlograms and their symmetry
- Shuffle controls and statistics
- End-to-end analysis scenarios
"""
