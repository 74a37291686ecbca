# analysis/shuffle_analysis.py
"""
Shuffle controls for noise correlations: discretization of behavioral
variables and shuffling of spike trains within their bins.

Shuffling time points within bins of position, speed, direction, ...
preserves each cell's tuning to these variables while destroying the
fine-timescale coincidences between cells.
"""

import numpy as np
from typing import Any, List, Mapping, Sequence, Tuple

from core.rng_utils import get_rng


def discretize_variable(values: Sequence[float], edges: Sequence[float]) -> np.ndarray:
    """
    Assign samples to bins [edges[k], edges[k+1]).

    The last bin also includes its right edge. Values outside the edges (or
    NaN) get -1.

    Args:
        values: Variable values, shape (n_samples,)
        edges: Strictly increasing bin edges

    Returns:
        Integer bin indices in [0, len(edges) - 2], or -1
    """
    values = np.asarray(values, dtype=float)
    edges = np.asarray(edges, dtype=float)
    n_bins = edges.size - 1

    idx = np.searchsorted(edges, values, side='right') - 1
    idx[values == edges[-1]] = n_bins - 1
    idx[(idx < 0) | (idx >= n_bins) | np.isnan(values)] = -1
    return idx


def discretize_variables(nav: Mapping[str, Any], variable_names: List[str],
                         bin_edges: List[Sequence[float]],
                         n_samples: int) -> Tuple[np.ndarray, int]:
    """
    Linear bin index of every sample across all shuffle variables.

    Bin indices of the individual variables are combined in C order over
    the Cartesian product of their bins. If no variable is given, all
    samples fall in bin 0.

    Args:
        nav: Behavior table
        variable_names: Names of the variables in nav
        bin_edges: Bin edges of each variable
        n_samples: Number of samples

    Returns:
        linear_bin_id: Shape (n_samples,), -1 where any variable is out of range
        n_bins: Total number of bins
    """
    if len(variable_names) == 0:
        return np.zeros(n_samples, dtype=int), 1

    subs = []
    for name, edges in zip(variable_names, bin_edges):
        if name not in nav:
            raise ValueError(f"Shuffle variable '{name}' is not a field of the behavior table")
        values = np.asarray(nav[name], dtype=float).ravel()
        if values.size != n_samples:
            raise ValueError(f"Shuffle variable '{name}' has {values.size} samples, "
                             f"expected {n_samples}")
        subs.append(discretize_variable(values, edges))

    sizes = tuple(len(edges) - 1 for edges in bin_edges)
    missing = np.any(np.vstack(subs) < 0, axis=0)

    linear_bin_id = np.ravel_multi_index([np.where(missing, 0, s) for s in subs], sizes)
    linear_bin_id[missing] = -1
    return linear_bin_id, int(np.prod(sizes))


def shuffle_within_bins(spike_train: np.ndarray, bin_id: np.ndarray,
                        base_seed: int, shuffle_id: int) -> np.ndarray:
    """
    Permute each cell's samples independently within each bin.

    Every cell gets its own uniformly random permutation inside every bin,
    drawn from the stream of (base_seed, shuffle_id, cell), so the spike
    count multiset of each cell in each bin is exactly preserved. Samples
    outside all bins are NaN in the output.

    Args:
        spike_train: Spike counts, shape (n_samples, n_cells); not modified
        bin_id: Linear bin index per sample (-1 for no bin)
        base_seed: Base seed of the analysis
        shuffle_id: Index of the shuffle control

    Returns:
        Shuffled spike counts, shape (n_samples, n_cells)
    """
    spike_train = np.asarray(spike_train, dtype=float)
    bin_id = np.asarray(bin_id, dtype=int).ravel()
    if bin_id.size != spike_train.shape[0]:
        raise ValueError(f"Got {bin_id.size} bin indices for {spike_train.shape[0]} samples")

    shuffled = np.full(spike_train.shape, np.nan)

    positions = np.flatnonzero(bin_id >= 0)
    if positions.size == 0:
        return shuffled
    bins = bin_id[positions]

    # Destination slots grouped by bin, in time order
    target = positions[np.argsort(bins, kind='stable')]

    for icell in range(spike_train.shape[1]):
        rng = get_rng(base_seed, shuffle_id, icell)
        # Same grouping by bin, random order within each bin
        source = positions[np.lexsort((rng.random(positions.size), bins))]
        shuffled[target, icell] = spike_train[source, icell]

    return shuffled
