# tests/test_shuffle_statistics.py
"""
Tests of time-window and cell selection, behavioral discretization,
within-bin shuffling, and the statistics computed from shuffle controls.
"""

import sys
import os
import warnings
import numpy as np
import pytest

current_dir = os.path.dirname(__file__)
project_root = os.path.dirname(current_dir)
sys.path.insert(0, project_root)


def test_select_time_window():
    """Predicates are AND-ed; unknown fields warn and are skipped."""
    print("Testing time window selection...")
    from analysis.common_utils import select_time_window
    from core.params import coerce_predicates

    nav = {
        'sample_times': np.arange(4) / 10.0,
        'Spd': np.array([0., 3., 5., 1.]),
        'Condition': np.array([1, 2, 3, 1]),
    }
    predicates = coerce_predicates([('Spd', '>=', 2.5), ('Condition', 'ismember', [2, 3])])
    assert np.array_equal(select_time_window(nav, predicates, 4), [False, True, True, False])

    predicates = coerce_predicates([('Spd', '<=', 3), ('laptype', '==', 1)])
    with pytest.warns(UserWarning):
        tidx = select_time_window(nav, predicates, 4)
    assert np.array_equal(tidx, [True, True, False, True])

    assert np.all(select_time_window(nav, [], 4))
    print("  ✓ Time window masks")

    # Reference values that do not compare sample-wise are skipped
    predicates = coerce_predicates([('Spd', '>=', [1, 2]), ('Condition', '==', 1)])
    with pytest.warns(UserWarning):
        tidx = select_time_window(nav, predicates, 4)
    assert np.array_equal(tidx, [True, False, False, True])
    print("  ✓ Non-broadcastable reference value ignored")

    # Column vectors, as imported from MATLAB tables, are flattened
    column_nav = {'Spd': nav['Spd'][:, None]}
    tidx = select_time_window(column_nav, coerce_predicates([('Spd', '>=', 2.5)]), 4)
    assert tidx.shape == (4,)
    assert np.array_equal(tidx, [False, True, True, False])
    print("  ✓ Column-vector fields")


def test_select_cells():
    """Cells need strictly more than nspk_th spikes inside the window."""
    print("Testing cell selection...")
    from analysis.common_utils import select_cells

    spikes = np.array([[1., 0., 3.],
                       [1., np.nan, 0.],
                       [0., 0., 5.]])
    tidx = np.array([True, True, False])

    assert np.array_equal(select_cells(spikes, tidx), [0, 2])
    assert np.array_equal(select_cells(spikes, tidx, nspk_th=1), [0, 2])
    assert np.array_equal(select_cells(spikes, tidx, nspk_th=2), [2])
    assert np.array_equal(select_cells(spikes, tidx, [2, 0]), [2, 0])
    assert np.array_equal(select_cells(spikes, tidx, np.array([False, True, True])), [2])

    with pytest.raises(ValueError):
        select_cells(spikes, tidx, [5])
    print("  ✓ Order-preserving cell selection")


def test_sample_rate_from_times():
    from analysis.common_utils import sample_rate_from_times

    assert np.isclose(sample_rate_from_times(np.arange(100) / 30.0), 30.0)
    with pytest.raises(ValueError):
        sample_rate_from_times([1.0])


def test_discretize_variable():
    """Half-open bins, last bin closed, out-of-range and NaN mapped to -1."""
    from analysis.shuffle_analysis import discretize_variable

    values = np.array([-1., 0., 0.5, 1., 2., 3., np.nan])
    assert np.array_equal(discretize_variable(values, [0, 1, 2]), [-1, 0, 0, 1, 1, -1, -1])
    assert np.array_equal(discretize_variable([60., np.inf], [0, 50, np.inf]), [1, 1])
    print("  ✓ Single variable discretization")


def test_discretize_variables():
    """Bins of several variables are linearized in C order."""
    print("Testing multi-variable discretization...")
    from analysis.shuffle_analysis import discretize_variables

    nav = {'Xpos': [0.5, 1.5, 0.5, 1.5, 5.0], 'XDir': [-1, -1, 1, 1, 1]}
    bin_id, n_bins = discretize_variables(nav, ['Xpos', 'XDir'], [[0, 1, 2], [-2, 0, 2]], 5)
    assert n_bins == 4
    assert np.array_equal(bin_id, [0, 2, 1, 3, -1])

    bin_id, n_bins = discretize_variables(nav, [], [], 5)
    assert n_bins == 1 and np.array_equal(bin_id, np.zeros(5))

    with pytest.raises(ValueError):
        discretize_variables(nav, ['Spd'], [[0, 1]], 5)
    print("  ✓ Linear bin indices")


def test_shuffle_preserves_bin_marginals():
    """Each cell's multiset of values within each bin survives the shuffle."""
    print("Testing within-bin shuffle...")
    from analysis.shuffle_analysis import shuffle_within_bins

    rng = np.random.default_rng(3)
    spikes = rng.poisson(0.5, (300, 4)).astype(float)
    bin_id = rng.integers(0, 6, 300)
    bin_id[:10] = -1
    original = spikes.copy()

    shuffled = shuffle_within_bins(spikes, bin_id, base_seed=0, shuffle_id=0)

    assert np.array_equal(spikes, original)
    assert np.all(np.isnan(shuffled[:10]))
    for k in range(6):
        in_bin = bin_id == k
        for icell in range(4):
            assert np.array_equal(np.sort(shuffled[in_bin, icell]), np.sort(spikes[in_bin, icell]))
    print("  ✓ Per-bin, per-cell multisets preserved")

    assert not np.array_equal(shuffled[10:], spikes[10:])
    print("  ✓ Spike trains actually permuted")


def test_shuffle_determinism_and_independence():
    """Shuffles are reproducible per seed and independent across cells."""
    from analysis.shuffle_analysis import shuffle_within_bins

    rng = np.random.default_rng(4)
    train = rng.poisson(0.3, 200).astype(float)
    spikes = np.column_stack([train, train])
    bin_id = np.zeros(200, dtype=int)

    a = shuffle_within_bins(spikes, bin_id, base_seed=7, shuffle_id=2)
    b = shuffle_within_bins(spikes, bin_id, base_seed=7, shuffle_id=2)
    assert np.array_equal(a, b)
    assert not np.array_equal(a, shuffle_within_bins(spikes, bin_id, base_seed=7, shuffle_id=3))
    assert not np.array_equal(a, shuffle_within_bins(spikes, bin_id, base_seed=8, shuffle_id=2))

    # Identical cells are shuffled with different permutations
    assert not np.array_equal(a[:, 0], a[:, 1])
    print("  ✓ Deterministic, cell-independent shuffles")

    # Bins without samples are skipped
    empty = shuffle_within_bins(spikes, np.full(200, -1), base_seed=7, shuffle_id=0)
    assert np.all(np.isnan(empty))


def test_signal_noise_split():
    """Signal = mean of shuffles, noise = real - signal, sd over (real - shuffles)."""
    from analysis.statistics_utils import compute_signal_noise

    cc_all = np.ones((1, 1, 1))
    cc_shf = np.array([0.0, 0.2, 0.4, np.nan]).reshape(1, 1, 1, 4)
    stats = compute_signal_noise(cc_all, cc_shf)

    assert np.isclose(stats['cc_sig'][0, 0, 0], 0.2)
    assert np.isclose(stats['cc_noise'][0, 0, 0], 0.8)
    assert np.isclose(stats['cc_sig_sd'][0, 0, 0], 0.2)

    stats = compute_signal_noise(np.full((1, 1, 1), np.nan), np.full((1, 1, 1, 3), np.nan))
    assert np.isnan(stats['cc_sig'][0, 0, 0]) and np.isnan(stats['cc_sig_sd'][0, 0, 0])
    print("  ✓ Signal/noise split")


def test_find_peak_over_lags():
    """Largest magnitude wins, ties go to the first lag, all-NaN gives NaN."""
    from analysis.statistics_utils import find_peak_over_lags

    cc = np.full((1, 2, 3), np.nan)
    cc[0, 0] = [0.2, -0.5, 0.5]
    best_cc, best_lag = find_peak_over_lags(cc, np.array([-1., 0., 1.]))

    assert best_cc[0, 0] == -0.5 and best_lag[0, 0] == 0.0
    assert np.isnan(best_cc[0, 1]) and np.isnan(best_lag[0, 1])

    cc[0, 0] = [np.nan, 0.1, -0.3]
    best_cc, best_lag = find_peak_over_lags(cc, np.array([-1., 0., 1.]))
    assert best_cc[0, 0] == -0.3 and best_lag[0, 0] == 1.0
    print("  ✓ Correlogram peaks")


def test_shuffle_pvalue():
    """p = fraction of shuffles whose peak magnitude strictly exceeds the real one."""
    print("Testing shuffle p-values...")
    from analysis.statistics_utils import compute_shuffle_pvalue

    cc_shf = np.zeros((1, 1, 2, 4))
    cc_shf[0, 0, 0] = [0.6, 0.5, -0.7, 0.1]
    assert compute_shuffle_pvalue(np.array([[0.5]]), cc_shf)[0, 0] == 0.5
    assert compute_shuffle_pvalue(np.array([[-0.5]]), cc_shf)[0, 0] == 0.5
    assert np.isnan(compute_shuffle_pvalue(np.array([[np.nan]]), cc_shf)[0, 0])

    rng = np.random.default_rng(5)
    n_shuffle = 17
    pval = compute_shuffle_pvalue(rng.normal(size=(4, 4)), rng.normal(size=(4, 4, 3, n_shuffle)))
    assert np.all((pval >= 0) & (pval <= 1))
    assert np.allclose(pval * n_shuffle, np.round(pval * n_shuffle))
    print("  ✓ p-values are k / n_shuffle")


def test_scatter_to_full():
    """Values land at their original indices, NaN elsewhere."""
    from analysis.statistics_utils import scatter_to_full

    values = np.arange(8, dtype=float).reshape(2, 2, 2)
    full = scatter_to_full(values, np.array([3, 1]), 4)

    assert full.shape == (4, 4, 2)
    assert np.array_equal(full[3, 1], values[0, 1])
    assert np.array_equal(full[1, 3], values[1, 0])
    assert np.array_equal(full[3, 3], values[0, 0])
    assert np.all(np.isnan(full[0])) and np.all(np.isnan(full[:, 2]))

    full = scatter_to_full(np.ones((1, 1)), np.array([0]), 2)
    assert full[0, 0] == 1 and np.isnan(full[1, 1])
    print("  ✓ Scatter to original indices")


def test_significant_pairs():
    from analysis.statistics_utils import significant_pairs

    pval = np.full((3, 3), np.nan)
    best_cc = np.full((3, 3), np.nan)
    pval[0, 1] = pval[1, 0] = 0.0
    pval[0, 2] = pval[2, 0] = 0.3
    pval[1, 2] = pval[2, 1] = 0.01
    best_cc[0, 1], best_cc[1, 2] = 0.8, 0.4
    results = {'pval': pval, 'best_cc': best_cc, 'best_lag': np.zeros((3, 3))}

    pairs = significant_pairs(results, alpha=0.05)
    assert [(p['cell_1'], p['cell_2']) for p in pairs] == [(0, 1), (1, 2)]
    assert pairs[0]['best_cc'] == 0.8
    print("  ✓ Significant pairs")


def main():
    """Run all selection, shuffle and statistics tests."""
    tests = [
        ("Time Window Selection", test_select_time_window),
        ("Cell Selection", test_select_cells),
        ("Sample Rate", test_sample_rate_from_times),
        ("Discretize Variable", test_discretize_variable),
        ("Discretize Variables", test_discretize_variables),
        ("Shuffle Bin Marginals", test_shuffle_preserves_bin_marginals),
        ("Shuffle Determinism", test_shuffle_determinism_and_independence),
        ("Signal/Noise Split", test_signal_noise_split),
        ("Peak Over Lags", test_find_peak_over_lags),
        ("Shuffle p-values", test_shuffle_pvalue),
        ("Scatter To Full", test_scatter_to_full),
        ("Significant Pairs", test_significant_pairs),
    ]

    results = []
    for test_name, test_func in tests:
        try:
            with warnings.catch_warnings():
                warnings.simplefilter('ignore')
                test_func()
            results.append((test_name, True))
        except Exception as e:
            print(f"\n✗ {test_name} failed with exception: {e}")
            import traceback
            traceback.print_exc()
            results.append((test_name, False))

    print("\n" + "=" * 70)
    print("SHUFFLE AND STATISTICS TEST SUMMARY")
    print("=" * 70)
    for test_name, success in results:
        status = "✅ PASS" if success else "❌ FAIL"
        print(f"  {test_name:40s}: {status}")

    passed = sum(1 for _, s in results if s)
    print(f"\nResults: {passed}/{len(results)} tests passed")
    return 0 if passed == len(results) else 1


if __name__ == "__main__":
    exit(main())
