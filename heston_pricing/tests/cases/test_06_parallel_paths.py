from typing import Tuple, Dict

import numpy as np
import pytest

from .common import (
    MonteCarloConfig,
    combine_partials,
    get_reference_contract,
    get_reference_market,
    get_reference_params,
    simulate_quietly,
)


def check_partition_merge() -> Tuple[bool, str, Dict]:
    """Chan's pairwise merge reproduces the statistics of the pooled sample."""
    rng = np.random.default_rng(42)
    chunks = [rng.exponential(5.0, size=n) for n in (17, 250, 3, 1000, 64)]

    partials = []
    for chunk in chunks:
        mean = float(np.mean(chunk))
        partials.append((len(chunk), mean, float(np.sum((chunk - mean) ** 2)), 1))

    n, mean, m2, negatives = combine_partials(partials)

    pooled = np.concatenate(chunks)
    expected_m2 = float(np.sum((pooled - pooled.mean()) ** 2))

    checks = {
        'count': n == len(pooled),
        'mean': np.isclose(mean, pooled.mean(), rtol=1e-12),
        'M2': np.isclose(m2, expected_m2, rtol=1e-10),
        'negatives': negatives == len(chunks),
    }
    passed = all(checks.values())
    message = "Merge matches pooled sample" if passed else f"Failed: {[k for k, v in checks.items() if not v]}"
    return passed, message, {'checks': checks}


def test_partition_merge():
    passed, message, _ = check_partition_merge()
    assert passed, message


def test_single_partition_merge_is_identity():
    assert combine_partials([(10, 1.5, 2.0, 3)]) == (10, 1.5, 2.0, 3)


@pytest.mark.parametrize('workers', [2, 4, 7])
def test_parallel_runs_are_reproducible(workers):
    config = MonteCarloConfig(step_count=100, path_count=2000, seed=21, workers=workers)
    args = (get_reference_params(), get_reference_market(), get_reference_contract(), config)

    a = simulate_quietly(*args)
    b = simulate_quietly(*args)

    assert a == b


def test_parallel_and_serial_runs_agree_statistically():
    params = get_reference_params()
    market = get_reference_market()
    contract = get_reference_contract()

    serial = simulate_quietly(params, market, contract,
                              MonteCarloConfig(step_count=200, path_count=4000, seed=1))
    parallel = simulate_quietly(params, market, contract,
                                MonteCarloConfig(step_count=200, path_count=4000, seed=1, workers=4))

    # Different streams, same estimator: within a few combined standard errors
    combined = np.hypot(serial.standard_error, parallel.standard_error)
    assert abs(serial.price - parallel.price) < 4 * combined
    assert parallel.standard_error == pytest.approx(serial.standard_error, rel=0.2)


def test_more_workers_than_paths():
    config = MonteCarloConfig(step_count=10, path_count=3, seed=0, workers=8)
    result = simulate_quietly(get_reference_params(), get_reference_market(), get_reference_contract(), config)

    assert np.isfinite(result.price)
    assert 0.0 <= result.negative_variance_fraction <= 1.0


def test_single_path_has_undefined_error():
    config = MonteCarloConfig(step_count=10, path_count=1, seed=0)
    result = simulate_quietly(get_reference_params(), get_reference_market(), get_reference_contract(), config)

    assert np.isfinite(result.price)
    assert np.isnan(result.standard_error)
