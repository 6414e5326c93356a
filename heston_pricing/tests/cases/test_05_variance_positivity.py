import warnings
from typing import Tuple, Dict

import numpy as np
import pytest

from .common import (
    FellerConditionViolated,
    HestonParameters,
    MonteCarloConfig,
    MonteCarloSimulator,
    VarianceScheme,
    get_feller_violating_params,
    get_reference_contract,
    get_reference_market,
    get_wide_feller_params,
    scheme_for,
    simulate_quietly,
)


def check_mc_variance_positivity() -> Tuple[bool, str, Dict]:
    params = get_feller_violating_params()
    market = get_reference_market()
    mc = MonteCarloSimulator()

    min_variance = {}
    for scheme in (VarianceScheme.ABSORPTION, VarianceScheme.REFLECTION):
        lows = []
        for seed in range(5):
            _, V_paths = mc.simulate_paths(params, market, 1.0, 252, 1000, scheme=scheme, seed=seed)
            lows.append(float(np.min(V_paths)))
        min_variance[scheme.value] = min(lows)

    passed = all(v >= 0 for v in min_variance.values())
    message = f"Min variance = {min_variance}"
    details = {
        'min_variance': min_variance,
        'feller_ratio': params.feller_ratio
    }
    return passed, message, details


def check_negative_fraction_diagnostic() -> Tuple[bool, str, Dict]:
    market = get_reference_market()
    contract = get_reference_contract()

    wide, violating = {}, {}
    for scheme in VarianceScheme:
        config = MonteCarloConfig(step_count=500, path_count=2000, scheme=scheme, seed=7)
        wide[scheme.value] = simulate_quietly(
            get_wide_feller_params(), market, contract, config
        ).negative_variance_fraction
        violating[scheme.value] = simulate_quietly(
            get_feller_violating_params(), market, contract, config
        ).negative_variance_fraction

    checks = {
        'zero when Feller holds widely': all(f == 0 for f in wide.values()),
        'positive when Feller fails': all(f > 0 for f in violating.values()),
    }
    passed = all(checks.values())
    message = f"wide={wide}, violating={violating}"
    return passed, message, {'wide': wide, 'violating': violating, 'checks': checks}


def test_mc_variance_positivity():
    passed, message, _ = check_mc_variance_positivity()
    assert passed, message


def test_negative_fraction_diagnostic():
    passed, message, _ = check_negative_fraction_diagnostic()
    assert passed, message


def test_path_shapes_and_initial_state():
    params = get_wide_feller_params()
    market = get_reference_market()

    S_paths, V_paths = MonteCarloSimulator().simulate_paths(params, market, 0.5, 20, 7, seed=1)

    assert S_paths.shape == (7, 21)
    assert V_paths.shape == (7, 21)
    assert np.all(S_paths[:, 0] == market.spot)
    assert np.all(V_paths[:, 0] == params.initial_variance)
    assert np.all(S_paths > 0)


@pytest.mark.parametrize('kind,expected', [
    (VarianceScheme.ABSORPTION, 0.0),
    (VarianceScheme.REFLECTION, 0.04),
    (VarianceScheme.REFLECTION_MILSTEIN, 0.0025),
    (VarianceScheme.ALFONSI, -0.045),
])
def test_single_step_negative_policy(kind, expected):
    # Large negative shock: v = 0.04, κ=1, θ=0.04, η=1, Δt=0.01, Z=-4
    v = np.array([0.04])
    z = np.array([-4.0])
    strategy = scheme_for(kind)
    v_next, negative = strategy.step(v, 0.01, 1.0, 1.0, 0.04, z)

    assert negative[0]
    assert strategy.keeps_non_negative is (kind is not VarianceScheme.ALFONSI)
    if kind is VarianceScheme.ALFONSI:
        assert v_next[0] < 0
    else:
        assert v_next[0] >= 0
    assert v_next[0] == pytest.approx(expected)


def test_milstein_raw_update():
    v = np.array([0.04])
    z = np.array([0.5])
    dt, eta, kappa, theta = 0.01, 0.3, 2.0, 0.05

    v_next, negative = scheme_for('reflection_milstein').step(v, dt, eta, kappa, theta, z)

    raw = (np.sqrt(0.04) + eta / 2 * np.sqrt(dt) * 0.5) ** 2 - kappa * (0.04 - theta) * dt - eta**2 / 4 * dt
    assert not negative[0]
    assert v_next[0] == pytest.approx(raw)


def test_feller_advisory_on_construction():
    with pytest.warns(FellerConditionViolated):
        HestonParameters(0.5, 0.04, 2.0, -0.7, 0.04)

    with warnings.catch_warnings():
        warnings.simplefilter('error', FellerConditionViolated)
        get_wide_feller_params()


def test_mean_variance_follows_mean_reversion():
    params = get_wide_feller_params()
    params = HestonParameters(
        mean_reversion_rate=params.mean_reversion_rate,
        long_run_variance=params.long_run_variance,
        vol_of_vol=params.vol_of_vol,
        correlation=params.correlation,
        initial_variance=0.01,
    )

    _, V_paths = MonteCarloSimulator().simulate_paths(
        params, get_reference_market(), 0.5, 250, 4000, scheme='reflection_milstein', seed=3
    )

    for step in (50, 125, 250):
        t = 0.5 * step / 250
        assert np.mean(V_paths[:, step]) == pytest.approx(params.expected_variance(t), rel=0.02)
