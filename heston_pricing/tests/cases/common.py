import warnings
from typing import List

import numpy as np

from heston_pricing.backend.core.black_scholes import black_scholes_call, black_scholes_put
from heston_pricing.backend.core.errors import (
    FellerConditionViolated,
    InvalidParameter,
    NumericIntegrationFailure,
    RootNotBracketed,
)
from heston_pricing.backend.core.parameters import (
    ONE_YEAR,
    ContractSpec,
    HestonParameters,
    MarketEnvironment,
    MonteCarloConfig,
    PricingResult,
    VarianceScheme,
    get_black_scholes_limit_params,
    get_feller_violating_params,
    get_reference_contract,
    get_reference_market,
    get_reference_params,
)
from heston_pricing.backend.solvers.analytical import AnalyticalPricer
from heston_pricing.backend.solvers.implied_vol import implied_volatility
from heston_pricing.backend.solvers.monte_carlo import MonteCarloSimulator, combine_partials
from heston_pricing.backend.solvers.schemes import scheme_for
from heston_pricing.backend.surface.builder import (
    default_maturity_range,
    default_strike_range,
    heston_surface,
    implied_vol_grid,
)


def get_feller_params() -> HestonParameters:
    """Comfortably Feller-satisfying set (ratio 1.78)."""
    return HestonParameters(
        mean_reversion_rate=2.0,
        long_run_variance=0.04,
        vol_of_vol=0.3,
        correlation=-0.7,
        initial_variance=0.04,
    )


def get_wide_feller_params() -> HestonParameters:
    """Feller ratio 40: discretized variance should never cross zero."""
    return HestonParameters(
        mean_reversion_rate=5.0,
        long_run_variance=0.04,
        vol_of_vol=0.1,
        correlation=-0.5,
        initial_variance=0.04,
    )


def simulate_quietly(params, market, contract, config) -> PricingResult:
    """Monte Carlo run with the Feller advisory silenced."""
    with warnings.catch_warnings():
        warnings.simplefilter('ignore', FellerConditionViolated)
        return MonteCarloSimulator().simulate(params, market, contract, config)


def is_non_increasing(values: List[float], tol: float = 1e-10) -> bool:
    return all(b <= a + tol for a, b in zip(values, values[1:]))


def is_non_decreasing(values: List[float], tol: float = 1e-10) -> bool:
    return all(b >= a - tol for a, b in zip(values, values[1:]))


def is_numerically_stable(value: float, bound: float = 1e6) -> bool:
    return np.isfinite(value) and abs(value) <= bound
