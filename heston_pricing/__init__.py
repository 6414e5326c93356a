"""
═══════════════════════════════════════════════════════════════════════════════
HESTON PRICING - European Calls under Stochastic Volatility
═══════════════════════════════════════════════════════════════════════════════

Two independent pricers for the Heston (1993) model that must agree:

    - Semi-analytical: Fourier inversion of the characteristic function
    - Monte Carlo: log-Euler price steps with four variance schemes
      (absorption, reflection, reflection + Milstein, Alfonsi)

plus Black-Scholes implied-volatility inversion and surface building.

Mathematical Model:
    dS = rS dt + √v S dW₁
    dv = κ(θ-v)dt + η√v dW₂
    Corr(dW₁, dW₂) = ρ

Modules:
    backend.core     - Value types, errors, Black-Scholes formulas
    backend.solvers  - Analytical pricer, Monte Carlo, schemes, implied vol
    backend.surface  - Implied volatility surface
    backend.app      - Flask JSON API
    tests            - Validation suite

Usage:
    from heston_pricing import (
        AnalyticalPricer, MonteCarloSimulator, MonteCarloConfig,
        get_reference_params, get_reference_market, get_reference_contract,
    )

    params = get_reference_params()
    market = get_reference_market()
    contract = get_reference_contract()
    price = AnalyticalPricer().call_price(params, market, contract)
    mc = MonteCarloSimulator().simulate(params, market, contract, MonteCarloConfig(seed=1))

═══════════════════════════════════════════════════════════════════════════════
"""

__version__ = '1.0.0'

from heston_pricing.backend.core.errors import (
    HestonPricingError,
    InvalidParameter,
    NumericIntegrationFailure,
    RootNotBracketed,
    FellerConditionViolated,
)
from heston_pricing.backend.core.parameters import (
    HestonParameters,
    MarketEnvironment,
    ContractSpec,
    MonteCarloConfig,
    PricingResult,
    VarianceScheme,
    get_reference_params,
    get_reference_market,
    get_reference_contract,
)
from heston_pricing.backend.core.black_scholes import black_scholes_call
from heston_pricing.backend.solvers.analytical import AnalyticalPricer, heston_call_price
from heston_pricing.backend.solvers.implied_vol import implied_volatility
from heston_pricing.backend.solvers.monte_carlo import MonteCarloSimulator, heston_call_monte_carlo
from heston_pricing.backend.surface.builder import heston_surface
