"""
Heston Implied Volatility Surface

For each (strike, maturity) cell:
   1. price the call with the characteristic-function pricer
   2. invert Black-Scholes for the implied volatility

A cell whose price cannot be inverted (RootNotBracketed) or integrated
(NumericIntegrationFailure) is left as NaN; the sweep continues.
"""

import logging
from typing import Optional

import numpy as np
import pandas as pd

from heston_pricing.backend.core.errors import NumericIntegrationFailure, RootNotBracketed
from heston_pricing.backend.core.parameters import (
    ONE_YEAR,
    ContractSpec,
    HestonParameters,
    MarketEnvironment,
)
from heston_pricing.backend.solvers.analytical import AnalyticalPricer
from heston_pricing.backend.solvers.implied_vol import implied_volatility

logger = logging.getLogger(__name__)


def _cell_implied_vol(pricer, params, market, contract) -> float:
    try:
        price = pricer.call_price(params, market, contract)
        return implied_volatility(
            market.spot, contract.strike, contract.maturity, market.risk_free_rate, price
        )
    except (RootNotBracketed, NumericIntegrationFailure) as exc:
        logger.warning("Surface cell K=%.4f tau=%.4f left undefined: %s",
                       contract.strike, contract.maturity, exc)
        return np.nan


def heston_surface(
    params: HestonParameters,
    market: MarketEnvironment,
    max_maturity: float,
    n: int = 5,
    min_maturity: float = 1 / ONE_YEAR,
    pricer: Optional[AnalyticalPricer] = None
) -> pd.DataFrame:
    """
    Implied-vol table on an n × n grid of log-forward-strikes and maturities.

    Log-strikes span [-0.5, 0.5] around the forward, K = S₀·e^{rτ + k};
    maturities span [min_maturity, max_maturity].

    Returns:
        DataFrame with columns TTM (days), Moneyness (K·e^{-rτ}/S₀) and
        ImpliedVol, one row per cell (n² rows)
    """
    pricer = pricer or AnalyticalPricer()
    log_strikes = np.linspace(-0.5, 0.5, n)
    taus = np.linspace(min_maturity, max_maturity, n)

    rows = []
    for k in log_strikes:
        for tau in taus:
            strike = market.spot * np.exp(market.risk_free_rate * tau + k)
            contract = ContractSpec(strike=float(strike), maturity=float(tau))
            rows.append({
                'TTM': tau * ONE_YEAR,
                'Moneyness': contract.moneyness(market),
                'ImpliedVol': _cell_implied_vol(pricer, params, market, contract),
            })

    surface = pd.DataFrame(rows, columns=['TTM', 'Moneyness', 'ImpliedVol'])
    undefined = int(surface['ImpliedVol'].isna().sum())
    if undefined:
        logger.warning("%d of %d surface cells undefined", undefined, len(surface))
    return surface


def implied_vol_grid(
    params: HestonParameters,
    market: MarketEnvironment,
    strikes: np.ndarray,
    maturities: np.ndarray,
    pricer: Optional[AnalyticalPricer] = None
) -> np.ndarray:
    """
    Implied-vol matrix for plotting, shape (len(strikes), len(maturities)).
    """
    pricer = pricer or AnalyticalPricer()
    z = np.full((len(strikes), len(maturities)), np.nan)
    for i, K in enumerate(strikes):
        for j, tau in enumerate(maturities):
            contract = ContractSpec(strike=float(K), maturity=float(tau))
            z[i, j] = _cell_implied_vol(pricer, params, market, contract)
    return z


def default_strike_range(strike: float, n: int = 30) -> np.ndarray:
    """Strikes from 0.8K to 1.25K."""
    return np.linspace(0.8 * strike, 1.25 * strike, n)


def default_maturity_range(max_maturity: float, n: int = 30) -> np.ndarray:
    """Maturities from 0.21 years to max_maturity."""
    return np.linspace(0.21, max_maturity, n)
