"""
Implied Volatility by Bracketed Root-Finding

Find σ such that BS(S, K, τ, r, σ) = price.

   f(σ) = BS(S, K, τ, r, σ) - price

f is searched on the fixed bracket [-1, 1] with Brent's method. If f(-1)
and f(1) share a sign the bracket is reported as failed (RootNotBracketed)
rather than widened: a silently widened bracket would hide prices outside
the arbitrage-free band.
"""

import logging

from scipy.optimize import brentq

from heston_pricing.backend.core.black_scholes import black_scholes_call
from heston_pricing.backend.core.errors import RootNotBracketed

logger = logging.getLogger(__name__)


def implied_volatility(
    S: float,
    K: float,
    tau: float,
    r: float,
    price: float,
    lower: float = -1.0,
    upper: float = 1.0,
    max_iter: int = 100
) -> float:
    """
    Black-Scholes implied volatility of a European call.

    Args:
        S: Spot price
        K: Strike
        tau: Time to maturity
        r: Risk-free rate
        price: Call price to invert
        lower, upper: Root bracket (default [-1, 1])
        max_iter: Iteration cap for Brent's method

    Returns:
        Implied volatility

    Raises:
        RootNotBracketed: f(lower) and f(upper) have the same sign or are equal
    """
    def f(x):
        return black_scholes_call(S, K, tau, r, x) - price

    f_lower = f(lower)
    f_upper = f(upper)

    # Same sign, or flat (formula independent of σ, e.g. τ < 0.01)
    if f_lower * f_upper > 0 or f_lower == f_upper:
        logger.warning("Implied vol not bracketed: tau=%s K=%s price=%s", tau, K, price)
        raise RootNotBracketed(tau, strike=K, target_price=price, bracket=(lower, upper))

    return brentq(f, lower, upper, maxiter=max_iter)
