"""
Black-Scholes Reference Formulas

═══════════════════════════════════════════════════════════════════════════════
LOGNORMAL EUROPEAN OPTION PRICES
═══════════════════════════════════════════════════════════════════════════════

Under constant volatility σ the call price is

   C = S·N(d₁) - K·e^{-rτ}·N(d₂)

   d₁ = [ln(S/K) + (r + σ²/2)τ] / (σ√τ)
   d₂ = d₁ - σ√τ

This is the inversion target of the implied-volatility solver and the limit
of the Heston price as η → 0 with v₀ = θ.

Negative σ is accepted and evaluated as written. The solver brackets on
[-1, 1], and the formula at -σ equals (S - K·e^{-rτ}) - C(σ), the negative
of the put price, so the bracket still changes sign around the true root.

═══════════════════════════════════════════════════════════════════════════════
"""

import numpy as np
from scipy.stats import norm


# Below this maturity the formula is replaced by the intrinsic value
MATURITY_EPS = 0.01


def black_scholes_call(
    S: float,
    K: float,
    tau: float,
    r: float,
    sigma: float
) -> float:
    """
    Black-Scholes European call price.

    Args:
        S: Spot price
        K: Strike price
        tau: Time to maturity in years
        r: Risk-free rate (continuous compounding)
        sigma: Volatility, may be zero or negative during root bracketing

    Returns:
        Call price
    """
    if tau < MATURITY_EPS:
        # Near expiry: σ√τ → 0, use the payoff
        return max(S - K, 0.0)

    if sigma == 0:
        # σ → 0⁺ limit: deterministic forward
        return max(S - K * np.exp(-r * tau), 0.0)

    sqrt_tau = np.sqrt(tau)
    d1 = (np.log(S / K) + (r + 0.5 * sigma**2) * tau) / (sigma * sqrt_tau)
    d2 = d1 - sigma * sqrt_tau

    return float(S * norm.cdf(d1) - K * np.exp(-r * tau) * norm.cdf(d2))


def black_scholes_put(S: float, K: float, tau: float, r: float, sigma: float) -> float:
    """
    European put via put-call parity.

    P = C - S + K·e^{-rτ}
    """
    if tau < MATURITY_EPS:
        return max(K - S, 0.0)
    call = black_scholes_call(S, K, tau, r, sigma)
    return float(call - S + K * np.exp(-r * tau))



def black_scholes_vega(S: float, K: float, tau: float, r: float, sigma: float) -> float:
    """
    Vega = ∂C/∂σ = S·φ(d₁)·√τ
    """
    if tau < MATURITY_EPS or sigma == 0:
        return 0.0
    sqrt_tau = np.sqrt(tau)
    d1 = (np.log(S / K) + (r + 0.5 * sigma**2) * tau) / (sigma * sqrt_tau)
    return float(S * norm.pdf(d1) * sqrt_tau)
