"""
Heston Semi-Analytical Pricing via Fourier Inversion

═══════════════════════════════════════════════════════════════════════════════
CHARACTERISTIC FUNCTION APPROACH TO OPTION PRICING
═══════════════════════════════════════════════════════════════════════════════

1. PRICING FORMULA:
   ═══════════════════════════════════════════════════════════════════════════

   C = S₀·P₁ - K·e^{-rτ}·P₀

   P₁, P₀ are in-the-money probabilities under the share measure and the
   risk-neutral measure:

   P_j = 1/2 + (1/π) ∫₀^∞ Re[ exp(C_j θ + D_j v₀ + iux) / (iu) ] du

   with x = ln(F/K), F = S₀·e^{rτ}.

2. COEFFICIENTS (Gatheral's notation):
   ═══════════════════════════════════════════════════════════════════════════

   a = κθ
   b₁ = κ - ρη,   b₀ = κ
   α₁ = -u²/2 - iu/2 + iu,   α₀ = -u²/2 - iu/2
   β  = b_j - ρηiu
   γ  = η²/2

   d  = √(β² - 4αγ)
   r± = (β ± d) / (2γ)
   g  = r₋ / r₊

   D = r₋ · (1 - e^{-dτ}) / (1 - g·e^{-dτ})
   C = κ · [ r₋τ - (2/η²)·ln((1 - g·e^{-dτ}) / (1 - g)) ]

3. BRANCH CUT:
   ═══════════════════════════════════════════════════════════════════════════

   d is taken with Re(d) ≥ 0 (principal root, negated if needed). Then
   |e^{-dτ}| ≤ 1 and |g| ≤ 1, the argument of the logarithm never winds
   around the origin, and the principal complex log is continuous in u.
   The textbook form with g' = 1/g and e^{+dτ} jumps branches at long
   maturities and produces wrong prices.

   r₋ is evaluated as 2α/(β + d), the same quantity as (β - d)/(2γ), which
   loses all precision when η is small and β ≈ d.

   For the same reason the logarithm in C is written as ln(1 + w),

   w = g·(1 - e^{-dτ}) / (1 - g),   ln(1 + w) = ½·log1p(2·Re w + |w|²) + i·arg(1 + w)

   because w is O(η²) and forming 1 + w first rounds it away before the
   2/η² factor scales it back up.

4. NUMERICAL INTEGRATION:
   ═══════════════════════════════════════════════════════════════════════════

   - 1/(iu) is singular at u = 0 but the integrand has a finite limit;
     abscissae below U_FLOOR are evaluated at U_FLOOR.
   - The range [0, ∞) is integrated by adaptive quadrature
     (scipy.integrate.quad, QUADPACK QAGI) with a subdivision budget.
   - A non-converged integral raises NumericIntegrationFailure.

═══════════════════════════════════════════════════════════════════════════════
"""

import logging
from typing import Tuple

import numpy as np
from scipy.integrate import quad

from heston_pricing.backend.core.errors import NumericIntegrationFailure
from heston_pricing.backend.core.parameters import (
    HestonParameters,
    MarketEnvironment,
    ContractSpec,
    PricingResult,
)

logger = logging.getLogger(__name__)


U_FLOOR = 1e-8


class AnalyticalPricer:
    """
    Heston semi-analytical call pricer.

    Holds only integration settings; model, market and contract are passed
    to every call.
    """

    def __init__(self, limit: int = 1000, abs_tol: float = 1e-6):
        """
        Args:
            limit: Maximum number of quadrature subdivisions
            abs_tol: Largest acceptable quadrature error estimate when
                QUADPACK flags a problem
        """
        self.limit = limit
        self.abs_tol = abs_tol

    def characteristic_function(
        self,
        u: float,
        params: HestonParameters,
        market: MarketEnvironment,
        contract: ContractSpec,
        j: int = 1
    ) -> complex:
        """
        exp(C_j θ + D_j v₀ + iux), the measure-j characteristic function of
        the log-moneyness at maturity.

        Args:
            u: Fourier variable (> 0)
            j: 1 for the share measure (P₁), 0 for the risk-neutral measure (P₀)
        """
        kappa = params.mean_reversion_rate
        theta = params.long_run_variance
        eta = params.vol_of_vol
        rho = params.correlation
        v0 = params.initial_variance
        tau = contract.maturity

        x = np.log(market.forward(tau) / contract.strike)

        if j == 1:
            b = kappa - rho * eta
            alpha = -u**2 / 2 - u / 2 * 1j + 1j * u
        else:
            b = kappa
            alpha = -u**2 / 2 - u / 2 * 1j

        beta = b - rho * eta * 1j * u
        gamma = eta**2 / 2

        d = np.sqrt(beta**2 - 4 * alpha * gamma + 0j)
        if np.real(d) < 0:
            d = -d

        # r₋ from whichever of the two equivalent forms is well conditioned
        if abs(beta + d) >= abs(beta - d):
            r_minus = 2 * alpha / (beta + d)
        else:
            r_minus = (beta - d) / (2 * gamma)
        r_plus = (beta + d) / (2 * gamma)
        g = r_minus / r_plus

        exp_neg_d_tau = np.exp(-d * tau)

        D = r_minus * (1 - exp_neg_d_tau) / (1 - g * exp_neg_d_tau)
        # (1 - g·e^{-dτ})/(1 - g) = 1 + w with |w| ~ η² for small η; take
        # log(1 + w) through real log1p so the 2/η² factor has digits to scale
        w = g * (1 - exp_neg_d_tau) / (1 - g)
        log_ratio = 0.5 * np.log1p(2 * np.real(w) + np.abs(w)**2) + 1j * np.angle(1 + w)
        C = kappa * (r_minus * tau - (2 / eta**2) * log_ratio)

        return np.exp(C * theta + D * v0 + 1j * u * x)

    def _integrand(self, u, params, market, contract, j):
        u = max(u, U_FLOOR)
        phi = self.characteristic_function(u, params, market, contract, j)
        return np.real(phi / (1j * u))

    def probability(
        self,
        params: HestonParameters,
        market: MarketEnvironment,
        contract: ContractSpec,
        j: int
    ) -> float:
        """
        P_j = 1/2 + (1/π) ∫₀^∞ Re[integrand_j(u)] du

        Raises:
            NumericIntegrationFailure: quadrature did not converge
        """
        result = quad(
            self._integrand,
            0, np.inf,
            args=(params, market, contract, j),
            limit=self.limit,
            full_output=1
        )
        value, abserr = result[0], result[1]
        flagged = len(result) > 3

        if not np.isfinite(value) or (flagged and abserr > self.abs_tol):
            detail = result[3] if flagged else f"non-finite integral {value}"
            raise NumericIntegrationFailure(params, market, contract, j, detail)

        if flagged:
            logger.warning(
                "P%d quadrature flagged (%s) but error estimate %.2e is within %.1e",
                j, result[3].splitlines()[0], abserr, self.abs_tol
            )

        return 0.5 + value / np.pi

    def probabilities(
        self,
        params: HestonParameters,
        market: MarketEnvironment,
        contract: ContractSpec
    ) -> Tuple[float, float]:
        """Return (P₁, P₀)."""
        return (
            self.probability(params, market, contract, 1),
            self.probability(params, market, contract, 0),
        )

    def call_price(
        self,
        params: HestonParameters,
        market: MarketEnvironment,
        contract: ContractSpec
    ) -> float:
        """
        European call price C = S₀·P₁ - K·e^{-rτ}·P₀.

        Raises:
            NumericIntegrationFailure: either probability integral failed
        """
        P1, P0 = self.probabilities(params, market, contract)

        price = market.spot * P1 - contract.strike * market.discount(contract.maturity) * P0
        logger.debug(
            "Heston CF price K=%s T=%s: P1=%.8f P0=%.8f price=%.6f",
            contract.strike, contract.maturity, P1, P0, price
        )

        return max(float(price), 0.0)

    def price(
        self,
        params: HestonParameters,
        market: MarketEnvironment,
        contract: ContractSpec
    ) -> PricingResult:
        return PricingResult(price=self.call_price(params, market, contract), method='analytical')


def heston_call_price(
    params: HestonParameters,
    market: MarketEnvironment,
    contract: ContractSpec
) -> float:
    """Closed-form Heston call price with default integration settings."""
    return AnalyticalPricer().call_price(params, market, contract)
