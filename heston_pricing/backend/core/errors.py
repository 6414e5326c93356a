"""
Error taxonomy for the Heston pricing engine.

Every failure of a pricing or inversion call is raised to the immediate
caller. Nothing here is retried: the inputs that cause these errors are
deterministic, so the caller decides whether to skip, widen, or abort.
"""

from typing import Optional, Tuple


class HestonPricingError(Exception):
    """Base class for all engine errors."""


class InvalidParameter(HestonPricingError, ValueError):
    """
    A model, market, contract or simulation input is out of its domain.

    Raised before any numerical work starts.
    """

    def __init__(self, name: str, value, requirement: str):
        self.name = name
        self.value = value
        self.requirement = requirement
        super().__init__(f"{name} must be {requirement}, got {value!r}")


class NumericIntegrationFailure(HestonPricingError, ArithmeticError):
    """
    The Fourier integral for P_j did not converge within its subdivision budget.

    Attributes:
        params: HestonParameters used for the failing integral
        market: MarketEnvironment
        contract: ContractSpec
        probability: Which probability failed (1 for P1, 0 for P0)
        detail: Message reported by the quadrature routine
    """

    def __init__(self, params, market, contract, probability: int, detail: str):
        self.params = params
        self.market = market
        self.contract = contract
        self.probability = probability
        self.detail = detail
        super().__init__(
            f"P{probability} integral failed for K={contract.strike}, "
            f"T={contract.maturity}: {detail}"
        )


class RootNotBracketed(HestonPricingError, ValueError):
    """
    The implied-volatility bracket does not straddle a root.

    The maturity is kept so that surface sweeps can report which slice failed.
    """

    def __init__(
        self,
        maturity: float,
        strike: Optional[float] = None,
        target_price: Optional[float] = None,
        bracket: Tuple[float, float] = (-1.0, 1.0),
    ):
        self.maturity = maturity
        self.strike = strike
        self.target_price = target_price
        self.bracket = bracket
        super().__init__(
            f"implied volatility not bracketed by {bracket} "
            f"(tau={maturity}, K={strike}, price={target_price})"
        )


class FellerConditionViolated(UserWarning):
    """
    Advisory: 2κθ < η², so the variance process can reach zero.

    Simulation still runs; inspect PricingResult.negative_variance_fraction.
    """
