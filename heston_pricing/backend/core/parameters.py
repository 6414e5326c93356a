"""
Heston Model Inputs with Mathematical Validation

═══════════════════════════════════════════════════════════════════════════════
MATHEMATICAL FOUNDATION - HESTON STOCHASTIC VOLATILITY MODEL
═══════════════════════════════════════════════════════════════════════════════

Risk-neutral dynamics (no dividends):

1. ASSET PRICE SDE:
   dS_t = r S_t dt + √v_t S_t dW_1

2. VARIANCE SDE (CIR process):
   dv_t = κ(θ - v_t)dt + η√v_t dW_2

   - κ (mean_reversion_rate) > 0: speed of reversion to θ
   - θ (long_run_variance) > 0: equilibrium variance, long-run vol ≈ √θ
   - η (vol_of_vol) > 0: volatility of the variance process

3. CORRELATION:
   E[dW_1 · dW_2] = ρ dt,  ρ ∈ [-1, 1]
   ρ < 0 is the equity "leverage effect" and produces a downward skew.

4. FELLER CONDITION:
   2κθ ≥ η²

   When it holds the continuous-time variance cannot reach zero. When it
   fails, discretized variance paths regularly cross zero and the simulation
   schemes must correct them.

   Feller ratio: F = 2κθ/η²

The inputs are split into three immutable value types so that every pricing
call receives them explicitly:

   HestonParameters   - the variance process (κ, θ, η, ρ, v₀)
   MarketEnvironment  - spot S₀ and risk-free rate r
   ContractSpec       - strike K and maturity τ

═══════════════════════════════════════════════════════════════════════════════
"""

import enum
import numbers
import warnings
from dataclasses import dataclass, asdict
from typing import Dict, Optional

import numpy as np

from heston_pricing.backend.core.errors import InvalidParameter, FellerConditionViolated


ONE_YEAR = 365


@dataclass(frozen=True)
class HestonParameters:
    """
    Variance-process parameters of the Heston model.

    Construction validates domains and warns (never fails) when the Feller
    condition is violated.
    """

    mean_reversion_rate: float   # κ, units 1/time
    long_run_variance: float     # θ, annualized variance
    vol_of_vol: float            # η
    correlation: float           # ρ between price and variance drivers
    initial_variance: float      # v₀

    def __post_init__(self):
        if not self.mean_reversion_rate > 0:
            raise InvalidParameter('mean_reversion_rate', self.mean_reversion_rate, 'positive')
        if not self.long_run_variance > 0:
            raise InvalidParameter('long_run_variance', self.long_run_variance, 'positive')
        if not self.vol_of_vol > 0:
            raise InvalidParameter('vol_of_vol', self.vol_of_vol, 'positive')
        if not -1.0 <= self.correlation <= 1.0:
            raise InvalidParameter('correlation', self.correlation, 'in [-1, 1]')
        if not self.initial_variance >= 0:
            raise InvalidParameter('initial_variance', self.initial_variance, 'non-negative')

        if not self.feller_satisfied:
            warnings.warn(
                f"Feller condition violated: 2κθ = "
                f"{2 * self.mean_reversion_rate * self.long_run_variance:.6f} < "
                f"η² = {self.vol_of_vol ** 2:.6f} (ratio {self.feller_ratio:.4f}). "
                f"Variance paths may reach zero.",
                FellerConditionViolated,
                stacklevel=3,
            )

    # ═══════════════════════════════════════════════════════════════════════
    # DERIVED QUANTITIES
    # ═══════════════════════════════════════════════════════════════════════

    @property
    def feller_ratio(self) -> float:
        """F = 2κθ/η²."""
        return 2 * self.mean_reversion_rate * self.long_run_variance / self.vol_of_vol ** 2

    @property
    def feller_satisfied(self) -> bool:
        return 2 * self.mean_reversion_rate * self.long_run_variance >= self.vol_of_vol ** 2

    @property
    def long_term_vol(self) -> float:
        return float(np.sqrt(self.long_run_variance))

    @property
    def initial_vol(self) -> float:
        return float(np.sqrt(self.initial_variance))

    def expected_variance(self, t: float) -> float:
        """
        Expected variance at time t given v₀.

        E[v_t | v₀] = θ + (v₀ - θ)e^{-κt}

        Solution of the drift-only ODE d E[v]/dt = κ(θ - E[v]).
        """
        theta = self.long_run_variance
        return theta + (self.initial_variance - theta) * np.exp(-self.mean_reversion_rate * t)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, float]) -> 'HestonParameters':
        return cls(
            mean_reversion_rate=float(d['mean_reversion_rate']),
            long_run_variance=float(d['long_run_variance']),
            vol_of_vol=float(d['vol_of_vol']),
            correlation=float(d['correlation']),
            initial_variance=float(d['initial_variance']),
        )

    def __repr__(self) -> str:
        feller_status = "✓" if self.feller_satisfied else "✗"
        return (
            f"HestonParameters(κ={self.mean_reversion_rate:.4f}, θ={self.long_run_variance:.4f}, "
            f"η={self.vol_of_vol:.4f}, ρ={self.correlation:.4f}, v₀={self.initial_variance:.6f}, "
            f"Feller ratio={self.feller_ratio:.3f} {feller_status})"
        )


@dataclass(frozen=True)
class MarketEnvironment:
    spot: float
    risk_free_rate: float

    def __post_init__(self):
        if not self.spot > 0:
            raise InvalidParameter('spot', self.spot, 'positive')
        if not np.isfinite(self.risk_free_rate):
            raise InvalidParameter('risk_free_rate', self.risk_free_rate, 'finite')

    def forward(self, maturity: float) -> float:
        """F = S₀·e^{rτ}."""
        return self.spot * np.exp(self.risk_free_rate * maturity)

    def discount(self, maturity: float) -> float:
        return np.exp(-self.risk_free_rate * maturity)

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, float]) -> 'MarketEnvironment':
        return cls(spot=float(d['spot']), risk_free_rate=float(d['risk_free_rate']))


@dataclass(frozen=True)
class ContractSpec:
    """European call contract: strike K and time to maturity τ (years)."""

    strike: float
    maturity: float

    def __post_init__(self):
        if not self.strike > 0:
            raise InvalidParameter('strike', self.strike, 'positive')
        if not self.maturity > 0:
            raise InvalidParameter('maturity', self.maturity, 'positive')

    def moneyness(self, market: MarketEnvironment) -> float:
        """
        Moneyness used on the volatility-surface axis.

        M = K·e^{-rτ} / S₀  (discounted strike over spot)
        """
        return self.strike * market.discount(self.maturity) / market.spot

    def to_dict(self) -> Dict[str, float]:
        return asdict(self)

    @classmethod
    def from_dict(cls, d: Dict[str, float]) -> 'ContractSpec':
        return cls(strike=float(d['strike']), maturity=float(d['maturity']))


# ═══════════════════════════════════════════════════════════════════════════════
# MONTE CARLO CONFIGURATION
# ═══════════════════════════════════════════════════════════════════════════════

class VarianceScheme(enum.Enum):
    """How the variance process is advanced and kept non-negative."""

    ABSORPTION = 'absorption'
    REFLECTION = 'reflection'
    REFLECTION_MILSTEIN = 'reflection_milstein'
    ALFONSI = 'alfonsi'


def _is_count(value) -> bool:
    return isinstance(value, numbers.Integral) and not isinstance(value, bool) and value >= 1


@dataclass(frozen=True)
class MonteCarloConfig:
    """
    Per-call simulation settings.

    Defaults reproduce the reference study: 2000 steps, 3000 paths,
    reflection + Milstein variance updates.
    """

    step_count: int = 2000
    path_count: int = 3000
    scheme: VarianceScheme = VarianceScheme.REFLECTION_MILSTEIN
    seed: Optional[int] = None
    workers: int = 1

    def __post_init__(self):
        if isinstance(self.scheme, str):
            try:
                object.__setattr__(self, 'scheme', VarianceScheme(self.scheme))
            except ValueError:
                raise InvalidParameter(
                    'scheme', self.scheme, f"one of {[s.value for s in VarianceScheme]}"
                ) from None
        if not _is_count(self.step_count):
            raise InvalidParameter('step_count', self.step_count, 'an integer >= 1')
        if not _is_count(self.path_count):
            raise InvalidParameter('path_count', self.path_count, 'an integer >= 1')
        if not _is_count(self.workers):
            raise InvalidParameter('workers', self.workers, 'an integer >= 1')


# ═══════════════════════════════════════════════════════════════════════════════
# RESULT
# ═══════════════════════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class PricingResult:
    """
    Outcome of one pricing call.

    Monte Carlo fills the confidence band (price ∓ 2·stderr) and the
    negative-variance diagnostic; the analytical pricer leaves them as None.
    """

    price: float
    method: str = 'analytical'
    standard_error: Optional[float] = None
    confidence_low: Optional[float] = None
    confidence_high: Optional[float] = None
    negative_variance_fraction: Optional[float] = None
    scheme: Optional[VarianceScheme] = None

    def contains(self, value: float) -> bool:
        """True if value lies inside the Monte Carlo confidence band."""
        if self.confidence_low is None or self.confidence_high is None:
            return False
        return self.confidence_low <= value <= self.confidence_high

    def to_dict(self) -> Dict[str, object]:
        d = asdict(self)
        d['scheme'] = self.scheme.value if self.scheme is not None else None
        return d


# ═══════════════════════════════════════════════════════════════════════════════
# TYPICAL PARAMETER SETS FOR TESTING
# ═══════════════════════════════════════════════════════════════════════════════

def get_reference_params() -> HestonParameters:
    """
    Reference scenario: κ=6.21, θ=0.019, η=0.61, ρ=-0.7, v₀=0.010201.

    Note 2κθ = 0.236 < η² = 0.372, so this set violates the Feller condition
    and constructing it emits FellerConditionViolated.
    """
    with warnings.catch_warnings():
        warnings.simplefilter('ignore', FellerConditionViolated)
        return HestonParameters(
            mean_reversion_rate=6.21,
            long_run_variance=0.019,
            vol_of_vol=0.61,
            correlation=-0.7,
            initial_variance=0.010201,
        )


def get_reference_market() -> MarketEnvironment:
    return MarketEnvironment(spot=100.0, risk_free_rate=0.0319)


def get_reference_contract() -> ContractSpec:
    return ContractSpec(strike=100.0, maturity=1.0)


def get_feller_violating_params() -> HestonParameters:
    """Deliberately Feller-violating set (2κθ = 0.04 ≪ η² = 4)."""
    with warnings.catch_warnings():
        warnings.simplefilter('ignore', FellerConditionViolated)
        return HestonParameters(
            mean_reversion_rate=0.5,
            long_run_variance=0.04,
            vol_of_vol=2.0,
            correlation=-0.7,
            initial_variance=0.04,
        )


def get_black_scholes_limit_params(vol_of_vol: float = 1e-3) -> HestonParameters:
    """
    Near-deterministic variance: v₀ = θ and tiny η.

    In this limit the Heston price tends to Black-Scholes with σ = √θ.
    """
    return HestonParameters(
        mean_reversion_rate=5.0,
        long_run_variance=0.04,
        vol_of_vol=vol_of_vol,
        correlation=0.0,
        initial_variance=0.04,
    )
