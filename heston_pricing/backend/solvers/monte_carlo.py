"""
Monte Carlo Simulation of the Heston Model

═══════════════════════════════════════════════════════════════════════════════
MONTE CARLO METHODS FOR HESTON MODEL
═══════════════════════════════════════════════════════════════════════════════

1. TIME GRID AND CORRELATED DRIVERS:
   ═══════════════════════════════════════════════════════════════════════════

   Δt = τ / n_steps. At each step, for every path:

   Z₁, Z₂ ~ N(0,1) independent
   Z₂' = ρ·Z₁ + √(1-ρ²)·Z₂

2. PRICE UPDATE (Log-Euler, pre-step variance):
   ═══════════════════════════════════════════════════════════════════════════

   S_{n+1} = S_n · exp[(r - v_n⁺/2)Δt + √(v_n⁺Δt)·Z₁],   v⁺ = max(v, 0)

   Exact for the log-price given the variance over the step, so S never
   goes negative. v⁺ only differs from v under the Alfonsi scheme.

3. VARIANCE UPDATE:
   ═══════════════════════════════════════════════════════════════════════════

   v_{n+1} from the selected scheme (see schemes.py) driven by Z₂'.
   Negative raw updates are counted before correction:

   negative_variance_fraction = #negative / (n_steps · n_paths)

4. ESTIMATOR AND CONFIDENCE BAND:
   ═══════════════════════════════════════════════════════════════════════════

   Y_i = e^{-rτ}·max(S_T^i - K, 0)

   price = mean(Y),   SE = sd(Y)/√N   (sample sd, N - 1 denominator)
   band  = [price - 2·SE, price + 2·SE]

5. PARTITIONED PATHS:
   ═══════════════════════════════════════════════════════════════════════════

   Paths are independent. With workers > 1 they are split into partitions,
   each with its own generator spawned from one SeedSequence and its own
   path arrays. Partitions return (n, mean, M2, negatives) and are merged
   with Chan's pairwise update:

   δ = m_b - m_a
   m  = m_a + δ·n_b/n
   M2 = M2_a + M2_b + δ²·n_a·n_b/n

═══════════════════════════════════════════════════════════════════════════════
"""

import logging
import warnings
from concurrent.futures import ThreadPoolExecutor
from typing import List, Optional, Tuple

import numpy as np

from heston_pricing.backend.core.errors import FellerConditionViolated, InvalidParameter
from heston_pricing.backend.core.parameters import (
    HestonParameters,
    MarketEnvironment,
    ContractSpec,
    MonteCarloConfig,
    PricingResult,
    VarianceScheme,
)
from heston_pricing.backend.solvers.schemes import VarianceStepScheme, scheme_for

logger = logging.getLogger(__name__)


# Partition summary: (path count, payoff mean, payoff M2, negative count)
PartialStats = Tuple[int, float, float, int]


def resolve_scheme(params: HestonParameters, kind) -> VarianceStepScheme:
    """
    Pick the variance strategy for a run.

    Alfonsi is not guaranteed to keep variance usable when the Feller
    condition fails; in that case Reflection + Milstein is used instead
    and FellerConditionViolated is emitted.
    """
    kind = VarianceScheme(kind)
    if kind is VarianceScheme.ALFONSI and not params.feller_satisfied:
        warnings.warn(
            f"Variance not guaranteed to be positive with Feller ratio "
            f"{params.feller_ratio:.4f}; defaulting to reflection + Milstein",
            FellerConditionViolated,
            stacklevel=3,
        )
        logger.warning(
            "Alfonsi requested with Feller ratio %.4f, using reflection_milstein",
            params.feller_ratio
        )
        kind = VarianceScheme.REFLECTION_MILSTEIN
    return scheme_for(kind)


def _evolve(
    params: HestonParameters,
    market: MarketEnvironment,
    maturity: float,
    scheme: VarianceStepScheme,
    step_count: int,
    n_paths: int,
    rng: np.random.Generator,
    record: bool = False
):
    """
    Advance n_paths coupled (S, v) paths to maturity.

    Returns:
        (S, v, negatives, S_hist, v_hist); the histories are None unless
        record is set, otherwise arrays of shape (n_paths, step_count + 1).
    """
    kappa = params.mean_reversion_rate
    theta = params.long_run_variance
    eta = params.vol_of_vol
    rho = params.correlation
    r = market.risk_free_rate

    dt = maturity / step_count
    rho_bar = np.sqrt(1 - rho**2)

    # Path state, private to this call
    S = np.full(n_paths, market.spot, dtype=float)
    v = np.full(n_paths, params.initial_variance, dtype=float)
    negatives = 0

    S_hist = v_hist = None
    if record:
        S_hist = np.empty((n_paths, step_count + 1))
        v_hist = np.empty((n_paths, step_count + 1))
        S_hist[:, 0] = S
        v_hist[:, 0] = v

    for i in range(step_count):
        Z1 = rng.standard_normal(n_paths)
        Z2 = rng.standard_normal(n_paths)
        Z2 = rho * Z1 + rho_bar * Z2

        v_pos = np.maximum(v, 0.0)
        S *= np.exp((r - 0.5 * v_pos) * dt + np.sqrt(v_pos * dt) * Z1)

        v, negative = scheme.step(v, dt, eta, kappa, theta, Z2)
        negatives += int(np.count_nonzero(negative))

        if record:
            S_hist[:, i + 1] = S
            v_hist[:, i + 1] = v

    return S, v, negatives, S_hist, v_hist


def _price_partition(args) -> PartialStats:
    params, market, contract, scheme, step_count, n_paths, rng = args
    S, _, negatives, _, _ = _evolve(
        params, market, contract.maturity, scheme, step_count, n_paths, rng
    )
    payoff = market.discount(contract.maturity) * np.maximum(S - contract.strike, 0.0)
    mean = float(np.mean(payoff))
    m2 = float(np.sum((payoff - mean) ** 2))
    return n_paths, mean, m2, negatives


def combine_partials(partials: List[PartialStats]) -> PartialStats:
    """Merge partition statistics pairwise (Chan et al.)."""
    while len(partials) > 1:
        merged = []
        for k in range(0, len(partials) - 1, 2):
            n_a, m_a, M2_a, neg_a = partials[k]
            n_b, m_b, M2_b, neg_b = partials[k + 1]
            n = n_a + n_b
            delta = m_b - m_a
            merged.append((
                n,
                m_a + delta * n_b / n,
                M2_a + M2_b + delta**2 * n_a * n_b / n,
                neg_a + neg_b,
            ))
        if len(partials) % 2:
            merged.append(partials[-1])
        partials = merged
    return partials[0]


class MonteCarloSimulator:
    """
    Plain Monte Carlo pricer for European calls under Heston dynamics.

    Stateless: every call owns its own path arrays and random stream.
    """

    def simulate(
        self,
        params: HestonParameters,
        market: MarketEnvironment,
        contract: ContractSpec,
        config: Optional[MonteCarloConfig] = None
    ) -> PricingResult:
        """
        Price a European call by simulation.

        Args:
            params: Heston parameters
            market: Spot and rate
            contract: Strike and maturity
            config: Steps, paths, scheme, seed and worker count

        Returns:
            PricingResult with price, ±2·SE band and negative-variance fraction
        """
        config = config or MonteCarloConfig()
        scheme = resolve_scheme(params, config.scheme)

        sizes = [len(a) for a in np.array_split(np.arange(config.path_count), config.workers)]
        sizes = [n for n in sizes if n > 0]

        if len(sizes) == 1:
            rngs = [np.random.default_rng(config.seed)]
        else:
            children = np.random.SeedSequence(config.seed).spawn(len(sizes))
            rngs = [np.random.default_rng(child) for child in children]

        tasks = [
            (params, market, contract, scheme, config.step_count, n, rng)
            for n, rng in zip(sizes, rngs)
        ]

        if len(tasks) == 1:
            partials = [_price_partition(tasks[0])]
        else:
            with ThreadPoolExecutor(max_workers=len(tasks)) as executor:
                partials = list(executor.map(_price_partition, tasks))

        n, price, m2, negatives = combine_partials(partials)

        std_error = np.sqrt(m2 / (n - 1)) / np.sqrt(n) if n > 1 else float('nan')
        negative_fraction = negatives / (config.step_count * n)

        logger.info(
            "MC %s: K=%s T=%s steps=%d paths=%d workers=%d price=%.6f se=%.6f neg=%.4f",
            scheme.kind.value, contract.strike, contract.maturity,
            config.step_count, n, len(tasks), price, std_error, negative_fraction
        )

        return PricingResult(
            price=float(price),
            method='monte_carlo',
            standard_error=float(std_error),
            confidence_low=float(price - 2 * std_error),
            confidence_high=float(price + 2 * std_error),
            negative_variance_fraction=float(negative_fraction),
            scheme=scheme.kind,
        )

    def simulate_paths(
        self,
        params: HestonParameters,
        market: MarketEnvironment,
        maturity: float,
        step_count: int,
        path_count: int,
        scheme=VarianceScheme.REFLECTION_MILSTEIN,
        seed: Optional[int] = None
    ) -> Tuple[np.ndarray, np.ndarray]:
        """
        Full price and variance histories, for diagnostics and plotting.

        Returns:
            S_paths: Asset price paths, shape (path_count, step_count+1)
            V_paths: Variance paths after correction, same shape
        """
        config = MonteCarloConfig(step_count=step_count, path_count=path_count, scheme=scheme, seed=seed)
        if not maturity > 0:
            raise InvalidParameter('maturity', maturity, 'positive')
        strategy = resolve_scheme(params, config.scheme)
        rng = np.random.default_rng(seed)

        _, _, _, S_paths, V_paths = _evolve(
            params, market, maturity, strategy, step_count, path_count, rng, record=True
        )
        return S_paths, V_paths


def heston_call_monte_carlo(
    params: HestonParameters,
    market: MarketEnvironment,
    contract: ContractSpec,
    config: Optional[MonteCarloConfig] = None
) -> PricingResult:
    """Module-level shortcut for MonteCarloSimulator().simulate."""
    return MonteCarloSimulator().simulate(params, market, contract, config)
