"""
Variance Discretization Schemes

═══════════════════════════════════════════════════════════════════════════════
ADVANCING THE CIR VARIANCE PROCESS ONE TIME STEP
═══════════════════════════════════════════════════════════════════════════════

   dv = κ(θ - v)dt + η√v dW

Discrete updates can produce v < 0, which the continuous process never
does. Each scheme pairs a raw update with a policy for negative values:

   Scheme               Raw update                                  Negative
   ───────────────────  ──────────────────────────────────────────  ────────
   Absorption           v + κ(θ-v)Δt + η√(vΔt)·Z                    v → 0
   Reflection           v + κ(θ-v)Δt + η√(vΔt)·Z                    v → -v
   Reflection+Milstein  (√v + η/2·√Δt·Z)² - κ(v-θ)Δt - η²Δt/4       v → -v
   Alfonsi              v - κ(v-θ)Δt + η√(vΔt)·Z - η²Δt/2           none

The Milstein term η²Δt/4 comes from expanding (√v + η/2·√Δt·Z)², which
adds the Itô correction η²Δt·Z²/4 whose mean must be removed.

Alfonsi leaves negative values in place; square roots of the state are
taken on max(v, 0).

Every step returns (v_next, was_negative) where was_negative marks the
paths whose raw update was below zero before correction.

═══════════════════════════════════════════════════════════════════════════════
"""

from typing import Dict, Tuple

import numpy as np

from heston_pricing.backend.core.parameters import VarianceScheme


class VarianceStepScheme:
    """Base strategy: one variance step for a vector of paths."""

    kind: VarianceScheme

    def step(
        self,
        v: np.ndarray,
        dt: float,
        vol_of_vol: float,
        mean_reversion_rate: float,
        long_run_variance: float,
        z: np.ndarray
    ) -> Tuple[np.ndarray, np.ndarray]:
        raise NotImplementedError

    @property
    def keeps_non_negative(self) -> bool:
        return True

    def __repr__(self) -> str:
        return f"{type(self).__name__}()"


def _euler_update(v, dt, eta, kappa, theta, z):
    # v + κ(θ - v)Δt + η√(vΔt)·Z
    return v + kappa * (theta - v) * dt + eta * np.sqrt(np.maximum(v, 0.0) * dt) * z


class AbsorptionScheme(VarianceStepScheme):
    """Euler step, negative variance absorbed at zero."""

    kind = VarianceScheme.ABSORPTION

    def step(self, v, dt, vol_of_vol, mean_reversion_rate, long_run_variance, z):
        v_next = _euler_update(v, dt, vol_of_vol, mean_reversion_rate, long_run_variance, z)
        negative = v_next < 0
        return np.where(negative, 0.0, v_next), negative


class ReflectionScheme(VarianceStepScheme):
    """Euler step, negative variance reflected about zero."""

    kind = VarianceScheme.REFLECTION

    def step(self, v, dt, vol_of_vol, mean_reversion_rate, long_run_variance, z):
        v_next = _euler_update(v, dt, vol_of_vol, mean_reversion_rate, long_run_variance, z)
        negative = v_next < 0
        return np.where(negative, -v_next, v_next), negative


class ReflectionMilsteinScheme(VarianceStepScheme):
    """Milstein step on √v, negative variance reflected about zero."""

    kind = VarianceScheme.REFLECTION_MILSTEIN

    def step(self, v, dt, vol_of_vol, mean_reversion_rate, long_run_variance, z):
        eta = vol_of_vol
        v_next = (
            (np.sqrt(np.maximum(v, 0.0)) + eta / 2 * np.sqrt(dt) * z) ** 2
            - mean_reversion_rate * (v - long_run_variance) * dt
            - eta**2 / 4 * dt
        )
        negative = v_next < 0
        return np.where(negative, -v_next, v_next), negative


class AlfonsiScheme(VarianceStepScheme):
    """
    Drift-corrected step (Gatheral, The Volatility Surface, p.23).

    No correction is applied; the state may stay negative.
    """

    kind = VarianceScheme.ALFONSI

    def step(self, v, dt, vol_of_vol, mean_reversion_rate, long_run_variance, z):
        eta = vol_of_vol
        v_next = (
            v
            - mean_reversion_rate * (v - long_run_variance) * dt
            + eta * np.sqrt(np.maximum(v, 0.0) * dt) * z
            - eta**2 / 2 * dt
        )
        return v_next, v_next < 0

    @property
    def keeps_non_negative(self) -> bool:
        return False


_SCHEMES: Dict[VarianceScheme, VarianceStepScheme] = {
    VarianceScheme.ABSORPTION: AbsorptionScheme(),
    VarianceScheme.REFLECTION: ReflectionScheme(),
    VarianceScheme.REFLECTION_MILSTEIN: ReflectionMilsteinScheme(),
    VarianceScheme.ALFONSI: AlfonsiScheme(),
}


def scheme_for(kind) -> VarianceStepScheme:
    """
    Resolve a VarianceScheme (or its string value) to its strategy object.

    Raises:
        ValueError: unknown scheme name
    """
    return _SCHEMES[VarianceScheme(kind)]
