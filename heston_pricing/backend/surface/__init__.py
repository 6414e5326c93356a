"""Implied volatility surface construction."""

from .builder import (
    heston_surface,
    implied_vol_grid,
    default_strike_range,
    default_maturity_range
)

__all__ = [
    'heston_surface',
    'implied_vol_grid',
    'default_strike_range',
    'default_maturity_range'
]
