"""Analytical, Monte Carlo and implied-volatility solvers."""
