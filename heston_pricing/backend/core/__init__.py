"""Value types, errors and Black-Scholes reference formulas."""
