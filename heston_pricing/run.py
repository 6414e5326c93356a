#!/usr/bin/env python3
"""
═══════════════════════════════════════════════════════════════════════════════
HESTON PRICING - Application Entry Point
═══════════════════════════════════════════════════════════════════════════════

Usage:
    python -m heston_pricing.run --demo         # Reference scenario, all methods
    python -m heston_pricing.run --surface 10   # 10 x 10 implied vol table
    python -m heston_pricing.run --test         # Run validation suite
    python -m heston_pricing.run --serve        # Start the JSON API

Environment:
    HESTON_LOG_LEVEL   default log level (INFO)
    HESTON_HOST        server host (0.0.0.0)
    HESTON_PORT        server port (5000)

═══════════════════════════════════════════════════════════════════════════════
"""

import argparse
import logging
import os
import sys
import warnings


def configure_logging(level: str):
    logging.basicConfig(
        level=getattr(logging, level.upper(), logging.INFO),
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )


def run_demo(steps: int, paths: int, seed=None):
    """Reference scenario: closed form, Monte Carlo under every scheme, smile."""

    from heston_pricing.backend.core.errors import FellerConditionViolated, RootNotBracketed
    from heston_pricing.backend.core.parameters import (
        ContractSpec,
        MonteCarloConfig,
        VarianceScheme,
        get_reference_contract,
        get_reference_market,
        get_reference_params,
    )
    from heston_pricing.backend.solvers.analytical import AnalyticalPricer
    from heston_pricing.backend.solvers.implied_vol import implied_volatility
    from heston_pricing.backend.solvers.monte_carlo import MonteCarloSimulator

    params = get_reference_params()
    market = get_reference_market()
    contract = get_reference_contract()

    print("=" * 70)
    print("HESTON PRICING - DEMO")
    print("=" * 70)
    print()
    print("Heston Parameters:")
    print(f"  κ  (mean reversion)  = {params.mean_reversion_rate}")
    print(f"  θ  (long-run var)    = {params.long_run_variance}")
    print(f"  η  (vol of vol)      = {params.vol_of_vol}")
    print(f"  ρ  (correlation)     = {params.correlation}")
    print(f"  v₀ (initial var)     = {params.initial_variance}")
    print(f"  r                    = {market.risk_free_rate}")
    print(f"  S₀                   = {market.spot}")
    print(f"  Feller               = {params.feller_ratio:.3f} {'✓' if params.feller_satisfied else '✗'}")
    print()
    print(f"Option: European Call, K={contract.strike}, T={contract.maturity}")
    print("-" * 70)

    print("\n1. CLOSED FORM (Characteristic Function)")
    pricer = AnalyticalPricer()
    cf_price = pricer.call_price(params, market, contract)
    print(f"   Call Price: {cf_price:.6f}")

    print(f"\n2. MONTE CARLO ({steps} steps, {paths:,} paths)")
    mc = MonteCarloSimulator()
    for scheme in VarianceScheme:
        config = MonteCarloConfig(step_count=steps, path_count=paths, scheme=scheme, seed=seed)
        with warnings.catch_warnings():
            warnings.simplefilter('ignore', FellerConditionViolated)
            result = mc.simulate(params, market, contract, config)
        used = result.scheme.value
        label = scheme.value if used == scheme.value else f"{scheme.value} -> {used}"
        print(
            f"   {label:<34} {result.price:8.4f} "
            f"[{result.confidence_low:.4f}, {result.confidence_high:.4f}] "
            f"zero hits = {result.negative_variance_fraction:.4f}"
        )

    print("\n3. IMPLIED VOLATILITY SMILE")
    print("   Strike    Price    Implied Vol")
    for strike in [80, 90, 100, 110, 120]:
        c = ContractSpec(strike=float(strike), maturity=contract.maturity)
        price = pricer.call_price(params, market, c)
        try:
            iv = implied_volatility(market.spot, c.strike, c.maturity, market.risk_free_rate, price)
            print(f"   {strike:6.0f}    {price:6.2f}    {iv*100:5.2f}%")
        except RootNotBracketed as exc:
            print(f"   {strike:6.0f}    {price:6.2f}    not bracketed (tau={exc.maturity})")

    print()
    print("=" * 70)
    print("Demo complete!")
    print("=" * 70)


def run_surface(n: int):
    from heston_pricing.backend.core.parameters import (
        get_reference_contract,
        get_reference_market,
        get_reference_params,
    )
    from heston_pricing.backend.surface.builder import heston_surface

    surface = heston_surface(
        get_reference_params(), get_reference_market(), get_reference_contract().maturity, n=n
    )
    print(surface.to_string(index=False, float_format=lambda v: f"{v:.6f}"))


def run_tests():
    """Run validation tests."""
    from heston_pricing.tests.validation import run_all_tests
    success = run_all_tests()
    return 0 if success else 1


def run_server(host='0.0.0.0', port=5000, debug=True):
    """Start the web server."""
    from heston_pricing.backend.app import app
    app.run(host=host, port=port, debug=debug)


def main():
    parser = argparse.ArgumentParser(
        description='Heston Stochastic Volatility Call Pricer',
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
    heston-pricing --demo                 Reference scenario
    heston-pricing --demo --paths 10000   More Monte Carlo paths
    heston-pricing --surface 10           Implied vol table
    heston-pricing --serve --port 8000    JSON API on a custom port
        """
    )

    mode = parser.add_mutually_exclusive_group()
    mode.add_argument('--demo', action='store_true', help='Run demo calculations (default)')
    mode.add_argument('--surface', type=int, metavar='N', help='Print an N x N implied vol surface')
    mode.add_argument('--test', action='store_true', help='Run validation tests')
    mode.add_argument('--serve', action='store_true', help='Start the JSON API')

    parser.add_argument('--steps', type=int, default=2000, help='MC time steps (default: 2000)')
    parser.add_argument('--paths', type=int, default=3000, help='MC paths (default: 3000)')
    parser.add_argument('--seed', type=int, default=None, help='MC random seed')
    parser.add_argument('--host', default=os.environ.get('HESTON_HOST', '0.0.0.0'), help='Server host')
    parser.add_argument('--port', type=int, default=int(os.environ.get('HESTON_PORT', 5000)), help='Server port')
    parser.add_argument('--no-debug', action='store_true', help='Disable debug mode')
    parser.add_argument('--log-level', default=os.environ.get('HESTON_LOG_LEVEL', 'INFO'),
                        help='Logging level (default: INFO)')

    args = parser.parse_args()
    configure_logging(args.log_level)

    if args.test:
        sys.exit(run_tests())
    elif args.surface is not None:
        run_surface(args.surface)
    elif args.serve:
        run_server(args.host, args.port, not args.no_debug)
    else:
        run_demo(args.steps, args.paths, args.seed)


if __name__ == '__main__':
    main()
