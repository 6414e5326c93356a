"""
Flask Backend API for the Heston Pricing Engine

═══════════════════════════════════════════════════════════════════════════════
REST API ENDPOINTS
═══════════════════════════════════════════════════════════════════════════════

Endpoints:
- GET  /api/health:      Health check
- POST /api/price:       Call price (analytical or Monte Carlo)
- POST /api/implied_vol: Black-Scholes implied volatility of a call price
- POST /api/surface:     (TTM, Moneyness, ImpliedVol) table
- POST /api/paths:       A few simulated price/variance paths

Error mapping:
- InvalidParameter          -> 400 (parameter name reported)
- Other malformed input     -> 400
- RootNotBracketed          -> 422 (maturity reported)
- NumericIntegrationFailure -> 500

═══════════════════════════════════════════════════════════════════════════════
"""

import logging
import warnings

import numpy as np
from flask import Flask, request, jsonify
from flask_cors import CORS

from heston_pricing import __version__
from heston_pricing.backend.core.black_scholes import black_scholes_put, black_scholes_vega
from heston_pricing.backend.core.errors import (
    FellerConditionViolated,
    InvalidParameter,
    NumericIntegrationFailure,
    RootNotBracketed,
)
from heston_pricing.backend.core.parameters import (
    ContractSpec,
    HestonParameters,
    MarketEnvironment,
    MonteCarloConfig,
    get_reference_contract,
    get_reference_market,
    get_reference_params,
)
from heston_pricing.backend.solvers.analytical import AnalyticalPricer
from heston_pricing.backend.solvers.implied_vol import implied_volatility
from heston_pricing.backend.solvers.monte_carlo import MonteCarloSimulator
from heston_pricing.backend.surface.builder import heston_surface

logger = logging.getLogger(__name__)

app = Flask(__name__)
CORS(app)

MAX_API_PATHS = 50


# ═══════════════════════════════════════════════════════════════════════════════
# UTILITY FUNCTIONS
# ═══════════════════════════════════════════════════════════════════════════════

def get_json_data() -> dict:
    """Get JSON data from request with fallback to empty dict."""
    json_data = request.get_json(silent=True)
    if json_data is None:
        return {}
    if not isinstance(json_data, dict):
        raise InvalidParameter('body', type(json_data).__name__, 'a JSON object')
    return json_data


def get_section(data: dict, key: str) -> dict:
    """Nested object of the request body, empty if absent."""
    section = data.get(key, {})
    if not isinstance(section, dict):
        raise InvalidParameter(key, section, 'a JSON object')
    return section


def parse_params(data: dict) -> HestonParameters:
    """
    Parse HestonParameters; missing fields fall back to the reference set.

    Expected format:
    {
        "params": {
            "mean_reversion_rate": float,
            "long_run_variance": float,
            "vol_of_vol": float,
            "correlation": float,
            "initial_variance": float
        }
    }
    """
    merged = get_reference_params().to_dict()
    merged.update(get_section(data, 'params'))
    with warnings.catch_warnings():
        # Feller status is reported in the response body instead
        warnings.simplefilter('ignore', FellerConditionViolated)
        return HestonParameters.from_dict(merged)


def parse_market(data: dict) -> MarketEnvironment:
    merged = get_reference_market().to_dict()
    merged.update(get_section(data, 'market'))
    return MarketEnvironment.from_dict(merged)


def parse_contract(data: dict) -> ContractSpec:
    merged = get_reference_contract().to_dict()
    merged.update(get_section(data, 'contract'))
    return ContractSpec.from_dict(merged)


def parse_mc_config(data: dict) -> MonteCarloConfig:
    mc = get_section(data, 'mc')
    seed = mc.get('seed')
    return MonteCarloConfig(
        step_count=int(mc.get('step_count', 2000)),
        path_count=int(mc.get('path_count', 3000)),
        scheme=mc.get('scheme', 'reflection_milstein'),
        seed=int(seed) if seed is not None else None,
        workers=int(mc.get('workers', 1)),
    )


def error_response(exc: Exception):
    """Map engine errors to HTTP responses."""
    if isinstance(exc, RootNotBracketed):
        return jsonify({'error': str(exc), 'maturity': exc.maturity}), 422
    if isinstance(exc, InvalidParameter):
        return jsonify({'error': str(exc), 'parameter': exc.name}), 400
    if isinstance(exc, (ValueError, TypeError)):
        # Malformed field, e.g. a non-numeric string
        return jsonify({'error': str(exc)}), 400
    logger.error("Request failed: %s", exc, exc_info=True)
    return jsonify({'error': str(exc)}), 500


# ═══════════════════════════════════════════════════════════════════════════════
# ROUTES
# ═══════════════════════════════════════════════════════════════════════════════

@app.route('/api/health', methods=['GET'])
def health_check():
    """Health check endpoint."""
    return jsonify({
        'status': 'healthy',
        'service': 'Heston Pricing API',
        'version': __version__
    })


@app.route('/api/price', methods=['POST'])
def price_option():
    """
    Price a European call.

    Request JSON:
    {
        "method": "analytical" | "monte_carlo",
        "params": {...}, "market": {spot, risk_free_rate},
        "contract": {strike, maturity},
        "mc": {step_count, path_count, scheme, seed, workers}  (MC only)
    }

    Response JSON: PricingResult fields plus feller_ratio / feller_satisfied
    """
    try:
        data = get_json_data()
        params = parse_params(data)
        market = parse_market(data)
        contract = parse_contract(data)
        method = data.get('method', 'analytical')

        if method == 'analytical':
            result = AnalyticalPricer().price(params, market, contract)
        elif method == 'monte_carlo':
            with warnings.catch_warnings():
                warnings.simplefilter('ignore', FellerConditionViolated)
                result = MonteCarloSimulator().simulate(params, market, contract, parse_mc_config(data))
        else:
            return jsonify({'error': f'Unknown method: {method}'}), 400

        body = result.to_dict()
        body.update({
            'feller_ratio': params.feller_ratio,
            'feller_satisfied': params.feller_satisfied
        })
        return jsonify(body)

    except (NumericIntegrationFailure, ValueError, TypeError) as e:
        return error_response(e)


@app.route('/api/implied_vol', methods=['POST'])
def implied_vol():
    """
    Request JSON: {"market": {...}, "contract": {...}, "price": float}
    Response JSON: {"implied_vol": float, "put_price": float, "vega": float}

    put_price and vega are Black-Scholes values at the implied volatility.
    """
    try:
        data = get_json_data()
        market = parse_market(data)
        contract = parse_contract(data)
        if 'price' not in data:
            raise InvalidParameter('price', None, 'provided')

        iv = implied_volatility(
            market.spot, contract.strike, contract.maturity,
            market.risk_free_rate, float(data['price'])
        )
        args = (market.spot, contract.strike, contract.maturity, market.risk_free_rate, iv)
        return jsonify({
            'implied_vol': float(iv),
            'put_price': black_scholes_put(*args),
            'vega': black_scholes_vega(*args)
        })

    except (ValueError, TypeError) as e:
        return error_response(e)


@app.route('/api/surface', methods=['POST'])
def implied_vol_surface():
    """
    Request JSON: {"params": {...}, "market": {...}, "max_maturity": float, "n": int}
    Response JSON: {"surface": [{TTM, Moneyness, ImpliedVol}, ...]}

    Undefined cells are reported as null.
    """
    try:
        data = get_json_data()
        params = parse_params(data)
        market = parse_market(data)
        max_maturity = float(data.get('max_maturity', 1.0))
        n = int(data.get('n', 5))
        if n < 2:
            raise InvalidParameter('n', n, 'an integer >= 2')
        if not max_maturity > 0:
            raise InvalidParameter('max_maturity', max_maturity, 'positive')

        surface = heston_surface(params, market, max_maturity, n=n)
        records = [
            {k: (None if isinstance(v, float) and np.isnan(v) else v) for k, v in row.items()}
            for row in surface.to_dict(orient='records')
        ]
        return jsonify({'surface': records})

    except (ValueError, TypeError) as e:
        return error_response(e)


@app.route('/api/paths', methods=['POST'])
def simulate_paths():
    """
    Simulate a handful of paths for visualization.

    Request JSON: {"params", "market", "maturity", "step_count", "path_count", "scheme", "seed"}
    Response JSON: {"times": [...], "S_paths": [[...]], "V_paths": [[...]]}
    """
    try:
        data = get_json_data()
        params = parse_params(data)
        market = parse_market(data)
        T = float(data.get('maturity', 1.0))
        n_steps = int(data.get('step_count', 252))
        n_paths = min(int(data.get('path_count', 10)), MAX_API_PATHS)
        seed = data.get('seed')

        with warnings.catch_warnings():
            warnings.simplefilter('ignore', FellerConditionViolated)
            S_paths, V_paths = MonteCarloSimulator().simulate_paths(
                params, market, T, n_steps, n_paths,
                scheme=data.get('scheme', 'reflection_milstein'),
                seed=int(seed) if seed is not None else None,
            )

        return jsonify({
            'times': np.linspace(0, T, n_steps + 1).tolist(),
            'S_paths': S_paths.tolist(),
            'V_paths': V_paths.tolist()
        })

    except (ValueError, TypeError) as e:
        return error_response(e)
