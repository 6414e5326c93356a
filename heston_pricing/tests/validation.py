"""
═══════════════════════════════════════════════════════════════════════════════
HESTON PRICING VALIDATION SUITE
═══════════════════════════════════════════════════════════════════════════════

Scripted run of the headline checks, printed as a PASS/FAIL report:
1. Black-Scholes Limit: η → 0 with v₀ = θ gives BS with σ = √θ
2. Implied Vol Round Trip: BS⁻¹(BS(σ)) = σ
3. Reference Price and Monotonicity of the closed form
4. Method Agreement: closed form inside the Monte Carlo ±2·SE band
5. Variance Positivity and the negative-variance diagnostic
6. Partition Merge: pairwise statistics equal the pooled sample
7. Surface Table: shape, undefined short slice, finite ATM row

The same checks run under pytest from tests/cases/.

═══════════════════════════════════════════════════════════════════════════════
"""

import sys
import logging
from typing import Optional

from heston_pricing.tests.cases.test_01_bs_limit import check_bs_limit
from heston_pricing.tests.cases.test_02_implied_vol import check_round_trip
from heston_pricing.tests.cases.test_03_analytical_properties import (
    check_monotonicity,
    check_reference_price,
)
from heston_pricing.tests.cases.test_04_method_agreement import check_method_agreement
from heston_pricing.tests.cases.test_05_variance_positivity import (
    check_mc_variance_positivity,
    check_negative_fraction_diagnostic,
)
from heston_pricing.tests.cases.test_06_parallel_paths import check_partition_merge
from heston_pricing.tests.cases.test_08_surface import check_surface_table

logger = logging.getLogger(__name__)


# ═══════════════════════════════════════════════════════════════════════════════
# TEST UTILITIES
# ═══════════════════════════════════════════════════════════════════════════════

class TestResult:
    """Container for test results."""

    # Not a pytest test class
    __test__ = False

    def __init__(self, name: str, passed: bool, message: str, details: Optional[dict] = None):
        self.name = name
        self.passed = passed
        self.message = message
        self.details = details or {}

    def __str__(self) -> str:
        status = "✓ PASS" if self.passed else "✗ FAIL"
        return f"{status}: {self.name} - {self.message}"


def run_test(name: str, check_func) -> TestResult:
    """Execute a check and return its result; an exception counts as a failure."""
    try:
        passed, message, details = check_func()
        return TestResult(name, passed, message, details)
    except Exception as e:
        logger.exception("Check %s raised", name)
        return TestResult(name, False, f"Exception: {e}")


CHECKS = [
    ("Black-Scholes Limit", check_bs_limit),
    ("Implied Vol Round Trip", check_round_trip),
    ("Reference Price", check_reference_price),
    ("Monotonicity", check_monotonicity),
    ("Method Agreement", check_method_agreement),
    ("MC Variance Positivity", check_mc_variance_positivity),
    ("Negative Variance Diagnostic", check_negative_fraction_diagnostic),
    ("Partition Merge", check_partition_merge),
    ("Surface Table", check_surface_table),
]


def run_all_tests() -> bool:
    """Run all validation checks and report results."""

    print("=" * 70)
    print("HESTON PRICING VALIDATION SUITE")
    print("=" * 70)
    print()

    results = []
    for name, check_func in CHECKS:
        result = run_test(name, check_func)
        results.append(result)
        print(result)
        if result.details:
            for key, value in result.details.items():
                if key != 'checks' and isinstance(value, (int, float, str)):
                    print(f"    {key}: {value}")
        print()

    passed = sum(1 for r in results if r.passed)
    total = len(results)

    print("=" * 70)
    print(f"SUMMARY: {passed}/{total} tests passed")
    print("=" * 70)

    if passed == total:
        print("\n✓ All validation tests PASSED!")
        return True
    else:
        print(f"\n✗ {total - passed} test(s) FAILED")
        return False


if __name__ == '__main__':
    success = run_all_tests()
    sys.exit(0 if success else 1)
