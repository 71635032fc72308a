"""
Benchmark suite for the factorization engine.

Benchmarks:
1. Primality Testing: sequential vs. thread-parallel Miller-Rabin
2. Divisor Searches: Fermat window, Pollard rho, parallel rho race
3. Complete Factorization: every strategy on the same inputs
4. Word-size Fallback: JIT trial division

Set FACTOR_LOG_LEVEL=DEBUG to see the engine's own log output, and
FACTOR_PERF_LOGGING=1 to print per-strategy PerformanceMetrics.
"""

import logging
import os
import statistics
import sys
import time
from typing import Callable, List

from config import FactorizationConfig, Strategy
from divisor_search import difference_of_squares, parallel_rho_race, pollard_rho
from factorization import FactorizationStrategy
from primality import miller_rabin, parallel_miller_rabin
from simd_operations import is_simd_available, smallest_factor
from concurrency import shutdown_pool


# ============================================================================
# BENCHMARK UTILITIES
# ============================================================================

class BenchmarkResult:
    """Store benchmark results with statistics."""

    def __init__(self, name: str, times: List[float]):
        self.name = name
        self.times = sorted(times)
        self.min = min(times)
        self.max = max(times)
        self.mean = statistics.mean(times)
        self.median = statistics.median(times)
        self.stdev = statistics.stdev(times) if len(times) > 1 else 0

    def __str__(self):
        return (f"{self.name:40} | "
                f"Mean: {self.mean*1000:8.3f}ms | "
                f"Median: {self.median*1000:8.3f}ms | "
                f"StdDev: {self.stdev*1000:8.3f}ms | "
                f"Min: {self.min*1000:8.3f}ms | "
                f"Max: {self.max*1000:8.3f}ms")


def benchmark(func: Callable, *args, iterations: int = 5, **kwargs) -> BenchmarkResult:
    """Time func(*args, **kwargs) after one warm-up call."""
    times = []
    func(*args, **kwargs)
    for _ in range(iterations):
        start = time.perf_counter()
        func(*args, **kwargs)
        times.append(time.perf_counter() - start)
    return BenchmarkResult(func.__name__, times)


def _header(title: str) -> None:
    print("\n" + "="*100)
    print(title)
    print("="*100)


# ============================================================================
# 1. PRIMALITY TESTING BENCHMARKS
# ============================================================================

def benchmark_primality():
    """Sequential vs. parallel Miller-Rabin on primes (every round runs)."""
    _header("MILLER-RABIN BENCHMARKS (40 rounds)")
    primes = [
        (1000000007, "10-digit prime"),
        (2**127 - 1, "Mersenne prime 2^127-1"),
        (2**255 - 19, "Curve25519 field prime"),
    ]
    for p, description in primes:
        result = benchmark(miller_rabin, p, 40)
        result.name = f"{description} (sequential)"
        print(result)
        result = benchmark(parallel_miller_rabin, p, 40, 4)
        result.name = f"{description} (4 threads)"
        print(result)


# ============================================================================
# 2. DIVISOR SEARCH BENCHMARKS
# ============================================================================

def benchmark_divisor_searches():
    """Each divisor search on inputs it is suited to."""
    _header("DIVISOR SEARCH BENCHMARKS")
    close = 1000003 * 1000033
    spread = 1000003 * 2147483647
    cases = [
        ("Fermat window, close factors", difference_of_squares, (close,)),
        ("Pollard rho, close factors", pollard_rho, (close,)),
        ("Pollard rho, spread factors", pollard_rho, (spread,)),
        ("Rho race x4, spread factors", parallel_rho_race, (spread, 4)),
    ]
    for description, func, args in cases:
        result = benchmark(func, *args, iterations=3)
        result.name = description
        print(result)


# ============================================================================
# 3. COMPLETE FACTORIZATION BENCHMARKS
# ============================================================================

def benchmark_strategies():
    """All strategies factor the same numbers."""
    _header("COMPLETE FACTORIZATION BY STRATEGY")
    numbers = [91, 999999, 123456789101112, 1000000007 * 1000000009]
    perf = os.environ.get("FACTOR_PERF_LOGGING", "").lower() in ("1", "true", "yes", "on")
    for strategy in Strategy:
        engine = FactorizationStrategy(FactorizationConfig(
            strategy=strategy, thread_count=4, performance_logging=perf))
        for n in numbers:
            result = benchmark(engine.factorize, n, iterations=3)
            result.name = f"{strategy.value} {n}"[:40]
            print(result)
        if perf:
            print(f"  metrics: {engine.metrics.as_dict()}")


# ============================================================================
# 4. WORD-SIZE FALLBACK BENCHMARKS
# ============================================================================

def benchmark_trial_division():
    """JIT trial division on word-size semiprimes."""
    _header(f"TRIAL DIVISION FALLBACK (JIT available: {is_simd_available()})")
    for n in (10403, 1000003 * 1000033, 1000003 * 2147483629):
        result = benchmark(smallest_factor, n, iterations=3)
        result.name = f"smallest_factor({n})"[:40]
        print(result)


# ============================================================================
# MAIN BENCHMARK SUITE
# ============================================================================

def run_all_benchmarks():
    """Run all benchmarks."""
    logging.basicConfig(level=os.environ.get("FACTOR_LOG_LEVEL", "WARNING").upper(),
                        format="%(asctime)s %(name)s %(levelname)s %(message)s")
    print("\nFACTORIZATION ENGINE BENCHMARK SUITE")
    print(f"JIT available: {is_simd_available()}")

    try:
        benchmark_primality()
        benchmark_divisor_searches()
        benchmark_strategies()
        benchmark_trial_division()

        print("\n" + "="*100)
        print("BENCHMARK COMPLETE")
        print("="*100 + "\n")

    except KeyboardInterrupt:
        print("\nBenchmark interrupted by user")
        sys.exit(1)
    finally:
        shutdown_pool()


if __name__ == "__main__":
    run_all_benchmarks()
