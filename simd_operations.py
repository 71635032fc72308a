"""
Machine-word kernels for the factorization engine.

Arbitrary-precision work stays in Python ints; these helpers cover the part
of the search space that fits in a signed 64-bit word, where Numba can
compile the inner loop and NumPy can sieve in bulk.

OPTIMIZATION TARGETS:
1. Trial division fallback: Numba JIT over int64 (removes interpreter overhead)
2. Prime sieve: NumPy vectorized slicing (ground truth for small ranges)
"""

import math
from typing import Any, Callable, List

import numpy as np

# Try to import Numba for JIT compilation
try:
    from numba import njit
    NUMBA_AVAILABLE: bool = True
except ImportError:
    NUMBA_AVAILABLE: bool = False
    # Fallback decorator (no-op)
    def njit(func: Callable[..., Any]) -> Callable[..., Any]:
        return func

# Numbers below this bound fit a signed 64-bit machine word
WORD_LIMIT: int = 1 << 63


# ============================================================================
# PART 1: WORD-SIZE TRIAL DIVISION (Numba JIT)
# ============================================================================

@njit
def _smallest_factor_simd(n, limit):
    """
    JIT-compiled 6k±1 wheel returning the smallest prime factor of n.

    limit must be isqrt(n); it is computed by the caller so the loop never
    squares a candidate (i*i overflows int64 near the top of the range).

    Returns:
        Smallest prime factor, or n itself when none is <= limit
    """
    if n % 2 == 0:
        return 2
    if n % 3 == 0:
        return 3
    i = 5
    step = 2
    while i <= limit:
        if n % i == 0:
            return i
        i += step
        step = 6 - step
    return n


def smallest_factor(n: int) -> int:
    """
    Smallest prime factor of a word-size integer by plain trial division.

    Args:
        n: Integer with 2 <= n < 2**63

    Returns:
        Smallest prime factor (n itself when n is prime)
    """
    if n < 2 or n >= WORD_LIMIT:
        raise ValueError(f"smallest_factor needs 2 <= n < 2**63, got {n}")
    if n < 4:
        return n
    return int(_smallest_factor_simd(n, math.isqrt(n)))


# ============================================================================
# PART 2: PRIME SIEVE (NumPy Vectorization)
# ============================================================================

def prime_sieve(limit: int) -> np.ndarray:
    """
    Sieve of Eratosthenes as a boolean mask.

    Args:
        limit: Largest number covered

    Returns:
        Array of length limit + 1 where mask[k] is True iff k is prime
    """
    if limit < 0:
        return np.zeros(0, dtype=bool)
    sieve = np.ones(limit + 1, dtype=bool)
    sieve[:2] = False
    sieve[4::2] = False
    for i in range(3, math.isqrt(limit) + 1, 2):
        if sieve[i]:
            sieve[i * i::2 * i] = False
    return sieve


def primes_up_to(limit: int) -> List[int]:
    """All primes <= limit, ascending."""
    return [int(p) for p in np.flatnonzero(prime_sieve(limit))]


# ============================================================================
# SIMD AVAILABILITY CHECK
# ============================================================================

def is_simd_available() -> bool:
    """Check if JIT-compiled kernels are available (Numba installed)."""
    return NUMBA_AVAILABLE


__all__: List[str] = [
    'WORD_LIMIT',
    'smallest_factor',
    'prime_sieve',
    'primes_up_to',
    'is_simd_available',
]
