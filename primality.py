"""
Primality testing: small-prime trial division, a base-2 Fermat pre-filter and
Miller-Rabin, sequential or with its witness rounds split across threads.

Verdicts for n <= 100, or for n with a factor among the small primes, are
exact. Everything else is decided by Miller-Rabin, whose false-positive rate
is at most 4^-k for k independent rounds; such verdicts are labelled
probabilistic and the engine never claims more.
"""
import logging
import math
import random
from dataclasses import dataclass
from enum import Enum

import numpy as np

from concurrency import CancellationToken, run_workers
from config import DEFAULT_MILLER_RABIN_ITERATIONS
from errors import InvalidInputError

logger = logging.getLogger(__name__)

# Odd primes 3..97 (24 values)
SMALL_PRIMES: tuple[int, ...] = (
    3, 5, 7, 11, 13, 17, 19, 23, 29, 31, 37, 41,
    43, 47, 53, 59, 61, 67, 71, 73, 79, 83, 89, 97,
)

# At or below this bound primality is settled by trial division alone
DETERMINISTIC_LIMIT = 100


class Confidence(Enum):
    DETERMINISTIC_SMALL = "deterministic-small"
    PROBABILISTIC = "probabilistic"


@dataclass(frozen=True)
class PrimalityVerdict:
    """Outcome of a primality query. Truthy iff the number is (probably) prime."""
    is_prime: bool
    confidence: Confidence

    def __bool__(self) -> bool:
        return self.is_prime


@dataclass(frozen=True)
class WitnessRange:
    """Half-open slice [start, end) of the witness index space."""
    start: int
    end: int

    def __len__(self) -> int:
        return self.end - self.start


def _exact(is_prime: bool) -> PrimalityVerdict:
    return PrimalityVerdict(is_prime, Confidence.DETERMINISTIC_SMALL)


def _probable(is_prime: bool) -> PrimalityVerdict:
    return PrimalityVerdict(is_prime, Confidence.PROBABILISTIC)


def parse_number(value) -> int:
    """
    Convert user input into a non-negative int.

    Accepts ints and base-10 numerals as str or bytes (surrounding
    whitespace is ignored).

    Raises:
        InvalidInputError: Wrong type, malformed numeral or negative value
    """
    if isinstance(value, bool):
        raise InvalidInputError(f"expected an integer, got {value!r}")
    if isinstance(value, (bytes, bytearray)):
        try:
            value = value.decode("ascii")
        except UnicodeDecodeError:
            raise InvalidInputError(f"not a decimal numeral: {value!r}") from None
    if isinstance(value, str):
        text = value.strip()
        if not text.isascii() or not text.isdigit():
            raise InvalidInputError(f"not a non-negative decimal numeral: {value!r}")
        return int(text)
    if isinstance(value, (int, np.integer)):
        n = int(value)
        if n < 0:
            raise InvalidInputError(f"expected a non-negative integer, got {n}")
        return n
    raise InvalidInputError(f"expected an int or a decimal string, got {type(value).__name__}")


def _check_iterations(iterations: int) -> None:
    if isinstance(iterations, bool) or not isinstance(iterations, int) or iterations < 1:
        raise InvalidInputError(f"Miller-Rabin iterations must be a positive integer, got {iterations!r}")


def decompose(n: int) -> tuple[int, int]:
    """Write n - 1 as d * 2^s with d odd; returns (d, s)."""
    d: int = n - 1
    s: int = 0
    while (d & 1) == 0:
        d >>= 1
        s += 1
    return d, s


def _small_verdict(n: int) -> PrimalityVerdict | None:
    """Exact verdict from the cheap checks, or None if Miller-Rabin is needed."""
    if n == 2 or n == 3:
        return _exact(True)
    if n < 2 or (n & 1) == 0:
        return _exact(False)
    for p in SMALL_PRIMES:
        if n == p:
            return _exact(True)
        if n % p == 0:
            return _exact(False)
    if n <= DETERMINISTIC_LIMIT:
        # Only reached if SMALL_PRIMES stops covering every prime below 10
        for i in range(3, math.isqrt(n) + 1, 2):
            if n % i == 0:
                return _exact(False)
        return _exact(True)
    return None


def passes_structural_filter(n: int) -> bool:
    """
    Cheap compositeness screen run before Miller-Rabin.

    Returns False when n is proven composite (a small-prime factor, or
    2^(n-1) != 1 mod n). True is only a hint: Carmichael numbers and base-2
    pseudoprimes pass.
    """
    if n < 2:
        return False
    if n in (2, 3):
        return True
    if (n & 1) == 0:
        return False
    for p in SMALL_PRIMES:
        if n == p:
            return True
        if n % p == 0:
            return False
    return pow(2, n - 1, n) == 1


def _witness_round(n: int, d: int, s: int, a: int) -> bool:
    """
    One Miller-Rabin round with base a.

    Returns:
        False if a proves n composite, True if the round is inconclusive
    """
    y = pow(a, d, n)
    if y == 1 or y == n - 1:
        return True
    for _ in range(s - 1):
        y = pow(y, 2, n)
        if y == n - 1:
            return True
        if y == 1:
            # Non-trivial square root of unity
            return False
    return False


def miller_rabin(n: int, iterations: int = DEFAULT_MILLER_RABIN_ITERATIONS,
                 rng: random.Random | None = None) -> bool:
    """
    Sequential Miller-Rabin test.

    Args:
        n: Odd integer > 3 to test
        iterations: Number of random witnesses
        rng: Source of witnesses (defaults to the module-level generator)

    Returns:
        True if n is probably prime (error <= 4^-iterations), False if composite
    """
    _check_iterations(iterations)
    if n < 5 or (n & 1) == 0:
        return n in (2, 3)
    rng = rng or random
    d, s = decompose(n)
    for _ in range(iterations):
        a = rng.randint(2, n - 2)
        if not _witness_round(n, d, s, a):
            return False
    return True


def partition_witnesses(iterations: int, thread_count: int) -> list[WitnessRange]:
    """
    Split [0, iterations) into thread_count contiguous ranges.

    Sizes differ by at most one and the remainder goes to the first ranges,
    so (40, 7) gives sizes 6, 6, 6, 6, 6, 5, 5. Ranges may be empty when
    there are more threads than iterations.
    """
    _check_iterations(iterations)
    if isinstance(thread_count, bool) or not isinstance(thread_count, int) or thread_count < 1:
        raise InvalidInputError(f"thread_count must be a positive integer, got {thread_count!r}")
    sizes = np.full(thread_count, iterations // thread_count, dtype=np.int64)
    sizes[:iterations % thread_count] += 1
    bounds = np.concatenate(([0], np.cumsum(sizes)))
    return [WitnessRange(int(bounds[i]), int(bounds[i + 1])) for i in range(thread_count)]


def parallel_miller_rabin(n: int, iterations: int = DEFAULT_MILLER_RABIN_ITERATIONS,
                          thread_count: int = 2, rng: random.Random | None = None) -> bool:
    """
    Miller-Rabin with the witness rounds distributed across threads.

    Each worker runs the rounds of its WitnessRange with its own generator
    and raises the shared is_composite flag as soon as a witness proves
    compositeness; every worker checks the flag between rounds. A worker
    that finishes without a proof contributes an inconclusive pass, so the
    result is simply "no worker found a proof".

    Raises:
        WorkerFailedError: A worker raised
    """
    _check_iterations(iterations)
    if n < 5 or (n & 1) == 0:
        return n in (2, 3)
    rng = rng or random
    d, s = decompose(n)
    is_composite = CancellationToken()
    ranges = partition_witnesses(iterations, thread_count)
    # Seeds are drawn up front so a seeded rng gives reproducible witnesses
    work = [(r, random.Random(rng.getrandbits(64))) for r in ranges if len(r)]

    def worker(item):
        witness_range, local_rng = item
        for _ in range(witness_range.start, witness_range.end):
            if is_composite.cancelled:
                return
            a = local_rng.randint(2, n - 2)
            if not _witness_round(n, d, s, a):
                is_composite.cancel()
                return

    run_workers(worker, work, token=is_composite)
    return not is_composite.cancelled


def is_prime(n, iterations: int = DEFAULT_MILLER_RABIN_ITERATIONS, *,
             prefilter: bool = False, thread_count: int = 1,
             rng: random.Random | None = None) -> PrimalityVerdict:
    """
    Decide whether n is prime.

    Args:
        n: int or decimal numeral
        iterations: Miller-Rabin rounds for numbers above the small range
        prefilter: Run the base-2 Fermat screen before Miller-Rabin
        thread_count: Split the Miller-Rabin rounds across this many threads
        rng: Witness generator (for reproducible runs)

    Returns:
        PrimalityVerdict; exact for n <= 100 and for numbers with a small
        prime factor, probabilistic otherwise
    """
    n = parse_number(n)
    _check_iterations(iterations)
    verdict = _small_verdict(n)
    if verdict is not None:
        return verdict
    if prefilter and not passes_structural_filter(n):
        return _probable(False)
    if thread_count > 1:
        return _probable(parallel_miller_rabin(n, iterations, thread_count, rng))
    return _probable(miller_rabin(n, iterations, rng))


def find_next_prime(n, iterations: int = DEFAULT_MILLER_RABIN_ITERATIONS, *,
                    prefilter: bool = True, thread_count: int = 1,
                    rng: random.Random | None = None) -> int:
    """Smallest (probable) prime strictly greater than n, testing odd candidates only."""
    n = parse_number(n)
    if n < 2:
        return 2
    candidate = n + 1
    if (candidate & 1) == 0:
        candidate += 1
    while not is_prime(candidate, iterations, prefilter=prefilter,
                       thread_count=thread_count, rng=rng):
        candidate += 2
    logger.debug("Next prime after %d is %d", n, candidate)
    return candidate
