"""
Divisor searches: each takes a composite n and returns one nontrivial
divisor, or None when its search space is exhausted.

1. Difference of squares (Fermat): n = q^2 - a^2 = (q + a)(q - a), scanning a
   bounded window of q above sqrt(n). Fast only when the two factors are
   close in magnitude; the window keeps the worst case predictable.
2. Pollard's rho (Floyd cycle detection on v -> v^2 + c mod n), single
   threaded, unbounded unless a cap is given.
3. Parallel rho race: one rho walk per thread with distinct offsets c, the
   first nontrivial divisor wins and the others stop at their next step.
"""
import logging
import math

from concurrency import CancellationToken, RaceOutcome, run_workers
from config import DEFAULT_FERMAT_MAX_CANDIDATES, DEFAULT_RACE_ITERATION_CAP, DEFAULT_RHO_RETRIES

logger = logging.getLogger(__name__)


def difference_of_squares(n: int, max_candidates: int = DEFAULT_FERMAT_MAX_CANDIDATES) -> int | None:
    """
    Fermat factorization restricted to max_candidates values of q.

    Args:
        n: Composite to split
        max_candidates: Number of q values tried, starting at ceil(sqrt(n))

    Returns:
        The smaller factor q - a, or None if no split was found in the window
    """
    if n < 4:
        return None
    if (n & 1) == 0:
        return 2
    root = math.isqrt(n)
    q = root if root * root == n else root + 1
    for _ in range(max_candidates):
        r = q * q - n
        a = math.isqrt(r)
        if a * a == r:
            d = q - a
            if d > 1:
                return d
            # n = 1 * n, only the trivial split lies at this q
            return None
        q += 1
    return None


def pollard_rho(n: int, c: int = 1, *, seed: int = 2, max_iterations: int | None = None,
                token: CancellationToken | None = None) -> int | None:
    """
    Pollard's rho with Floyd cycle detection.

    Args:
        n: Composite to split
        c: Polynomial offset in f(v) = v^2 + c mod n
        seed: Starting value of both walkers
        max_iterations: Cap on rounds; None runs until the walk closes
        token: Checked before every round; the walk stops once it is cancelled

    Returns:
        A divisor 1 < d < n, or None if the cycle collapsed (d == n), the cap
        was reached, or the token was cancelled
    """
    if n < 4:
        return None
    if (n & 1) == 0:
        return 2
    x: int = seed % n
    y: int = x
    d: int = 1
    rounds: int = 0
    while d == 1:
        if token is not None and token.cancelled:
            return None
        if max_iterations is not None and rounds >= max_iterations:
            return None
        x = (x * x + c) % n
        y = (y * y + c) % n
        y = (y * y + c) % n
        d = math.gcd(abs(x - y), n)
        rounds += 1
    if d == n:
        return None
    return d


def rho_search(n: int, retries: int = DEFAULT_RHO_RETRIES, max_iterations: int | None = None) -> int | None:
    """Run pollard_rho with offsets c = 1..retries until one walk yields a divisor."""
    if n < 4:
        return None
    if (n & 1) == 0:
        return 2
    for c in range(1, retries + 1):
        d = pollard_rho(n, c, max_iterations=max_iterations)
        if d is not None:
            return d
        logger.debug("Rho walk with c=%d collapsed on %d", c, n)
    return None


def parallel_rho_race(n: int, thread_count: int,
                      max_iterations: int = DEFAULT_RACE_ITERATION_CAP) -> int | None:
    """
    Race thread_count rho walks with offsets c_i = i + 1.

    Each worker is capped at max_iterations rounds. The first divisor
    1 < d < n is recorded once; the remaining workers notice the cancelled
    token at their next round and return.

    Returns:
        The winning divisor, or None if every walk collapsed or hit its cap

    Raises:
        WorkerFailedError: A worker raised
    """
    if n < 4:
        return None
    if (n & 1) == 0:
        return 2
    outcome = RaceOutcome()

    def worker(index: int) -> None:
        d = pollard_rho(n, index + 1, max_iterations=max_iterations, token=outcome.token)
        if d is not None and 1 < d < n and outcome.offer(d):
            logger.debug("Rho worker %d won the race on %d with divisor %d", index, n, d)

    run_workers(worker, range(thread_count), token=outcome.token)
    if outcome.found:
        return outcome.value
    return None
