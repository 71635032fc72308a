"""
Integer factorization built on three interchangeable divisor searches.

STRATEGIES:
1. DIFFERENCE_OF_SQUARES: bounded Fermat window near sqrt(n)
   - Splits n instantly when its factors are close, gives up otherwise
2. RHO: Pollard's rho (Floyd), with the base-2 Fermat pre-filter in front of
   Miller-Rabin
   - Retries with a new polynomial offset when a walk collapses
3. PARALLEL_RHO_RACE: thread-parallel Miller-Rabin and a race of rho walks
   - Per-worker iteration cap, first divisor wins

All three share one recursive skeleton: if n is prime it is its own
factorization, otherwise find one divisor d and factor d and n // d.

FALLBACKS (when the chosen search finds nothing):
1. n < 2**63: JIT-compiled trial division always splits n
2. larger n: the alternate search (bounded rho for DIFFERENCE_OF_SQUARES,
   the Fermat window for the rho strategies)
3. still unsplit: SearchExhaustedError, never a composite posing as a prime

DEPENDENCIES:
- NumPy: witness partitioning and sieving
- Numba (optional): JIT trial division for word-size fallbacks
"""
import logging
import threading
import time
from dataclasses import asdict, dataclass, field

from config import FactorizationConfig, Strategy
from divisor_search import difference_of_squares, parallel_rho_race, rho_search
from errors import SearchExhaustedError
from primality import PrimalityVerdict, find_next_prime, is_prime, parse_number
from simd_operations import WORD_LIMIT, smallest_factor

logger = logging.getLogger(__name__)


@dataclass
class PerformanceMetrics:
    """Cumulative timings and call counts of one FactorizationStrategy."""
    total_time: float = 0.0
    is_prime_time: float = 0.0
    find_divisor_time: float = 0.0
    is_prime_calls: int = 0
    find_divisor_calls: int = 0
    total_digits_processed: int = 0
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def record(self, operation: str, n: int, elapsed: float) -> None:
        with self._lock:
            if operation == "is_prime":
                self.is_prime_time += elapsed
                self.is_prime_calls += 1
            else:
                self.find_divisor_time += elapsed
                self.find_divisor_calls += 1
            self.total_time += elapsed
            self.total_digits_processed += len(str(n))

    def as_dict(self) -> dict:
        data = asdict(self)
        data.pop("_lock", None)
        return data


class FactorizationStrategy:
    """
    Primality test, divisor search and recursive factorizer for one Strategy.

    The strategy is a closed enum; this class dispatches on it rather than
    being subclassed per algorithm.

    Example:
        >>> FactorizationStrategy(FactorizationConfig(strategy=Strategy.RHO)).factorize("91")
        [7, 13]
    """

    def __init__(self, config: FactorizationConfig | None = None):
        self.config = config or FactorizationConfig()
        self.metrics = PerformanceMetrics()
        self._searches = {
            Strategy.DIFFERENCE_OF_SQUARES: self._difference_of_squares,
            Strategy.RHO: self._rho,
            Strategy.PARALLEL_RHO_RACE: self._parallel_rho_race,
        }
        self._alternates = {
            Strategy.DIFFERENCE_OF_SQUARES: self._bounded_rho,
            Strategy.RHO: self._difference_of_squares,
            Strategy.PARALLEL_RHO_RACE: self._difference_of_squares,
        }
        logger.debug("Created %s strategy (threads=%d, Miller-Rabin rounds=%d)",
                     self.strategy.value, self.config.thread_count,
                     self.config.miller_rabin_iterations)

    @property
    def strategy(self) -> Strategy:
        return self.config.strategy

    def __repr__(self) -> str:
        return f"FactorizationStrategy({self.strategy.value})"

    # ------------------------------------------------------------------
    # Divisor searches
    # ------------------------------------------------------------------

    def _difference_of_squares(self, n: int) -> int | None:
        return difference_of_squares(n, self.config.fermat_max_candidates)

    def _rho(self, n: int) -> int | None:
        return rho_search(n, self.config.rho_retries)

    def _bounded_rho(self, n: int) -> int | None:
        return rho_search(n, self.config.rho_retries, max_iterations=self.config.race_iteration_cap)

    def _parallel_rho_race(self, n: int) -> int | None:
        return parallel_rho_race(n, self.config.thread_count, self.config.race_iteration_cap)

    def _timed(self, operation: str, n: int, func, *args):
        if not self.config.performance_logging:
            return func(*args)
        start = time.perf_counter()
        try:
            return func(*args)
        finally:
            elapsed = time.perf_counter() - start
            self.metrics.record(operation, n, elapsed)
            logger.debug("%s(%d digits) took %.6fs [%s]", operation, len(str(n)), elapsed, self.strategy.value)

    # ------------------------------------------------------------------
    # Public operations
    # ------------------------------------------------------------------

    @property
    def _threads(self) -> int:
        return self.config.thread_count if self.strategy is Strategy.PARALLEL_RHO_RACE else 1

    def _is_prime(self, n: int) -> PrimalityVerdict:
        if self.strategy is Strategy.DIFFERENCE_OF_SQUARES:
            return is_prime(n, self.config.miller_rabin_iterations)
        return is_prime(n, self.config.miller_rabin_iterations,
                        prefilter=True, thread_count=self._threads)

    def is_prime(self, n) -> PrimalityVerdict:
        """Primality verdict using this strategy's Miller-Rabin variant."""
        n = parse_number(n)
        return self._timed("is_prime", n, self._is_prime, n)

    def find_divisor(self, n) -> int | None:
        """
        One nontrivial divisor of n from this strategy's search.

        Returns:
            1 < d < n dividing n, or None if the search was exhausted
        """
        n = parse_number(n)
        if n < 4:
            return None
        return self._timed("find_divisor", n, self._searches[self.strategy], n)

    def find_next_prime(self, n) -> int:
        """Smallest prime strictly greater than n."""
        return find_next_prime(n, self.config.miller_rabin_iterations,
                               prefilter=self.strategy is not Strategy.DIFFERENCE_OF_SQUARES,
                               thread_count=self._threads)

    def factorize(self, n) -> list[int]:
        """
        Prime factorization of n, ascending with multiplicity.

        0 and 1 give an empty list, a prime gives [n].

        Raises:
            InvalidInputError: n is not a non-negative integer
            SearchExhaustedError: Some composite part could not be split
            WorkerFailedError: A worker thread of the parallel strategy raised
        """
        n = parse_number(n)
        if n <= 1:
            return []
        primes: list[int] = []
        unsplit: list[int] = []
        self._split(n, primes, unsplit)
        primes.sort()
        if unsplit:
            unsplit.sort()
            logger.warning("Search exhausted on %d: %d composite part(s) unsplit", n, len(unsplit))
            raise SearchExhaustedError(n, primes, unsplit)
        return primes

    def _split(self, n: int, primes: list[int], unsplit: list[int]) -> None:
        if self.is_prime(n):
            primes.append(n)
            return
        d = self.find_divisor(n)
        if d is None:
            d = self._fallback_divisor(n)
        if d is None:
            unsplit.append(n)
            return
        self._split(d, primes, unsplit)
        self._split(n // d, primes, unsplit)

    def _fallback_divisor(self, n: int) -> int | None:
        if n < WORD_LIMIT:
            logger.debug("Falling back to trial division for %d", n)
            d = smallest_factor(n)
            return d if d < n else None
        logger.debug("Falling back to alternate search for %d", n)
        return self._alternates[self.strategy](n)


def get_strategy(config: FactorizationConfig | None = None, **overrides) -> FactorizationStrategy:
    """Build a FactorizationStrategy from a config (default: FACTOR_* environment)."""
    if config is None:
        config = FactorizationConfig.from_env()
    if overrides:
        config = config.with_overrides(**overrides)
    return FactorizationStrategy(config)


def factor(n, config: FactorizationConfig | None = None, **overrides) -> list[int]:
    """
    Factorize n into primes, ascending with multiplicity.

    Args:
        n: int or decimal numeral
        config: Engine settings; FACTOR_* environment variables when omitted
        **overrides: Config fields to replace, e.g. strategy=Strategy.RHO

    Returns:
        List of prime factors whose product is n
    """
    return get_strategy(config, **overrides).factorize(n)


# Example usage
if __name__ == "__main__":
    n = 123456789101112  # test number
    print("Factors of", n, ":", factor(n))
