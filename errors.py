"""
Error types raised by the factorization engine.

Miller-Rabin uncertainty is not an error: a "probably prime" verdict can be
wrong with probability at most 4^-k for k rounds, and is reported as such by
PrimalityVerdict.confidence rather than raised.
"""


class FactorizationError(Exception):
    """Base class for every error raised by this library."""


class InvalidInputError(FactorizationError, ValueError):
    """Input is not a valid non-negative integer (or a config value is out of range)."""


class SearchExhaustedError(FactorizationError):
    """
    Every divisor search and fallback ran out without splitting a composite.

    Attributes:
        n: The number whose factorization was requested
        factors: Primes that were split off before the search gave up (ascending)
        remaining: Composites that could not be split (ascending)
    """

    def __init__(self, n: int, factors: list[int], remaining: list[int]):
        self.n = n
        self.factors = list(factors)
        self.remaining = list(remaining)
        super().__init__(
            f"could not fully factor {n}: {len(self.remaining)} composite "
            f"part(s) left unsplit ({', '.join(str(r) for r in self.remaining)})"
        )


class WorkerFailedError(FactorizationError):
    """A worker thread raised; the original exception is chained as __cause__."""
