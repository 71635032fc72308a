"""
Configuration for the factorization engine.

One FactorizationConfig carries every tunable the strategies consume, so the
Miller-Rabin round count and the iteration caps are set in exactly one place
instead of being hardcoded per call site.
"""
import os
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Mapping

from errors import InvalidInputError

DEFAULT_MILLER_RABIN_ITERATIONS = 40
DEFAULT_FERMAT_MAX_CANDIDATES = 1000
DEFAULT_RHO_RETRIES = 8
DEFAULT_RACE_ITERATION_CAP = 100_000

_TRUE_STRINGS = ("1", "true", "yes", "on")
_FALSE_STRINGS = ("0", "false", "no", "off", "")


class Strategy(Enum):
    """The closed set of divisor-search strategies."""
    DIFFERENCE_OF_SQUARES = "difference_of_squares"
    RHO = "rho"
    PARALLEL_RHO_RACE = "parallel_rho_race"


# Numeric method selectors, 1 to 3
_STRATEGY_NUMBERS = {
    "1": Strategy.DIFFERENCE_OF_SQUARES,
    "2": Strategy.RHO,
    "3": Strategy.PARALLEL_RHO_RACE,
}


def default_thread_count() -> int:
    return os.cpu_count() or 8


def parse_strategy(value: "str | Strategy", thread_count: int | None = None) -> Strategy:
    """
    Resolve a strategy name, method number or "auto".

    "auto" picks the parallel race when more than one thread is available
    and plain rho otherwise.
    """
    if isinstance(value, Strategy):
        return value
    key = str(value).strip().lower().replace("-", "_")
    if key == "auto":
        threads = default_thread_count() if thread_count is None else thread_count
        return Strategy.PARALLEL_RHO_RACE if threads > 1 else Strategy.RHO
    if key in _STRATEGY_NUMBERS:
        return _STRATEGY_NUMBERS[key]
    try:
        return Strategy(key)
    except ValueError:
        names = ", ".join(s.value for s in Strategy)
        raise InvalidInputError(f"unknown strategy {value!r} (expected one of {names}, or auto)") from None


@dataclass(frozen=True)
class FactorizationConfig:
    """
    Settings consumed by FactorizationStrategy.

    Attributes:
        strategy: Which divisor search to run
        thread_count: Workers for the parallel strategy (ignored by the others)
        miller_rabin_iterations: Witness rounds per probabilistic primality test
        fermat_max_candidates: Window size of the difference-of-squares search
        rho_retries: Polynomial offsets tried by plain rho before giving up
        race_iteration_cap: Per-worker rho iteration cap in the parallel race,
            also used for the bounded rho fallback
        performance_logging: Collect and log PerformanceMetrics
    """
    strategy: Strategy = Strategy.RHO
    thread_count: int = field(default_factory=default_thread_count)
    miller_rabin_iterations: int = DEFAULT_MILLER_RABIN_ITERATIONS
    fermat_max_candidates: int = DEFAULT_FERMAT_MAX_CANDIDATES
    rho_retries: int = DEFAULT_RHO_RETRIES
    race_iteration_cap: int = DEFAULT_RACE_ITERATION_CAP
    performance_logging: bool = False

    def __post_init__(self):
        if not isinstance(self.strategy, Strategy):
            object.__setattr__(self, "strategy", parse_strategy(self.strategy, self.thread_count))
        for name in ("thread_count", "miller_rabin_iterations", "fermat_max_candidates",
                     "rho_retries", "race_iteration_cap"):
            value = getattr(self, name)
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise InvalidInputError(f"{name} must be a positive integer, got {value!r}")

    def with_overrides(self, **changes) -> "FactorizationConfig":
        """Return a copy with the given fields replaced (and re-validated)."""
        return replace(self, **changes)

    @classmethod
    def from_env(cls, environ: Mapping[str, str] | None = None) -> "FactorizationConfig":
        """
        Build a config from FACTOR_* environment variables.

        Unset variables keep their defaults. Recognised variables:
        FACTOR_STRATEGY, FACTOR_THREADS, FACTOR_MR_ITERATIONS,
        FACTOR_FERMAT_CANDIDATES, FACTOR_RHO_RETRIES, FACTOR_RACE_CAP,
        FACTOR_PERF_LOGGING.
        """
        env = os.environ if environ is None else environ
        kwargs = {}
        ints = {
            "FACTOR_THREADS": "thread_count",
            "FACTOR_MR_ITERATIONS": "miller_rabin_iterations",
            "FACTOR_FERMAT_CANDIDATES": "fermat_max_candidates",
            "FACTOR_RHO_RETRIES": "rho_retries",
            "FACTOR_RACE_CAP": "race_iteration_cap",
        }
        for var, name in ints.items():
            raw = env.get(var)
            if raw is None:
                continue
            try:
                kwargs[name] = int(raw.strip().replace("_", ""))
            except ValueError:
                raise InvalidInputError(f"{var} must be an integer, got {raw!r}") from None

        raw = env.get("FACTOR_PERF_LOGGING")
        if raw is not None:
            flag = raw.strip().lower()
            if flag in _TRUE_STRINGS:
                kwargs["performance_logging"] = True
            elif flag in _FALSE_STRINGS:
                kwargs["performance_logging"] = False
            else:
                raise InvalidInputError(f"FACTOR_PERF_LOGGING must be a boolean, got {raw!r}")

        raw = env.get("FACTOR_STRATEGY")
        if raw is not None:
            kwargs["strategy"] = parse_strategy(raw, kwargs.get("thread_count"))

        return cls(**kwargs)
