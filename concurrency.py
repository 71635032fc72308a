"""
Thread orchestration shared by the parallel primality test and the rho race.

Workers run on a reusable ThreadPoolExecutor. Coordination uses two objects:
a CancellationToken that every worker polls between steps, and a RaceOutcome
slot that accepts exactly one result and cancels the token when filled.
Cancellation is cooperative: a worker stops at its next poll, never mid-step.
"""
import logging
import threading
from concurrent.futures import FIRST_EXCEPTION, ThreadPoolExecutor, wait
from typing import Any, Callable, Iterable

from errors import WorkerFailedError

logger = logging.getLogger(__name__)

# Global thread pool for reuse (avoid creation overhead)
_pool: ThreadPoolExecutor | None = None
_pool_size = 0
_pool_lock = threading.Lock()


class CancellationToken:
    """One-way flag: once cancelled it stays cancelled."""

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def wait(self, timeout: float | None = None) -> bool:
        """Block until cancelled or timeout; returns the cancelled state."""
        return self._event.wait(timeout)


class RaceOutcome:
    """
    First-responder-wins result slot.

    offer() stores the first value it receives and cancels the token; later
    offers are rejected. Reads after the workers have joined need no lock.
    """

    def __init__(self, token: CancellationToken | None = None):
        self.token = token or CancellationToken()
        self._lock = threading.Lock()
        self._value = None
        self._found = False

    def offer(self, value) -> bool:
        """Record value if no other worker has won yet. Returns True for the winner."""
        with self._lock:
            if self._found:
                return False
            self._value = value
            self._found = True
        self.token.cancel()
        return True

    @property
    def found(self) -> bool:
        return self._found

    @property
    def value(self):
        return self._value


def _get_pool(workers: int) -> ThreadPoolExecutor:
    """
    Get or create the global pool, growing it when more workers are needed.

    The caller must hold _pool_lock until its tasks are submitted; a pool
    replaced here accepts no new work.
    """
    global _pool, _pool_size
    if _pool is None or _pool_size < workers:
        old = _pool
        _pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix="factor-worker")
        _pool_size = workers
        logger.debug("Worker pool sized to %d threads", workers)
        if old is not None:
            # Tasks already queued on the old pool still run to completion
            old.shutdown(wait=False)
    return _pool


def shutdown_pool() -> None:
    """Close the global pool if it was created; the next parallel call recreates it."""
    global _pool, _pool_size
    with _pool_lock:
        if _pool is not None:
            _pool.shutdown(wait=True)
            _pool = None
            _pool_size = 0


def run_workers(worker: Callable[[Any], Any], items: Iterable[Any],
                token: CancellationToken | None = None) -> list:
    """
    Run worker(item) for every item concurrently and join them all.

    Args:
        worker: Callable executed once per item on a pool thread
        items: One work unit per worker
        token: Cancelled when any worker raises so the others stop early

    Returns:
        Worker return values in item order

    Raises:
        WorkerFailedError: A worker raised; raised only after every worker
            has finished, with the first failure as its cause
    """
    items = list(items)
    if not items:
        return []
    with _pool_lock:
        pool = _get_pool(len(items))
        futures = [pool.submit(worker, item) for item in items]
    done, _ = wait(futures, return_when=FIRST_EXCEPTION)
    if token is not None and any(f.exception() is not None for f in done):
        token.cancel()
    wait(futures)

    failure = next((f.exception() for f in futures if f.exception() is not None), None)
    if failure is not None:
        logger.debug("Worker failed: %r", failure)
        raise WorkerFailedError(f"worker thread raised {type(failure).__name__}: {failure}") from failure
    return [f.result() for f in futures]
