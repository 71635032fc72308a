"""
Tests for worker orchestration: cancellation, the first-wins result slot and
exception propagation out of the pool.
"""

import threading
import time

import pytest

import concurrency
from concurrency import CancellationToken, RaceOutcome, run_workers, shutdown_pool
from config import FactorizationConfig, Strategy
from errors import WorkerFailedError
from factorization import FactorizationStrategy


class TestCancellationToken:

    def test_starts_uncancelled(self):
        token = CancellationToken()
        assert not token.cancelled
        assert token.wait(timeout=0.01) is False

    def test_cancel_is_sticky(self):
        token = CancellationToken()
        token.cancel()
        token.cancel()
        assert token.cancelled
        assert token.wait(timeout=0.01) is True


class TestRaceOutcome:

    def test_first_offer_wins(self):
        outcome = RaceOutcome()
        assert not outcome.found
        assert outcome.offer(101)
        assert not outcome.offer(103)
        assert outcome.found
        assert outcome.value == 101
        assert outcome.token.cancelled

    def test_uses_given_token(self):
        token = CancellationToken()
        outcome = RaceOutcome(token)
        outcome.offer(7)
        assert token.cancelled

    def test_single_winner_under_contention(self):
        outcome = RaceOutcome()
        barrier = threading.Barrier(16)
        winners = []
        lock = threading.Lock()

        def offer(i):
            barrier.wait()
            if outcome.offer(i):
                with lock:
                    winners.append(i)

        threads = [threading.Thread(target=offer, args=(i,)) for i in range(16)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(winners) == 1
        assert outcome.value == winners[0]


class TestRunWorkers:

    def test_results_in_item_order(self):
        def worker(i):
            # Later items finish first
            time.sleep(0.01 * (5 - i))
            return i * i

        assert run_workers(worker, range(5)) == [0, 1, 4, 9, 16]

    def test_no_items(self):
        assert run_workers(lambda i: i, []) == []

    def test_failure_cancels_token_and_propagates(self):
        token = CancellationToken()
        finished = []

        def worker(i):
            if i == 0:
                raise ValueError("bad witness")
            # Stops early only if the failure cancelled the token
            finished.append(token.wait(timeout=5))
            return i

        start = time.time()
        with pytest.raises(WorkerFailedError) as excinfo:
            run_workers(worker, range(3), token=token)
        assert time.time() - start < 4
        assert isinstance(excinfo.value.__cause__, ValueError)
        assert token.cancelled
        # Every worker joined before the error surfaced
        assert finished == [True, True]

    def test_failure_without_token(self):
        def worker(i):
            raise KeyError(i)

        with pytest.raises(WorkerFailedError) as excinfo:
            run_workers(worker, [1])
        assert isinstance(excinfo.value.__cause__, KeyError)


class TestWorkerPool:

    def test_pool_grows_and_is_reused(self):
        shutdown_pool()
        run_workers(lambda i: i, range(2))
        first = concurrency._pool
        assert concurrency._pool_size == 2

        run_workers(lambda i: i, range(2))
        assert concurrency._pool is first

        run_workers(lambda i: i, range(6))
        assert concurrency._pool_size == 6
        assert concurrency._pool is not first

    def test_concurrent_callers_with_growing_sizes(self):
        """Callers still using a pool that another caller replaced must not fail."""
        shutdown_pool()
        barrier = threading.Barrier(8)
        errors = []
        lock = threading.Lock()

        def caller(size):
            barrier.wait()
            try:
                for _ in range(20):
                    assert run_workers(lambda i: i, range(size)) == list(range(size))
            except Exception as exc:
                with lock:
                    errors.append(exc)

        threads = [threading.Thread(target=caller, args=(1 + 9 * k,)) for k in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert errors == []
        assert concurrency._pool_size == 64

    def test_engines_with_different_thread_counts(self):
        shutdown_pool()
        failures = []

        def caller(threads):
            engine = FactorizationStrategy(FactorizationConfig(
                strategy=Strategy.PARALLEL_RHO_RACE, thread_count=threads))
            try:
                for _ in range(20):
                    assert engine.is_prime(1000003)
            except Exception as exc:
                failures.append(exc)

        workers = [threading.Thread(target=caller, args=(2 + i,)) for i in range(8)]
        for t in workers:
            t.start()
        for t in workers:
            t.join()
        assert failures == []

    def test_shutdown_then_recreate(self):
        run_workers(lambda i: i, range(2))
        shutdown_pool()
        assert concurrency._pool is None
        assert concurrency._pool_size == 0
        assert run_workers(lambda i: i + 1, range(3)) == [1, 2, 3]
