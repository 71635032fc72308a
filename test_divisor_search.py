import time
import unittest
from unittest import mock

from concurrency import CancellationToken
from divisor_search import difference_of_squares, parallel_rho_race, pollard_rho, rho_search
from errors import WorkerFailedError

# Two 256-bit primes: the Curve25519 and secp256k1 field primes
P25519 = 2**255 - 19
PSECP = 2**256 - 2**32 - 977
RSA_STYLE = P25519 * PSECP


class TestDifferenceOfSquares(unittest.TestCase):
    """Test the bounded Fermat search"""

    def test_even_returns_two(self):
        self.assertEqual(difference_of_squares(100), 2)
        self.assertEqual(difference_of_squares(2 * 1000003), 2)

    def test_small_semiprime(self):
        # 10^2 - 91 = 3^2, so 91 = (10 - 3)(10 + 3)
        self.assertEqual(difference_of_squares(91), 7)

    def test_close_factors(self):
        self.assertEqual(difference_of_squares(1000003 * 1000033), 1000003)
        self.assertEqual(difference_of_squares(101 * 103), 101)

    def test_perfect_square(self):
        self.assertEqual(difference_of_squares(1000003 ** 2), 1000003)

    def test_prime_has_no_split(self):
        self.assertIsNone(difference_of_squares(13))
        self.assertIsNone(difference_of_squares(1000003))

    def test_window_exhausted(self):
        # Factors 3 and 1000003 are far apart: q would have to reach ~500003
        self.assertIsNone(difference_of_squares(3 * 1000003))
        self.assertIsNone(difference_of_squares(RSA_STYLE, max_candidates=50))

    def test_window_size(self):
        # 3 * 1000003: q = 500003 is the only nontrivial hit
        self.assertIsNone(difference_of_squares(3 * 1000003, max_candidates=10))


class TestPollardRho(unittest.TestCase):
    """Test Pollard's rho"""

    def test_even_number(self):
        self.assertEqual(pollard_rho(100), 2)
        self.assertEqual(rho_search(1000), 2)

    def test_finds_factor(self):
        n = 10403
        d = rho_search(n)
        self.assertIn(d, (101, 103))

    def test_result_divides(self):
        for n in (1073, 8051, 1000003 * 1000033, 1000000007 * 1000000009):
            d = rho_search(n)
            self.assertIsNotNone(d, n)
            self.assertTrue(1 < d < n)
            self.assertEqual(n % d, 0)

    def test_collapsed_cycle_returns_none(self):
        # With c = 1 the walk on 25 closes at x == y, so gcd gives n itself
        self.assertIsNone(pollard_rho(25, 1))
        self.assertEqual(rho_search(25), 5)

    def test_inputs_below_four_have_no_divisor(self):
        for n in (0, 1, 2, 3):
            self.assertIsNone(pollard_rho(n))
            self.assertIsNone(rho_search(n))
            self.assertIsNone(parallel_rho_race(n, 2))
            self.assertIsNone(difference_of_squares(n))

    def test_iteration_cap(self):
        self.assertIsNone(pollard_rho(RSA_STYLE, max_iterations=10))
        self.assertIsNone(pollard_rho(1000003 * 1000033, max_iterations=0))

    def test_cancelled_token_stops_walk(self):
        token = CancellationToken()
        token.cancel()
        self.assertIsNone(pollard_rho(1000003 * 1000033, token=token))

    def test_distinct_offsets(self):
        n = 1000003 * 1000033
        for c in (1, 2, 3, 5):
            d = pollard_rho(n, c)
            if d is not None:
                self.assertIn(d, (1000003, 1000033))


class TestParallelRhoRace(unittest.TestCase):
    """Test the threaded rho race"""

    def test_even_returns_two(self):
        self.assertEqual(parallel_rho_race(2 * 1000003, 4), 2)

    def test_finds_factor(self):
        n = 1000003 * 1000033
        d = parallel_rho_race(n, 4)
        self.assertIn(d, (1000003, 1000033))
        self.assertEqual(n // d * d, n)

    def test_single_thread(self):
        self.assertIn(parallel_rho_race(10403, 1), (101, 103))

    def test_any_winner_gives_same_factor_set(self):
        n = 1000000007 * 1000000009
        for threads in (1, 2, 3, 8):
            d = parallel_rho_race(n, threads)
            self.assertEqual(sorted([d, n // d]), [1000000007, 1000000009])

    def test_terminates_within_caps(self):
        start = time.time()
        self.assertIsNone(parallel_rho_race(RSA_STYLE, 3, max_iterations=300))
        self.assertLess(time.time() - start, 30.0)

    def test_worker_exception_propagates(self):
        with mock.patch("divisor_search.pollard_rho", side_effect=RuntimeError("boom")):
            with self.assertRaises(WorkerFailedError) as ctx:
                parallel_rho_race(1000003 * 1000033, 3)
        self.assertIsInstance(ctx.exception.__cause__, RuntimeError)


if __name__ == "__main__":
    unittest.main()
