import threading
from unittest.mock import patch

from ingestion.rate_limiter import PerDomainRateLimiter


class TestPerDomainRateLimiter:
    def test_first_request_does_not_wait(self):
        limiter = PerDomainRateLimiter(min_interval=1.0)
        with patch('ingestion.rate_limiter.time.sleep') as mock_sleep:
            assert limiter.wait("https://acme.com/") == 0.0
        mock_sleep.assert_not_called()

    def test_same_host_waits_for_interval(self):
        limiter = PerDomainRateLimiter(min_interval=1.0)
        with patch('ingestion.rate_limiter.time.monotonic', return_value=100.0), \
                patch('ingestion.rate_limiter.time.sleep') as mock_sleep:
            limiter.wait("https://acme.com/")
            slept = limiter.wait("https://acme.com/about")

        assert slept == 1.0
        mock_sleep.assert_called_once_with(1.0)

    def test_host_match_ignores_case(self):
        limiter = PerDomainRateLimiter(min_interval=2.0)
        with patch('ingestion.rate_limiter.time.monotonic', return_value=50.0), \
                patch('ingestion.rate_limiter.time.sleep'):
            limiter.wait("https://ACME.com/")
            assert limiter.wait("https://acme.com/") == 2.0

    def test_different_hosts_are_independent(self):
        limiter = PerDomainRateLimiter(min_interval=1.0)
        with patch('ingestion.rate_limiter.time.monotonic', return_value=10.0), \
                patch('ingestion.rate_limiter.time.sleep') as mock_sleep:
            limiter.wait("https://acme.com/")
            assert limiter.wait("https://example.org/") == 0.0
        mock_sleep.assert_not_called()

    def test_concurrent_callers_queue_behind_each_other(self):
        limiter = PerDomainRateLimiter(min_interval=0.5)
        delays = []
        lock = threading.Lock()

        def worker():
            slept = limiter.wait("https://acme.com/")
            with lock:
                delays.append(slept)

        with patch('ingestion.rate_limiter.time.monotonic', return_value=0.0), \
                patch('ingestion.rate_limiter.time.sleep'):
            threads = [threading.Thread(target=worker) for _ in range(3)]
            for t in threads:
                t.start()
            for t in threads:
                t.join()

        assert sorted(delays) == [0.0, 0.5, 1.0]

    def test_zero_interval_and_missing_host(self):
        assert PerDomainRateLimiter(min_interval=0).wait("https://acme.com/") == 0.0
        assert PerDomainRateLimiter(min_interval=1.0).wait("not a url") == 0.0

    def test_reset_clears_slots(self):
        limiter = PerDomainRateLimiter(min_interval=1.0)
        with patch('ingestion.rate_limiter.time.monotonic', return_value=5.0), \
                patch('ingestion.rate_limiter.time.sleep'):
            limiter.wait("https://acme.com/")
            limiter.reset()
            assert limiter.wait("https://acme.com/") == 0.0
