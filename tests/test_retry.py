import pytest
import requests

from resilient_api.core.models import (
    Cancelled,
    HttpFailure,
    RetryConfig,
    Success,
    TransportFailure,
)
from resilient_api.core.retry import RetryPolicy

CONNECT = TransportFailure(requests.ConnectionError("refused"), connect=True)
OTHER_TRANSPORT = TransportFailure(requests.TooManyRedirects("loop"), connect=False)


def policy(max_retries=3, base_delay_ms=1000, sink=None):
    return RetryPolicy(RetryConfig(max_retries=max_retries, base_delay_ms=base_delay_ms), log_sink=sink)


class TestShouldRetry:
    @pytest.mark.parametrize("attempt", [3, 4, 10])
    @pytest.mark.parametrize(
        "outcome",
        [CONNECT, HttpFailure(503, "", "text/html"), HttpFailure(500, {}, "application/json")],
    )
    def test_never_retries_at_or_past_the_limit(self, attempt, outcome):
        assert policy(max_retries=3).should_retry(attempt, outcome) is False

    @pytest.mark.parametrize("attempt", [0, 1, 2])
    @pytest.mark.parametrize("code", [500, 502, 503, 504, 599])
    def test_retries_server_errors_below_the_limit(self, attempt, code):
        assert policy().should_retry(attempt, HttpFailure(code, "", "text/html")) is True

    @pytest.mark.parametrize("code", [100, 200, 301, 400, 404, 429, 499])
    def test_does_not_retry_below_500(self, code):
        assert policy().should_retry(0, HttpFailure(code, "", "text/html")) is False

    def test_retries_connect_failures(self):
        assert policy().should_retry(0, CONNECT) is True

    def test_does_not_retry_other_transport_failures(self):
        assert policy().should_retry(0, OTHER_TRANSPORT) is False

    def test_does_not_retry_success_or_cancellation(self):
        assert policy().should_retry(0, Success(200, "ok", "text/plain")) is False
        assert policy().should_retry(0, Cancelled()) is False

    def test_zero_max_retries_disables_retry(self):
        assert policy(max_retries=0).should_retry(0, CONNECT) is False

    def test_default_config(self):
        p = RetryPolicy()
        assert p.config.max_retries == 5
        assert p.should_retry(4, CONNECT) is True
        assert p.should_retry(5, CONNECT) is False


class TestRetryLogging:
    def test_no_event_for_first_decision(self, sink):
        policy(sink=sink).should_retry(0, CONNECT, target="http://api.test/x")
        assert sink.events == []

    def test_emits_retry_attempt_event(self, sink):
        policy(sink=sink).should_retry(2, CONNECT, target="http://api.test/x")
        assert sink.events == [
            {
                "message": "retry 2 of url http://api.test/x",
                "level": "info",
                "event": "retry_attempt",
                "attempt": 2,
                "target": "http://api.test/x",
            }
        ]

    def test_event_emitted_even_when_limit_reached(self, sink):
        assert policy(max_retries=1, sink=sink).should_retry(1, CONNECT, target="u") is False
        assert len(sink.events) == 1

    def test_missing_sink_is_a_noop(self):
        assert policy(sink=None).should_retry(1, CONNECT, target="u") is True


class TestDelay:
    @pytest.mark.parametrize("attempt", [1, 2, 3, 7])
    def test_linear_schedule(self, attempt):
        assert policy(base_delay_ms=250).delay_for(attempt) == 250 * attempt

    def test_not_capped(self):
        assert policy(base_delay_ms=1000).delay_for(100) == 100000


class TestRetryConfig:
    def test_defaults(self):
        cfg = RetryConfig()
        assert (cfg.max_retries, cfg.base_delay_ms) == (5, 1000)

    @pytest.mark.parametrize("kwargs", [{"max_retries": -1}, {"base_delay_ms": 0}, {"base_delay_ms": -5}])
    def test_rejects_invalid_values(self, kwargs):
        with pytest.raises(ValueError):
            RetryConfig(**kwargs)
