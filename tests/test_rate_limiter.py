"""Tests for the submission rate limiter"""

from starlette.requests import Request

from school_intake.services.rate_limiter import SubmissionRateLimiter, client_identifier


def _request(host="203.0.113.7", user_agent="Mozilla/5.0"):
    return Request(
        {
            "type": "http",
            "method": "POST",
            "path": "/api/submit",
            "headers": [(b"user-agent", user_agent.encode())],
            "client": (host, 50000),
        }
    )


class TestSubmissionRateLimiter:
    """Test the fixed window counting"""

    def test_allows_up_to_max_requests(self):
        limiter = SubmissionRateLimiter(max_requests=3, window=60)

        assert [limiter.hit("client-a") for _ in range(4)] == [True, True, True, False]

    def test_clients_are_counted_separately(self):
        limiter = SubmissionRateLimiter(max_requests=1, window=60)

        assert limiter.hit("client-a")
        assert not limiter.hit("client-a")
        assert limiter.hit("client-b")

    def test_retry_after_is_within_window(self):
        limiter = SubmissionRateLimiter(max_requests=1, window=60)
        limiter.hit("client-a")
        limiter.hit("client-a")

        assert 1 <= limiter.retry_after("client-a") <= 60


class TestClientIdentifier:
    def test_address_and_user_agent(self):
        identifier = client_identifier(_request())

        host, digest = identifier.split(":")
        assert host == "203.0.113.7"
        assert len(digest) == 8

    def test_user_agent_changes_identifier(self):
        assert client_identifier(_request()) != client_identifier(_request(user_agent="curl/8.0"))

    def test_missing_client(self):
        request = Request({"type": "http", "method": "POST", "path": "/", "headers": []})

        assert client_identifier(request).startswith("unknown:")
