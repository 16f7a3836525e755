"""
Tests for rate limit keys and per-operation limits
"""

from starlette.requests import Request

from app.utils.rate_limiter import RATE_LIMITS, get_rate_limit, get_rate_limit_key
from app.utils.security import create_access_token


def make_request(headers=None, client_ip="10.0.0.5"):
    raw_headers = [(k.lower().encode(), v.encode()) for k, v in (headers or {}).items()]
    return Request({
        "type": "http",
        "method": "GET",
        "path": "/api/jobs",
        "headers": raw_headers,
        "client": (client_ip, 50000),
    })


class TestRateLimitKey:
    def test_bearer_token_keys_by_user(self):
        token = create_access_token({"sub": "user-1", "role": "driver"})
        request = make_request({"Authorization": f"Bearer {token}"})
        assert get_rate_limit_key(request) == "user:user-1"

    def test_cookie_token_keys_by_user(self):
        token = create_access_token({"sub": "user-2", "role": "admin"})
        request = make_request({"Cookie": f"access_token={token}"})
        assert get_rate_limit_key(request) == "user:user-2"

    def test_invalid_token_falls_back_to_ip(self):
        request = make_request({"Authorization": "Bearer not-a-jwt"})
        assert get_rate_limit_key(request) == "10.0.0.5"

    def test_anonymous_uses_forwarded_ip(self):
        request = make_request({"X-Forwarded-For": "203.0.113.9, 10.0.0.1"})
        assert get_rate_limit_key(request) == "203.0.113.9"


class TestRateLimits:
    def test_known_operation(self):
        assert get_rate_limit("evidence") == RATE_LIMITS["evidence"]

    def test_unknown_operation_uses_default(self):
        assert get_rate_limit("something_else") == "100/minute"
