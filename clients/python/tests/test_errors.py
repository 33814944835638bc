"""Tests for the error types in ptero_client.errors."""

import unittest

from ptero_client.errors import (
    ApplicationError,
    CombinatorError,
    ConfigurationError,
    HttpError,
    LockTimeoutError,
    PteroError,
    RateLimitedError,
    ServerError,
    SessionClosedError,
    TransportError,
)


class TestErrorHierarchy(unittest.TestCase):
    """Every client error is a PteroError and says whether it is retryable."""

    def test_all_errors_share_base(self):
        """All client errors should derive from PteroError."""
        errors = [
            ConfigurationError("x"),
            TransportError("x"),
            ServerError(503, "x"),
            ApplicationError(404, "x"),
            RateLimitedError(1.0),
            CombinatorError("x"),
            LockTimeoutError(10),
            SessionClosedError(),
        ]
        for error in errors:
            self.assertIsInstance(error, PteroError)

    def test_http_errors_carry_status_and_body(self):
        """ServerError and ApplicationError should keep status and body."""
        error = ApplicationError(422, "The name field is required.", body='{"errors": []}')
        self.assertIsInstance(error, HttpError)
        self.assertEqual(error.status, 422)
        self.assertEqual(error.body, '{"errors": []}')
        self.assertEqual(str(error), "HTTP 422: The name field is required.")

    def test_retryable_kinds(self):
        """Only transport, server and rate limit failures are retryable."""
        self.assertTrue(TransportError("reset").is_retryable())
        self.assertTrue(ServerError(500, "boom").is_retryable())
        self.assertTrue(RateLimitedError(2.0).is_retryable())
        self.assertFalse(ApplicationError(404, "missing").is_retryable())
        self.assertFalse(ConfigurationError("no token").is_retryable())
        self.assertFalse(CombinatorError("bad map").is_retryable())

    def test_rate_limited_error_carries_wait(self):
        """RateLimitedError should expose the wait in seconds."""
        error = RateLimitedError(1.5)
        self.assertEqual(error.retry_after, 1.5)
        self.assertIn("1.500s", str(error))

    def test_combinator_error_keeps_original(self):
        """CombinatorError should keep the failure it was recovering from."""
        original = ApplicationError(404, "missing")
        error = CombinatorError("recovery failed", original=original)
        self.assertIs(error.original, original)

    def test_lock_timeout_message(self):
        """LockTimeoutError should name the timeout."""
        error = LockTimeoutError(10.0)
        self.assertEqual(error.timeout, 10.0)
        self.assertIn("(10 seconds)", str(error))


if __name__ == "__main__":
    unittest.main()
