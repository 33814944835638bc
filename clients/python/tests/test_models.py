"""Tests for Response, Request and pagination models."""

import threading
import unittest

import httpx

from ptero_client.errors import (
    ApplicationError,
    ConfigurationError,
    RateLimitedError,
    ServerError,
    TransportError,
)
from ptero_client.models import Page, PaginationMeta, Request, Response
from ptero_client.route import Route

from conftest import listing

USERS = Route("GET", "application/users")


def make_request(**kwargs):
    calls = {"success": [], "failure": []}
    request = Request(
        USERS.compile(),
        on_success=calls["success"].append,
        on_failure=calls["failure"].append,
        **kwargs,
    )
    return request, calls


class TestResponse(unittest.TestCase):
    """Tests for Response outcomes and error mapping."""

    def test_success_response(self):
        """A 2xx response is ok and maps to no error."""
        response = Response(status=200, body=b'{"object": "user"}')
        self.assertTrue(response.is_ok)
        self.assertFalse(response.is_rate_limit)
        self.assertIsNone(response.to_error())
        self.assertEqual(response.json(), {"object": "user"})

    def test_empty_body_decodes_to_none(self):
        """A 204 with no body decodes to None."""
        self.assertIsNone(Response(status=204).json())

    def test_server_error_mapping(self):
        """A 5xx maps to ServerError with the Pterodactyl error detail."""
        body = b'{"errors": [{"code": "HttpException", "status": "502", "detail": "Bad gateway"}]}'
        error = Response(status=502, body=body).to_error()
        self.assertIsInstance(error, ServerError)
        self.assertEqual(error.status, 502)
        self.assertIn("Bad gateway", str(error))

    def test_application_error_mapping(self):
        """A 4xx maps to ApplicationError."""
        error = Response(status=404, body=b"not here").to_error()
        self.assertIsInstance(error, ApplicationError)
        self.assertEqual(error.status, 404)
        self.assertIn("not here", str(error))

    def test_rate_limited_mapping(self):
        """A rate limited outcome maps to RateLimitedError with the wait."""
        response = Response.rate_limited(2.5)
        self.assertTrue(response.is_rate_limit)
        self.assertTrue(response.is_error)
        error = response.to_error()
        self.assertIsInstance(error, RateLimitedError)
        self.assertEqual(error.retry_after, 2.5)

    def test_transport_failure_is_wrapped(self):
        """httpx failures become TransportError with the cause chained."""
        cause = httpx.ConnectError("connection refused")
        error = Response.failed(cause).to_error()
        self.assertIsInstance(error, TransportError)
        self.assertIs(error.__cause__, cause)

    def test_client_errors_pass_through(self):
        """Client errors are delivered as they are."""
        cause = ConfigurationError("No authorization token was defined.")
        self.assertIs(Response.failed(cause).to_error(), cause)

    def test_from_httpx_snapshots_headers(self):
        """from_httpx keeps status, body and case-insensitive headers."""
        raw = httpx.Response(200, content=b"{}", headers={"X-RateLimit-Remaining": "59"})
        response = Response.from_httpx(raw)
        self.assertEqual(response.status, 200)
        self.assertEqual(response.body, b"{}")
        self.assertEqual(response.headers.get("x-ratelimit-remaining"), "59")


class TestRequest(unittest.TestCase):
    """Tests for Request completion handling."""

    def test_success_runs_transformer(self):
        """handle_response passes the transformed body to on_success."""
        request, calls = make_request(transformer=lambda r: r.json()["id"])
        request.handle_response(Response(status=200, body=b'{"id": 7}'))
        self.assertEqual(calls["success"], [7])
        self.assertEqual(calls["failure"], [])

    def test_default_transformer_decodes_json(self):
        """Without a transformer the decoded JSON body is delivered."""
        request, calls = make_request()
        request.handle_response(Response(status=200, body=b'[1, 2]'))
        self.assertEqual(calls["success"], [[1, 2]])

    def test_error_goes_to_on_failure(self):
        """A failed response invokes only on_failure."""
        request, calls = make_request()
        request.handle_response(Response(status=403, body=b"forbidden"))
        self.assertEqual(calls["success"], [])
        self.assertEqual(len(calls["failure"]), 1)
        self.assertIsInstance(calls["failure"][0], ApplicationError)

    def test_transformer_exception_goes_to_on_failure(self):
        """An exception raised by the transformer is delivered as the failure."""
        boom = KeyError("attributes")

        def transformer(response):
            raise boom

        request, calls = make_request(transformer=transformer)
        request.handle_response(Response(status=200, body=b"{}"))
        self.assertEqual(calls["success"], [])
        self.assertIs(calls["failure"][0], boom)

    def test_cancel_marks_skipped(self):
        """cancel() marks the request as skipped."""
        request, _ = make_request()
        self.assertFalse(request.skipped)
        request.cancel()
        self.assertTrue(request.skipped)

    def test_cancel_event_marks_skipped(self):
        """Setting the shared cancel event marks the request as skipped."""
        event = threading.Event()
        request, _ = make_request(cancel_event=event)
        self.assertFalse(request.skipped)
        event.set()
        self.assertTrue(request.skipped)


class TestPage(unittest.TestCase):
    """Tests for Page and PaginationMeta parsing."""

    def test_page_from_listing(self):
        """Page.from_dict reads items and the pagination meta."""
        page = Page.from_dict(listing([{"id": 11}, {"id": 12}], current_page=2, total_pages=3))
        self.assertEqual(page.items, [{"id": 11}, {"id": 12}])
        self.assertEqual(page.meta.current_page, 2)
        self.assertEqual(page.meta.total_pages, 3)
        self.assertEqual(page.meta.count, 2)
        self.assertTrue(page.meta.has_next)

    def test_page_without_meta_is_single_page(self):
        """A listing without meta is treated as a single page."""
        page = Page.from_dict({"object": "list", "data": [{"id": 1}]})
        self.assertEqual(page.meta.total_pages, 1)
        self.assertFalse(page.meta.has_next)

    def test_meta_defaults(self):
        """Missing pagination fields fall back to a single empty page."""
        meta = PaginationMeta.from_dict({})
        self.assertEqual(meta.current_page, 1)
        self.assertEqual(meta.total_pages, 1)
        self.assertEqual(meta.total, 0)

    def test_page_from_response(self):
        """Page.from_response decodes the response body."""
        response = Response(status=200, body=b'{"data": [], "meta": {"pagination": {"total_pages": 4}}}')
        page = Page.from_response(response)
        self.assertEqual(page.items, [])
        self.assertEqual(page.meta.total_pages, 4)


if __name__ == "__main__":
    unittest.main()
