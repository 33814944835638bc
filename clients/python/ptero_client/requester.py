"""Performs HTTP exchanges for requests, with retries and rate limiting."""

import enum
import logging
import time
from typing import Optional

import httpx

from .config import ClientConfig
from .errors import ConfigurationError
from .models import Request, Response
from .ratelimit import RateLimiter

_log = logging.getLogger("ptero_client")

ACCEPT = "application/vnd.pterodactyl.v1+json"

# Failures worth one more try: timeouts, connection resets, TLS errors.
TRANSIENT_ERRORS = (httpx.TimeoutException, httpx.NetworkError)


class _Outcome(enum.Enum):
    SUCCESS = "success"
    RETRY = "retry"
    TERMINAL = "terminal"
    SKIPPED = "skipped"


class Requester:
    """Turns a Request into exactly one logical HTTP exchange.

    Example:
        >>> requester = Requester(config, httpx.Client(), rate_limiter)
        >>> retry_after = requester.execute(request)
        >>> if retry_after is not None:
        ...     print(f"Rate limited for {retry_after:.1f}s")
    """

    def __init__(
        self,
        config: ClientConfig,
        client: httpx.Client,
        rate_limiter: RateLimiter,
    ):
        self.config = config
        self.rate_limiter = rate_limiter
        self._client = client

    def request(self, request: Request) -> None:
        """Run a request on behalf of an asynchronous caller.

        Queueable requests wait in the rate limiter until quota is
        available; the others fail with RateLimitedError while throttled.
        """
        if request.should_queue:
            self.rate_limiter.queue_request(request, self.execute)
        else:
            self.execute(request, handle_on_rate_limit=True)

    def execute(
        self, request: Request, handle_on_rate_limit: bool = False
    ) -> Optional[float]:
        """Perform the request and deliver its outcome.

        Args:
            request: The request to perform.
            handle_on_rate_limit: Deliver a rate limit to the request's
                failure callback instead of only returning the wait.

        Returns:
            Seconds to wait if the request was rate limited and should be
            tried again, otherwise None.

        Raises:
            ConfigurationError: If the panel URL or token is missing.
        """
        retried = False
        while True:
            retry_after = self.rate_limiter.get_rate_limit()
            if retry_after > 0:
                if handle_on_rate_limit:
                    request.handle_response(Response.rate_limited(retry_after))
                return retry_after

            outbound = self._build_request(request)

            try:
                outcome, response = self._perform(request, outbound)
            except TRANSIENT_ERRORS as exc:
                if not retried:
                    retried = True
                    _log.debug(
                        "Requesting %s failed with %s, retrying once",
                        request.route, type(exc).__name__,
                    )
                    continue
                _log.error("Requester failed while executing %s: %s", request.route, exc)
                request.handle_response(Response.failed(exc))
                return None
            except Exception as exc:
                _log.error(
                    "There was an exception while executing %s: %s",
                    request.route, exc or type(exc).__name__,
                )
                request.handle_response(Response.failed(exc))
                return None

            if outcome is _Outcome.SKIPPED:
                _log.debug("Skipping cancelled request %s", request.route)
                return None

            retry_after = self.rate_limiter.handle_response(request, response)
            if retry_after is None:
                request.handle_response(response)
            elif handle_on_rate_limit:
                request.handle_response(Response.rate_limited(retry_after))
            return retry_after

    def _perform(
        self, request: Request, outbound: httpx.Request
    ) -> tuple[_Outcome, Optional[Response]]:
        """Send until the status is below 500 or the retries run out."""
        max_attempts = 1 + self.config.max_server_retries
        attempt = 0
        _log.debug("Executing request %s", request.route)
        while True:
            if request.skipped:
                return _Outcome.SKIPPED, None

            response = self._send(outbound)
            attempt += 1
            outcome = self._classify(response, attempt, max_attempts)
            if outcome is not _Outcome.RETRY:
                _log.debug(
                    "Finished request %s with code %d", request.route, response.status
                )
                return outcome, response

            _log.debug(
                "Requesting %s returned status %d... retrying (attempt %d)",
                request.route, response.status, attempt,
            )
            time.sleep(self.config.server_retry_backoff * attempt)

    @staticmethod
    def _classify(response: Response, attempt: int, max_attempts: int) -> _Outcome:
        if response.status < 500:
            return _Outcome.SUCCESS
        if attempt < max_attempts:
            return _Outcome.RETRY
        return _Outcome.TERMINAL

    def _send(self, outbound: httpx.Request) -> Response:
        response = self._client.send(outbound, stream=True)
        try:
            response.read()
            return Response.from_httpx(response)
        finally:
            response.close()

    def _headers(self) -> dict[str, str]:
        """Get request headers."""
        token = self.config.token
        if token is None or not token.strip():
            raise ConfigurationError("No authorization token was defined.")
        return {
            "Accept": ACCEPT,
            "User-Agent": self.config.user_agent,
            "Authorization": f"Bearer {token}",
        }

    def _build_request(self, request: Request) -> httpx.Request:
        base_url = self.config.base_url
        if base_url is None or not base_url.strip():
            raise ConfigurationError("No Pterodactyl URL was defined.")
        url = f"{self.config.api_url}/{request.route.compiled}"
        return self._client.build_request(
            request.route.method,
            url,
            json=request.body,
            headers=self._headers(),
        )
