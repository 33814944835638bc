"""Shared helpers for the ptero_client tests."""

import json
import threading
from typing import Any, Callable, Optional

import httpx

from ptero_client import ClientConfig, Session

BASE_URL = "https://panel.test"
TOKEN = "ptla_test_token"


class FakeClock:
    """Deterministic clock for testing. Starts at 0.0 and advances manually."""

    def __init__(self, start: float = 0.0) -> None:
        self._now = start

    def __call__(self) -> float:
        return self._now

    def advance(self, seconds: float) -> None:
        self._now += seconds


class FakePanel:
    """httpx transport handler that records requests and answers from a script.

    Each scripted entry is either an ``httpx.Response``, an exception to
    raise, or a callable taking the request. The last entry repeats once the
    script runs out.
    """

    def __init__(self, *script: Any):
        self.script = list(script) or [httpx.Response(200, json={})]
        self.requests: list[httpx.Request] = []
        self._lock = threading.Lock()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        with self._lock:
            index = min(len(self.requests), len(self.script) - 1)
            self.requests.append(request)
            entry = self.script[index]
        if isinstance(entry, BaseException):
            raise entry
        if callable(entry):
            return entry(request)
        # Fresh copy so a repeated entry is never shared between exchanges.
        return httpx.Response(entry.status_code, headers=entry.headers, content=entry.content)

    @property
    def calls(self) -> int:
        return len(self.requests)

    def paths(self) -> list[str]:
        return [str(r.url.raw_path, "ascii") for r in self.requests]


def make_session(
    handler: Callable[[httpx.Request], httpx.Response],
    **overrides: Any,
) -> Session:
    """Session talking to a mock transport."""
    settings = {
        "base_url": BASE_URL,
        "token": TOKEN,
        "user_agent": "ptero-client-tests",
    }
    settings.update(overrides)
    config = ClientConfig(**settings)
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return Session(config, http_client=client)


def json_response(status: int, data: Any, headers: Optional[dict] = None) -> httpx.Response:
    return httpx.Response(status, content=json.dumps(data).encode(), headers={
        "Content-Type": "application/json",
        **(headers or {}),
    })


def listing(items: list, current_page: int, total_pages: int, per_page: int = 10) -> dict:
    """Body of one page of a listing endpoint."""
    return {
        "object": "list",
        "data": items,
        "meta": {
            "pagination": {
                "total": per_page * (total_pages - 1) + len(items),
                "count": len(items),
                "per_page": per_page,
                "current_page": current_page,
                "total_pages": total_pages,
            }
        },
    }


class Outcome:
    """Collects the result of an execute_async call."""

    def __init__(self):
        self.event = threading.Event()
        self.value: Any = None
        self.error: Optional[BaseException] = None
        self.thread_name: Optional[str] = None
        self.calls = 0

    def success(self, value: Any) -> None:
        self.value = value
        self.thread_name = threading.current_thread().name
        self.calls += 1
        self.event.set()

    def failure(self, error: BaseException) -> None:
        self.error = error
        self.thread_name = threading.current_thread().name
        self.calls += 1
        self.event.set()

    def wait(self, timeout: float = 5.0) -> bool:
        return self.event.wait(timeout)
