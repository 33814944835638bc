"""Client session: owns the HTTP client, thread pools and shared rate limiter."""

import logging
from concurrent.futures import Executor, ThreadPoolExecutor
from typing import Any, Callable, Optional

import httpx

from .action import RequestAction
from .config import DEFAULT_USER_AGENT, ClientConfig
from .models import Transformer
from .pagination import ItemTransformer, PaginationAction
from .ratelimit import RateLimiter
from .requester import Requester
from .route import CompiledRoute, Route
from .scheduler import Scheduler

_log = logging.getLogger("ptero_client")


class Session:
    """Everything actions need to run: config, pools, limiter and requester.

    Example:
        >>> with Session.create("https://panel.example.com", "ptla_...") as session:
        ...     user = session.action(Route("GET", "application/users/{id}").compile(1)).execute()
        ...     print(user["attributes"]["username"])
    """

    def __init__(
        self,
        config: ClientConfig,
        *,
        http_client: Optional[httpx.Client] = None,
        action_pool: Optional[Executor] = None,
        callback_pool: Optional[Executor] = None,
        rate_limit_pool: Optional[Executor] = None,
        supplier_pool: Optional[Executor] = None,
    ):
        """Create a new session.

        Args:
            config: Connection settings and pool sizes.
            http_client: Optional httpx client; one is created (and later
                closed) by the session if omitted.
            action_pool: Executor that starts asynchronous requests.
            callback_pool: Executor that runs success and failure callbacks.
            rate_limit_pool: Executor for scheduled resumes and delays.
            supplier_pool: Executor for ``on_execute`` computations.
        """
        self.config = config
        self._owns_client = http_client is None
        self.http_client = http_client or httpx.Client(timeout=config.timeout)

        self._owned_pools: list[Executor] = []
        self.action_pool = action_pool or self._pool(config.action_workers, "Action")
        self.callback_pool = callback_pool or self._pool(config.callback_workers, "Callback")
        self.rate_limit_pool = rate_limit_pool or self._pool(
            config.rate_limit_workers, "RateLimit"
        )
        self.supplier_pool = supplier_pool or self._pool(config.supplier_workers, "Supplier")

        self.scheduler = Scheduler(self.rate_limit_pool, lock_timeout=config.lock_timeout)
        self.rate_limiter = RateLimiter(
            self.scheduler,
            lock_timeout=config.lock_timeout,
            default_retry_after=config.default_retry_after,
        )
        self.requester = Requester(config, self.http_client, self.rate_limiter)
        self._closed = False

    @classmethod
    def create(
        cls,
        url: str,
        token: str,
        user_agent: str = DEFAULT_USER_AGENT,
        **overrides: Any,
    ) -> "Session":
        """Build a session for a panel URL and API token."""
        config = ClientConfig(base_url=url, token=token, user_agent=user_agent, **overrides)
        return cls(config)

    @classmethod
    def from_env(cls, prefix: str = "PTERO") -> "Session":
        """Build a session from PTERO_* environment variables."""
        return cls(ClientConfig.from_env(prefix))

    def _pool(self, workers: int, name: str) -> ThreadPoolExecutor:
        pool = ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"ptero-{name}")
        self._owned_pools.append(pool)
        return pool

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    @property
    def closed(self) -> bool:
        return self._closed

    def run_callback(self, fn: Callable[..., Any], *args: Any) -> None:
        """Run ``fn(*args)`` on the callback pool.

        Once the pool is shut down the callback runs on the calling thread,
        so a result is never dropped.
        """
        try:
            self.callback_pool.submit(fn, *args)
        except RuntimeError:
            fn(*args)

    def action(
        self,
        route: CompiledRoute,
        transformer: Optional[Transformer] = None,
        body: Optional[Any] = None,
    ) -> RequestAction:
        """Create an action performing one request against a compiled route."""
        return RequestAction(self, route, transformer=transformer, body=body)

    def paginate(
        self,
        route: Route,
        *params: Any,
        item_transformer: Optional[ItemTransformer] = None,
    ) -> PaginationAction:
        """Create a cursor over a listing whose route ends in a page placeholder."""
        return PaginationAction(self, route, *params, item_transformer=item_transformer)

    def close(self, wait: bool = True) -> None:
        """Close the session.

        Queued requests fail with SessionClosedError, timers are cancelled
        and pools and the HTTP client owned by the session are shut down.

        Args:
            wait: Wait for running pool work to finish. Pass False when
                closing from inside a callback.
        """
        if self._closed:
            return
        self._closed = True
        _log.debug("Closing session")
        self.rate_limiter.shutdown()
        self.scheduler.shutdown()
        for pool in self._owned_pools:
            pool.shutdown(wait=wait)
        if self._owns_client:
            self.http_client.close()
