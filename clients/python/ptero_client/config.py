"""Configuration for a client session."""

import os
from dataclasses import dataclass, fields
from typing import Any, Optional

DEFAULT_USER_AGENT = "ptero-client (https://github.com/ptero-client/ptero-client)"


@dataclass(frozen=True)
class ClientConfig:
    """Connection settings, retry policy and pool sizes for a session.

    Attributes:
        base_url: Base URL of the panel (e.g., "https://panel.example.com").
        token: API key sent as a bearer token.
        user_agent: Value of the User-Agent header.
        timeout: Per-attempt HTTP timeout in seconds.
        max_server_retries: Extra attempts made after a 5xx response.
        server_retry_backoff: Base backoff; retry n sleeps ``n * server_retry_backoff``.
        lock_timeout: Longest wait for the shared rate limit lock.
        default_retry_after: Throttle length used when the server gives no hint.
        action_workers: Threads starting asynchronous requests.
        callback_workers: Threads delivering results to callbacks.
        rate_limit_workers: Threads running scheduled resumes and delays.
        supplier_workers: Threads running ``on_execute`` computations.
    """

    base_url: Optional[str] = None
    token: Optional[str] = None
    user_agent: str = DEFAULT_USER_AGENT
    timeout: float = 30.0
    max_server_retries: int = 3
    server_retry_backoff: float = 0.05
    lock_timeout: float = 10.0
    default_retry_after: float = 60.0
    action_workers: int = 1
    callback_workers: int = 4
    rate_limit_workers: int = 5
    supplier_workers: int = 3

    def __post_init__(self) -> None:
        if self.timeout <= 0:
            raise ValueError(f"timeout must be > 0, got {self.timeout}")
        if self.max_server_retries < 0:
            raise ValueError(
                f"max_server_retries must be >= 0, got {self.max_server_retries}"
            )
        if self.server_retry_backoff < 0:
            raise ValueError(
                f"server_retry_backoff must be >= 0, got {self.server_retry_backoff}"
            )
        if self.lock_timeout <= 0:
            raise ValueError(f"lock_timeout must be > 0, got {self.lock_timeout}")
        if self.default_retry_after <= 0:
            raise ValueError(
                f"default_retry_after must be > 0, got {self.default_retry_after}"
            )
        for name in (
            "action_workers",
            "callback_workers",
            "rate_limit_workers",
            "supplier_workers",
        ):
            value = getattr(self, name)
            if value < 1:
                raise ValueError(f"{name} must be >= 1, got {value}")

    @property
    def api_url(self) -> str:
        """Root of the API, without a trailing slash."""
        return f"{(self.base_url or '').rstrip('/')}/api"

    def replace(self, **changes: Any) -> "ClientConfig":
        """Return a copy with the given fields changed."""
        data = {f.name: getattr(self, f.name) for f in fields(self)}
        data.update(changes)
        return ClientConfig(**data)

    @staticmethod
    def from_dict(data: dict[str, Any]) -> "ClientConfig":
        """Build config from a plain dict. Unknown keys are ignored."""
        kwargs: dict[str, Any] = {}

        for field in ("base_url", "token", "user_agent"):
            if field in data:
                kwargs[field] = data[field]

        typed_fields: dict[str, type] = {
            "timeout": float,
            "max_server_retries": int,
            "server_retry_backoff": float,
            "lock_timeout": float,
            "default_retry_after": float,
            "action_workers": int,
            "callback_workers": int,
            "rate_limit_workers": int,
            "supplier_workers": int,
        }
        for field, typ in typed_fields.items():
            if field in data:
                kwargs[field] = typ(data[field])

        return ClientConfig(**kwargs)

    @staticmethod
    def from_env(prefix: str = "PTERO") -> "ClientConfig":
        """Build config from environment variables such as PTERO_URL and PTERO_TOKEN."""
        data: dict[str, Any] = {}

        env_fields = {
            "URL": "base_url",
            "TOKEN": "token",
            "USER_AGENT": "user_agent",
            "TIMEOUT": "timeout",
            "MAX_SERVER_RETRIES": "max_server_retries",
            "SERVER_RETRY_BACKOFF": "server_retry_backoff",
            "LOCK_TIMEOUT": "lock_timeout",
            "DEFAULT_RETRY_AFTER": "default_retry_after",
            "ACTION_WORKERS": "action_workers",
            "CALLBACK_WORKERS": "callback_workers",
            "RATE_LIMIT_WORKERS": "rate_limit_workers",
            "SUPPLIER_WORKERS": "supplier_workers",
        }
        for env_suffix, field in env_fields.items():
            val = os.environ.get(f"{prefix}_{env_suffix}")
            if val is not None:
                data[field] = val

        return ClientConfig.from_dict(data)
