"""Pterodactyl Python Client - rate-limited request engine for the Pterodactyl panel API."""

from .action import Action, CompletedAction, RequestAction, SupplierAction
from .config import DEFAULT_USER_AGENT, ClientConfig
from .errors import (
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
from .models import Page, PaginationMeta, Request, Response
from .pagination import CompletedPaginationAction, PaginationAction, PaginationIterator
from .ratelimit import RateLimiter, RateLimitSnapshot
from .requester import Requester
from .route import CompiledRoute, Route
from .session import Session

__version__ = "0.1.0"
__all__ = [
    "Action",
    "CompletedAction",
    "RequestAction",
    "SupplierAction",
    "ClientConfig",
    "DEFAULT_USER_AGENT",
    "PteroError",
    "ConfigurationError",
    "TransportError",
    "HttpError",
    "ServerError",
    "ApplicationError",
    "RateLimitedError",
    "CombinatorError",
    "LockTimeoutError",
    "SessionClosedError",
    "Request",
    "Response",
    "Page",
    "PaginationMeta",
    "PaginationAction",
    "CompletedPaginationAction",
    "PaginationIterator",
    "RateLimiter",
    "RateLimitSnapshot",
    "Requester",
    "Route",
    "CompiledRoute",
    "Session",
]
