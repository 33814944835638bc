"""Route descriptors for API endpoints."""

import string
from dataclasses import dataclass
from typing import Any
from urllib.parse import quote

_METHODS = frozenset({"GET", "POST", "PUT", "PATCH", "DELETE"})
_METHODS_WITH_BODY = frozenset({"POST", "PUT", "PATCH"})


@dataclass(frozen=True)
class Route:
    """An endpoint template such as ``application/users/{user_id}``.

    Attributes:
        method: HTTP method.
        template: Path relative to the API root, with ``{name}`` placeholders.
    """
    method: str
    template: str

    def __post_init__(self) -> None:
        if self.method not in _METHODS:
            raise ValueError(f"Unsupported HTTP method: {self.method}")

    @property
    def params(self) -> tuple[str, ...]:
        """Placeholder names in the order they appear in the template."""
        return tuple(
            name
            for _, name, _, _ in string.Formatter().parse(self.template)
            if name is not None
        )

    def compile(self, *params: Any) -> "CompiledRoute":
        """Fill the placeholders positionally.

        Raises:
            ValueError: If the number of params does not match the template.
        """
        names = self.params
        if len(params) != len(names):
            raise ValueError(
                f"Route {self.template} expects {len(names)} params, got {len(params)}"
            )
        values = [str(p) for p in params]
        compiled = self.template.format(
            **{name: quote(value, safe="") for name, value in zip(names, values)}
        )
        return CompiledRoute(
            route=self, params=tuple(values), compiled=compiled
        )


@dataclass(frozen=True)
class CompiledRoute:
    """A route with every placeholder resolved.

    Attributes:
        route: The route this was compiled from.
        params: Raw values substituted into the template.
        compiled: Resolved path, relative to the API root.
    """
    route: Route
    params: tuple[str, ...]
    compiled: str

    @property
    def method(self) -> str:
        return self.route.method

    @property
    def requires_body(self) -> bool:
        return self.route.method in _METHODS_WITH_BODY

    @property
    def bucket(self) -> str:
        """Rate limit bucket identity. All buckets currently share one limiter."""
        return f"{self.route.method}:{self.route.template}"

    def __str__(self) -> str:
        return f"{self.method} {self.compiled}"
