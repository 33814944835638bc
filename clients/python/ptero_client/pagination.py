"""Multi-page listings exposed as one collection."""

import logging
from collections import deque
from typing import TYPE_CHECKING, Any, Callable, Iterator, Optional

from .action import (
    Action,
    CompletedAction,
    FailureCallback,
    RequestAction,
    SuccessCallback,
    SupplierAction,
)
from .models import Page, PaginationMeta
from .route import Route

if TYPE_CHECKING:
    from .session import Session

_log = logging.getLogger("ptero_client")

ItemTransformer = Callable[[dict[str, Any]], Any]


def _identity(item: dict[str, Any]) -> Any:
    return item


class PaginationIterator:
    """Forward-only iterator that asks for the next batch only when the current one is used up.

    Args:
        items: Items known up front.
        fetch_next: Returns the next batch, or None when there are no more.
    """

    def __init__(
        self,
        items: list[Any],
        fetch_next: Callable[[], Optional[list[Any]]],
    ):
        self._buffer: deque = deque(items)
        self._fetch_next = fetch_next
        self._exhausted = False

    def __iter__(self) -> "PaginationIterator":
        return self

    def __next__(self) -> Any:
        while not self._buffer:
            if self._exhausted:
                raise StopIteration
            batch = self._fetch_next()
            if batch is None:
                self._exhausted = True
                raise StopIteration
            self._buffer.extend(batch)
        return self._buffer.popleft()


class _PageCursor:
    """Fetches pages of a listing one after another."""

    def __init__(self, pagination: "PaginationAction", should_queue: bool):
        self._pagination = pagination
        self._should_queue = should_queue
        self._next_page = 1
        self._total_pages: Optional[int] = None

    def __call__(self) -> Optional[list[Any]]:
        if self._total_pages is not None and self._next_page > self._total_pages:
            return None
        page = self._pagination.fetch_page(self._next_page).execute(self._should_queue)
        self._total_pages = page.meta.total_pages
        self._next_page += 1
        return self._pagination.transform_page(page)


class PaginationAction(Action[list]):
    """A listing endpoint presented as one ordered list.

    Executing the action fetches every page. ``iterator()`` fetches pages
    lazily while items are consumed.

    Example:
        >>> users = session.paginate(Route("GET", "application/users?page={page}"))
        >>> for user in users:
        ...     print(user["attributes"]["email"])
    """

    def __init__(
        self,
        session: "Session",
        route: Route,
        *params: Any,
        item_transformer: Optional[ItemTransformer] = None,
    ):
        """Create a pagination action.

        Args:
            session: The owning session.
            route: Listing route; its last placeholder is the page number.
            params: Values for the placeholders before the page number.
            item_transformer: Maps each raw item; items are kept as dicts if omitted.
        """
        super().__init__(session)
        self.route = route
        self.params = params
        self.item_transformer = item_transformer or _identity

    def fetch_page(self, page: int) -> Action[Page]:
        """Action fetching a single page (1-based)."""
        return RequestAction(
            self._session,
            self.route.compile(*self.params, page),
            transformer=Page.from_response,
        )

    def transform_page(self, page: Page) -> list[Any]:
        return [self.item_transformer(item) for item in page.items]

    def _collect(self, should_queue: bool) -> list[Any]:
        first = self.fetch_page(1).execute(should_queue)
        items = self.transform_page(first)
        _log.debug(
            "Retrieving %d pages of %s", first.meta.total_pages, self.route.template
        )
        for number in range(2, first.meta.total_pages + 1):
            page = self.fetch_page(number).execute(should_queue)
            items.extend(self.transform_page(page))
        return items

    def retrieve_all(self, should_queue: bool = True) -> Action[list]:
        """Action fetching every page and concatenating the items in server order."""
        return SupplierAction(self._session, lambda: self._collect(should_queue))

    def iterator(self, should_queue: bool = True) -> PaginationIterator:
        """Lazy iterator over all items; page n+1 is fetched once page n is consumed."""
        return PaginationIterator([], _PageCursor(self, should_queue))

    def __iter__(self) -> Iterator[Any]:
        return self.iterator()

    def execute(self, should_queue: bool = True) -> list:
        return self.retrieve_all(should_queue).execute(should_queue)

    def execute_async(
        self,
        success: Optional[SuccessCallback] = None,
        failure: Optional[FailureCallback] = None,
        should_queue: bool = True,
    ) -> None:
        self.retrieve_all(should_queue).execute_async(success, failure, should_queue)


class CompletedPaginationAction(PaginationAction):
    """A listing whose items are already known; nothing is fetched."""

    def __init__(
        self,
        session: "Session",
        items: list[Any],
        error: Optional[BaseException] = None,
    ):
        Action.__init__(self, session)
        self.route = None
        self.params = ()
        self.item_transformer = _identity
        self.items = list(items)
        self.error = error

    def fetch_page(self, page: int) -> Action[Page]:
        if self.error is not None:
            return CompletedAction(self._session, error=self.error)
        meta = PaginationMeta(
            total=len(self.items),
            count=len(self.items) if page == 1 else 0,
            per_page=len(self.items),
            current_page=page,
            total_pages=1,
        )
        return CompletedAction(
            self._session, Page(items=list(self.items) if page == 1 else [], meta=meta)
        )

    def retrieve_all(self, should_queue: bool = True) -> Action[list]:
        if self.error is not None:
            return CompletedAction(self._session, error=self.error)
        return CompletedAction(self._session, list(self.items))

    def iterator(self, should_queue: bool = True) -> PaginationIterator:
        if self.error is not None:
            raise self.error
        return PaginationIterator(self.items, lambda: None)
