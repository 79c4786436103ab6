"""
Data hooks holding loading/error/data state around catalog API calls.

Each resource issues one request per parameter change. Requests are numbered;
a response that arrives after a newer request was started is dropped so a
slow, stale answer never overwrites fresher state.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from typing import Any, Awaitable, Callable, Generic, Optional, TypeVar

import structlog

from catalog_client.api import ApiError, Book, BookApiClient, BookPage

logger = structlog.get_logger()

T = TypeVar("T")


@dataclass
class ResourceState(Generic[T]):
    loading: bool = True
    error: Optional[str] = None
    data: Optional[T] = None


@dataclass(frozen=True)
class ListParams:
    page: Optional[int] = None
    limit: Optional[int] = None
    search: Optional[str] = None
    genre: Optional[str] = None
    sort_by: Optional[str] = None
    sort_order: Optional[str] = None


class _Resource(Generic[T]):
    def __init__(self, client: BookApiClient):
        self.client = client
        self.state: ResourceState[T] = ResourceState()
        self._sequence = 0

    async def _load(self, fetch: Callable[[], Awaitable[T]]) -> ResourceState[T]:
        self._sequence += 1
        sequence = self._sequence
        self.state.loading = True
        self.state.error = None

        try:
            data = await fetch()
        except ApiError as exc:
            if sequence == self._sequence:
                self.state.error = exc.message
                self.state.loading = False
            return self.state

        if sequence != self._sequence:
            logger.debug("stale_response_dropped", sequence=sequence, latest=self._sequence)
            return self.state

        self.state.data = data
        self.state.loading = False
        return self.state


class BookListResource(_Resource[BookPage]):
    """Paged book listing; ``set_params`` refetches only when a parameter changed."""

    def __init__(self, client: BookApiClient, params: Optional[ListParams] = None):
        super().__init__(client)
        self.params: Optional[ListParams] = None
        self._initial = params or ListParams()

    async def set_params(self, **params: Any) -> ResourceState[BookPage]:
        new_params = ListParams(**params)
        if new_params == self.params:
            return self.state
        self.params = new_params
        return await self.refetch()

    async def refetch(self) -> ResourceState[BookPage]:
        if self.params is None:
            self.params = self._initial
        params = asdict(self.params)
        return await self._load(lambda: self.client.get_books(**params))

    @property
    def books(self) -> list[Book]:
        return self.state.data.books if self.state.data else []

    @property
    def total_pages(self) -> int:
        return self.state.data.total_pages if self.state.data else 0

    @property
    def current_page(self) -> int:
        return self.state.data.current_page if self.state.data else 1

    @property
    def total(self) -> int:
        return self.state.data.total if self.state.data else 0


class BookResource(_Resource[Book]):
    """A single book by id."""

    def __init__(self, client: BookApiClient):
        super().__init__(client)
        self.book_id: Optional[str] = None

    async def set_id(self, book_id: Optional[str]) -> ResourceState[Book]:
        if book_id == self.book_id and self._sequence:
            return self.state
        self.book_id = book_id
        return await self.refetch()

    async def refetch(self) -> ResourceState[Book]:
        book_id = self.book_id
        if not book_id:
            self._sequence += 1
            self.state = ResourceState(loading=False)
            return self.state
        return await self._load(lambda: self.client.get_book(book_id))

    @property
    def book(self) -> Optional[Book]:
        return self.state.data
