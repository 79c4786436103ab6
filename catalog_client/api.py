"""HTTP client for the book catalog API."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional, TypeVar

import httpx
import structlog
from pydantic import BaseModel, ConfigDict, ValidationError
from pydantic.alias_generators import to_camel
from pydantic_settings import BaseSettings, SettingsConfigDict

logger = structlog.get_logger()

M = TypeVar("M", bound=BaseModel)


class ClientSettings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="CATALOG_", case_sensitive=False)

    api_url: str = "http://localhost:5000/api"
    timeout: float = 10.0


class Book(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    id: str
    title: str
    author: str
    genre: Optional[str] = None
    cover_image_url: Optional[str] = None
    description: Optional[str] = None
    published_year: Optional[int] = None
    pages: Optional[int] = None
    isbn: Optional[str] = None
    publisher: Optional[str] = None
    created_at: datetime
    updated_at: datetime


class BookPage(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    books: list[Book]
    total_pages: int
    current_page: int
    total: int


class Message(BaseModel):
    message: str


class ApiError(Exception):
    """A failed API call; ``message`` is the server's ``error`` text verbatim."""

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[list[str]] = None,
        field_errors: Optional[list[dict[str, str]]] = None,
    ):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details or []
        self.field_errors = field_errors or []

    @property
    def is_validation_error(self) -> bool:
        return self.status_code == 400 and bool(self.details or self.field_errors)


class BookApiClient:
    """Async client for ``/api/books``. Construct one and hand it to hooks and forms."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        *,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
        settings: Optional[ClientSettings] = None,
    ):
        settings = settings or ClientSettings()
        self._client = httpx.AsyncClient(
            base_url=base_url or settings.api_url,
            timeout=httpx.Timeout(timeout or settings.timeout),
            transport=transport,
            headers={"Content-Type": "application/json"},
        )

    async def __aenter__(self) -> "BookApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> Any:
        logger.debug("api_request", method=method, path=path)
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            raise ApiError(f"Network error: {exc}") from exc

        if response.is_error:
            try:
                payload = response.json()
            except ValueError:
                payload = {}
            if not isinstance(payload, dict):
                payload = {}
            raise ApiError(
                payload.get("error") or f"HTTP error! status: {response.status_code}",
                status_code=response.status_code,
                details=payload.get("details"),
                field_errors=payload.get("errors"),
            )
        try:
            return response.json()
        except ValueError:
            raise ApiError("Invalid response from server", status_code=response.status_code) from None

    async def _fetch(self, model: type[M], method: str, path: str, **kwargs) -> M:
        payload = await self._request(method, path, **kwargs)
        try:
            return model.model_validate(payload)
        except ValidationError as exc:
            logger.warning("api_response_invalid", path=path, errors=exc.error_count())
            raise ApiError("Invalid response from server") from None

    async def get_books(
        self,
        page: Optional[int] = None,
        limit: Optional[int] = None,
        search: Optional[str] = None,
        genre: Optional[str] = None,
        sort_by: Optional[str] = None,
        sort_order: Optional[str] = None,
    ) -> BookPage:
        params = {
            "page": page,
            "limit": limit,
            "search": search,
            "genre": genre,
            "sortBy": sort_by,
            "sortOrder": sort_order,
        }
        params = {k: v for k, v in params.items() if v is not None}
        return await self._fetch(BookPage, "GET", "/books", params=params)

    async def get_book(self, book_id: str) -> Book:
        return await self._fetch(Book, "GET", f"/books/{book_id}")

    async def create_book(self, data: dict[str, Any]) -> Book:
        return await self._fetch(Book, "POST", "/books", json=data)

    async def update_book(self, book_id: str, data: dict[str, Any]) -> Book:
        return await self._fetch(Book, "PUT", f"/books/{book_id}", json=data)

    async def delete_book(self, book_id: str) -> str:
        return (await self._fetch(Message, "DELETE", f"/books/{book_id}")).message

    async def health_check(self) -> dict[str, Any]:
        return await self._request("GET", "/health")
