"""Book CRUD routes."""

from __future__ import annotations

from typing import Any, Literal, Optional

import structlog
from fastapi import APIRouter, Body, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import get_db
from app.schemas.book import BookListParams, BookListResponse, BookResponse, MessageResponse
from app.services.book_store import BookStore
from app.services.query_builder import build_book_query, total_pages

logger = structlog.get_logger()
router = APIRouter(prefix="/api/books", tags=["Books"])


async def get_book_store(db: AsyncSession = Depends(get_db)) -> BookStore:
    return BookStore(db)


@router.get("", response_model=BookListResponse)
async def list_books(
    page: int = Query(1, ge=1),
    limit: int = Query(10, ge=1),
    search: Optional[str] = None,
    genre: Optional[str] = None,
    sort_by: str = Query("createdAt", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    store: BookStore = Depends(get_book_store),
):
    """Paginated book listing with optional search/genre filters and sorting."""
    params = BookListParams(
        page=page,
        limit=limit,
        search=search,
        genre=genre,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    if limit > get_settings().large_page_warning:
        logger.warning("large_page_requested", limit=limit)

    query = build_book_query(params)
    books, total = await store.list(query)

    return BookListResponse(
        books=[BookResponse.model_validate(b) for b in books],
        total_pages=total_pages(total, limit),
        current_page=page,
        total=total,
    )


@router.get("/{book_id}", response_model=BookResponse)
async def get_book(book_id: str, store: BookStore = Depends(get_book_store)):
    """Get a single book by ID."""
    return BookResponse.model_validate(await store.get(book_id))


@router.post("", response_model=BookResponse, status_code=status.HTTP_201_CREATED)
async def create_book(
    data: dict[str, Any] = Body(...),
    store: BookStore = Depends(get_book_store),
):
    """Create a new book."""
    book = await store.create(data)
    return BookResponse.model_validate(book)


@router.put("/{book_id}", response_model=BookResponse)
async def update_book(
    book_id: str,
    data: dict[str, Any] = Body(...),
    store: BookStore = Depends(get_book_store),
):
    """Update some or all fields of a book."""
    book = await store.update(book_id, data)
    return BookResponse.model_validate(book)


@router.delete("/{book_id}", response_model=MessageResponse)
async def delete_book(book_id: str, store: BookStore = Depends(get_book_store)):
    """Delete a book."""
    await store.delete(book_id)
    return MessageResponse(message="Book deleted successfully")
