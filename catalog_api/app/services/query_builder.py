"""Translate list parameters into a book query with pagination metadata."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Any

from sqlalchemy import Select, func, or_, select

from app.errors import BookValidationFailed, FieldError
from app.models.book import Book
from app.schemas.book import BookListParams

SORTABLE_COLUMNS = {
    "id": Book.id,
    "title": Book.title,
    "author": Book.author,
    "genre": Book.genre,
    "publishedYear": Book.published_year,
    "pages": Book.pages,
    "isbn": Book.isbn,
    "publisher": Book.publisher,
    "createdAt": Book.created_at,
    "updatedAt": Book.updated_at,
}


@dataclass(frozen=True)
class BookQuery:
    page: int
    limit: int
    sort_by: str
    descending: bool
    filters: tuple[Any, ...] = field(default_factory=tuple)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

    def statement(self) -> Select:
        column = SORTABLE_COLUMNS[self.sort_by]
        order = (column.desc(), Book.id.desc()) if self.descending else (column.asc(), Book.id.asc())
        return (
            select(Book)
            .where(*self.filters)
            .order_by(*order)
            .offset(self.offset)
            .limit(self.limit)
        )

    def count_statement(self) -> Select:
        return select(func.count()).select_from(Book).where(*self.filters)


def build_book_query(params: BookListParams) -> BookQuery:
    """Build the filter, sort and page window for a listing request.

    ``search`` matches title, author or description; ``genre`` matches the
    genre. Both are case-insensitive substring matches and combine with AND.
    """
    if params.sort_by not in SORTABLE_COLUMNS:
        raise BookValidationFailed([FieldError("sortBy", f"Cannot sort by '{params.sort_by}'")])

    filters = []
    if params.search:
        filters.append(
            or_(
                Book.title.icontains(params.search, autoescape=True),
                Book.author.icontains(params.search, autoescape=True),
                Book.description.icontains(params.search, autoescape=True),
            )
        )
    if params.genre:
        filters.append(Book.genre.icontains(params.genre, autoescape=True))

    return BookQuery(
        page=params.page,
        limit=params.limit,
        sort_by=params.sort_by,
        descending=params.sort_order == "desc",
        filters=tuple(filters),
    )


def total_pages(total: int, limit: int) -> int:
    return math.ceil(total / limit)
