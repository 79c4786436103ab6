"""
Book store adapter — CRUD against the SQL store.

Every store-level failure is translated into a catalog error before it leaves
this module: malformed ids, missing rows, validation failures, ISBN collisions
and engine errors each map to one exception type.
"""

from __future__ import annotations

import uuid
from contextlib import asynccontextmanager
from datetime import datetime, timedelta, timezone
from typing import Any, AsyncIterator, Mapping

import structlog
from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from app.errors import BookNotFound, DuplicateIsbn, InvalidBookId, StoreUnavailable
from app.models.book import Book
from app.services.query_builder import BookQuery
from app.services.validation import validate_book

logger = structlog.get_logger()

# wire name -> ORM attribute
COLUMN_FOR_FIELD = {
    "title": "title",
    "author": "author",
    "genre": "genre",
    "coverImageUrl": "cover_image_url",
    "description": "description",
    "publishedYear": "published_year",
    "pages": "pages",
    "isbn": "isbn",
    "publisher": "publisher",
}


def parse_book_id(raw: str) -> str:
    """Normalize an id to its 32-char hex form; anything else is an InvalidBookId."""
    try:
        return uuid.UUID(str(raw)).hex
    except ValueError:
        raise InvalidBookId() from None


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class BookStore:
    def __init__(self, session: AsyncSession):
        self.session = session

    @asynccontextmanager
    async def _translate(self, failure: str) -> AsyncIterator[None]:
        try:
            yield
        except IntegrityError as exc:
            logger.info("book_isbn_conflict", error=str(exc.orig))
            raise DuplicateIsbn() from None
        except SQLAlchemyError as exc:
            logger.error("book_store_error", failure=failure, error=str(exc))
            raise StoreUnavailable(failure) from None

    @asynccontextmanager
    async def _write(self, failure: str) -> AsyncIterator[None]:
        """Run a write in a savepoint so a failure undoes only that write."""
        async with self._translate(failure):
            async with self.session.begin_nested():
                yield

    async def _load(self, book_id: str) -> Book:
        result = await self.session.execute(select(Book).where(Book.id == book_id))
        book = result.scalar_one_or_none()
        if book is None:
            raise BookNotFound()
        return book

    async def list(self, query: BookQuery) -> tuple[list[Book], int]:
        async with self._translate("Server error while fetching books"):
            total = (await self.session.execute(query.count_statement())).scalar() or 0
            result = await self.session.execute(query.statement())
            books = list(result.scalars().all())
        return books, total

    async def get(self, book_id: str) -> Book:
        book_id = parse_book_id(book_id)
        async with self._translate("Server error while fetching book"):
            return await self._load(book_id)

    async def create(self, fields: Mapping[str, Any]) -> Book:
        data = validate_book(fields)
        now = _utcnow()
        book = Book(created_at=now, updated_at=now)
        for field, value in data.items():
            setattr(book, COLUMN_FOR_FIELD[field], value)

        async with self._write("Server error while creating book"):
            self.session.add(book)
            await self.session.flush()

        logger.info("book_created", book_id=book.id, title=book.title)
        return book

    async def update(self, book_id: str, fields: Mapping[str, Any]) -> Book:
        """Apply the supplied fields only; concurrent updates are last-write-wins."""
        book_id = parse_book_id(book_id)
        changes = validate_book(fields, partial=True)

        async with self._write("Server error while updating book"):
            book = await self._load(book_id)
            for field, value in changes.items():
                setattr(book, COLUMN_FOR_FIELD[field], value)

            now = _utcnow()
            if now <= book.updated_at:
                now = book.updated_at + timedelta(microseconds=1)
            book.updated_at = now
            await self.session.flush()

        logger.info("book_updated", book_id=book.id, fields=sorted(changes))
        return book

    async def delete(self, book_id: str) -> None:
        book_id = parse_book_id(book_id)
        async with self._write("Server error while deleting book"):
            book = await self._load(book_id)
            await self.session.delete(book)
            await self.session.flush()
        logger.info("book_deleted", book_id=book_id)
