"""
Seed script — populates the catalog with sample books for demo.
Run: python -m app.seed [--reset]
"""

from __future__ import annotations

import argparse
import asyncio

import structlog
from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from app.database import Base, async_session, engine
from app.errors import DuplicateIsbn
from app.logging_config import setup_logging
from app.models.book import Book
from app.services.book_store import BookStore

logger = structlog.get_logger()

SAMPLE_BOOKS = [
    {
        "title": "The Great Gatsby",
        "author": "F. Scott Fitzgerald",
        "genre": "Fiction",
        "coverImageUrl": "https://covers.openlibrary.org/b/id/8225261-L.jpg",
        "description": "A classic American novel set in the Jazz Age, exploring wealth, love, and the American Dream.",
        "publishedYear": 1925,
        "pages": 180,
        "isbn": "978-0-7432-7356-5",
        "publisher": "Scribner",
    },
    {
        "title": "To Kill a Mockingbird",
        "author": "Harper Lee",
        "genre": "Fiction",
        "coverImageUrl": "https://covers.openlibrary.org/b/id/8226374-L.jpg",
        "description": "A gripping tale of racial injustice and childhood innocence in the American South.",
        "publishedYear": 1960,
        "pages": 376,
        "isbn": "978-0-06-112008-4",
        "publisher": "J.B. Lippincott & Co.",
    },
    {
        "title": "1984",
        "author": "George Orwell",
        "genre": "Dystopian Fiction",
        "description": "A dystopian novel about totalitarian control and surveillance.",
        "publishedYear": 1949,
        "pages": 328,
        "isbn": "978-0-452-28423-4",
        "publisher": "Secker & Warburg",
    },
    {
        "title": "Pride and Prejudice",
        "author": "Jane Austen",
        "genre": "Romance",
        "description": "A romantic novel that critiques the British landed gentry.",
        "publishedYear": 1813,
        "pages": 432,
        "isbn": "978-0-14-143951-8",
        "publisher": "T. Egerton",
    },
    {
        "title": "The Catcher in the Rye",
        "author": "J.D. Salinger",
        "genre": "Fiction",
        "description": "A novel about teenage rebellion and alienation in post-war America.",
        "publishedYear": 1951,
        "pages": 277,
        "isbn": "978-0-316-76948-0",
        "publisher": "Little, Brown and Company",
    },
    {
        "title": "The Hobbit",
        "author": "J.R.R. Tolkien",
        "genre": "Fantasy",
        "description": "Bilbo Baggins embarks on an unexpected journey.",
        "publishedYear": 1937,
        "pages": 310,
        "isbn": "978-0-547-92822-7",
        "publisher": "George Allen & Unwin",
    },
    {
        "title": "Dune",
        "author": "Frank Herbert",
        "genre": "Science Fiction",
        "description": "Set in the distant future amidst interstellar politics.",
        "publishedYear": 1965,
        "pages": 412,
        "isbn": "978-0-441-01359-3",
        "publisher": "Chilton Books",
    },
    {
        "title": "Foundation",
        "author": "Isaac Asimov",
        "genre": "Science Fiction",
        "description": "The collapse of a Galactic Empire and the birth of a new society.",
        "publishedYear": 1951,
        "pages": 255,
        "isbn": "978-0-553-29335-7",
        "publisher": "Gnome Press",
    },
    {
        "title": "Frankenstein",
        "author": "Mary Shelley",
        "genre": "Horror",
        "description": "A scientist creates a monstrous creature.",
        "publishedYear": 1818,
        "pages": 280,
        "isbn": "978-0-486-28211-4",
        "publisher": "Lackington, Hughes, Harding, Mavor & Jones",
    },
    {
        "title": "Moby-Dick",
        "author": "Herman Melville",
        "genre": "Adventure",
        "description": "Captain Ahab's obsessive quest for the white whale.",
        "publishedYear": 1851,
        "pages": 635,
        "isbn": "978-0-14-243724-7",
        "publisher": "Harper & Brothers",
    },
    {
        "title": "Sapiens",
        "author": "Yuval Noah Harari",
        "genre": "Non-Fiction",
        "description": "A brief history of humankind.",
        "publishedYear": 2011,
        "pages": 443,
        "isbn": "978-0-06-231609-7",
        "publisher": "Harper",
    },
    {
        "title": "Atomic Habits",
        "author": "James Clear",
        "genre": "Self-Help",
        "description": "Tiny changes, remarkable results.",
        "publishedYear": 2018,
        "pages": 320,
        "isbn": "978-0-7352-1129-2",
        "publisher": "Avery",
    },
]


async def seed_books(session: AsyncSession, books: list[dict] = SAMPLE_BOOKS, reset: bool = False) -> int:
    """Insert sample books through the store; books whose ISBN is already present are skipped."""
    if reset:
        await session.execute(delete(Book))
        logger.info("catalog_cleared")

    store = BookStore(session)
    created = 0
    for data in books:
        isbn = data.get("isbn")
        if isbn:
            existing = await session.execute(select(Book.id).where(Book.isbn == isbn))
            if existing.scalar_one_or_none():
                continue
        try:
            await store.create(data)
        except DuplicateIsbn:
            continue
        created += 1
    return created


async def seed(reset: bool = False):
    """Seed the database with sample data."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    async with async_session() as session:
        created = await seed_books(session, reset=reset)
        await session.commit()

    logger.info("seeding_complete", books_created=created)
    await engine.dispose()


if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Seed the book catalog with sample data")
    parser.add_argument("--reset", action="store_true", help="delete all books before seeding")
    args = parser.parse_args()

    settings = get_settings()
    setup_logging(settings.log_level, settings.log_format)
    asyncio.run(seed(reset=args.reset))
