"""
Book form controllers.

A form keeps a mutable draft, runs advisory client-side checks, submits to
the API and shows server-side field errors next to the matching fields.
The server stays the source of truth for validation.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Optional

import structlog

from catalog_client.api import ApiError, Book, BookApiClient
from catalog_client.field_errors import FORM_FIELDS, GENERAL, errors_from_api_error

logger = structlog.get_logger()

NUMERIC_FIELDS = ("publishedYear", "pages")

# field -> (label, max length)
TEXT_LIMITS = {
    "title": ("Title", 200),
    "author": ("Author name", 100),
    "genre": ("Genre", 50),
    "description": ("Description", 2000),
    "publisher": ("Publisher name", 100),
}
REQUIRED = {"title": "Title is required", "author": "Author is required"}


def empty_draft() -> dict[str, Any]:
    return {field: None for field in FORM_FIELDS}


def draft_from_book(book: Book) -> dict[str, Any]:
    data = book.model_dump(by_alias=True)
    return {field: data.get(field) for field in FORM_FIELDS}


def _coerce(field: str, value: Any) -> Any:
    if isinstance(value, str):
        value = value.strip() if field in NUMERIC_FIELDS else value
        if value == "":
            return None
        if field in NUMERIC_FIELDS and value.lstrip("-").isdigit():
            return int(value)
    return value


def check_draft(draft: dict[str, Any], current_year: Optional[int] = None) -> dict[str, str]:
    """Client-side checks mirroring the server's basic rules."""
    current_year = current_year or datetime.now().year
    errors: dict[str, str] = {}

    for field, message in REQUIRED.items():
        value = draft.get(field)
        if value is None or not str(value).strip():
            errors[field] = message

    for field, (label, max_length) in TEXT_LIMITS.items():
        value = draft.get(field)
        if field not in errors and isinstance(value, str) and len(value.strip()) > max_length:
            errors[field] = f"{label} cannot be more than {max_length} characters"

    ranges = {
        "publishedYear": ("Published year", 1000, current_year),
        "pages": ("Pages", 1, 10000),
    }
    for field, (label, low, high) in ranges.items():
        value = draft.get(field)
        if value is None:
            continue
        if not isinstance(value, int) or isinstance(value, bool):
            errors[field] = f"{label} must be a whole number"
        elif not low <= value <= high:
            errors[field] = f"{label} must be between {low} and {high}"

    return errors


class BookForm:
    """Add (no ``book``) or edit (``book`` given) form state."""

    def __init__(self, client: BookApiClient, book: Optional[Book] = None):
        self.client = client
        self.book_id = book.id if book else None
        self.draft = draft_from_book(book) if book else empty_draft()
        self.errors: dict[str, str] = {}
        self.submitting = False

    @property
    def is_edit(self) -> bool:
        return self.book_id is not None

    @property
    def general_error(self) -> Optional[str]:
        return self.errors.get(GENERAL)

    def change(self, field: str, value: Any) -> None:
        if field not in self.draft:
            raise KeyError(f"Unknown book field: {field}")
        self.draft[field] = _coerce(field, value)
        # Editing a field clears its error
        self.errors.pop(field, None)

    def dismiss_general(self) -> None:
        self.errors.pop(GENERAL, None)

    def validate(self) -> bool:
        self.errors = check_draft(self.draft)
        return not self.errors

    def payload(self) -> dict[str, Any]:
        if self.is_edit:
            # None clears a field on update
            return dict(self.draft)
        return {k: v for k, v in self.draft.items() if v is not None}

    async def submit(self) -> Optional[Book]:
        """Create or update; returns the saved book, or ``None`` with ``errors`` filled."""
        if not self.validate():
            return None

        self.submitting = True
        try:
            if self.is_edit:
                book = await self.client.update_book(self.book_id, self.payload())
            else:
                book = await self.client.create_book(self.payload())
        except ApiError as exc:
            self.errors = errors_from_api_error(exc)
            logger.info("book_form_rejected", status=exc.status_code, fields=sorted(self.errors))
            return None
        finally:
            self.submitting = False

        self.book_id = book.id
        self.draft = draft_from_book(book)
        return book
