"""Map API validation failures onto form fields."""

from __future__ import annotations

from typing import Iterable

import structlog

from catalog_client.api import ApiError

logger = structlog.get_logger()

GENERAL = "general"

# (keyword found in a server message, form field); first match wins
FIELD_KEYWORDS = (
    ("title", "title"),
    ("author", "author"),
    ("genre", "genre"),
    ("cover image", "coverImageUrl"),
    ("description", "description"),
    ("published year", "publishedYear"),
    ("pages", "pages"),
    ("isbn", "isbn"),
    ("publisher", "publisher"),
)

FORM_FIELDS = tuple(field for _, field in FIELD_KEYWORDS)


def field_for_message(message: str) -> str:
    """Guess the field a free-text message refers to, or ``general``."""
    lowered = message.lower()
    for keyword, field in FIELD_KEYWORDS:
        if keyword in lowered:
            return field
    # The message loses its field association here
    logger.warning("unmatched_validation_message", message=message)
    return GENERAL


def _collect(pairs: Iterable[tuple[str, str]]) -> dict[str, str]:
    errors: dict[str, str] = {}
    for field, message in pairs:
        if field == GENERAL and GENERAL in errors:
            errors[GENERAL] = f"{errors[GENERAL]} {message}"
        else:
            errors.setdefault(field, message)
    return errors


def errors_from_api_error(exc: ApiError) -> dict[str, str]:
    """Field name -> message for a failed submit.

    Structured ``{field, message}`` pairs are used as-is; servers that only
    send ``details`` strings fall back to keyword matching. Anything that is
    not a validation failure ends up in ``general``.
    """
    if exc.field_errors:
        return _collect(
            (e.get("field") if e.get("field") in FORM_FIELDS else GENERAL, e.get("message", ""))
            for e in exc.field_errors
        )
    if exc.details:
        return _collect((field_for_message(d), d) for d in exc.details)
    return {GENERAL: exc.message}
