"""Book schemas: request field rules and response shapes (camelCase on the wire)."""

from __future__ import annotations

import re
from datetime import datetime
from typing import Any, Literal, Optional

from pydantic import (
    AnyHttpUrl,
    BaseModel,
    ConfigDict,
    Field,
    TypeAdapter,
    ValidationError,
    ValidationInfo,
    field_validator,
)
from pydantic.alias_generators import to_camel
from pydantic_core import PydanticCustomError

MIN_PUBLISHED_YEAR = 1000
MAX_PAGES = 10000

# ISBN-10 / ISBN-13, compact or separated by hyphens/spaces, optional "ISBN" prefix
ISBN_PATTERN = re.compile(
    r"^(?:ISBN(?:-1[03])?:? )?"
    r"(?=[0-9X]{10}$|(?=(?:[0-9]+[- ]){3})[- 0-9X]{13}$|97[89][0-9]{10}$|(?=(?:[0-9]+[- ]){4})[- 0-9]{17}$)"
    r"(?:97[89][- ]?)?[0-9]{1,5}[- ]?[0-9]+[- ]?[0-9]+[- ]?[0-9X]$"
)

_URL = TypeAdapter(AnyHttpUrl)


def _fail(kind: str, message: str) -> PydanticCustomError:
    return PydanticCustomError(kind, message)


def clean_text(value: Any, label: str, max_length: int, too_long: str, required: bool = False) -> Optional[str]:
    """Trim a text field; empty optional values collapse to ``None``."""
    if value is None:
        if required:
            raise _fail("required", f"{label} is required")
        return None
    if not isinstance(value, str):
        raise _fail("text_type", f"{label} must be text")
    value = value.strip()
    if not value:
        if required:
            raise _fail("required", f"{label} is required")
        return None
    if len(value) > max_length:
        raise _fail("too_long", too_long)
    return value


def clean_int(value: Any, label: str, minimum: int, maximum: int, too_small: str, too_large: str) -> Optional[int]:
    """Accept ints and integer strings (form input) within ``[minimum, maximum]``."""
    if value is None or (isinstance(value, str) and not value.strip()):
        return None
    not_whole = _fail("int_type", f"{label} must be a whole number")
    if isinstance(value, bool):
        raise not_whole
    if isinstance(value, float):
        if not value.is_integer():
            raise not_whole
        value = int(value)
    elif isinstance(value, str):
        try:
            value = int(value.strip())
        except ValueError:
            raise not_whole from None
    elif not isinstance(value, int):
        raise not_whole
    if value < minimum:
        raise _fail("too_small", too_small)
    if value > maximum:
        raise _fail("too_large", too_large)
    return value


class BookFields(BaseModel):
    """Editable book fields. Declaration order is the order errors are reported in."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="ignore")

    title: Optional[str] = None
    author: Optional[str] = None
    genre: Optional[str] = None
    cover_image_url: Optional[str] = None
    description: Optional[str] = None
    published_year: Optional[int] = None
    pages: Optional[int] = None
    isbn: Optional[str] = None
    publisher: Optional[str] = None

    @field_validator("title", mode="before")
    @classmethod
    def _title(cls, v: Any) -> Optional[str]:
        return clean_text(v, "Title", 200, "Title cannot be more than 200 characters", required=True)

    @field_validator("author", mode="before")
    @classmethod
    def _author(cls, v: Any) -> Optional[str]:
        return clean_text(v, "Author", 100, "Author name cannot be more than 100 characters", required=True)

    @field_validator("genre", mode="before")
    @classmethod
    def _genre(cls, v: Any) -> Optional[str]:
        return clean_text(v, "Genre", 50, "Genre cannot be more than 50 characters")

    @field_validator("cover_image_url", mode="before")
    @classmethod
    def _cover_image_url(cls, v: Any) -> Optional[str]:
        if v is None or (isinstance(v, str) and not v.strip()):
            return None
        if not isinstance(v, str):
            raise _fail("url", "Cover image URL must be a valid URL")
        v = v.strip()
        try:
            _URL.validate_python(v)
        except ValidationError:
            raise _fail("url", "Cover image URL must be a valid URL") from None
        return v

    @field_validator("description", mode="before")
    @classmethod
    def _description(cls, v: Any) -> Optional[str]:
        return clean_text(v, "Description", 2000, "Description cannot be more than 2000 characters")

    @field_validator("published_year", mode="before")
    @classmethod
    def _published_year(cls, v: Any, info: ValidationInfo) -> Optional[int]:
        current_year = (info.context or {}).get("current_year") or datetime.now().year
        return clean_int(
            v,
            "Published year",
            MIN_PUBLISHED_YEAR,
            current_year,
            f"Published year must be at least {MIN_PUBLISHED_YEAR}",
            "Published year cannot be in the future",
        )

    @field_validator("pages", mode="before")
    @classmethod
    def _pages(cls, v: Any) -> Optional[int]:
        return clean_int(v, "Pages", 1, MAX_PAGES, "Pages must be at least 1", f"Pages cannot exceed {MAX_PAGES}")

    @field_validator("isbn", mode="before")
    @classmethod
    def _isbn(cls, v: Any) -> Optional[str]:
        v = clean_text(v, "ISBN", 32, "Please enter a valid ISBN")
        if v is not None and not ISBN_PATTERN.match(v):
            raise _fail("isbn", "Please enter a valid ISBN")
        return v

    @field_validator("publisher", mode="before")
    @classmethod
    def _publisher(cls, v: Any) -> Optional[str]:
        return clean_text(v, "Publisher", 100, "Publisher name cannot be more than 100 characters")


class BookResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True, alias_generator=to_camel, populate_by_name=True)

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


class BookListParams(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1)
    search: Optional[str] = None
    genre: Optional[str] = None
    sort_by: str = "createdAt"
    sort_order: Literal["asc", "desc"] = "desc"


class BookListResponse(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    books: list[BookResponse]
    total_pages: int
    current_page: int
    total: int


class MessageResponse(BaseModel):
    message: str


class HealthResponse(BaseModel):
    success: bool
    message: str
    timestamp: datetime
