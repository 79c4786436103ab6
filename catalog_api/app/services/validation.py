"""Book field validation: raw request data in, normalized fields or field errors out."""

from __future__ import annotations

from typing import Any, Mapping, Optional

from pydantic import ValidationError

from app.errors import BookValidationFailed, FieldError
from app.schemas.book import BookFields

REQUIRED_FIELDS = ("title", "author")

# Both the python name and the wire alias resolve to the wire name
API_FIELD_NAMES = {
    key: info.alias or name
    for name, info in BookFields.model_fields.items()
    for key in (name, info.alias or name)
}


def to_field_error(err: Mapping[str, Any]) -> FieldError:
    loc = err.get("loc") or ()
    field = API_FIELD_NAMES.get(str(loc[0]), str(loc[0])) if loc else "general"
    return FieldError(field=field, message=err.get("msg", "Invalid value"))


def validate_book(
    data: Any,
    *,
    partial: bool = False,
    current_year: Optional[int] = None,
) -> dict[str, Any]:
    """Validate book fields and return them normalized, keyed by wire name.

    With ``partial=False`` every field is returned (absent ones as ``None``)
    and title/author are required. With ``partial=True`` only the supplied
    fields are checked and returned, which is what updates apply.

    Raises:
        BookValidationFailed: one entry per offending field, in declaration order.
    """
    if not isinstance(data, Mapping):
        raise BookValidationFailed([FieldError("general", "Book data must be a JSON object")])

    data = dict(data)
    if not partial:
        for field in REQUIRED_FIELDS:
            data.setdefault(field, None)

    try:
        fields = BookFields.model_validate(data, context={"current_year": current_year})
    except ValidationError as exc:
        raise BookValidationFailed([to_field_error(err) for err in exc.errors()]) from None

    return fields.model_dump(by_alias=True, exclude_unset=partial)
