"""Base class shared by the four catalog entities.

Records are pydantic models: field constraints are declared on the model and
every violated constraint is reported at once. Derived values (``url``,
formatted dates, display names) are plain properties, so they are recomputed
on each access and never end up in ``to_document()``.
"""

from __future__ import annotations

from datetime import date
from typing import Any, ClassVar, Dict, List, Mapping, Optional

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from catalog.errors import FieldError, ValidationError


def format_date(value: Optional[date]) -> str:
    """Medium date style, e.g. ``Jan 1, 1980``; an absent date is ``""``."""
    if value is None:
        return ""
    return f"{value:%b} {value.day}, {value.year}"


def blank_to_none(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _label(field: str) -> str:
    return field.replace("_", " ").capitalize()


def _field_error(err: Dict[str, Any]) -> FieldError:
    loc = err.get("loc") or ()
    field = str(loc[0]) if loc else "__all__"
    kind = err.get("type", "")
    ctx = err.get("ctx") or {}
    label = _label(field)
    if kind == "missing" or (kind == "string_too_short" and ctx.get("min_length") == 1):
        message = f"{label} must be specified."
    elif kind == "string_too_short":
        message = f"{label} must have at least {ctx['min_length']} characters."
    elif kind == "string_too_long":
        message = f"{label} must have at most {ctx['max_length']} characters."
    elif kind.startswith("date"):
        message = f"Invalid {label.lower()}."
    elif kind == "value_error":
        message = str(ctx.get("error", err.get("msg", "")))
    else:
        message = err.get("msg", "Invalid value.")
    return FieldError(field, message)


class Record(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True, extra="ignore")

    url_prefix: ClassVar[str] = ""
    entity: ClassVar[str] = ""

    id: Optional[str] = None

    @property
    def url(self) -> str:
        return f"{self.url_prefix}/{self.id}"

    @classmethod
    def from_fields(cls, fields: Mapping[str, Any], record_id: Optional[str] = None):
        """Build a validated record from raw values.

        ``None`` values count as not supplied, so optional fields fall back to
        their defaults and required ones are reported as missing.
        """
        data = {k: v for k, v in fields.items() if v is not None and k != "id"}
        data["id"] = record_id
        try:
            return cls.model_validate(data)
        except PydanticValidationError as exc:
            errors: List[FieldError] = []
            for err in exc.errors():
                field_error = _field_error(err)
                if field_error not in errors:
                    errors.append(field_error)
            raise ValidationError(errors) from exc

    @classmethod
    def from_document(cls, doc: Mapping[str, Any]):
        return cls.model_validate(dict(doc))

    def to_document(self) -> Dict[str, Any]:
        """The persisted form: stored fields only, JSON-ready, without ``id``."""
        return self.model_dump(mode="json", exclude={"id"})

    def with_id(self, record_id: str):
        return self.model_copy(update={"id": record_id})
