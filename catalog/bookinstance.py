from __future__ import annotations

from datetime import date
from enum import Enum
from typing import ClassVar, Optional

from pydantic import Field, field_validator

from catalog.records import Record, blank_to_none, format_date


class LoanStatus(str, Enum):
    AVAILABLE = "Available"
    MAINTENANCE = "Maintenance"
    LOANED = "Loaned"
    RESERVED = "Reserved"


class BookInstance(Record):
    """A physical copy of a Book that can be borrowed."""

    url_prefix: ClassVar[str] = "/catalog/bookinstance"
    entity: ClassVar[str] = "BookInstance"

    book: str = Field(min_length=1)
    imprint: str = Field(min_length=1)
    status: LoanStatus = LoanStatus.MAINTENANCE
    # Only meaningful while the copy is loaned.
    due_back: Optional[date] = None

    @field_validator("status", mode="before")
    @classmethod
    def _default_status(cls, value):
        return blank_to_none(value) or LoanStatus.MAINTENANCE

    @field_validator("due_back", mode="before")
    @classmethod
    def _empty_date(cls, value):
        return blank_to_none(value)

    @property
    def due_back_formatted(self) -> str:
        return format_date(self.due_back)

    @property
    def is_available(self) -> bool:
        return self.status == LoanStatus.AVAILABLE
