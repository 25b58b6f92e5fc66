from __future__ import annotations

from datetime import date
from typing import ClassVar, Optional

from pydantic import Field, ValidationInfo, field_validator

from catalog.records import Record, blank_to_none, format_date


class Author(Record):
    """A person credited with one or more books."""

    url_prefix: ClassVar[str] = "/catalog/author"
    entity: ClassVar[str] = "Author"

    first_name: str = Field(min_length=1, max_length=100)
    family_name: str = Field(min_length=1, max_length=100)
    date_of_birth: Optional[date] = None
    date_of_death: Optional[date] = None

    @field_validator("date_of_birth", "date_of_death", mode="before")
    @classmethod
    def _empty_date(cls, value):
        return blank_to_none(value)

    @field_validator("date_of_death")
    @classmethod
    def _death_after_birth(cls, value: Optional[date], info: ValidationInfo) -> Optional[date]:
        born = info.data.get("date_of_birth")
        if value is not None and born is not None and value < born:
            raise ValueError("Date of death must not be before date of birth.")
        return value

    @property
    def display_name(self) -> str:
        """``"Family, First"``, or ``""`` when either part is missing."""
        if self.first_name and self.family_name:
            return f"{self.family_name}, {self.first_name}"
        return ""

    @property
    def date_of_birth_formatted(self) -> str:
        return format_date(self.date_of_birth)

    @property
    def date_of_death_formatted(self) -> str:
        return format_date(self.date_of_death)

    @property
    def lifespan(self) -> str:
        born = self.date_of_birth_formatted
        died = self.date_of_death_formatted
        if born and died:
            return f"{born} - {died}"
        return born or died

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return self.display_name
