from __future__ import annotations

from typing import ClassVar, List

from pydantic import Field, field_validator

from catalog.records import Record


class Book(Record):
    """A title in the catalog, written by one Author and filed under any Genres."""

    url_prefix: ClassVar[str] = "/catalog/book"
    entity: ClassVar[str] = "Book"

    title: str = Field(min_length=1)
    author: str = Field(min_length=1)
    summary: str = Field(min_length=1)
    isbn: str = Field(min_length=1)
    genre: List[str] = Field(default_factory=list)

    @field_validator("genre", mode="before")
    @classmethod
    def _genre_ids(cls, value):
        # A single form checkbox arrives as a bare string.
        if isinstance(value, str):
            value = [value]
        ids = []
        for item in value or []:
            item = str(item).strip()
            if item and item not in ids:
                ids.append(item)
        return ids

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return f"{self.title} (ISBN: {self.isbn})"
