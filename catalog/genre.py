from __future__ import annotations

from typing import ClassVar

from pydantic import Field

from catalog.records import Record


class Genre(Record):
    """A category of books. Names are unique, compared case-sensitively."""

    url_prefix: ClassVar[str] = "/catalog/genre"
    entity: ClassVar[str] = "Genre"

    name: str = Field(min_length=3, max_length=100)

    def __str__(self) -> str:  # pragma: no cover - string formatting trivial
        return self.name
