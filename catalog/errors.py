"""Error taxonomy shared by the catalog core and its callers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, List, Optional, Sequence


class CatalogError(Exception):
    """Base class for every error raised by the catalog core."""


@dataclass(frozen=True)
class FieldError:
    field: str
    message: str

    def to_dict(self) -> dict:
        return {"field": self.field, "message": self.message}


class ValidationError(CatalogError):
    """One or more field constraints were violated.

    ``errors`` holds one entry per violated constraint, never just the first.
    """

    def __init__(self, errors: Sequence[FieldError]) -> None:
        self.errors: List[FieldError] = list(errors)
        super().__init__("; ".join(f"{e.field}: {e.message}" for e in self.errors))

    @classmethod
    def single(cls, field: str, message: str) -> "ValidationError":
        return cls([FieldError(field, message)])

    def fields(self) -> List[str]:
        return [e.field for e in self.errors]


class NotFoundError(CatalogError):
    """An operation targeted an id that must exist but does not."""

    def __init__(self, entity: str, record_id: Optional[str]) -> None:
        self.entity = entity
        self.id = record_id
        super().__init__(f"{entity} {record_id} not found")


class IntegrityError(CatalogError):
    """A delete was refused because live records still reference the target."""

    def __init__(self, entity: str, record_id: str, blocking: Sequence[Any]) -> None:
        self.entity = entity
        self.id = record_id
        self.blocking = list(blocking)
        super().__init__(
            f"{entity} {record_id} is referenced by {len(self.blocking)} record(s)"
        )


class StoreError(CatalogError):
    """The underlying document store failed; the cause is chained."""
