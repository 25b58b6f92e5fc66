"""Cross-entity rules enforced before the catalog is mutated.

Model construction never touches the store, so whether a referenced record
exists, whether a record is still referenced, and whether a genre name is
already taken are all decided here. Every function takes the store handle
explicitly.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, List, Mapping

from catalog.author import Author
from catalog.book import Book
from catalog.bookinstance import BookInstance
from catalog.database import DocumentStore
from catalog.errors import FieldError, IntegrityError, NotFoundError, ValidationError
from catalog.genre import Genre
from catalog.records import Record

logger = logging.getLogger(__name__)


@dataclass
class DeleteCheck:
    """Outcome of a delete pre-check. ``blocking`` is never truncated."""

    blocking: List[Record] = field(default_factory=list)

    @property
    def blocked(self) -> bool:
        return bool(self.blocking)

    @property
    def blocking_books(self) -> List[Record]:
        return self.blocking


class GenreAction(str, Enum):
    EXISTING = "existing"
    CREATED = "created"


@dataclass
class GenreResolution:
    action: GenreAction
    genre: Genre


def books_referencing(store: DocumentStore, field_name: str, record_id: str) -> List[Book]:
    """Books whose ``field_name`` reference (scalar or list) points at ``record_id``."""
    docs = store.books.find({field_name: record_id}, sort="title")
    return [Book.from_document(doc) for doc in docs]


def instances_of(store: DocumentStore, book_id: str) -> List[BookInstance]:
    docs = store.bookinstances.find({"book": book_id}, sort="imprint")
    return [BookInstance.from_document(doc) for doc in docs]


# ------------------------- Delete checks ------------------------- #
def can_delete_author(store: DocumentStore, author_id: str) -> DeleteCheck:
    return DeleteCheck(books_referencing(store, "author", author_id))


def can_delete_genre(store: DocumentStore, genre_id: str) -> DeleteCheck:
    return DeleteCheck(books_referencing(store, "genre", genre_id))


def can_delete_book(store: DocumentStore, book_id: str) -> DeleteCheck:
    return DeleteCheck(instances_of(store, book_id))


def _guarded_delete(store: DocumentStore, entity: str, collection: str, record_id: str, check: DeleteCheck) -> None:
    if check.blocked:
        logger.info(f"Refusing to delete {entity} {record_id}: {len(check.blocking)} record(s) reference it")
        raise IntegrityError(entity, record_id, check.blocking)
    store.collection(collection).delete_by_id(record_id)


def delete_author(store: DocumentStore, author_id: str) -> None:
    """Delete an author nobody references. An absent author is a no-op."""
    _guarded_delete(store, "Author", "authors", author_id, can_delete_author(store, author_id))


def delete_genre(store: DocumentStore, genre_id: str) -> None:
    _guarded_delete(store, "Genre", "genres", genre_id, can_delete_genre(store, genre_id))


def delete_book(store: DocumentStore, book_id: str) -> None:
    """Delete a book that has no copies on record."""
    _guarded_delete(store, "Book", "books", book_id, can_delete_book(store, book_id))


# ------------------------- Create / update rules ------------------------- #
def resolve_or_create_genre(store: DocumentStore, name: str) -> GenreResolution:
    """Return the genre named exactly ``name``, creating it if there is none.

    Matching is case-sensitive on the trimmed name: "fantasy" and "Fantasy"
    are different genres.
    """
    genre = Genre.from_fields({"name": name})
    found = store.genres.find_one({"name": genre.name})
    if found is not None:
        logger.debug(f"Genre {genre.name!r} already exists as {found['id']}")
        return GenreResolution(GenreAction.EXISTING, Genre.from_document(found))
    doc = store.genres.insert(genre.to_document())
    return GenreResolution(GenreAction.CREATED, Genre.from_document(doc))


def update_author(store: DocumentStore, author_id: str, fields: Mapping[str, Any]) -> Author:
    """Replace every field of an existing author.

    Fields missing from ``fields`` revert to their defaults. Updating an id
    that does not exist raises ``NotFoundError`` instead of creating it.
    """
    if store.authors.find_by_id(author_id) is None:
        raise NotFoundError("Author", author_id)
    author = Author.from_fields(fields, record_id=author_id)
    store.authors.update_by_id(author_id, author.to_document())
    return author


def check_book_references(store: DocumentStore, book: Book) -> None:
    """Raise ``ValidationError`` if the book's author or any genre is missing."""
    errors: List[FieldError] = []
    if store.authors.find_by_id(book.author) is None:
        errors.append(FieldError("author", "Author not found."))
    missing = [genre_id for genre_id in book.genre if store.genres.find_by_id(genre_id) is None]
    if missing:
        errors.append(FieldError("genre", f"Genre not found: {', '.join(missing)}."))
    if errors:
        raise ValidationError(errors)


def check_instance_references(store: DocumentStore, instance: BookInstance) -> None:
    if store.books.find_by_id(instance.book) is None:
        raise ValidationError.single("book", "Book not found.")
