"""Catalog operations for every entity.

Each function takes the store handle explicitly and returns plain records or
raises one of the ``catalog.errors`` types. The delete rules and the genre
name rule live in ``catalog.integrity``; this module calls into it.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, List, Mapping

from catalog import integrity
from catalog.author import Author
from catalog.book import Book
from catalog.bookinstance import BookInstance, LoanStatus
from catalog.database import DocumentStore
from catalog.errors import NotFoundError, ValidationError
from catalog.genre import Genre

logger = logging.getLogger(__name__)


def _get(store: DocumentStore, collection: str, record_cls, record_id: str):
    doc = store.collection(collection).find_by_id(record_id)
    if doc is None:
        logger.debug(f"{record_cls.entity} {record_id} not found")
        raise NotFoundError(record_cls.entity, record_id)
    return record_cls.from_document(doc)


def _replace(store: DocumentStore, collection: str, record_id: str, record):
    # Existence is checked first so a missing id never turns into an insert.
    if store.collection(collection).find_by_id(record_id) is None:
        raise NotFoundError(record.entity, record_id)
    store.collection(collection).update_by_id(record_id, record.to_document())
    return record


# ------------------------- Authors ------------------------- #
def list_authors(store: DocumentStore) -> List[Author]:
    docs = store.authors.find(sort=[("family_name", 1), ("first_name", 1)])
    return [Author.from_document(doc) for doc in docs]


def get_author(store: DocumentStore, author_id: str) -> Author:
    return _get(store, "authors", Author, author_id)


def create_author(store: DocumentStore, fields: Mapping[str, Any]) -> Author:
    author = Author.from_fields(fields)
    doc = store.authors.insert(author.to_document())
    return author.with_id(doc["id"])


def author_books(store: DocumentStore, author_id: str) -> List[Book]:
    return integrity.books_referencing(store, "author", author_id)


# ------------------------- Genres ------------------------- #
def list_genres(store: DocumentStore) -> List[Genre]:
    return [Genre.from_document(doc) for doc in store.genres.find(sort="name")]


def get_genre(store: DocumentStore, genre_id: str) -> Genre:
    return _get(store, "genres", Genre, genre_id)


def update_genre(store: DocumentStore, genre_id: str, fields: Mapping[str, Any]) -> Genre:
    """Rename a genre. Taking a name another genre already uses is rejected."""
    if store.genres.find_by_id(genre_id) is None:
        raise NotFoundError("Genre", genre_id)
    genre = Genre.from_fields(fields, record_id=genre_id)
    clash = store.genres.find_one({"name": genre.name})
    if clash is not None and clash["id"] != genre_id:
        raise ValidationError.single("name", f"Genre {genre.name!r} already exists.")
    return _replace(store, "genres", genre_id, genre)


def genre_books(store: DocumentStore, genre_id: str) -> List[Book]:
    return integrity.books_referencing(store, "genre", genre_id)


# ------------------------- Books ------------------------- #
def list_books(store: DocumentStore) -> List[Book]:
    return [Book.from_document(doc) for doc in store.books.find(sort="title")]


def get_book(store: DocumentStore, book_id: str) -> Book:
    return _get(store, "books", Book, book_id)


def create_book(store: DocumentStore, fields: Mapping[str, Any]) -> Book:
    book = Book.from_fields(fields)
    integrity.check_book_references(store, book)
    doc = store.books.insert(book.to_document())
    return book.with_id(doc["id"])


def update_book(store: DocumentStore, book_id: str, fields: Mapping[str, Any]) -> Book:
    if store.books.find_by_id(book_id) is None:
        raise NotFoundError("Book", book_id)
    book = Book.from_fields(fields, record_id=book_id)
    integrity.check_book_references(store, book)
    return _replace(store, "books", book_id, book)


def book_instances(store: DocumentStore, book_id: str) -> List[BookInstance]:
    return integrity.instances_of(store, book_id)


# ------------------------- Book instances ------------------------- #
def list_instances(store: DocumentStore) -> List[BookInstance]:
    return [BookInstance.from_document(doc) for doc in store.bookinstances.find(sort="imprint")]


def get_instance(store: DocumentStore, instance_id: str) -> BookInstance:
    return _get(store, "bookinstances", BookInstance, instance_id)


def create_instance(store: DocumentStore, fields: Mapping[str, Any]) -> BookInstance:
    instance = BookInstance.from_fields(fields)
    integrity.check_instance_references(store, instance)
    doc = store.bookinstances.insert(instance.to_document())
    return instance.with_id(doc["id"])


def update_instance(store: DocumentStore, instance_id: str, fields: Mapping[str, Any]) -> BookInstance:
    if store.bookinstances.find_by_id(instance_id) is None:
        raise NotFoundError("BookInstance", instance_id)
    instance = BookInstance.from_fields(fields, record_id=instance_id)
    integrity.check_instance_references(store, instance)
    return _replace(store, "bookinstances", instance_id, instance)


def delete_instance(store: DocumentStore, instance_id: str) -> None:
    """Nothing references a copy, so it can always go. Absent ids are a no-op."""
    store.bookinstances.delete_by_id(instance_id)


# ------------------------- Summary ------------------------- #
def catalog_counts(store: DocumentStore) -> Dict[str, int]:
    return {
        "books": store.books.count(),
        "copies": store.bookinstances.count(),
        "copies_available": store.bookinstances.count({"status": LoanStatus.AVAILABLE.value}),
        "authors": store.authors.count(),
        "genres": store.genres.count(),
    }
