import pytest

from catalog.database import DESCENDING, DocumentStore
from catalog.errors import NotFoundError, StoreError


def test_insert_assigns_id(store):
    doc = store.genres.insert({"name": "Poetry"})
    assert doc["id"]
    assert store.genres.find_by_id(doc["id"]) == {"name": "Poetry", "id": doc["id"]}


def test_find_by_id_missing(store):
    assert store.authors.find_by_id("nope") is None


def test_find_filters_on_scalar_and_list_fields(store):
    a = store.books.insert({"title": "A", "author": "x", "genre": ["g1", "g2"]})
    b = store.books.insert({"title": "B", "author": "y", "genre": ["g2"]})
    assert [d["id"] for d in store.books.find({"author": "x"})] == [a["id"]]
    assert [d["id"] for d in store.books.find({"genre": "g2"}, sort="title")] == [a["id"], b["id"]]
    assert store.books.find({"genre": "g3"}) == []


def test_find_sorting(store):
    for name in ("Poetry", "Fantasy", "Horror"):
        store.genres.insert({"name": name})
    assert [d["name"] for d in store.genres.find(sort="name")] == ["Fantasy", "Horror", "Poetry"]
    assert [d["name"] for d in store.genres.find(sort="-name")] == ["Poetry", "Horror", "Fantasy"]
    assert [d["name"] for d in store.genres.find(sort=[("name", DESCENDING)])] == ["Poetry", "Horror", "Fantasy"]


def test_sort_puts_missing_values_last(store):
    store.authors.insert({"family_name": None})
    store.authors.insert({"family_name": "Bova"})
    assert [d["family_name"] for d in store.authors.find(sort="family_name")] == ["Bova", None]


def test_update_replaces_document(store):
    doc = store.authors.insert({"first_name": "Ben", "family_name": "Bova", "date_of_birth": "1932-11-08"})
    store.authors.update_by_id(doc["id"], {"first_name": "Benjamin", "family_name": "Bova"})
    assert store.authors.find_by_id(doc["id"]) == {"first_name": "Benjamin", "family_name": "Bova", "id": doc["id"]}


def test_update_missing_id_fails(store):
    with pytest.raises(NotFoundError):
        store.authors.update_by_id("missing", {"first_name": "X"})
    assert store.authors.count() == 0


def test_delete_is_idempotent(store):
    doc = store.genres.insert({"name": "Poetry"})
    store.genres.delete_by_id(doc["id"])
    store.genres.delete_by_id(doc["id"])
    assert store.genres.count() == 0


def test_count_with_filter(store):
    store.bookinstances.insert({"status": "Available"})
    store.bookinstances.insert({"status": "Loaned"})
    assert store.bookinstances.count() == 2
    assert store.bookinstances.count({"status": "Available"}) == 1


def test_unknown_collection(store):
    with pytest.raises(KeyError):
        store.collection("members")


def test_unreachable_database_raises_store_error(tmp_path):
    broken = DocumentStore(str(tmp_path / "missing-dir" / "catalog.db"))
    with pytest.raises(StoreError) as exc:
        broken.genres.find()
    assert exc.value.__cause__ is not None
