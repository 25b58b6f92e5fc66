import pytest
from fastapi.testclient import TestClient

from catalog import integrity, library
from catalog.api import create_app


@pytest.fixture
def client(store):
    return TestClient(create_app(store))


@pytest.fixture
def author(store):
    return library.create_author(store, {"first_name": "Ursula", "family_name": "Le Guin"})


@pytest.fixture
def book(store, author):
    return library.create_book(store, {
        "title": "A Wizard of Earthsea",
        "author": author.id,
        "summary": "Ged learns magic.",
        "isbn": "9780547773742",
    })


def test_root_redirects_to_catalog(client):
    response = client.get("/", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/catalog"


def test_index_shows_counts(client, book):
    response = client.get("/catalog")
    assert response.status_code == 200
    assert "<strong>Books:</strong> 1" in response.text
    assert "<strong>Authors:</strong> 1" in response.text


def test_health(client):
    response = client.get("/health")
    assert response.status_code == 200
    assert response.json()["status"] == "healthy"
    assert response.json()["db"] is True


def test_create_author_redirects_to_detail(client, store):
    response = client.post(
        "/catalog/author/create",
        data={"first_name": "Frank", "family_name": "Herbert", "date_of_birth": "1920-10-08"},
        follow_redirects=False,
    )
    assert response.status_code == 303
    location = response.headers["location"]
    assert location.startswith("/catalog/author/")

    detail = client.get(location)
    assert detail.status_code == 200
    assert "Herbert, Frank" in detail.text
    assert "Oct 8, 1920" in detail.text


def test_create_author_invalid_rerenders_form(client, store):
    response = client.post("/catalog/author/create", data={"first_name": "", "family_name": "Herbert"})
    assert response.status_code == 422
    assert "First name must be specified." in response.text
    assert 'value="Herbert"' in response.text
    assert store.authors.count() == 0


def test_author_detail_not_found(client):
    response = client.get("/catalog/author/missing")
    assert response.status_code == 404
    assert "Author not found." in response.text


def test_author_list(client, author):
    response = client.get("/catalog/authors")
    assert response.status_code == 200
    assert "Le Guin, Ursula" in response.text


def test_delete_author_blocked_lists_books(client, store, author, book):
    response = client.post(f"/catalog/author/{author.id}/delete")
    assert response.status_code == 409
    assert "A Wizard of Earthsea" in response.text
    assert store.authors.find_by_id(author.id) is not None


def test_delete_author_page_lists_books(client, author, book):
    response = client.get(f"/catalog/author/{author.id}/delete")
    assert response.status_code == 200
    assert "Delete the following books" in response.text


def test_delete_unreferenced_author(client, store, author):
    response = client.post(f"/catalog/author/{author.id}/delete", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/catalog/authors"
    assert store.authors.count() == 0


def test_delete_missing_author_redirects(client):
    response = client.get("/catalog/author/missing/delete", follow_redirects=False)
    assert response.status_code == 303
    assert response.headers["location"] == "/catalog/authors"
    response = client.post("/catalog/author/missing/delete", follow_redirects=False)
    assert response.status_code == 303


def test_update_author(client, store, author):
    response = client.post(
        f"/catalog/author/{author.id}/update",
        data={"first_name": "Ursula K.", "family_name": "Le Guin"},
        follow_redirects=False,
    )
    assert response.status_code == 303
    assert library.get_author(store, author.id).first_name == "Ursula K."


def test_update_missing_author_is_not_found(client, store):
    response = client.post("/catalog/author/missing/update", data={"first_name": "A", "family_name": "B"})
    assert response.status_code == 404
    assert store.authors.count() == 0


def test_duplicate_genre_redirects_to_existing(client, store):
    first = client.post("/catalog/genre/create", data={"name": "Fantasy"}, follow_redirects=False)
    second = client.post("/catalog/genre/create", data={"name": "Fantasy"}, follow_redirects=False)
    assert first.status_code == second.status_code == 303
    assert first.headers["location"] == second.headers["location"]
    assert store.genres.count() == 1


def test_genre_too_short(client, store):
    response = client.post("/catalog/genre/create", data={"name": "SF"})
    assert response.status_code == 422
    assert "Name must have at least 3 characters." in response.text


def test_create_book_with_genres(client, store, author):
    fantasy = integrity.resolve_or_create_genre(store, "Fantasy").genre
    response = client.post(
        "/catalog/book/create",
        data={
            "title": "The Left Hand of Darkness",
            "author": author.id,
            "summary": "Gethen.",
            "isbn": "9780441478125",
            "genre": [fantasy.id],
        },
        follow_redirects=False,
    )
    assert response.status_code == 303
    detail = client.get(response.headers["location"])
    assert "Le Guin, Ursula" in detail.text
    assert "Fantasy" in detail.text


def test_create_book_with_unknown_author(client, store):
    response = client.post(
        "/catalog/book/create",
        data={"title": "Orphan", "author": "ghost", "summary": "None.", "isbn": "1"},
    )
    assert response.status_code == 422
    assert "Author not found." in response.text
    assert store.books.count() == 0


def test_genre_delete_flow(client, store, author):
    sci_fi = integrity.resolve_or_create_genre(store, "Sci-Fi").genre
    dune = library.create_book(store, {
        "title": "Dune", "author": author.id, "summary": "Spice.", "isbn": "1", "genre": [sci_fi.id],
    })
    blocked = client.post(f"/catalog/genre/{sci_fi.id}/delete")
    assert blocked.status_code == 409
    assert "Dune" in blocked.text

    assert client.post(f"/catalog/book/{dune.id}/delete", follow_redirects=False).status_code == 303
    done = client.post(f"/catalog/genre/{sci_fi.id}/delete", follow_redirects=False)
    assert done.status_code == 303
    assert store.genres.count() == 0


def test_bookinstance_create_and_list(client, store, book):
    response = client.post(
        "/catalog/bookinstance/create",
        data={"book": book.id, "imprint": "Parnassus, 1968", "status": "Loaned", "due_back": "2024-06-01"},
        follow_redirects=False,
    )
    assert response.status_code == 303
    listing = client.get("/catalog/bookinstances")
    assert "A Wizard of Earthsea : Parnassus, 1968" in listing.text
    assert "Jun 1, 2024" in listing.text


def test_bookinstance_delete(client, store, book):
    copy = library.create_instance(store, {"book": book.id, "imprint": "Parnassus"})
    assert client.get(f"/catalog/bookinstance/{copy.id}/delete").status_code == 200
    response = client.post(f"/catalog/bookinstance/{copy.id}/delete", follow_redirects=False)
    assert response.status_code == 303
    assert store.bookinstances.count() == 0


def test_store_failure_is_a_server_error(tmp_path):
    from catalog.database import DocumentStore

    broken = TestClient(create_app(DocumentStore(str(tmp_path / "missing" / "catalog.db"))))
    response = broken.get("/catalog/authors")
    assert response.status_code == 500
    assert broken.get("/health").json()["db"] is False
