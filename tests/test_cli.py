import json
from unittest.mock import patch

import pytest
from typer.testing import CliRunner

from catalog import cli, library
from catalog.cli import app
from catalog.ui_helpers import OUTPUT_MODE_ENV

runner = CliRunner()


@pytest.fixture(autouse=True)
def cli_store(store, monkeypatch):
    monkeypatch.setenv(OUTPUT_MODE_ENV, "plain")
    monkeypatch.setattr(cli, "get_store", lambda: store)
    return store


def test_stats_empty(store):
    result = runner.invoke(app, ["stats"])
    assert result.exit_code == 0
    assert "Books: 0" in result.stdout
    assert "Copies Available: 0" in result.stdout


def test_authors_empty():
    result = runner.invoke(app, ["authors"])
    assert result.exit_code == 0
    assert "No authors in catalog." in result.stdout


def test_authors_listing(store):
    author = library.create_author(store, {"first_name": "Ben", "family_name": "Bova", "date_of_birth": "1932-11-08"})
    result = runner.invoke(app, ["authors"])
    assert result.exit_code == 0
    assert f"{author.id} | Bova, Ben | Nov 8, 1932" in result.stdout


def test_add_genre_twice(store):
    first = runner.invoke(app, ["add-genre", "Poetry"])
    second = runner.invoke(app, ["add-genre", "Poetry"])
    assert "Created genre: Poetry" in first.stdout
    assert "Genre already exists: Poetry" in second.stdout
    assert store.genres.count() == 1


def test_add_genre_invalid(store):
    result = runner.invoke(app, ["add-genre", "SF"])
    assert result.exit_code == 1
    assert "Error:" in result.stdout


def test_genres_json_output(store):
    runner.invoke(app, ["add-genre", "Poetry"])
    result = runner.invoke(app, ["--output", "json", "genres"])
    assert result.exit_code == 0
    rows = json.loads(result.stdout)
    assert [r["name"] for r in rows] == ["Poetry"]


def test_delete_author_blocked(store):
    author = library.create_author(store, {"first_name": "Ben", "family_name": "Bova"})
    book = library.create_book(store, {"title": "Mars", "author": author.id, "summary": "Red.", "isbn": "1"})
    result = runner.invoke(app, ["delete-author", author.id])
    assert result.exit_code == 1
    assert f"{book.id} - Mars" in result.stdout


def test_delete_author(store):
    author = library.create_author(store, {"first_name": "Ben", "family_name": "Bova"})
    result = runner.invoke(app, ["delete-author", author.id])
    assert result.exit_code == 0
    assert store.authors.count() == 0


@patch("subprocess.run")
def test_serve_command(mock_subprocess_run):
    result = runner.invoke(app, ["serve", "--port", "8123"])
    assert result.exit_code == 0
    assert "Starting web UI on http://127.0.0.1:8123/catalog" in result.stdout
    args = mock_subprocess_run.call_args[0][0]
    assert "uvicorn" in args
    assert "catalog.api:app" in args
    assert "8123" in args
