import logging
import subprocess
import sys
import webbrowser
from typing import Optional

import typer

from catalog import integrity, library
from catalog.config import settings
from catalog.database import DocumentStore
from catalog.errors import CatalogError, IntegrityError, ValidationError
from catalog.integrity import GenreAction
from catalog.ui_helpers import print_records, print_stats_result, set_output_mode

logger = logging.getLogger(__name__)

app = typer.Typer(help="Local library catalog CLI")


def get_store() -> DocumentStore:
    return DocumentStore(settings.database_file)


@app.callback()
def _global_options(
    output: Optional[str] = typer.Option(
        None,
        "--output",
        "-o",
        help="Output format: plain | json | rich (default: plain)",
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug messages"),
):
    """Options shared by every command."""
    logging.basicConfig(level=logging.DEBUG if verbose else getattr(logging, settings.log_level.upper(), logging.INFO))
    if output:
        set_output_mode(output)


@app.command("init-db")
def cli_init_db():
    """Create the catalog collections if they do not exist."""
    store = get_store()
    store.initialize()
    print(f"Catalog database ready at {store.db_file}")


@app.command("stats")
def cli_stats():
    """Show record counts."""
    print_stats_result(library.catalog_counts(get_store()))


@app.command("authors")
def cli_authors():
    """List authors by family name."""
    rows = [
        {"id": a.id, "name": a.display_name, "lifespan": a.lifespan}
        for a in library.list_authors(get_store())
    ]
    print_records("Authors", ["id", "name", "lifespan"], rows, "No authors in catalog.")


@app.command("genres")
def cli_genres():
    """List genres by name."""
    rows = [{"id": g.id, "name": g.name} for g in library.list_genres(get_store())]
    print_records("Genres", ["id", "name"], rows, "No genres in catalog.")


@app.command("books")
def cli_books():
    """List books by title."""
    rows = [{"id": b.id, "title": b.title, "isbn": b.isbn} for b in library.list_books(get_store())]
    print_records("Books", ["id", "title", "isbn"], rows, "No books in catalog.")


@app.command("copies")
def cli_copies():
    """List book copies with their loan status."""
    rows = [
        {"id": c.id, "imprint": c.imprint, "status": c.status.value, "due_back": c.due_back_formatted}
        for c in library.list_instances(get_store())
    ]
    print_records("Copies", ["id", "imprint", "status", "due_back"], rows, "No copies in catalog.")


@app.command("add-genre")
def cli_add_genre(name: str):
    """Add a genre unless one with exactly this name exists."""
    try:
        resolution = integrity.resolve_or_create_genre(get_store(), name)
    except ValidationError as e:
        print(f"Error: {e}")
        raise typer.Exit(code=1)
    if resolution.action is GenreAction.EXISTING:
        print(f"Genre already exists: {resolution.genre.name} ({resolution.genre.id})")
    else:
        print(f"Created genre: {resolution.genre.name} ({resolution.genre.id})")


@app.command("delete-author")
def cli_delete_author(author_id: str):
    """Delete an author that no book references."""
    try:
        integrity.delete_author(get_store(), author_id)
    except IntegrityError as e:
        print(f"Cannot delete author {author_id}; delete these books first:")
        for book in e.blocking:
            print(f"  {book.id} - {book.title}")
        raise typer.Exit(code=1)
    except CatalogError as e:
        print(f"Error: {e}")
        raise typer.Exit(code=1)
    print(f"Author {author_id} deleted.")


@app.command("serve")
def cli_serve(
    host: str = typer.Option(settings.api_host, "--host", help="Interface to bind"),
    port: int = typer.Option(settings.api_port, "--port", help="Port to listen on"),
    open_browser: bool = typer.Option(False, "--open", help="Open the catalog in a web browser"),
):
    """Run the web catalog with uvicorn."""
    url = f"http://{host}:{port}/catalog"
    print(f"Starting web UI on {url}")
    if open_browser:
        webbrowser.open(url)
    try:
        subprocess.run(
            [sys.executable, "-m", "uvicorn", "catalog.api:app", "--host", host, "--port", str(port)],
            check=True,
        )
    except subprocess.CalledProcessError as e:
        logger.error(f"uvicorn exited with status {e.returncode}")
        raise typer.Exit(code=e.returncode)


if __name__ == "__main__":
    app()
