"""Web front end of the catalog.

Handlers translate form posts and path ids into calls on ``catalog.library``
and ``catalog.integrity`` and render the results with Jinja2 templates. The
store handle lives on ``app.state`` and reaches handlers through ``Depends``.
"""

import asyncio
import logging
from datetime import datetime
from functools import partial
from pathlib import Path
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.responses import RedirectResponse, Response
from fastapi.templating import Jinja2Templates

from catalog import integrity, library
from catalog.bookinstance import LoanStatus
from catalog.config import Settings, settings as default_settings
from catalog.database import DocumentStore
from catalog.errors import IntegrityError, NotFoundError, StoreError, ValidationError
from catalog.parallel import gather_reads

logging.basicConfig(level=getattr(logging, default_settings.log_level.upper(), logging.INFO))
logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent / "templates"
templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

AUTHOR_FIELDS = ("first_name", "family_name", "date_of_birth", "date_of_death")
GENRE_FIELDS = ("name",)
BOOK_FIELDS = ("title", "author", "summary", "isbn")
INSTANCE_FIELDS = ("book", "imprint", "status", "due_back")

router = APIRouter(prefix="/catalog")


def get_store(request: Request) -> DocumentStore:
    return request.app.state.store


def render(request: Request, name: str, context: Dict[str, Any], status_code: int = 200) -> Response:
    return templates.TemplateResponse(request, name, context, status_code=status_code)


def redirect(url: str) -> RedirectResponse:
    return RedirectResponse(url, status_code=303)


async def read_form(request: Request, names, multi=()) -> Dict[str, Any]:
    """Pull the named fields out of a submitted form; ``multi`` fields are lists."""
    form = await request.form()
    fields: Dict[str, Any] = {name: form.get(name) for name in names}
    for name in multi:
        fields[name] = form.getlist(name)
    return fields


def _by_id(records) -> Dict[str, Any]:
    return {record.id: record for record in records}


# ------------------------- Index ------------------------- #
@router.get("")
async def index(request: Request, store: DocumentStore = Depends(get_store)):
    counts = await gather_reads(
        books=store.books.count,
        copies=store.bookinstances.count,
        copies_available=partial(store.bookinstances.count, {"status": LoanStatus.AVAILABLE.value}),
        authors=store.authors.count,
        genres=store.genres.count,
    )
    return render(request, "index.html", {"title": "Local Library Home", "counts": counts})


# ------------------------- Authors ------------------------- #
@router.get("/authors")
async def author_list(request: Request, store: DocumentStore = Depends(get_store)):
    authors = await asyncio.to_thread(library.list_authors, store)
    return render(request, "author_list.html", {"title": "Author List", "author_list": authors})


@router.get("/author/create")
async def author_create_get(request: Request):
    return render(request, "author_form.html", {"title": "Create Author", "values": {}})


@router.post("/author/create")
async def author_create_post(request: Request, store: DocumentStore = Depends(get_store)):
    fields = await read_form(request, AUTHOR_FIELDS)
    try:
        author = await asyncio.to_thread(library.create_author, store, fields)
    except ValidationError as e:
        return render(
            request,
            "author_form.html",
            {"title": "Create Author", "values": fields, "errors": e.errors},
            status_code=422,
        )
    return redirect(author.url)


@router.get("/author/{author_id}")
async def author_detail(author_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    results = await gather_reads(
        author=partial(library.get_author, store, author_id),
        books=partial(library.author_books, store, author_id),
    )
    return render(
        request,
        "author_detail.html",
        {"title": "Author Detail", "author": results["author"], "author_books": results["books"]},
    )


@router.get("/author/{author_id}/delete")
async def author_delete_get(author_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    try:
        results = await gather_reads(
            author=partial(library.get_author, store, author_id),
            check=partial(integrity.can_delete_author, store, author_id),
        )
    except NotFoundError:
        return redirect("/catalog/authors")
    return render(
        request,
        "author_delete.html",
        {"title": "Delete Author", "author": results["author"], "author_books": results["check"].blocking},
    )


@router.post("/author/{author_id}/delete")
async def author_delete_post(author_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    try:
        await asyncio.to_thread(integrity.delete_author, store, author_id)
    except IntegrityError as e:
        author = await asyncio.to_thread(library.get_author, store, author_id)
        return render(
            request,
            "author_delete.html",
            {"title": "Delete Author", "author": author, "author_books": e.blocking},
            status_code=409,
        )
    return redirect("/catalog/authors")


@router.get("/author/{author_id}/update")
async def author_update_get(author_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    author = await asyncio.to_thread(library.get_author, store, author_id)
    return render(
        request, "author_form.html", {"title": "Update Author", "values": author.model_dump(mode="json")}
    )


@router.post("/author/{author_id}/update")
async def author_update_post(author_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    fields = await read_form(request, AUTHOR_FIELDS)
    try:
        author = await asyncio.to_thread(integrity.update_author, store, author_id, fields)
    except ValidationError as e:
        return render(
            request,
            "author_form.html",
            {"title": "Update Author", "values": fields, "errors": e.errors},
            status_code=422,
        )
    return redirect(author.url)


# ------------------------- Genres ------------------------- #
@router.get("/genres")
async def genre_list(request: Request, store: DocumentStore = Depends(get_store)):
    genres = await asyncio.to_thread(library.list_genres, store)
    return render(request, "genre_list.html", {"title": "Genre List", "genre_list": genres})


@router.get("/genre/create")
async def genre_create_get(request: Request):
    return render(request, "genre_form.html", {"title": "Create Genre", "values": {}})


@router.post("/genre/create")
async def genre_create_post(request: Request, store: DocumentStore = Depends(get_store)):
    fields = await read_form(request, GENRE_FIELDS)
    try:
        resolution = await asyncio.to_thread(integrity.resolve_or_create_genre, store, fields["name"])
    except ValidationError as e:
        return render(
            request,
            "genre_form.html",
            {"title": "Create Genre", "values": fields, "errors": e.errors},
            status_code=422,
        )
    # An existing genre with the same name is shown instead of a duplicate.
    return redirect(resolution.genre.url)


@router.get("/genre/{genre_id}")
async def genre_detail(genre_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    results = await gather_reads(
        genre=partial(library.get_genre, store, genre_id),
        books=partial(library.genre_books, store, genre_id),
    )
    return render(
        request,
        "genre_detail.html",
        {"title": "Genre Detail", "genre": results["genre"], "genre_books": results["books"]},
    )


@router.get("/genre/{genre_id}/delete")
async def genre_delete_get(genre_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    try:
        results = await gather_reads(
            genre=partial(library.get_genre, store, genre_id),
            check=partial(integrity.can_delete_genre, store, genre_id),
        )
    except NotFoundError:
        return redirect("/catalog/genres")
    return render(
        request,
        "genre_delete.html",
        {"title": "Delete Genre", "genre": results["genre"], "genre_books": results["check"].blocking},
    )


@router.post("/genre/{genre_id}/delete")
async def genre_delete_post(genre_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    try:
        await asyncio.to_thread(integrity.delete_genre, store, genre_id)
    except IntegrityError as e:
        genre = await asyncio.to_thread(library.get_genre, store, genre_id)
        return render(
            request,
            "genre_delete.html",
            {"title": "Delete Genre", "genre": genre, "genre_books": e.blocking},
            status_code=409,
        )
    return redirect("/catalog/genres")


@router.get("/genre/{genre_id}/update")
async def genre_update_get(genre_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    genre = await asyncio.to_thread(library.get_genre, store, genre_id)
    return render(request, "genre_form.html", {"title": "Update Genre", "values": genre.model_dump(mode="json")})


@router.post("/genre/{genre_id}/update")
async def genre_update_post(genre_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    fields = await read_form(request, GENRE_FIELDS)
    try:
        genre = await asyncio.to_thread(library.update_genre, store, genre_id, fields)
    except ValidationError as e:
        return render(
            request,
            "genre_form.html",
            {"title": "Update Genre", "values": fields, "errors": e.errors},
            status_code=422,
        )
    return redirect(genre.url)


# ------------------------- Books ------------------------- #
async def _book_form(
    request: Request,
    store: DocumentStore,
    title: str,
    values: Dict[str, Any],
    errors: Optional[List[Any]] = None,
    status_code: int = 200,
) -> Response:
    choices = await gather_reads(
        authors=partial(library.list_authors, store),
        genres=partial(library.list_genres, store),
    )
    context = {
        "title": title,
        "values": values,
        "authors": choices["authors"],
        "genres": choices["genres"],
        "errors": errors or [],
    }
    return render(request, "book_form.html", context, status_code=status_code)


@router.get("/books")
async def book_list(request: Request, store: DocumentStore = Depends(get_store)):
    results = await gather_reads(
        books=partial(library.list_books, store),
        authors=partial(library.list_authors, store),
    )
    return render(
        request,
        "book_list.html",
        {"title": "Book List", "book_list": results["books"], "authors": _by_id(results["authors"])},
    )


@router.get("/book/create")
async def book_create_get(request: Request, store: DocumentStore = Depends(get_store)):
    return await _book_form(request, store, "Create Book", {"genre": []})


@router.post("/book/create")
async def book_create_post(request: Request, store: DocumentStore = Depends(get_store)):
    fields = await read_form(request, BOOK_FIELDS, multi=("genre",))
    try:
        book = await asyncio.to_thread(library.create_book, store, fields)
    except ValidationError as e:
        return await _book_form(request, store, "Create Book", fields, e.errors, status_code=422)
    return redirect(book.url)


@router.get("/book/{book_id}")
async def book_detail(book_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    results = await gather_reads(
        book=partial(library.get_book, store, book_id),
        instances=partial(library.book_instances, store, book_id),
        authors=partial(library.list_authors, store),
        genres=partial(library.list_genres, store),
    )
    book = results["book"]
    genres = _by_id(results["genres"])
    context = {
        "title": book.title,
        "book": book,
        "author": _by_id(results["authors"]).get(book.author),
        "book_genres": [genres[g] for g in book.genre if g in genres],
        "book_instances": results["instances"],
    }
    return render(request, "book_detail.html", context)


@router.get("/book/{book_id}/delete")
async def book_delete_get(book_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    try:
        results = await gather_reads(
            book=partial(library.get_book, store, book_id),
            check=partial(integrity.can_delete_book, store, book_id),
        )
    except NotFoundError:
        return redirect("/catalog/books")
    return render(
        request,
        "book_delete.html",
        {"title": "Delete Book", "book": results["book"], "book_instances": results["check"].blocking},
    )


@router.post("/book/{book_id}/delete")
async def book_delete_post(book_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    try:
        await asyncio.to_thread(integrity.delete_book, store, book_id)
    except IntegrityError as e:
        book = await asyncio.to_thread(library.get_book, store, book_id)
        return render(
            request,
            "book_delete.html",
            {"title": "Delete Book", "book": book, "book_instances": e.blocking},
            status_code=409,
        )
    return redirect("/catalog/books")


@router.get("/book/{book_id}/update")
async def book_update_get(book_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    book = await asyncio.to_thread(library.get_book, store, book_id)
    return await _book_form(request, store, "Update Book", book.model_dump(mode="json"))


@router.post("/book/{book_id}/update")
async def book_update_post(book_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    fields = await read_form(request, BOOK_FIELDS, multi=("genre",))
    try:
        book = await asyncio.to_thread(library.update_book, store, book_id, fields)
    except ValidationError as e:
        return await _book_form(request, store, "Update Book", fields, e.errors, status_code=422)
    return redirect(book.url)


# ------------------------- Book instances ------------------------- #
async def _instance_form(
    request: Request,
    store: DocumentStore,
    title: str,
    values: Dict[str, Any],
    errors: Optional[List[Any]] = None,
    status_code: int = 200,
) -> Response:
    books = await asyncio.to_thread(library.list_books, store)
    context = {
        "title": title,
        "values": values,
        "book_list": books,
        "statuses": [status.value for status in LoanStatus],
        "errors": errors or [],
    }
    return render(request, "bookinstance_form.html", context, status_code=status_code)


@router.get("/bookinstances")
async def bookinstance_list(request: Request, store: DocumentStore = Depends(get_store)):
    results = await gather_reads(
        instances=partial(library.list_instances, store),
        books=partial(library.list_books, store),
    )
    return render(
        request,
        "bookinstance_list.html",
        {
            "title": "Book Instance List",
            "bookinstance_list": results["instances"],
            "books": _by_id(results["books"]),
        },
    )


@router.get("/bookinstance/create")
async def bookinstance_create_get(request: Request, store: DocumentStore = Depends(get_store)):
    return await _instance_form(request, store, "Create Book Instance", {"status": LoanStatus.MAINTENANCE.value})


@router.post("/bookinstance/create")
async def bookinstance_create_post(request: Request, store: DocumentStore = Depends(get_store)):
    fields = await read_form(request, INSTANCE_FIELDS)
    try:
        instance = await asyncio.to_thread(library.create_instance, store, fields)
    except ValidationError as e:
        return await _instance_form(request, store, "Create Book Instance", fields, e.errors, status_code=422)
    return redirect(instance.url)


@router.get("/bookinstance/{instance_id}")
async def bookinstance_detail(instance_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    results = await gather_reads(
        instance=partial(library.get_instance, store, instance_id),
        books=partial(library.list_books, store),
    )
    instance = results["instance"]
    book = _by_id(results["books"]).get(instance.book)
    title = f"Copy: {book.title}" if book else "Copy"
    return render(request, "bookinstance_detail.html", {"title": title, "bookinstance": instance, "book": book})


@router.get("/bookinstance/{instance_id}/delete")
async def bookinstance_delete_get(instance_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    try:
        results = await gather_reads(
            instance=partial(library.get_instance, store, instance_id),
            books=partial(library.list_books, store),
        )
    except NotFoundError:
        return redirect("/catalog/bookinstances")
    instance = results["instance"]
    return render(
        request,
        "bookinstance_delete.html",
        {
            "title": "Delete Book Instance",
            "bookinstance": instance,
            "book": _by_id(results["books"]).get(instance.book),
        },
    )


@router.post("/bookinstance/{instance_id}/delete")
async def bookinstance_delete_post(instance_id: str, store: DocumentStore = Depends(get_store)):
    await asyncio.to_thread(library.delete_instance, store, instance_id)
    return redirect("/catalog/bookinstances")


@router.get("/bookinstance/{instance_id}/update")
async def bookinstance_update_get(instance_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    instance = await asyncio.to_thread(library.get_instance, store, instance_id)
    return await _instance_form(request, store, "Update Book Instance", instance.model_dump(mode="json"))


@router.post("/bookinstance/{instance_id}/update")
async def bookinstance_update_post(instance_id: str, request: Request, store: DocumentStore = Depends(get_store)):
    fields = await read_form(request, INSTANCE_FIELDS)
    try:
        instance = await asyncio.to_thread(library.update_instance, store, instance_id, fields)
    except ValidationError as e:
        return await _instance_form(request, store, "Update Book Instance", fields, e.errors, status_code=422)
    return redirect(instance.url)


# ------------------------- Application ------------------------- #
async def not_found_handler(request: Request, exc: NotFoundError) -> Response:
    logger.info(f"{request.method} {request.url.path}: {exc}")
    return render(
        request,
        "error.html",
        {"title": "Not Found", "message": f"{exc.entity} not found.", "status": 404},
        status_code=404,
    )


async def store_error_handler(request: Request, exc: StoreError) -> Response:
    logger.error(f"{request.method} {request.url.path}: store failure: {exc} ({exc.__cause__!r})")
    return render(
        request,
        "error.html",
        {"title": "Server Error", "message": "The catalog is unavailable right now.", "status": 500},
        status_code=500,
    )


def create_app(store: Optional[DocumentStore] = None, settings: Optional[Settings] = None) -> FastAPI:
    """Build the web application around ``store`` (the configured file by default)."""
    settings = settings or default_settings
    app = FastAPI(title=settings.app_name, version=settings.app_version, debug=settings.debug)
    app.state.store = store or DocumentStore(settings.database_file)
    app.state.settings = settings
    app.include_router(router)
    app.add_exception_handler(NotFoundError, not_found_handler)
    app.add_exception_handler(StoreError, store_error_handler)

    @app.get("/", include_in_schema=False)
    async def read_root():
        return redirect("/catalog")

    @app.get("/health")
    async def health():
        """Lightweight health check: touches the store once."""
        db_ok = True
        try:
            await asyncio.to_thread(app.state.store.authors.count)
        except StoreError:
            logger.exception("Health check could not reach the store")
            db_ok = False
        return {
            "status": "healthy" if db_ok else "degraded",
            "timestamp": datetime.utcnow().isoformat() + "Z",
            "db": db_ok,
            "version": settings.app_version,
        }

    return app


app = create_app()
