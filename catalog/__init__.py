"""Library Catalog - core application package

This package contains the catalog application modules:
- Entity models (author.py, genre.py, book.py, bookinstance.py)
- Document store layer (database.py)
- Referential integrity rules (integrity.py)
- Catalog operations (library.py)
- Web routes and views (api.py, templates/)
- CLI interface (cli.py)
"""

__version__ = "1.0.0"
