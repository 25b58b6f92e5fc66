import pytest

from catalog.database import DocumentStore


@pytest.fixture
def store(tmp_path, request):
    # A fresh database file for every test
    db_file = str(tmp_path / f"catalog_{request.node.name}.db")
    return DocumentStore(db_file)
