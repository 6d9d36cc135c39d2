import pytest

from metrolog.db import Store
from metrolog.folders import FolderService
from metrolog.parser import parse_log_content
from metrolog.queries import QueryService
from metrolog.storage import IngestionService
from tests.factories import make_log


@pytest.fixture
def store():
    """
    Isolated in-memory database for one test.
    """
    s = Store("sqlite://", echo=False).open()
    yield s
    s.close()


@pytest.fixture
def ingestion(store) -> IngestionService:
    return IngestionService(store)


@pytest.fixture
def queries(store) -> QueryService:
    return QueryService(store)


@pytest.fixture
def folder_service(store) -> FolderService:
    return FolderService(store)


@pytest.fixture
def load(ingestion):
    """Parse and ingest rows (dicts of column overrides) under one file source."""
    def _load(file_source, *rows):
        return ingestion.ingest(parse_log_content(make_log(*rows)), file_source)
    return _load
