"""
Pytest configuration and shared fixtures.
"""

from datetime import date, datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from library.models import Author, Book
from library.repository import LibraryRepository

from api.config import APIConfig
from api.main import create_app
from api.mapping import ResourceMapper

STEPHEN_KING_ID = UUID("25320c5e-f58a-4b1f-b63a-8ee07a840bdf")
THE_SHINING_ID = UUID("c7ba6add-09c4-45f8-8dd0-eaca221e5d93")
TODAY = date(2024, 1, 1)


@pytest.fixture
def sample_book():
    """Create a sample book for testing."""
    return Book(
        id=THE_SHINING_ID,
        title="The Shining",
        description="A horror novel set in the Overlook Hotel.",
        author_id=STEPHEN_KING_ID
    )


@pytest.fixture
def sample_author(sample_book):
    """Create a sample author for testing."""
    return Author(
        id=STEPHEN_KING_ID,
        first_name="Stephen",
        last_name="King",
        date_of_birth=datetime(1947, 9, 21, tzinfo=timezone.utc),
        genre="Horror",
        books=[sample_book]
    )


@pytest.fixture
def other_author():
    """Create a second author for testing."""
    return Author(
        id=UUID("412c3012-d891-4f5e-9613-ff7aa63e6bb3"),
        first_name="Neil",
        last_name="Gaiman",
        date_of_birth=datetime(1960, 11, 10, tzinfo=timezone.utc),
        genre="Fantasy"
    )


@pytest.fixture
def mapper():
    """Resource mapper with a fixed current date."""
    return ResourceMapper(clock=lambda: TODAY)


@pytest.fixture
def mock_repository():
    """Create a mock library repository."""
    repository = AsyncMock(spec=LibraryRepository)
    repository.add_author.side_effect = lambda author: author
    repository.add_book_for_author.side_effect = lambda author_id, book: book
    return repository


@pytest.fixture
def api_settings():
    """API settings with generous rate limits."""
    return APIConfig(rate_limit_rules="1000/5m,200/10s", debug=False)


@pytest.fixture
def app(api_settings, mock_repository, mapper):
    """Application wired to the mock repository."""
    application = create_app(api_settings)
    application.state.repository = mock_repository
    application.state.mapper = mapper
    return application


@pytest.fixture
def client(app):
    """Create test client."""
    return TestClient(app)


@pytest.fixture
def make_cursor():
    """Factory mimicking a motor cursor: chained sort/skip/limit and an async to_list."""
    def factory(documents):
        cursor = MagicMock()
        cursor.sort.return_value = cursor
        cursor.skip.return_value = cursor
        cursor.limit.return_value = cursor
        cursor.to_list = AsyncMock(return_value=list(documents))
        return cursor
    return factory
