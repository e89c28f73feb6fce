"""
Tests for the library repository and database manager against mocked
MongoDB collections.
"""

from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock
from uuid import UUID, uuid4

import pytest

from library.database import SEED_AUTHORS, LibraryDatabase
from library.models import Author, Book
from library.pagination import PagedList
from library.property_mapping import PropertyMappingService
from library.repository import LibraryRepository
from library.resource_parameters import AuthorsResourceParameters


@pytest.fixture
def authors_collection():
    collection = MagicMock()
    collection.count_documents = AsyncMock(return_value=0)
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock()
    collection.insert_many = AsyncMock()
    collection.delete_one = AsyncMock()
    collection.delete_many = AsyncMock()
    collection.replace_one = AsyncMock()
    return collection


@pytest.fixture
def books_collection():
    collection = MagicMock()
    collection.count_documents = AsyncMock(return_value=0)
    collection.find_one = AsyncMock(return_value=None)
    collection.insert_one = AsyncMock()
    collection.insert_many = AsyncMock()
    collection.delete_one = AsyncMock()
    collection.delete_many = AsyncMock()
    collection.replace_one = AsyncMock()
    return collection


@pytest.fixture
def repository(authors_collection, books_collection):
    return LibraryRepository(authors_collection, books_collection, PropertyMappingService())


class TestAuthorsFilter:
    """Test cases for building author filters."""

    def test_no_filter(self):
        """Test that defaults match everything."""
        assert LibraryRepository.build_authors_filter(AuthorsResourceParameters()) == {}

    def test_genre_matches_whole_value_ignoring_case(self):
        """Test the genre filter is trimmed, anchored and case-insensitive."""
        filter_query = LibraryRepository.build_authors_filter(
            AuthorsResourceParameters(genre="  Science fiction ")
        )

        assert filter_query == {"genre": {"$regex": "^Science\\ fiction$", "$options": "i"}}

    def test_search_query_covers_name_and_genre(self):
        """Test the search filter and regex escaping."""
        filter_query = LibraryRepository.build_authors_filter(AuthorsResourceParameters(search_query=" R.R "))

        assert filter_query == {"$or": [
            {"genre": {"$regex": "R\\.R", "$options": "i"}},
            {"first_name": {"$regex": "R\\.R", "$options": "i"}},
            {"last_name": {"$regex": "R\\.R", "$options": "i"}},
        ]}

    def test_blank_values_are_ignored(self):
        """Test whitespace-only filters."""
        assert LibraryRepository.build_authors_filter(
            AuthorsResourceParameters(genre="  ", search_query="")
        ) == {}


class TestLibraryRepository:
    """Test cases for repository operations."""

    async def test_get_authors_returns_paged_entities(self, repository, authors_collection,
                                                      make_cursor, sample_author):
        """Test filtering, sorting and paging of authors."""
        authors_collection.count_documents.return_value = 11
        cursor = make_cursor([sample_author.to_document()])
        authors_collection.find.return_value = cursor

        page = await repository.get_authors(
            AuthorsResourceParameters(genre="Horror", order_by="age", page_number=2, page_size=5)
        )

        assert isinstance(page, PagedList)
        assert page.total_count == 11
        assert page.total_pages == 3
        assert page[0].id == sample_author.id
        assert page[0].date_of_birth.tzinfo is not None
        authors_collection.count_documents.assert_awaited_once_with(
            {"genre": {"$regex": "^Horror$", "$options": "i"}}
        )
        cursor.sort.assert_called_once_with([("date_of_birth", -1), ("_id", 1)])
        cursor.skip.assert_called_once_with(5)

    async def test_get_authors_rejects_unknown_sort(self, repository):
        """Test that unmapped sort properties raise ValueError."""
        with pytest.raises(ValueError):
            await repository.get_authors(AuthorsResourceParameters(order_by="title"))

    async def test_get_authors_rejects_zero_page_size(self, repository, authors_collection):
        """Test that paging validation surfaces as ValueError."""
        with pytest.raises(ValueError):
            await repository.get_authors(AuthorsResourceParameters(page_size=0))

        authors_collection.count_documents.assert_not_awaited()

    async def test_get_author(self, repository, authors_collection, sample_author):
        """Test reading a single author."""
        authors_collection.find_one.return_value = sample_author.to_document()

        author = await repository.get_author(sample_author.id)

        assert author.first_name == "Stephen"
        authors_collection.find_one.assert_awaited_once_with({"_id": str(sample_author.id)})

    async def test_get_missing_author(self, repository):
        """Test reading an unknown author."""
        assert await repository.get_author(uuid4()) is None

    async def test_get_authors_by_ids(self, repository, authors_collection, make_cursor,
                                      sample_author, other_author):
        """Test reading several authors by id."""
        authors_collection.find.return_value = make_cursor(
            [other_author.to_document(), sample_author.to_document()]
        )

        authors = await repository.get_authors_by_ids([sample_author.id, other_author.id])

        assert [author.last_name for author in authors] == ["Gaiman", "King"]
        authors_collection.find.assert_called_once_with(
            {"_id": {"$in": [str(sample_author.id), str(other_author.id)]}}
        )

    async def test_add_author_assigns_new_ids(self, repository, authors_collection,
                                              books_collection, sample_author):
        """Test that the author and their books get fresh ids."""
        original_id = sample_author.id

        author = await repository.add_author(sample_author)

        assert author.id != original_id
        assert author.books[0].author_id == author.id
        authors_collection.insert_one.assert_awaited_once()
        inserted_books = books_collection.insert_many.await_args.args[0]
        assert inserted_books[0]["author_id"] == str(author.id)

    async def test_add_author_without_books(self, repository, books_collection, other_author):
        """Test that no book insert happens for an author without books."""
        await repository.add_author(other_author)

        books_collection.insert_many.assert_not_awaited()

    async def test_delete_author_removes_books(self, repository, authors_collection,
                                               books_collection, sample_author):
        """Test cascading deletion."""
        await repository.delete_author(sample_author)

        books_collection.delete_many.assert_awaited_once_with({"author_id": str(sample_author.id)})
        authors_collection.delete_one.assert_awaited_once_with({"_id": str(sample_author.id)})

    async def test_update_author_replaces_document(self, repository, authors_collection, sample_author):
        """Test that an update replaces the stored author document."""
        await repository.update_author(sample_author)

        authors_collection.replace_one.assert_awaited_once_with(
            {"_id": str(sample_author.id)}, sample_author.to_document()
        )

    async def test_author_exists(self, repository, authors_collection, sample_author):
        """Test the existence check."""
        authors_collection.count_documents.return_value = 1

        assert await repository.author_exists(sample_author.id) is True
        authors_collection.count_documents.assert_awaited_once_with(
            {"_id": str(sample_author.id)}, limit=1
        )

    async def test_get_books_for_author(self, repository, books_collection, make_cursor, sample_book):
        """Test listing the books of an author."""
        books_collection.find.return_value = make_cursor([sample_book.to_document()])

        books = await repository.get_books_for_author(sample_book.author_id)

        assert books == [sample_book]
        books_collection.find.assert_called_once_with({"author_id": str(sample_book.author_id)})

    async def test_get_book_for_author(self, repository, books_collection, sample_book):
        """Test reading a book scoped to its author."""
        books_collection.find_one.return_value = sample_book.to_document()

        book = await repository.get_book_for_author(sample_book.author_id, sample_book.id)

        assert book == sample_book
        books_collection.find_one.assert_awaited_once_with(
            {"_id": str(sample_book.id), "author_id": str(sample_book.author_id)}
        )

    async def test_add_book_keeps_given_id(self, repository, books_collection):
        """Test that upserted books keep the id from the URI."""
        author_id = uuid4()
        book_id = UUID("a3749477-f823-4124-aa4a-fc9ad5e79cd6")

        book = await repository.add_book_for_author(author_id, Book(id=book_id, title="Misery",
                                                                    author_id=uuid4()))

        assert book.id == book_id
        assert book.author_id == author_id
        assert books_collection.insert_one.await_args.args[0]["_id"] == str(book_id)

    async def test_update_and_delete_book(self, repository, books_collection, sample_book):
        """Test book replacement and deletion."""
        await repository.update_book_for_author(sample_book)
        await repository.delete_book(sample_book)

        books_collection.replace_one.assert_awaited_once_with(
            {"_id": str(sample_book.id)}, sample_book.to_document()
        )
        books_collection.delete_one.assert_awaited_once_with({"_id": str(sample_book.id)})


class TestLibraryDatabase:
    """Test cases for seeding and health checks."""

    @pytest.fixture
    def database(self, authors_collection, books_collection):
        database = LibraryDatabase("mongodb://localhost:27017", "library_test")
        database.authors = authors_collection
        database.books = books_collection
        database.database = AsyncMock()
        return database

    async def test_ensure_seed_data(self, database, authors_collection, books_collection):
        """Test that seeding replaces both collections."""
        counts = await database.ensure_seed_data()

        assert counts == {"authors": 6, "books": 11}
        authors_collection.delete_many.assert_awaited_once_with({})
        books_collection.delete_many.assert_awaited_once_with({})
        assert len(authors_collection.insert_many.await_args.args[0]) == 6
        assert len(books_collection.insert_many.await_args.args[0]) == 11

    def test_seed_books_belong_to_their_authors(self):
        """Test seed data consistency."""
        for author in SEED_AUTHORS:
            assert author.books
            assert all(book.author_id == author.id for book in author.books)

    async def test_health_check(self, database, authors_collection, books_collection):
        """Test a healthy database."""
        authors_collection.count_documents.return_value = 6
        books_collection.count_documents.return_value = 11

        health = await database.health_check()

        assert health == {"status": "healthy", "authors_count": 6, "books_count": 11}

    async def test_health_check_failure(self, database):
        """Test an unreachable database."""
        database.database.command.side_effect = Exception("connection refused")

        health = await database.health_check()

        assert health["status"] == "unhealthy"
        assert "connection refused" in health["error"]


class TestEntities:
    """Test cases for document conversion."""

    def test_author_document_uses_string_ids(self, sample_author):
        """Test that authors are stored without their books."""
        document = sample_author.to_document()

        assert document["_id"] == str(sample_author.id)
        assert "books" not in document

    def test_naive_dates_are_read_as_utc(self, sample_author):
        """Test date handling for documents read without tz_aware."""
        document = sample_author.to_document()
        document["date_of_birth"] = datetime(1947, 9, 21)

        author = Author.from_document(document)

        assert author.date_of_birth == datetime(1947, 9, 21, tzinfo=timezone.utc)
