"""
Repository for authors and their books.
"""

import re
from typing import Any, Dict, List, Optional, Sequence
from uuid import UUID, uuid4

import structlog
from motor.motor_asyncio import AsyncIOMotorCollection

from .models import Author, Book
from .pagination import MongoQuerySource, PagedList
from .property_mapping import PropertyMappingService
from .resource_parameters import AuthorsResourceParameters

logger = structlog.get_logger(__name__)


class LibraryRepository:
    """Data access for authors and books."""

    def __init__(
        self,
        authors_collection: AsyncIOMotorCollection,
        books_collection: AsyncIOMotorCollection,
        property_mapping_service: PropertyMappingService,
    ):
        self.authors_collection = authors_collection
        self.books_collection = books_collection
        self.property_mapping_service = property_mapping_service

    @staticmethod
    def build_authors_filter(parameters: AuthorsResourceParameters) -> Dict[str, Any]:
        """
        Build the filter document for an author listing.

        Genre matches the whole value, search matches substrings of genre,
        first name or last name. Both ignore case and surrounding whitespace.
        """
        filter_query: Dict[str, Any] = {}

        if parameters.genre and parameters.genre.strip():
            genre = re.escape(parameters.genre.strip())
            filter_query["genre"] = {"$regex": f"^{genre}$", "$options": "i"}

        if parameters.search_query and parameters.search_query.strip():
            search = re.escape(parameters.search_query.strip())
            filter_query["$or"] = [
                {field: {"$regex": search, "$options": "i"}}
                for field in ("genre", "first_name", "last_name")
            ]

        return filter_query

    async def get_authors(self, parameters: AuthorsResourceParameters) -> PagedList[Author]:
        """
        Get authors with filtering, searching, sorting and paging.

        Raises:
            ValueError: If order_by names an unmapped property or the paging
                values are out of range
        """
        mapping = self.property_mapping_service.get_property_mapping(Author)
        source = MongoQuerySource(
            self.authors_collection,
            self.build_authors_filter(parameters),
            mapping.sort_specification(parameters.order_by),
            Author.from_document,
        )
        return await PagedList.create(source, parameters.page_number, parameters.page_size)

    async def get_author(self, author_id: UUID) -> Optional[Author]:
        document = await self.authors_collection.find_one({"_id": str(author_id)})
        return Author.from_document(document) if document else None

    async def get_authors_by_ids(self, author_ids: Sequence[UUID]) -> List[Author]:
        """Get the authors with the given ids, ordered by name."""
        ids = [str(author_id) for author_id in author_ids]
        cursor = self.authors_collection.find({"_id": {"$in": ids}}).sort(
            [("first_name", 1), ("last_name", 1)]
        )
        documents = await cursor.to_list(length=len(ids))
        return [Author.from_document(document) for document in documents]

    async def add_author(self, author: Author) -> Author:
        """
        Insert an author and the books created with it.

        A new id is assigned to the author and to each of its books.
        """
        author.id = uuid4()
        for book in author.books:
            book.id = uuid4()
            book.author_id = author.id

        await self.authors_collection.insert_one(author.to_document())
        if author.books:
            await self.books_collection.insert_many([book.to_document() for book in author.books])

        logger.debug("Author added", author_id=str(author.id), books=len(author.books))
        return author

    async def delete_author(self, author: Author) -> None:
        """Delete an author together with their books."""
        await self.books_collection.delete_many({"author_id": str(author.id)})
        await self.authors_collection.delete_one({"_id": str(author.id)})

    async def update_author(self, author: Author) -> None:
        await self.authors_collection.replace_one({"_id": str(author.id)}, author.to_document())

    async def author_exists(self, author_id: UUID) -> bool:
        return await self.authors_collection.count_documents({"_id": str(author_id)}, limit=1) > 0

    async def get_books_for_author(self, author_id: UUID) -> List[Book]:
        cursor = self.books_collection.find({"author_id": str(author_id)}).sort("title", 1)
        documents = await cursor.to_list(length=None)
        return [Book.from_document(document) for document in documents]

    async def get_book_for_author(self, author_id: UUID, book_id: UUID) -> Optional[Book]:
        document = await self.books_collection.find_one(
            {"_id": str(book_id), "author_id": str(author_id)}
        )
        return Book.from_document(document) if document else None

    async def add_book_for_author(self, author_id: UUID, book: Book) -> Book:
        """Insert a book for an author. Callers upserting pass a book with its id already set."""
        book.author_id = author_id
        await self.books_collection.insert_one(book.to_document())
        return book

    async def update_book_for_author(self, book: Book) -> None:
        await self.books_collection.replace_one({"_id": str(book.id)}, book.to_document())

    async def delete_book(self, book: Book) -> None:
        await self.books_collection.delete_one({"_id": str(book.id)})
