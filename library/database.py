"""
MongoDB database utilities for async operations.
Handles connection, indexing, health checks and demo seed data.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID

import structlog
from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorCollection, AsyncIOMotorDatabase
from pymongo.errors import ConnectionFailure

from .models import Author, Book

logger = structlog.get_logger(__name__)


def _utc(year: int, month: int, day: int) -> datetime:
    return datetime(year, month, day, tzinfo=timezone.utc)


def _author(author_id: str, first_name: str, last_name: str, born: datetime,
            genre: str, books: List[tuple]) -> Author:
    author_uuid = UUID(author_id)
    return Author(
        id=author_uuid,
        first_name=first_name,
        last_name=last_name,
        date_of_birth=born,
        genre=genre,
        books=[
            Book(id=UUID(book_id), title=title, description=description, author_id=author_uuid)
            for book_id, title, description in books
        ],
    )


SEED_AUTHORS: List[Author] = [
    _author("25320c5e-f58a-4b1f-b63a-8ee07a840bdf", "Stephen", "King", _utc(1947, 9, 21), "Horror", [
        ("c7ba6add-09c4-45f8-8dd0-eaca221e5d93", "The Shining",
         "The Shining is a horror novel by American author Stephen King. Published in 1977, "
         "it is King's third published novel and first hardback bestseller: the success of "
         "the book firmly established King as a preeminent author in the horror genre."),
        ("a3749477-f823-4124-aa4a-fc9ad5e79cd6", "Misery",
         "Misery is a 1987 psychological horror novel by Stephen King. This novel was nominated "
         "for the World Fantasy Award for Best Novel in 1988, and was later made into a "
         "Hollywood film and an off-Broadway play of the same name."),
        ("70a1f9b9-0a37-4c1a-99b1-c7709fc64167", "It",
         "It is a 1986 horror novel by American author Stephen King. The story follows the "
         "exploits of seven children as they are terrorized by the eponymous being, which "
         "exploits the fears and phobias of its victims in order to disguise itself while "
         "hunting its prey."),
        ("60188a2b-2784-4fc4-8df8-8919ff838b0b", "The Stand",
         "The Stand is a post-apocalyptic horror/fantasy novel by American author Stephen King. "
         "It expands upon the scenario of his earlier short story \"Night Surf\" and outlines "
         "the total breakdown of society after the accidental release of a strain of influenza "
         "that had been modified for biological warfare causes an apocalyptic pandemic which "
         "kills off the majority of the world's human population."),
    ]),
    _author("76053df4-6687-4353-8937-b45556748abe", "George", "RR Martin", _utc(1948, 9, 20), "Fantasy", [
        ("447eb762-95e9-4c31-95e1-b20053fbe215", "A Game of Thrones",
         "A Game of Thrones is the first novel in A Song of Ice and Fire, a series of fantasy "
         "novels by American author George R. R. Martin. It was first published on August 1, 1996."),
        ("bc4c35c3-3857-4250-9449-155fcf5109ec", "The Winds of Winter",
         "Forthcoming 6th novel in A Song of Ice and Fire."),
        ("09af5a52-9421-44e8-a2bb-a6b9ccbc8239", "A Dance with Dragons",
         "A Dance with Dragons is the fifth of seven planned novels in the epic fantasy series "
         "A Song of Ice and Fire by American author George R. R. Martin."),
    ]),
    _author("412c3012-d891-4f5e-9613-ff7aa63e6bb3", "Neil", "Gaiman", _utc(1960, 11, 10), "Fantasy", [
        ("9edf91ee-ab77-4521-a402-5f188bc0c577", "American Gods",
         "American Gods is a Hugo and Nebula Award-winning novel by English author Neil Gaiman. "
         "The novel is a blend of Americana, fantasy, and various strands of ancient and "
         "modern mythology, all centering on the mysterious and taciturn Shadow."),
    ]),
    _author("578359b7-1967-41d6-8b87-64ab7605587e", "Tom", "Lanoye", _utc(1958, 8, 27), "Various", [
        ("01457142-358f-495f-aafa-fb23de3d67e9", "Speechless",
         "Good-natured and often humorous, Speechless is at times a 'song of curses', as Lanoye "
         "describes the conflicts with his beloved diva of a mother and her brave struggle "
         "with decline and death."),
    ]),
    _author("f74d6899-9ed2-4137-9876-66b070553f8f", "Douglas", "Adams", _utc(1952, 3, 11), "Science fiction", [
        ("e57b605f-8b3c-4089-b672-6ce9e6d6c23f", "The Hitchhiker's Guide to the Galaxy",
         "The Hitchhiker's Guide to the Galaxy is the first of six books in the Hitchhiker's "
         "Guide to the Galaxy comedy science fiction \"trilogy\" by Douglas Adams."),
    ]),
    _author("a1da1d8e-1988-4634-b538-a01709477b77", "Jens", "Lapidus", _utc(1974, 5, 24), "Thriller", [
        ("1325360c-8253-473a-a20f-55c269c20407", "Easy Money",
         "Easy Money or Snabba cash is a novel from 2006 by Jens Lapidus. It has been a success "
         "in term of sales, and the paperback was the fourth best seller of Swedish novels in 2007."),
    ]),
]


class LibraryDatabase:
    """
    Async MongoDB manager for the library collections.
    Handles connection, indexing and seeding.
    """

    def __init__(self, connection_url: str, database_name: str,
                 authors_collection: str = "authors", books_collection: str = "books"):
        """
        Initialize the database manager.

        Args:
            connection_url: MongoDB connection URL
            database_name: Name of the database
            authors_collection: Name of the authors collection
            books_collection: Name of the books collection
        """
        self.connection_url = connection_url
        self.database_name = database_name
        self.authors_collection_name = authors_collection
        self.books_collection_name = books_collection
        self.client: Optional[AsyncIOMotorClient] = None
        self.database: Optional[AsyncIOMotorDatabase] = None
        self.authors: Optional[AsyncIOMotorCollection] = None
        self.books: Optional[AsyncIOMotorCollection] = None

    async def connect(self) -> None:
        """Establish connection to MongoDB and ensure indexes."""
        try:
            self.client = AsyncIOMotorClient(self.connection_url, tz_aware=True)
            self.database = self.client[self.database_name]
            self.authors = self.database[self.authors_collection_name]
            self.books = self.database[self.books_collection_name]

            # Test connection
            await self.client.admin.command('ping')
            logger.info("Successfully connected to MongoDB", database=self.database_name)

            await self._create_indexes()

        except ConnectionFailure as e:
            logger.error("Failed to connect to MongoDB", error=str(e))
            raise

    async def disconnect(self) -> None:
        """Close MongoDB connection."""
        if self.client:
            self.client.close()
            logger.info("Disconnected from MongoDB")

    async def _create_indexes(self) -> None:
        """Create indexes for the filter and lookup patterns used by the API."""
        try:
            await self.authors.create_index("genre")
            await self.authors.create_index([("first_name", 1), ("last_name", 1)])
            await self.authors.create_index("date_of_birth")
            await self.books.create_index("author_id")

            logger.info("Successfully created MongoDB indexes")

        except Exception as e:
            logger.error("Failed to create indexes", error=str(e))
            raise

    async def ensure_seed_data(self, authors: Optional[List[Author]] = None) -> Dict[str, int]:
        """
        Replace the contents of both collections with the demo data.

        Returns:
            Number of authors and books inserted
        """
        authors = SEED_AUTHORS if authors is None else authors

        await self.books.delete_many({})
        await self.authors.delete_many({})

        author_documents = [author.to_document() for author in authors]
        book_documents = [book.to_document() for author in authors for book in author.books]

        if author_documents:
            await self.authors.insert_many(author_documents)
        if book_documents:
            await self.books.insert_many(book_documents)

        counts = {"authors": len(author_documents), "books": len(book_documents)}
        logger.info("Seeded library data", **counts)
        return counts

    async def health_check(self) -> Dict[str, Any]:
        """
        Perform database health check.

        Returns:
            Dictionary with health status
        """
        try:
            await self.database.command("ping")

            authors_count = await self.authors.count_documents({})
            books_count = await self.books.count_documents({})

            return {
                "status": "healthy",
                "authors_count": authors_count,
                "books_count": books_count
            }
        except Exception as e:
            logger.error("Database health check failed", error=str(e))
            return {
                "status": "unhealthy",
                "error": str(e)
            }
