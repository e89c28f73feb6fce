"""
Pydantic models for the library entities.
Authors own books; both are stored as MongoDB documents keyed by UUID strings.
"""

from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, Field


def _as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """MongoDB hands back naive UTC datetimes."""
    if value is not None and value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


class Book(BaseModel):
    """A book written by an author."""
    id: UUID = Field(default_factory=uuid4, description="Unique book identifier")
    title: str = Field(..., max_length=100, description="Book title")
    description: Optional[str] = Field(None, max_length=500, description="Book description")
    author_id: UUID = Field(..., description="Identifier of the owning author")

    def to_document(self) -> Dict[str, Any]:
        """Convert to a MongoDB document."""
        return {
            "_id": str(self.id),
            "title": self.title,
            "description": self.description,
            "author_id": str(self.author_id),
        }

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Book":
        """Build a book from a MongoDB document."""
        return cls(
            id=UUID(document["_id"]),
            title=document["title"],
            description=document.get("description"),
            author_id=UUID(document["author_id"]),
        )


class Author(BaseModel):
    """
    Author entity.

    `books` is only populated when an author is created together with its
    books; listings load authors without their books.
    """
    id: UUID = Field(default_factory=uuid4, description="Unique author identifier")
    first_name: str = Field(..., max_length=50, description="First name")
    last_name: str = Field(..., max_length=50, description="Last name")
    date_of_birth: datetime = Field(..., description="Date of birth")
    date_of_death: Optional[datetime] = Field(None, description="Date of death")
    genre: str = Field(..., max_length=50, description="Main genre")
    books: List[Book] = Field(default_factory=list, description="Books written by the author")

    def to_document(self) -> Dict[str, Any]:
        """Convert to a MongoDB document (books are stored separately)."""
        return {
            "_id": str(self.id),
            "first_name": self.first_name,
            "last_name": self.last_name,
            "date_of_birth": self.date_of_birth,
            "date_of_death": self.date_of_death,
            "genre": self.genre,
        }

    @classmethod
    def from_document(cls, document: Dict[str, Any]) -> "Author":
        """Build an author from a MongoDB document."""
        return cls(
            id=UUID(document["_id"]),
            first_name=document["first_name"],
            last_name=document["last_name"],
            date_of_birth=_as_utc(document["date_of_birth"]),
            date_of_death=_as_utc(document.get("date_of_death")),
            genre=document["genre"],
        )
