"""
API models and schemas for the FastAPI application.

Representations are serialized with camelCase property names.
"""

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model reading and writing camelCase keys."""
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LinkDto(CamelModel):
    """Hypermedia link attached to a resource."""
    href: str = Field(..., description="Target URI")
    rel: str = Field(..., description="Relation of the target to the resource")
    method: str = Field(..., description="HTTP method to use")


class AuthorDto(CamelModel):
    """Author representation returned by the API."""
    id: UUID = Field(..., description="Unique author identifier")
    name: str = Field(..., description="Full name")
    age: int = Field(..., description="Current age, or age at death")
    genre: str = Field(..., description="Main genre")


class BookDto(CamelModel):
    """Book representation returned by the API."""
    id: UUID = Field(..., description="Unique book identifier")
    title: str = Field(..., description="Book title")
    description: Optional[str] = Field(None, description="Book description")
    author_id: UUID = Field(..., description="Identifier of the author")


class BookForManipulation(CamelModel):
    """Fields shared by book creation and update payloads."""
    title: str = Field(..., max_length=100, description="Book title")
    description: Optional[str] = Field(None, max_length=500, description="Book description")

    @model_validator(mode="after")
    def validate_description_differs_from_title(self):
        """The description must not simply repeat the title."""
        if self.description is not None and self.description == self.title:
            raise ValueError("The provided description should be different from the title.")
        return self


class BookForCreation(BookForManipulation):
    """Payload for creating a book."""


class BookForUpdate(BookForManipulation):
    """Payload for updating a book; the description is required."""
    description: str = Field(..., max_length=500, description="Book description")


class AuthorForCreation(CamelModel):
    """Payload for creating an author, optionally with books."""
    first_name: str = Field(..., max_length=50, description="First name")
    last_name: str = Field(..., max_length=50, description="Last name")
    date_of_birth: datetime = Field(..., description="Date of birth")
    genre: str = Field(..., max_length=50, description="Main genre")
    books: List[BookForCreation] = Field(default_factory=list, description="Books to create")


class AuthorForCreationWithDateOfDeath(AuthorForCreation):
    """Payload for creating an author who has passed away."""
    date_of_death: Optional[datetime] = Field(None, description="Date of death")


class ErrorResponse(CamelModel):
    """Error response model."""
    error: str = Field(..., description="Error message")
    detail: Optional[str] = Field(None, description="Additional error details")
    status_code: int = Field(..., description="HTTP status code")


class HealthResponse(CamelModel):
    """Health check response model."""
    status: str = Field(..., description="Service status")
    timestamp: datetime = Field(..., description="Current timestamp")
    version: str = Field(..., description="API version")
    database_status: str = Field(..., description="Database connection status")
