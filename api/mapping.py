"""
Conversion between library entities and API representations.

The mapper is built once at startup, kept on the application state and
handed to endpoints through a dependency.
"""

from datetime import date, datetime
from typing import Callable, Optional, Union
from uuid import UUID, uuid4

from library.models import Author, Book

from api.models import (
    AuthorDto, AuthorForCreation, AuthorForCreationWithDateOfDeath,
    BookDto, BookForManipulation, BookForUpdate
)


def _as_date(value: Union[date, datetime]) -> date:
    return value.date() if isinstance(value, datetime) else value


def get_current_age(date_of_birth: Union[date, datetime],
                    date_of_death: Optional[Union[date, datetime]] = None,
                    today: Optional[date] = None) -> int:
    """
    Age in whole years at date_of_death, or at today when still alive.
    """
    born = _as_date(date_of_birth)
    until = _as_date(date_of_death) if date_of_death else (today or date.today())

    age = until.year - born.year
    if (until.month, until.day) < (born.month, born.day):
        age -= 1
    return age


class ResourceMapper:
    """Maps entities to DTOs and creation/update payloads to entities."""

    def __init__(self, clock: Callable[[], date] = date.today):
        self.clock = clock

    def author_to_dto(self, author: Author) -> AuthorDto:
        return AuthorDto(
            id=author.id,
            name=f"{author.first_name} {author.last_name}",
            age=get_current_age(author.date_of_birth, author.date_of_death, self.clock()),
            genre=author.genre,
        )

    def book_to_dto(self, book: Book) -> BookDto:
        return BookDto(
            id=book.id,
            title=book.title,
            description=book.description,
            author_id=book.author_id,
        )

    def author_from_creation(self, payload: AuthorForCreation) -> Author:
        author_id = uuid4()
        date_of_death = None
        if isinstance(payload, AuthorForCreationWithDateOfDeath):
            date_of_death = payload.date_of_death

        return Author(
            id=author_id,
            first_name=payload.first_name,
            last_name=payload.last_name,
            date_of_birth=payload.date_of_birth,
            date_of_death=date_of_death,
            genre=payload.genre,
            books=[self.book_from_creation(book, author_id) for book in payload.books],
        )

    def book_from_creation(self, payload: BookForManipulation, author_id: UUID,
                           book_id: Optional[UUID] = None) -> Book:
        return Book(
            id=book_id or uuid4(),
            title=payload.title,
            description=payload.description,
            author_id=author_id,
        )

    def apply_book_update(self, payload: BookForUpdate, book: Book) -> Book:
        """Copy the updatable fields onto an existing book."""
        book.title = payload.title
        book.description = payload.description
        return book

    def book_to_update(self, book: Book) -> dict:
        """Representation a JSON Patch document is applied to."""
        return {"title": book.title, "description": book.description}
