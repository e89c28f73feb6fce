"""
Endpoints for the books of an author.
"""

from uuid import UUID

import jsonpatch
import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response
from jsonpointer import JsonPointerException

from library.models import Book
from library.repository import LibraryRepository

from api.dependencies import get_mapper, get_repository
from api.links import create_links_for_book, create_links_for_books, url_for
from api.mapping import ResourceMapper
from api.models import BookForCreation, BookForUpdate
from api.negotiation import output_media_type, render
from api.payloads import read_payload, validate_payload

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/authors/{author_id}/books", tags=["Books"])


async def _ensure_author_exists(repository: LibraryRepository, author_id: UUID) -> None:
    if not await repository.author_exists(author_id):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Author with ID '{author_id}' not found"
        )


def _book_with_links(request: Request, mapper: ResourceMapper, book: Book) -> dict:
    representation = mapper.book_to_dto(book).model_dump(mode="json", by_alias=True)
    representation["links"] = create_links_for_book(request, book.author_id, book.id)
    return representation


def _created(request: Request, mapper: ResourceMapper, book: Book, media_type: str) -> Response:
    return render(
        _book_with_links(request, mapper, book),
        media_type,
        status_code=status.HTTP_201_CREATED,
        headers={"Location": url_for(request, "get_book_for_author", author_id=book.author_id, book_id=book.id)},
        root="book",
    )


@router.get("", name="get_books_for_author")
async def get_books_for_author(
    request: Request,
    author_id: UUID,
    media_type: str = Depends(output_media_type),
    repository: LibraryRepository = Depends(get_repository),
    mapper: ResourceMapper = Depends(get_mapper),
):
    """Get all books of an author."""
    await _ensure_author_exists(repository, author_id)

    books = await repository.get_books_for_author(author_id)
    return render(
        {
            "value": [_book_with_links(request, mapper, book) for book in books],
            "links": create_links_for_books(request, author_id),
        },
        media_type,
        root="books",
    )


@router.get("/{book_id}", name="get_book_for_author")
async def get_book_for_author(
    request: Request,
    author_id: UUID,
    book_id: UUID,
    media_type: str = Depends(output_media_type),
    repository: LibraryRepository = Depends(get_repository),
    mapper: ResourceMapper = Depends(get_mapper),
):
    """Get a single book of an author."""
    await _ensure_author_exists(repository, author_id)

    book = await repository.get_book_for_author(author_id, book_id)
    if book is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Book with ID '{book_id}' not found"
        )
    return render(_book_with_links(request, mapper, book), media_type, root="book")


@router.post("", name="create_book_for_author", status_code=status.HTTP_201_CREATED)
async def create_book_for_author(
    request: Request,
    author_id: UUID,
    media_type: str = Depends(output_media_type),
    repository: LibraryRepository = Depends(get_repository),
    mapper: ResourceMapper = Depends(get_mapper),
):
    """Create a book for an author."""
    data = await read_payload(request)
    payload = validate_payload(BookForCreation, data)

    await _ensure_author_exists(repository, author_id)

    book = await repository.add_book_for_author(author_id, mapper.book_from_creation(payload, author_id))
    logger.info("Book created", author_id=str(author_id), book_id=str(book.id))
    return _created(request, mapper, book, media_type)


@router.delete("/{book_id}", name="delete_book_for_author", status_code=status.HTTP_204_NO_CONTENT)
async def delete_book_for_author(
    author_id: UUID,
    book_id: UUID,
    repository: LibraryRepository = Depends(get_repository),
):
    """Delete a book of an author."""
    await _ensure_author_exists(repository, author_id)

    book = await repository.get_book_for_author(author_id, book_id)
    if book is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Book with ID '{book_id}' not found"
        )

    await repository.delete_book(book)
    logger.info("Book deleted", author_id=str(author_id), book_id=str(book_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.put("/{book_id}", name="update_book_for_author")
async def update_book_for_author(
    request: Request,
    author_id: UUID,
    book_id: UUID,
    media_type: str = Depends(output_media_type),
    repository: LibraryRepository = Depends(get_repository),
    mapper: ResourceMapper = Depends(get_mapper),
):
    """
    Update a book, or create it with the given ID when it does not exist.
    """
    data = await read_payload(request)
    payload = validate_payload(BookForUpdate, data)

    await _ensure_author_exists(repository, author_id)

    book = await repository.get_book_for_author(author_id, book_id)
    if book is None:
        book = await repository.add_book_for_author(
            author_id, mapper.book_from_creation(payload, author_id, book_id=book_id)
        )
        logger.info("Book upserted", author_id=str(author_id), book_id=str(book_id))
        return _created(request, mapper, book, media_type)

    await repository.update_book_for_author(mapper.apply_book_update(payload, book))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.patch("/{book_id}", name="partially_update_book_for_author")
async def partially_update_book_for_author(
    request: Request,
    author_id: UUID,
    book_id: UUID,
    media_type: str = Depends(output_media_type),
    repository: LibraryRepository = Depends(get_repository),
    mapper: ResourceMapper = Depends(get_mapper),
):
    """
    Apply a JSON Patch document to a book, creating the book when it does
    not exist.
    """
    patch_document = await read_payload(request)
    if not isinstance(patch_document, list):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A JSON Patch document must be a list of operations"
        )

    await _ensure_author_exists(repository, author_id)

    book = await repository.get_book_for_author(author_id, book_id)
    target = mapper.book_to_update(book) if book else {"title": None, "description": None}

    try:
        patched = jsonpatch.JsonPatch(patch_document).apply(target)
    except (jsonpatch.JsonPatchException, JsonPointerException, TypeError) as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=f"Invalid patch: {e}")

    payload = validate_payload(BookForUpdate, patched)

    if book is None:
        book = await repository.add_book_for_author(
            author_id, mapper.book_from_creation(payload, author_id, book_id=book_id)
        )
        logger.info("Book upserted", author_id=str(author_id), book_id=str(book_id))
        return _created(request, mapper, book, media_type)

    await repository.update_book_for_author(mapper.apply_book_update(payload, book))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
