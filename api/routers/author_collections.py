"""
Endpoints creating and reading several authors at once.
"""

from typing import List
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from pydantic import TypeAdapter

from library.repository import LibraryRepository

from api.dependencies import get_mapper, get_repository
from api.links import url_for
from api.mapping import ResourceMapper
from api.models import AuthorForCreation
from api.negotiation import output_media_type, render
from api.payloads import read_payload, validate_payload

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/authorcollections", tags=["Author collections"])

author_collection_adapter = TypeAdapter(List[AuthorForCreation])


def parse_ids(ids: str) -> List[UUID]:
    """
    Parse a comma-separated list of author ids.

    Raises:
        ValueError: If the list is empty or an entry is not a UUID
    """
    values = [value.strip() for value in ids.split(",") if value.strip()]
    if not values:
        raise ValueError("At least one author id is required")
    return [UUID(value) for value in values]


@router.post("", name="create_author_collection", status_code=status.HTTP_201_CREATED)
async def create_author_collection(
    request: Request,
    media_type: str = Depends(output_media_type),
    repository: LibraryRepository = Depends(get_repository),
    mapper: ResourceMapper = Depends(get_mapper),
):
    """Create several authors in one request."""
    data = await read_payload(request)
    if not isinstance(data, list) or not data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A non-empty list of authors is required"
        )
    payloads = validate_payload(author_collection_adapter, data)

    authors = [await repository.add_author(mapper.author_from_creation(payload)) for payload in payloads]
    logger.info("Author collection created", count=len(authors))

    ids = ",".join(str(author.id) for author in authors)
    return render(
        [mapper.author_to_dto(author).model_dump(mode="json", by_alias=True) for author in authors],
        media_type,
        status_code=status.HTTP_201_CREATED,
        headers={"Location": url_for(request, "get_author_collection", ids=ids)},
        root="authors",
    )


@router.get("/({ids})", name="get_author_collection")
async def get_author_collection(
    ids: str,
    media_type: str = Depends(output_media_type),
    repository: LibraryRepository = Depends(get_repository),
    mapper: ResourceMapper = Depends(get_mapper),
):
    """Get the authors whose ids are listed, e.g. `/api/authorcollections/(id1,id2)`."""
    try:
        author_ids = parse_ids(ids)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    authors = await repository.get_authors_by_ids(author_ids)
    if len(authors) != len(author_ids):
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="One or more authors were not found"
        )

    return render(
        [mapper.author_to_dto(author).model_dump(mode="json", by_alias=True) for author in authors],
        media_type,
        root="authors",
    )
