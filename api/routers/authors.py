"""
Author endpoints.
"""

import json
from typing import Optional
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import Response

from library.models import Author
from library.pagination import PagedList
from library.property_mapping import PropertyMappingService
from library.repository import LibraryRepository
from library.resource_parameters import AuthorsResourceParameters

from api.constraints import ActionSelector, NoMatchingActionError, RequestHeaderMatchesMediaType
from api.dependencies import (
    get_authors_resource_parameters, get_mapper, get_property_mapping_service, get_repository
)
from api.links import (
    ResourceUriType, create_authors_resource_uri, create_links_for_author, create_links_for_authors, url_for
)
from api.mapping import ResourceMapper
from api.models import AuthorDto, AuthorForCreation, AuthorForCreationWithDateOfDeath
from api.negotiation import (
    AUTHOR_FULL_JSON, AUTHOR_WITH_DATE_OF_DEATH_JSON, AUTHOR_WITH_DATE_OF_DEATH_XML,
    HATEOAS_JSON, JSON, output_media_type, render
)
from api.payloads import read_payload, validate_payload
from api.shaping import shape_collection, shape_data, type_has_properties

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/authors", tags=["Authors"])

get_authors_actions = ActionSelector("get_authors")
create_author_actions = ActionSelector("create_author")


@get_authors_actions.register(RequestHeaderMatchesMediaType("Accept", [HATEOAS_JSON]))
async def get_authors_with_links(request: Request, parameters: AuthorsResourceParameters,
                                 authors: PagedList[Author], mapper: ResourceMapper,
                                 media_type: str) -> Response:
    """Shaped authors with their links, paging links in the body."""
    pagination_metadata = {
        "totalCount": authors.total_count,
        "pageSize": authors.page_size,
        "currentPage": authors.current_page,
        "totalPages": authors.total_pages,
    }

    value = []
    for author in authors:
        shaped = shape_data(mapper.author_to_dto(author), parameters.fields)
        shaped["links"] = create_links_for_author(request, author.id, parameters.fields)
        value.append(shaped)

    links = create_links_for_authors(request, parameters, authors.has_next, authors.has_previous)
    return render(
        {"value": value, "links": links},
        media_type,
        headers={"X-Pagination": json.dumps(pagination_metadata)},
        root="authors",
    )


@get_authors_actions.register()
async def get_authors_shaped(request: Request, parameters: AuthorsResourceParameters,
                             authors: PagedList[Author], mapper: ResourceMapper,
                             media_type: str) -> Response:
    """Shaped authors, paging links in the X-Pagination header."""
    previous_page_link = None
    if authors.has_previous:
        previous_page_link = create_authors_resource_uri(request, parameters, ResourceUriType.PREVIOUS_PAGE)
    next_page_link = None
    if authors.has_next:
        next_page_link = create_authors_resource_uri(request, parameters, ResourceUriType.NEXT_PAGE)

    pagination_metadata = {
        "totalCount": authors.total_count,
        "pageSize": authors.page_size,
        "currentPage": authors.current_page,
        "totalPages": authors.total_pages,
        "previousPageLink": previous_page_link,
        "nextPageLink": next_page_link,
    }

    dtos = [mapper.author_to_dto(author) for author in authors]
    return render(
        shape_collection(dtos, parameters.fields),
        media_type,
        headers={"X-Pagination": json.dumps(pagination_metadata)},
        root="authors",
    )


@router.api_route("", methods=["GET", "HEAD"], name="get_authors")
async def get_authors(
    request: Request,
    parameters: AuthorsResourceParameters = Depends(get_authors_resource_parameters),
    media_type: str = Depends(output_media_type),
    repository: LibraryRepository = Depends(get_repository),
    mapper: ResourceMapper = Depends(get_mapper),
    property_mapping_service: PropertyMappingService = Depends(get_property_mapping_service),
):
    """
    Get authors with filtering, searching, sorting, paging and data shaping.

    - **pageNumber**: Page number (starts from 1)
    - **pageSize**: Items per page (capped at 20)
    - **genre**: Filter by genre
    - **searchQuery**: Search genre, first name and last name
    - **orderBy**: Sort clauses, e.g. `name desc, age`
    - **fields**: Fields to return, e.g. `id,name`
    """
    if not property_mapping_service.valid_mapping_exists_for(Author, parameters.order_by):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Cannot sort by '{parameters.order_by}'"
        )

    if not type_has_properties(AuthorDto, parameters.fields):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown fields '{parameters.fields}'"
        )

    action = get_authors_actions.select(request.headers)

    try:
        authors = await repository.get_authors(parameters)
    except ValueError as e:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(e))

    return await action(request, parameters, authors, mapper, media_type)


@router.get("/{author_id}", name="get_author")
async def get_author(
    request: Request,
    author_id: UUID,
    fields: Optional[str] = None,
    media_type: str = Depends(output_media_type),
    repository: LibraryRepository = Depends(get_repository),
    mapper: ResourceMapper = Depends(get_mapper),
):
    """Get a single author, optionally shaped to the requested fields."""
    if not type_has_properties(AuthorDto, fields):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unknown fields '{fields}'"
        )

    author = await repository.get_author(author_id)
    if author is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Author with ID '{author_id}' not found"
        )

    shaped = shape_data(mapper.author_to_dto(author), fields)
    shaped["links"] = create_links_for_author(request, author.id, fields)
    return render(shaped, media_type, root="author")


async def _create_author(request: Request, payload: AuthorForCreation, repository: LibraryRepository,
                         mapper: ResourceMapper, media_type: str) -> Response:
    author = await repository.add_author(mapper.author_from_creation(payload))
    logger.info("Author created", author_id=str(author.id), books=len(author.books))

    shaped = shape_data(mapper.author_to_dto(author))
    shaped["links"] = create_links_for_author(request, author.id)
    return render(
        shaped,
        media_type,
        status_code=status.HTTP_201_CREATED,
        headers={"Location": url_for(request, "get_author", author_id=author.id)},
        root="author",
    )


@create_author_actions.register(RequestHeaderMatchesMediaType("Content-Type", [JSON, AUTHOR_FULL_JSON]))
async def create_author_from_payload(request: Request, data, repository: LibraryRepository,
                                     mapper: ResourceMapper, media_type: str) -> Response:
    payload = validate_payload(AuthorForCreation, data)
    return await _create_author(request, payload, repository, mapper, media_type)


@create_author_actions.register(RequestHeaderMatchesMediaType(
    "Content-Type", [AUTHOR_WITH_DATE_OF_DEATH_JSON, AUTHOR_WITH_DATE_OF_DEATH_XML]
))
async def create_author_with_date_of_death(request: Request, data, repository: LibraryRepository,
                                           mapper: ResourceMapper, media_type: str) -> Response:
    payload = validate_payload(AuthorForCreationWithDateOfDeath, data)
    return await _create_author(request, payload, repository, mapper, media_type)


@router.post("", name="create_author", status_code=status.HTTP_201_CREATED)
async def create_author(
    request: Request,
    media_type: str = Depends(output_media_type),
    repository: LibraryRepository = Depends(get_repository),
    mapper: ResourceMapper = Depends(get_mapper),
):
    """
    Create an author, optionally with books.

    The Content-Type selects the payload: `application/json` or
    `application/vnd.marvin.author.full+json` for living authors,
    `application/vnd.marvin.authorwithdateofdeath.full+json` (or `+xml`)
    for authors with a date of death.
    """
    try:
        action = create_author_actions.select(request.headers)
    except NoMatchingActionError as e:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(e))

    data = await read_payload(request)
    return await action(request, data, repository, mapper, media_type)


@router.post("/{author_id}", name="block_author_creation")
async def block_author_creation(author_id: UUID, repository: LibraryRepository = Depends(get_repository)):
    """Creating an author at a given URI is not supported; 409 if it already exists."""
    if await repository.author_exists(author_id):
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail=f"Author with ID '{author_id}' already exists"
        )
    raise HTTPException(
        status_code=status.HTTP_404_NOT_FOUND,
        detail=f"Author with ID '{author_id}' not found"
    )


@router.delete("/{author_id}", name="delete_author", status_code=status.HTTP_204_NO_CONTENT)
async def delete_author(author_id: UUID, repository: LibraryRepository = Depends(get_repository)):
    """Delete an author and all of their books."""
    author = await repository.get_author(author_id)
    if author is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Author with ID '{author_id}' not found"
        )

    await repository.delete_author(author)
    logger.info("Author deleted", author_id=str(author_id))
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.options("", name="get_authors_options")
async def get_authors_options():
    """Methods supported on the authors collection."""
    return Response(headers={"Allow": "GET,OPTIONS,POST"})
