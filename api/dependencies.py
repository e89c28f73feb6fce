"""
FastAPI dependencies: services held on the application state and query
parameter binding.
"""

from typing import Any, Dict

from fastapi import HTTPException, Request, status
from pydantic import ValidationError

from library.property_mapping import PropertyMappingService
from library.repository import LibraryRepository
from library.resource_parameters import AuthorsResourceParameters

from api.mapping import ResourceMapper

# Query-string keys, lower-cased with underscores removed, to parameter fields
AUTHORS_PARAMETER_NAMES = {
    "pagenumber": "page_number",
    "pagesize": "page_size",
    "genre": "genre",
    "searchquery": "search_query",
    "orderby": "order_by",
    "fields": "fields",
}


def get_repository(request: Request) -> LibraryRepository:
    repository = getattr(request.app.state, "repository", None)
    if repository is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Database service not available"
        )
    return repository


def get_mapper(request: Request) -> ResourceMapper:
    return request.app.state.mapper


def get_property_mapping_service(request: Request) -> PropertyMappingService:
    return request.app.state.property_mapping_service


def get_authors_resource_parameters(request: Request) -> AuthorsResourceParameters:
    """
    Bind author listing parameters from the query string.

    Keys match regardless of case, so pageNumber, PageNumber and page_number
    all bind to the same field.
    """
    values: Dict[str, Any] = {}
    for key, value in request.query_params.items():
        field = AUTHORS_PARAMETER_NAMES.get(key.replace("_", "").lower())
        if field is not None:
            values[field] = value

    try:
        return AuthorsResourceParameters(**values)
    except ValidationError as e:
        fields = ", ".join(str(error["loc"][0]) for error in e.errors())
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Invalid query parameters: {fields}"
        )
