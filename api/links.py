"""
Hypermedia links for authors, books and paged author listings.
"""

from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from fastapi import Request

from library.resource_parameters import AuthorsResourceParameters


class ResourceUriType(str, Enum):
    """Which page of a listing a link points to."""
    PREVIOUS_PAGE = "previous_page"
    NEXT_PAGE = "next_page"
    CURRENT = "current"


def link(href: str, rel: str, method: str) -> Dict[str, str]:
    return {"href": href, "rel": rel, "method": method}


def url_for(request: Request, name: str, query: Optional[Dict[str, Any]] = None, **path_params) -> str:
    """Absolute URL of a named route, with the non-empty query values appended."""
    url = request.url_for(name, **{key: str(value) for key, value in path_params.items()})
    if query:
        params = {key: value for key, value in query.items() if value is not None}
        if params:
            url = url.include_query_params(**params)
    return str(url)


def create_authors_resource_uri(request: Request, parameters: AuthorsResourceParameters,
                                uri_type: ResourceUriType) -> str:
    page_number = parameters.page_number
    if uri_type == ResourceUriType.PREVIOUS_PAGE:
        page_number -= 1
    elif uri_type == ResourceUriType.NEXT_PAGE:
        page_number += 1

    return url_for(request, "get_authors", query={
        "fields": parameters.fields,
        "orderBy": parameters.order_by,
        "searchQuery": parameters.search_query,
        "genre": parameters.genre,
        "pageNumber": page_number,
        "pageSize": parameters.page_size,
    })


def create_links_for_author(request: Request, author_id: UUID, fields: Optional[str] = None) -> List[Dict[str, str]]:
    return [
        link(url_for(request, "get_author", query={"fields": fields or None}, author_id=author_id),
             "self", "GET"),
        link(url_for(request, "delete_author", author_id=author_id), "delete_author", "DELETE"),
        link(url_for(request, "create_book_for_author", author_id=author_id), "create_book_for_author", "POST"),
        link(url_for(request, "get_books_for_author", author_id=author_id), "books", "GET"),
    ]


def create_links_for_authors(request: Request, parameters: AuthorsResourceParameters,
                             has_next: bool, has_previous: bool) -> List[Dict[str, str]]:
    links = [link(create_authors_resource_uri(request, parameters, ResourceUriType.CURRENT), "self", "GET")]
    if has_next:
        links.append(link(create_authors_resource_uri(request, parameters, ResourceUriType.NEXT_PAGE),
                          "nextPage", "GET"))
    if has_previous:
        links.append(link(create_authors_resource_uri(request, parameters, ResourceUriType.PREVIOUS_PAGE),
                          "previousPage", "GET"))
    return links


def create_links_for_book(request: Request, author_id: UUID, book_id: UUID) -> List[Dict[str, str]]:
    path = {"author_id": author_id, "book_id": book_id}
    return [
        link(url_for(request, "get_book_for_author", **path), "self", "GET"),
        link(url_for(request, "delete_book_for_author", **path), "delete_book", "DELETE"),
        link(url_for(request, "update_book_for_author", **path), "update_book", "PUT"),
        link(url_for(request, "partially_update_book_for_author", **path), "partially_update_book", "PATCH"),
    ]


def create_links_for_books(request: Request, author_id: UUID) -> List[Dict[str, str]]:
    return [link(url_for(request, "get_books_for_author", author_id=author_id), "self", "GET")]
