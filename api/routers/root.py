"""
API root: entry-point links for hypermedia clients.
"""

from fastapi import APIRouter, Depends, Request, status
from fastapi.responses import Response

from api.constraints import ActionSelector, RequestHeaderMatchesMediaType
from api.links import link, url_for
from api.negotiation import HATEOAS_JSON, output_media_type, render

router = APIRouter(tags=["Root"])

get_root_actions = ActionSelector("get_root")


@get_root_actions.register(RequestHeaderMatchesMediaType("Accept", [HATEOAS_JSON]))
async def get_root_links(request: Request, media_type: str) -> Response:
    links = [
        link(url_for(request, "get_root"), "self", "GET"),
        link(url_for(request, "get_authors"), "authors", "GET"),
        link(url_for(request, "create_author"), "create_author", "POST"),
    ]
    return render(links, media_type, root="links")


@get_root_actions.register()
async def get_root_empty(request: Request, media_type: str) -> Response:
    """Plain clients get an empty response at the root."""
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("", name="get_root")
async def get_root(request: Request, media_type: str = Depends(output_media_type)):
    """Links to the top-level resources when hypermedia is requested."""
    action = get_root_actions.select(request.headers)
    return await action(request, media_type)
