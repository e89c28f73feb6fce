"""
Content negotiation: choosing the output media type from the Accept header,
rendering JSON or XML, and reading JSON or XML request bodies.
"""

import json
import xml.etree.ElementTree as ElementTree
from typing import Any, Dict, List, Mapping, Optional, Tuple

from fastapi import HTTPException, Request, status
from fastapi.responses import JSONResponse, Response

JSON = "application/json"
XML = "application/xml"
TEXT_XML = "text/xml"
HATEOAS_JSON = "application/vnd.marvin.hateoas+json"
JSON_PATCH = "application/json-patch+json"
AUTHOR_FULL_JSON = "application/vnd.marvin.author.full+json"
AUTHOR_WITH_DATE_OF_DEATH_JSON = "application/vnd.marvin.authorwithdateofdeath.full+json"
AUTHOR_WITH_DATE_OF_DEATH_XML = "application/vnd.marvin.authorwithdateofdeath.full+xml"

OUTPUT_MEDIA_TYPES = (JSON, HATEOAS_JSON, XML, TEXT_XML)


class NotAcceptableError(ValueError):
    """None of the media types in the Accept header can be produced."""


def parse_accept(accept: Optional[str]) -> List[Tuple[str, float]]:
    """
    Split an Accept header into (media type, quality) pairs, best first.

    Entries with equal quality keep their header order.
    """
    entries = []
    if not accept:
        return entries

    for position, part in enumerate(accept.split(",")):
        pieces = [piece.strip() for piece in part.split(";")]
        media_type = pieces[0].lower()
        if not media_type:
            continue
        quality = 1.0
        for parameter in pieces[1:]:
            key, _, value = parameter.partition("=")
            if key.strip().lower() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        if quality > 0:
            entries.append((media_type, quality, position))

    entries.sort(key=lambda entry: (-entry[1], entry[2]))
    return [(media_type, quality) for media_type, quality, _ in entries]


def negotiate(accept: Optional[str]) -> str:
    """
    Pick the output media type for an Accept header.

    Raises:
        NotAcceptableError: If no acceptable media type is supported
    """
    entries = parse_accept(accept)
    if not entries:
        return JSON

    for media_type, _ in entries:
        if media_type in OUTPUT_MEDIA_TYPES:
            return media_type
        if media_type in ("*/*", "application/*"):
            return JSON
        if media_type == "text/*":
            return TEXT_XML
    raise NotAcceptableError(f"None of the requested media types are supported: {accept}")


def output_media_type(request: Request) -> str:
    """Dependency resolving the response media type, 406 when unsupported."""
    try:
        return negotiate(request.headers.get("accept"))
    except NotAcceptableError as e:
        raise HTTPException(status_code=status.HTTP_406_NOT_ACCEPTABLE, detail=str(e))


def _xml_tag(name: str) -> str:
    return name if name and (name[0].isalpha() or name[0] == "_") else f"_{name}"


def _append_xml(parent: ElementTree.Element, value: Any) -> None:
    if isinstance(value, dict):
        for key, item in value.items():
            child = ElementTree.SubElement(parent, _xml_tag(str(key)))
            _append_xml(child, item)
    elif isinstance(value, (list, tuple)):
        for item in value:
            child = ElementTree.SubElement(parent, "item")
            _append_xml(child, item)
    elif value is None:
        parent.set("nil", "true")
    elif isinstance(value, bool):
        parent.text = "true" if value else "false"
    else:
        parent.text = str(value)


def to_xml(content: Any, root: str = "response") -> bytes:
    """Render JSON-compatible content as an XML document."""
    element = ElementTree.Element(_xml_tag(root))
    _append_xml(element, content)
    return ElementTree.tostring(element, encoding="utf-8", xml_declaration=True)


def render(content: Any, media_type: str, status_code: int = status.HTTP_200_OK,
           headers: Optional[Mapping[str, str]] = None, root: str = "response") -> Response:
    """Build a response in the negotiated media type."""
    if media_type in (XML, TEXT_XML):
        return Response(
            content=to_xml(content, root),
            status_code=status_code,
            headers=dict(headers or {}),
            media_type=media_type,
        )
    return JSONResponse(
        content=content,
        status_code=status_code,
        headers=dict(headers or {}),
        media_type=media_type,
    )


def _local_name(tag: str) -> str:
    tag = tag.rsplit("}", 1)[-1]
    return tag[:1].lower() + tag[1:]


def _element_to_value(element: ElementTree.Element) -> Any:
    children = list(element)
    if not children:
        if element.get("nil") == "true":
            return None
        return (element.text or "").strip()

    tags = [_local_name(child.tag) for child in children]
    if all(tag == "item" for tag in tags) or (len(tags) > 1 and len(set(tags)) == 1):
        return [_element_to_value(child) for child in children]

    result: Dict[str, Any] = {}
    for tag, child in zip(tags, children):
        result[tag] = _element_to_value(child)
    return result


def from_xml(body: bytes) -> Any:
    """
    Parse an XML document into JSON-like data, camel-casing element names.

    Raises:
        ValueError: If the body is not well-formed XML
    """
    try:
        element = ElementTree.fromstring(body)
    except ElementTree.ParseError as e:
        raise ValueError(f"Malformed XML body: {e}")
    value = _element_to_value(element)
    if isinstance(value, dict):
        # Collections inside an object stay lists even with a single entry
        for key, item in value.items():
            if key == "books" and isinstance(item, dict):
                value[key] = list(item.values())
    return value


async def read_body(request: Request) -> Any:
    """
    Decode the request body according to its Content-Type.

    Returns:
        The decoded body, or None when the body is empty

    Raises:
        ValueError: If the body cannot be decoded
    """
    body = await request.body()
    if not body or not body.strip():
        return None

    content_type = request.headers.get("content-type", "").split(";")[0].strip().lower()
    if content_type.endswith("+xml") or content_type in (XML, TEXT_XML):
        return from_xml(body)

    try:
        return json.loads(body)
    except json.JSONDecodeError as e:
        raise ValueError(f"Malformed JSON body: {e.msg}")
