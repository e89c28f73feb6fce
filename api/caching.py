"""
HTTP cache headers middleware.

Adds expiration (Cache-Control, Expires) and validation (ETag,
Last-Modified) headers to successful GET and HEAD responses, answers
conditional GETs with 304 and rejects PUT/PATCH requests whose If-Match does
not match the current representation with 412.
"""

import hashlib
from collections import OrderedDict
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from typing import Callable, Dict, List, Optional

import structlog
from fastapi import Request, status
from fastapi.responses import Response

logger = structlog.get_logger(__name__)

SAFE_METHODS = ("GET", "HEAD")
VARY_HEADERS = "Accept, Accept-Language, Accept-Encoding"


class ValidatorEntry:
    """Current validators of one stored representation."""

    def __init__(self, path: str, etag: str, last_modified: datetime):
        self.path = path
        self.etag = etag
        self.last_modified = last_modified


def _etag_values(header: str) -> List[str]:
    return [value.strip().removeprefix("W/") for value in header.split(",") if value.strip()]


class HttpCacheHeaders:
    """
    Middleware callable keeping validators in an in-memory store.

    The store holds at most `max_entries` validators; the least recently
    used entry is evicted first. If-None-Match is compared against the ETag
    of the freshly generated representation, never against a stored one.
    """

    def __init__(self, max_age: int = 600, must_revalidate: bool = True, max_entries: int = 1000,
                 clock: Callable[[], datetime] = lambda: datetime.now(timezone.utc)):
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_age = max_age
        self.must_revalidate = must_revalidate
        self.max_entries = max_entries
        self.clock = clock
        self.store: "OrderedDict[str, ValidatorEntry]" = OrderedDict()

    @staticmethod
    def resource_key(request: Request) -> str:
        query = "&".join(sorted(f"{key.lower()}={value}" for key, value in request.query_params.multi_items()))
        accept = request.headers.get("accept", "").lower()
        return f"{request.url.path.lower()}?{query}|{accept}"

    def cache_control(self) -> str:
        directives = ["public", f"max-age={self.max_age}"]
        if self.must_revalidate:
            directives.append("must-revalidate")
        return ", ".join(directives)

    def cache_headers(self, entry: ValidatorEntry) -> Dict[str, str]:
        now = self.clock()
        return {
            "Cache-Control": self.cache_control(),
            "Expires": format_datetime(now + timedelta(seconds=self.max_age), usegmt=True),
            "Last-Modified": format_datetime(entry.last_modified, usegmt=True),
            "ETag": entry.etag,
            "Vary": VARY_HEADERS,
        }

    def remember(self, key: str, entry: ValidatorEntry) -> None:
        """Store entry under key, evicting the least recently used entries over the limit."""
        self.store[key] = entry
        self.store.move_to_end(key)
        while len(self.store) > self.max_entries:
            self.store.popitem(last=False)

    def invalidate(self, path: str) -> None:
        """Drop validators stored for path, its ancestors and everything below it."""
        path = path.lower().rstrip("/")

        def related(entry_path: str) -> bool:
            return (entry_path == path
                    or entry_path.startswith(path + "/")
                    or path.startswith(entry_path + "/"))

        for key in [key for key, entry in self.store.items() if related(entry.path)]:
            del self.store[key]

    def _stored_etags(self, path: str) -> List[str]:
        path = path.lower().rstrip("/")
        return [entry.etag for entry in self.store.values() if entry.path == path]

    async def __call__(self, request: Request, call_next) -> Response:
        if request.method in SAFE_METHODS:
            return await self._handle_safe(request, call_next)

        if request.method in ("PUT", "PATCH"):
            if_match = request.headers.get("if-match")
            if if_match and if_match.strip() != "*":
                stored = self._stored_etags(request.url.path)
                if stored and not set(_etag_values(if_match)) & set(stored):
                    logger.info("Precondition failed", path=request.url.path, if_match=if_match)
                    return Response(status_code=status.HTTP_412_PRECONDITION_FAILED)

        response = await call_next(request)
        if 200 <= response.status_code < 300:
            self.invalidate(request.url.path)
        return response

    async def _handle_safe(self, request: Request, call_next) -> Response:
        response = await call_next(request)
        if not 200 <= response.status_code < 300:
            return response

        body = b"".join([chunk async for chunk in response.body_iterator])
        etag = f'"{hashlib.md5(body).hexdigest()}"'

        key = self.resource_key(request)
        entry: Optional[ValidatorEntry] = self.store.get(key)
        if entry is None or entry.etag != etag:
            entry = ValidatorEntry(request.url.path.lower().rstrip("/"), etag, self.clock())
        self.remember(key, entry)

        if_none_match = request.headers.get("if-none-match")
        if if_none_match:
            values = _etag_values(if_none_match)
            if "*" in values or etag in values:
                return Response(status_code=status.HTTP_304_NOT_MODIFIED, headers=self.cache_headers(entry))

        headers = {name: value for name, value in response.headers.items() if name.lower() != "content-length"}
        headers.update(self.cache_headers(entry))
        return Response(content=body, status_code=response.status_code, headers=headers)
