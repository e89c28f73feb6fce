"""
Request-matching constraints used to pick one of several handlers that share
a route.

Handlers are registered explicitly on an ActionSelector together with the
constraints that must accept a request for the handler to be chosen.
"""

from typing import Awaitable, Callable, Iterable, List, Mapping, Optional, Protocol, Sequence, Tuple

Handler = Callable[..., Awaitable]


class ActionConstraint(Protocol):
    """Predicate over the request headers, ordered by `order` when selecting."""
    order: int

    def accept(self, headers: Mapping[str, str]) -> bool:
        ...


class RequestHeaderMatchesMediaType:
    """
    Accepts a request when a header equals one of the given media types.

    The comparison is case-insensitive and covers the whole header value.
    A missing header never matches.
    """

    def __init__(self, request_header_to_match: str, media_types: Iterable[str], order: int = 0):
        self.request_header_to_match = request_header_to_match
        self.media_types: Tuple[str, ...] = tuple(media_types)
        self.order = order

    def accept(self, headers: Mapping[str, str]) -> bool:
        if self.request_header_to_match not in headers:
            return False

        value = headers[self.request_header_to_match].lower()
        return any(value == media_type.lower() for media_type in self.media_types)

    def __repr__(self) -> str:
        return f"RequestHeaderMatchesMediaType({self.request_header_to_match!r}, {list(self.media_types)!r})"


class NoMatchingActionError(LookupError):
    """No registered handler accepts the request."""


class ActionSelector:
    """
    Holds the candidate handlers of one route.

    Candidates are tried by the lowest `order` among their constraints, then
    by registration order. A candidate without constraints accepts every
    request.
    """

    def __init__(self, name: str):
        self.name = name
        self._candidates: List[Tuple[int, int, Handler, Sequence[ActionConstraint]]] = []

    def register(self, *constraints: ActionConstraint) -> Callable[[Handler], Handler]:
        def decorator(handler: Handler) -> Handler:
            order = min((constraint.order for constraint in constraints), default=0)
            self._candidates.append((order, len(self._candidates), handler, constraints))
            self._candidates.sort(key=lambda candidate: (candidate[0], candidate[1]))
            return handler
        return decorator

    def find(self, headers: Mapping[str, str]) -> Optional[Handler]:
        for _, _, handler, constraints in self._candidates:
            if all(constraint.accept(headers) for constraint in constraints):
                return handler
        return None

    def select(self, headers: Mapping[str, str]) -> Handler:
        """
        Raises:
            NoMatchingActionError: If no candidate accepts the headers
        """
        handler = self.find(headers)
        if handler is None:
            raise NoMatchingActionError(f"No action of {self.name} accepts the request")
        return handler
