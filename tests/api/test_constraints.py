"""
Tests for media-type constraints and handler selection.
"""

import pytest
from starlette.datastructures import Headers

from api.constraints import ActionSelector, NoMatchingActionError, RequestHeaderMatchesMediaType
from api.negotiation import HATEOAS_JSON, JSON


class TestRequestHeaderMatchesMediaType:
    """Test cases for the header predicate."""

    def test_missing_header_never_matches(self):
        """Test that an absent header is rejected."""
        constraint = RequestHeaderMatchesMediaType("Accept", [HATEOAS_JSON])

        assert constraint.accept({}) is False
        assert constraint.accept({"Content-Type": HATEOAS_JSON}) is False

    def test_different_media_type(self):
        """Test Accept: application/json against the hypermedia type."""
        constraint = RequestHeaderMatchesMediaType("Accept", [HATEOAS_JSON])

        assert constraint.accept({"Accept": "application/json"}) is False

    def test_exact_match(self):
        """Test a value equal to one of the media types."""
        constraint = RequestHeaderMatchesMediaType("Accept", [JSON, HATEOAS_JSON])

        assert constraint.accept({"Accept": HATEOAS_JSON}) is True
        assert constraint.accept({"Accept": JSON}) is True

    def test_value_comparison_ignores_case(self):
        """Test case-insensitive media type comparison."""
        constraint = RequestHeaderMatchesMediaType("Accept", ["application/vnd.marvin.hateoas+json"])

        assert constraint.accept({"Accept": "Application/VND.Marvin.HATEOAS+JSON"}) is True

    def test_whole_value_must_match(self):
        """Test that a list or parameters in the header do not match."""
        constraint = RequestHeaderMatchesMediaType("Accept", [HATEOAS_JSON])

        assert constraint.accept({"Accept": f"{HATEOAS_JSON}, application/json"}) is False
        assert constraint.accept({"Accept": f"{HATEOAS_JSON};q=0.9"}) is False

    def test_request_headers_ignore_name_case(self):
        """Test header names against request headers."""
        constraint = RequestHeaderMatchesMediaType("Content-Type", [JSON])
        headers = Headers({"content-type": "application/json"})

        assert constraint.accept(headers) is True

    def test_empty_media_types(self):
        """Test a constraint that lists nothing."""
        assert RequestHeaderMatchesMediaType("Accept", []).accept({"Accept": JSON}) is False


class TestActionSelector:
    """Test cases for choosing between registered handlers."""

    @pytest.fixture
    def selector(self):
        selector = ActionSelector("get_things")

        @selector.register()
        async def fallback():
            return "fallback"

        @selector.register(RequestHeaderMatchesMediaType("Accept", [HATEOAS_JSON]))
        async def with_links():
            return "with_links"

        return selector

    async def test_registration_order_breaks_ties(self, selector):
        """Test that the unconstrained handler registered first is chosen."""
        handler = selector.select({"Accept": HATEOAS_JSON})

        assert await handler() == "fallback"

    async def test_order_overrides_registration(self):
        """Test that a lower order is tried before earlier registrations."""
        selector = ActionSelector("get_things")

        @selector.register()
        async def fallback():
            return "fallback"

        @selector.register(RequestHeaderMatchesMediaType("Accept", [HATEOAS_JSON], order=-1))
        async def with_links():
            return "with_links"

        assert await selector.select({"Accept": HATEOAS_JSON})() == "with_links"
        assert await selector.select({"Accept": JSON})() == "fallback"

    def test_no_match(self):
        """Test that a request nothing accepts raises."""
        selector = ActionSelector("create_thing")

        @selector.register(RequestHeaderMatchesMediaType("Content-Type", [JSON]))
        async def create():
            return None

        assert selector.find({"Content-Type": "text/plain"}) is None
        with pytest.raises(NoMatchingActionError):
            selector.select({"Content-Type": "text/plain"})

    def test_all_constraints_must_accept(self):
        """Test handlers with several constraints."""
        selector = ActionSelector("both")

        @selector.register(
            RequestHeaderMatchesMediaType("Accept", [HATEOAS_JSON]),
            RequestHeaderMatchesMediaType("Content-Type", [JSON]),
        )
        async def handler():
            return None

        assert selector.find({"Accept": HATEOAS_JSON}) is None
        assert selector.find({"Accept": HATEOAS_JSON, "Content-Type": JSON}) is handler
