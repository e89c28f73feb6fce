"""
Tests for HTTP cache headers and conditional requests.
"""

from datetime import datetime, timezone

import pytest

from library.pagination import PagedList

from api.caching import HttpCacheHeaders, ValidatorEntry


@pytest.fixture
def book_url(sample_book):
    return f"/api/authors/{sample_book.author_id}/books/{sample_book.id}"


class TestHttpCacheHeaders:
    """Test cases for header generation and invalidation."""

    def test_cache_control(self):
        assert HttpCacheHeaders().cache_control() == "public, max-age=600, must-revalidate"
        assert HttpCacheHeaders(max_age=60, must_revalidate=False).cache_control() == "public, max-age=60"

    def test_cache_headers(self):
        """Test expiration and validation headers."""
        now = datetime(2024, 1, 1, 12, 0, tzinfo=timezone.utc)
        cache = HttpCacheHeaders(clock=lambda: now)

        headers = cache.cache_headers(ValidatorEntry("/api/authors", '"abc"', now))

        assert headers["ETag"] == '"abc"'
        assert headers["Last-Modified"] == "Mon, 01 Jan 2024 12:00:00 GMT"
        assert headers["Expires"] == "Mon, 01 Jan 2024 12:10:00 GMT"
        assert "Accept" in headers["Vary"]

    def test_invalidate_removes_path_and_children(self):
        """Test that changing a collection drops its members too."""
        now = datetime.now(timezone.utc)
        cache = HttpCacheHeaders()
        cache.store = {
            "a": ValidatorEntry("/api/authors", '"1"', now),
            "b": ValidatorEntry("/api/authors/x", '"2"', now),
            "c": ValidatorEntry("/api/authorcollections/(x)", '"3"', now),
        }

        cache.invalidate("/api/authors")

        assert list(cache.store) == ["c"]

    def test_invalidate_removes_ancestors(self):
        """Test that changing a member drops the collections above it."""
        now = datetime.now(timezone.utc)
        cache = HttpCacheHeaders()
        for key, path in enumerate(["/api/authors", "/api/authors/x", "/api/authors/x/books",
                                    "/api/authors/x/books/y", "/api/authors/z", "/api/authorsearch"]):
            cache.remember(str(key), ValidatorEntry(path, f'"{key}"', now))

        cache.invalidate("/api/authors/x/books/y")

        assert list(cache.store) == ["4", "5"]

    def test_remember_evicts_least_recently_used(self):
        """Test that the store never grows past max_entries."""
        now = datetime.now(timezone.utc)
        cache = HttpCacheHeaders(max_entries=2)

        cache.remember("a", ValidatorEntry("/api/authors/a", '"1"', now))
        cache.remember("b", ValidatorEntry("/api/authors/b", '"2"', now))
        cache.remember("a", ValidatorEntry("/api/authors/a", '"1"', now))
        cache.remember("c", ValidatorEntry("/api/authors/c", '"3"', now))

        assert list(cache.store) == ["a", "c"]

    def test_max_entries_must_be_positive(self):
        with pytest.raises(ValueError):
            HttpCacheHeaders(max_entries=0)


def test_get_sets_cache_headers(client, mock_repository, sample_author):
    """Test that successful reads carry validators and expiration."""
    mock_repository.get_author.return_value = sample_author

    response = client.get(f"/api/authors/{sample_author.id}")

    assert response.status_code == 200
    assert response.headers["Cache-Control"] == "public, max-age=600, must-revalidate"
    assert response.headers["ETag"].startswith('"')
    assert "Last-Modified" in response.headers
    assert "Expires" in response.headers


def test_if_none_match_returns_not_modified(client, mock_repository, sample_author):
    """Test a conditional GET with the current ETag."""
    mock_repository.get_author.return_value = sample_author
    etag = client.get(f"/api/authors/{sample_author.id}").headers["ETag"]

    response = client.get(f"/api/authors/{sample_author.id}", headers={"If-None-Match": etag})

    assert response.status_code == 304
    assert response.headers["ETag"] == etag
    assert mock_repository.get_author.await_count == 2


def test_if_none_match_with_other_etag(client, mock_repository, sample_author):
    """Test that a stale ETag gets the full representation."""
    mock_repository.get_author.return_value = sample_author
    client.get(f"/api/authors/{sample_author.id}")

    response = client.get(f"/api/authors/{sample_author.id}", headers={"If-None-Match": '"stale"'})

    assert response.status_code == 200


def test_if_match_mismatch_returns_precondition_failed(client, mock_repository, sample_book, book_url):
    """Test that PUT with an outdated ETag is rejected."""
    mock_repository.author_exists.return_value = True
    mock_repository.get_book_for_author.return_value = sample_book
    assert client.get(book_url).status_code == 200

    response = client.put(
        book_url,
        json={"title": "The Shining", "description": "Redrum"},
        headers={"If-Match": '"outdated"'},
    )

    assert response.status_code == 412
    mock_repository.update_book_for_author.assert_not_awaited()


def test_if_match_with_current_etag(app, client, mock_repository, sample_book, book_url):
    """Test that PUT with the current ETag succeeds and invalidates validators."""
    mock_repository.author_exists.return_value = True
    mock_repository.get_book_for_author.return_value = sample_book
    etag = client.get(book_url).headers["ETag"]

    response = client.put(
        book_url,
        json={"title": "The Shining", "description": "Redrum"},
        headers={"If-Match": etag},
    )

    assert response.status_code == 204
    assert app.state.cache_headers.store == {}


def test_collection_etag_changes_after_member_delete(client, mock_repository, sample_author, other_author):
    """Test that a deleted author does not leave the author list validated as unchanged."""
    mock_repository.get_authors.return_value = PagedList([sample_author, other_author], count=2,
                                                         page_number=1, page_size=10)
    etag = client.get("/api/authors").headers["ETag"]

    mock_repository.get_author.return_value = sample_author
    assert client.delete(f"/api/authors/{sample_author.id}").status_code == 204
    mock_repository.get_authors.return_value = PagedList([other_author], count=1, page_number=1, page_size=10)

    response = client.get("/api/authors", headers={"If-None-Match": etag})

    assert response.status_code == 200
    assert len(response.json()) == 1
    assert response.headers["ETag"] != etag


def test_if_none_match_checks_fresh_representation(client, mock_repository, sample_author, other_author):
    """Test that a conditional GET sees changes made outside the API."""
    mock_repository.get_authors.return_value = PagedList([sample_author, other_author], count=2,
                                                         page_number=1, page_size=10)
    etag = client.get("/api/authors").headers["ETag"]
    mock_repository.get_authors.return_value = PagedList([other_author], count=1, page_number=1, page_size=10)

    response = client.get("/api/authors", headers={"If-None-Match": etag})

    assert response.status_code == 200
    assert response.headers["ETag"] != etag


def test_store_is_bounded(app, client, mock_repository, sample_author):
    """Test that old validators are evicted once the store is full."""
    mock_repository.get_authors.return_value = PagedList([sample_author], count=1, page_number=1, page_size=10)
    cache = app.state.cache_headers
    cache.max_entries = 2

    for genre in ("horror", "fantasy", "thriller"):
        assert client.get("/api/authors", params={"genre": genre}).status_code == 200

    assert len(cache.store) == 2
    assert not any("genre=horror" in key for key in cache.store)
    assert any("genre=thriller" in key for key in cache.store)
