"""
Paged results over count-then-slice query sources.

A query source answers two questions with the same filter and sort: how many
items match in total, and which items fall inside a skip/limit window.
"""

import math
from collections.abc import Sequence
from typing import Any, Callable, Dict, Generic, Iterable, List, Optional, Protocol, Tuple, TypeVar

from motor.motor_asyncio import AsyncIOMotorCollection

T = TypeVar("T")
T_co = TypeVar("T_co", covariant=True)

SortSpecification = List[Tuple[str, int]]


class QuerySource(Protocol[T_co]):
    """Anything that can be counted and sliced."""

    async def count(self) -> int:
        ...

    async def fetch(self, skip: int, limit: int) -> List[T_co]:
        ...


class SequenceQuerySource(Generic[T]):
    """Query source over an already filtered and sorted in-memory sequence."""

    def __init__(self, items: Iterable[T]):
        self._items = list(items)

    async def count(self) -> int:
        return len(self._items)

    async def fetch(self, skip: int, limit: int) -> List[T]:
        return self._items[skip:skip + limit]


class MongoQuerySource(Generic[T]):
    """
    Query source over a MongoDB collection.

    The count and the page slice use the same filter document. `_id` is
    appended as the last sort key so documents with equal sort values keep a
    stable order between pages.
    """

    def __init__(
        self,
        collection: AsyncIOMotorCollection,
        filter_query: Dict[str, Any],
        sort: Optional[SortSpecification],
        document_factory: Callable[[Dict[str, Any]], T],
    ):
        self.collection = collection
        self.filter_query = filter_query
        self.sort = list(sort or [])
        if not any(field == "_id" for field, _ in self.sort):
            self.sort.append(("_id", 1))
        self.document_factory = document_factory

    async def count(self) -> int:
        return await self.collection.count_documents(self.filter_query)

    async def fetch(self, skip: int, limit: int) -> List[T]:
        cursor = self.collection.find(self.filter_query).sort(self.sort).skip(skip).limit(limit)
        documents = await cursor.to_list(length=limit)
        return [self.document_factory(document) for document in documents]


class PagedList(Sequence, Generic[T]):
    """
    Immutable page of items plus the paging metadata of the full result set.

    has_previous and has_next are derived from current_page and total_pages
    on every read.
    """

    def __init__(self, items: Iterable[T], count: int, page_number: int, page_size: int):
        if page_size <= 0:
            raise ValueError(f"page_size must be greater than 0, got {page_size}")
        if page_number < 1:
            raise ValueError(f"page_number must be 1 or greater, got {page_number}")
        if count < 0:
            raise ValueError(f"count must not be negative, got {count}")

        self._items: Tuple[T, ...] = tuple(items)
        self._total_count = count
        self._page_size = page_size
        self._current_page = page_number
        self._total_pages = math.ceil(count / page_size)

    @classmethod
    async def create(cls, source: QuerySource[T], page_number: int, page_size: int) -> "PagedList[T]":
        """
        Count the full result set, then fetch the requested page.

        Raises:
            ValueError: If page_size is not positive or page_number is below 1
        """
        if page_size <= 0:
            raise ValueError(f"page_size must be greater than 0, got {page_size}")
        if page_number < 1:
            raise ValueError(f"page_number must be 1 or greater, got {page_number}")

        count = await source.count()
        items = await source.fetch(skip=(page_number - 1) * page_size, limit=page_size)
        return cls(items, count, page_number, page_size)

    @property
    def current_page(self) -> int:
        return self._current_page

    @property
    def total_pages(self) -> int:
        return self._total_pages

    @property
    def page_size(self) -> int:
        return self._page_size

    @property
    def total_count(self) -> int:
        return self._total_count

    @property
    def has_previous(self) -> bool:
        return self._current_page > 1

    @property
    def has_next(self) -> bool:
        return self._current_page < self._total_pages

    def __getitem__(self, index):
        return self._items[index]

    def __len__(self) -> int:
        return len(self._items)

    def __repr__(self) -> str:
        return (
            f"PagedList(items={len(self._items)}, total_count={self._total_count}, "
            f"current_page={self._current_page}, total_pages={self._total_pages})"
        )
