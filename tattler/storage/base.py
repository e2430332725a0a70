"""Document-store contract used by the restaurant services.

Documents are plain dicts keyed by the stored field names (``_id``,
``business_id``, ``address.coord`` ...). Every method is a coroutine: store
calls are the only suspension points of the engine.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from .predicates import Predicate, SortSpec, Window


class StoreError(Exception):
    """Base class for failures raised by a document store."""


class DuplicateKeyError(StoreError):
    """A write would break a unique index."""

    def __init__(self, field: str, value: Any) -> None:
        super().__init__(f"duplicate value {value!r} for unique field {field!r}")
        self.field = field
        self.value = value


class InvalidIdError(StoreError):
    """An identifier does not have the store's identifier format."""

    def __init__(self, value: Any) -> None:
        super().__init__(f"invalid document id {value!r}")
        self.value = value


class DocumentStore(ABC):
    """Abstract restaurant collection.

    Contract:
        - ``find*`` methods return deep copies; callers may mutate them freely.
        - Ties in any ordering keep the store's natural (insertion) order.
        - ``insert_one``/``update_one`` raise ``DuplicateKeyError`` when a unique
          index would be violated, leaving the collection unchanged.
        - Methods taking a document id raise ``InvalidIdError`` for malformed ids.
    """

    @abstractmethod
    async def find(self, predicate: Predicate, sort: SortSpec, window: Window) -> list[dict]:
        """Return the matching documents, sorted, then skipped/limited."""

    @abstractmethod
    async def count(self, predicate: Predicate) -> int:
        """Count the documents matching ``predicate``."""

    @abstractmethod
    async def find_one(self, predicate: Predicate) -> dict | None:
        """Return the first matching document in natural order, if any."""

    @abstractmethod
    async def find_by_id(self, doc_id: str) -> dict | None:
        """Fetch a document by its storage identifier."""

    @abstractmethod
    async def max_value(self, field: str) -> Any | None:
        """Largest value stored under ``field``, or ``None`` for an empty collection."""

    @abstractmethod
    async def find_by_average(
        self,
        array_field: str,
        value_field: str,
        minimum: float,
        maximum: float,
        window: Window,
    ) -> list[tuple[dict, float]]:
        """Average ``value_field`` over each document's ``array_field`` items.

        Documents with an empty sequence have no average and never match.
        Matches in ``[minimum, maximum]`` are returned ascending by average
        as ``(document, average)`` pairs.
        """

    @abstractmethod
    async def count_by_average(
        self, array_field: str, value_field: str, minimum: float, maximum: float
    ) -> int:
        """Count the documents ``find_by_average`` would match without a window."""

    @abstractmethod
    async def find_near(
        self,
        field: str,
        longitude: float,
        latitude: float,
        max_distance_m: float,
        window: Window,
    ) -> list[tuple[dict, float]]:
        """Documents whose ``[lng, lat]`` pair lies within ``max_distance_m``.

        Distances are spherical and returned in meters, nearest first.
        """

    @abstractmethod
    async def count_near(
        self, field: str, longitude: float, latitude: float, max_distance_m: float
    ) -> int:
        """Count every document within ``max_distance_m`` of the point."""

    @abstractmethod
    async def insert_one(self, document: dict) -> str:
        """Insert ``document`` and return its generated identifier."""

    @abstractmethod
    async def update_one(self, doc_id: str, fields: dict) -> dict | None:
        """Overwrite the given top-level fields; return the updated document.

        Returns ``None`` when no document has ``doc_id``.
        """

    @abstractmethod
    async def push(self, doc_id: str, field: str, item: dict) -> dict | None:
        """Append ``item`` to the sequence stored under ``field``."""

    @abstractmethod
    async def delete_one(self, doc_id: str) -> int:
        """Delete a document and return the number of documents removed."""

    async def close(self) -> None:
        """Release any resources held by the store."""
