from __future__ import annotations

import asyncio
import logging
from typing import Any

from ..storage.base import DocumentStore, InvalidIdError
from ..storage.predicates import MATCH_ALL, Equals, Predicate, SortSpec
from .config import DEFAULT_QUERY_CONFIG, QueryConfig
from .models import Page, RestaurantOut, restaurant_from_document
from .query import (
    PageRequest,
    business_id,
    borough_filter,
    cuisine_and_borough_filter,
    cuisine_filter,
    near_query,
    page_request,
    score_range,
    sort_spec,
    text_search,
)
from .results import Failure, Ok, Result, bad_request, not_found

logger = logging.getLogger(__name__)

GRADES_FIELD = "grades"
SCORE_FIELD = "score"
COORD_FIELD = "address.coord"


def _first_failure(*results: Result[Any]) -> Failure | None:
    """Fold every failed parameter check into a single bad request."""
    failures = [r for r in results if isinstance(r, Failure)]
    if not failures:
        return None
    if len(failures) == 1:
        return failures[0]
    errors = [e for f in failures for e in (f.errors or (f.message,))]
    return bad_request("Invalid query parameters", errors)


class RestaurantQueryService:
    """Read side of the directory: paged listings, filters and rankings."""

    def __init__(self, store: DocumentStore, config: QueryConfig = DEFAULT_QUERY_CONFIG) -> None:
        self._store = store
        self._config = config

    async def _paged(self, predicate: Predicate, sort: SortSpec, page: PageRequest) -> Page:
        # Count and page fetch share the predicate but not a snapshot.
        docs, total = await asyncio.gather(
            self._store.find(predicate, sort, page.window),
            self._store.count(predicate),
        )
        logger.debug("Query %s matched %d, returning %d", predicate, total, len(docs))
        return Page(
            data=[restaurant_from_document(doc) for doc in docs],
            pagination=page.pagination(total),
        )

    async def _filtered(
        self,
        predicate: Result[Predicate],
        page: Any,
        limit: Any,
        sort: Any,
        order: Any,
    ) -> Result[Page]:
        sorting = sort_spec(sort, order)
        failure = _first_failure(predicate, sorting)
        if failure is not None:
            return failure
        return Ok(await self._paged(predicate.value, sorting.value, page_request(page, limit, self._config)))

    async def list_restaurants(
        self, page: Any = None, limit: Any = None, sort: Any = None, order: Any = None
    ) -> Result[Page]:
        return await self._filtered(Ok(MATCH_ALL), page, limit, sort, order)

    async def search(
        self, query: Any, page: Any = None, limit: Any = None, sort: Any = None, order: Any = None
    ) -> Result[Page]:
        """Restaurants whose name or cuisine contains ``query``."""
        return await self._filtered(text_search(query), page, limit, sort, order)

    async def filter_by_cuisine(
        self, cuisine: Any, page: Any = None, limit: Any = None, sort: Any = None, order: Any = None
    ) -> Result[Page]:
        return await self._filtered(cuisine_filter(cuisine), page, limit, sort, order)

    async def filter_by_borough(
        self, borough: Any, page: Any = None, limit: Any = None, sort: Any = None, order: Any = None
    ) -> Result[Page]:
        return await self._filtered(borough_filter(borough), page, limit, sort, order)

    async def filter_by_cuisine_and_borough(
        self,
        cuisine: Any,
        borough: Any,
        page: Any = None,
        limit: Any = None,
        sort: Any = None,
        order: Any = None,
    ) -> Result[Page]:
        return await self._filtered(cuisine_and_borough_filter(cuisine, borough), page, limit, sort, order)

    async def filter_by_average_score(
        self, min_score: Any = None, max_score: Any = None, page: Any = None, limit: Any = None
    ) -> Result[Page]:
        """Restaurants whose average grade falls in the range, lowest first.

        Restaurants without grades have no average and are never included.
        """
        bounds = score_range(min_score, max_score, self._config)
        if isinstance(bounds, Failure):
            return bounds
        paging = page_request(page, limit, self._config)
        lo, hi = bounds.value.minimum, bounds.value.maximum
        rows, total = await asyncio.gather(
            self._store.find_by_average(GRADES_FIELD, SCORE_FIELD, lo, hi, paging.window),
            self._store.count_by_average(GRADES_FIELD, SCORE_FIELD, lo, hi),
        )
        return Ok(
            Page(
                data=[restaurant_from_document(doc, average_score=round(avg, 2)) for doc, avg in rows],
                pagination=paging.pagination(total),
            )
        )

    async def find_nearby(
        self, lng: Any, lat: Any, radius: Any = None, page: Any = None, limit: Any = None
    ) -> Result[Page]:
        """Restaurants within ``radius`` meters of the point, nearest first.

        ``distance`` on each result is in kilometers.
        """
        near = near_query(lng, lat, radius, self._config)
        if isinstance(near, Failure):
            return near
        paging = page_request(page, limit, self._config)
        q = near.value
        rows, total = await asyncio.gather(
            self._store.find_near(COORD_FIELD, q.longitude, q.latitude, q.radius_m, paging.window),
            self._store.count_near(COORD_FIELD, q.longitude, q.latitude, q.radius_m),
        )
        return Ok(
            Page(
                data=[restaurant_from_document(doc, distance=round(meters / 1000, 2)) for doc, meters in rows],
                pagination=paging.pagination(total),
            )
        )

    async def get_by_id(self, restaurant_id: str) -> Result[RestaurantOut]:
        try:
            doc = await self._store.find_by_id(restaurant_id)
        except InvalidIdError:
            return bad_request("Invalid ID format", [f"{restaurant_id!r} is not a valid restaurant id"])
        if doc is None:
            return not_found(f"Restaurant with id {restaurant_id} not found")
        return Ok(restaurant_from_document(doc))

    async def get_by_business_id(self, value: Any) -> Result[RestaurantOut]:
        parsed = business_id(value)
        if isinstance(parsed, Failure):
            return parsed
        doc = await self._store.find_one(Equals("business_id", parsed.value))
        if doc is None:
            return not_found(f"Restaurant with businessId {parsed.value} not found")
        return Ok(restaurant_from_document(doc))
