from __future__ import annotations

import logging
from typing import Any

from ..storage.base import DocumentStore, DuplicateKeyError, InvalidIdError
from ..storage.predicates import MATCH_ALL, Equals
from .config import DEFAULT_QUERY_CONFIG, QueryConfig
from .models import (
    CommentIn,
    GradeIn,
    RestaurantCreate,
    RestaurantFields,
    RestaurantOut,
    RestaurantPatch,
    Stats,
    comment_document,
    grade_document,
    integral,
    restaurant_document,
    restaurant_from_document,
)
from .results import Failure, Ok, Result, bad_request, conflict, internal, not_found
from .validation import validate_comment, validate_grade, validate_patch, validate_restaurant

logger = logging.getLogger(__name__)


def _invalid_id(restaurant_id: Any) -> Failure:
    return bad_request("Invalid ID format", [f"{restaurant_id!r} is not a valid restaurant id"])


def _missing(restaurant_id: Any) -> Failure:
    return not_found(f"Restaurant with id {restaurant_id} not found")


def _taken(value: Any) -> Failure:
    return conflict(f"Restaurant with businessId {value} already exists")


class RestaurantMutationService:
    """Write side of the directory.

    Business ids are pre-checked before writes, but the store's unique index is
    what actually keeps them unique: a write that loses a race surfaces here as
    ``DuplicateKeyError`` and becomes a conflict (or, for a generated id, a
    bounded retry with a fresh id).
    """

    def __init__(self, store: DocumentStore, config: QueryConfig = DEFAULT_QUERY_CONFIG) -> None:
        self._store = store
        self._config = config

    async def _next_business_id(self) -> int:
        current = await self._store.max_value("business_id")
        if current is None:
            return self._config.first_business_id
        return int(current) + 1

    async def _business_id_owner(self, value: int) -> str | None:
        doc = await self._store.find_one(Equals("business_id", value))
        return str(doc["_id"]) if doc is not None else None

    async def create(self, payload: RestaurantCreate) -> Result[RestaurantOut]:
        errors = validate_restaurant(payload, self._config)
        if errors:
            return bad_request("Validation failed", errors)

        supplied = integral(payload.business_id)
        if supplied is not None and await self._business_id_owner(supplied) is not None:
            return _taken(supplied)

        document = restaurant_document(payload)
        attempts = 1 if supplied is not None else 1 + self._config.id_assign_retries
        for attempt in range(attempts):
            document["business_id"] = supplied if supplied is not None else await self._next_business_id()
            try:
                new_id = await self._store.insert_one(document)
            except DuplicateKeyError as exc:
                logger.warning(
                    "businessId %s taken during insert (attempt %d/%d)",
                    exc.value,
                    attempt + 1,
                    attempts,
                )
                continue
            created = await self._store.find_by_id(new_id)
            if created is None:
                return internal("Restaurant was created but could not be read back")
            logger.info("Created restaurant %s (businessId %s)", new_id, document["business_id"])
            return Ok(restaurant_from_document(created))
        return _taken(document["business_id"])

    async def _apply(self, restaurant_id: str, payload: RestaurantFields, fields: set[str]) -> Result[RestaurantOut]:
        try:
            current = await self._store.find_by_id(restaurant_id)
        except InvalidIdError:
            return _invalid_id(restaurant_id)
        if current is None:
            return _missing(restaurant_id)

        wanted_id = integral(payload.business_id) if "business_id" in fields else None
        if wanted_id is not None:
            owner = await self._business_id_owner(wanted_id)
            if owner is not None and owner != restaurant_id:
                return _taken(wanted_id)

        changes = restaurant_document(payload, fields)
        try:
            updated = await self._store.update_one(restaurant_id, changes)
        except DuplicateKeyError as exc:
            logger.warning("businessId %s taken during update of %s", exc.value, restaurant_id)
            return _taken(exc.value)
        if updated is None:
            return _missing(restaurant_id)
        logger.info("Updated restaurant %s fields=%s", restaurant_id, sorted(changes))
        return Ok(restaurant_from_document(updated))

    async def update(self, restaurant_id: str, payload: RestaurantCreate) -> Result[RestaurantOut]:
        """Validate a complete restaurant and write the attributes it carries.

        Omitted attributes (grades, comments, businessId) keep their stored
        values; the id is never changed.
        """
        errors = validate_restaurant(payload, self._config)
        if errors:
            return bad_request("Validation failed", errors)
        fields = {name for name in RestaurantFields.model_fields if getattr(payload, name) is not None}
        return await self._apply(restaurant_id, payload, fields)

    async def partial_update(self, restaurant_id: str, patch: RestaurantPatch) -> Result[RestaurantOut]:
        """Change only the fields set on ``patch``."""
        errors = validate_patch(patch, self._config)
        if errors:
            return bad_request("Validation failed", errors)
        return await self._apply(restaurant_id, patch, patch.supplied())

    async def delete(self, restaurant_id: str) -> Result[str]:
        try:
            current = await self._store.find_by_id(restaurant_id)
        except InvalidIdError:
            return _invalid_id(restaurant_id)
        if current is None:
            return _missing(restaurant_id)

        deleted = await self._store.delete_one(restaurant_id)
        if deleted == 0:
            logger.error("Delete of %s affected no documents after existence check", restaurant_id)
            return internal("Failed to delete restaurant")
        logger.info("Deleted restaurant %s", restaurant_id)
        return Ok(restaurant_id)

    async def stats(self) -> Result[Stats]:
        return Ok(Stats(total_restaurants=await self._store.count(MATCH_ALL)))

    async def _push(self, restaurant_id: str, field: str, item: dict) -> Result[RestaurantOut]:
        try:
            updated = await self._store.push(restaurant_id, field, item)
        except InvalidIdError:
            return _invalid_id(restaurant_id)
        if updated is None:
            return _missing(restaurant_id)
        return Ok(restaurant_from_document(updated))

    async def add_grade(self, restaurant_id: str, grade: GradeIn) -> Result[RestaurantOut]:
        errors = validate_grade(grade, config=self._config)
        if errors:
            return bad_request("Validation failed", errors)
        return await self._push(restaurant_id, "grades", grade_document(grade))

    async def add_comment(self, restaurant_id: str, comment: CommentIn) -> Result[RestaurantOut]:
        errors = validate_comment(comment, config=self._config)
        if errors:
            return bad_request("Validation failed", errors)
        return await self._push(restaurant_id, "comments", comment_document(comment))
