from __future__ import annotations

import math
import uuid
from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, TypeAdapter, ValidationError
from pydantic.alias_generators import to_camel


class ApiModel(BaseModel):
    """camelCase on the wire, snake_case in Python; both accepted on input."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


# ── Inputs ───────────────────────────────────────────────────────────────


class AddressIn(ApiModel):
    building: Any = None
    street: Any = None
    zipcode: Any = None
    coordinate: Any = Field(default=None, description="[longitude, latitude]")


class GradeIn(ApiModel):
    date: Any = None
    score: Any = None


class CommentIn(ApiModel):
    id: Any = None
    text: Any = None
    date: Any = None


class RestaurantFields(ApiModel):
    business_id: Any = None
    name: Any = None
    cuisine: Any = None
    borough: Any = None
    address: AddressIn | None = None
    grades: list[GradeIn] | None = None
    comments: list[CommentIn] | None = None


class RestaurantCreate(RestaurantFields):
    """Full restaurant payload, used by create and full update."""


class RestaurantPatch(RestaurantFields):
    """Partial update. Only the fields the caller set are applied."""

    def supplied(self) -> set[str]:
        return set(self.model_fields_set)


# ── Outputs ──────────────────────────────────────────────────────────────


class Address(ApiModel):
    building: str | None = None
    street: str | None = None
    zipcode: str | None = None
    coordinate: list[float] | None = None


class Grade(ApiModel):
    date: datetime | None = None
    score: int | None = None


class Comment(ApiModel):
    id: str | None = None
    text: str | None = None
    date: datetime | None = None


class RestaurantOut(ApiModel):
    id: str
    business_id: int | None = None
    name: str | None = None
    cuisine: str | None = None
    borough: str | None = None
    address: Address | None = None
    grades: list[Grade] = Field(default_factory=list)
    comments: list[Comment] = Field(default_factory=list)
    average_score: float | None = None
    distance: float | None = Field(default=None, description="Kilometers from the query point")


class Pagination(ApiModel):
    page: int
    limit: int
    total: int
    total_pages: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, page: int, limit: int, total: int) -> Pagination:
        total_pages = math.ceil(total / limit)
        return cls(
            page=page,
            limit=limit,
            total=total,
            total_pages=total_pages,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


class Page(ApiModel):
    data: list[RestaurantOut]
    pagination: Pagination


class Stats(ApiModel):
    total_restaurants: int


# ── Document mapping ─────────────────────────────────────────────────────

_DATETIME = TypeAdapter(datetime)


def integral(value: Any) -> int | None:
    """``value`` as an int when it is a whole number, else ``None``."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return None


def finite_number(value: Any) -> float | None:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return float(value) if math.isfinite(value) else None


def parse_date(value: Any) -> datetime | None:
    if value is None:
        return None
    try:
        return _DATETIME.validate_python(value)
    except ValidationError:
        return None


def address_document(address: AddressIn) -> dict[str, Any]:
    coord = address.coordinate
    return {
        "building": address.building,
        "street": address.street,
        "zipcode": address.zipcode,
        "coord": [finite_number(c) for c in coord] if isinstance(coord, (list, tuple)) else None,
    }


def grade_document(grade: GradeIn) -> dict[str, Any]:
    return {"date": parse_date(grade.date), "score": integral(grade.score)}


def comment_document(comment: CommentIn) -> dict[str, Any]:
    return {
        "id": str(comment.id) if comment.id else uuid.uuid4().hex,
        "text": comment.text,
        "date": parse_date(comment.date),
    }


def restaurant_document(payload: RestaurantFields, fields: set[str] | None = None) -> dict[str, Any]:
    """Map payload fields onto stored field names.

    With ``fields`` given only those attributes are mapped; otherwise every
    attribute is, with missing sequences stored as empty.
    """
    wanted = fields if fields is not None else set(RestaurantFields.model_fields)
    doc: dict[str, Any] = {}
    for name in ("name", "cuisine", "borough"):
        if name in wanted:
            doc[name] = getattr(payload, name)
    if "business_id" in wanted:
        doc["business_id"] = integral(payload.business_id)
    if "address" in wanted and payload.address is not None:
        doc["address"] = address_document(payload.address)
    if "grades" in wanted:
        doc["grades"] = [grade_document(g) for g in payload.grades or []]
    if "comments" in wanted:
        doc["comments"] = [comment_document(c) for c in payload.comments or []]
    return doc


def restaurant_from_document(
    doc: dict[str, Any],
    average_score: float | None = None,
    distance: float | None = None,
) -> RestaurantOut:
    """Shape a stored document into the entity returned to callers."""
    address = doc.get("address")
    return RestaurantOut(
        id=str(doc["_id"]),
        business_id=doc.get("business_id"),
        name=doc.get("name"),
        cuisine=doc.get("cuisine"),
        borough=doc.get("borough"),
        address=Address(
            building=address.get("building"),
            street=address.get("street"),
            zipcode=address.get("zipcode"),
            coordinate=address.get("coord"),
        )
        if isinstance(address, dict)
        else None,
        grades=[
            Grade(date=g.get("date"), score=g.get("score"))
            for g in doc.get("grades") or []
            if isinstance(g, dict)
        ],
        comments=[
            Comment(id=c.get("id"), text=c.get("text"), date=c.get("date"))
            for c in doc.get("comments") or []
            if isinstance(c, dict)
        ],
        average_score=average_score,
        distance=distance,
    )
