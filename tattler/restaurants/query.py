"""Normalization of raw query parameters.

Everything here is pure: raw values (strings from a query string, ints from
Python callers, ``None`` when absent) go in, and either a normalized query part or a
``bad_request`` failure comes out.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any

from ..storage.predicates import AllOf, AnyOf, Contains, Predicate, SortSpec, Window
from .config import DEFAULT_QUERY_CONFIG, QueryConfig
from .models import Pagination
from .results import Failure, Ok, Result, bad_request

# Entity field names that are stored under a different name.
SORT_FIELD_ALIASES = {
    "id": "_id",
    "businessId": "business_id",
    "address.coordinate": "address.coord",
    "address.coord": "address.coord",
}

SORT_DIRECTIONS = ("asc", "desc")


def _coerce_int(value: Any, default: int) -> int:
    if value is None or isinstance(value, bool):
        return default
    try:
        return int(value)
    except (TypeError, ValueError):
        pass
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return default


def _parse_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        parsed = float(value)
    except (TypeError, ValueError):
        return None
    return parsed if math.isfinite(parsed) else None


def _text(value: Any) -> str:
    return str(value).strip() if value is not None else ""


# ── Pagination ───────────────────────────────────────────────────────────


@dataclass(frozen=True)
class PageRequest:
    page: int
    limit: int

    @property
    def skip(self) -> int:
        return (self.page - 1) * self.limit

    @property
    def window(self) -> Window:
        return Window(skip=self.skip, limit=self.limit)

    def pagination(self, total: int) -> Pagination:
        return Pagination.build(self.page, self.limit, total)


def page_request(page: Any = None, limit: Any = None, config: QueryConfig = DEFAULT_QUERY_CONFIG) -> PageRequest:
    """Coerce ``page`` to >= 1 and clamp ``limit`` to [1, max_page_size]."""
    valid_page = max(1, _coerce_int(page, 1))
    valid_limit = min(config.max_page_size, max(1, _coerce_int(limit, config.default_page_size)))
    return PageRequest(page=valid_page, limit=valid_limit)


# ── Sorting ──────────────────────────────────────────────────────────────


def sort_spec(field: Any = None, order: Any = None) -> Result[SortSpec]:
    """Build a sort key; ``name asc`` by default.

    Unknown field names are passed through unchanged.
    """
    errors: list[str] = []
    name = "name" if field is None else _text(field)
    if not name:
        errors.append("sort field must not be empty")
    direction = "asc" if order is None else _text(order).lower()
    if direction not in SORT_DIRECTIONS:
        errors.append("order must be 'asc' or 'desc'")
    if errors:
        return bad_request("Invalid sort parameters", errors)
    return Ok(SortSpec(field=SORT_FIELD_ALIASES.get(name, name), descending=direction == "desc"))


# ── Filters ──────────────────────────────────────────────────────────────


def _required(values: dict[str, Any]) -> Result[dict[str, str]]:
    cleaned = {name: _text(value) for name, value in values.items()}
    missing = [f"{name} is required" for name, value in cleaned.items() if not value]
    if missing:
        return bad_request("Missing required filter parameters", missing)
    return Ok(cleaned)


def text_search(query: Any) -> Result[Predicate]:
    """Match when ``name`` or ``cuisine`` contains ``query``."""
    result = _required({"q": query})
    if isinstance(result, Failure):
        return result
    q = result.value["q"]
    return Ok(AnyOf((Contains("name", q), Contains("cuisine", q))))


def cuisine_filter(cuisine: Any) -> Result[Predicate]:
    result = _required({"cuisine": cuisine})
    if isinstance(result, Failure):
        return result
    return Ok(Contains("cuisine", result.value["cuisine"]))


def borough_filter(borough: Any) -> Result[Predicate]:
    result = _required({"borough": borough})
    if isinstance(result, Failure):
        return result
    return Ok(Contains("borough", result.value["borough"]))


def cuisine_and_borough_filter(cuisine: Any, borough: Any) -> Result[Predicate]:
    result = _required({"cuisine": cuisine, "borough": borough})
    if isinstance(result, Failure):
        return result
    return Ok(
        AllOf((Contains("cuisine", result.value["cuisine"]), Contains("borough", result.value["borough"])))
    )


@dataclass(frozen=True)
class ScoreRange:
    minimum: float
    maximum: float


def score_range(
    min_score: Any = None,
    max_score: Any = None,
    config: QueryConfig = DEFAULT_QUERY_CONFIG,
) -> Result[ScoreRange]:
    """Clamp the bounds to the grade scale and reject inverted ranges."""
    errors: list[str] = []
    minimum = float(config.min_grade_score)
    maximum = float(config.max_grade_score)
    if min_score is not None:
        parsed = _parse_float(min_score)
        if parsed is None:
            errors.append("minScore must be a number")
        else:
            minimum = max(float(config.min_grade_score), parsed)
    if max_score is not None:
        parsed = _parse_float(max_score)
        if parsed is None:
            errors.append("maxScore must be a number")
        else:
            maximum = min(float(config.max_grade_score), parsed)
    if not errors and minimum > maximum:
        errors.append("minScore cannot be greater than maxScore")
    if errors:
        return bad_request("Invalid score range", errors)
    return Ok(ScoreRange(minimum=minimum, maximum=maximum))


@dataclass(frozen=True)
class NearQuery:
    longitude: float
    latitude: float
    radius_m: int


def near_query(
    lng: Any,
    lat: Any,
    radius: Any = None,
    config: QueryConfig = DEFAULT_QUERY_CONFIG,
) -> Result[NearQuery]:
    errors: list[str] = []
    longitude = _parse_float(lng)
    latitude = _parse_float(lat)
    if longitude is None:
        errors.append("lng is required and must be a number")
    elif not -180 <= longitude <= 180:
        errors.append("longitude must be between -180 and 180")
    if latitude is None:
        errors.append("lat is required and must be a number")
    elif not -90 <= latitude <= 90:
        errors.append("latitude must be between -90 and 90")
    if errors:
        return bad_request("Invalid coordinates", errors)
    radius_m = max(1, _coerce_int(radius, config.default_radius_m))
    return Ok(NearQuery(longitude=longitude, latitude=latitude, radius_m=radius_m))


def business_id(value: Any) -> Result[int]:
    if isinstance(value, bool):
        parsed = None
    elif isinstance(value, int):
        parsed = value
    else:
        text = _text(value)
        parsed = int(text) if text.isascii() and text.isdigit() else None
    if parsed is None or parsed < 1:
        return bad_request("Invalid business id", ["businessId must be a positive integer"])
    return Ok(parsed)
