"""Structural rules for restaurant payloads.

Each ``validate_*`` function returns the full list of violated rules (empty
when the input is valid) rather than stopping at the first problem. Input
models accept any JSON value for their fields, so type mismatches are
reported here alongside missing fields.
"""
from __future__ import annotations

from typing import Any

from .config import DEFAULT_QUERY_CONFIG, QueryConfig
from .models import (
    AddressIn,
    CommentIn,
    GradeIn,
    RestaurantCreate,
    RestaurantFields,
    RestaurantPatch,
    finite_number,
    integral,
    parse_date,
)

REQUIRED_TEXT_FIELDS = ("name", "cuisine", "borough")
ADDRESS_TEXT_FIELDS = ("building", "street", "zipcode")


def _non_empty(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def _validate_date(value: Any, prefix: str) -> list[str]:
    if value is None:
        return [f"{prefix}.date is required"]
    if parse_date(value) is None:
        return [f"{prefix}.date must be a valid date"]
    return []


def validate_address(address: AddressIn | None) -> list[str]:
    if address is None:
        return ["address is required"]

    errors: list[str] = []
    for name in ADDRESS_TEXT_FIELDS:
        if not _non_empty(getattr(address, name)):
            errors.append(f"address.{name} is required and must be a non-empty string")

    coord = address.coordinate
    if coord is None:
        errors.append("address.coordinate is required")
    elif not isinstance(coord, (list, tuple)) or len(coord) != 2:
        errors.append("address.coordinate must have exactly 2 elements [longitude, latitude]")
    elif any(finite_number(c) is None for c in coord):
        errors.append("address.coordinate must contain finite numbers [longitude, latitude]")
    else:
        lng, lat = coord
        if not -180 <= lng <= 180:
            errors.append("longitude must be between -180 and 180")
        if not -90 <= lat <= 90:
            errors.append("latitude must be between -90 and 90")
    return errors


def validate_grade(
    grade: GradeIn, index: int | None = None, config: QueryConfig = DEFAULT_QUERY_CONFIG
) -> list[str]:
    prefix = f"grades[{index}]" if index is not None else "grade"
    errors = _validate_date(grade.date, prefix)
    score = integral(grade.score)
    if score is None:
        errors.append(f"{prefix}.score is required and must be an integer")
    elif not config.min_grade_score <= score <= config.max_grade_score:
        errors.append(
            f"{prefix}.score must be between {config.min_grade_score} and {config.max_grade_score}"
        )
    return errors


def validate_comment(
    comment: CommentIn, index: int | None = None, config: QueryConfig = DEFAULT_QUERY_CONFIG
) -> list[str]:
    prefix = f"comments[{index}]" if index is not None else "comment"
    errors: list[str] = []
    if not _non_empty(comment.text):
        errors.append(f"{prefix}.text is required and must be a non-empty string")
    elif not config.min_comment_length <= len(comment.text.strip()) <= config.max_comment_length:
        errors.append(
            f"{prefix}.text must be between {config.min_comment_length} "
            f"and {config.max_comment_length} characters"
        )
    errors.extend(_validate_date(comment.date, prefix))
    return errors


def _validate_sequences(payload: RestaurantFields, fields: set[str], config: QueryConfig) -> list[str]:
    errors: list[str] = []
    if "grades" in fields:
        if payload.grades is None:
            errors.append("grades must be an array")
        else:
            for i, grade in enumerate(payload.grades):
                errors.extend(validate_grade(grade, i, config))
    if "comments" in fields:
        if payload.comments is None:
            errors.append("comments must be an array")
        else:
            for i, comment in enumerate(payload.comments):
                errors.extend(validate_comment(comment, i, config))
    return errors


def _validate_business_id(value: Any) -> list[str]:
    parsed = integral(value)
    if parsed is None or parsed < 1:
        return ["businessId must be a positive integer"]
    return []


def validate_restaurant(payload: RestaurantCreate, config: QueryConfig = DEFAULT_QUERY_CONFIG) -> list[str]:
    """Rules for a complete restaurant (create and full update)."""
    errors: list[str] = []
    for name in REQUIRED_TEXT_FIELDS:
        if not _non_empty(getattr(payload, name)):
            errors.append(f"{name} is required and must be a non-empty string")
    errors.extend(validate_address(payload.address))
    if payload.business_id is not None:
        errors.extend(_validate_business_id(payload.business_id))
    supplied = {f for f in ("grades", "comments") if getattr(payload, f) is not None}
    errors.extend(_validate_sequences(payload, supplied, config))
    return errors


def validate_patch(patch: RestaurantPatch, config: QueryConfig = DEFAULT_QUERY_CONFIG) -> list[str]:
    """Rules for a partial update: only supplied fields are checked."""
    supplied = patch.supplied()
    if not supplied:
        return ["request body cannot be empty"]

    errors: list[str] = []
    for name in REQUIRED_TEXT_FIELDS:
        if name in supplied and not _non_empty(getattr(patch, name)):
            errors.append(f"{name} must be a non-empty string")
    if "business_id" in supplied:
        errors.extend(_validate_business_id(patch.business_id))
    if "address" in supplied:
        errors.extend(validate_address(patch.address))
    errors.extend(_validate_sequences(patch, supplied, config))
    return errors
