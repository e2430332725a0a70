"""Typed outcomes for engine operations.

Operations return ``Ok(value)`` or a ``Failure``; nothing is raised across the
engine boundary. The transport decides how each ``ErrorKind`` is rendered.
"""
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Generic, TypeVar, Union

T = TypeVar("T")


class ErrorKind(str, Enum):
    bad_request = "bad_request"
    not_found = "not_found"
    conflict = "conflict"
    internal = "internal"


@dataclass(frozen=True)
class Ok(Generic[T]):
    value: T


@dataclass(frozen=True)
class Failure:
    kind: ErrorKind
    message: str
    errors: tuple[str, ...] = ()


Result = Union[Ok[T], Failure]


def bad_request(message: str, errors: list[str] | tuple[str, ...] = ()) -> Failure:
    return Failure(ErrorKind.bad_request, message, tuple(errors))


def not_found(message: str) -> Failure:
    return Failure(ErrorKind.not_found, message)


def conflict(message: str) -> Failure:
    return Failure(ErrorKind.conflict, message)


def internal(message: str) -> Failure:
    return Failure(ErrorKind.internal, message)
