from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Union


@dataclass(frozen=True)
class Contains:
    """Case-insensitive literal substring match on a stored field."""

    field: str
    value: str


@dataclass(frozen=True)
class Equals:
    field: str
    value: Any


@dataclass(frozen=True)
class AnyOf:
    clauses: tuple[Predicate, ...]


@dataclass(frozen=True)
class AllOf:
    """Conjunction of clauses. An empty conjunction matches every document."""

    clauses: tuple[Predicate, ...] = ()


Predicate = Union[Contains, Equals, AnyOf, AllOf]

MATCH_ALL = AllOf()


@dataclass(frozen=True)
class SortSpec:
    field: str = "name"
    descending: bool = False


@dataclass(frozen=True)
class Window:
    skip: int = 0
    limit: int = 20
