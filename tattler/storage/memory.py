from __future__ import annotations

import copy
import json
import logging
import math
import re
import secrets
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import numpy as np
import pandas as pd

from .base import DocumentStore, DuplicateKeyError, InvalidIdError
from .config import DEFAULT_STORE_CONFIG, StoreConfig
from .geo import haversine_m
from .predicates import AllOf, AnyOf, Contains, Equals, Predicate, SortSpec, Window

logger = logging.getLogger(__name__)

_ID_PATTERN = re.compile(r"^[0-9a-f]{24}$")


def _new_id() -> str:
    return secrets.token_hex(12)


def _lookup(document: dict, path: str) -> Any:
    """Resolve a dotted path such as ``address.coord`` inside a document."""
    value: Any = document
    for part in path.split("."):
        if not isinstance(value, dict):
            return None
        value = value.get(part)
    return value


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


class MemoryDocumentStore(DocumentStore):
    """In-process collection of restaurant documents.

    Scans are evaluated over a pandas frame built from the documents, so the
    filter semantics (literal, case-insensitive substring matching) follow
    ``Series.str.contains``. Dict insertion order is the natural order.
    """

    def __init__(self, config: StoreConfig = DEFAULT_STORE_CONFIG) -> None:
        self._docs: dict[str, dict] = {}
        self._unique_fields = config.unique_fields

    @classmethod
    def from_config(cls, config: StoreConfig = DEFAULT_STORE_CONFIG) -> MemoryDocumentStore:
        store = cls(config)
        seed = config.seed_file
        if seed is not None:
            loaded = store.load(json.loads(Path(seed).read_text(encoding="utf-8")))
            logger.info("Seeded %d restaurants from %s", loaded, seed)
        return store

    def load(self, documents: Iterable[dict]) -> int:
        """Insert documents synchronously; used for seeding."""
        loaded = 0
        for document in documents:
            self._insert(document)
            loaded += 1
        return loaded

    # ── Internals ────────────────────────────────────────────────────────

    def _check_id(self, doc_id: str) -> None:
        if not isinstance(doc_id, str) or not _ID_PATTERN.match(doc_id):
            raise InvalidIdError(doc_id)

    def _check_unique(self, document: dict, exclude: str | None = None) -> None:
        for field in self._unique_fields:
            value = document.get(field)
            if value is None:
                continue
            for other_id, other in self._docs.items():
                if other_id != exclude and other.get(field) == value:
                    raise DuplicateKeyError(field, value)

    def _insert(self, document: dict) -> str:
        doc = copy.deepcopy(document)
        doc_id = doc.get("_id") or _new_id()
        self._check_id(doc_id)
        if doc_id in self._docs:
            raise DuplicateKeyError("_id", doc_id)
        self._check_unique(doc)
        doc["_id"] = doc_id
        self._docs[doc_id] = doc
        return doc_id

    def _frame(self) -> pd.DataFrame:
        frame = pd.json_normalize(list(self._docs.values()), max_level=1)
        frame.index = pd.Index(list(self._docs))
        return frame

    def _mask(self, frame: pd.DataFrame, predicate: Predicate) -> pd.Series:
        if isinstance(predicate, Contains):
            if predicate.field not in frame.columns:
                return pd.Series(False, index=frame.index)
            return (
                frame[predicate.field]
                .astype("string")
                .str.contains(predicate.value, case=False, regex=False, na=False)
                .astype(bool)
            )
        if isinstance(predicate, Equals):
            if predicate.field not in frame.columns:
                return pd.Series(False, index=frame.index)
            return frame[predicate.field].apply(lambda v: v == predicate.value).astype(bool)
        if isinstance(predicate, AnyOf):
            mask = pd.Series(False, index=frame.index)
            for clause in predicate.clauses:
                mask = mask | self._mask(frame, clause)
            return mask
        if isinstance(predicate, AllOf):
            mask = pd.Series(True, index=frame.index)
            for clause in predicate.clauses:
                mask = mask & self._mask(frame, clause)
            return mask
        raise TypeError(f"unsupported predicate {predicate!r}")

    def _matching(self, predicate: Predicate) -> pd.DataFrame:
        frame = self._frame()
        if frame.empty:
            return frame
        return frame[self._mask(frame, predicate)]

    def _page(self, ids: Iterable[str], window: Window) -> list[dict]:
        selected = list(ids)[window.skip : window.skip + window.limit]
        return [copy.deepcopy(self._docs[doc_id]) for doc_id in selected]

    def _averages(self, array_field: str, value_field: str) -> pd.Series:
        averages: dict[str, float] = {}
        for doc_id, doc in self._docs.items():
            scores = [
                item[value_field]
                for item in doc.get(array_field) or []
                if isinstance(item, dict) and isinstance(item.get(value_field), (int, float))
            ]
            averages[doc_id] = float(np.mean(scores)) if scores else np.nan
        return pd.Series(averages, dtype="float64")

    def _distances(self, field: str, longitude: float, latitude: float) -> pd.Series:
        ids: list[str] = []
        lngs: list[float] = []
        lats: list[float] = []
        for doc_id, doc in self._docs.items():
            coord = _lookup(doc, field)
            if not isinstance(coord, (list, tuple)) or len(coord) != 2:
                continue
            lng, lat = coord
            if not (_is_number(lng) and _is_number(lat)):
                continue
            ids.append(doc_id)
            lngs.append(float(lng))
            lats.append(float(lat))
        distances = haversine_m(
            np.asarray(lngs, dtype=float), np.asarray(lats, dtype=float), longitude, latitude
        )
        return pd.Series(distances, index=ids, dtype="float64")

    # ── Queries ──────────────────────────────────────────────────────────

    async def find(self, predicate: Predicate, sort: SortSpec, window: Window) -> list[dict]:
        matched = self._matching(predicate)
        if matched.empty:
            return []
        if sort.field in matched.columns:
            try:
                matched = matched.sort_values(
                    sort.field,
                    ascending=not sort.descending,
                    kind="stable",
                    na_position="last",
                )
            except TypeError:
                logger.debug("Field %r is not sortable, keeping natural order", sort.field)
        return self._page(matched.index, window)

    async def count(self, predicate: Predicate) -> int:
        return len(self._matching(predicate))

    async def find_one(self, predicate: Predicate) -> dict | None:
        matched = self._matching(predicate)
        if matched.empty:
            return None
        return copy.deepcopy(self._docs[matched.index[0]])

    async def find_by_id(self, doc_id: str) -> dict | None:
        self._check_id(doc_id)
        doc = self._docs.get(doc_id)
        return copy.deepcopy(doc) if doc is not None else None

    async def max_value(self, field: str) -> Any | None:
        values = [doc[field] for doc in self._docs.values() if doc.get(field) is not None]
        return max(values) if values else None

    async def find_by_average(
        self,
        array_field: str,
        value_field: str,
        minimum: float,
        maximum: float,
        window: Window,
    ) -> list[tuple[dict, float]]:
        averages = self._averages(array_field, value_field)
        matched = averages[averages.between(minimum, maximum)].sort_values(kind="stable")
        selected = matched.iloc[window.skip : window.skip + window.limit]
        return [(copy.deepcopy(self._docs[doc_id]), float(avg)) for doc_id, avg in selected.items()]

    async def count_by_average(
        self, array_field: str, value_field: str, minimum: float, maximum: float
    ) -> int:
        averages = self._averages(array_field, value_field)
        return int(averages.between(minimum, maximum).sum())

    async def find_near(
        self,
        field: str,
        longitude: float,
        latitude: float,
        max_distance_m: float,
        window: Window,
    ) -> list[tuple[dict, float]]:
        distances = self._distances(field, longitude, latitude)
        matched = distances[distances <= max_distance_m].sort_values(kind="stable")
        selected = matched.iloc[window.skip : window.skip + window.limit]
        return [(copy.deepcopy(self._docs[doc_id]), float(d)) for doc_id, d in selected.items()]

    async def count_near(
        self, field: str, longitude: float, latitude: float, max_distance_m: float
    ) -> int:
        distances = self._distances(field, longitude, latitude)
        return int((distances <= max_distance_m).sum())

    # ── Writes ───────────────────────────────────────────────────────────

    async def insert_one(self, document: dict) -> str:
        return self._insert(document)

    async def update_one(self, doc_id: str, fields: dict) -> dict | None:
        self._check_id(doc_id)
        current = self._docs.get(doc_id)
        if current is None:
            return None
        candidate = copy.deepcopy(current)
        candidate.update(copy.deepcopy({k: v for k, v in fields.items() if k != "_id"}))
        self._check_unique(candidate, exclude=doc_id)
        self._docs[doc_id] = candidate
        return copy.deepcopy(candidate)

    async def push(self, doc_id: str, field: str, item: dict) -> dict | None:
        self._check_id(doc_id)
        current = self._docs.get(doc_id)
        if current is None:
            return None
        sequence = current.get(field)
        if not isinstance(sequence, list):
            sequence = current[field] = []
        sequence.append(copy.deepcopy(item))
        return copy.deepcopy(current)

    async def delete_one(self, doc_id: str) -> int:
        self._check_id(doc_id)
        return 1 if self._docs.pop(doc_id, None) is not None else 0

    async def close(self) -> None:
        logger.info("Closing in-memory store with %d restaurants", len(self._docs))
