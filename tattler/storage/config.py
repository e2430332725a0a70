from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class StoreConfig:
    """
    Configuration for the in-process document store.

    ``seed_path`` points at a JSON array of restaurant documents loaded once
    at startup; an empty value starts with an empty collection.
    """

    seed_path: str = os.getenv("TATTLER_SEED_PATH", "")
    unique_fields: tuple[str, ...] = ("business_id",)

    @property
    def seed_file(self) -> Path | None:
        return Path(self.seed_path) if self.seed_path else None


DEFAULT_STORE_CONFIG = StoreConfig()
