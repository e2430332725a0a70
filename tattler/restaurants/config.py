from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent.parent / ".env")


@dataclass(frozen=True)
class QueryConfig:
    default_page_size: int = int(os.getenv("DEFAULT_PAGE_SIZE", "20"))
    max_page_size: int = int(os.getenv("MAX_PAGE_SIZE", "100"))
    min_grade_score: int = int(os.getenv("MIN_GRADE_SCORE", "0"))
    max_grade_score: int = int(os.getenv("MAX_GRADE_SCORE", "30"))
    min_comment_length: int = int(os.getenv("MIN_COMMENT_LENGTH", "3"))
    max_comment_length: int = int(os.getenv("MAX_COMMENT_LENGTH", "500"))
    default_radius_m: int = 5000
    first_business_id: int = 1000
    id_assign_retries: int = int(os.getenv("ID_ASSIGN_RETRIES", "3"))


DEFAULT_QUERY_CONFIG = QueryConfig()
