from __future__ import annotations

import logging
import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

# Load .env from project root
load_dotenv(Path(__file__).resolve().parent.parent / ".env")


@dataclass(frozen=True)
class AppConfig:
    title: str = "Tattler Restaurant Directory API"
    version: str = "1.1.0"
    api_prefix: str = os.getenv("API_PREFIX", "/api/v1")
    cors_origin: str = os.getenv("CORS_ORIGIN", "*")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")


DEFAULT_APP_CONFIG = AppConfig()


def setup_logging(config: AppConfig = DEFAULT_APP_CONFIG) -> None:
    """Configure root logging for the service."""
    logging.basicConfig(
        level=getattr(logging, config.log_level.upper(), logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
