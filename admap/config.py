"""
Runtime settings for mapping passes.

Settings come from environment variables, optionally loaded from a .env
file. Database connection variables are the same ones PostgresClient reads:
SUPABASE_DB_URL, or SUPABASE_DB_HOST / PORT / NAME / USER / PASSWORD.
"""

import logging
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Union

from dotenv import load_dotenv

from .lookup.postgres_client import (
    DEFAULT_FETCH_LIMIT,
    DEFAULT_INSERT_CHUNK_SIZE,
    build_connection_string,
)
from .schema import SNAPSHOT_FORWARD_WINDOW_DAYS

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MappingSettings:
    db_url: Optional[str] = None
    fetch_limit: int = DEFAULT_FETCH_LIMIT
    insert_chunk_size: int = DEFAULT_INSERT_CHUNK_SIZE
    snapshot_forward_window_days: int = SNAPSHOT_FORWARD_WINDOW_DAYS


def _int_from_env(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        value = int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from None
    if value < 0:
        raise ValueError(f"{name} must not be negative, got {value}")
    return value


def _db_url_from_env() -> Optional[str]:
    """SUPABASE_DB_URL, or a URL built from the individual variables if they are all set."""
    db_url = os.getenv("SUPABASE_DB_URL")
    if db_url:
        return db_url

    host = os.getenv("SUPABASE_DB_HOST")
    if not host:
        return None
    return build_connection_string(
        host=host,
        port=_int_from_env("SUPABASE_DB_PORT", 5432),
        database=os.getenv("SUPABASE_DB_NAME"),
        user=os.getenv("SUPABASE_DB_USER"),
        password=os.getenv("SUPABASE_DB_PASSWORD")
    )


def load_settings(env_file: Optional[Union[str, Path]] = None) -> MappingSettings:
    """
    Load settings from the environment.

    Args:
        env_file: Optional .env file to load first. Variables already set in
                  the environment are not overridden.

    Returns:
        MappingSettings

    Raises:
        ValueError: If a numeric variable is not a valid integer, or if
                    SUPABASE_DB_HOST is set without the other connection variables
    """
    if env_file is not None:
        env_path = Path(env_file)
        if env_path.exists():
            load_dotenv(env_path)
        else:
            logger.warning(f"Environment file not found: {env_path}")

    return MappingSettings(
        db_url=_db_url_from_env(),
        fetch_limit=_int_from_env("ADMAP_FETCH_LIMIT", DEFAULT_FETCH_LIMIT),
        insert_chunk_size=_int_from_env("ADMAP_INSERT_CHUNK_SIZE", DEFAULT_INSERT_CHUNK_SIZE),
        snapshot_forward_window_days=_int_from_env(
            "ADMAP_SNAPSHOT_WINDOW_DAYS", SNAPSHOT_FORWARD_WINDOW_DAYS
        ),
    )
