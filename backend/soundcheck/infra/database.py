from functools import lru_cache
from typing import Optional

from sqlalchemy import create_engine

from soundcheck.config import load_settings


@lru_cache(maxsize=4)
def get_engine(database_url: Optional[str] = None):
    database_url = database_url or load_settings().require_database()
    return create_engine(database_url, future=True)
