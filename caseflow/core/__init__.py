"""Core application utilities.

FastAPI dependencies live in ``caseflow.core.dependencies`` and are not
re-exported here, since they import the service layer.
"""

from .config import Settings, get_settings
from .database import (
    async_session_factory,
    close_db,
    engine,
    get_session,
    get_session_context,
    init_db,
)
from .security import (
    create_access_token,
    decode_token,
    hash_content,
    verify_content_hash,
)

__all__ = [
    # Config
    "Settings",
    "get_settings",
    # Database
    "engine",
    "async_session_factory",
    "get_session",
    "get_session_context",
    "init_db",
    "close_db",
    # Security
    "create_access_token",
    "decode_token",
    "hash_content",
    "verify_content_hash",
]
