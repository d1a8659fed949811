"""FastAPI dependencies for injection."""
from core.auth import get_current_user, get_optional_user
from core.config import get_settings
from core.rate_limiter import enforce_rate_limit
from db.session import get_async_session
from services.blob_store import get_blob_store
from services.unsplash_client import get_unsplash_client

__all__ = [
    "enforce_rate_limit",
    "get_async_session",
    "get_blob_store",
    "get_current_user",
    "get_optional_user",
    "get_settings",
    "get_unsplash_client",
]
