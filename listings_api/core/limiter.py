from slowapi import Limiter
from slowapi.util import get_remote_address

from listings_api.core.config import settings

# In-memory by default; point RATE_LIMIT_STORAGE_URI at redis:// to share limits across workers
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.rate_limit_storage_uri,
    enabled=settings.rate_limit_enabled,
)
