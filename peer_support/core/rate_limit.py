from slowapi import Limiter
from slowapi.util import get_remote_address
from peer_support.core.config import settings

# Global Rate Limiter instance using remote address as key
limiter = Limiter(
    key_func=get_remote_address,
    storage_uri=settings.RATE_LIMIT_STORAGE_URI
)
