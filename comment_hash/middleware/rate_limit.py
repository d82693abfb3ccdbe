from slowapi import Limiter
from starlette.requests import Request

from comment_hash.config import settings


def get_client_ip(request: Request) -> str:
    """Client IP for rate limiting.

    Behind a reverse proxy the original client is the first entry of
    X-Forwarded-For; that header is only honoured when TRUST_FORWARDED_FOR
    is set, since a directly exposed server would let clients pick their key.
    """
    if settings.trust_forwarded_for:
        forwarded = request.headers.get("X-Forwarded-For")
        if forwarded:
            return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


limiter = Limiter(key_func=get_client_ip)
