"""Rate limiting for the public signing endpoint using slowapi."""

from slowapi import Limiter
from starlette.requests import Request

from openletter.core.config import settings


def _get_real_client_ip(request: Request) -> str:
    """Extract the signer's IP behind the frontend proxy / CDN."""
    return (
        request.headers.get("CF-Connecting-IP")
        or request.headers.get("X-Forwarded-For", "").split(",")[0].strip()
        or (request.client.host if request.client else "127.0.0.1")
    )


def sign_rate_limit() -> str:
    """Limit string for POST /letters/{slug}/{locale}/sign, read at request time."""
    return settings.sign_rate_limit


limiter = Limiter(key_func=_get_real_client_ip)
