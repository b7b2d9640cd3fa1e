"""Shared rate limiter instance for use across route files."""

from slowapi import Limiter
from slowapi.util import get_remote_address
from fastapi import Request

from inventory_engine.core.config import settings


def get_actor_or_ip(request: Request) -> str:
    """Rate limit by acting user if the caller identified one, else by IP."""
    actor = request.headers.get("X-Actor-Id")
    if actor:
        return f"actor:{actor}"
    return get_remote_address(request)


limiter = Limiter(key_func=get_actor_or_ip, enabled=settings.rate_limit_enabled)
