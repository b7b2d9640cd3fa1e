"""Explicit caller context passed into engine operations."""

from dataclasses import dataclass
from typing import Optional

from fastapi import Request

from inventory_engine.core.config import settings


@dataclass(frozen=True)
class EngineContext:
    """Who is acting and which location applies when a request names none."""

    actor_id: Optional[int] = None
    actor_name: Optional[str] = None
    default_location_id: Optional[int] = None


def get_engine_context(request: Request) -> EngineContext:
    """Build the engine context from request headers and settings.

    Authentication is handled upstream; the actor arrives as
    ``X-Actor-Id`` / ``X-Actor-Name`` headers.
    """
    raw_id = request.headers.get("X-Actor-Id")
    actor_id = int(raw_id) if raw_id and raw_id.isdigit() else None
    return EngineContext(
        actor_id=actor_id,
        actor_name=request.headers.get("X-Actor-Name"),
        default_location_id=settings.default_location_id,
    )
