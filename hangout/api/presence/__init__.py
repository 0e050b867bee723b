"""Presence API: last-seen touches and live sessions."""
from fastapi import APIRouter

from hangout.api.presence import routes_live, routes_presence

router = APIRouter()
router.include_router(routes_presence.router, prefix="/presence", tags=["presence"])
router.include_router(routes_live.router, prefix="/live", tags=["live"])
