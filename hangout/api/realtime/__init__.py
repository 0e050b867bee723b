"""Real-time WebSocket API."""
from fastapi import APIRouter

from hangout.api.realtime import routes_ws

router = APIRouter()
router.include_router(routes_ws.router, prefix="/ws", tags=["realtime"])
