"""Rooms API: rooms, membership and roles."""
from fastapi import APIRouter

from hangout.api.rooms import routes_rooms

router = APIRouter()
router.include_router(routes_rooms.router, prefix="/rooms", tags=["rooms"])
