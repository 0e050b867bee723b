"""Notifications API: inbox and push devices."""
from fastapi import APIRouter

from hangout.api.notifications import routes_notifications

router = APIRouter()
router.include_router(routes_notifications.router, tags=["notifications"])
