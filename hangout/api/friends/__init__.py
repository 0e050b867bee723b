"""Friends API."""
from fastapi import APIRouter

from hangout.api.friends import routes_friends

router = APIRouter()
router.include_router(routes_friends.router, prefix="/friends", tags=["friends"])
