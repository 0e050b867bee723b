"""Chat API: room messages, direct messages, reactions."""
from fastapi import APIRouter

from hangout.api.chat import routes_chat

router = APIRouter()
router.include_router(routes_chat.router, tags=["chat"])
