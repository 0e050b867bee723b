"""WebSocket subscriptions to user and room topics. Auth via ?token= query param."""
import logging

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect, status
from sqlalchemy.ext.asyncio import AsyncSession

from hangout.api.deps import get_db, user_id_from_token
from hangout.domain.common.types import room_topic, user_topic
from hangout.infra.db.repositories.room_repo import RoomRepositoryImpl
from hangout.infra.db.repositories.user_repo import UserRepositoryImpl
from hangout.infra.realtime.ws_manager import ws_manager

logger = logging.getLogger(__name__)

router = APIRouter()


async def _serve(websocket: WebSocket, topic: str, user_id: str) -> None:
    await ws_manager.connect(topic, user_id, websocket)
    try:
        await websocket.send_json({"type": "connection.established", "topic": topic, "payload": {}})
        while True:
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass
    except (RuntimeError, ConnectionError) as e:
        logger.debug("WS %s closed: %s", topic, e)
    finally:
        await ws_manager.disconnect(topic, user_id, websocket)


@router.websocket("/user")
async def user_ws(websocket: WebSocket, db: AsyncSession = Depends(get_db)):
    """Personal topic: friend requests/responses, direct messages, notifications."""
    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Authentication required")
        return
    user_id = user_id_from_token(token)
    if not user_id or await UserRepositoryImpl(db).get_by_id(user_id) is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Invalid token")
        return
    await _serve(websocket, user_topic(user_id), user_id)


@router.websocket("/rooms/{room_id}")
async def room_ws(websocket: WebSocket, room_id: str, db: AsyncSession = Depends(get_db)):
    """Room topic: messages, reactions and membership changes. Active members only."""
    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Authentication required")
        return
    user_id = user_id_from_token(token)
    if not user_id:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Invalid token")
        return
    repo = RoomRepositoryImpl(db)
    room = await repo.get_by_slug(room_id)
    membership = await repo.get_membership(room.id, user_id) if room else None
    if membership is None or not membership.is_active:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason="Not a member of this room")
        return
    await _serve(websocket, room_topic(room_id), user_id)
