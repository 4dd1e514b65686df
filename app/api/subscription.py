#app/api/subscription.py
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status
from typing import Optional
import logging
import uuid

from app.core.exceptions import AuthError
from app.core.security import decode_auth_token

router = APIRouter(tags=["Subscriptions"])
logger = logging.getLogger("Teamwork.Subscriptions")

@router.websocket("/subscriptions/{topic}")
async def subscribe(
    websocket: WebSocket,
    topic: str,
    token: str = Query(...),
    socket_id: Optional[str] = Query(None, alias="socketId"),
):
    """
    Подписка соединения на topic для пользователя из токена.
    socketId потом приходит в X-Socket-Id мутаций, чтобы не слать эхо.
    """
    try:
        auth_token = decode_auth_token(token)
    except AuthError:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    await websocket.accept()
    fanout = websocket.app.state.fanout
    subscription = fanout.subscribe(topic, auth_token.sub, socket_id or uuid.uuid4().hex, websocket.send_json)
    await websocket.send_json({"type": "subscribed", "topic": topic, "socketId": subscription.connection_id})
    try:
        while True:
            await websocket.receive_text()
    except WebSocketDisconnect:
        logger.debug(f"Socket {subscription.connection_id} disconnected from {topic}")
    finally:
        fanout.unsubscribe(subscription)
