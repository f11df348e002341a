"""WebSocket endpoint with JWT auth."""

from __future__ import annotations

import logging

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from proxalert.core.security import user_id_from_token
from proxalert.core.ws_manager import ws_manager
from proxalert.db.session import SessionLocal
from proxalert.services.user_service import get_active_user

logger = logging.getLogger(__name__)

router = APIRouter()


def _authenticate_ws(token: str) -> int | None:
    """Validate JWT and return user_id, or None."""
    user_id = user_id_from_token(token)
    if user_id is None:
        return None
    db = SessionLocal()
    try:
        user = get_active_user(db, user_id)
        return user.id if user else None
    finally:
        db.close()


@router.websocket("/ws")
async def websocket_endpoint(websocket: WebSocket):
    """
    WebSocket endpoint. Client connects with ?token=<jwt>.
    Server pushes events: nearby, sos, sos_resolved
    """
    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=4001, reason="Missing token")
        return

    user_id = _authenticate_ws(token)
    if user_id is None:
        await websocket.close(code=4003, reason="Invalid or expired token")
        return

    await ws_manager.connect(websocket, user_id)
    try:
        while True:
            # Clients send "ping" as a heartbeat
            data = await websocket.receive_text()
            if data == "ping":
                await websocket.send_text('{"event":"pong"}')
    except WebSocketDisconnect:
        pass
    finally:
        ws_manager.disconnect(websocket, user_id)
