"""WebSocket endpoint for vocabulary change notifications.

Events look like ``{"type": "vocabulary_updated", "id": 7, "owner_id": "u1"}``.
A client may send ``ping`` at any time and gets ``{"type": "pong"}`` back.
"""

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from vocab_capture.services.vocabulary_service import manager

router = APIRouter()


@router.websocket("/ws/vocabulary/{owner_id}")
async def vocabulary_ws(websocket: WebSocket, owner_id: str):
    await manager.connect(owner_id, websocket)
    try:
        while True:
            message = await websocket.receive_text()
            if message.strip() == "ping":
                await websocket.send_json({"type": "pong"})
    except WebSocketDisconnect:
        manager.disconnect(owner_id, websocket)
