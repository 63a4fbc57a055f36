"""Browser event channel."""

import json

from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect

from mcp_inspector.session import DEFAULT_SESSION_ID, SessionManager

events_router = APIRouter(tags=["Events"])


@events_router.websocket("/ws")
async def event_channel(
    websocket: WebSocket,
    session: str = Query(default=DEFAULT_SESSION_ID),
) -> None:
    """Push ConnectionStatus, ToolResponse, MetricsUpdate and Error events.

    A ``{"type": "ping"}`` frame is answered with the current
    ConnectionStatus; other frames are ignored.
    """
    manager: SessionManager = websocket.app.state.session_manager
    await websocket.accept()
    browser_session = await manager.attach_channel(session, websocket)

    try:
        while True:
            text = await websocket.receive_text()
            try:
                message = json.loads(text)
            except ValueError:
                continue
            if isinstance(message, dict) and message.get("type") == "ping":
                browser_session.touch()
                if browser_session.relay.channel is websocket:
                    browser_session.relay.publish(browser_session.status())
                else:
                    await websocket.send_json(browser_session.status().model_dump(mode="json"))
    except WebSocketDisconnect:
        pass
    finally:
        await manager.detach_channel(session, websocket)
