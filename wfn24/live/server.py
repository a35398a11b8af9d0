"""Live-update relay server.

Separate process from the web app. Browsers connect to /ws and subscribe to
match or league channels; the web app pushes events through POST /broadcast.

Run with: python -m wfn24.live.server
"""

import logging
from typing import Any, Awaitable, Callable, Dict, Optional

from fastapi import FastAPI, Header, HTTPException, WebSocket, WebSocketDisconnect
from pydantic import BaseModel

from config.settings import settings
from wfn24.live.relay import ChannelRelay, channel_for

logger = logging.getLogger("live.server")

MessageHandler = Callable[[ChannelRelay, Dict[str, Any], WebSocket], Awaitable[Dict[str, Any]]]


# ============================================================================
# Message Handlers
# ============================================================================

async def handle_ping(relay: ChannelRelay, data: Dict[str, Any], websocket: WebSocket) -> Dict[str, Any]:
    return {"type": "pong"}


async def handle_subscribe_match(relay: ChannelRelay, data: Dict[str, Any], websocket: WebSocket) -> Dict[str, Any]:
    if data.get("match_id") is None:
        return {"type": "error", "error": "match_id required"}
    channel = channel_for("match", data["match_id"])
    await relay.subscribe(websocket, channel)
    return {"type": "subscribed", "channel": channel}


async def handle_subscribe_league(relay: ChannelRelay, data: Dict[str, Any], websocket: WebSocket) -> Dict[str, Any]:
    if data.get("league_id") is None:
        return {"type": "error", "error": "league_id required"}
    channel = channel_for("league", data["league_id"])
    await relay.subscribe(websocket, channel)
    return {"type": "subscribed", "channel": channel}


async def handle_unsubscribe(relay: ChannelRelay, data: Dict[str, Any], websocket: WebSocket) -> Dict[str, Any]:
    channel = data.get("channel")
    if not channel:
        return {"type": "error", "error": "channel required"}
    removed = await relay.unsubscribe(websocket, channel)
    return {"type": "unsubscribed", "channel": channel, "was_subscribed": removed}


MESSAGE_HANDLERS: Dict[str, MessageHandler] = {
    "ping": handle_ping,
    "subscribe_match": handle_subscribe_match,
    "subscribe_league": handle_subscribe_league,
    "unsubscribe": handle_unsubscribe,
}


class BroadcastRequest(BaseModel):
    """Server push: `event` goes to `channel`, or to everyone when channel is omitted"""
    channel: Optional[str] = None
    event: Dict[str, Any]


def create_relay_app(relay: Optional[ChannelRelay] = None, secret: Optional[str] = None) -> FastAPI:
    """
    Build the relay application.

    Args:
        relay: Channel registry (a fresh one by default)
        secret: Required X-Relay-Secret header value for /broadcast, if set
    """
    relay = relay or ChannelRelay()
    secret = secret if secret is not None else settings.relay_secret

    app = FastAPI(title="WFN24 Live Relay")
    app.state.relay = relay

    @app.get("/health")
    def health_check():
        return {
            "status": "ok",
            "connections": relay.connection_count,
            "channels": relay.channels(),
        }

    @app.post("/broadcast")
    async def broadcast(
        request: BroadcastRequest,
        x_relay_secret: Optional[str] = Header(default=None),
    ):
        if secret and x_relay_secret != secret:
            raise HTTPException(status_code=403, detail="Invalid relay secret")
        if request.channel:
            delivered = await relay.broadcast_to_channel(request.channel, request.event)
        else:
            delivered = await relay.broadcast_to_all(request.event)
        return {"success": True, "channel": request.channel, "delivered": delivered}

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket):
        await relay.connect(websocket)
        try:
            while True:
                try:
                    data = await websocket.receive_json()
                except ValueError:
                    await websocket.send_json({"type": "error", "error": "Invalid JSON"})
                    continue

                if not isinstance(data, dict):
                    await websocket.send_json({"type": "error", "error": "Expected a JSON object"})
                    continue

                handler = MESSAGE_HANDLERS.get(data.get("type"))
                if handler is None:
                    await websocket.send_json(
                        {"type": "error", "error": f"Unknown message type: {data.get('type')}"}
                    )
                    continue

                await websocket.send_json(await handler(relay, data, websocket))
        except WebSocketDisconnect:
            pass
        finally:
            await relay.disconnect(websocket)

    return app


def main() -> None:
    import uvicorn

    from wfn24.logging_config import configure_logging

    configure_logging()
    logger.info(f"Starting live relay on {settings.relay_host}:{settings.relay_port}")
    uvicorn.run(create_relay_app(), host=settings.relay_host, port=settings.relay_port)


if __name__ == "__main__":
    main()
