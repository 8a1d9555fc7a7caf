"""
FastAPI application: one websocket endpoint carrying the JSON command/event protocol, plus a health check.

The transport owns nothing but the open sockets. Every frame is handed to the GameService, and the
events it returns are delivered while holding a single asyncio lock, so the order in which the server
processes commands is the order in which everybody receives the broadcasts.
"""

import asyncio
import contextlib
import logging
from typing import AsyncIterator, Optional
from uuid import UUID, uuid4

from fastapi import FastAPI, WebSocket, WebSocketDisconnect

from src.chess.game import Game
from src.core.config import Settings, configure_logging
from src.services.game_service import Audience, Dispatch, GameService

logger = logging.getLogger(__name__)


class ConnectionManager:
    """Keeps track of the open websockets and delivers events to the right audience."""

    def __init__(self) -> None:
        self.connections: dict[UUID, WebSocket] = {}

    def add(self, connection_id: UUID, websocket: WebSocket) -> None:
        self.connections[connection_id] = websocket

    def remove(self, connection_id: UUID) -> None:
        self.connections.pop(connection_id, None)

    def recipients(self, sender: Optional[UUID], audience: Audience) -> list[WebSocket]:
        if audience == Audience.SENDER:
            websocket = self.connections.get(sender) if sender is not None else None
            return [websocket] if websocket is not None else []
        if audience == Audience.OTHERS:
            return [ws for cid, ws in self.connections.items() if cid != sender]
        return list(self.connections.values())

    async def deliver(self, sender: Optional[UUID], dispatches: list[Dispatch]) -> None:
        for dispatch in dispatches:
            message = dispatch.event.to_message()
            for websocket in self.recipients(sender, dispatch.audience):
                try:
                    await websocket.send_json(message)
                except (WebSocketDisconnect, RuntimeError):
                    # the receive loop of that socket notices the disconnect and cleans up
                    logger.debug("Could not deliver %s to a closing socket", message["type"])


def create_app(settings: Optional[Settings] = None, game: Optional[Game] = None) -> FastAPI:
    """Build the app around an explicit game session (no module level state)."""
    settings = settings or Settings.from_env()
    service = GameService(game or Game(settings=settings))
    manager = ConnectionManager()
    delivery_lock = asyncio.Lock()

    async def _sweep_orphans_forever() -> None:
        while True:
            await asyncio.sleep(settings.orphan_sweep_interval_seconds)
            async with delivery_lock:
                await manager.deliver(None, service.sweep_orphans())

    @contextlib.asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        sweeper: Optional[asyncio.Task[None]] = None
        if settings.orphan_ttl_seconds is not None:
            sweeper = asyncio.create_task(_sweep_orphans_forever())
        logger.info("Max players: %d", settings.max_players)
        try:
            yield
        finally:
            if sweeper is not None:
                sweeper.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await sweeper

    app = FastAPI(
        title="Infinite Chess",
        description="Authoritative server for turn-less multiplayer chess on an unbounded board",
        version="1.0.0",
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.service = service

    @app.get("/health")
    def health() -> dict[str, object]:
        return {
            "status": "ok",
            "players": len(service.game.registry),
            "pieces": len(service.game.board),
        }

    @app.websocket("/ws")
    async def websocket_endpoint(websocket: WebSocket) -> None:
        await websocket.accept()
        connection_id = uuid4()
        async with delivery_lock:
            manager.add(connection_id, websocket)
            service.connect(connection_id)
        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    break
                async with delivery_lock:
                    dispatches = service.handle_json(connection_id, frame.get("text"))
                    await manager.deliver(connection_id, dispatches)
        except WebSocketDisconnect:
            pass
        finally:
            async with delivery_lock:
                manager.remove(connection_id)
                await manager.deliver(connection_id, service.disconnect(connection_id))

    return app


def run() -> None:
    """Entry point: `infinite-chess`"""
    import uvicorn

    settings = Settings.from_env()
    configure_logging(settings.log_level)
    logger.info("Infinite chess server running on port %d", settings.port)
    uvicorn.run(create_app(settings), host=settings.host, port=settings.port)


if __name__ == "__main__":
    run()
