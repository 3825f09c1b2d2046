from __future__ import annotations

import contextlib
from typing import TYPE_CHECKING

import structlog
from starlette.applications import Starlette
from starlette.middleware.cors import CORSMiddleware
from starlette.responses import JSONResponse
from starlette.routing import Route, WebSocketRoute

from office.messaging.router import MessageRouter
from office.server.settings import RelayServerSettings
from office.server.websocket import websocket_endpoint
from office.session.heartbeat import HeartbeatMonitor
from office.session.room_manager import RoomManager
from shared.build_info import APP_VERSION, GIT_COMMIT
from shared.logging import setup_logging

logger = structlog.get_logger()

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

    from starlette.requests import Request
    from starlette.websockets import WebSocket


async def health(_request: Request) -> JSONResponse:
    return JSONResponse({"status": "ok", "version": APP_VERSION, "commit": GIT_COMMIT})


async def status(request: Request) -> JSONResponse:
    room_manager: RoomManager = request.app.state.room_manager
    settings: RelayServerSettings = request.app.state.settings
    return JSONResponse(
        {
            "status": "ok",
            "version": APP_VERSION,
            "commit": GIT_COMMIT,
            "rooms": room_manager.room_count,
            "players": room_manager.player_count,
            "max_rooms": settings.max_rooms,
        },
    )


def create_app(
    settings: RelayServerSettings | None = None,
    room_manager: RoomManager | None = None,
    heartbeat: HeartbeatMonitor | None = None,
    message_router: MessageRouter | None = None,
) -> Starlette:
    if settings is None:  # pragma: no cover
        settings = RelayServerSettings()

    if heartbeat is None:
        heartbeat = HeartbeatMonitor(timeout=settings.heartbeat_timeout_seconds)

    if room_manager is None:
        room_manager = RoomManager(
            heartbeat=heartbeat,
            max_rooms=settings.max_rooms,
            max_players_per_room=settings.max_players_per_room,
            empty_room_ttl_seconds=settings.empty_room_ttl_seconds,
            snapshot_interval_seconds=settings.snapshot_interval_seconds,
        )

    if message_router is None:
        message_router = MessageRouter(room_manager)

    async def ws_endpoint(websocket: WebSocket) -> None:
        await websocket_endpoint(websocket, message_router)

    @contextlib.asynccontextmanager
    async def lifespan(_app: Starlette) -> AsyncIterator[None]:
        heartbeat.start()
        room_manager.start_snapshot_loop()
        logger.info("relay server ready", max_rooms=settings.max_rooms)
        try:
            yield
        finally:
            await room_manager.shutdown()
            await heartbeat.stop()

    routes = [
        Route("/health", health, methods=["GET"]),
        Route("/status", status, methods=["GET"]),
        WebSocketRoute("/ws", ws_endpoint),
    ]

    app = Starlette(routes=routes, lifespan=lifespan)
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_methods=["GET"],
        allow_headers=["Content-Type"],
    )
    app.state.settings = settings
    app.state.room_manager = room_manager
    app.state.heartbeat = heartbeat
    return app


def get_app() -> Starlette:  # pragma: no cover
    """ASGI application factory for production use (``uvicorn --factory office.server.app:get_app``)."""
    settings = RelayServerSettings()
    setup_logging(log_dir=settings.log_dir)
    return create_app(settings=settings)
