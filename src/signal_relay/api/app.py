"""FastAPI application — observer WebSocket plus read-only REST views."""

from __future__ import annotations

import asyncio
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Optional

import structlog
from fastapi import FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware

from signal_relay.classifier import LLMSignalClassifier
from signal_relay.config.schema import AppConfig
from signal_relay.hub import Observer, ObserverHub
from signal_relay.logging import LogBuffer
from signal_relay.paper import PaperGateway
from signal_relay.router import EventRouter, SettingsStore
from signal_relay.sources import TelegramBotSource

logger = structlog.get_logger("api")


def build_router(config: AppConfig, log_buffer: LogBuffer | None = None) -> EventRouter:
    """Wire the production capabilities into a router."""
    return EventRouter(
        source=TelegramBotSource(config.telegram),
        gateway=PaperGateway(config.paper),
        classifier=LLMSignalClassifier(config.classifier),
        settings=SettingsStore(config.router.settings_path),
        hub=ObserverHub(config.api.observer_queue_size),
        config=config.router,
        log_buffer=log_buffer,
    )


async def _pump(websocket: WebSocket, observer: Observer) -> None:
    """Forward queued facts to one socket until the observer is closed."""
    while True:
        payload = await observer.next()
        if payload is None:
            break
        await websocket.send_json(payload)
    await websocket.close(code=1013)


def create_app(
    config: AppConfig | None = None,
    router: EventRouter | None = None,
    log_buffer: LogBuffer | None = None,
) -> FastAPI:
    """Build the app. The router is started and stopped with the app lifespan."""
    config = config or AppConfig()
    router = router or build_router(config, log_buffer)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        await router.start()
        logger.info("api_started", host=config.api.host, port=config.api.port)
        try:
            yield
        finally:
            await router.stop()

    app = FastAPI(
        title="Signal Relay API",
        description="Chat trading-signal relay: observer stream and state views",
        version="0.1.0",
        lifespan=lifespan,
    )
    app.state.router = router

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    def get_router(request: Request) -> EventRouter:
        return request.app.state.router

    @app.get("/api/health")
    async def health_check(request: Request):
        """Health check endpoint."""
        status = get_router(request).status()
        return {
            "status": "healthy",
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "source": status["source"],
            "gateway": status["gateway"],
            "observers": status["observers"],
        }

    @app.get("/api/channels")
    async def list_channels(request: Request):
        return {"channels": [c.to_wire() for c in get_router(request).channels]}

    @app.get("/api/account")
    async def get_account(request: Request):
        account = get_router(request).account
        return {"account": account.to_wire() if account else None}

    @app.get("/api/positions")
    async def list_positions(request: Request):
        return {"positions": [p.to_wire() for p in get_router(request).open_positions()]}

    @app.get("/api/markets")
    async def list_markets(request: Request):
        return {"markets": [q.to_wire() for q in get_router(request).markets]}

    @app.get("/api/history")
    async def list_history(request: Request, limit: int = 100):
        trades = sorted(get_router(request).history, key=lambda t: t.close_time, reverse=True)
        return {"trades": [t.to_wire() for t in trades[:limit]]}

    @app.get("/api/signals")
    async def list_signals(request: Request, status: Optional[str] = None):
        """Tracked signals, newest first, optionally filtered by status."""
        signals = get_router(request).tracked_signals()
        if status:
            signals = [s for s in signals if s.status == status]
        return {"signals": [s.to_wire() for s in reversed(signals)]}

    @app.websocket("/ws")
    async def observer_socket(websocket: WebSocket) -> None:
        """Facts out, commands in. The first frames are the full catch-up."""
        relay: EventRouter = websocket.app.state.router
        await websocket.accept()
        observer = relay.connect_observer()
        sender = asyncio.create_task(_pump(websocket, observer))
        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    break
                raw = frame.get("text")
                if raw is None:
                    raw = frame.get("bytes") or b""
                await relay.handle_raw(raw)
        except WebSocketDisconnect:
            pass
        finally:
            relay.disconnect_observer(observer)
            sender.cancel()
            await asyncio.gather(sender, return_exceptions=True)

    return app
