"""FastAPI application exposing the realtime WebSocket topics."""

import asyncio
import logging
from contextlib import asynccontextmanager, suppress
from dataclasses import dataclass
from typing import Annotated, Awaitable, Callable, Optional

from fastapi import Depends, FastAPI, Request, WebSocket, WebSocketDisconnect
from fastapi.middleware.cors import CORSMiddleware
from dotenv import load_dotenv

from app.core.config import Settings, get_settings
from app.core.events import COUNT_TOPIC, DISPLAY_TOPIC, INTERACTION_TOPIC, LocalPubSub, Subscription
from app.core.logging import configure_logging
from app.schemas import CountUpdate, HealthStatus, StartInfo

from .broadcaster import PeriodicBroadcaster
from .lifecycle import ConnectionLifecycleManager
from .registry import PositionRegistry

LOGGER = logging.getLogger("crowdpointer.network")

MessageHandler = Callable[[str], Awaitable[None]]


@dataclass
class Dependencies:
    settings: Settings
    registry: PositionRegistry
    pubsub: LocalPubSub
    lifecycle: ConnectionLifecycleManager
    broadcaster: PeriodicBroadcaster


def create_dependencies(settings: Optional[Settings] = None) -> Dependencies:
    load_dotenv()
    settings = settings or get_settings()
    registry = PositionRegistry()
    pubsub = LocalPubSub()
    lifecycle = ConnectionLifecycleManager(registry, pubsub)
    broadcaster = PeriodicBroadcaster(registry, pubsub, interval=settings.broadcast_interval)
    return Dependencies(
        settings=settings,
        registry=registry,
        pubsub=pubsub,
        lifecycle=lifecycle,
        broadcaster=broadcaster,
    )


async def _wait_for_disconnect(websocket: WebSocket, on_message: Optional[MessageHandler]) -> None:
    while True:
        message = await websocket.receive()
        if message["type"] == "websocket.disconnect":
            return
        text = message.get("text")
        if text is None and message.get("bytes") is not None:
            text = message["bytes"].decode("utf-8", errors="replace")
        if on_message is not None and text is not None:
            await on_message(text)


async def _forward(websocket: WebSocket, subscription: Subscription) -> None:
    async for payload in subscription:
        await websocket.send_json(payload)


async def serve_topic(
    websocket: WebSocket,
    pubsub: LocalPubSub,
    topic: str,
    *,
    on_message: Optional[MessageHandler] = None,
) -> None:
    """Accept *websocket* and stream *topic* to it until either side goes away.

    The subscription is registered before the socket is accepted, so a
    client sees every message published after its handshake completes.
    Inbound frames are handed to *on_message*; without a handler they are
    read and discarded so that a client disconnect is noticed promptly.
    """

    async with pubsub.subscribe(topic) as subscription:
        await websocket.accept()
        reader = asyncio.create_task(_wait_for_disconnect(websocket, on_message))
        writer = asyncio.create_task(_forward(websocket, subscription))
        try:
            done, _ = await asyncio.wait({reader, writer}, return_when=asyncio.FIRST_COMPLETED)
            for task in done:
                exc = task.exception()
                if exc is not None and not isinstance(exc, (WebSocketDisconnect, RuntimeError)):
                    raise exc
                if exc is not None:
                    LOGGER.debug("socket on %s closed: %r", topic, exc)
        finally:
            for task in (reader, writer):
                task.cancel()
                with suppress(asyncio.CancelledError, WebSocketDisconnect, RuntimeError):
                    await task


@asynccontextmanager
async def lifespan(app: FastAPI):
    deps: Dependencies = app.state.dependencies
    await deps.broadcaster.start()
    try:
        yield
    finally:
        await deps.broadcaster.stop()
        deps.registry.reset()


def get_dependencies(request: Request) -> Dependencies:  # type: ignore[override]
    return request.app.state.dependencies  # type: ignore[attr-defined]


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    deps = create_dependencies(settings)
    configure_logging(deps.settings.log_level)

    app = FastAPI(title=deps.settings.app_name, lifespan=lifespan)
    app.state.dependencies = deps
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_methods=["*"],
        allow_headers=["*"]
    )

    DependenciesDep = Annotated[Dependencies, Depends(get_dependencies)]

    @app.get("/health", response_model=HealthStatus)
    async def health(deps: DependenciesDep):
        return HealthStatus(broadcasting=deps.broadcaster.running)

    @app.get("/start", response_model=StartInfo)
    async def start(deps: DependenciesDep):
        base_url = deps.settings.base_url.rstrip("/")
        return StartInfo(interact_url=f"{base_url}/interact", count=deps.lifecycle.count())

    @app.get("/count", response_model=CountUpdate)
    async def count(deps: DependenciesDep):
        return CountUpdate(count=deps.lifecycle.count())

    @app.websocket("/ws/interact")
    async def interact_socket(websocket: WebSocket):
        deps: Dependencies = websocket.app.state.dependencies  # type: ignore[attr-defined]
        connection_id = deps.lifecycle.connect()

        async def on_message(text: str) -> None:
            deps.lifecycle.handle_message(connection_id, text)

        try:
            await serve_topic(websocket, deps.pubsub, INTERACTION_TOPIC, on_message=on_message)
        finally:
            deps.lifecycle.disconnect(connection_id)

    @app.websocket("/ws/show")
    async def show_socket(websocket: WebSocket):
        deps: Dependencies = websocket.app.state.dependencies  # type: ignore[attr-defined]
        await serve_topic(websocket, deps.pubsub, DISPLAY_TOPIC)

    @app.websocket("/ws/session")
    async def session_socket(websocket: WebSocket):
        deps: Dependencies = websocket.app.state.dependencies  # type: ignore[attr-defined]
        await serve_topic(websocket, deps.pubsub, COUNT_TOPIC)

    return app
