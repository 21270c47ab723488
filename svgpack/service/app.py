"""FastAPI application serving the dev preview and push channel."""

from __future__ import annotations

import asyncio
import json
from contextlib import asynccontextmanager, suppress
from typing import Any, AsyncIterator, Mapping, Optional

import uvicorn
from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import JSONResponse, Response
from pydantic import BaseModel

from ..config import BuildConfiguration
from ..dev import DevOrchestrator
from ..dev.protocol import error_message
from ..logging import get_logger

SVG_MEDIA_TYPE = "image/svg+xml"

LIVE_RELOAD_SCRIPT = """<script id="svgpack-live-reload"><![CDATA[
(function () {
  var scheme = location.protocol === "https:" ? "wss://" : "ws://";
  var socket = new WebSocket(scheme + location.host + "/ws");
  var latest = 0;
  socket.onmessage = function (event) {
    var message = JSON.parse(event.data);
    if (typeof message.sequence === "number") {
      if (message.sequence < latest) { return; }
      latest = message.sequence;
    }
    if (message.type === "reload") {
      location.reload();
    } else if (message.type === "build-error") {
      console.error("svgpack build failed", message.issues);
    }
  };
})();
]]></script>"""

logger = get_logger("service")


class HealthResponse(BaseModel):
    status: str


class StatusResponse(BaseModel):
    building: bool
    lastBuildTimestamp: Optional[float] = None
    subscriberCount: int


class RebuildResponse(BaseModel):
    status: str


class QueueSubscriber:
    """Hands messages from orchestrator threads to one websocket's event loop.

    ``send`` raises once the client has fallen ``maxsize`` messages behind or
    its loop has closed, which makes the orchestrator drop the subscriber.
    """

    def __init__(self, loop: asyncio.AbstractEventLoop, *, maxsize: int = 64) -> None:
        self.loop = loop
        self.queue: "asyncio.Queue[Mapping[str, Any]]" = asyncio.Queue(maxsize=maxsize)

    def send(self, message: Mapping[str, Any]) -> None:
        if self.queue.full():
            raise asyncio.QueueFull("Preview client is not keeping up")
        self.loop.call_soon_threadsafe(self._offer, dict(message))

    def _offer(self, message: Mapping[str, Any]) -> None:
        try:
            self.queue.put_nowait(message)
        except asyncio.QueueFull:
            logger.debug("Dropping %s for a lagging preview client", message.get("type"))


def inject_live_reload(document: str) -> str:
    """Insert the live-reload client just before the closing root tag."""
    index = document.rfind("</svg>")
    if index == -1:
        return document
    return document[:index] + LIVE_RELOAD_SCRIPT + "\n" + document[index:]


def create_app(orchestrator: DevOrchestrator, *, manage_lifecycle: bool = True) -> FastAPI:
    """Create the FastAPI application exposing the dev preview."""

    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if manage_lifecycle:
            orchestrator.start()
        try:
            yield
        finally:
            if manage_lifecycle:
                orchestrator.stop()

    app = FastAPI(title="svgpack dev server", version="1.0.0", lifespan=lifespan)
    app.state.orchestrator = orchestrator

    @app.get("/health", response_model=HealthResponse)
    async def health() -> HealthResponse:
        return HealthResponse(status="ok")

    @app.get("/status", response_model=StatusResponse)
    async def status() -> StatusResponse:
        return StatusResponse(**orchestrator.status())

    @app.post("/rebuild", response_model=RebuildResponse, status_code=202)
    async def rebuild() -> RebuildResponse:
        orchestrator.request_build("http request")
        return RebuildResponse(status="queued")

    @app.get("/preview")
    async def preview() -> Response:
        result = orchestrator.last_successful_result
        if result is None:
            return JSONResponse(status_code=404, content={"detail": "No successful build yet"})
        return Response(content=inject_live_reload(result.document), media_type=SVG_MEDIA_TYPE)

    @app.websocket("/ws")
    async def live(websocket: WebSocket) -> None:
        await websocket.accept()
        subscriber = QueueSubscriber(asyncio.get_running_loop())
        orchestrator.subscribe(subscriber)

        async def _pump() -> None:
            while True:
                message = await subscriber.queue.get()
                await websocket.send_json(message)

        sender = asyncio.create_task(_pump())
        try:
            while True:
                raw = await websocket.receive_text()
                try:
                    message = json.loads(raw)
                except ValueError:
                    subscriber.send(error_message("Messages must be valid JSON"))
                    continue
                orchestrator.handle_client_message(subscriber, message)
        except WebSocketDisconnect:
            logger.debug("Preview client disconnected")
        except asyncio.QueueFull:
            logger.debug("Closing lagging preview client")
        finally:
            orchestrator.unsubscribe(subscriber)
            sender.cancel()
            with suppress(asyncio.CancelledError):
                try:
                    await sender
                except Exception as exc:
                    logger.debug("Preview sender stopped: %s", exc)

    return app


def run_service(config: BuildConfiguration) -> None:  # pragma: no cover - integration path
    orchestrator = DevOrchestrator.from_config(config)
    app = create_app(orchestrator)
    logger.info("Serving preview on http://%s:%d/preview", config.dev.host, config.dev.port)
    uvicorn.run(app, host=config.dev.host, port=config.dev.port, log_level="warning")


__all__ = [
    "HealthResponse",
    "QueueSubscriber",
    "RebuildResponse",
    "StatusResponse",
    "create_app",
    "inject_live_reload",
    "run_service",
]
