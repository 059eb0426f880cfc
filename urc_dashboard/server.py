"""
Dashboard server: serves the announcer page and runs one resolution core per
WebSocket connection.

Page -> server messages:
- {"type": "select_source", "name": "<division>"}
- {"type": "set_query", "query": "<car number as typed>"}

Server -> page messages:
- {"type": "state", "data": <ResolutionCore.snapshot()>}
- {"type": "warning", "message": "<text>"}
"""

import asyncio
import json
from pathlib import Path
from typing import Optional, Set

from fastapi import FastAPI, WebSocket, WebSocketDisconnect
from fastapi.responses import FileResponse

from config import RESULT_ANCHOR
from .core import DriverSource, ResolutionCore
from .registry import SourceRegistry

STATIC_DIR = Path(__file__).resolve().parent / "static"


class DashboardServer:
    """FastAPI app plus uvicorn lifecycle for the dashboard."""

    def __init__(
        self,
        registry: SourceRegistry,
        client: DriverSource,
        host: str = "localhost",
        port: int = 8080,
        result_anchor: str = RESULT_ANCHOR,
    ):
        self._registry = registry
        self._client = client
        self._host = host
        self._port = port
        self._result_anchor = result_anchor
        self._app = FastAPI(title="URC Announcing Dashboard")
        self._sessions: Set[ResolutionCore] = set()
        self._server = None
        self._server_task: Optional[asyncio.Task] = None

        # Setup routes
        self._setup_routes()

    @property
    def app(self) -> FastAPI:
        return self._app

    def session_count(self) -> int:
        """Number of connected pages."""
        return len(self._sessions)

    def create_session(self) -> ResolutionCore:
        """Create the core backing one page session."""
        return ResolutionCore(
            self._registry,
            self._client,
            result_anchor=self._result_anchor,
        )

    def _setup_routes(self) -> None:
        """Configure FastAPI routes."""

        @self._app.get("/")
        async def serve_dashboard():
            return FileResponse(STATIC_DIR / "dashboard.html")

        @self._app.get("/health")
        async def health():
            return {"status": "ok"}

        @self._app.get("/api/sources")
        async def list_sources():
            return [
                {"name": e.name, "endpoint": e.endpoint}
                for e in self._registry.list_sources()
            ]

        @self._app.websocket("/ws")
        async def websocket_endpoint(websocket: WebSocket):
            await websocket.accept()
            await self._run_session(websocket)

    async def _run_session(self, websocket: WebSocket) -> None:
        """Drive one page session until the socket closes."""
        core = self.create_session()
        outbox: asyncio.Queue = asyncio.Queue()

        # Listeners are synchronous; the sender task does the awaiting
        def on_change(changed: ResolutionCore) -> None:
            outbox.put_nowait({"type": "state", "data": changed.snapshot()})

        core.add_listener(on_change)
        self._sessions.add(core)
        sender = asyncio.create_task(self._send_worker(websocket, outbox))

        # Initial render
        on_change(core)

        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    break
                raw = frame.get("text")
                if raw is None:
                    warning = "Ignored binary message"
                else:
                    warning = self._handle_message(core, raw)
                if warning:
                    outbox.put_nowait({"type": "warning", "message": warning})
        except WebSocketDisconnect:
            pass
        finally:
            core.remove_listener(on_change)
            self._sessions.discard(core)
            sender.cancel()
            try:
                await sender
            except asyncio.CancelledError:
                pass

    def _handle_message(self, core: ResolutionCore, raw: str) -> Optional[str]:
        """
        Apply one page message to the core.

        Returns:
            Warning text for messages that couldn't be applied, else None.
        """
        try:
            message = json.loads(raw)
        except ValueError:
            return "Ignored message that is not valid JSON"
        if not isinstance(message, dict):
            return "Ignored message that is not a JSON object"

        msg_type = message.get("type")
        if msg_type == "select_source":
            name = message.get("name", "")
            try:
                entry = self._registry.get(name)
            except KeyError:
                return f"Unknown division: {name}"
            core.select_source(entry)
            return None

        if msg_type == "set_query":
            query = message.get("query", "")
            if not isinstance(query, str):
                return "Query must be a string"
            core.set_query(query)
            return None

        return f"Unknown message type: {msg_type}"

    async def _send_worker(self, websocket: WebSocket, outbox: asyncio.Queue) -> None:
        """Send queued messages to the page in order."""
        while True:
            message = await outbox.get()
            try:
                await websocket.send_text(json.dumps(message))
            except Exception as e:
                # Page went away; the receive loop cleans up the session
                print(f"[SERVER] Dropping session after send failure: {e}")
                return

    async def start(self) -> None:
        """Start the dashboard server."""
        import uvicorn

        config = uvicorn.Config(
            self._app,
            host=self._host,
            port=self._port,
            log_level="warning",
        )
        self._server = uvicorn.Server(config)
        self._server_task = asyncio.create_task(self._server.serve())
        print(f"[SERVER] Dashboard running at http://{self._host}:{self._port}")

    async def wait_closed(self) -> None:
        """Wait until the server stops on its own."""
        if self._server_task:
            try:
                await self._server_task
            except asyncio.CancelledError:
                pass

    async def stop(self) -> None:
        """Stop the dashboard server."""
        if self._server:
            self._server.should_exit = True
        if self._server_task:
            self._server_task.cancel()
            try:
                await self._server_task
            except asyncio.CancelledError:
                pass
        self._sessions.clear()
