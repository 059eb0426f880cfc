"""
Main integration for the URC Announcing Dashboard.

Ties together the division registry, the driver list client and the
dashboard server.
"""

import asyncio
import signal
from typing import Optional

from config import Config
from .division_client import DivisionClient
from .registry import SourceRegistry
from .server import DashboardServer


class DashboardApp:
    """Owns the long-lived components and their lifecycle."""

    def __init__(self, config: Config):
        self._config = config
        self._stop_event = asyncio.Event()

        self.registry = SourceRegistry.from_pairs(config.divisions)

        # Components (initialized in start())
        self._client: Optional[DivisionClient] = None
        self._server: Optional[DashboardServer] = None

    async def start(self) -> None:
        """Initialize components and start serving."""
        print("Initializing dashboard...")
        divisions = [e.name for e in self.registry.list_sources() if not e.is_sentinel]
        print(f"Divisions: {', '.join(divisions)}")

        self._client = DivisionClient(timeout=self._config.fetch_timeout_sec)
        self._server = DashboardServer(
            self.registry,
            self._client,
            host=self._config.host,
            port=self._config.port,
            result_anchor=self._config.result_anchor,
        )
        await self._server.start()

    async def stop(self) -> None:
        """Stop serving and release the HTTP session."""
        print("\nShutting down...")

        if self._server:
            await self._server.stop()

        if self._client:
            await self._client.close()

        print("Shutdown complete.")

    def request_stop(self) -> None:
        """Ask run() to return (signal handler)."""
        self._stop_event.set()

    async def run(self) -> None:
        """Serve until stopped by a signal or the server exiting."""
        await self.start()

        stop_waiter = asyncio.create_task(self._stop_event.wait())
        server_waiter = asyncio.create_task(self._server.wait_closed())
        try:
            await asyncio.wait(
                {stop_waiter, server_waiter},
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            pass
        finally:
            stop_waiter.cancel()
            server_waiter.cancel()
            await self.stop()


async def main():
    """Entry point."""
    config = Config()
    app = DashboardApp(config)

    # Setup signal handlers for graceful shutdown
    loop = asyncio.get_running_loop()

    try:
        loop.add_signal_handler(signal.SIGINT, app.request_stop)
        loop.add_signal_handler(signal.SIGTERM, app.request_stop)
    except NotImplementedError:
        # Windows doesn't support add_signal_handler
        pass

    try:
        await app.run()
    except KeyboardInterrupt:
        await app.stop()


def cli():
    """Console script entry point."""
    asyncio.run(main())


if __name__ == "__main__":
    cli()
