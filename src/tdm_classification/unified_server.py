#!/usr/bin/env python3
"""Unified server launcher - runs HTTP, MCP, or both interfaces simultaneously.

Both interfaces share one registry store and one cached registry snapshot.

Environment Variables:
    TDM_HTTP_ENABLED: Enable the HTTP/REST API server (default: true)
    TDM_HTTP_HOST / TDM_HTTP_PORT: HTTP bind address (default: 0.0.0.0:8000)
    TDM_MCP_ENABLED: Enable the MCP tool server (default: false)
    TDM_MCP_TRANSPORT: MCP transport (stdio|streamable-http)
    TDM_REGISTRY_BACKEND: Registry store (memory|json_file)

Example:
    # HTTP only
    $ tdm-classification

    # HTTP and MCP over stdio
    $ TDM_MCP_ENABLED=true tdm-classification
"""

import asyncio
import logging
import signal
import sys

from .shared_registry import close_shared_registry, get_shared_registry_service

logger = logging.getLogger(__name__)


class UnifiedServer:
    """Manages lifecycle of HTTP and MCP server interfaces."""

    def __init__(self) -> None:
        from .config import HTTP_ENABLED, HTTP_HOST, HTTP_PORT, MCP_ENABLED, MCP_TRANSPORT

        self.http_enabled = HTTP_ENABLED
        self.http_host = HTTP_HOST
        self.http_port = HTTP_PORT
        self.mcp_enabled = MCP_ENABLED
        self.mcp_transport = MCP_TRANSPORT

        self.shutdown_event: asyncio.Event | None = None
        self.tasks: list[asyncio.Task] = []

    def validate_configuration(self) -> None:
        """Fail fast when no interface is enabled.

        Raises:
            ValueError: If no interfaces are enabled.
        """
        if not self.http_enabled and not self.mcp_enabled:
            raise ValueError("No interface enabled. Set TDM_HTTP_ENABLED=true or TDM_MCP_ENABLED=true")

        logger.info("Configuration validated successfully")
        if self.http_enabled:
            logger.info(f"  HTTP interface: {self.http_host}:{self.http_port}")
        if self.mcp_enabled:
            logger.info(f"  MCP interface: {self.mcp_transport} transport")

    async def run_http_server(self) -> None:
        """Serve the FastAPI application with uvicorn."""
        try:
            import uvicorn

            from .web.app import create_app

            logger.info(f"Starting HTTP server on {self.http_host}:{self.http_port}")
            app = create_app()
            config = uvicorn.Config(
                app,
                host=self.http_host,
                port=self.http_port,
                log_config=None,  # Use existing logging config
            )
            server = uvicorn.Server(config)
            await server.serve()
        except Exception as e:
            logger.error(f"HTTP server failed: {e}", exc_info=True)
            raise

    async def run_mcp_server(self) -> None:
        """Serve the MCP tools over the configured transport."""
        try:
            from .mcp_server import mcp

            logger.info(f"Starting MCP server with {self.mcp_transport} transport")
            if self.mcp_transport == "streamable-http":
                await mcp.run_streamable_http_async()
            else:
                await mcp.run_stdio_async()
        except Exception as e:
            logger.error(f"MCP server failed: {e}", exc_info=True)
            raise

    def setup_signal_handlers(self, shutdown_event: asyncio.Event) -> None:
        """Setup graceful shutdown handlers for SIGTERM and SIGINT."""

        def handle_shutdown(signum: int, frame) -> None:
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating graceful shutdown")
            shutdown_event.set()

        signal.signal(signal.SIGTERM, handle_shutdown)
        signal.signal(signal.SIGINT, handle_shutdown)
        logger.debug("Signal handlers configured for SIGTERM and SIGINT")

    async def run(self) -> None:
        """Run the enabled interfaces until a shutdown signal or a task failure."""
        self.validate_configuration()

        # Pre-initialize the shared registry so both servers use the same store
        logger.info("Pre-initializing shared registry for all servers...")
        try:
            service = await get_shared_registry_service()
            await service.load()
        except Exception as e:
            logger.error(f"Failed to initialize shared registry: {e}")
            raise

        self.shutdown_event = asyncio.Event()
        self.setup_signal_handlers(self.shutdown_event)

        if self.http_enabled:
            task = asyncio.create_task(self.run_http_server())
            task.set_name("http-server")
            self.tasks.append(task)

        if self.mcp_enabled:
            task = asyncio.create_task(self.run_mcp_server())
            task.set_name("mcp-server")
            self.tasks.append(task)

        logger.info(f"Started {len(self.tasks)} interface(s)")

        shutdown_task = asyncio.create_task(self.shutdown_event.wait())
        shutdown_task.set_name("shutdown-waiter")

        done, pending = await asyncio.wait(
            self.tasks + [shutdown_task],
            return_when=asyncio.FIRST_COMPLETED,
        )

        for task in done:
            if task.get_name() != "shutdown-waiter":
                try:
                    task.result()
                    logger.warning(f"Task {task.get_name()} completed unexpectedly")
                except Exception as e:
                    logger.error(f"Task {task.get_name()} failed: {e}")

        logger.info("Cancelling remaining tasks")
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

        await close_shared_registry()
        logger.info("Shutdown complete")


def main() -> None:
    """Entry point for the unified server.

    Exits with code 1 on configuration errors or fatal failures.
    """
    from .config import LOG_LEVEL

    logging.basicConfig(
        level=getattr(logging, LOG_LEVEL, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    try:
        server = UnifiedServer()
        asyncio.run(server.run())
    except ValueError as e:
        logger.error(f"Configuration error: {e}")
        sys.exit(1)
    except KeyboardInterrupt:
        logger.info("Interrupted by user")
        sys.exit(0)
    except Exception as e:
        logger.error(f"Fatal error: {e}", exc_info=True)
        sys.exit(1)


if __name__ == "__main__":
    main()
