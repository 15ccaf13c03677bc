"""FastAPI liveness app, served next to the poll loop."""

import asyncio
from threading import Thread

import uvicorn
from fastapi import FastAPI
from loguru import logger

from gmail2tg import __version__


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    app = FastAPI(
        title="gmail2tg",
        version=__version__,
        description="Gmail to Telegram forwarder - liveness endpoint",
    )

    from gmail2tg.api.routes import router

    app.include_router(router)
    return app


def start_health_server(host: str, port: int) -> uvicorn.Server:
    """Start the health server in a daemon thread and return it."""
    config = uvicorn.Config(
        create_app(),
        host=host,
        port=port,
        log_level="warning",
    )
    server = uvicorn.Server(config)

    def run_server() -> None:
        asyncio.run(server.serve())

    Thread(target=run_server, daemon=True, name="health-server").start()
    logger.info(f"Health server running on {host}:{port}")
    return server
