"""The web application and the command that serves it."""

from __future__ import annotations

import argparse
import contextlib
import logging
from importlib.metadata import PackageNotFoundError, version
from typing import AsyncIterator

import uvicorn
from starlette.applications import Starlette
from starlette.requests import Request
from starlette.responses import HTMLResponse
from starlette.routing import Route

from deaftone import handlers
from deaftone.database import open_database
from deaftone.scanner import Scanner
from deaftone.settings import DEFAULT_SETTINGS_FILE, Settings, load_settings

logger = logging.getLogger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3030

_LEVELS = {
    "trace": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warn": logging.WARNING,
    "warning": logging.WARNING,
    "error": logging.ERROR,
    "off": logging.CRITICAL + 10,
}


async def index(request: Request) -> HTMLResponse:
    return HTMLResponse("<h1>{Hello, World}!</h1>")


def create_app(settings: Settings, scanner: Scanner | None = None) -> Starlette:
    """Build the application around the database named in ``settings``."""
    database = open_database(settings)

    @contextlib.asynccontextmanager
    async def lifespan(app: Starlette) -> AsyncIterator[None]:
        try:
            yield
        finally:
            database.close()

    routes = [
        Route("/", index),
        Route("/stream/{id}", handlers.stream_song),
        Route("/stream/transcode/{id}", handlers.transcode_stream),
        Route("/albums/{id}", handlers.get_album),
        Route("/songs/{id}", handlers.get_song),
        Route("/songs/{id}/cover", handlers.get_song_cover),
        Route("/songs/{id}/like", handlers.like_song, methods=["POST"]),
        Route("/albums/{id}/cover", handlers.get_album_cover),
        Route("/albums", handlers.get_albums),
        Route("/artists/{id}", handlers.get_artist),
        Route("/artists", handlers.get_artists),
        Route("/playlists/{id}", handlers.get_playlist),
    ]
    app = Starlette(routes=routes, lifespan=lifespan)
    app.state.settings = settings
    app.state.database = database
    app.state.connection = database.connection
    app.state.scanner = scanner
    return app


def _package_version() -> str:
    try:
        return version("deaftone")
    except PackageNotFoundError:
        return "unknown"


def _log_level(name: str) -> int:
    return _LEVELS.get(name.rsplit("=", 1)[-1].strip().lower(), logging.INFO)


def main(argv: list[str] | None = None) -> int:
    """Load settings, start the library scan and serve the API."""
    parser = argparse.ArgumentParser(prog="deaftone", description="Music streaming server.")
    parser.add_argument("--config", default=DEFAULT_SETTINGS_FILE, help="settings TOML file")
    parser.add_argument("--host", default=DEFAULT_HOST)
    parser.add_argument("--port", type=int, default=DEFAULT_PORT)
    args = parser.parse_args(argv)

    settings = load_settings(args.config)
    logging.basicConfig(
        level=_log_level(settings.log_level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info(
        "Deaftone | Version: %s | Media Directory: %s | Database: %s",
        _package_version(),
        settings.media_path,
        settings.db_path,
    )

    scanner = Scanner(settings)
    app = create_app(settings, scanner)
    scanner.start_scan()
    logger.debug("Binding to socket")
    uvicorn.run(app, host=args.host, port=args.port)
    logger.info("Shutting down")
    return 0