"""HTTP endpoints for albums, artists, playlists, songs and streaming."""

from __future__ import annotations

import asyncio
import logging
import os
import re
import sqlite3
from pathlib import Path
from typing import Any, AsyncIterator

from starlette.requests import Request
from starlette.responses import (
    FileResponse,
    JSONResponse,
    PlainTextResponse,
    Response,
    StreamingResponse,
)

from deaftone import services

logger = logging.getLogger(__name__)

RESOURCES = Path(__file__).parent / "resources"
UNKNOWN_ALBUM_COVER = RESOURCES / "unknown_album.jpg"
TRANSCODER = "ffmpeg"
CHUNK_SIZE = 64 * 1024
DEFAULT_PAGE_SIZE = 10
DEFAULT_LATEST_ARTISTS = 50

_UNSIGNED = re.compile(r"\+?[0-9]+")
_U64_MAX = 2**64 - 1


def _parse_unsigned(text: str) -> int:
    if not _UNSIGNED.fullmatch(text):
        raise ValueError("invalid digit found in string")
    value = int(text)
    if value > _U64_MAX:
        raise ValueError("number too large to fit in target type")
    return value


def _parse_unsigned_or(text: str | None, default: int) -> int:
    if text is None:
        return default
    try:
        return _parse_unsigned(text)
    except ValueError:
        return default


def optional_int(value: str | None) -> int | None:
    """Unsigned integer from a query value; missing or empty means None."""
    if value is None or value == "":
        return None
    return _parse_unsigned(value)


def _connection(request: Request) -> sqlite3.Connection:
    return request.app.state.connection


def _item_id(request: Request) -> str:
    return request.path_params["id"]


def _serve_file(path: str | os.PathLike[str]) -> Response:
    if os.path.isfile(path):
        return FileResponse(path)
    return Response(status_code=404)


def _not_found(message: str) -> PlainTextResponse:
    return PlainTextResponse(message, status_code=404)


def _accepted(message: str) -> PlainTextResponse:
    return PlainTextResponse(message, status_code=202)


# Albums


async def get_album(request: Request) -> Response:
    """An album with its songs."""
    found = services.get_album_by_id(_connection(request), _item_id(request))
    if found is None:
        return _accepted("Failed to find album")
    album, songs = found
    return JSONResponse(
        {
            "id": album.id,
            "name": album.name,
            "artist": album.artist_name,
            "artistId": album.artist_id or "",
            "albumDescription": album.album_description or "",
            "year": album.year,
            "songCount": len(songs),
            "songs": [song.to_dict() for song in songs],
        }
    )


async def get_album_cover(request: Request) -> Response:
    """The cover image of an album, or the built-in placeholder image."""
    connection = _connection(request)
    row = connection.execute(
        "SELECT cover FROM albums WHERE id = ?", (_item_id(request),)
    ).fetchone()
    if row is None:
        return _not_found("Unable to find album")
    cover = row[0]
    if cover is not None:
        return _serve_file(cover)
    if not UNKNOWN_ALBUM_COVER.is_file():
        return _not_found("Unable to find album cover")
    return Response(
        UNKNOWN_ALBUM_COVER.read_bytes(), headers={"content-type": "image/jpg"}
    )


async def get_albums(request: Request) -> Response:
    """All albums, or one page of them when ``size`` is given."""
    params = request.query_params
    connection = _connection(request)
    try:
        if "size" in params:
            size = _parse_unsigned_or(params.get("size"), DEFAULT_PAGE_SIZE)
            page = _parse_unsigned_or(params.get("page", "0"), 0)
            albums = services.get_albums_paginate(connection, page, size)
        else:
            albums = services.get_all_albums(connection)
    except (sqlite3.Error, ValueError, OverflowError) as err:
        return _accepted(f"Failed to get albums {err}")
    return JSONResponse([album.to_dict() for album in albums])


# Artists


async def get_artist(request: Request) -> Response:
    """An artist with its albums, newest first."""
    found = services.get_artist_with_albums(_connection(request), _item_id(request))
    if found is None:
        return _accepted("Failed to find album")
    artist, albums = found
    return JSONResponse(
        {
            "id": artist.id,
            "name": artist.name,
            "image": artist.image or "",
            "bio": artist.bio or "",
            "albums": [album.to_dict() for album in albums],
        }
    )


async def get_artists(request: Request) -> Response:
    """Artists, optionally limited, or the latest ones with ``sort=latest``."""
    params = request.query_params
    try:
        limit = optional_int(params.get("limit"))
    except ValueError as err:
        return PlainTextResponse(
            f"Failed to deserialize query string: {err}", status_code=400
        )
    connection = _connection(request)
    if params.get("sort") == "latest":
        artists = services.get_latest_artists(
            connection, DEFAULT_LATEST_ARTISTS if limit is None else limit
        )
    else:
        artists = services.get_artists(connection, limit)
    return JSONResponse([artist.to_dict() for artist in artists])


# Playlists


async def get_playlist(request: Request) -> Response:
    """A playlist with its songs."""
    found = services.get_playlist_with_songs(_connection(request), _item_id(request))
    if found is None:
        return _accepted("Failed to find album")
    playlist, songs = found
    return JSONResponse(
        {
            "id": playlist.id,
            "name": playlist.name,
            "songs": [song.to_dict() for song in songs],
        }
    )


# Songs


async def get_song(request: Request) -> Response:
    """One song."""
    song = services.get_song(_connection(request), _item_id(request))
    if song is None:
        return _accepted("Failed to find song")
    return JSONResponse(
        {
            "id": song.id,
            "path": song.path,
            "title": song.title,
            "disk": song.disk or 0,
            "artist": song.artist,
            "album_name": song.album_name,
            "duration": song.duration,
            "year": song.year or 0,
            "album_id": song.album_id or "",
            "liked": song.liked,
        }
    )


async def get_song_cover(request: Request) -> Response:
    """The cover image of the album a song belongs to."""
    found = services.get_song_with_album(_connection(request), _item_id(request))
    if found is None:
        return _not_found("Unable to find album")
    _, album = found
    if album is None or album.cover is None:
        return _not_found("Unable to find album cover")
    return _serve_file(album.cover)


async def like_song(request: Request) -> Response:
    """Toggle whether a song is liked."""
    try:
        liked = services.like_song(_connection(request), _item_id(request))
    except services.NotFoundError:
        return _not_found("Unable to find song")
    return JSONResponse({"liked": liked})


# Streaming


async def stream_song(request: Request) -> Response:
    """The audio file of a song as stored."""
    song = services.get_song(_connection(request), _item_id(request))
    if song is None:
        return _not_found("Unable to find song")
    return _serve_file(song.path)


def transcode_command(path: str) -> list[str]:
    """Command line that turns ``path`` into a 128k MP3 stream on stdout."""
    return [
        TRANSCODER,
        "-v", "0",
        "-i", path,
        "-map", "0:a:0",
        "-codec:a", "libmp3lame",
        "-b:a", "128k",
        "-f", "mp3",
        "-",
    ]


async def _pipe_output(process: Any) -> AsyncIterator[bytes]:
    try:
        while chunk := await process.stdout.read(CHUNK_SIZE):
            yield chunk
        await process.wait()
    finally:
        if process.returncode is None:
            try:
                process.kill()
            except ProcessLookupError:
                pass
            await process.wait()


async def transcode_stream(request: Request) -> Response:
    """A song transcoded to MP3 on the fly."""
    song = services.get_song(_connection(request), _item_id(request))
    if song is None:
        return _not_found("Unable to find song")
    try:
        process = await asyncio.create_subprocess_exec(
            *transcode_command(song.path),
            stdin=asyncio.subprocess.PIPE,
            stdout=asyncio.subprocess.PIPE,
        )
    except OSError as err:
        logger.error("Failed to start transcoder: %s", err)
        return PlainTextResponse(f"Failed to start transcoder: {err}", status_code=500)
    return StreamingResponse(_pipe_output(process), media_type="audio/mpeg")