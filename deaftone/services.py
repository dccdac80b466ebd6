"""Queries and inserts on the library database."""

from __future__ import annotations

import sqlite3
import uuid
from datetime import datetime, timezone
from typing import Any, Sequence

from deaftone.models import Album, Artist, Playlist, Song
from deaftone.tags import AudioMetadata


class NotFoundError(LookupError):
    """A record that an operation needs does not exist."""


def now_timestamp() -> str:
    """Current UTC time in the text form stored in ``createdAt``/``updatedAt``."""
    return datetime.now(timezone.utc).replace(tzinfo=None).isoformat(sep=" ")


def _rows(connection: sqlite3.Connection, sql: str, params: Sequence[Any] = ()) -> list[sqlite3.Row]:
    cursor = connection.cursor()
    cursor.row_factory = sqlite3.Row
    return cursor.execute(sql, params).fetchall()


def _row(connection: sqlite3.Connection, sql: str, params: Sequence[Any] = ()) -> sqlite3.Row | None:
    rows = _rows(connection, sql, params)
    return rows[0] if rows else None


# Albums


def get_album_by_id(connection: sqlite3.Connection, album_id: str) -> tuple[Album, list[Song]] | None:
    """An album with its songs, or None."""
    row = _row(connection, "SELECT * FROM albums WHERE id = ?", (album_id,))
    if row is None:
        return None
    songs = _rows(connection, "SELECT * FROM songs WHERE albumId = ? ORDER BY rowid", (album_id,))
    return Album.from_row(row), [Song.from_row(song) for song in songs]


def find_album_by_name(connection: sqlite3.Connection, album_name: str) -> Album | None:
    row = _row(connection, "SELECT * FROM albums WHERE name = ?", (album_name,))
    return Album.from_row(row) if row else None


def update_cover_for_path(connection: sqlite3.Connection, cover_path: str, album_path: str) -> None:
    """Set the cover of the album stored at ``album_path``, if there is one."""
    row = _row(connection, "SELECT id FROM albums WHERE path = ?", (album_path,))
    if row is None:
        return
    connection.execute("UPDATE albums SET cover = ? WHERE id = ?", (cover_path, row["id"]))
    connection.commit()


def get_all_albums(connection: sqlite3.Connection) -> list[Album]:
    return [Album.from_row(row) for row in _rows(connection, "SELECT * FROM albums ORDER BY rowid")]


def get_albums_paginate(connection: sqlite3.Connection, page: int, size: int) -> list[Album]:
    """Page ``page`` (from 0) of albums, ``size`` albums per page."""
    if page < 0 or size < 0:
        raise ValueError("page and size must not be negative")
    rows = _rows(
        connection,
        "SELECT * FROM albums ORDER BY rowid LIMIT ? OFFSET ?",
        (size, page * size),
    )
    return [Album.from_row(row) for row in rows]


def create_album(
    connection: sqlite3.Connection,
    cover: str | None,
    artist_id: str,
    album_name: str,
    artist_name: str,
    path: str,
    year: int,
) -> str:
    """Insert an album and return its new id; the caller commits."""
    album_id = str(uuid.uuid4())
    stamp = now_timestamp()
    connection.execute(
        "INSERT OR REPLACE INTO albums "
        "(id, name, artistName, cover, path, year, createdAt, updatedAt, artistId) "
        "VALUES (?,?,?,?,?,?,?,?,?)",
        (album_id, album_name, artist_name, cover, path, year, stamp, stamp, artist_id),
    )
    return album_id


# Artists


def create_artist(connection: sqlite3.Connection, artist_id: str, artist_name: str) -> None:
    """Insert an artist; the caller commits."""
    stamp = now_timestamp()
    connection.execute(
        "INSERT OR REPLACE INTO artists (id, name, createdAt, updatedAt) VALUES (?,?,?,?)",
        (artist_id, artist_name, stamp, stamp),
    )


def find_artist_by_name(connection: sqlite3.Connection, artist_name: str) -> Artist | None:
    row = _row(connection, "SELECT * FROM artists WHERE name = ?", (artist_name,))
    return Artist.from_row(row) if row else None


def get_artist_with_albums(
    connection: sqlite3.Connection, artist_id: str
) -> tuple[Artist, list[Album]] | None:
    """An artist with its albums, newest year first, or None."""
    row = _row(connection, "SELECT * FROM artists WHERE id = ?", (artist_id,))
    if row is None:
        return None
    albums = _rows(
        connection,
        "SELECT * FROM albums WHERE artistId = ? ORDER BY year DESC, rowid",
        (artist_id,),
    )
    return Artist.from_row(row), [Album.from_row(album) for album in albums]


def get_artists(connection: sqlite3.Connection, limit: int | None = None) -> list[Artist]:
    """All artists, or at most ``limit`` of them."""
    if limit is None:
        rows = _rows(connection, "SELECT * FROM artists ORDER BY rowid")
    else:
        rows = _rows(connection, "SELECT * FROM artists ORDER BY rowid LIMIT ?", (limit,))
    return [Artist.from_row(row) for row in rows]


def get_latest_artists(connection: sqlite3.Connection, limit: int = 50) -> list[Artist]:
    """The most recently created artists first."""
    rows = _rows(connection, "SELECT * FROM artists ORDER BY createdAt DESC LIMIT ?", (limit,))
    return [Artist.from_row(row) for row in rows]


# Playlists


def create_playlist(
    connection: sqlite3.Connection, name: str = "New music", song_id: str | None = None
) -> str:
    """Create a playlist, optionally holding one song, and return its id."""
    playlist_id = str(uuid.uuid4())
    stamp = now_timestamp()
    connection.execute(
        "INSERT INTO playlists (id, name, createdAt, updatedAt) VALUES (?,?,?,?)",
        (playlist_id, name, stamp, stamp),
    )
    if song_id is not None:
        connection.execute(
            "INSERT INTO playlists_song (id, playListId, songId) VALUES (?,?,?)",
            (str(uuid.uuid4()), playlist_id, song_id),
        )
    connection.commit()
    return playlist_id


def get_playlist_with_songs(
    connection: sqlite3.Connection, playlist_id: str
) -> tuple[Playlist, list[Song]] | None:
    row = _row(connection, "SELECT * FROM playlists WHERE id = ?", (playlist_id,))
    if row is None:
        return None
    songs = _rows(
        connection,
        "SELECT songs.* FROM songs JOIN playlists_song AS link ON link.songId = songs.id "
        "WHERE link.playListId = ? ORDER BY link.rowid",
        (playlist_id,),
    )
    return Playlist.from_row(row), [Song.from_row(song) for song in songs]


# Songs


def get_song(connection: sqlite3.Connection, song_id: str) -> Song | None:
    row = _row(connection, "SELECT * FROM songs WHERE id = ?", (song_id,))
    return Song.from_row(row) if row else None


def like_song(connection: sqlite3.Connection, song_id: str) -> bool:
    """Toggle the liked flag of a song and return its new value."""
    song = get_song(connection, song_id)
    if song is None:
        raise NotFoundError(f"no song with id {song_id}")
    liked = not song.liked
    connection.execute("UPDATE songs SET liked = ? WHERE id = ?", (liked, song_id))
    connection.commit()
    return liked


def get_song_by_path(connection: sqlite3.Connection, path: str) -> Song | None:
    row = _row(connection, "SELECT * FROM songs WHERE path = ?", (path,))
    return Song.from_row(row) if row else None


def get_song_with_album(
    connection: sqlite3.Connection, song_id: str
) -> tuple[Song, Album | None] | None:
    song = get_song(connection, song_id)
    if song is None:
        return None
    album = None
    if song.album_id is not None:
        row = _row(connection, "SELECT * FROM albums WHERE id = ?", (song.album_id,))
        album = Album.from_row(row) if row else None
    return song, album


def create_song(connection: sqlite3.Connection, album_id: str, metadata: AudioMetadata) -> str:
    """Insert a song from its tags and return its new id; the caller commits."""
    song_id = str(uuid.uuid4())
    stamp = now_timestamp()
    connection.execute(
        "INSERT OR REPLACE INTO songs "
        "(id, path, title, disk, artist, albumName, track, year, createdAt, updatedAt, "
        "duration, albumId, liked) VALUES (?,?,?,?,?,?,?,?,?,?,?,?,?)",
        (
            song_id,
            metadata.path,
            metadata.name,
            metadata.number,
            metadata.album_artist,
            metadata.album,
            metadata.track,
            metadata.year,
            stamp,
            stamp,
            metadata.duration,
            album_id,
            False,
        ),
    )
    return song_id