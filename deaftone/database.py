"""SQLite connection and schema migration for the library database."""

from __future__ import annotations

import logging
import sqlite3
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

logger = logging.getLogger(__name__)

MIGRATION_NAME = "m20220101_000001_create_table"
CONNECT_TIMEOUT = 8.0

_TABLES: list[tuple[str, str]] = [
    (
        "settings",
        """CREATE TABLE IF NOT EXISTS "settings" (
            "name" TEXT NOT NULL PRIMARY KEY,
            "value" TEXT NOT NULL
        )""",
    ),
    (
        "songs",
        """CREATE TABLE IF NOT EXISTS "songs" (
            "id" TEXT NOT NULL PRIMARY KEY,
            "path" TEXT NOT NULL UNIQUE,
            "title" TEXT NOT NULL,
            "disk" INTEGER,
            "artist" TEXT NOT NULL,
            "albumName" TEXT NOT NULL,
            "codec" TEXT,
            "duration" INTEGER NOT NULL,
            "sampleRate" TEXT,
            "bitsPerSample" INTEGER,
            "track" INTEGER,
            "year" INTEGER,
            "label" TEXT,
            "musicBrainzRecordingId" TEXT,
            "musicBrainzArtistId" TEXT,
            "musicBrainzTrackId" TEXT,
            "createdAt" TEXT NOT NULL,
            "updatedAt" TEXT NOT NULL,
            "albumId" TEXT,
            "liked" INTEGER NOT NULL,
            FOREIGN KEY ("albumId") REFERENCES "albums" ("id")
                ON DELETE SET NULL ON UPDATE CASCADE
        )""",
    ),
    (
        "albums",
        """CREATE TABLE IF NOT EXISTS "albums" (
            "id" TEXT NOT NULL PRIMARY KEY,
            "name" TEXT NOT NULL,
            "artistName" TEXT NOT NULL,
            "cover" TEXT,
            "album_description" TEXT,
            "path" TEXT NOT NULL,
            "year" INTEGER NOT NULL,
            "createdAt" TEXT NOT NULL,
            "updatedAt" TEXT NOT NULL,
            "artistId" TEXT,
            FOREIGN KEY ("artistId") REFERENCES "artists" ("id")
                ON DELETE SET NULL ON UPDATE CASCADE
        )""",
    ),
    (
        "artists",
        """CREATE TABLE IF NOT EXISTS "artists" (
            "id" TEXT NOT NULL PRIMARY KEY,
            "name" TEXT NOT NULL UNIQUE,
            "image" TEXT,
            "bio" TEXT,
            "createdAt" TEXT NOT NULL,
            "updatedAt" TEXT NOT NULL
        )""",
    ),
    (
        "directories",
        """CREATE TABLE IF NOT EXISTS "directories" (
            "id" TEXT NOT NULL PRIMARY KEY,
            "path" TEXT NOT NULL UNIQUE,
            "mtime" TEXT NOT NULL,
            "createdAt" TEXT NOT NULL,
            "updatedAt" TEXT NOT NULL
        )""",
    ),
    (
        "playlists",
        """CREATE TABLE IF NOT EXISTS "playlists" (
            "id" TEXT NOT NULL PRIMARY KEY,
            "name" TEXT NOT NULL,
            "createdAt" TEXT NOT NULL,
            "updatedAt" TEXT NOT NULL
        )""",
    ),
    (
        "playlists_song",
        """CREATE TABLE IF NOT EXISTS "playlists_song" (
            "id" TEXT NOT NULL PRIMARY KEY,
            "playListId" TEXT,
            "songId" TEXT,
            FOREIGN KEY ("playListId") REFERENCES "playlists" ("id")
                ON DELETE SET NULL ON UPDATE CASCADE,
            FOREIGN KEY ("songId") REFERENCES "songs" ("id")
                ON DELETE SET NULL ON UPDATE CASCADE
        )""",
    ),
]

_INDEXES: list[tuple[str, str]] = [
    ("albums", "id"),
    ("songs", "id"),
    ("artists", "id"),
    ("directories", "id"),
    ("artists", "name"),
    ("albums", "name"),
    ("songs", "path"),
]


def create_tables(connection: sqlite3.Connection) -> None:
    """Create every library table; a failing table is logged and skipped."""
    for table, ddl in _TABLES:
        try:
            connection.execute(ddl)
        except sqlite3.Error as err:
            logger.error("Error: %s", err)
        else:
            logger.info("Migrated %s", table)
    connection.commit()


def create_indexes(connection: sqlite3.Connection) -> None:
    """Create the lookup indexes; failures are ignored."""
    for table, column in _INDEXES:
        name = f"idx-{table}-{column}"
        try:
            connection.execute(f'CREATE INDEX IF NOT EXISTS "{name}" ON "{table}" ("{column}")')
        except sqlite3.Error as err:
            logger.debug("Index %s not created: %s", name, err)
    connection.commit()


def migrate(connection: sqlite3.Connection) -> bool:
    """Apply the schema migration once; return True if it ran now."""
    connection.execute(
        'CREATE TABLE IF NOT EXISTS "seaql_migrations" ('
        '"version" TEXT NOT NULL PRIMARY KEY, "applied_at" INTEGER NOT NULL)'
    )
    applied = connection.execute(
        'SELECT 1 FROM "seaql_migrations" WHERE "version" = ?', (MIGRATION_NAME,)
    ).fetchone()
    if applied:
        connection.commit()
        return False
    create_tables(connection)
    create_indexes(connection)
    connection.execute(
        'INSERT INTO "seaql_migrations" ("version", "applied_at") VALUES (?, ?)',
        (MIGRATION_NAME, int(datetime.now(timezone.utc).timestamp())),
    )
    connection.commit()
    return True


class Database:
    """An SQLite database file holding the music library."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)
        self.connection: sqlite3.Connection | None = None

    def connect(self) -> sqlite3.Connection:
        """Open (creating if needed) and migrate the database."""
        if self.connection is not None:
            return self.connection
        if not self.path.exists():
            self.path.touch()
        connection = sqlite3.connect(
            self.path, timeout=CONNECT_TIMEOUT, check_same_thread=False
        )
        connection.row_factory = sqlite3.Row
        try:
            migrate(connection)
        except sqlite3.Error:
            connection.close()
            raise
        self.connection = connection
        return connection

    def close(self) -> None:
        if self.connection is not None:
            self.connection.close()
            self.connection = None

    def __enter__(self) -> Database:
        self.connect()
        return self

    def __exit__(self, *args: Any) -> None:
        self.close()


def open_database(settings: Any) -> Database:
    """Open the database named by ``settings.db_path``."""
    database = Database(settings.db_path)
    database.connect()
    return database