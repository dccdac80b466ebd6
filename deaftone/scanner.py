"""Walking the media directory and filling the library database."""

from __future__ import annotations

import logging
import os
import sqlite3
import threading
import time
import uuid
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterator, Sequence

from deaftone import services
from deaftone.database import Database
from deaftone.settings import Settings
from deaftone.tags import TagError, get_metadata

logger = logging.getLogger(__name__)

BUSY_TIMEOUT_MS = 30_000
FLAC_EXTENSION = ".flac"

_PRAGMAS = (
    "PRAGMA journal_mode = WAL",
    "PRAGMA synchronous = NORMAL",
    f"PRAGMA busy_timeout = {BUSY_TIMEOUT_MS}",
    "PRAGMA temp_store = memory",
    "PRAGMA mmap_size = 30000000000",
    "PRAGMA page_size = 4096",
)

_SCAN_STATUS = threading.Event()


def is_scanning() -> bool:
    """True while a library scan is running."""
    return _SCAN_STATUS.is_set()


def _naive_utc(moment: datetime) -> datetime:
    if moment.tzinfo is None:
        return moment
    return moment.astimezone(timezone.utc).replace(tzinfo=None)


def _to_db_time(moment: datetime) -> str:
    return _naive_utc(moment).isoformat(sep=" ")


def _from_db_time(value: Any) -> datetime:
    if isinstance(value, datetime):
        return _naive_utc(value)
    return _naive_utc(datetime.fromisoformat(str(value)))


def _mtime(path: str | os.PathLike[str]) -> datetime:
    return datetime.fromtimestamp(os.stat(path).st_mtime, tz=timezone.utc)


def _rows(
    connection: sqlite3.Connection, sql: str, params: Sequence[Any] = ()
) -> list[sqlite3.Row]:
    cursor = connection.cursor()
    cursor.row_factory = sqlite3.Row
    return cursor.execute(sql, params).fetchall()


def _row(
    connection: sqlite3.Connection, sql: str, params: Sequence[Any] = ()
) -> sqlite3.Row | None:
    rows = _rows(connection, sql, params)
    return rows[0] if rows else None


def _is_empty_dir(path: str) -> bool:
    try:
        with os.scandir(path) as entries:
            return next(entries, None) is None
    except OSError:
        return False


def _walk_directories(root: str | os.PathLike[str]) -> Iterator[str]:
    """Every directory under ``root``, parents first, following links once."""
    seen: set[str] = set()
    for dirpath, dirnames, _ in os.walk(root, followlinks=True):
        real = os.path.realpath(dirpath)
        if real in seen:
            dirnames[:] = []
            continue
        seen.add(real)
        dirnames.sort()
        yield dirpath


def insert_directory(connection: sqlite3.Connection, path: str, mtime: datetime) -> str:
    """Record a scanned directory with its modification time; return its id."""
    directory_id = str(uuid.uuid4())
    stamp = services.now_timestamp()
    connection.execute(
        "INSERT OR REPLACE INTO directories (id, path, mtime, createdAt, updatedAt) "
        "VALUES (?,?,?,?,?)",
        (directory_id, str(path), _to_db_time(mtime), stamp, stamp),
    )
    connection.commit()
    return directory_id


def find_cover(directory: str | os.PathLike[str]) -> str | None:
    """Path of the last entry in ``directory`` whose path contains ``cover.``."""
    cover = None
    with os.scandir(directory) as entries:
        for entry in sorted(entries, key=lambda item: item.name):
            if "cover." in entry.path:
                cover = entry.path
    return cover


class Scanner:
    """Keeps the library database in step with the media directory."""

    def __init__(self, settings: Settings) -> None:
        self.settings = settings
        self._thread: threading.Thread | None = None

    def start_scan(self) -> None:
        """Run a full scan in a background thread."""
        _SCAN_STATUS.set()
        thread = threading.Thread(
            target=self._run_in_background, name="deaftone-scanner", daemon=True
        )
        self._thread = thread
        thread.start()

    def _run_in_background(self) -> None:
        try:
            self.run_scan()
        except Exception:
            logger.exception("Scan failed")

    def wait(self, timeout: float | None = None) -> bool:
        """Wait for a background scan; return True once none is running."""
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    def run_scan(self) -> None:
        """Scan the media directory into the configured database."""
        _SCAN_STATUS.set()
        try:
            with Database(self.settings.db_path) as database:
                connection = database.connection
                assert connection is not None
                for pragma in _PRAGMAS:
                    connection.execute(pragma)
                started = time.perf_counter()
                self.walk_full(connection, self.settings.media_path)
                logger.info("Scan completed in: %.2fs", time.perf_counter() - started)
        finally:
            _SCAN_STATUS.clear()

    def walk_full(self, connection: sqlite3.Connection, current_dir: str | os.PathLike[str]) -> None:
        """Scan every new or modified directory under ``current_dir``."""
        for path in _walk_directories(current_dir):
            try:
                mtime = _mtime(path)
            except OSError as err:
                logger.error("An error occured: %s; skipped.", err)
                continue
            row = _row(connection, "SELECT * FROM directories WHERE path = ?", (path,))
            if row is None:
                insert_directory(connection, path, mtime)
                logger.debug("Created directory %s", path)
                self._scan_or_skip(connection, path)
                continue
            directory_mtime = _from_db_time(row["mtime"])
            if directory_mtime < _naive_utc(mtime):
                logger.info(
                    "Found modified directory %s dtime: %s ftime: %s",
                    path, directory_mtime, mtime,
                )
                self._scan_or_skip(connection, path)
            else:
                logger.debug(
                    "Skipping directory %s dtime: %s ftime: %s", path, directory_mtime, mtime
                )
        connection.execute(
            "INSERT OR REPLACE INTO settings (name, value) VALUES (?,?)", ("scanned", True)
        )
        connection.commit()

    def _scan_or_skip(self, connection: sqlite3.Connection, path: str) -> None:
        try:
            self.scan_dir(connection, path)
        except (OSError, sqlite3.Error) as err:
            logger.error("An error occured: %s; skipped.", err)

    def walk_partial(self, connection: sqlite3.Connection) -> list[str]:
        """Check recorded directories; drop the missing or empty ones and return them."""
        removed: list[str] = []
        for row in _rows(connection, "SELECT * FROM directories"):
            path = row["path"]
            stored = _from_db_time(row["mtime"])
            try:
                modified: datetime | None = _mtime(path)
            except OSError:
                modified = None
            if modified is not None and not _is_empty_dir(path):
                if _naive_utc(modified) > stored:
                    logger.info("Dir changed %s", path)
                else:
                    logger.info("Dir hasn't %s", path)
                continue
            logger.info("Dropping all items for path %s", path)
            connection.execute("DELETE FROM directories WHERE path LIKE ?", (path,))
            connection.execute("DELETE FROM songs WHERE path LIKE ?", (path,))
            connection.commit()
            removed.append(path)
        return removed

    def scan_dir(self, connection: sqlite3.Connection, path: str) -> int:
        """Add the FLAC files directly in ``path``; return how many songs were stored."""
        logger.debug("Scanning dir %s", path)
        create_artist = True
        create_album = True
        artist_id = ""
        album_id = ""
        added = 0
        try:
            with os.scandir(path) as iterator:
                entries = sorted(iterator, key=lambda item: item.name)
            for entry in entries:
                if os.path.splitext(entry.name)[1] != FLAC_EXTENSION:
                    continue
                path_parent = os.path.dirname(entry.path)
                try:
                    metadata = get_metadata(entry.path)
                except (TagError, OSError) as err:
                    logger.error("An error occured: %s; skipped.", err)
                    continue

                if create_artist:
                    row = _row(
                        connection,
                        "SELECT * FROM artists WHERE name = ?",
                        (metadata.album_artist,),
                    )
                    if row is None:
                        new_id = str(uuid.uuid4())
                        try:
                            services.create_artist(connection, new_id, metadata.album_artist)
                        except sqlite3.Error as err:
                            logger.error("An error occured: %s; skipped.", err)
                            continue
                        create_artist = False
                        artist_id = new_id
                        logger.info('Creating artists "%s"', metadata.album_artist)
                    else:
                        artist_id = row["id"]

                if create_album:
                    row = _row(
                        connection,
                        "SELECT * FROM albums WHERE name = ? AND path = ?",
                        (metadata.album, path_parent),
                    )
                    if row is None:
                        cover = find_cover(path_parent)
                        try:
                            new_id = services.create_album(
                                connection,
                                cover,
                                artist_id,
                                metadata.album,
                                metadata.album_artist,
                                path_parent,
                                metadata.year,
                            )
                        except sqlite3.Error as err:
                            logger.error("An error occured: %s; skipped.", err)
                            continue
                        create_album = False
                        album_id = new_id
                        logger.info('Creating album "%s"', metadata.album)
                    else:
                        album_id = row["id"]

                try:
                    services.create_song(connection, album_id, metadata)
                except sqlite3.Error as err:
                    logger.error("An error occured: %s; skipped.", err)
                    continue
                added += 1
            connection.commit()
        except BaseException:
            connection.rollback()
            raise
        return added


def _default_root() -> Path:
    return Path.cwd()