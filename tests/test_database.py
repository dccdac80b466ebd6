import sqlite3

import pytest

from deaftone.database import (
    MIGRATION_NAME,
    Database,
    create_indexes,
    create_tables,
    migrate,
    open_database,
)
from deaftone.models import Album
from deaftone.settings import Settings

TABLES = {"settings", "songs", "albums", "artists", "directories", "playlists", "playlists_song"}


def _names(connection, kind):
    rows = connection.execute("SELECT name FROM sqlite_master WHERE type = ?", (kind,)).fetchall()
    return {row[0] for row in rows}


@pytest.fixture
def memory():
    connection = sqlite3.connect(":memory:")
    connection.row_factory = sqlite3.Row
    yield connection
    connection.close()


def test_create_tables(memory):
    create_tables(memory)
    assert TABLES <= _names(memory, "table")


def test_create_tables_twice_is_harmless(memory):
    create_tables(memory)
    create_tables(memory)
    assert TABLES <= _names(memory, "table")


def test_create_indexes(memory):
    create_tables(memory)
    create_indexes(memory)
    expected = {
        "idx-albums-id",
        "idx-songs-id",
        "idx-artists-id",
        "idx-directories-id",
        "idx-artists-name",
        "idx-albums-name",
        "idx-songs-path",
    }
    assert expected <= _names(memory, "index")


def test_migrate_runs_once(memory):
    assert migrate(memory) is True
    assert migrate(memory) is False
    versions = [row[0] for row in memory.execute("SELECT version FROM seaql_migrations")]
    assert versions == [MIGRATION_NAME]


def test_artist_name_is_unique(memory):
    migrate(memory)
    memory.execute("INSERT INTO artists (id, name, createdAt, updatedAt) VALUES ('1', 'A', 'c', 'u')")
    with pytest.raises(sqlite3.IntegrityError):
        memory.execute("INSERT INTO artists (id, name, createdAt, updatedAt) VALUES ('2', 'A', 'c', 'u')")


def test_album_row_loads_into_model(memory):
    migrate(memory)
    memory.execute(
        "INSERT INTO albums (id, name, artistName, cover, path, year, createdAt, updatedAt, artistId)"
        " VALUES ('al', 'Relapse', 'Eminem', NULL, '/m/E', 2009, 'c', 'u', 'ar')"
    )
    row = memory.execute("SELECT * FROM albums").fetchone()
    album = Album.from_row(row)
    assert album.name == "Relapse"
    assert album.cover is None
    assert album.year == 2009


def test_database_creates_file_and_migrates(tmp_path):
    path = tmp_path / "lib.sqlite"
    with Database(path) as database:
        assert path.exists()
        assert TABLES <= _names(database.connection, "table")
    assert database.connection is None


def test_database_reopen_keeps_data(tmp_path):
    path = tmp_path / "lib.sqlite"
    with Database(path) as database:
        database.connection.execute("INSERT INTO settings (name, value) VALUES ('scanned', '1')")
        database.connection.commit()
    with Database(path) as database:
        row = database.connection.execute("SELECT value FROM settings WHERE name = 'scanned'").fetchone()
        assert row["value"] == "1"


def test_connect_returns_same_connection(tmp_path):
    database = Database(tmp_path / "x.sqlite")
    first = database.connect()
    assert database.connect() is first
    database.close()


def test_open_database_uses_settings(tmp_path):
    settings = Settings(log_level="info", db_path=str(tmp_path / "d.sqlite"), media_path=str(tmp_path))
    database = open_database(settings)
    try:
        assert database.path == tmp_path / "d.sqlite"
        assert "songs" in _names(database.connection, "table")
    finally:
        database.close()