import asyncio
from types import SimpleNamespace
from unittest import mock

import pytest
from starlette.testclient import TestClient

from deaftone import handlers, services
from deaftone.app import create_app
from deaftone.settings import Settings
from deaftone.tags import AudioMetadata

SONG_BYTES = b"fLaC-audio-bytes"
COVER_BYTES = b"cover-bytes"


@pytest.fixture
def library(tmp_path):
    music = tmp_path / "music"
    album_dir = music / "Artist" / "Album"
    older_dir = music / "Artist" / "Older"
    album_dir.mkdir(parents=True)
    older_dir.mkdir(parents=True)
    song_file = album_dir / "01.flac"
    song_file.write_bytes(SONG_BYTES)
    cover = album_dir / "cover.jpg"
    cover.write_bytes(COVER_BYTES)

    settings = Settings(
        log_level="info", db_path=str(tmp_path / "lib.sqlite"), media_path=str(music)
    )
    app = create_app(settings)
    conn = app.state.connection
    services.create_artist(conn, "artist-1", "Artist")
    older_id = services.create_album(
        conn, None, "artist-1", "Older", "Artist", str(older_dir), 1999
    )
    album_id = services.create_album(
        conn, str(cover), "artist-1", "Album", "Artist", str(album_dir), 2020
    )
    metadata = AudioMetadata(
        name="First Song",
        number=1,
        album="Album",
        album_artist="Artist",
        year=2020,
        track=1,
        path=str(song_file),
        lossless=True,
        duration=180,
    )
    song_id = services.create_song(conn, album_id, metadata)
    conn.commit()
    with TestClient(app) as client:
        yield SimpleNamespace(
            client=client,
            connection=conn,
            album_id=album_id,
            older_id=older_id,
            song_id=song_id,
            song_file=song_file,
        )


def test_optional_int_values():
    assert optional_values() == [None, None, 5, 42]


def optional_values():
    return [handlers.optional_int(v) for v in (None, "", "5", "+42")]


@pytest.mark.parametrize("value", ["abc", "-1", "1.5"])
def test_optional_int_rejects(value):
    with pytest.raises(ValueError):
        handlers.optional_int(value)


def test_get_album(library):
    response = library.client.get(f"/albums/{library.album_id}")
    assert response.status_code == 200
    body = response.json()
    assert body["id"] == library.album_id
    assert body["name"] == "Album"
    assert body["artist"] == "Artist"
    assert body["artistId"] == "artist-1"
    assert body["albumDescription"] == ""
    assert body["year"] == 2020
    assert body["songCount"] == len(body["songs"]) == 1
    assert body["songs"][0]["title"] == "First Song"


def test_get_album_missing(library):
    response = library.client.get("/albums/nope")
    assert response.status_code == 202
    assert response.text == "Failed to find album"


def test_get_albums_all_and_paged(library):
    all_albums = library.client.get("/albums").json()
    assert [a["id"] for a in all_albums] == [library.older_id, library.album_id]
    page = library.client.get("/albums", params={"size": "1", "page": "1"}).json()
    assert [a["id"] for a in page] == [library.album_id]
    defaulted = library.client.get("/albums", params={"size": "x", "page": "y"}).json()
    assert [a["id"] for a in defaulted] == [a["id"] for a in all_albums]


def test_album_cover(library):
    response = library.client.get(f"/albums/{library.album_id}/cover")
    assert response.status_code == 200
    assert response.content == COVER_BYTES


def test_album_cover_missing_album(library):
    response = library.client.get("/albums/nope/cover")
    assert response.status_code == 404
    assert response.text == "Unable to find album"


def test_get_artist_orders_albums_by_year(library):
    body = library.client.get("/artists/artist-1").json()
    assert body["name"] == "Artist"
    assert body["image"] == "" and body["bio"] == ""
    assert [a["year"] for a in body["albums"]] == [2020, 1999]


def test_get_artist_missing(library):
    response = library.client.get("/artists/nope")
    assert response.status_code == 202


def test_get_artists(library):
    services.create_artist(library.connection, "artist-2", "Second")
    library.connection.commit()
    assert len(library.client.get("/artists").json()) == 2
    assert len(library.client.get("/artists", params={"limit": "1"}).json()) == 1
    assert len(library.client.get("/artists", params={"limit": ""}).json()) == 2
    latest = library.client.get("/artists", params={"sort": "latest", "limit": "1"}).json()
    assert len(latest) == 1


def test_get_artists_bad_limit(library):
    response = library.client.get("/artists", params={"limit": "abc"})
    assert response.status_code == 400


def test_get_playlist(library):
    playlist_id = services.create_playlist(library.connection, "Mix", library.song_id)
    body = library.client.get(f"/playlists/{playlist_id}").json()
    assert body["id"] == playlist_id
    assert body["name"] == "Mix"
    assert [s["id"] for s in body["songs"]] == [library.song_id]


def test_get_playlist_missing(library):
    assert library.client.get("/playlists/nope").status_code == 202


def test_get_song(library):
    body = library.client.get(f"/songs/{library.song_id}").json()
    assert body["title"] == "First Song"
    assert body["album_id"] == library.album_id
    assert body["duration"] == 180
    assert body["liked"] is False


def test_get_song_missing(library):
    response = library.client.get("/songs/nope")
    assert response.status_code == 202
    assert response.text == "Failed to find song"


def test_like_song_toggles(library):
    first = library.client.post(f"/songs/{library.song_id}/like").json()
    second = library.client.post(f"/songs/{library.song_id}/like").json()
    assert first == {"liked": True}
    assert second == {"liked": False}


def test_like_missing_song(library):
    assert library.client.post("/songs/nope/like").status_code == 404


def test_song_cover(library):
    response = library.client.get(f"/songs/{library.song_id}/cover")
    assert response.content == COVER_BYTES


def test_stream_song(library):
    response = library.client.get(f"/stream/{library.song_id}")
    assert response.status_code == 200
    assert response.content == SONG_BYTES


def test_stream_missing_song(library):
    response = library.client.get("/stream/nope")
    assert response.status_code == 404
    assert response.text == "Unable to find song"


def test_transcode_command():
    command = handlers.transcode_command("/music/a.flac")
    assert command[0] == "ffmpeg"
    assert command[command.index("-i") + 1] == "/music/a.flac"
    assert command[command.index("-b:a") + 1] == "128k"
    assert command[-1] == "-"


class _FakeProcess:
    def __init__(self, data):
        self.stdout = asyncio.StreamReader()
        self.stdout.feed_data(data)
        self.stdout.feed_eof()
        self.returncode = None

    def kill(self):
        self.returncode = -9

    async def wait(self):
        if self.returncode is None:
            self.returncode = 0
        return self.returncode


def test_transcode_stream(library):
    calls = []

    async def fake_exec(*args, **kwargs):
        calls.append(args)
        return _FakeProcess(b"mp3-data")

    with mock.patch("asyncio.create_subprocess_exec", fake_exec):
        response = library.client.get(f"/stream/transcode/{library.song_id}")
    assert response.status_code == 200
    assert response.content == b"mp3-data"
    assert response.headers["content-type"].startswith("audio/mpeg")
    assert list(calls[0]) == handlers.transcode_command(str(library.song_file))


def test_transcode_stream_without_transcoder(library):
    async def fake_exec(*args, **kwargs):
        raise FileNotFoundError("ffmpeg")

    with mock.patch("asyncio.create_subprocess_exec", fake_exec):
        response = library.client.get(f"/stream/transcode/{library.song_id}")
    assert response.status_code == 500


def test_transcode_missing_song(library):
    assert library.client.get("/stream/transcode/nope").status_code == 404