from datetime import datetime

from deaftone.models import (
    Album,
    Artist,
    Directory,
    Playlist,
    PlaylistSong,
    Setting,
    Song,
)

ALBUM_ROW = {
    "id": "a1",
    "name": "The Great War",
    "artistName": "Sabaton",
    "cover": "/music/S/Sabaton/cover.jpg",
    "album_description": None,
    "path": "/music/S/Sabaton",
    "year": 2019,
    "createdAt": "2023-01-01 16:51:06.389052",
    "updatedAt": "2023-01-01 16:51:06.389052",
    "artistId": "ar1",
}

SONG_ROW = {
    "id": "s1",
    "path": "/music/a.flac",
    "title": "Lost Cause",
    "disk": 1,
    "artist": "Billie Eilish",
    "albumName": "Happier Than Ever",
    "codec": None,
    "duration": 212,
    "sampleRate": None,
    "bitsPerSample": None,
    "track": 7,
    "year": 2021,
    "label": None,
    "musicBrainzRecordingId": None,
    "musicBrainzArtistId": None,
    "musicBrainzTrackId": None,
    "createdAt": "c",
    "updatedAt": "u",
    "albumId": "a1",
    "liked": 0,
}


def test_album_from_row_maps_column_names():
    album = Album.from_row(ALBUM_ROW)
    assert album.artist_name == "Sabaton"
    assert album.artist_id == "ar1"
    assert album.album_description is None
    assert album.year == 2019


def test_album_to_dict_uses_field_names():
    data = Album.from_row(ALBUM_ROW).to_dict()
    assert data["artist_name"] == "Sabaton"
    assert data["created_at"] == ALBUM_ROW["createdAt"]
    assert "artistName" not in data


def test_artist_round_trip():
    row = {"id": "ar1", "name": "Eminem", "image": None, "bio": "x", "createdAt": "c", "updatedAt": "u"}
    artist = Artist.from_row(row)
    assert artist.to_dict() == {
        "id": "ar1",
        "name": "Eminem",
        "image": None,
        "bio": "x",
        "created_at": "c",
        "updated_at": "u",
    }


def test_directory_parses_mtime():
    row = {"id": "d", "path": "/m", "mtime": "2023-01-01 16:51:06.380603", "createdAt": "c", "updatedAt": "u"}
    directory = Directory.from_row(row)
    assert directory.mtime == datetime(2023, 1, 1, 16, 51, 6, 380603)


def test_directory_keeps_datetime():
    stamp = datetime(2022, 5, 4, 3, 2, 1)
    row = {"id": "d", "path": "/m", "mtime": stamp, "createdAt": "c", "updatedAt": "u"}
    assert Directory.from_row(row).mtime == stamp


def test_playlist_round_trip():
    row = {"id": "p", "name": "New music", "createdAt": "c", "updatedAt": "u"}
    assert Playlist.from_row(row).to_dict() == {
        "id": "p",
        "name": "New music",
        "created_at": "c",
        "updated_at": "u",
    }


def test_playlist_song_from_row():
    link = PlaylistSong.from_row({"id": "l", "playListId": "p", "songId": None})
    assert link.playlist_id == "p"
    assert link.song_id is None


def test_setting_value_is_text():
    setting = Setting.from_row({"name": "scanned", "value": 1})
    assert setting.value == "1"


def test_song_from_row_converts_liked():
    song = Song.from_row(SONG_ROW)
    assert song.liked is False
    assert Song.from_row({**SONG_ROW, "liked": 1}).liked is True


def test_song_to_dict_keys():
    data = Song.from_row(SONG_ROW).to_dict()
    assert data["album_name"] == "Happier Than Ever"
    assert data["album_id"] == "a1"
    assert data["track"] == 7
    assert set(data) >= {"music_brainz_track_id", "bits_per_sample", "sample_rate"}