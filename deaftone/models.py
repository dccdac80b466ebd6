"""Records stored in the library database."""

from __future__ import annotations

from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Mapping


def _optional_int(value: Any) -> int | None:
    return None if value is None else int(value)


def _optional_str(value: Any) -> str | None:
    return None if value is None else str(value)


@dataclass
class Album:
    """A row of the ``albums`` table."""

    id: str
    name: str
    artist_name: str
    cover: str | None
    album_description: str | None
    path: str
    year: int
    created_at: str
    updated_at: str
    artist_id: str | None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Album:
        return cls(
            id=row["id"],
            name=row["name"],
            artist_name=row["artistName"],
            cover=_optional_str(row["cover"]),
            album_description=_optional_str(row["album_description"]),
            path=row["path"],
            year=int(row["year"]),
            created_at=row["createdAt"],
            updated_at=row["updatedAt"],
            artist_id=_optional_str(row["artistId"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Artist:
    """A row of the ``artists`` table."""

    id: str
    name: str
    image: str | None
    bio: str | None
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Artist:
        return cls(
            id=row["id"],
            name=row["name"],
            image=_optional_str(row["image"]),
            bio=_optional_str(row["bio"]),
            created_at=row["createdAt"],
            updated_at=row["updatedAt"],
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class Directory:
    """A scanned directory and the modification time it had when scanned."""

    id: str
    path: str
    mtime: datetime
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Directory:
        mtime = row["mtime"]
        if not isinstance(mtime, datetime):
            mtime = datetime.fromisoformat(str(mtime))
        return cls(
            id=row["id"],
            path=row["path"],
            mtime=mtime,
            created_at=row["createdAt"],
            updated_at=row["updatedAt"],
        )


@dataclass
class Playlist:
    """A row of the ``playlists`` table."""

    id: str
    name: str
    created_at: str
    updated_at: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Playlist:
        return cls(
            id=row["id"],
            name=row["name"],
            created_at=row["createdAt"],
            updated_at=row["updatedAt"],
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@dataclass
class PlaylistSong:
    """Link between a playlist and one of its songs."""

    id: str
    playlist_id: str | None
    song_id: str | None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> PlaylistSong:
        return cls(
            id=row["id"],
            playlist_id=_optional_str(row["playListId"]),
            song_id=_optional_str(row["songId"]),
        )


@dataclass
class Setting:
    """A name/value pair of the ``settings`` table."""

    name: str
    value: str

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Setting:
        return cls(name=row["name"], value=str(row["value"]))


@dataclass
class Song:
    """A row of the ``songs`` table."""

    id: str
    path: str
    title: str
    disk: int | None
    artist: str
    album_name: str
    codec: str | None
    duration: int
    sample_rate: str | None
    bits_per_sample: int | None
    track: int | None
    year: int | None
    label: str | None
    music_brainz_recording_id: str | None
    music_brainz_artist_id: str | None
    music_brainz_track_id: str | None
    created_at: str
    updated_at: str
    album_id: str | None
    liked: bool

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> Song:
        return cls(
            id=row["id"],
            path=row["path"],
            title=row["title"],
            disk=_optional_int(row["disk"]),
            artist=row["artist"],
            album_name=row["albumName"],
            codec=_optional_str(row["codec"]),
            duration=int(row["duration"]),
            sample_rate=_optional_str(row["sampleRate"]),
            bits_per_sample=_optional_int(row["bitsPerSample"]),
            track=_optional_int(row["track"]),
            year=_optional_int(row["year"]),
            label=_optional_str(row["label"]),
            music_brainz_recording_id=_optional_str(row["musicBrainzRecordingId"]),
            music_brainz_artist_id=_optional_str(row["musicBrainzArtistId"]),
            music_brainz_track_id=_optional_str(row["musicBrainzTrackId"]),
            created_at=row["createdAt"],
            updated_at=row["updatedAt"],
            album_id=_optional_str(row["albumId"]),
            liked=bool(row["liked"]),
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)