"""Reading FLAC tags into the metadata stored for each song."""

from __future__ import annotations

import re
import struct
from dataclasses import dataclass, field
from pathlib import Path
from typing import BinaryIO, Mapping, Sequence

FLAC_MAGIC = b"fLaC"
BLOCK_STREAMINFO = 0
BLOCK_VORBIS_COMMENT = 4
STREAMINFO_LENGTH = 34

UNKNOWN_TITLE = "FAILED TO READ TITLE DEAFTONE"
UNKNOWN_ALBUM = "FAILED TO READ ALBUM DEAFTONE"
UNKNOWN_ARTIST = "FAILED TO READ ARTIST DEAFTONE"

_INTEGER = re.compile(r"[+-]?[0-9]+")
_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1
_U32_MAX = 2**32 - 1


class TagError(Exception):
    """A FLAC file could not be read or carries no usable tags."""


@dataclass(frozen=True)
class AudioMetadata:
    """What the scanner keeps from the tags of one audio file."""

    name: str
    number: int
    album: str
    album_artist: str
    year: int
    track: int
    path: str
    lossless: bool
    duration: int


@dataclass
class FlacTag:
    """The metadata blocks of a FLAC file that the library uses."""

    sample_rate: int | None = None
    total_samples: int | None = None
    comments: dict[str, list[str]] | None = field(default=None)

    def first(self, key: str) -> str | None:
        """First value of a vorbis comment, or None."""
        if self.comments is None:
            return None
        values = self.comments.get(key.upper())
        return values[0] if values else None

    @property
    def duration(self) -> int | None:
        """Whole seconds of audio, or None without stream info."""
        if self.sample_rate is None or self.total_samples is None:
            return None
        if self.sample_rate == 0:
            raise TagError("stream info has a sample rate of zero")
        return (self.total_samples & _U32_MAX) // self.sample_rate


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise TagError("unexpected end of file in metadata")
    return data


def _parse_stream_info(data: bytes, tag: FlacTag) -> None:
    if len(data) < STREAMINFO_LENGTH:
        raise TagError("stream info block is too short")
    packed = int.from_bytes(data[10:18], "big")
    tag.sample_rate = packed >> 44
    tag.total_samples = packed & ((1 << 36) - 1)


def _parse_vorbis_comment(data: bytes) -> dict[str, list[str]]:
    comments: dict[str, list[str]] = {}
    try:
        (vendor_length,) = struct.unpack_from("<I", data, 0)
        offset = 4 + vendor_length
        (count,) = struct.unpack_from("<I", data, offset)
        offset += 4
        for _ in range(count):
            (length,) = struct.unpack_from("<I", data, offset)
            offset += 4
            raw = data[offset : offset + length]
            if len(raw) != length:
                raise TagError("vorbis comment is truncated")
            offset += length
            text = raw.decode("utf-8")
            key, sep, value = text.partition("=")
            if not sep:
                continue
            comments.setdefault(key.upper(), []).append(value)
    except struct.error as err:
        raise TagError("vorbis comment block is truncated") from err
    except UnicodeDecodeError as err:
        raise TagError("vorbis comment is not valid UTF-8") from err
    return comments


def read_flac(path: str | Path) -> FlacTag:
    """Read the stream info and vorbis comments of a FLAC file."""
    tag = FlacTag()
    try:
        with open(path, "rb") as stream:
            if stream.read(4) != FLAC_MAGIC:
                raise TagError(f"{path} is not a FLAC file")
            last = False
            while not last:
                header = _read_exact(stream, 4)
                last = bool(header[0] & 0x80)
                block_type = header[0] & 0x7F
                length = int.from_bytes(header[1:4], "big")
                data = _read_exact(stream, length)
                if block_type == BLOCK_STREAMINFO and tag.sample_rate is None:
                    _parse_stream_info(data, tag)
                elif block_type == BLOCK_VORBIS_COMMENT and tag.comments is None:
                    tag.comments = _parse_vorbis_comment(data)
    except OSError as err:
        raise TagError(f"Failed to open {path}: {err}") from err
    return tag


def parse_year(year: str) -> int:
    """Year from a date-like string; a 10-character date keeps its first 4."""
    if len(year) == 10:
        year = year[:4]
    if not _INTEGER.fullmatch(year):
        return 0
    value = int(year)
    return value if _I32_MIN <= value <= _I32_MAX else 0


def get_year(comments: Mapping[str, Sequence[str]]) -> int:
    """Year taken from YEAR, then DATE, then ORIGINALYEAR; 0 if none fits."""

    def first(key: str) -> str:
        values = comments.get(key)
        return values[0] if values else ""

    for key in ("YEAR", "DATE", "ORIGINALYEAR"):
        value = first(key)
        if len(value) >= 4:
            return parse_year(value)
    return 0


def _track_number(tag: FlacTag) -> int:
    value = tag.first("TRACKNUMBER")
    if value is None or not re.fullmatch(r"\+?[0-9]+", value):
        return 0
    number = int(value)
    return number if number <= _U32_MAX else 0


def get_metadata(path: str | Path) -> AudioMetadata:
    """Read the song metadata of a FLAC file."""
    path_text = str(path)
    tag = read_flac(path_text)
    if tag.comments is None:
        raise TagError(f"Failed to read tags for {path_text}")
    album_artist = tag.first("ALBUMARTIST")
    if album_artist is None:
        album_artist = tag.first("ARTIST") or UNKNOWN_ARTIST
    track = _track_number(tag)
    return AudioMetadata(
        name=tag.first("TITLE") or UNKNOWN_TITLE,
        number=track,
        album=tag.first("ALBUM") or UNKNOWN_ALBUM,
        album_artist=album_artist,
        year=get_year(tag.comments),
        track=track,
        path=path_text,
        lossless=True,
        duration=tag.duration or 0,
    )