# deaftone

deaftone is a small self-hosted music server. It walks a directory of FLAC
files and reads their stream info and Vorbis comments. It stores artists,
albums and songs in a SQLite database, and serves that library over a JSON HTTP
API built on Starlette and run with uvicorn. Songs can be streamed as stored,
or transcoded to MP3 on the fly.

## Installing

```
pip install .
```

Transcoded streaming starts `ffmpeg`. It must be on your `PATH` if you want to
use `/stream/transcode/{id}`. If it cannot be started, that endpoint answers
500.

## Configuration

By default deaftone reads `settings.toml` from the working directory. All three
fields are required strings:

```toml
log_level = "info"
db_path = "./deaftone.sqlite"
media_path = "./music"
```

If the file is missing, is not valid TOML, or lacks a field, deaftone logs a
warning and uses the values shown above.

`log_level` accepts `trace`, `debug`, `info`, `warn`/`warning`, `error` and
`off`. A value of the form `target=level` uses the part after the last `=`.
Anything it does not recognise means `info`.

## Running

```
deaftone
deaftone --config other.toml --host 127.0.0.1 --port 8000
```

| Option     | Default         |
|------------|-----------------|
| `--config` | `settings.toml` |
| `--host`   | `0.0.0.0`       |
| `--port`   | `3030`          |

On start deaftone opens and migrates the database, creating the file if
needed. It then starts a full library scan in a background thread and serves
the API.

The scan visits every directory under `media_path`, following symbolic links.
It scans a directory when the directory is new, or when its modification time
is later than the one recorded at the last scan. In such a directory it reads
every `.flac` file that sits directly in it. For each album directory it
creates the artist (from `ALBUMARTIST`, else `ARTIST`) and the album when they
do not exist yet. It then stores the songs. The album cover is the last file in
the directory whose path contains `cover.`. A file whose tags cannot be read
is logged and skipped.

## HTTP API

| Method | Path                     | Result                                                            |
|--------|--------------------------|-------------------------------------------------------------------|
| GET    | `/`                      | A greeting page                                                   |
| GET    | `/albums`                | All albums; with `?size=N` one page of them, `&page=P` from 0     |
| GET    | `/albums/{id}`           | An album with `songCount` and its songs                           |
| GET    | `/albums/{id}/cover`     | The album's cover image                                           |
| GET    | `/artists`               | Artists; `?limit=N`; `?sort=latest` gives newest first (50 by default) |
| GET    | `/artists/{id}`          | An artist with their albums, newest year first                    |
| GET    | `/songs/{id}`            | A song                                                            |
| GET    | `/songs/{id}/cover`      | The cover of the song's album                                     |
| POST   | `/songs/{id}/like`       | Toggles the song's liked flag and returns `{"liked": ...}`        |
| GET    | `/stream/{id}`           | The song's audio file as stored                                   |
| GET    | `/stream/transcode/{id}` | The song as a 128 kbit/s MP3 stream (`audio/mpeg`)                |
| GET    | `/playlists/{id}`        | A playlist with its songs                                         |

Some details of how the endpoints answer:

- A `size` or `page` on `/albums` that is not a whole number falls back to 10
  and 0.
- A `limit` on `/artists` that is not a whole number is answered with 400. An
  empty `limit` is ignored.
- An album, artist, song or playlist that does not exist is answered with
  status 202 and a short plain-text message on `/albums/{id}`,
  `/artists/{id}`, `/songs/{id}` and `/playlists/{id}`.
- The cover, like and stream endpoints answer 404 when the record or the file
  is missing.
- When an album has no cover, `/albums/{id}/cover` serves
  `deaftone/resources/unknown_album.jpg` if that file is present. Otherwise it
  answers 404.

## Using it as a library

```python
from deaftone.settings import load_settings
from deaftone.scanner import Scanner
from deaftone.app import create_app

settings = load_settings("settings.toml")
scanner = Scanner(settings)
app = create_app(settings, scanner)   # a Starlette application
scanner.start_scan()                  # or scanner.run_scan() to scan in the foreground
```

Other useful pieces:

- `deaftone.tags.get_metadata(path)` returns an `AudioMetadata` for one FLAC
  file without touching the database. It raises `TagError` when the file
  cannot be read or has no Vorbis comments. `deaftone.tags.read_flac(path)`
  gives the raw `FlacTag`.
- `deaftone.database.Database(path)` is a context manager that opens and
  migrates a database file. `open_database(settings)` opens the one in the
  settings.
- `deaftone.services` holds the queries behind the API, for example
  `get_album_by_id`, `get_artists` and `like_song`. It also has
  `create_playlist(connection, name, song_id)`.
- `Scanner.walk_partial(connection)` removes recorded directories that have
  gone missing or are empty, along with songs stored at those paths. It
  returns the paths it removed.
- `deaftone.scanner.is_scanning()` tells whether a scan is running.

## What it does not do

- It only indexes `.flac` files. Other audio formats are ignored.
- There are no endpoints to create, edit or delete playlists, artists or
  albums. Playlists can only be created with `services.create_playlist`.
- There is no authentication.
- The scan runs once when the server starts. Files are not watched for
  changes. The server never calls `walk_partial` itself, and albums or
  artists left without songs are not cleaned up.

## Tests

```
pip install ".[test]"
pytest
```