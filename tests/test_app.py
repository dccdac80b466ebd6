from unittest import mock

from starlette.testclient import TestClient

from deaftone import app as app_module
from deaftone.app import create_app, main
from deaftone.scanner import Scanner
from deaftone.settings import Settings


def _settings(tmp_path):
    media = tmp_path / "music"
    media.mkdir(exist_ok=True)
    return Settings(
        log_level="info", db_path=str(tmp_path / "app.sqlite"), media_path=str(media)
    )


def test_index_page(tmp_path):
    with TestClient(create_app(_settings(tmp_path))) as client:
        response = client.get("/")
    assert response.status_code == 200
    assert response.text == "<h1>{Hello, World}!</h1>"
    assert response.headers["content-type"].startswith("text/html")


def test_hello_world_with_scanner_running(tmp_path):
    settings = _settings(tmp_path)
    scanner = Scanner(settings)
    application = create_app(settings, scanner)
    scanner.start_scan()
    with TestClient(application) as client:
        body = client.get("/").content
    assert b"Hello, World" in body
    assert scanner.wait(10) is True
    assert application.state.scanner is scanner


def test_like_route_only_accepts_post(tmp_path):
    with TestClient(create_app(_settings(tmp_path))) as client:
        response = client.get("/songs/any/like")
    assert response.status_code == 405


def test_unknown_route(tmp_path):
    with TestClient(create_app(_settings(tmp_path))) as client:
        assert client.get("/nothing-here").status_code == 404


def test_create_app_creates_database(tmp_path):
    settings = _settings(tmp_path)
    application = create_app(settings)
    tables = {
        row[0]
        for row in application.state.connection.execute(
            "SELECT name FROM sqlite_master WHERE type = 'table'"
        )
    }
    assert {"albums", "songs", "artists", "playlists"} <= tables
    application.state.database.close()


def test_main_serves_on_configured_port(tmp_path):
    settings = _settings(tmp_path)
    config = tmp_path / "settings.toml"
    config.write_text(
        f'log_level = "debug"\ndb_path = "{settings.db_path}"\n'
        f'media_path = "{settings.media_path}"\n',
        encoding="utf-8",
    )
    with mock.patch.object(app_module.uvicorn, "run") as run:
        result = main(["--config", str(config)])
    assert result == 0
    assert run.call_count == 1
    assert run.call_args.kwargs == {"host": "0.0.0.0", "port": 3030}
    served = run.call_args.args[0]
    assert served.state.settings == settings
    assert served.state.scanner.wait(10) is True