"""A music server that indexes a FLAC library in SQLite and serves it over an HTTP API."""

__version__ = "0.1.0"