[build-system]
requires = ["hatchling"]
build-backend = "hatchling.build"

[project]
name = "deaftone"
version = "0.1.0"
description = "A self-hosted music server that indexes a FLAC library in SQLite and serves it over a JSON HTTP API"
requires-python = ">=3.11"
keywords = ["music", "server", "flac", "streaming", "library", "scanner", "sqlite"]
classifiers = [
    "Development Status :: 3 - Alpha",
    "Environment :: Web Environment",
    "Framework :: AsyncIO",
    "Intended Audience :: End Users/Desktop",
    "Operating System :: OS Independent",
    "Programming Language :: Python :: 3",
    "Programming Language :: Python :: 3 :: Only",
    "Programming Language :: Python :: 3.11",
    "Programming Language :: Python :: 3.12",
    "Programming Language :: Python :: 3.13",
    "Topic :: Multimedia :: Sound/Audio :: Players",
]
dependencies = [
    "starlette",
    "uvicorn",
]

[project.optional-dependencies]
test = [
    "pytest",
    "httpx",
]

[project.scripts]
deaftone = "deaftone.app:main"

[tool.hatch.build.targets.wheel]
packages = ["deaftone"]

[tool.pytest.ini_options]
addopts = "-ra"

[tool.ruff]
line-length = 100
target-version = "py311"

[tool.mypy]
python_version = "3.11"
warn_unused_ignores = true
