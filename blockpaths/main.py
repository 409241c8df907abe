"""Application entry point for the BlockPaths sandbox API.

Run locally:
    uvicorn blockpaths.main:app --reload --host 0.0.0.0 --port 8000

Settings come from the process environment first, then from
`blockpaths/.env` and `.env` (earlier files take precedence).
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import uvicorn

from blockpaths.api import create_app

logger = logging.getLogger(__name__)

ENV_FILES = (Path("blockpaths/.env"), Path(".env"))


def _read_env_file(path: Path) -> dict[str, str]:
    """Parse `KEY=VALUE` lines, allowing comments, blanks and `export` prefixes."""
    settings: dict[str, str] = {}
    for raw in path.read_text(encoding="utf-8").splitlines():
        line = raw.strip()
        if line.startswith("export "):
            line = line[len("export ") :].lstrip()
        if not line or line.startswith("#"):
            continue

        name, sep, value = line.partition("=")
        name = name.strip()
        if sep and name:
            settings[name] = value.strip().strip("'\"")
    return settings


def _load_local_env(files: tuple[Path, ...] = ENV_FILES) -> list[Path]:
    """Fill unset environment variables from local env files.

    Returns:
        The files that were found and read.
    """
    loaded: list[Path] = []
    for env_path in files:
        if not env_path.is_file():
            continue
        for name, value in _read_env_file(env_path).items():
            os.environ.setdefault(name, value)
        loaded.append(env_path)
    return loaded


def _configure_logging() -> None:
    level_name = os.getenv("BLOCKPATHS_LOG_LEVEL", "INFO").strip().upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.INFO),
        format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    )


_env_files = _load_local_env()
_configure_logging()
if _env_files:
    logger.info("Loaded settings from %s", ", ".join(str(p) for p in _env_files))
app = create_app()


if __name__ == "__main__":
    host = os.getenv("API_HOST", "0.0.0.0")
    port = int(os.getenv("API_PORT", "8000"))
    reload_enabled = os.getenv("API_RELOAD", "true").lower() == "true"
    uvicorn.run("blockpaths.main:app", host=host, port=port, reload=reload_enabled)
