"""Console entry points (see ``[project.scripts]`` in pyproject.toml)."""

import os
from pathlib import Path

import uvicorn
from alembic import command
from alembic.config import Config

ALEMBIC_INI = Path(__file__).resolve().parent.parent / "alembic.ini"


def dev() -> None:
    uvicorn.run("blog_api.main:app", host="0.0.0.0", port=8000, reload=True)


def start() -> None:
    port = int(os.environ.get("PORT", 8000))
    uvicorn.run("blog_api.main:app", host="0.0.0.0", port=port)


def migrate() -> None:
    """Upgrade the database schema to the latest revision."""
    cfg = Config(str(ALEMBIC_INI))
    cfg.set_main_option("script_location", str(ALEMBIC_INI.parent / "alembic"))
    command.upgrade(cfg, "head")
