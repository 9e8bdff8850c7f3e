"""Run the bundled Alembic migrations against a database."""

from __future__ import annotations

import tomllib
from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config

from cleanse.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = getLogger(__name__)

PROJECT_ROOT: Final[Path] = Path(__file__).resolve().parents[5]
PYPROJECT_PATH: Final[Path] = PROJECT_ROOT / "pyproject.toml"
MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent


def _script_location() -> Path:
    """Directory holding the revisions.

    A source checkout may point ``[tool.alembic] script_location`` elsewhere;
    installed copies always use the scripts shipped next to this module.
    """

    try:
        with PYPROJECT_PATH.open("rb") as pyproject_file:
            document = tomllib.load(pyproject_file)
    except FileNotFoundError:
        return MIGRATIONS_PATH

    configured = document.get("tool", {}).get("alembic", {}).get("script_location")
    if not configured:
        return MIGRATIONS_PATH
    candidate = Path(configured)
    if not candidate.is_absolute():
        candidate = PROJECT_ROOT / candidate
    return candidate if candidate.is_dir() else MIGRATIONS_PATH


def _build_config(database_uri: str | None = None) -> Config:
    config = Config()
    config.set_main_option("script_location", str(_script_location()))
    if database_uri is not None:
        # Config values go through configparser interpolation
        config.set_main_option("sqlalchemy.url", database_uri.replace("%", "%%"))
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Bring the schema up to the latest revision.

    With ``engine`` the migration runs on one of its connections, which keeps
    in-memory SQLite databases intact; otherwise ``database_uri`` (or the
    configured database) is used.
    """

    if engine is None:
        command.upgrade(_build_config(database_uri or get_database_config().uri), "head")
        return

    config = _build_config()
    with engine.begin() as connection:
        config.attributes["connection"] = connection
        command.upgrade(config, "head")
    log.debug("Schema upgraded to head on %s", engine.url.render_as_string(hide_password=True))
