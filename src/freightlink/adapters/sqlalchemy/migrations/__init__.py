"""Alembic migrations bundled with the SQLAlchemy adapter."""

from __future__ import annotations

from logging import getLogger
from pathlib import Path
from typing import TYPE_CHECKING, Final

from alembic import command
from alembic.config import Config

from freightlink.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

PYPROJECT_PATH: Final[Path] = Path(__file__).resolve().parents[5] / "pyproject.toml"
MIGRATIONS_PATH: Final[Path] = Path(__file__).resolve().parent

log = getLogger(__name__)


def _build_config() -> Config:
    # installed wheels have no pyproject.toml next to the package
    config = Config(toml_file=str(PYPROJECT_PATH)) if PYPROJECT_PATH.exists() else Config()
    config.set_main_option("script_location", str(MIGRATIONS_PATH))
    return config


def upgrade_head(*, engine: Engine | None = None, database_uri: str | None = None) -> None:
    """Bring the shipment store schema to the latest revision.

    With ``engine`` the upgrade runs on one of its connections, which keeps
    in-memory SQLite databases alive for the caller.
    """

    config = _build_config()
    if engine is not None:
        log.debug("Upgrading schema on %s", engine.url.render_as_string(hide_password=True))
        with engine.begin() as connection:
            config.attributes["connection"] = connection
            command.upgrade(config, "head")
        return
    config.set_main_option("sqlalchemy.url", database_uri or get_database_config().uri)
    command.upgrade(config, "head")
