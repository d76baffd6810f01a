"""Where the link database and HTTP response caches live."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from .env import bool_from_env

DATA_DIR_ENV: Final[str] = "FREIGHTLINK_DATA_DIR"
DATABASE_URI_ENV: Final[str] = "DATABASE_URI"
SQL_ECHO_ENV: Final[str] = "FREIGHTLINK_SQL_ECHO"
DEFAULT_DB_FILENAME: Final[str] = "freightlink.db"


@dataclass(frozen=True, slots=True)
class StorageConfig:
    """Local data directory; only used when no ``DATABASE_URI`` is given."""

    data_dir: Path
    database_filename: str = DEFAULT_DB_FILENAME

    def ensure_data_dir(self) -> Path:
        data_dir = self.data_dir.expanduser().resolve()
        data_dir.mkdir(parents=True, exist_ok=True)
        return data_dir

    def database_path(self) -> Path:
        return self.ensure_data_dir() / self.database_filename

    def http_cache_path(self, client_name: str) -> Path:
        return self.ensure_data_dir() / f"http_cache_{client_name}.db"


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str
    echo: bool = False

    @property
    def is_sqlite(self) -> bool:
        return self.uri.startswith("sqlite")


def get_storage_config() -> StorageConfig:
    env_dir = os.getenv(DATA_DIR_ENV)
    if env_dir:
        return StorageConfig(data_dir=Path(env_dir))
    xdg_data_home = os.getenv("XDG_DATA_HOME")
    base = Path(xdg_data_home) if xdg_data_home else Path.home() / ".local" / "share"
    return StorageConfig(data_dir=base / "freightlink")


def get_database_config(*, storage: StorageConfig | None = None) -> DatabaseConfig:
    """Shipment store location: ``DATABASE_URI`` or a SQLite file in the data directory."""

    echo = bool_from_env(SQL_ECHO_ENV, default=False)
    env_uri = os.getenv(DATABASE_URI_ENV)
    if env_uri:
        return DatabaseConfig(uri=env_uri, echo=echo)
    database_path = (storage or get_storage_config()).database_path()
    return DatabaseConfig(uri=f"sqlite+pysqlite:///{database_path}", echo=echo)
