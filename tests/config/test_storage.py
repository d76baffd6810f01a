from __future__ import annotations

from typing import TYPE_CHECKING

import pytest

from freightlink.config import ConfigurationError, get_database_config, get_storage_config

if TYPE_CHECKING:
    from pathlib import Path


def test_storage_config_uses_data_dir_env(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.setenv("FREIGHTLINK_DATA_DIR", str(tmp_path / "data"))

    config = get_storage_config()

    assert config.database_path() == (tmp_path / "data" / "freightlink.db").resolve()
    assert config.http_cache_path("postgrest").name == "http_cache_postgrest.db"
    assert (tmp_path / "data").is_dir()


def test_database_uri_prefers_env(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "postgresql+psycopg://localhost/freight")

    assert get_database_config().uri == "postgresql+psycopg://localhost/freight"


def test_database_uri_defaults_to_sqlite_file(
    monkeypatch: pytest.MonkeyPatch,
    tmp_path: Path,
) -> None:
    monkeypatch.delenv("DATABASE_URI", raising=False)
    monkeypatch.setenv("FREIGHTLINK_DATA_DIR", str(tmp_path))

    uri = get_database_config().uri

    assert uri.startswith("sqlite+pysqlite:///")
    assert uri.endswith("freightlink.db")


def test_sql_echo_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DATABASE_URI", "sqlite+pysqlite:///:memory:")
    monkeypatch.setenv("FREIGHTLINK_SQL_ECHO", "yes")

    config = get_database_config()

    assert config.echo is True
    assert config.is_sqlite


def test_invalid_sql_echo_flag(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("FREIGHTLINK_SQL_ECHO", "sometimes")

    with pytest.raises(ConfigurationError, match="FREIGHTLINK_SQL_ECHO"):
        get_database_config()
