"""Alembic environment for the freightlink shipment store."""

from __future__ import annotations

from logging.config import fileConfig
from pathlib import Path
from typing import TYPE_CHECKING

from alembic import context
from sqlalchemy import create_engine, pool

from freightlink.adapters.sqlalchemy.mappings import (
    email_classification_table,
    entity_extraction_table,
    mapper_registry,
    start_mappers,
)
from freightlink.config import configure_logging, get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection
    from sqlalchemy.schema import SchemaItem

config = context.config

if config.config_file_name is not None and Path(config.config_file_name).suffix == ".ini":
    fileConfig(config.config_file_name)
else:
    configure_logging()

start_mappers()

target_metadata = mapper_registry.metadata

# The classification service owns these; autogenerate must never emit changes for them.
COLLABORATOR_TABLES = frozenset({email_classification_table.name, entity_extraction_table.name})


def include_object(
    item: SchemaItem,
    name: str | None,
    type_: str,
    _reflected: bool,
    _compare_to: SchemaItem | None,
) -> bool:
    if type_ == "table":
        return name not in COLLABORATOR_TABLES
    table = getattr(item, "table", None)
    return table is None or table.name not in COLLABORATOR_TABLES


def _configure(**kwargs: object) -> None:
    context.configure(
        target_metadata=target_metadata,
        include_object=include_object,
        render_as_batch=True,
        compare_type=True,
        **kwargs,
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    url = config.get_main_option("sqlalchemy.url") or get_database_config().uri
    _configure(url=url, literal_binds=True)


def run_migrations_online() -> None:
    connection: Connection | None = config.attributes.get("connection")
    if connection is not None:
        _configure(connection=connection)
        return

    url = config.get_main_option("sqlalchemy.url") or get_database_config().uri
    engine = create_engine(url, poolclass=pool.NullPool, future=True)
    try:
        with engine.connect() as new_connection:
            _configure(connection=new_connection)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
