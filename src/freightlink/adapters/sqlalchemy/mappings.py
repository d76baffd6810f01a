"""SQLAlchemy mapping metadata for the Freightlink domain model."""

from __future__ import annotations

import json
import logging
import uuid
from datetime import UTC, datetime
from enum import Enum as PyEnum
from functools import cache
from typing import TYPE_CHECKING, Any, cast

from sqlalchemy import (
    Column,
    DateTime,
    Dialect,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Table,
    Text,
    TypeDecorator,
    UniqueConstraint,
    Uuid,
    orm,
    text,
)
from sqlalchemy.orm import configure_mappers

from freightlink.domain.model import (
    CandidateStatus,
    DocumentLink,
    IdentifierType,
    LinkCandidate,
    LinkMethod,
    ReconciliationCheckpoint,
    Shipment,
    ShipmentStatus,
    TransitionReason,
    WorkflowPhase,
    WorkflowState,
    WorkflowTransition,
)

if TYPE_CHECKING:
    from sqlalchemy.engine import Engine

log = logging.getLogger(__name__)

UUIDColumnType = Uuid[uuid.UUID]

ACTIVE_BOOKING_INDEX = "ix_shipment_active_booking_number"
# named by the "pk" naming convention below and by migration 0001
LINK_KEY_CONSTRAINT = "pk_shipment_document"
ACTIVE_SHIPMENT_CLAUSE = "status <> 'cancelled'"


class UTCDateTime(TypeDecorator[datetime]):
    impl = DateTime(timezone=True)
    cache_ok = True

    def process_bind_param(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        if value.tzinfo is None:
            value = value.replace(tzinfo=UTC)
        return value.astimezone(UTC)

    def process_result_value(self, value: datetime | None, dialect: Dialect) -> datetime | None:
        _ = dialect
        if value is None:
            return None
        return value if value.tzinfo else value.replace(tzinfo=UTC)


class StringListType(TypeDecorator[list[str]]):
    """Ordered list of strings stored as a JSON array."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[str] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps(list(value))

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[str]:
        _ = dialect
        if value is None:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        items = cast(list[Any], loaded)
        return [item for item in items if isinstance(item, str)]


class UUIDListType(TypeDecorator[list[uuid.UUID]]):
    """List of UUIDs stored as a JSON array of strings."""

    impl = Text
    cache_ok = True

    def process_bind_param(self, value: list[uuid.UUID] | None, dialect: Dialect) -> str | None:
        _ = dialect
        if value is None:
            return None
        return json.dumps([str(item) for item in value])

    def process_result_value(self, value: str | None, dialect: Dialect) -> list[uuid.UUID]:
        _ = dialect
        if value is None:
            return []
        loaded = json.loads(value)
        if not isinstance(loaded, list):
            return []
        items = cast(list[Any], loaded)
        return [uuid.UUID(item) for item in items if isinstance(item, str)]


def _enum_values(enum_cls: type[PyEnum]) -> list[str]:
    return [str(member.value) for member in enum_cls]


def _enum_column_type(enum_cls: type[PyEnum]) -> Enum:
    return Enum(enum_cls, native_enum=False, values_callable=_enum_values, length=64)


mapper_registry = orm.registry()
mapper_registry.metadata.naming_convention = {
    "ix": "ix_%(column_0_label)s",
    "uq": "uq_%(table_name)s_%(column_0_label)s",
    "ck": "ck_%(table_name)s_%(constraint_name)s",
    "fk": "fk_%(table_name)s_%(column_0_label)s_%(referred_table_name)s",
    "pk": "pk_%(table_name)s",
}

# Shipment registry -------------------------------------------------------------

shipment_table = Table(
    "shipment",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("booking_number", String(64), nullable=True),
    Column("bl_number", String(64), nullable=True, index=True),
    Column("container_numbers", StringListType, nullable=False, default=list),
    Column("workflow_state", _enum_column_type(WorkflowState), nullable=False),
    Column("workflow_phase", _enum_column_type(WorkflowPhase), nullable=False),
    Column("status", _enum_column_type(ShipmentStatus), nullable=False),
    Column("version", Integer, nullable=False),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
)

# booking numbers are unique among shipments that are not cancelled
Index(
    ACTIVE_BOOKING_INDEX,
    shipment_table.c.booking_number,
    unique=True,
    sqlite_where=text(ACTIVE_SHIPMENT_CLAUSE),
    postgresql_where=text(ACTIVE_SHIPMENT_CLAUSE),
)

# Lookup sidecar mirroring Shipment.container_numbers, one row per container
shipment_container_table = Table(
    "shipment_container",
    mapper_registry.metadata,
    Column(
        "shipment_id",
        UUIDColumnType,
        ForeignKey("shipment.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("container_number", String(16), primary_key=True),
    Index("ix_shipment_container_container_number", "container_number"),
)

shipment_document_table = Table(
    "shipment_document",
    mapper_registry.metadata,
    Column(
        "shipment_id",
        UUIDColumnType,
        ForeignKey("shipment.id", ondelete="CASCADE"),
        primary_key=True,
    ),
    Column("email_id", String(128), primary_key=True),
    Column("document_type", String(64), nullable=False),
    Column("link_method", _enum_column_type(LinkMethod), nullable=False),
    Column("confidence", Float, nullable=False),
    Column("message_id", String(255), nullable=True, index=True),
    Column("matched_value", String(64), nullable=True),
    Column("linked_at", UTCDateTime, nullable=False),
    Index("ix_shipment_document_email_id", "email_id"),
)

link_candidate_table = Table(
    "link_candidate",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column("email_id", String(128), nullable=False, index=True),
    Column("entity_type", _enum_column_type(IdentifierType), nullable=False),
    Column("entity_value", String(64), nullable=False),
    Column("confidence", Float, nullable=False),
    Column("status", _enum_column_type(CandidateStatus), nullable=False, index=True),
    Column("document_type", String(64), nullable=True),
    Column("message_id", String(255), nullable=True),
    Column("candidate_shipment_ids", UUIDListType, nullable=False, default=list),
    Column("shipment_id", UUIDColumnType, nullable=True),
    Column("note", Text, nullable=True),
    Column("created_at", UTCDateTime, nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
    UniqueConstraint(
        "email_id",
        "entity_type",
        "entity_value",
        name="uq_link_candidate_email_entity",
    ),
)

workflow_transition_table = Table(
    "workflow_transition",
    mapper_registry.metadata,
    Column("id", UUIDColumnType, primary_key=True, default=uuid.uuid4),
    Column(
        "shipment_id",
        UUIDColumnType,
        ForeignKey("shipment.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    ),
    Column("from_state", _enum_column_type(WorkflowState), nullable=True),
    Column("to_state", _enum_column_type(WorkflowState), nullable=False),
    Column("reason", _enum_column_type(TransitionReason), nullable=False),
    Column("document_type", String(64), nullable=True),
    Column("email_id", String(128), nullable=True),
    Column("transitioned_at", UTCDateTime, nullable=False),
)

reconciliation_checkpoint_table = Table(
    "reconciliation_checkpoint",
    mapper_registry.metadata,
    Column("name", String(64), primary_key=True),
    Column("position", String(255), nullable=False),
    Column("updated_at", UTCDateTime, nullable=False),
)

# Collaborator tables -------------------------------------------------------------
# Written by the classification and extraction services; read-only here.

email_classification_table = Table(
    "email_classification",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email_id", String(128), nullable=False, index=True),
    Column("message_id", String(255), nullable=True),
    Column("document_type", String(64), nullable=False),
    Column("classified_at", UTCDateTime, nullable=False),
)

entity_extraction_table = Table(
    "entity_extraction",
    mapper_registry.metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("email_id", String(128), nullable=False, index=True),
    Column("entity_type", String(64), nullable=False),
    Column("entity_value", String(255), nullable=False),
    Column("confidence", Float, nullable=True),
)


@cache
def start_mappers() -> orm.registry:
    """Configure SQLAlchemy mappers for the domain model."""

    log.info("Starting SQLAlchemy mappers")

    mapper_registry.map_imperatively(
        Shipment,
        shipment_table,
        version_id_col=shipment_table.c.version,
    )

    mapper_registry.map_imperatively(
        DocumentLink,
        shipment_document_table,
    )

    mapper_registry.map_imperatively(
        LinkCandidate,
        link_candidate_table,
    )

    mapper_registry.map_imperatively(
        WorkflowTransition,
        workflow_transition_table,
    )

    mapper_registry.map_imperatively(
        ReconciliationCheckpoint,
        reconciliation_checkpoint_table,
    )

    configure_mappers()
    return mapper_registry


def create_all_tables(engine: Engine) -> None:
    """Create database tables for the mapped metadata."""

    log.info("Creating all tables")
    mapper_registry.metadata.create_all(engine)
