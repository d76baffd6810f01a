"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-09-14 09:12:44

"""

from __future__ import annotations

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

revision: str = "0001_initial_schema"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.create_table(
        "shipment",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("booking_number", sa.String(length=64), nullable=True),
        sa.Column("bl_number", sa.String(length=64), nullable=True),
        sa.Column("container_numbers", sa.Text(), nullable=False),
        sa.Column("workflow_state", sa.String(length=64), nullable=False),
        sa.Column("workflow_phase", sa.String(length=64), nullable=False),
        sa.Column("status", sa.String(length=64), nullable=False),
        sa.Column("version", sa.Integer(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_shipment"),
    )
    op.create_index("ix_shipment_bl_number", "shipment", ["bl_number"])
    op.create_index(
        "ix_shipment_active_booking_number",
        "shipment",
        ["booking_number"],
        unique=True,
        sqlite_where=sa.text("status <> 'cancelled'"),
        postgresql_where=sa.text("status <> 'cancelled'"),
    )

    op.create_table(
        "shipment_container",
        sa.Column("shipment_id", sa.Uuid(), nullable=False),
        sa.Column("container_number", sa.String(length=16), nullable=False),
        sa.ForeignKeyConstraint(
            ["shipment_id"],
            ["shipment.id"],
            name="fk_shipment_container_shipment_id_shipment",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("shipment_id", "container_number", name="pk_shipment_container"),
    )
    op.create_index(
        "ix_shipment_container_container_number",
        "shipment_container",
        ["container_number"],
    )

    op.create_table(
        "shipment_document",
        sa.Column("shipment_id", sa.Uuid(), nullable=False),
        sa.Column("email_id", sa.String(length=128), nullable=False),
        sa.Column("document_type", sa.String(length=64), nullable=False),
        sa.Column("link_method", sa.String(length=64), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("message_id", sa.String(length=255), nullable=True),
        sa.Column("matched_value", sa.String(length=64), nullable=True),
        sa.Column("linked_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["shipment_id"],
            ["shipment.id"],
            name="fk_shipment_document_shipment_id_shipment",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("shipment_id", "email_id", name="pk_shipment_document"),
    )
    op.create_index("ix_shipment_document_email_id", "shipment_document", ["email_id"])
    op.create_index("ix_shipment_document_message_id", "shipment_document", ["message_id"])

    op.create_table(
        "link_candidate",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("email_id", sa.String(length=128), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_value", sa.String(length=64), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=False),
        sa.Column("status", sa.String(length=64), nullable=False),
        sa.Column("document_type", sa.String(length=64), nullable=True),
        sa.Column("message_id", sa.String(length=255), nullable=True),
        sa.Column("candidate_shipment_ids", sa.Text(), nullable=False),
        sa.Column("shipment_id", sa.Uuid(), nullable=True),
        sa.Column("note", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_link_candidate"),
        sa.UniqueConstraint(
            "email_id",
            "entity_type",
            "entity_value",
            name="uq_link_candidate_email_entity",
        ),
    )
    op.create_index("ix_link_candidate_email_id", "link_candidate", ["email_id"])
    op.create_index("ix_link_candidate_status", "link_candidate", ["status"])

    op.create_table(
        "workflow_transition",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("shipment_id", sa.Uuid(), nullable=False),
        sa.Column("from_state", sa.String(length=64), nullable=True),
        sa.Column("to_state", sa.String(length=64), nullable=False),
        sa.Column("reason", sa.String(length=64), nullable=False),
        sa.Column("document_type", sa.String(length=64), nullable=True),
        sa.Column("email_id", sa.String(length=128), nullable=True),
        sa.Column("transitioned_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["shipment_id"],
            ["shipment.id"],
            name="fk_workflow_transition_shipment_id_shipment",
            ondelete="CASCADE",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_workflow_transition"),
    )
    op.create_index(
        "ix_workflow_transition_shipment_id",
        "workflow_transition",
        ["shipment_id"],
    )

    op.create_table(
        "reconciliation_checkpoint",
        sa.Column("name", sa.String(length=64), nullable=False),
        sa.Column("position", sa.String(length=255), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("name", name="pk_reconciliation_checkpoint"),
    )

    # owned by the classification and extraction services in production
    op.create_table(
        "email_classification",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email_id", sa.String(length=128), nullable=False),
        sa.Column("message_id", sa.String(length=255), nullable=True),
        sa.Column("document_type", sa.String(length=64), nullable=False),
        sa.Column("classified_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id", name="pk_email_classification"),
        if_not_exists=True,
    )
    op.create_index(
        "ix_email_classification_email_id",
        "email_classification",
        ["email_id"],
        if_not_exists=True,
    )

    op.create_table(
        "entity_extraction",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("email_id", sa.String(length=128), nullable=False),
        sa.Column("entity_type", sa.String(length=64), nullable=False),
        sa.Column("entity_value", sa.String(length=255), nullable=False),
        sa.Column("confidence", sa.Float(), nullable=True),
        sa.PrimaryKeyConstraint("id", name="pk_entity_extraction"),
        if_not_exists=True,
    )
    op.create_index(
        "ix_entity_extraction_email_id",
        "entity_extraction",
        ["email_id"],
        if_not_exists=True,
    )


def downgrade() -> None:
    op.drop_index("ix_workflow_transition_shipment_id", table_name="workflow_transition")
    op.drop_table("workflow_transition")
    op.drop_table("reconciliation_checkpoint")
    op.drop_index("ix_link_candidate_status", table_name="link_candidate")
    op.drop_index("ix_link_candidate_email_id", table_name="link_candidate")
    op.drop_table("link_candidate")
    op.drop_index("ix_shipment_document_message_id", table_name="shipment_document")
    op.drop_index("ix_shipment_document_email_id", table_name="shipment_document")
    op.drop_table("shipment_document")
    op.drop_index("ix_shipment_container_container_number", table_name="shipment_container")
    op.drop_table("shipment_container")
    op.drop_index("ix_shipment_active_booking_number", table_name="shipment")
    op.drop_index("ix_shipment_bl_number", table_name="shipment")
    op.drop_table("shipment")
