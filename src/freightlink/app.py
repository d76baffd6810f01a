"""Application orchestration entry points."""

from __future__ import annotations

from collections.abc import Callable
from logging import getLogger
from typing import TYPE_CHECKING, Literal

from freightlink.adapters.postgrest import PostgrestDocumentSource
from freightlink.adapters.sqlalchemy.sources import SqlAlchemyDocumentSource
from freightlink.adapters.sqlalchemy.unit_of_work import (
    SqlAlchemyLinkingUnitOfWork,
    is_started,
    session_factory,
    startup,
)
from freightlink.config import get_postgrest_config, get_reconcile_config
from freightlink.domain.linking import (
    confirm_candidate,
    list_candidates,
    reclassify,
    reject_candidate,
)
from freightlink.domain.ports.unit_of_work import LinkingUnitOfWork
from freightlink.domain.reconciliation import BackfillOptions, backfill, verify

if TYPE_CHECKING:
    from threading import Event
    from uuid import UUID

    from freightlink.domain.linking import LinkOutcome
    from freightlink.domain.model import CandidateStatus, LinkCandidate, Shipment
    from freightlink.domain.ports import DocumentSource
    from freightlink.domain.reconciliation import BackfillReport, VerifyReport
    from freightlink.domain.workflow import StateChange

UnitOfWorkFactory = Callable[[], LinkingUnitOfWork]
type SourceName = Literal["sql", "postgrest"]

log = getLogger(__name__)


def _ensure_started() -> None:
    if not is_started():
        startup()


def build_document_source(name: SourceName = "sql") -> DocumentSource:
    """Document source for the configured collaborator backend."""

    if name == "postgrest":
        return PostgrestDocumentSource(config=get_postgrest_config())
    if name == "sql":
        _ensure_started()
        return SqlAlchemyDocumentSource(session_factory())
    raise ValueError(f"Unknown document source: {name}")


def verify_workflow_states(
    *,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    batch_size: int | None = None,
) -> VerifyReport:
    """Compare every shipment's stored state with the state its documents derive."""

    _ensure_started()
    effective_batch_size = batch_size or get_reconcile_config().batch_size
    report = verify(
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyLinkingUnitOfWork,
        batch_size=effective_batch_size,
    )
    log.info(
        "Verified %s shipments: %s matching, %s drifted",
        report.total,
        report.matching,
        report.drift_count,
    )
    return report


def backfill_shipments(
    *,
    source: DocumentSource | None = None,
    source_name: SourceName = "sql",
    unit_of_work_factory: UnitOfWorkFactory | None = None,
    batch_size: int | None = None,
    concurrency: int | None = None,
    max_passes: int | None = None,
    resume: bool = False,
    allow_regression: bool = False,
    cancel_event: Event | None = None,
) -> BackfillReport:
    """Link historical documents and repair drifted workflow states.

    Unset tuning arguments fall back to ``ReconcileConfig``.
    """

    _ensure_started()
    config = get_reconcile_config()
    options = BackfillOptions(
        batch_size=batch_size or config.batch_size,
        concurrency=concurrency or config.concurrency,
        max_passes=max_passes or config.max_passes,
        item_retries=config.item_retries,
        retry_backoff_seconds=config.retry_backoff_seconds,
        resume=resume,
        allow_regression=allow_regression,
    )
    effective_source = source or build_document_source(source_name)
    return backfill(
        source=effective_source,
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyLinkingUnitOfWork,
        options=options,
        cancel_event=cancel_event,
    )


def list_link_candidates(
    *,
    status: CandidateStatus | None = None,
    limit: int | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[LinkCandidate]:
    _ensure_started()
    return list_candidates(
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyLinkingUnitOfWork,
        status=status,
        limit=limit,
    )


def confirm_link_candidate(
    candidate_id: UUID,
    *,
    shipment_id: UUID | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> LinkOutcome:
    _ensure_started()
    return confirm_candidate(
        candidate_id,
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyLinkingUnitOfWork,
        shipment_id=shipment_id,
    )


def reject_link_candidate(
    candidate_id: UUID,
    *,
    note: str | None = None,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> LinkCandidate:
    _ensure_started()
    return reject_candidate(
        candidate_id,
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyLinkingUnitOfWork,
        note=note,
    )


def reclassify_document(
    email_id: str,
    document_type: str,
    *,
    allow_regression: bool = False,
    unit_of_work_factory: UnitOfWorkFactory | None = None,
) -> list[tuple[Shipment, StateChange]]:
    _ensure_started()
    return reclassify(
        email_id,
        document_type,
        unit_of_work_factory=unit_of_work_factory or SqlAlchemyLinkingUnitOfWork,
        allow_regression=allow_regression,
    )
