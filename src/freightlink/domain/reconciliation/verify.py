"""Read-only comparison of stored and derived workflow states."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from freightlink.domain.workflow import DEFAULT_WORKFLOW, WorkflowDefinition, derive

from .report import VerifyReport

if TYPE_CHECKING:
    from collections.abc import Callable
    from uuid import UUID

    from freightlink.domain.ports import LinkingUnitOfWork

log = getLogger(__name__)

DEFAULT_VERIFY_BATCH_SIZE = 500


def verify(
    *,
    unit_of_work_factory: Callable[[], LinkingUnitOfWork],
    batch_size: int = DEFAULT_VERIFY_BATCH_SIZE,
    workflow: WorkflowDefinition = DEFAULT_WORKFLOW,
) -> VerifyReport:
    """Report shipments whose stored state differs from the one their documents imply."""

    report = VerifyReport()
    after: UUID | None = None
    with unit_of_work_factory() as uow:
        repositories = uow.repositories
        while True:
            shipment_ids = repositories.shipments.list_ids(after=after, limit=batch_size)
            if not shipment_ids:
                break
            after = shipment_ids[-1]
            document_types = repositories.links.document_types_by_shipment(shipment_ids)
            for shipment_id in shipment_ids:
                shipment = repositories.shipments.get(shipment_id)
                if shipment is None:
                    continue
                derived = derive(document_types.get(shipment_id, ()), workflow=workflow)
                stored = workflow.definition_for(shipment.workflow_state)
                report.record(
                    shipment_id=shipment.id,
                    booking_number=shipment.booking_number,
                    stored=stored.state,
                    derived=derived.state,
                    ahead=stored.order > derived.order,
                )
            if len(shipment_ids) < batch_size:
                break
        uow.rollback()

    log.info(
        "Verified %s shipments: %s matching, %s drifted",
        report.total,
        report.matching,
        report.drift_count,
    )
    return report
