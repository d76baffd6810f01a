from __future__ import annotations

from uuid import uuid4

from freightlink.domain.linking import LinkOutcome, LinkStatus
from freightlink.domain.model import WorkflowState
from freightlink.domain.reconciliation import BackfillReport, VerifyReport
from freightlink.ui.report import (
    format_backfill_report,
    format_candidates,
    format_state_changes,
    format_verify_report,
    render_table,
)


def test_render_table_pads_columns() -> None:
    table = render_table(["a", "bb"], [["xyz", 1]])

    assert table.splitlines() == ["a    bb", "---  --", "xyz  1"]


def _drifted_report(count: int) -> VerifyReport:
    report = VerifyReport()
    report.record(
        shipment_id=uuid4(),
        booking_number="OK1",
        stored=WorkflowState.BL_RECEIVED,
        derived=WorkflowState.BL_RECEIVED,
        ahead=False,
    )
    for index in range(count):
        report.record(
            shipment_id=uuid4(),
            booking_number=f"BK{index}",
            stored=WorkflowState.SI_CONFIRMED,
            derived=WorkflowState.BL_RECEIVED,
            ahead=False,
        )
    return report


def test_verify_report_orders_states_by_workflow() -> None:
    text = format_verify_report(_drifted_report(1))

    assert text.index("si_confirmed") < text.index("bl_received")
    assert "total" in text


def test_verify_report_truncates_drift_rows() -> None:
    text = format_verify_report(_drifted_report(3), max_rows=1)

    assert "BK0" in text
    assert "BK2" not in text
    assert "... 2 more drifted shipments" in text


def test_verify_report_without_drift_has_no_detail_table() -> None:
    text = format_verify_report(_drifted_report(0))

    assert "direction" not in text


def test_backfill_report_lists_transitions_and_cancellation() -> None:
    report = BackfillReport(cancelled=True)
    report.linking.record(LinkOutcome(email_id="e1", status=LinkStatus.CREATED))
    report.record_transition(
        shipment_id=uuid4(),
        booking_number="BK1",
        old_state=WorkflowState.SI_CONFIRMED,
        new_state=WorkflowState.BL_RECEIVED,
    )

    text = format_backfill_report(report)

    assert "BK1" in text
    assert "rerun with --resume" in text
    assert any(line.split() == ["created", "1"] for line in text.splitlines())


def test_empty_listings() -> None:
    assert format_candidates([]) == "No link candidates."
    assert format_state_changes([]) == "No workflow state changed."
