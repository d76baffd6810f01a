"""Plain-text tables for the operator CLI."""

from __future__ import annotations

from typing import TYPE_CHECKING

from freightlink.domain.linking import LinkStatus
from freightlink.domain.workflow import DEFAULT_WORKFLOW

if TYPE_CHECKING:
    from collections.abc import Sequence

    from freightlink.domain.model import LinkCandidate, Shipment
    from freightlink.domain.reconciliation import BackfillReport, VerifyReport
    from freightlink.domain.workflow import StateChange


def render_table(headers: Sequence[str], rows: Sequence[Sequence[object]]) -> str:
    cells = [[str(value) for value in row] for row in rows]
    widths = [len(header) for header in headers]
    for row in cells:
        for index, value in enumerate(row):
            widths[index] = max(widths[index], len(value))

    def line(values: Sequence[str]) -> str:
        return "  ".join(value.ljust(width) for value, width in zip(values, widths, strict=True))

    lines = [line(headers), line(["-" * width for width in widths])]
    lines.extend(line(row) for row in cells)
    return "\n".join(text.rstrip() for text in lines)


def format_verify_report(report: VerifyReport, *, max_rows: int | None = None) -> str:
    summary = render_table(
        ["state", "shipments", "matching", "drifted"],
        [
            [state, breakdown.total, breakdown.matching, breakdown.drifted]
            for state, breakdown in sorted(
                report.by_state.items(),
                key=lambda item: DEFAULT_WORKFLOW.order_of(item[0]),
            )
        ]
        + [["total", report.total, report.matching, report.drift_count]],
    )
    if not report.drifted:
        return summary

    drifted = report.drifted if max_rows is None else report.drifted[:max_rows]
    details = render_table(
        ["shipment", "booking", "stored", "derived", "direction"],
        [
            [
                entry.shipment_id,
                entry.booking_number or "-",
                entry.stored_state,
                entry.derived_state,
                entry.direction,
            ]
            for entry in drifted
        ],
    )
    parts = [summary, "", details]
    hidden = len(report.drifted) - len(drifted)
    if hidden > 0:
        parts.append(f"... {hidden} more drifted shipments")
    return "\n".join(parts)


def format_backfill_report(report: BackfillReport) -> str:
    linking = report.linking
    counters: list[list[object]] = [
        ["updated", report.updated],
        ["skipped", report.skipped],
        ["errors", report.errors],
        ["linking passes", linking.passes],
        ["documents processed", linking.processed],
    ]
    counters.extend([f"  {status}", linking.count(status)] for status in LinkStatus)
    counters.append(["  failed", linking.errors])
    counters.append(["regressions skipped", len(report.regressions)])
    parts = [render_table(["metric", "value"], counters)]

    if report.transitions:
        parts.append("")
        parts.append(
            render_table(
                ["booking", "old_state", "new_state"],
                [
                    [
                        transition.booking_number or str(transition.shipment_id),
                        transition.old_state,
                        transition.new_state,
                    ]
                    for transition in report.transitions
                ],
            )
        )
    if report.cancelled:
        parts.append("")
        parts.append("Backfill cancelled before completion; rerun with --resume.")
    return "\n".join(parts)


def format_candidates(candidates: Sequence[LinkCandidate]) -> str:
    if not candidates:
        return "No link candidates."
    return render_table(
        ["id", "email", "type", "value", "status", "confidence", "shipments"],
        [
            [
                candidate.id,
                candidate.email_id,
                candidate.entity_type,
                candidate.entity_value,
                candidate.status,
                f"{candidate.confidence:.2f}",
                len(candidate.candidate_shipment_ids),
            ]
            for candidate in candidates
        ],
    )


def format_state_changes(changes: Sequence[tuple[Shipment, StateChange]]) -> str:
    if not changes:
        return "No workflow state changed."
    return render_table(
        ["shipment", "old_state", "new_state", "reason"],
        [
            [shipment.label, change.from_state or "-", change.to_state, change.reason]
            for shipment, change in changes
        ],
    )
