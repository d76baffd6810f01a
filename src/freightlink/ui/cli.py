# ruff: noqa: T201

from __future__ import annotations

import argparse
import logging
import sys
from signal import SIGINT, signal
from threading import Event
from typing import TYPE_CHECKING
from uuid import UUID

from dotenv import load_dotenv

from freightlink.app import (
    backfill_shipments,
    confirm_link_candidate,
    list_link_candidates,
    reclassify_document,
    reject_link_candidate,
    verify_workflow_states,
)
from freightlink.config import ConfigurationError, configure_logging
from freightlink.domain.linking import LinkingError
from freightlink.domain.model import CandidateStatus
from freightlink.domain.ports.errors import StorageUnavailableError
from freightlink.domain.reconciliation import BackfillReport
from freightlink.ui.report import (
    format_backfill_report,
    format_candidates,
    format_state_changes,
    format_verify_report,
)

if TYPE_CHECKING:
    from collections.abc import Sequence
    from types import FrameType

log = logging.getLogger(__name__)

CANCEL_EVENT = Event()


def _parse_args(argv: Sequence[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Link classified freight emails to shipments and reconcile workflow state"
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Log debug output",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    verify = subparsers.add_parser(
        "verify",
        help="Report shipments whose stored state differs from their documents",
    )
    verify.add_argument(
        "--batch-size",
        type=int,
        help="Number of shipments to read per query (defaults to config)",
    )
    verify.add_argument(
        "--max-rows",
        type=int,
        default=50,
        help="Maximum number of drifted shipments to print (default: %(default)s)",
    )

    backfill = subparsers.add_parser(
        "backfill",
        help="Link historical documents and repair drifted workflow states",
    )
    backfill.add_argument(
        "--batch-size",
        type=int,
        help="Number of documents or shipments per batch (defaults to config)",
    )
    backfill.add_argument(
        "--concurrency",
        type=int,
        help="Number of worker threads per batch (defaults to config)",
    )
    backfill.add_argument(
        "--max-passes",
        type=int,
        help="Maximum number of linking passes over the corpus (defaults to config)",
    )
    backfill.add_argument(
        "--resume",
        action="store_true",
        help="Continue after the checkpoint of an interrupted run",
    )
    backfill.add_argument(
        "--allow-regression",
        action="store_true",
        help="Move shipments back when their documents support only an earlier state",
    )
    backfill.add_argument(
        "--source",
        choices=("sql", "postgrest"),
        default="sql",
        help="Where to read classified emails from (default: %(default)s)",
    )

    candidates = subparsers.add_parser("candidates", help="Review unresolved link candidates")
    candidates_sub = candidates.add_subparsers(dest="candidates_command", required=True)
    candidates_list = candidates_sub.add_parser("list", help="List link candidates")
    candidates_list.add_argument(
        "--status",
        choices=[status.value for status in CandidateStatus],
        help="Only list candidates with this status",
    )
    candidates_list.add_argument(
        "--limit",
        type=int,
        default=50,
        help="Maximum number of candidates to list (default: %(default)s)",
    )
    candidates_confirm = candidates_sub.add_parser(
        "confirm",
        help="Link a candidate's email to a shipment",
    )
    candidates_confirm.add_argument("candidate_id", type=str, help="Candidate id")
    candidates_confirm.add_argument(
        "--shipment-id",
        type=str,
        help="Shipment to link to (required unless the candidate lists exactly one)",
    )
    candidates_reject = candidates_sub.add_parser("reject", help="Reject a candidate")
    candidates_reject.add_argument("candidate_id", type=str, help="Candidate id")
    candidates_reject.add_argument("--note", type=str, help="Reason for the rejection")

    reclassify = subparsers.add_parser(
        "reclassify",
        help="Change the document type of a linked email and re-derive its shipments",
    )
    reclassify.add_argument("email_id", type=str, help="Email id")
    reclassify.add_argument("document_type", type=str, help="New document type")
    reclassify.add_argument(
        "--allow-regression",
        action="store_true",
        help="Allow the shipment state to move back",
    )

    args = parser.parse_args(list(argv))
    for name in ("batch_size", "concurrency", "max_passes", "limit", "max_rows"):
        value = getattr(args, name, None)
        if value is not None and value < 1:
            raise ValueError(f"--{name.replace('_', '-')} must be at least 1")
    return args


def _parse_uuid(value: str) -> UUID:
    try:
        return UUID(value)
    except ValueError as exc:
        raise ValueError(f"Invalid UUID: {value}") from exc


def _run(args: argparse.Namespace) -> None:
    if args.command == "verify":
        report = verify_workflow_states(batch_size=args.batch_size)
        print(format_verify_report(report, max_rows=args.max_rows))
        return

    if args.command == "backfill":
        backfill_report = backfill_shipments(
            source_name=args.source,
            batch_size=args.batch_size,
            concurrency=args.concurrency,
            max_passes=args.max_passes,
            resume=args.resume,
            allow_regression=args.allow_regression,
            cancel_event=CANCEL_EVENT,
        )
        print(format_backfill_report(backfill_report))
        return

    if args.command == "candidates":
        if args.candidates_command == "list":
            status = CandidateStatus(args.status) if args.status else None
            print(format_candidates(list_link_candidates(status=status, limit=args.limit)))
        elif args.candidates_command == "confirm":
            shipment_id = _parse_uuid(args.shipment_id) if args.shipment_id else None
            outcome = confirm_link_candidate(
                _parse_uuid(args.candidate_id),
                shipment_id=shipment_id,
            )
            print(f"Linked email {outcome.email_id} to shipment {outcome.shipment_id}")
        elif args.candidates_command == "reject":
            candidate = reject_link_candidate(_parse_uuid(args.candidate_id), note=args.note)
            print(f"Rejected candidate {candidate.id}")
        return

    if args.command == "reclassify":
        changes = reclassify_document(
            args.email_id,
            args.document_type,
            allow_regression=args.allow_regression,
        )
        print(format_state_changes(changes))
        return

    raise ValueError(f"Unsupported command: {args.command}")


def main(argv: Sequence[str] | None = None) -> None:
    """Main application entry point."""
    if argv is None:
        load_dotenv()
        signal(SIGINT, sigint_handler)
    args_list = list(argv) if argv is not None else list(sys.argv[1:])
    try:
        parsed_args = _parse_args(args_list)
    except ValueError:
        log.exception("CLI validation error")
        sys.exit(2)
    configure_logging(level=logging.DEBUG if parsed_args.verbose else None)

    try:
        _run(parsed_args)
    except ConfigurationError:
        log.exception("Configuration error")
        sys.exit(2)
    except StorageUnavailableError as exc:
        log.exception("Storage unavailable; stopping")
        if isinstance(exc.report, BackfillReport):
            print(format_backfill_report(exc.report))
        sys.exit(1)
    except (LinkingError, ValueError) as exc:
        log.error(f"{exc}")  # noqa: TRY400
        sys.exit(1)
    except Exception:
        log.exception("Fatal error")
        sys.exit(1)


def sigint_handler(_signal_received: int, _frame: FrameType | None) -> None:
    """First Ctrl+C stops a running backfill after the current batch; the second exits."""
    if CANCEL_EVENT.is_set():
        log.info("Closed by user (Ctrl+C)")
        sys.exit(130)
    log.warning("Cancelling after the current batch; press Ctrl+C again to abort")
    CANCEL_EVENT.set()


if __name__ == "__main__":
    main()
