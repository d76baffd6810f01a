"""Replay linking and state derivation over the historical corpus.

The run has two phases:
1) link every document the source knows that is not linked yet, in email-id order,
   batch by batch, checkpointing after each batch of the first pass
2) re-derive the workflow state of every shipment from its linked documents

Both phases are idempotent: already linked emails are skipped and a shipment whose
state already matches its documents is left untouched.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from threading import Event
from typing import TYPE_CHECKING, Final

from freightlink.domain.linking import LinkingResolver, LinkOutcome, LinkStatus, process_document
from freightlink.domain.ports.errors import (
    ConcurrentUpdateError,
    DocumentSourceError,
    PersistenceError,
    StorageUnavailableError,
    TransientStorageError,
)
from freightlink.domain.retrying import call_with_retries
from freightlink.domain.workflow import rederive

from .batching import BatchRunner, ItemResult, dedupe_by
from .report import BackfillReport, DriftEntry

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from uuid import UUID

    from freightlink.domain.model import ClassifiedDocument, WorkflowState
    from freightlink.domain.ports import DocumentSource, LinkingUnitOfWork
    from freightlink.domain.workflow import WorkflowDefinition

log = getLogger(__name__)

CHECKPOINT_NAME: Final[str] = "backfill.linking"
DEFAULT_BACKFILL_BATCH_SIZE = 200

type UnitOfWorkFactory = Callable[[], LinkingUnitOfWork]


@dataclass(frozen=True, slots=True, kw_only=True)
class BackfillOptions:
    batch_size: int = DEFAULT_BACKFILL_BATCH_SIZE
    concurrency: int = 1
    max_passes: int = 2
    item_retries: int = 3
    retry_backoff_seconds: float = 0.2
    resume: bool = False
    allow_regression: bool = False

    def __post_init__(self) -> None:
        if self.batch_size < 1:
            raise ValueError("batch_size must be at least 1")
        if self.concurrency < 1:
            raise ValueError("concurrency must be at least 1")
        if self.max_passes < 1:
            raise ValueError("max_passes must be at least 1")
        if self.item_retries < 0:
            raise ValueError("item_retries cannot be negative")


@dataclass(frozen=True, slots=True)
class _Rederived:
    shipment_id: UUID
    booking_number: str | None
    before: WorkflowState
    after: WorkflowState
    derived: WorkflowState
    regression_skipped: bool


def backfill(
    *,
    source: DocumentSource,
    unit_of_work_factory: UnitOfWorkFactory,
    options: BackfillOptions | None = None,
    resolver: LinkingResolver | None = None,
    cancel_event: Event | None = None,
) -> BackfillReport:
    """Link unlinked historical documents, then repair drifted shipment states.

    Individual failures are counted and logged. ``StorageUnavailableError`` (carrying
    the partial report) is raised only when storage or the document source cannot
    be reached at all.
    """

    effective_options = options or BackfillOptions()
    effective_resolver = resolver or LinkingResolver()
    runner = BatchRunner(
        concurrency=effective_options.concurrency,
        cancel_event=cancel_event or Event(),
    )
    run = _BackfillRun(
        source=source,
        unit_of_work_factory=unit_of_work_factory,
        options=effective_options,
        resolver=effective_resolver,
        runner=runner,
        report=BackfillReport(),
    )
    return run.execute()


@dataclass(slots=True)
class _BackfillRun:
    source: DocumentSource
    unit_of_work_factory: UnitOfWorkFactory
    options: BackfillOptions
    resolver: LinkingResolver
    runner: BatchRunner
    report: BackfillReport

    @property
    def workflow(self) -> WorkflowDefinition:
        return self.resolver.workflow

    def execute(self) -> BackfillReport:
        start_after = self._read_start_position()
        log.info(
            "Starting backfill: batch_size=%s, concurrency=%s, max_passes=%s, resume_after=%s",
            self.options.batch_size,
            self.options.concurrency,
            self.options.max_passes,
            start_after,
        )

        if not self._link_documents(start_after):
            return self._cancelled()
        self._clear_checkpoint()

        if not self._rederive_shipments():
            return self._cancelled()

        log.info(
            "Finished backfill: updated=%s, skipped=%s, errors=%s, linked=%s, unresolved=%s",
            self.report.updated,
            self.report.skipped,
            self.report.errors,
            self.report.linking.linked,
            self.report.linking.unresolved,
        )
        return self.report

    def _cancelled(self) -> BackfillReport:
        log.warning("Backfill cancelled; rerun with --resume to continue")
        self.report.cancelled = True
        return self.report

    # Phase 1 -------------------------------------------------------------------

    def _link_documents(self, start_after: str | None) -> bool:
        for pass_number in range(1, self.options.max_passes + 1):
            self.report.linking.passes = pass_number
            linked_before = self.report.linking.linked
            after = start_after if pass_number == 1 else None
            seen: set[str] = set()
            unresolved = 0

            while True:
                if self.runner.cancelled:
                    return False
                batch = self._fetch(after)
                if not batch:
                    break
                after = batch[-1].email_id
                unresolved += self._link_batch(batch, seen)
                if pass_number == 1:
                    self._save_checkpoint(after)

            new_links = self.report.linking.linked - linked_before
            log.info(
                "Linking pass %s: %s new links, %s unresolved documents",
                pass_number,
                new_links,
                unresolved,
            )
            if new_links == 0 or unresolved == 0:
                break
        return True

    def _link_batch(self, batch: Sequence[ClassifiedDocument], seen: set[str]) -> int:
        linked_ids = self._storage_call(
            lambda: self._with_uow(
                lambda uow: uow.repositories.links.linked_email_ids(
                    [document.email_id for document in batch]
                )
            ),
            "reading linked emails",
        )
        unlinked = [document for document in batch if document.email_id not in linked_ids]
        fresh = dedupe_by(unlinked, key=lambda document: document.dedup_key, seen=seen)
        fresh_ids = {document.email_id for document in fresh}
        for document in unlinked:
            if document.email_id not in fresh_ids:
                self.report.linking.record(
                    LinkOutcome(
                        email_id=document.email_id,
                        status=LinkStatus.DUPLICATE,
                        reason="message repeated within the batch",
                    )
                )

        results = self.runner.run(
            fresh,
            self._process,
            describe=lambda document: f"email {document.email_id}",
        )
        unresolved = 0
        for result in results:
            outcome = result.value
            if outcome is None:
                self.report.linking.record_error()
                self.report.errors += 1
                continue
            self.report.linking.record(outcome)
            if outcome.unresolved:
                unresolved += 1
            change = outcome.state_change
            if change is not None and change.from_state is not None and outcome.shipment_id:
                self.report.record_transition(
                    shipment_id=outcome.shipment_id,
                    booking_number=outcome.booking_number,
                    old_state=change.from_state,
                    new_state=change.to_state,
                )
        self._raise_if_storage_down(results)
        return unresolved

    def _process(self, document: ClassifiedDocument) -> LinkOutcome:
        return process_document(
            document,
            unit_of_work_factory=self.unit_of_work_factory,
            resolver=self.resolver,
            retries=self.options.item_retries,
            backoff_seconds=self.options.retry_backoff_seconds,
        )

    def _fetch(self, after: str | None) -> list[ClassifiedDocument]:
        try:
            return self.source.fetch_batch(after=after, limit=self.options.batch_size)
        except DocumentSourceError as exc:
            raise StorageUnavailableError(
                f"Document source unavailable: {exc}",
                report=self.report,
            ) from exc

    def _save_checkpoint(self, position: str) -> None:
        def save(uow: LinkingUnitOfWork) -> None:
            uow.repositories.checkpoints.save(CHECKPOINT_NAME, position)
            uow.commit()

        self._storage_call(lambda: self._with_uow(save), "saving the backfill checkpoint")

    def _clear_checkpoint(self) -> None:
        def clear(uow: LinkingUnitOfWork) -> None:
            uow.repositories.checkpoints.clear(CHECKPOINT_NAME)
            uow.commit()

        self._storage_call(lambda: self._with_uow(clear), "clearing the backfill checkpoint")

    # Phase 2 -------------------------------------------------------------------

    def _rederive_shipments(self) -> bool:
        after: UUID | None = None
        while True:
            if self.runner.cancelled:
                return False
            cursor = after
            shipment_ids = self._storage_call(
                lambda: self._with_uow(
                    lambda uow: uow.repositories.shipments.list_ids(
                        after=cursor,
                        limit=self.options.batch_size,
                    )
                ),
                "listing shipments",
            )
            if not shipment_ids:
                return True
            after = shipment_ids[-1]

            results = self.runner.run(
                shipment_ids,
                self._rederive_with_retries,
                describe=lambda shipment_id: f"shipment {shipment_id}",
            )
            for result in results:
                self._record_rederived(result.value)
            self._raise_if_storage_down(results)
            if len(shipment_ids) < self.options.batch_size:
                return True

    def _rederive_with_retries(self, shipment_id: UUID) -> _Rederived | None:
        return call_with_retries(
            lambda: self._rederive_one(shipment_id),
            retries=self.options.item_retries,
            backoff_seconds=self.options.retry_backoff_seconds,
            description=f"Re-deriving shipment {shipment_id}",
        )

    def _rederive_one(self, shipment_id: UUID) -> _Rederived | None:
        with self.unit_of_work_factory() as uow:
            repositories = uow.repositories
            shipment = repositories.shipments.get(shipment_id)
            if shipment is None:
                return None
            document_types = repositories.links.document_types_by_shipment([shipment_id])
            before = shipment.workflow_state
            result = rederive(
                shipment,
                document_types.get(shipment_id, ()),
                allow_regression=self.options.allow_regression,
                workflow=self.workflow,
            )
            if result.change is not None:
                repositories.history.add(result.change.to_transition(shipment))
                repositories.shipments.save(shipment)
                uow.commit()
            return _Rederived(
                shipment_id=shipment.id,
                booking_number=shipment.booking_number,
                before=before,
                after=shipment.workflow_state,
                derived=result.derived.state,
                regression_skipped=result.regression_skipped,
            )

    def _record_rederived(self, rederived: _Rederived | None) -> None:
        # None means either a failure (already logged) or a shipment gone since listing
        if rederived is None:
            self.report.errors += 1
            return
        if rederived.after is not rederived.before:
            self.report.record_transition(
                shipment_id=rederived.shipment_id,
                booking_number=rederived.booking_number,
                old_state=rederived.before,
                new_state=rederived.after,
            )
            return
        if not self.report.has_transition(rederived.shipment_id):
            self.report.skipped += 1
        if rederived.regression_skipped:
            self.report.regressions.append(
                DriftEntry(
                    shipment_id=rederived.shipment_id,
                    booking_number=rederived.booking_number,
                    stored_state=rederived.before,
                    derived_state=rederived.derived,
                    ahead=True,
                )
            )

    # Shared --------------------------------------------------------------------

    def _read_start_position(self) -> str | None:
        def read_checkpoint(uow: LinkingUnitOfWork) -> str | None:
            checkpoint = uow.repositories.checkpoints.get(CHECKPOINT_NAME)
            return checkpoint.position if checkpoint is not None else None

        position = self._storage_call(
            lambda: self._with_uow(read_checkpoint), "reading the backfill checkpoint"
        )
        if not self.options.resume:
            return None
        if position is not None:
            log.info("Resuming backfill after email %s", position)
        return position

    def _with_uow[T](self, func: Callable[[LinkingUnitOfWork], T]) -> T:
        with self.unit_of_work_factory() as uow:
            return func(uow)

    def _storage_call[T](self, func: Callable[[], T], description: str) -> T:
        try:
            return call_with_retries(
                func,
                retries=self.options.item_retries,
                backoff_seconds=self.options.retry_backoff_seconds,
                description=description.capitalize(),
            )
        except PersistenceError as exc:
            raise StorageUnavailableError(
                f"Storage unavailable while {description}: {exc}",
                report=self.report,
            ) from exc

    def _raise_if_storage_down(self, results: Sequence[ItemResult[object, object]]) -> None:
        """Abort only when a batch lost every item to storage and storage stays unreachable.

        A lost version race says nothing about reachability, so ``ConcurrentUpdateError``
        never counts. The failed items are already counted under ``errors``.
        """

        if not results or not all(_is_storage_outage(result.error) for result in results):
            return
        log.warning(
            "All %s items of the batch failed with storage errors; checking storage",
            len(results),
        )
        self._storage_call(
            lambda: self._with_uow(
                lambda uow: uow.repositories.checkpoints.get(CHECKPOINT_NAME)
            ),
            "checking storage after a failed batch",
        )


def _is_storage_outage(error: Exception | None) -> bool:
    if error is None or isinstance(error, ConcurrentUpdateError):
        return False
    return isinstance(error, (TransientStorageError, StorageUnavailableError))
