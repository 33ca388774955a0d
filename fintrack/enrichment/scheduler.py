"""
Enrichment Scheduler

Keeps every eligible card's public benefits up to date, in the background,
with AT MOST ONE outstanding request per card.

FLOW (runs after every change to the card set):
1. reconcile(cards) lists the cards that should be synced (pure, no effects)
2. The first one is marked in flight, set to SYNCING, and its lookup is
   started as an asyncio task
3. The SYNCING write is itself a card-set change, so evaluation repeats
   until nothing new is eligible: the backlog is dispatched one card at a
   time but the requests then run side by side
4. When a lookup ends the card becomes COMPLETED or FAILED, the in-flight
   entry is cleared and evaluation runs again

The in-flight table belongs to this instance and is never persisted. It is
what stops a card that was reset to IDLE mid-request from being dispatched
twice.

There is no automatic retry. A FAILED card is retried only after the user
edits its bank or variant name.
"""

import asyncio
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional

from pydantic import BaseModel, ConfigDict

from fintrack.agents import EnrichmentFetcher
from fintrack.audit import AuditLogger
from fintrack.ledger import LedgerStore, PersistenceError
from fintrack.models.audit import AuditEventBuilder
from fintrack.models.card import Card, CardIntelligence, SyncStatus


class SyncIntent(BaseModel):
    """A card the scheduler intends to sync, with the identity it will send."""

    model_config = ConfigDict(frozen=True)

    card_id: str
    bank_name: str
    variant_name: str


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class EnrichmentScheduler:
    """
    Background driver for card enrichment.

    Usage (inside a running event loop):
        scheduler = EnrichmentScheduler(ledger, agent.fetch_card_intelligence)
        scheduler.start()
        ...
        await scheduler.stop()
    """

    def __init__(
        self,
        ledger: LedgerStore,
        fetch_intelligence: EnrichmentFetcher,
        audit_logger: Optional[AuditLogger] = None,
        timeout_seconds: Optional[float] = None,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self._ledger = ledger
        self._fetch = fetch_intelligence
        self._audit = audit_logger or AuditLogger()
        self._timeout = timeout_seconds
        self._clock = clock

        self._in_flight: set[str] = set()
        self._tasks: set[asyncio.Task] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._running = False
        self._evaluating = False
        self._dirty = False

    @property
    def in_flight(self) -> frozenset[str]:
        """Ids of cards with an outstanding lookup."""
        return frozenset(self._in_flight)

    @property
    def is_running(self) -> bool:
        return self._running

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    def start(self) -> None:
        """
        Subscribe to the ledger and run the first evaluation.

        Must be called from inside a running event loop. Cards persisted as
        SYNCING by an earlier session cannot have a live request any more,
        so they are put back to IDLE first.
        """
        if self._running:
            return
        self._loop = asyncio.get_running_loop()
        self._running = True

        for card in self._ledger.cards:
            if card.sync_status == SyncStatus.SYNCING and card.id not in self._in_flight:
                self._write(self._ledger.mark_sync_idle, card.id)

        self._ledger.subscribe(self.notify)
        self.notify()

    async def stop(self) -> None:
        """Unsubscribe and cancel outstanding lookups."""
        self._running = False
        self._ledger.unsubscribe(self.notify)
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        # a task cancelled before its first step never reaches its cleanup
        self._in_flight.clear()

    async def drain(self) -> None:
        """Wait until no lookup is outstanding (including ones started meanwhile)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # -------------------------------------------------------------------------
    # Evaluation
    # -------------------------------------------------------------------------

    def reconcile(self, cards: Iterable[Card]) -> list[SyncIntent]:
        """
        Which cards need a sync, in card order.

        Eligible: bank name and variant name both set, status absent or
        IDLE, and no lookup already in flight for the card.
        """
        intents = []
        for card in cards:
            if not card.bank_name or not card.variant_name:
                continue
            if card.sync_status not in (None, SyncStatus.IDLE):
                continue
            if card.id in self._in_flight:
                continue
            intents.append(SyncIntent(
                card_id=card.id,
                bank_name=card.bank_name,
                variant_name=card.variant_name,
            ))
        return intents

    def notify(self) -> None:
        """
        React to a change in the card set.

        Re-entrant calls (our own SYNCING writes) are folded into the pass
        that is already running.
        """
        if not self._running:
            return
        if self._evaluating:
            self._dirty = True
            return

        self._evaluating = True
        try:
            while True:
                self._dirty = False
                intents = self.reconcile(self._ledger.cards)
                if intents:
                    self._dispatch(intents[0])
                if not self._dirty:
                    break
        finally:
            self._evaluating = False

    def _dispatch(self, intent: SyncIntent) -> None:
        self._in_flight.add(intent.card_id)
        card = self._write(self._ledger.mark_syncing, intent.card_id)
        if card is None:
            self._in_flight.discard(intent.card_id)
            return

        self._audit.log(AuditEventBuilder.sync_started(intent.card_id))
        task = self._loop.create_task(self._sync(intent))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # -------------------------------------------------------------------------
    # Lookup
    # -------------------------------------------------------------------------

    async def _sync(self, intent: SyncIntent) -> None:
        try:
            try:
                lookup = self._fetch(intent.bank_name, intent.variant_name)
                if self._timeout is not None:
                    intelligence = await asyncio.wait_for(lookup, self._timeout)
                else:
                    intelligence = await lookup
            except asyncio.TimeoutError:
                self._record_failure(intent, f"No answer after {self._timeout}s")
            except Exception as e:
                self._record_failure(intent, str(e) or type(e).__name__)
            else:
                self._record_success(intent, intelligence)
        finally:
            self._in_flight.discard(intent.card_id)
        self.notify()

    def _current(self, intent: SyncIntent) -> Optional[Card]:
        """
        The card as it is now, or None if the result no longer applies.

        A result is stale when the card was removed, or when its bank or
        variant changed while the lookup was running. A stale card keeps
        the IDLE status its edit gave it and is picked up again.
        """
        card = self._ledger.get_card(intent.card_id)
        if card is None:
            return None
        if card.bank_name != intent.bank_name or (card.variant_name or "") != intent.variant_name:
            self._audit.log(AuditEventBuilder.sync_discarded(intent.card_id))
            return None
        return card

    def _record_success(self, intent: SyncIntent, intelligence: CardIntelligence) -> None:
        if self._current(intent) is None:
            return
        self._write(self._ledger.apply_enrichment, intent.card_id, intelligence, self._clock())
        self._audit.log(AuditEventBuilder.sync_completed(
            intent.card_id,
            benefits=len(intelligence.benefits),
            milestones=len(intelligence.milestones),
        ))

    def _record_failure(self, intent: SyncIntent, error_message: str) -> None:
        if self._current(intent) is None:
            return
        self._write(self._ledger.mark_sync_failed, intent.card_id)
        self._audit.log(AuditEventBuilder.sync_failed(intent.card_id, error_message))

    def _write(self, operation, card_id: str, *args) -> Optional[Card]:
        """
        Apply a ledger write-back.

        The in-memory change stands even if saving it fails; the save
        failure is already audited by the ledger.
        """
        try:
            return operation(card_id, *args)
        except PersistenceError:
            return self._ledger.get_card(card_id)
