"""
Main Orchestrator for FinTrack

Ties the components together into one application object:
1. Ledger (cards + transactions, persisted on the device)
2. Enrichment scheduler (public card benefits, in the background)
3. Capture assist (pasted text -> transaction draft)

DESIGN DECISION: The orchestrator enforces the boundaries:
- Only the ledger changes cards and transactions
- Only bank name and variant name ever reach the enrichment service
- A parsed message becomes a transaction only when the user submits it
- Every change is audited
"""

from pathlib import Path
from typing import Optional

import structlog

from fintrack.agents import (
    CardIntelligenceAgent,
    EnrichmentFetcher,
    TextParser,
    TransactionParsingAgent,
    intelligence_unavailable,
    parsing_unavailable,
)
from fintrack.audit import AuditLogger
from fintrack.capture import CaptureAssist
from fintrack.config import get_settings
from fintrack.enrichment import EnrichmentScheduler
from fintrack.ledger import LedgerStore
from fintrack.models.transaction import Transaction, TransactionDraft
from fintrack.services.storage import JsonFileStore, KeyValueStore


logger = structlog.get_logger(__name__)


class FinTrackApp:
    """
    The running application.

    Usage:
        app = create_app_components()
        await app.start()
        app.ledger.add_card(card)          # scheduler picks it up
        draft = await app.capture.capture(sms_text)
        app.submit_draft(draft)
        await app.shutdown()
    """

    def __init__(
        self,
        ledger: LedgerStore,
        scheduler: EnrichmentScheduler,
        capture: CaptureAssist,
        audit_logger: AuditLogger,
    ):
        self.ledger = ledger
        self.scheduler = scheduler
        self.capture = capture
        self.audit = audit_logger

    async def start(self) -> None:
        """Load saved data, then start background enrichment."""
        self.ledger.load()
        self.scheduler.start()
        logger.info(
            "fintrack_started",
            cards=len(self.ledger.cards),
            transactions=len(self.ledger.transactions),
        )

    async def shutdown(self) -> None:
        """Stop background work. Saved data is already up to date."""
        await self.scheduler.stop()
        self.capture.close()
        logger.info("fintrack_stopped")

    def submit_draft(self, draft: TransactionDraft) -> Transaction:
        """
        Save a (possibly user-edited) capture draft as a transaction.

        Raises:
            ValueError: the draft has no card
            ReferentialIntegrityError: the draft's card no longer exists
        """
        transaction = self.ledger.add_transaction(draft.to_transaction())
        self.capture.clear_draft()
        return transaction


def create_app_components(
    data_dir: Optional[Path] = None,
    use_ai: bool = True,
    store: Optional[KeyValueStore] = None,
) -> FinTrackApp:
    """
    Factory function to create all application components.

    Args:
        data_dir: Where collections are saved (default from StorageSettings)
        use_ai: Whether to use Gemini for enrichment and parsing.
                Set to False to run fully offline: cards then end up
                FAILED and capture always reports an error.
        store: Key-value medium to use instead of files (e.g. InMemoryStore)

    Returns:
        FinTrackApp, not yet started
    """
    app_settings = get_settings().app
    audit_logger = AuditLogger()

    if store is None:
        store = JsonFileStore(data_dir=data_dir)
    ledger = LedgerStore(store, audit_logger=audit_logger)

    fetch_intelligence: EnrichmentFetcher = intelligence_unavailable
    parse_text: TextParser = parsing_unavailable
    if use_ai:
        try:
            fetch_intelligence = CardIntelligenceAgent().fetch_card_intelligence
            parse_text = TransactionParsingAgent().parse_transaction_text
        except Exception as e:
            # Gemini not configured - continue without it
            audit_logger.log_error(
                type(e).__name__,
                str(e),
                details={"reason": "ai_not_configured"},
            )
            fetch_intelligence = intelligence_unavailable
            parse_text = parsing_unavailable

    scheduler = EnrichmentScheduler(
        ledger,
        fetch_intelligence,
        audit_logger=audit_logger,
        timeout_seconds=app_settings.sync_timeout_seconds,
    )
    capture = CaptureAssist(
        parse_text,
        lambda: ledger.cards,
        min_text_length=app_settings.capture_min_text_length,
        reset_delay=app_settings.capture_reset_delay_seconds,
        audit_logger=audit_logger,
    )

    return FinTrackApp(
        ledger=ledger,
        scheduler=scheduler,
        capture=capture,
        audit_logger=audit_logger,
    )
