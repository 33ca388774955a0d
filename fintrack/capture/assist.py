"""
Transaction Capture Assist

Turns a pasted message (bank SMS, e-mail line) into a pre-filled
transaction draft.

FLOW:
1. User pastes text -> capture()
2. Text too short? -> ERROR, the parser is never called
3. Parser proposes fields -> card resolved by last four digits
4. Draft stored for the form -> SUCCESS
5. SUCCESS / ERROR fall back to IDLE after a short delay

DESIGN DECISION: The assist NEVER writes to the ledger. The draft is a
proposal; it only becomes a Transaction when the user submits the form.
"""

import asyncio
from enum import Enum
from typing import Callable, Iterable, Optional

from fintrack.agents import TextParser
from fintrack.audit import AuditLogger
from fintrack.config import get_settings
from fintrack.models.audit import AuditEventBuilder
from fintrack.models.card import Card
from fintrack.models.transaction import ParsedTransaction, TransactionDraft


CardsProvider = Callable[[], Iterable[Card]]


class CaptureStatus(str, Enum):
    """Visible state of the capture control."""
    IDLE = "idle"
    SYNCING = "syncing"
    SUCCESS = "success"
    ERROR = "error"


def resolve_card(cards: Iterable[Card], last_four: Optional[str]) -> tuple[Optional[str], bool]:
    """
    Pick the card a parsed message belongs to.

    Returns (card_id, matched). Falls back to the first card when the
    digits match nothing, and to None when there are no cards.
    """
    cards = list(cards)
    if last_four:
        for card in cards:
            if card.last_four and card.last_four == last_four:
                return card.id, True
    if cards:
        return cards[0].id, False
    return None, False


class CaptureAssist:
    """
    Parses pasted text into a TransactionDraft.

    Usage (inside a running event loop):
        assist = CaptureAssist(agent.parse_transaction_text, lambda: ledger.cards)
        draft = await assist.capture(sms_text)
        if draft and draft.card_id:
            ledger.add_transaction(draft.to_transaction())
    """

    def __init__(
        self,
        parse_text: TextParser,
        cards_provider: CardsProvider,
        min_text_length: Optional[int] = None,
        reset_delay: Optional[float] = None,
        audit_logger: Optional[AuditLogger] = None,
    ):
        if min_text_length is None or reset_delay is None:
            app_settings = get_settings().app
            if min_text_length is None:
                min_text_length = app_settings.capture_min_text_length
            if reset_delay is None:
                reset_delay = app_settings.capture_reset_delay_seconds

        self._parse = parse_text
        self._cards_provider = cards_provider
        self._min_text_length = min_text_length
        self._reset_delay = reset_delay
        self._audit = audit_logger or AuditLogger()

        self._status = CaptureStatus.IDLE
        self._draft: Optional[TransactionDraft] = None
        self._error_message: Optional[str] = None
        self._reset_handle: Optional[asyncio.TimerHandle] = None

    @property
    def status(self) -> CaptureStatus:
        return self._status

    @property
    def draft(self) -> Optional[TransactionDraft]:
        """The most recent successful draft (kept across failed attempts)."""
        return self._draft.model_copy() if self._draft else None

    @property
    def error_message(self) -> Optional[str]:
        return self._error_message

    def clear_draft(self) -> None:
        """Forget the draft, e.g. after the user submitted or cancelled the form."""
        self._draft = None

    def close(self) -> None:
        """Cancel a pending reset."""
        self._cancel_reset()

    async def capture(self, raw_text: Optional[str]) -> Optional[TransactionDraft]:
        """
        Parse pasted text into a draft.

        Returns the new draft, or None when the text could not be used.
        Failures only change the status; the previous draft is kept.
        """
        self._cancel_reset()
        self._error_message = None

        text = (raw_text or "").strip()
        if len(text) < self._min_text_length:
            self._fail(f"Paste at least {self._min_text_length} characters")
            return None

        self._status = CaptureStatus.SYNCING
        try:
            parsed = await self._parse(text)
            if not isinstance(parsed, ParsedTransaction):
                parsed = ParsedTransaction.model_validate(parsed)
        except Exception as e:
            self._fail(str(e) or type(e).__name__)
            return None

        card_id, matched = resolve_card(self._cards_provider(), parsed.card_last_four)
        draft = TransactionDraft(
            card_id=card_id,
            amount=parsed.amount,
            description=parsed.description,
            occurred_at=parsed.occurred_at,
            category=parsed.category,
        )
        self._draft = draft
        self._audit.log(AuditEventBuilder.capture_succeeded(card_id, matched))
        self._finish(CaptureStatus.SUCCESS)
        return draft.model_copy()

    def _fail(self, reason: str) -> None:
        self._error_message = reason
        self._audit.log(AuditEventBuilder.capture_failed(reason))
        self._finish(CaptureStatus.ERROR)

    def _finish(self, status: CaptureStatus) -> None:
        self._status = status
        loop = asyncio.get_running_loop()
        self._reset_handle = loop.call_later(self._reset_delay, self._reset)

    def _reset(self) -> None:
        self._status = CaptureStatus.IDLE
        self._reset_handle = None

    def _cancel_reset(self) -> None:
        if self._reset_handle is not None:
            self._reset_handle.cancel()
            self._reset_handle = None
