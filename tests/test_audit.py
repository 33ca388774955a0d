"""Tests for the audit logger."""

from fintrack.audit import AuditLogger
from fintrack.models.audit import AuditEventBuilder, AuditEventType, AuditSeverity


class TestAuditLogger:
    """Tests for local audit history."""

    def test_recent_events_newest_first(self):
        audit = AuditLogger()
        audit.log(AuditEventBuilder.card_added("c1", "HDFC"))
        audit.log(AuditEventBuilder.card_removed("c1", cascaded=0))

        events = audit.recent_events()

        assert [e.event_type for e in events] == [
            AuditEventType.CARD_REMOVED,
            AuditEventType.CARD_ADDED,
        ]

    def test_history_is_bounded(self):
        audit = AuditLogger(history_size=3)
        for index in range(5):
            audit.log(AuditEventBuilder.sync_started(f"c{index}"))

        events = audit.recent_events()

        assert [e.entity_id for e in events] == ["c4", "c3", "c2"]

    def test_recent_events_limit(self):
        audit = AuditLogger()
        for index in range(5):
            audit.log(AuditEventBuilder.sync_started(f"c{index}"))
        assert len(audit.recent_events(limit=2)) == 2

    def test_log_error(self):
        audit = AuditLogger()
        audit.log_error("ValueError", "bad input", details={"field": "amount"})

        event = audit.recent_events()[0]

        assert event.event_type == AuditEventType.SYSTEM_ERROR
        assert event.severity == AuditSeverity.ERROR
        assert event.details == {"field": "amount"}

    def test_ledger_mutations_are_audited(self, ledger, audit_logger, make_card):
        card = ledger.add_card(make_card())
        ledger.remove_card(card.id)

        types = [e.event_type for e in audit_logger.recent_events()]

        assert types[:2] == [AuditEventType.CARD_REMOVED, AuditEventType.CARD_ADDED]
