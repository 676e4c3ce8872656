"""
Tests for OutboxService: enqueue, due-entry selection and terminal marking.
"""
from datetime import datetime, timedelta

import pytest

from facilityops.models import NotificationTemplate, OutboxEntry, OutboxStatus, db
from facilityops.services.outbox_service import OutboxService
from facilityops.unit_of_work import unit_of_work


@pytest.fixture
def enqueue(org):
    def _enqueue(destination="+15555550200", send_at=None, template=NotificationTemplate.ASSIGNED):
        with unit_of_work():
            entry = OutboxService.enqueue(
                organization_id=org.id,
                destination=destination,
                template=template,
                payload={'title': 'Leak'},
                send_at=send_at,
            )
        return entry.id
    return _enqueue


def test_enqueue_creates_pending_entry(enqueue):
    entry = db.session.get(OutboxEntry, enqueue())
    assert entry.status == OutboxStatus.PENDING
    assert entry.sent_at is None
    assert entry.send_at <= datetime.utcnow()


def test_enqueue_rolled_back_with_operation(org):
    with pytest.raises(RuntimeError):
        with unit_of_work():
            OutboxService.enqueue(organization_id=org.id, destination="+1555",
                                  template=NotificationTemplate.ASSIGNED, payload={})
            raise RuntimeError("operation failed")
    assert OutboxEntry.query.count() == 0


def test_claim_due_orders_by_send_at_then_id(enqueue):
    now = datetime.utcnow()
    late = enqueue(send_at=now - timedelta(minutes=1))
    early_a = enqueue(send_at=now - timedelta(minutes=5))
    early_b = enqueue(send_at=now - timedelta(minutes=5))

    claimed = OutboxService.claim_due(limit=10, now=now)
    assert [e.id for e in claimed] == [early_a, early_b, late]


def test_claim_due_skips_future_and_terminal_entries(enqueue):
    now = datetime.utcnow()
    due = enqueue(send_at=now - timedelta(seconds=1))
    enqueue(send_at=now + timedelta(hours=1))
    sent = enqueue(send_at=now - timedelta(seconds=1))
    failed = enqueue(send_at=now - timedelta(seconds=1))
    with unit_of_work():
        OutboxService.mark_sent(sent, "SM123")
        OutboxService.mark_failed(failed, "boom")

    assert [e.id for e in OutboxService.claim_due(limit=10, now=now)] == [due]


def test_claim_due_respects_limit(enqueue):
    for _ in range(5):
        enqueue()
    assert len(OutboxService.claim_due(limit=3)) == 3


def test_mark_sent_records_provider_id(enqueue):
    entry_id = enqueue()
    with unit_of_work():
        assert OutboxService.mark_sent(entry_id, "SM123") is True

    entry = db.session.get(OutboxEntry, entry_id)
    assert entry.status == OutboxStatus.SENT
    assert entry.sent_at is not None
    assert entry.provider_message_id == "SM123"


def test_terminal_entries_are_not_remarked(enqueue):
    entry_id = enqueue()
    with unit_of_work():
        OutboxService.mark_failed(entry_id, "provider down")

    with unit_of_work():
        assert OutboxService.mark_sent(entry_id, "SM999") is False
        assert OutboxService.mark_failed(entry_id, "again") is False

    entry = db.session.get(OutboxEntry, entry_id)
    assert entry.status == OutboxStatus.FAILED
    assert entry.error == "provider down"
    assert entry.provider_message_id is None


def test_mark_sent_twice_is_idempotent(enqueue):
    entry_id = enqueue()
    with unit_of_work():
        assert OutboxService.mark_sent(entry_id, "SM1") is True
    with unit_of_work():
        assert OutboxService.mark_sent(entry_id, "SM2") is False
    assert db.session.get(OutboxEntry, entry_id).provider_message_id == "SM1"
