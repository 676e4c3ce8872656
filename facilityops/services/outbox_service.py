from datetime import datetime
from typing import List, Optional

from facilityops.logging_config import get_logger
from facilityops.models import NotificationTemplate, OutboxEntry, OutboxStatus, db

logger = get_logger(__name__)


class OutboxService:
    """Durable queue of notifications waiting for the notification worker"""

    @staticmethod
    def enqueue(organization_id: int, destination: str, template: NotificationTemplate, payload: dict,
                work_order_id: Optional[int] = None, send_at: Optional[datetime] = None) -> OutboxEntry:
        """
        Add a notification to the outbox.

        Only flushes: the entry is committed by the unit of work of the
        lifecycle operation that triggered it, so a rolled back operation
        never leaves a notification behind.

        Args:
            organization_id: Organization the notification belongs to
            destination: Contact address of the recipient
            template: NotificationTemplate to render
            payload: Template specific data
            work_order_id: Related work order, if any
            send_at: Earliest delivery time (defaults to now)
        """
        entry = OutboxEntry(
            organization_id=organization_id,
            work_order_id=work_order_id,
            destination=destination,
            template=template,
            payload=payload or {},
            send_at=send_at or datetime.utcnow(),
            status=OutboxStatus.PENDING
        )
        db.session.add(entry)
        db.session.flush()

        logger.info("Outbox entry enqueued",
                    outbox_id=entry.id,
                    template=template.value,
                    work_order_id=work_order_id)
        return entry

    @staticmethod
    def claim_due(limit: int, now: Optional[datetime] = None) -> List[OutboxEntry]:
        """
        Pending entries whose send_at has passed, oldest first (ties broken by id).

        Assumes a single worker; entries are not locked or marked while being
        delivered.
        """
        now = now or datetime.utcnow()
        return OutboxEntry.query.filter(
            OutboxEntry.status == OutboxStatus.PENDING,
            OutboxEntry.send_at <= now
        ).order_by(OutboxEntry.send_at.asc(), OutboxEntry.id.asc()).limit(limit).all()

    @staticmethod
    def mark_sent(entry_id: int, provider_message_id: Optional[str] = None) -> bool:
        """Mark a pending entry sent. Returns False if the entry was already terminal (or missing)."""
        updated = OutboxEntry.query.filter(
            OutboxEntry.id == entry_id,
            OutboxEntry.status == OutboxStatus.PENDING
        ).update({
            OutboxEntry.status: OutboxStatus.SENT,
            OutboxEntry.sent_at: datetime.utcnow(),
            OutboxEntry.provider_message_id: provider_message_id,
            OutboxEntry.error: None,
        }, synchronize_session="fetch")

        if not updated:
            logger.warning("Outbox entry not pending, mark_sent ignored", outbox_id=entry_id)
        return bool(updated)

    @staticmethod
    def mark_failed(entry_id: int, error: str) -> bool:
        """Mark a pending entry failed. Failed entries are never picked up again."""
        updated = OutboxEntry.query.filter(
            OutboxEntry.id == entry_id,
            OutboxEntry.status == OutboxStatus.PENDING
        ).update({
            OutboxEntry.status: OutboxStatus.FAILED,
            OutboxEntry.error: error,
        }, synchronize_session="fetch")

        if not updated:
            logger.warning("Outbox entry not pending, mark_failed ignored", outbox_id=entry_id)
        return bool(updated)
