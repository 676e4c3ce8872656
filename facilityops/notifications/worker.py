import threading
from datetime import datetime
from typing import Optional

from facilityops.logging_config import OperationContext, get_logger
from facilityops.notifications.channel import SmsChannel
from facilityops.notifications.templates import render_template
from facilityops.notifications.ticker import Ticker
from facilityops.services.outbox_service import OutboxService
from facilityops.unit_of_work import unit_of_work

logger = get_logger(__name__)


class NotificationWorker:
    """
    Single consumer of the notification outbox.

    Every tick claims due entries, renders and sends each one, and marks it
    sent or failed. A failed entry is never retried. Delivery errors are
    logged and recorded on the entry, never raised.
    """

    def __init__(self, app, channel=None, claim_limit: Optional[int] = None,
                 poll_interval: Optional[float] = None):
        self.app = app
        self.channel = channel or SmsChannel.from_config(app.config)
        self.claim_limit = claim_limit or app.config.get("NOTIFY_CLAIM_LIMIT", 25)
        self.poll_interval = poll_interval if poll_interval is not None else app.config.get(
            "NOTIFY_POLL_INTERVAL_SECONDS", 3)

    def tick(self, now: Optional[datetime] = None) -> dict:
        """
        Deliver one batch of due entries. Must run inside an app context.

        Returns:
            dict with claimed / sent / failed counts
        """
        with OperationContext("notification_tick", claim_limit=self.claim_limit) as op:
            entries = OutboxService.claim_due(self.claim_limit, now)
            stats = {'claimed': len(entries), 'sent': 0, 'failed': 0}
            op.record(**stats)
            if not entries:
                return stats

            for entry in entries:
                entry_id = entry.id
                destination = entry.destination
                try:
                    body = render_template(entry.template, entry.payload)
                    result = self.channel.send(destination, body) or {}
                except Exception as e:
                    op.logger.warning("Notification delivery failed",
                                      outbox_id=entry_id,
                                      work_order_id=entry.work_order_id,
                                      template=entry.template.value,
                                      error=str(e))
                    with unit_of_work():
                        OutboxService.mark_failed(entry_id, str(e))
                    stats['failed'] += 1
                    op.record(**stats)
                    continue

                with unit_of_work():
                    OutboxService.mark_sent(entry_id, result.get('provider_message_id'))
                stats['sent'] += 1
                op.record(**stats)

            return stats

    def tick_in_context(self) -> dict:
        """Entry point for scheduler threads, which have no app context of their own."""
        with self.app.app_context():
            try:
                return self.tick()
            except Exception as e:
                # A broken tick (e.g. database unavailable) must not kill the loop
                logger.error("Notification tick crashed", error=str(e), exc_info=True)
                return {'claimed': 0, 'sent': 0, 'failed': 0}

    def run(self, stop_event: Optional[threading.Event] = None, max_ticks: Optional[int] = None) -> int:
        """
        Poll the outbox every ``poll_interval`` seconds until ``stop_event`` is set.

        Returns:
            int: number of ticks run
        """
        ticker = Ticker(self.poll_interval, stop_event)
        logger.info("Notification worker started",
                    poll_interval=self.poll_interval,
                    claim_limit=self.claim_limit)
        ticks = ticker.run(self.tick_in_context, max_ticks=max_ticks)
        logger.info("Notification worker stopped", ticks=ticks)
        return ticks
