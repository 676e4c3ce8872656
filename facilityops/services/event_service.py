from datetime import datetime
from typing import List, Optional

from facilityops.logging_config import get_logger
from facilityops.models import Event, EventType, db

logger = get_logger(__name__)


class EventService:
    """Service for appending to and reading the work order audit trail"""

    @staticmethod
    def append(work_order_id: int, actor_user_id: int, event_type: EventType, message: str,
               metadata: Optional[dict] = None) -> Event:
        """
        Append an event for a work order.

        The event is flushed, not committed: it becomes durable together with
        the mutation it describes when the surrounding unit of work commits.

        Args:
            work_order_id: Work order the event belongs to
            actor_user_id: User who performed the action
            event_type: EventType member
            message: Human readable description
            metadata: Structured details (defaults to {})

        Returns:
            The new Event row
        """
        event = Event(
            work_order_id=work_order_id,
            actor_user_id=actor_user_id,
            type=event_type,
            message=message,
            event_metadata=metadata or {},
            created_at=datetime.utcnow()
        )
        db.session.add(event)
        db.session.flush()

        logger.info("Work order event appended",
                    event_id=event.id,
                    work_order_id=work_order_id,
                    event_type=event_type.value)
        return event

    @staticmethod
    def history(work_order_id: int) -> List[Event]:
        """Events of a work order, newest first."""
        return Event.query.filter_by(work_order_id=work_order_id).order_by(
            Event.created_at.desc(), Event.id.desc()
        ).all()
