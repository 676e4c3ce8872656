# facilityops/lifecycle/comments.py

from dataclasses import dataclass
from datetime import datetime

from facilityops.auth.identity import Identity
from facilityops.lifecycle.base import ensure_contractor_assigned, ensure_not_closed
from facilityops.lifecycle.results import LifecycleResult
from facilityops.lifecycle.validation import require_text
from facilityops.logging_config import get_logger
from facilityops.models import Comment, EventType, db
from facilityops.repositories import WorkOrderRepository
from facilityops.services.event_service import EventService
from facilityops.unit_of_work import unit_of_work

logger = get_logger(__name__)


@dataclass
class AddCommentCommand:
    """GMs and the contractor holding the active assignment may comment on an open work order."""
    identity: Identity
    work_order_id: int
    message: str

    def execute(self) -> LifecycleResult:
        message = require_text(self.message, "message")

        with unit_of_work():
            work_order = WorkOrderRepository.get(self.work_order_id, self.identity.organization_id)
            ensure_not_closed(work_order)
            ensure_contractor_assigned(self.identity, work_order)

            comment = Comment(
                work_order_id=work_order.id,
                user_id=self.identity.actor_id,
                message=message,
                created_at=datetime.utcnow(),
            )
            db.session.add(comment)
            db.session.flush()

            event = EventService.append(
                work_order_id=work_order.id,
                actor_user_id=self.identity.actor_id,
                event_type=EventType.COMMENT_ADDED,
                message=f"{self.identity.display_name} commented.",
                metadata={'comment_id': comment.id}
            )

        logger.debug("Comment added", work_order_id=self.work_order_id, comment_id=comment.id)
        return LifecycleResult(record=comment, event_id=event.id)
