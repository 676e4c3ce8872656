# facilityops/lifecycle/completions.py

from dataclasses import dataclass, field
from datetime import datetime
from typing import List, Optional

from facilityops.auth.identity import Identity
from facilityops.errors import Forbidden, ValidationError
from facilityops.lifecycle.base import ensure_contractor_assigned, ensure_not_closed, require_gm, work_order_link
from facilityops.lifecycle.results import CompletionSubmitResult, LifecycleResult
from facilityops.lifecycle.validation import optional_text, require_int
from facilityops.logging_config import get_logger
from facilityops.models import (
    Attachment,
    AttachmentType,
    Completion,
    EventType,
    NotificationTemplate,
    ReviewStatus,
    Role,
    WorkOrderStatus,
    db,
)
from facilityops.repositories import CompletionRepository, UserDirectory, WorkOrderRepository
from facilityops.services.event_service import EventService
from facilityops.services.outbox_service import OutboxService
from facilityops.unit_of_work import unit_of_work

logger = get_logger(__name__)

DECISIONS = {
    "approve": ReviewStatus.APPROVED,
    "reject": ReviewStatus.REJECTED,
}


@dataclass
class SubmitCompletionCommand:
    """
    Contractor reports the work done.

    - Only the contractor holding the active assignment may submit
    - At least one photo reference is required (photos are stored beforehand)
    - Moves the work order to needs_review
    - Notifies every GM of the organization that has a contact address
    """
    identity: Identity
    work_order_id: int
    minutes_worked: int
    photo_refs: List[str] = field(default_factory=list)
    notes: Optional[str] = None

    def execute(self) -> CompletionSubmitResult:
        if not self.identity.is_contractor:
            raise Forbidden("Only contractors can submit completion")
        minutes_worked = require_int(self.minutes_worked, "minutes_worked", minimum=1)
        notes = optional_text(self.notes, "notes")
        photo_refs = [ref for ref in (self.photo_refs or []) if isinstance(ref, str) and ref.strip()]

        with unit_of_work():
            work_order = WorkOrderRepository.get(self.work_order_id, self.identity.organization_id, for_update=True)
            ensure_not_closed(work_order)

            ensure_contractor_assigned(self.identity, work_order)
            if not photo_refs:
                raise ValidationError("At least one completion photo is required")

            now = datetime.utcnow()
            completion = Completion(
                work_order_id=work_order.id,
                submitted_by_user_id=self.identity.actor_id,
                submitted_at=now,
                minutes_worked=minutes_worked,
                completion_notes=notes,
                review_status=ReviewStatus.SUBMITTED,
            )
            db.session.add(completion)
            db.session.flush()

            attachments = []
            for ref in photo_refs:
                attachment = Attachment(
                    work_order_id=work_order.id,
                    completion_id=completion.id,
                    uploaded_by_user_id=self.identity.actor_id,
                    type=AttachmentType.COMPLETION_PHOTO,
                    file_url=ref,
                    created_at=now,
                )
                db.session.add(attachment)
                attachments.append(attachment)
            db.session.flush()

            work_order.status = WorkOrderStatus.NEEDS_REVIEW
            work_order.updated_at = now

            event = EventService.append(
                work_order_id=work_order.id,
                actor_user_id=self.identity.actor_id,
                event_type=EventType.COMPLETION_SUBMITTED,
                message=f"{self.identity.display_name} submitted completion (ready for GM review).",
                metadata={'completion_id': completion.id, 'minutes_worked': minutes_worked}
            )

            outbox_ids = []
            for gm in UserDirectory.list_by_role(self.identity.organization_id, Role.GM):
                if not gm.contact_address:
                    continue
                entry = OutboxService.enqueue(
                    organization_id=self.identity.organization_id,
                    work_order_id=work_order.id,
                    destination=gm.contact_address,
                    template=NotificationTemplate.COMPLETION_SUBMITTED,
                    payload={
                        'work_order_id': work_order.id,
                        'title': work_order.title,
                        'contractor': self.identity.display_name,
                        'link': work_order_link(work_order.id),
                    }
                )
                outbox_ids.append(entry.id)

        logger.info("Completion submitted",
                    work_order_id=self.work_order_id,
                    completion_id=completion.id,
                    photos=len(attachments),
                    notified_gms=len(outbox_ids))
        return CompletionSubmitResult(record=completion, event_id=event.id, outbox_ids=outbox_ids,
                                      attachments=attachments)


@dataclass
class ReviewCompletionCommand:
    """
    GM approves or rejects a submitted completion.

    Reject sends the work order back to in_progress and notifies the
    submitter. Approve leaves the status alone; closing is a separate step.
    """
    identity: Identity
    work_order_id: int
    completion_id: int
    decision: str
    review_notes: Optional[str] = None

    def execute(self) -> LifecycleResult:
        require_gm(self.identity, "review completion")
        if not isinstance(self.decision, str) or self.decision not in DECISIONS:
            raise ValidationError("decision must be one of: approve, reject", {'decision': self.decision})
        review_notes = optional_text(self.review_notes, "review_notes")

        with unit_of_work():
            work_order = WorkOrderRepository.get(self.work_order_id, self.identity.organization_id, for_update=True)
            ensure_not_closed(work_order)
            completion = CompletionRepository.get(self.completion_id, work_order.id)

            now = datetime.utcnow()
            completion.review_status = DECISIONS[self.decision]
            completion.reviewed_by_user_id = self.identity.actor_id
            completion.reviewed_at = now
            completion.review_notes = review_notes

            verb = "approved" if self.decision == "approve" else "rejected"
            event = EventService.append(
                work_order_id=work_order.id,
                actor_user_id=self.identity.actor_id,
                event_type=EventType.COMPLETION_REVIEWED,
                message=f"{self.identity.display_name} {verb} the completion submission.",
                metadata={'completion_id': completion.id, 'decision': self.decision}
            )

            outbox_ids = []
            if self.decision == "reject":
                work_order.status = WorkOrderStatus.IN_PROGRESS
                work_order.updated_at = now

                contractor = UserDirectory.get(completion.submitted_by_user_id)
                if contractor and contractor.contact_address:
                    entry = OutboxService.enqueue(
                        organization_id=self.identity.organization_id,
                        work_order_id=work_order.id,
                        destination=contractor.contact_address,
                        template=NotificationTemplate.COMPLETION_REJECTED,
                        payload={
                            'work_order_id': work_order.id,
                            'title': work_order.title,
                            'review_notes': review_notes or "",
                            'link': work_order_link(work_order.id),
                        }
                    )
                    outbox_ids.append(entry.id)

        logger.info("Completion reviewed",
                    work_order_id=self.work_order_id,
                    completion_id=self.completion_id,
                    decision=self.decision)
        return LifecycleResult(record=completion, event_id=event.id, outbox_ids=outbox_ids)
