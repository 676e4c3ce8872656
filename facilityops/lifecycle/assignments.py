# facilityops/lifecycle/assignments.py

from dataclasses import dataclass
from datetime import datetime

from facilityops.auth.identity import Identity
from facilityops.errors import NotFound, PreconditionFailed, ValidationError
from facilityops.lifecycle.base import ensure_not_closed, require_gm, work_order_link
from facilityops.lifecycle.results import LifecycleResult
from facilityops.lifecycle.validation import require_bool, require_int
from facilityops.logging_config import get_logger
from facilityops.models import Assignment, EventType, NotificationTemplate, Role, db
from facilityops.repositories import AssignmentRepository, PartRepository, UserDirectory, WorkOrderRepository
from facilityops.services.event_service import EventService
from facilityops.services.outbox_service import OutboxService
from facilityops.services.readiness import evaluate_readiness
from facilityops.unit_of_work import unit_of_work

logger = get_logger(__name__)


@dataclass
class AssignWorkOrderCommand:
    """
    Assign a work order to a contractor.

    Matches the assignment flow:
    - Only a GM may assign; the assignee must be an active contractor of the same organization
    - Unless forced, every required part must be approved and arrived
    - Closes the current active assignment and opens the new one in the same transaction
    - Appends an assignment_created event recording whether the assignment was forced
    - Enqueues an `assigned` notification when the assignee has a contact address
    """
    identity: Identity
    work_order_id: int
    assignee_id: int
    force: bool = False

    def execute(self) -> LifecycleResult:
        require_gm(self.identity, "assign work orders")
        assignee_id = require_int(self.assignee_id, "assignee_id")
        force = require_bool(self.force, "force")

        with unit_of_work():
            # 1️⃣ Lock the work order; concurrent assigns serialize here
            work_order = WorkOrderRepository.get(self.work_order_id, self.identity.organization_id, for_update=True)
            ensure_not_closed(work_order)

            # 2️⃣ Assignee must be an active contractor in this organization
            assignee = UserDirectory.get(assignee_id)
            if (not assignee or assignee.organization_id != self.identity.organization_id
                    or assignee.role != Role.CONTRACTOR or not assignee.is_active):
                raise ValidationError("Assignee must be an active contractor",
                                      {'assignee_id': assignee_id})

            # 3️⃣ Parts gate
            if not force:
                readiness = evaluate_readiness(PartRepository.list_for_work_order(work_order.id))
                if not readiness.ready:
                    logger.info("Assignment blocked by parts",
                                work_order_id=work_order.id,
                                blocking_count=len(readiness.blocking_parts))
                    raise PreconditionFailed(
                        "Cannot assign until all required parts are approved and arrived",
                        {'blocking_parts': readiness.blocking_parts_summary()}
                    )

            # 4️⃣ Swap the active assignment
            now = datetime.utcnow()
            closed_count = AssignmentRepository.close_active(work_order.id, now)
            assignment = Assignment(
                work_order_id=work_order.id,
                assigned_to_user_id=assignee.id,
                assigned_by_user_id=self.identity.actor_id,
                assigned_at=now,
                force_assigned=force,
            )
            db.session.add(assignment)
            db.session.flush()

            event = EventService.append(
                work_order_id=work_order.id,
                actor_user_id=self.identity.actor_id,
                event_type=EventType.ASSIGNMENT_CREATED,
                message=f"{self.identity.display_name} assigned this work order to {assignee.full_name}.",
                metadata={'assigned_to_user_id': assignee.id, 'force': force, 'assignment_id': assignment.id}
            )

            # 5️⃣ Notify the assignee
            outbox_ids = []
            if assignee.contact_address:
                entry = OutboxService.enqueue(
                    organization_id=self.identity.organization_id,
                    work_order_id=work_order.id,
                    destination=assignee.contact_address,
                    template=NotificationTemplate.ASSIGNED,
                    payload={
                        'work_order_id': work_order.id,
                        'title': work_order.title,
                        'link': work_order_link(work_order.id),
                    }
                )
                outbox_ids.append(entry.id)
            else:
                logger.warning("Assignee has no contact address, skipping notification",
                               work_order_id=work_order.id, assignee_id=assignee.id)

        logger.info("Work order assigned",
                    work_order_id=self.work_order_id,
                    assignee_id=assignee_id,
                    force=force,
                    replaced_assignments=closed_count)
        return LifecycleResult(record=assignment, event_id=event.id, outbox_ids=outbox_ids)


@dataclass
class UnassignWorkOrderCommand:
    """Remove the active assignment of a work order (GM only)."""
    identity: Identity
    work_order_id: int

    def execute(self) -> LifecycleResult:
        require_gm(self.identity, "unassign work orders")

        with unit_of_work():
            work_order = WorkOrderRepository.get(self.work_order_id, self.identity.organization_id, for_update=True)
            ensure_not_closed(work_order)

            assignment = AssignmentRepository.active_for(work_order.id)
            if not assignment:
                raise NotFound(f"Work order {work_order.id} has no active assignment")

            assignment.unassigned_at = datetime.utcnow()
            event = EventService.append(
                work_order_id=work_order.id,
                actor_user_id=self.identity.actor_id,
                event_type=EventType.ASSIGNMENT_REMOVED,
                message=f"{self.identity.display_name} removed the assignment.",
                metadata={'assignment_id': assignment.id, 'assigned_to_user_id': assignment.assigned_to_user_id}
            )

        logger.info("Work order unassigned", work_order_id=self.work_order_id)
        return LifecycleResult(record=assignment, event_id=event.id)
