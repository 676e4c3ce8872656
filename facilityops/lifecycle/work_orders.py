# facilityops/lifecycle/work_orders.py

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from facilityops.auth.identity import Identity
from facilityops.errors import Forbidden
from facilityops.lifecycle.base import ensure_contractor_assigned, ensure_not_closed, require_gm
from facilityops.lifecycle.results import LifecycleResult
from facilityops.lifecycle.validation import (
    optional_int,
    optional_text,
    parse_datetime,
    parse_enum,
    reject_unknown_fields,
    require_int,
    require_text,
    serializable,
)
from facilityops.logging_config import get_logger
from facilityops.models import EventType, HoldReason, Priority, WorkOrder, WorkOrderStatus, db
from facilityops.repositories import SiteDirectory, WorkOrderRepository
from facilityops.services.event_service import EventService
from facilityops.unit_of_work import unit_of_work

logger = get_logger(__name__)

UPDATABLE_FIELDS = ("priority", "due_at", "status", "hold_reason", "hold_notes")
CONTRACTOR_FORBIDDEN_STATUSES = (WorkOrderStatus.NEEDS_REVIEW, WorkOrderStatus.CLOSED)


@dataclass
class CreateWorkOrderCommand:
    """
    Create a work order in the `open` status.

    - Only a GM may create work orders
    - Site (and location, when given) must belong to the GM's organization
    - Appends a work_order_created event
    """
    identity: Identity
    site_id: int
    title: str
    description: Optional[str] = None
    priority: Any = Priority.NORMAL
    due_at: Any = None
    location_id: Optional[int] = None

    def execute(self) -> LifecycleResult:
        require_gm(self.identity, "create work orders")

        site_id = require_int(self.site_id, "site_id")
        location_id = optional_int(self.location_id, "location_id")
        title = require_text(self.title, "title")
        description = optional_text(self.description, "description")
        priority = parse_enum(Priority, self.priority, "priority")
        due_at = parse_datetime(self.due_at, "due_at")

        with unit_of_work():
            site = SiteDirectory.get_site(site_id, self.identity.organization_id)
            if location_id is not None:
                SiteDirectory.get_location(location_id, site.id)

            now = datetime.utcnow()
            work_order = WorkOrder(
                organization_id=self.identity.organization_id,
                site_id=site.id,
                location_id=location_id,
                title=title,
                description=description,
                priority=priority,
                status=WorkOrderStatus.OPEN,
                due_at=due_at,
                created_by_user_id=self.identity.actor_id,
                created_at=now,
                updated_at=now,
            )
            db.session.add(work_order)
            db.session.flush()

            event = EventService.append(
                work_order_id=work_order.id,
                actor_user_id=self.identity.actor_id,
                event_type=EventType.WORK_ORDER_CREATED,
                message=f"{self.identity.display_name} created this work order.",
                metadata={'title': work_order.title, 'priority': priority.value}
            )

        logger.info("Work order created", work_order_id=work_order.id, priority=priority.value)
        return LifecycleResult(record=work_order, event_id=event.id)


@dataclass
class UpdateWorkOrderCommand:
    """
    Patch priority, due date, status and hold fields of a work order.

    Contractors must hold the active assignment, may not move a work order
    to needs_review or closed, and may not touch priority or due date.
    Exactly one event is appended per call: status_changed if the status
    changed, otherwise hold_changed if a hold field changed, otherwise
    work_order_updated.
    """
    identity: Identity
    work_order_id: int
    changes: Dict[str, Any] = field(default_factory=dict)

    def _parse_changes(self) -> Dict[str, Any]:
        reject_unknown_fields(self.changes, UPDATABLE_FIELDS)
        parsed = {}
        if "priority" in self.changes:
            parsed["priority"] = parse_enum(Priority, self.changes["priority"], "priority")
        if "due_at" in self.changes:
            parsed["due_at"] = parse_datetime(self.changes["due_at"], "due_at")
        if "status" in self.changes:
            parsed["status"] = parse_enum(WorkOrderStatus, self.changes["status"], "status")
        if "hold_reason" in self.changes:
            parsed["hold_reason"] = parse_enum(HoldReason, self.changes["hold_reason"], "hold_reason", allow_none=True)
        if "hold_notes" in self.changes:
            parsed["hold_notes"] = optional_text(self.changes["hold_notes"], "hold_notes")
        return parsed

    def _check_role_policy(self, parsed: Dict[str, Any]):
        if not self.identity.is_contractor:
            return
        if parsed.get("status") in CONTRACTOR_FORBIDDEN_STATUSES:
            raise Forbidden(f"Contractor cannot set status to {parsed['status'].value}")
        if "priority" in parsed or "due_at" in parsed:
            raise Forbidden("Contractor cannot edit priority or due date")

    def execute(self) -> LifecycleResult:
        parsed = self._parse_changes()
        self._check_role_policy(parsed)

        with unit_of_work():
            work_order = WorkOrderRepository.get(self.work_order_id, self.identity.organization_id, for_update=True)
            ensure_not_closed(work_order)
            ensure_contractor_assigned(self.identity, work_order)

            previous_status = work_order.status
            status_changed = "status" in parsed and parsed["status"] != work_order.status
            hold_changed = (
                ("hold_reason" in parsed and parsed["hold_reason"] != work_order.hold_reason) or
                ("hold_notes" in parsed and parsed["hold_notes"] != work_order.hold_notes)
            )

            for name, value in parsed.items():
                setattr(work_order, name, value)
            work_order.updated_at = datetime.utcnow()

            name = self.identity.display_name
            if status_changed:
                event = EventService.append(
                    work_order_id=work_order.id,
                    actor_user_id=self.identity.actor_id,
                    event_type=EventType.STATUS_CHANGED,
                    message=f"{name} set status to {work_order.status.value}.",
                    metadata={'from': previous_status.value, 'to': work_order.status.value}
                )
            elif hold_changed:
                event = EventService.append(
                    work_order_id=work_order.id,
                    actor_user_id=self.identity.actor_id,
                    event_type=EventType.HOLD_CHANGED,
                    message=f"{name} updated hold info.",
                    metadata={
                        'hold_reason': serializable(work_order.hold_reason),
                        'hold_notes': work_order.hold_notes,
                    }
                )
            else:
                event = EventService.append(
                    work_order_id=work_order.id,
                    actor_user_id=self.identity.actor_id,
                    event_type=EventType.WORK_ORDER_UPDATED,
                    message=f"{name} updated task details.",
                    metadata={'changes': {k: serializable(v) for k, v in parsed.items()}}
                )

        logger.info("Work order updated",
                    work_order_id=work_order.id,
                    status_changed=status_changed,
                    hold_changed=hold_changed)
        return LifecycleResult(record=work_order, event_id=event.id)


@dataclass
class CloseWorkOrderCommand:
    """
    Close a work order (terminal).

    Closing enqueues no notification. The `closed` template renders if an
    entry carries it, but no command creates one.
    """
    identity: Identity
    work_order_id: int

    def execute(self) -> LifecycleResult:
        require_gm(self.identity, "close work orders")

        with unit_of_work():
            work_order = WorkOrderRepository.get(self.work_order_id, self.identity.organization_id, for_update=True)
            ensure_not_closed(work_order)

            now = datetime.utcnow()
            work_order.status = WorkOrderStatus.CLOSED
            work_order.closed_at = now
            work_order.closed_by_user_id = self.identity.actor_id
            work_order.updated_at = now

            event = EventService.append(
                work_order_id=work_order.id,
                actor_user_id=self.identity.actor_id,
                event_type=EventType.WORK_ORDER_CLOSED,
                message=f"{self.identity.display_name} closed this work order."
            )

        logger.info("Work order closed", work_order_id=work_order.id)
        return LifecycleResult(record=work_order, event_id=event.id)
