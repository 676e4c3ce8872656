"""Checks shared by every lifecycle command."""
from flask import current_app

from facilityops.auth.identity import Identity
from facilityops.errors import Conflict, Forbidden
from facilityops.models import WorkOrder
from facilityops.repositories import AssignmentRepository


def require_gm(identity: Identity, action: str):
    if not identity.is_gm:
        raise Forbidden(f"Only GM can {action}")


def ensure_not_closed(work_order: WorkOrder):
    """Closed work orders are terminal; every mutating command checks this itself."""
    if work_order.is_closed:
        raise Conflict(f"Work order {work_order.id} is closed", {'status': work_order.status.value})


def ensure_contractor_assigned(identity: Identity, work_order: WorkOrder):
    """Contractors act only on work orders they hold the active assignment for."""
    if identity.is_contractor and not AssignmentRepository.is_active_assignee(work_order.id, identity.actor_id):
        raise Forbidden("Not assigned to you")


def work_order_link(work_order_id: int) -> str:
    base_url = current_app.config.get("APP_BASE_URL") or ""
    return f"{base_url}/tasks/{work_order_id}"
