"""
Read side of the work order lifecycle: list and detail views.

Contractors only see work orders actively assigned to them.
"""
from typing import List, Optional

from facilityops.auth.identity import Identity
from facilityops.lifecycle.base import ensure_contractor_assigned
from facilityops.lifecycle.results import WorkOrderDetail
from facilityops.lifecycle.validation import parse_enum
from facilityops.models import (
    Assignment,
    Attachment,
    Comment,
    Completion,
    Part,
    User,
    WorkOrder,
    WorkOrderStatus,
    db,
)
from facilityops.repositories import AssignmentRepository, WorkOrderRepository
from facilityops.services.event_service import EventService


def list_work_orders(identity: Identity, status=None, mine: bool = False) -> List[WorkOrder]:
    """
    Work orders of the actor's organization, most recently updated first.

    ``mine`` restricts the list to work orders actively assigned to the actor;
    contractors always get that view.
    """
    status = parse_enum(WorkOrderStatus, status, "status", allow_none=True)

    query = WorkOrder.query.filter(WorkOrder.organization_id == identity.organization_id)
    if mine or identity.is_contractor:
        query = query.join(Assignment, Assignment.work_order_id == WorkOrder.id).filter(
            Assignment.unassigned_at.is_(None),
            Assignment.assigned_to_user_id == identity.actor_id,
        )
    if status is not None:
        query = query.filter(WorkOrder.status == status)
    return query.order_by(WorkOrder.updated_at.desc(), WorkOrder.id.desc()).all()


def _with_user_name(rows, user_attr: str, name_key: str) -> List[dict]:
    user_ids = {getattr(row, user_attr) for row in rows if getattr(row, user_attr)}
    names = {}
    if user_ids:
        names = {u.id: u.full_name for u in User.query.filter(User.id.in_(user_ids)).all()}
    result = []
    for row in rows:
        data = row.to_dict()
        data[name_key] = names.get(getattr(row, user_attr))
        result.append(data)
    return result


def get_work_order_detail(identity: Identity, work_order_id: int) -> WorkOrderDetail:
    work_order = WorkOrderRepository.get(work_order_id, identity.organization_id)

    ensure_contractor_assigned(identity, work_order)

    parts = Part.query.filter_by(work_order_id=work_order.id).order_by(Part.created_at.desc(), Part.id.desc()).all()
    comments = Comment.query.filter_by(work_order_id=work_order.id).order_by(
        Comment.created_at.desc(), Comment.id.desc()).all()
    events = EventService.history(work_order.id)
    completions = Completion.query.filter_by(work_order_id=work_order.id).order_by(
        Completion.submitted_at.desc(), Completion.id.desc()).all()
    attachments = Attachment.query.filter_by(work_order_id=work_order.id).order_by(
        Attachment.created_at.desc(), Attachment.id.desc()).all()

    assignment: Optional[dict] = None
    active = AssignmentRepository.active_for(work_order.id)
    if active:
        assignment = active.to_dict()
        assignee = db.session.get(User, active.assigned_to_user_id)
        assignment['assigned_to_name'] = assignee.full_name if assignee else None

    return WorkOrderDetail(
        work_order=work_order,
        parts=parts,
        comments=_with_user_name(comments, 'user_id', 'user_name'),
        events=_with_user_name(events, 'actor_user_id', 'actor_name'),
        completions=_with_user_name(completions, 'submitted_by_user_id', 'submitted_by_name'),
        attachments=attachments,
        assignment=assignment,
    )
