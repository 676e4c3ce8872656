"""
Organization-scoped lookups used by the lifecycle commands.

Lookups that the caller is about to mutate take ``for_update=True`` so that
concurrent commands on the same work order serialize on the row lock.
"""
from datetime import datetime
from typing import List, Optional

from facilityops.errors import NotFound
from facilityops.models import (
    Assignment,
    Completion,
    Location,
    Part,
    Role,
    Site,
    User,
    WorkOrder,
    db,
)


class WorkOrderRepository:

    @staticmethod
    def get(work_order_id: int, organization_id: int, for_update: bool = False) -> WorkOrder:
        """Load a work order of the organization or raise NotFound."""
        query = WorkOrder.query.filter(
            WorkOrder.id == work_order_id,
            WorkOrder.organization_id == organization_id,
        )
        if for_update:
            query = query.with_for_update()
        work_order = query.first()
        if not work_order:
            raise NotFound(f"Work order {work_order_id} not found")
        return work_order


class PartRepository:

    @staticmethod
    def list_for_work_order(work_order_id: int) -> List[Part]:
        return Part.query.filter_by(work_order_id=work_order_id).order_by(Part.id).all()

    @staticmethod
    def get(part_id: int, work_order_id: int) -> Part:
        part = Part.query.filter_by(id=part_id, work_order_id=work_order_id).first()
        if not part:
            raise NotFound(f"Part {part_id} not found on work order {work_order_id}")
        return part


class AssignmentRepository:

    @staticmethod
    def active_for(work_order_id: int) -> Optional[Assignment]:
        return Assignment.query.filter(
            Assignment.work_order_id == work_order_id,
            Assignment.unassigned_at.is_(None),
        ).first()

    @staticmethod
    def close_active(work_order_id: int, at: datetime) -> int:
        """Stamp unassigned_at on every active assignment of the work order; returns rows touched."""
        return Assignment.query.filter(
            Assignment.work_order_id == work_order_id,
            Assignment.unassigned_at.is_(None),
        ).update({Assignment.unassigned_at: at}, synchronize_session="fetch")

    @staticmethod
    def is_active_assignee(work_order_id: int, user_id: int) -> bool:
        return Assignment.query.filter(
            Assignment.work_order_id == work_order_id,
            Assignment.assigned_to_user_id == user_id,
            Assignment.unassigned_at.is_(None),
        ).first() is not None


class CompletionRepository:

    @staticmethod
    def get(completion_id: int, work_order_id: int) -> Completion:
        completion = Completion.query.filter_by(id=completion_id, work_order_id=work_order_id).first()
        if not completion:
            raise NotFound(f"Completion {completion_id} not found on work order {work_order_id}")
        return completion


class SiteDirectory:

    @staticmethod
    def get_site(site_id: int, organization_id: int) -> Site:
        site = Site.query.filter_by(id=site_id, organization_id=organization_id).first()
        if not site:
            raise NotFound(f"Site {site_id} not found")
        return site

    @staticmethod
    def get_location(location_id: int, site_id: int) -> Location:
        location = Location.query.filter_by(id=location_id, site_id=site_id).first()
        if not location:
            raise NotFound(f"Location {location_id} not found at site {site_id}")
        return location


class UserDirectory:
    """Read access to users; account management lives elsewhere."""

    @staticmethod
    def get(user_id: int) -> Optional[User]:
        return db.session.get(User, user_id)

    @staticmethod
    def list_by_role(organization_id: int, role: Role) -> List[User]:
        return User.query.filter_by(organization_id=organization_id, role=role).order_by(User.id).all()
