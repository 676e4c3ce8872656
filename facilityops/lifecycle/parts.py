# facilityops/lifecycle/parts.py

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, Optional

from facilityops.auth.identity import Identity
from facilityops.lifecycle.base import ensure_not_closed, require_gm
from facilityops.lifecycle.results import LifecycleResult
from facilityops.lifecycle.validation import (
    optional_int,
    optional_text,
    parse_enum,
    reject_unknown_fields,
    require_bool,
    require_int,
    require_text,
    serializable,
)
from facilityops.logging_config import get_logger
from facilityops.models import EventType, Part, PartApprovalStatus, PartProcurementStatus, db
from facilityops.repositories import PartRepository, WorkOrderRepository
from facilityops.services.event_service import EventService
from facilityops.unit_of_work import unit_of_work

logger = get_logger(__name__)

UPDATABLE_FIELDS = ("approval_status", "procurement_status", "quoted_total_cost_cents", "actual_total_cost_cents")

# Procurement status -> timestamp column stamped when a part enters that status
PROCUREMENT_TIMESTAMPS = {
    PartProcurementStatus.QUOTED: "quoted_at",
    PartProcurementStatus.ORDERED: "ordered_at",
    PartProcurementStatus.ARRIVED: "arrived_at",
}


@dataclass
class AddPartCommand:
    """Add a part to a work order (GM only). Parts are required unless stated otherwise."""
    identity: Identity
    work_order_id: int
    name: str
    quantity: Any = 1
    is_required: bool = True
    vendor: Optional[str] = None
    sku_or_link: Optional[str] = None
    notes: Optional[str] = None

    def execute(self) -> LifecycleResult:
        require_gm(self.identity, "add parts")

        name = require_text(self.name, "name")
        quantity = require_int(self.quantity, "quantity", minimum=1)
        is_required = require_bool(self.is_required, "is_required")
        vendor = optional_text(self.vendor, "vendor")
        sku_or_link = optional_text(self.sku_or_link, "sku_or_link")
        notes = optional_text(self.notes, "notes")

        with unit_of_work():
            work_order = WorkOrderRepository.get(self.work_order_id, self.identity.organization_id, for_update=True)
            ensure_not_closed(work_order)

            now = datetime.utcnow()
            part = Part(
                work_order_id=work_order.id,
                name=name,
                quantity=quantity,
                is_required=is_required,
                vendor=vendor,
                sku_or_link=sku_or_link,
                notes=notes,
                approval_status=PartApprovalStatus.NOT_REQUESTED,
                procurement_status=PartProcurementStatus.NOT_STARTED,
                created_at=now,
                updated_at=now,
            )
            db.session.add(part)
            db.session.flush()

            event = EventService.append(
                work_order_id=work_order.id,
                actor_user_id=self.identity.actor_id,
                event_type=EventType.PART_CREATED,
                message=f'{self.identity.display_name} added part "{name}".',
                metadata={'part_id': part.id}
            )

        logger.info("Part added", work_order_id=self.work_order_id, part_id=part.id, is_required=is_required)
        return LifecycleResult(record=part, event_id=event.id)


@dataclass
class UpdatePartCommand:
    """
    Update approval/procurement status and costs of a part (GM only).

    quoted_at / ordered_at / arrived_at are stamped when the procurement
    status moves into quoted / ordered / arrived. Setting the status a part
    already has leaves the timestamp alone; leaving and re-entering a status
    stamps it again.
    """
    identity: Identity
    work_order_id: int
    part_id: int
    changes: Dict[str, Any] = field(default_factory=dict)

    def _parse_changes(self) -> Dict[str, Any]:
        reject_unknown_fields(self.changes, UPDATABLE_FIELDS)
        parsed = {}
        if "approval_status" in self.changes:
            parsed["approval_status"] = parse_enum(
                PartApprovalStatus, self.changes["approval_status"], "approval_status")
        if "procurement_status" in self.changes:
            parsed["procurement_status"] = parse_enum(
                PartProcurementStatus, self.changes["procurement_status"], "procurement_status")
        for cost_field in ("quoted_total_cost_cents", "actual_total_cost_cents"):
            if cost_field in self.changes:
                parsed[cost_field] = optional_int(self.changes[cost_field], cost_field, minimum=0)
        return parsed

    def execute(self) -> LifecycleResult:
        require_gm(self.identity, "update parts")
        parsed = self._parse_changes()

        with unit_of_work():
            work_order = WorkOrderRepository.get(self.work_order_id, self.identity.organization_id, for_update=True)
            ensure_not_closed(work_order)
            part = PartRepository.get(self.part_id, work_order.id)

            now = datetime.utcnow()
            new_procurement = parsed.get("procurement_status")
            if new_procurement is not None and new_procurement != part.procurement_status:
                stamp_field = PROCUREMENT_TIMESTAMPS.get(new_procurement)
                if stamp_field:
                    setattr(part, stamp_field, now)

            for name, value in parsed.items():
                setattr(part, name, value)
            part.updated_at = now

            event = EventService.append(
                work_order_id=work_order.id,
                actor_user_id=self.identity.actor_id,
                event_type=EventType.PART_UPDATED,
                message=f"{self.identity.display_name} updated a part.",
                metadata={
                    'part_id': part.id,
                    'changes': {k: serializable(v) for k, v in parsed.items()},
                }
            )

        logger.info("Part updated", work_order_id=self.work_order_id, part_id=self.part_id,
                    fields=sorted(parsed))
        return LifecycleResult(record=part, event_id=event.id)
