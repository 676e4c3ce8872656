"""
Tests for adding parts and moving them through approval / procurement.
"""
import pytest

from facilityops.errors import Conflict, Forbidden, NotFound, ValidationError
from facilityops.lifecycle import AddPartCommand, CloseWorkOrderCommand, CreateWorkOrderCommand, UpdatePartCommand
from facilityops.models import Event, EventType, Part, PartApprovalStatus, PartProcurementStatus, db


@pytest.fixture
def part(gm, work_order):
    return AddPartCommand(identity=gm, work_order_id=work_order.id, name="Valve").execute().record


class TestAddPart:

    def test_new_part_starts_not_requested_and_not_started(self, gm, work_order):
        result = AddPartCommand(identity=gm, work_order_id=work_order.id, name="Valve",
                                quantity=2, vendor="Grainger").execute()

        part = db.session.get(Part, result.record.id)
        assert part.quantity == 2
        assert part.is_required is True
        assert part.vendor == "Grainger"
        assert part.approval_status == PartApprovalStatus.NOT_REQUESTED
        assert part.procurement_status == PartProcurementStatus.NOT_STARTED
        assert part.quoted_at is None and part.ordered_at is None and part.arrived_at is None

        event = db.session.get(Event, result.event_id)
        assert event.type == EventType.PART_CREATED
        assert event.event_metadata == {'part_id': part.id}

    def test_optional_part(self, gm, work_order):
        result = AddPartCommand(identity=gm, work_order_id=work_order.id, name="Gasket",
                                is_required=False).execute()
        assert result.record.is_required is False

    @pytest.mark.parametrize("quantity", [0, -1, "two", True])
    def test_quantity_must_be_positive_integer(self, gm, work_order, quantity):
        with pytest.raises(ValidationError):
            AddPartCommand(identity=gm, work_order_id=work_order.id, name="Valve", quantity=quantity).execute()
        assert Part.query.count() == 0

    def test_contractor_cannot_add_parts(self, contractor_identity, work_order):
        with pytest.raises(Forbidden):
            AddPartCommand(identity=contractor_identity, work_order_id=work_order.id, name="Valve").execute()

    def test_closed_work_order_rejects_parts(self, gm, work_order):
        CloseWorkOrderCommand(identity=gm, work_order_id=work_order.id).execute()
        with pytest.raises(Conflict):
            AddPartCommand(identity=gm, work_order_id=work_order.id, name="Valve").execute()


class TestUpdatePart:

    def test_approval_change_records_part_updated(self, gm, work_order, part):
        result = UpdatePartCommand(identity=gm, work_order_id=work_order.id, part_id=part.id,
                                   changes={'approval_status': 'approved'}).execute()

        assert result.record.approval_status == PartApprovalStatus.APPROVED
        event = db.session.get(Event, result.event_id)
        assert event.type == EventType.PART_UPDATED
        assert event.event_metadata == {'part_id': part.id, 'changes': {'approval_status': 'approved'}}

    def test_procurement_progress_stamps_timestamps(self, gm, work_order, part):
        for status in ("quoted", "ordered", "arrived"):
            UpdatePartCommand(identity=gm, work_order_id=work_order.id, part_id=part.id,
                              changes={'procurement_status': status}).execute()

        updated = db.session.get(Part, part.id)
        assert updated.procurement_status == PartProcurementStatus.ARRIVED
        assert updated.quoted_at is not None
        assert updated.ordered_at is not None
        assert updated.arrived_at is not None
        assert updated.quoted_at <= updated.ordered_at <= updated.arrived_at

    def test_setting_same_status_keeps_timestamp(self, gm, work_order, part):
        UpdatePartCommand(identity=gm, work_order_id=work_order.id, part_id=part.id,
                          changes={'procurement_status': 'arrived'}).execute()
        first_arrival = db.session.get(Part, part.id).arrived_at

        UpdatePartCommand(identity=gm, work_order_id=work_order.id, part_id=part.id,
                          changes={'procurement_status': 'arrived', 'actual_total_cost_cents': 1250}).execute()

        updated = db.session.get(Part, part.id)
        assert updated.arrived_at == first_arrival
        assert updated.actual_total_cost_cents == 1250

    def test_backordered_does_not_stamp(self, gm, work_order, part):
        UpdatePartCommand(identity=gm, work_order_id=work_order.id, part_id=part.id,
                          changes={'procurement_status': 'backordered'}).execute()
        updated = db.session.get(Part, part.id)
        assert updated.quoted_at is None and updated.ordered_at is None and updated.arrived_at is None

    def test_negative_cost_is_rejected(self, gm, work_order, part):
        with pytest.raises(ValidationError):
            UpdatePartCommand(identity=gm, work_order_id=work_order.id, part_id=part.id,
                              changes={'quoted_total_cost_cents': -5}).execute()

    def test_invalid_status_is_rejected(self, gm, work_order, part):
        with pytest.raises(ValidationError):
            UpdatePartCommand(identity=gm, work_order_id=work_order.id, part_id=part.id,
                              changes={'procurement_status': 'lost'}).execute()

    def test_part_of_another_work_order_is_not_found(self, gm, site, work_order, part):
        other = CreateWorkOrderCommand(identity=gm, site_id=site.id, title="Door").execute().record
        with pytest.raises(NotFound):
            UpdatePartCommand(identity=gm, work_order_id=other.id, part_id=part.id,
                              changes={'approval_status': 'approved'}).execute()

    def test_contractor_cannot_update_parts(self, contractor_identity, work_order, part):
        with pytest.raises(Forbidden):
            UpdatePartCommand(identity=contractor_identity, work_order_id=work_order.id, part_id=part.id,
                              changes={'approval_status': 'approved'}).execute()
