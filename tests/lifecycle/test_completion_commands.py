"""
Tests for completion submission and review, plus the full
create -> parts -> assign -> submit -> reject -> resubmit -> approve -> close flow.
"""
import pytest

from facilityops.auth.identity import Identity
from facilityops.errors import Conflict, Forbidden, NotFound, PreconditionFailed, ValidationError
from facilityops.lifecycle import (
    AddPartCommand,
    AssignWorkOrderCommand,
    CloseWorkOrderCommand,
    ReviewCompletionCommand,
    SubmitCompletionCommand,
    UpdatePartCommand,
)
from facilityops.models import (
    Attachment,
    AttachmentType,
    Completion,
    Event,
    EventType,
    NotificationTemplate,
    OutboxEntry,
    ReviewStatus,
    Role,
    WorkOrder,
    WorkOrderStatus,
    db,
)

PHOTOS = ["/uploads/before.jpg", "/uploads/after.jpg"]


@pytest.fixture
def assigned_work_order(gm, work_order, contractor):
    AssignWorkOrderCommand(identity=gm, work_order_id=work_order.id, assignee_id=contractor.id).execute()
    return work_order


def submit(identity, work_order, minutes=45, photos=PHOTOS, notes="Replaced valve"):
    return SubmitCompletionCommand(identity=identity, work_order_id=work_order.id, minutes_worked=minutes,
                                   photo_refs=list(photos), notes=notes).execute()


class TestSubmitCompletion:

    def test_submit_moves_to_needs_review(self, contractor_identity, assigned_work_order):
        result = submit(contractor_identity, assigned_work_order)

        work_order = db.session.get(WorkOrder, assigned_work_order.id)
        assert work_order.status == WorkOrderStatus.NEEDS_REVIEW

        completion = db.session.get(Completion, result.record.id)
        assert completion.review_status == ReviewStatus.SUBMITTED
        assert completion.minutes_worked == 45
        assert completion.completion_notes == "Replaced valve"

        attachments = Attachment.query.filter_by(completion_id=completion.id).all()
        assert sorted(a.file_url for a in attachments) == sorted(PHOTOS)
        assert all(a.type == AttachmentType.COMPLETION_PHOTO for a in attachments)

        event = db.session.get(Event, result.event_id)
        assert event.type == EventType.COMPLETION_SUBMITTED
        assert event.event_metadata == {'completion_id': completion.id, 'minutes_worked': 45}

    def test_submit_notifies_every_gm_with_contact(self, contractor_identity, assigned_work_order, user_factory):
        second_gm = user_factory(Role.GM, "Gil Manager", phone="+15555550111")
        user_factory(Role.GM, "Mute Manager")

        result = submit(contractor_identity, assigned_work_order)

        entries = [db.session.get(OutboxEntry, i) for i in result.outbox_ids]
        assert sorted(e.destination for e in entries) == sorted(["+15555550100", second_gm.phone])
        for entry in entries:
            assert entry.template == NotificationTemplate.COMPLETION_SUBMITTED
            assert entry.payload['contractor'] == "Carl Contractor"
            assert entry.payload['title'] == "Leak"

    def test_gm_cannot_submit(self, gm, assigned_work_order):
        with pytest.raises(Forbidden):
            submit(gm, assigned_work_order)

    def test_unassigned_contractor_cannot_submit(self, assigned_work_order, second_contractor):
        with pytest.raises(Forbidden) as exc:
            submit(Identity.from_user(second_contractor), assigned_work_order)
        assert exc.value.message == "Not assigned to you"

    def test_photos_are_required(self, contractor_identity, assigned_work_order):
        with pytest.raises(ValidationError):
            submit(contractor_identity, assigned_work_order, photos=[])

        assert Completion.query.count() == 0
        assert db.session.get(WorkOrder, assigned_work_order.id).status == WorkOrderStatus.OPEN

    @pytest.mark.parametrize("minutes", [0, -10, "soon"])
    def test_minutes_must_be_positive(self, contractor_identity, assigned_work_order, minutes):
        with pytest.raises(ValidationError):
            submit(contractor_identity, assigned_work_order, minutes=minutes)

    def test_closed_work_order_rejects_submission(self, gm, contractor_identity, assigned_work_order):
        CloseWorkOrderCommand(identity=gm, work_order_id=assigned_work_order.id).execute()
        with pytest.raises(Conflict):
            submit(contractor_identity, assigned_work_order)


class TestReviewCompletion:

    def test_reject_sends_back_to_in_progress(self, gm, contractor, contractor_identity, assigned_work_order):
        completion = submit(contractor_identity, assigned_work_order).record

        result = ReviewCompletionCommand(identity=gm, work_order_id=assigned_work_order.id,
                                         completion_id=completion.id, decision="reject",
                                         review_notes="Photo is blurry").execute()

        assert db.session.get(WorkOrder, assigned_work_order.id).status == WorkOrderStatus.IN_PROGRESS
        reviewed = db.session.get(Completion, completion.id)
        assert reviewed.review_status == ReviewStatus.REJECTED
        assert reviewed.reviewed_by_user_id == gm.actor_id
        assert reviewed.review_notes == "Photo is blurry"

        assert len(result.outbox_ids) == 1
        entry = db.session.get(OutboxEntry, result.outbox_ids[0])
        assert entry.template == NotificationTemplate.COMPLETION_REJECTED
        assert entry.destination == contractor.phone
        assert entry.payload['review_notes'] == "Photo is blurry"

    def test_approve_leaves_status_and_sends_nothing(self, gm, contractor_identity, assigned_work_order):
        completion = submit(contractor_identity, assigned_work_order).record
        outbox_before = OutboxEntry.query.count()

        result = ReviewCompletionCommand(identity=gm, work_order_id=assigned_work_order.id,
                                         completion_id=completion.id, decision="approve").execute()

        assert db.session.get(WorkOrder, assigned_work_order.id).status == WorkOrderStatus.NEEDS_REVIEW
        assert db.session.get(Completion, completion.id).review_status == ReviewStatus.APPROVED
        assert result.outbox_ids == []
        assert OutboxEntry.query.count() == outbox_before
        assert db.session.get(Event, result.event_id).event_metadata == {
            'completion_id': completion.id, 'decision': 'approve'}

    def test_unknown_decision(self, gm, contractor_identity, assigned_work_order):
        completion = submit(contractor_identity, assigned_work_order).record
        with pytest.raises(ValidationError):
            ReviewCompletionCommand(identity=gm, work_order_id=assigned_work_order.id,
                                    completion_id=completion.id, decision="maybe").execute()

    @pytest.mark.parametrize("decision", [["approve"], {"approve": True}, None, 1])
    def test_non_string_decision_is_validation_error(self, gm, contractor_identity, assigned_work_order, decision):
        completion = submit(contractor_identity, assigned_work_order).record
        with pytest.raises(ValidationError):
            ReviewCompletionCommand(identity=gm, work_order_id=assigned_work_order.id,
                                    completion_id=completion.id, decision=decision).execute()
        assert db.session.get(Completion, completion.id).review_status == ReviewStatus.SUBMITTED

    def test_contractor_cannot_review(self, contractor_identity, assigned_work_order):
        completion = submit(contractor_identity, assigned_work_order).record
        with pytest.raises(Forbidden):
            ReviewCompletionCommand(identity=contractor_identity, work_order_id=assigned_work_order.id,
                                    completion_id=completion.id, decision="approve").execute()

    def test_completion_must_belong_to_work_order(self, gm, assigned_work_order):
        with pytest.raises(NotFound):
            ReviewCompletionCommand(identity=gm, work_order_id=assigned_work_order.id,
                                    completion_id=4242, decision="approve").execute()


def test_full_work_order_lifecycle(gm, contractor, contractor_identity, work_order):
    # Parts gate
    part = AddPartCommand(identity=gm, work_order_id=work_order.id, name="Valve").execute().record
    UpdatePartCommand(identity=gm, work_order_id=work_order.id, part_id=part.id,
                      changes={'approval_status': 'approved', 'procurement_status': 'ordered'}).execute()
    with pytest.raises(PreconditionFailed):
        AssignWorkOrderCommand(identity=gm, work_order_id=work_order.id, assignee_id=contractor.id).execute()

    UpdatePartCommand(identity=gm, work_order_id=work_order.id, part_id=part.id,
                      changes={'procurement_status': 'arrived'}).execute()
    AssignWorkOrderCommand(identity=gm, work_order_id=work_order.id, assignee_id=contractor.id).execute()

    # Submit, reject, resubmit, approve
    first = submit(contractor_identity, work_order).record
    ReviewCompletionCommand(identity=gm, work_order_id=work_order.id, completion_id=first.id,
                            decision="reject", review_notes="Need after photo").execute()
    second = submit(contractor_identity, work_order, notes="Added photo").record
    ReviewCompletionCommand(identity=gm, work_order_id=work_order.id, completion_id=second.id,
                            decision="approve").execute()
    CloseWorkOrderCommand(identity=gm, work_order_id=work_order.id).execute()

    assert db.session.get(WorkOrder, work_order.id).status == WorkOrderStatus.CLOSED

    event_types = [e.type for e in Event.query.filter_by(work_order_id=work_order.id).order_by(Event.id)]
    assert event_types == [
        EventType.WORK_ORDER_CREATED,
        EventType.PART_CREATED,
        EventType.PART_UPDATED,
        EventType.PART_UPDATED,
        EventType.ASSIGNMENT_CREATED,
        EventType.COMPLETION_SUBMITTED,
        EventType.COMPLETION_REVIEWED,
        EventType.COMPLETION_SUBMITTED,
        EventType.COMPLETION_REVIEWED,
        EventType.WORK_ORDER_CLOSED,
    ]

    templates = [e.template for e in OutboxEntry.query.order_by(OutboxEntry.id)]
    assert templates == [
        NotificationTemplate.ASSIGNED,
        NotificationTemplate.COMPLETION_SUBMITTED,
        NotificationTemplate.COMPLETION_REJECTED,
        NotificationTemplate.COMPLETION_SUBMITTED,
    ]
