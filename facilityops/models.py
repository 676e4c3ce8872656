from flask_sqlalchemy import SQLAlchemy
from datetime import datetime
from enum import Enum

db = SQLAlchemy()


def _enum_column(enum_cls, name, **kwargs):
    """Enum column persisted by value ('in_progress'), not by member name."""
    return db.Column(
        db.Enum(enum_cls, name=name, values_callable=lambda e: [m.value for m in e], validate_strings=True),
        **kwargs
    )


def _iso(dt):
    return dt.isoformat() if dt else None


class Role(Enum):
    GM = "gm"
    CONTRACTOR = "contractor"


class Priority(Enum):
    EMERGENCY = "emergency"
    HIGH = "high"
    NORMAL = "normal"
    LOW = "low"


class WorkOrderStatus(Enum):
    OPEN = "open"
    IN_PROGRESS = "in_progress"
    ON_HOLD = "on_hold"
    NEEDS_REVIEW = "needs_review"
    CLOSED = "closed"


class HoldReason(Enum):
    AWAITING_PARTS = "awaiting_parts"
    AWAITING_APPROVAL = "awaiting_approval"
    AWAITING_ACCESS = "awaiting_access"
    AWAITING_VENDOR = "awaiting_vendor"
    OTHER = "other"


class PartApprovalStatus(Enum):
    NOT_REQUESTED = "not_requested"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"
    REJECTED = "rejected"


class PartProcurementStatus(Enum):
    NOT_STARTED = "not_started"
    QUOTED = "quoted"
    ORDERED = "ordered"
    ARRIVED = "arrived"
    BACKORDERED = "backordered"
    CANCELLED = "cancelled"


class ReviewStatus(Enum):
    SUBMITTED = "submitted"
    APPROVED = "approved"
    REJECTED = "rejected"


class AttachmentType(Enum):
    ISSUE_PHOTO = "issue_photo"
    COMPLETION_PHOTO = "completion_photo"
    OTHER = "other"


class EventType(Enum):
    WORK_ORDER_CREATED = "work_order_created"
    WORK_ORDER_UPDATED = "work_order_updated"
    STATUS_CHANGED = "status_changed"
    HOLD_CHANGED = "hold_changed"
    ASSIGNMENT_CREATED = "assignment_created"
    ASSIGNMENT_REMOVED = "assignment_removed"
    PART_CREATED = "part_created"
    PART_UPDATED = "part_updated"
    COMMENT_ADDED = "comment_added"
    COMPLETION_SUBMITTED = "completion_submitted"
    COMPLETION_REVIEWED = "completion_reviewed"
    WORK_ORDER_CLOSED = "work_order_closed"


class OutboxStatus(Enum):
    PENDING = "pending"
    SENT = "sent"
    FAILED = "failed"


class NotificationTemplate(Enum):
    ASSIGNED = "assigned"
    COMPLETION_SUBMITTED = "completion_submitted"
    COMPLETION_REJECTED = "completion_rejected"
    CLOSED = "closed"


# ==============================================================================
# Directory tables (managed outside the work order core)
# ==============================================================================

class Organization(db.Model):
    __tablename__ = "organizations"
    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    timezone = db.Column(db.String(64), nullable=False, default="America/Boise")
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def __repr__(self):
        return f"<Organization {self.id} - {self.name}>"


class Site(db.Model):
    __tablename__ = "sites"
    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    name = db.Column(db.String(200), nullable=False)
    address = db.Column(db.String(512))
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)


class Location(db.Model):
    __tablename__ = "locations"
    id = db.Column(db.Integer, primary_key=True)
    site_id = db.Column(db.Integer, db.ForeignKey("sites.id"), nullable=False, index=True)
    parent_location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)
    name = db.Column(db.String(200), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)


class User(db.Model):
    __tablename__ = "users"
    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    role = _enum_column(Role, "role", nullable=False)
    full_name = db.Column(db.String(200), nullable=False)
    phone = db.Column(db.String(32), nullable=True)
    email = db.Column(db.String(255), unique=True, nullable=False)
    password_hash = db.Column(db.String(255), nullable=False)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    @property
    def contact_address(self):
        """Where notifications for this user are delivered (SMS number)."""
        return self.phone or None

    def __repr__(self):
        return f"<User {self.id} - {self.role.value} - {self.full_name}>"

    def to_dict(self):
        return {
            'id': self.id,
            'organization_id': self.organization_id,
            'role': self.role.value,
            'full_name': self.full_name,
            'contact_address': self.contact_address,
            'is_active': self.is_active,
        }


# ==============================================================================
# Work order core
# ==============================================================================

class WorkOrder(db.Model):
    """A maintenance task moving through open -> ... -> closed."""
    __tablename__ = "work_orders"

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False, index=True)
    site_id = db.Column(db.Integer, db.ForeignKey("sites.id"), nullable=False)
    location_id = db.Column(db.Integer, db.ForeignKey("locations.id"), nullable=True)

    title = db.Column(db.String(256), nullable=False)
    description = db.Column(db.Text, nullable=True)
    priority = _enum_column(Priority, "priority", nullable=False, default=Priority.NORMAL)
    status = _enum_column(WorkOrderStatus, "work_order_status", nullable=False, default=WorkOrderStatus.OPEN, index=True)

    # Only meaningful while on_hold, but never cleared automatically
    hold_reason = _enum_column(HoldReason, "hold_reason", nullable=True)
    hold_notes = db.Column(db.Text, nullable=True)

    due_at = db.Column(db.DateTime, nullable=True)
    created_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    closed_at = db.Column(db.DateTime, nullable=True)
    closed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)

    @property
    def is_closed(self):
        return self.status == WorkOrderStatus.CLOSED

    def __repr__(self):
        return f"<WorkOrder {self.id} - {self.status.value} - {self.title}>"

    def to_dict(self):
        return {
            'id': self.id,
            'organization_id': self.organization_id,
            'site_id': self.site_id,
            'location_id': self.location_id,
            'title': self.title,
            'description': self.description,
            'priority': self.priority.value,
            'status': self.status.value,
            'hold_reason': self.hold_reason.value if self.hold_reason else None,
            'hold_notes': self.hold_notes,
            'due_at': _iso(self.due_at),
            'created_by_user_id': self.created_by_user_id,
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
            'closed_at': _iso(self.closed_at),
            'closed_by_user_id': self.closed_by_user_id,
        }


class Part(db.Model):
    __tablename__ = "work_order_parts"

    id = db.Column(db.Integer, primary_key=True)
    work_order_id = db.Column(db.Integer, db.ForeignKey("work_orders.id"), nullable=False, index=True)
    name = db.Column(db.String(256), nullable=False)
    quantity = db.Column(db.Integer, nullable=False, default=1)
    vendor = db.Column(db.String(256), nullable=True)
    sku_or_link = db.Column(db.String(512), nullable=True)
    notes = db.Column(db.Text, nullable=True)
    is_required = db.Column(db.Boolean, nullable=False, default=True)

    approval_status = _enum_column(PartApprovalStatus, "part_approval_status", nullable=False,
                                   default=PartApprovalStatus.NOT_REQUESTED)
    procurement_status = _enum_column(PartProcurementStatus, "part_procurement_status", nullable=False,
                                      default=PartProcurementStatus.NOT_STARTED)
    quoted_total_cost_cents = db.Column(db.Integer, nullable=True)
    actual_total_cost_cents = db.Column(db.Integer, nullable=True)

    quoted_at = db.Column(db.DateTime, nullable=True)
    ordered_at = db.Column(db.DateTime, nullable=True)
    arrived_at = db.Column(db.DateTime, nullable=True)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    updated_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    @property
    def is_ready(self):
        """Approved for purchase and physically arrived."""
        return (self.approval_status == PartApprovalStatus.APPROVED
                and self.procurement_status == PartProcurementStatus.ARRIVED)

    def __repr__(self):
        return f"<Part {self.id} - {self.name} - {self.approval_status.value}/{self.procurement_status.value}>"

    def to_dict(self):
        return {
            'id': self.id,
            'work_order_id': self.work_order_id,
            'name': self.name,
            'quantity': self.quantity,
            'vendor': self.vendor,
            'sku_or_link': self.sku_or_link,
            'notes': self.notes,
            'is_required': self.is_required,
            'approval_status': self.approval_status.value,
            'procurement_status': self.procurement_status.value,
            'quoted_total_cost_cents': self.quoted_total_cost_cents,
            'actual_total_cost_cents': self.actual_total_cost_cents,
            'quoted_at': _iso(self.quoted_at),
            'ordered_at': _iso(self.ordered_at),
            'arrived_at': _iso(self.arrived_at),
            'created_at': _iso(self.created_at),
            'updated_at': _iso(self.updated_at),
        }


class Assignment(db.Model):
    """Contractor responsibility for a work order; active while unassigned_at is null."""
    __tablename__ = "work_order_assignments"

    id = db.Column(db.Integer, primary_key=True)
    work_order_id = db.Column(db.Integer, db.ForeignKey("work_orders.id"), nullable=False, index=True)
    assigned_to_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)
    assigned_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    assigned_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    unassigned_at = db.Column(db.DateTime, nullable=True)
    force_assigned = db.Column(db.Boolean, nullable=False, default=False)

    @property
    def is_active(self):
        return self.unassigned_at is None

    def to_dict(self):
        return {
            'id': self.id,
            'work_order_id': self.work_order_id,
            'assigned_to_user_id': self.assigned_to_user_id,
            'assigned_by_user_id': self.assigned_by_user_id,
            'assigned_at': _iso(self.assigned_at),
            'unassigned_at': _iso(self.unassigned_at),
            'force_assigned': self.force_assigned,
        }


class Completion(db.Model):
    __tablename__ = "work_order_completions"

    id = db.Column(db.Integer, primary_key=True)
    work_order_id = db.Column(db.Integer, db.ForeignKey("work_orders.id"), nullable=False, index=True)
    submitted_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    submitted_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    minutes_worked = db.Column(db.Integer, nullable=False)
    completion_notes = db.Column(db.Text, nullable=True)
    review_status = _enum_column(ReviewStatus, "completion_review_status", nullable=False,
                                 default=ReviewStatus.SUBMITTED)
    reviewed_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    reviewed_at = db.Column(db.DateTime, nullable=True)
    review_notes = db.Column(db.Text, nullable=True)

    def to_dict(self):
        return {
            'id': self.id,
            'work_order_id': self.work_order_id,
            'submitted_by_user_id': self.submitted_by_user_id,
            'submitted_at': _iso(self.submitted_at),
            'minutes_worked': self.minutes_worked,
            'completion_notes': self.completion_notes,
            'review_status': self.review_status.value,
            'reviewed_by_user_id': self.reviewed_by_user_id,
            'reviewed_at': _iso(self.reviewed_at),
            'review_notes': self.review_notes,
        }


class Attachment(db.Model):
    __tablename__ = "attachments"

    id = db.Column(db.Integer, primary_key=True)
    work_order_id = db.Column(db.Integer, db.ForeignKey("work_orders.id"), nullable=False, index=True)
    completion_id = db.Column(db.Integer, db.ForeignKey("work_order_completions.id"), nullable=True)
    uploaded_by_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    type = _enum_column(AttachmentType, "attachment_type", nullable=False)
    file_url = db.Column(db.String(1024), nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'work_order_id': self.work_order_id,
            'completion_id': self.completion_id,
            'uploaded_by_user_id': self.uploaded_by_user_id,
            'type': self.type.value,
            'file_url': self.file_url,
            'created_at': _iso(self.created_at),
        }


class Comment(db.Model):
    __tablename__ = "comments"

    id = db.Column(db.Integer, primary_key=True)
    work_order_id = db.Column(db.Integer, db.ForeignKey("work_orders.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    message = db.Column(db.Text, nullable=False)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)

    def to_dict(self):
        return {
            'id': self.id,
            'work_order_id': self.work_order_id,
            'user_id': self.user_id,
            'message': self.message,
            'created_at': _iso(self.created_at),
        }


class Event(db.Model):
    """Append-only audit trail of everything that happened to a work order."""
    __tablename__ = "work_order_events"

    id = db.Column(db.Integer, primary_key=True)
    work_order_id = db.Column(db.Integer, db.ForeignKey("work_orders.id"), nullable=False, index=True)
    actor_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False)
    type = _enum_column(EventType, "event_type", nullable=False, index=True)
    message = db.Column(db.Text, nullable=False)
    event_metadata = db.Column("metadata", db.JSON, nullable=False, default=dict)
    created_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow, index=True)

    def __repr__(self):
        return f"<Event {self.id} - {self.type.value} - work order {self.work_order_id}>"

    def to_dict(self):
        return {
            'id': self.id,
            'work_order_id': self.work_order_id,
            'actor_user_id': self.actor_user_id,
            'type': self.type.value,
            'message': self.message,
            'metadata': self.event_metadata or {},
            'created_at': _iso(self.created_at),
        }


class OutboxEntry(db.Model):
    """A notification waiting to be delivered by the notification worker."""
    __tablename__ = "notification_outbox"
    __table_args__ = (
        db.Index('idx_outbox_status_send_at', 'status', 'send_at'),
    )

    id = db.Column(db.Integer, primary_key=True)
    organization_id = db.Column(db.Integer, db.ForeignKey("organizations.id"), nullable=False)
    work_order_id = db.Column(db.Integer, db.ForeignKey("work_orders.id"), nullable=True)
    destination = db.Column(db.String(64), nullable=False)
    template = _enum_column(NotificationTemplate, "notification_template", nullable=False)
    payload = db.Column(db.JSON, nullable=False, default=dict)
    send_at = db.Column(db.DateTime, nullable=False, default=datetime.utcnow)
    sent_at = db.Column(db.DateTime, nullable=True)
    status = _enum_column(OutboxStatus, "notification_status", nullable=False, default=OutboxStatus.PENDING)
    provider_message_id = db.Column(db.String(128), nullable=True)
    error = db.Column(db.Text, nullable=True)

    def __repr__(self):
        return f"<OutboxEntry {self.id} - {self.template.value} - {self.status.value}>"

    def to_dict(self):
        return {
            'id': self.id,
            'organization_id': self.organization_id,
            'work_order_id': self.work_order_id,
            'destination': self.destination,
            'template': self.template.value,
            'payload': self.payload or {},
            'send_at': _iso(self.send_at),
            'sent_at': _iso(self.sent_at),
            'status': self.status.value,
            'provider_message_id': self.provider_message_id,
            'error': self.error,
        }
