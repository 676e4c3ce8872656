from dataclasses import dataclass, field
from typing import Any, List, Optional


@dataclass
class LifecycleResult:
    """Outcome of a lifecycle command: the touched record plus what was recorded about it."""
    record: Any
    event_id: int
    outbox_ids: List[int] = field(default_factory=list)

    def to_dict(self) -> dict:
        """Serialize for JSON response"""
        return self.record.to_dict()


@dataclass
class CompletionSubmitResult(LifecycleResult):
    attachments: List[Any] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "completion": self.record.to_dict(),
            "attachments": [a.to_dict() for a in self.attachments],
        }


@dataclass
class WorkOrderDetail:
    work_order: Any
    parts: List[Any]
    comments: List[dict]
    events: List[dict]
    completions: List[dict]
    attachments: List[Any]
    assignment: Optional[dict]

    def to_dict(self) -> dict:
        return {
            "work_order": self.work_order.to_dict(),
            "parts": [p.to_dict() for p in self.parts],
            "comments": self.comments,
            "events": self.events,
            "completions": self.completions,
            "attachments": [a.to_dict() for a in self.attachments],
            "assignment": self.assignment,
        }
