"""
Work order lifecycle.

Each operation is a command object whose ``execute()`` validates the actor
and input, mutates state, appends an event and enqueues notifications inside
a single unit of work.
"""
from facilityops.lifecycle.assignments import AssignWorkOrderCommand, UnassignWorkOrderCommand
from facilityops.lifecycle.comments import AddCommentCommand
from facilityops.lifecycle.completions import ReviewCompletionCommand, SubmitCompletionCommand
from facilityops.lifecycle.parts import AddPartCommand, UpdatePartCommand
from facilityops.lifecycle.work_orders import CloseWorkOrderCommand, CreateWorkOrderCommand, UpdateWorkOrderCommand

__all__ = [
    "AddCommentCommand",
    "AddPartCommand",
    "AssignWorkOrderCommand",
    "CloseWorkOrderCommand",
    "CreateWorkOrderCommand",
    "ReviewCompletionCommand",
    "SubmitCompletionCommand",
    "UnassignWorkOrderCommand",
    "UpdatePartCommand",
    "UpdateWorkOrderCommand",
]
