"""Render outbox entries into SMS text."""
from facilityops.models import NotificationTemplate


def render_template(template, payload) -> str:
    """
    Render a notification body from its template and payload.

    Unknown templates fall back to a generic text. When the payload carries a
    link it is appended on its own line.
    """
    payload = payload or {}
    if isinstance(template, NotificationTemplate):
        template = template.value

    link = f"\n{payload['link']}" if payload.get('link') else ""
    title = payload.get('title', '')

    if template == NotificationTemplate.ASSIGNED.value:
        return f"New task assigned: {title}{link}"
    if template == NotificationTemplate.COMPLETION_SUBMITTED.value:
        return f"Task completed and ready for review: {title} (by {payload.get('contractor', '')}){link}"
    if template == NotificationTemplate.COMPLETION_REJECTED.value:
        return f"Completion needs changes: {title}\nNotes: {payload.get('review_notes') or ''}{link}"
    if template == NotificationTemplate.CLOSED.value:
        return f"Work order closed: {title}{link}"
    return f"Notification{link}"
