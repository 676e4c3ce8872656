"""
Tests for notification text rendering.
"""
import pytest

from facilityops.models import NotificationTemplate
from facilityops.notifications.templates import render_template


LINK = "https://ops.example.com/tasks/7"


@pytest.mark.parametrize("template,payload,expected", [
    (NotificationTemplate.ASSIGNED,
     {'title': 'Leak', 'link': LINK},
     f"New task assigned: Leak\n{LINK}"),
    (NotificationTemplate.COMPLETION_SUBMITTED,
     {'title': 'Leak', 'contractor': 'Carl', 'link': LINK},
     f"Task completed and ready for review: Leak (by Carl)\n{LINK}"),
    (NotificationTemplate.COMPLETION_REJECTED,
     {'title': 'Leak', 'review_notes': 'Blurry photo', 'link': LINK},
     f"Completion needs changes: Leak\nNotes: Blurry photo\n{LINK}"),
    (NotificationTemplate.CLOSED,
     {'title': 'Leak', 'link': LINK},
     f"Work order closed: Leak\n{LINK}"),
])
def test_render_known_templates(template, payload, expected):
    assert render_template(template, payload) == expected


def test_link_is_optional():
    assert render_template(NotificationTemplate.ASSIGNED, {'title': 'Leak'}) == "New task assigned: Leak"


def test_template_may_be_given_by_value():
    assert render_template("closed", {'title': 'Leak'}) == "Work order closed: Leak"


def test_unknown_template_falls_back():
    assert render_template("mystery", {'link': LINK}) == f"Notification\n{LINK}"
    assert render_template("mystery", None) == "Notification"


def test_missing_review_notes_render_empty():
    body = render_template(NotificationTemplate.COMPLETION_REJECTED, {'title': 'Leak', 'review_notes': None})
    assert body == "Completion needs changes: Leak\nNotes: "
