"""
Case collaboration models.

Cases, their collaborator roster, milestones, the append-only timeline and
the calendar events projected from milestone deadlines.
"""

from .case import Case
from .collaborator import Collaborator
from .milestone import Milestone
from .timeline import TimelineEntry, TimelineEntryType
from .calendar import CalendarEvent

__all__ = [
    'Case',
    'Collaborator',
    'Milestone',
    'TimelineEntry',
    'TimelineEntryType',
    'CalendarEvent',
]
