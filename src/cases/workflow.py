"""
Milestone status workflow.

Two authority paths write the same ``Milestone.status`` field:

* editors move a milestone along the workflow graph (``editor_transitions``);
* reviewers ratify or override progress from any non-terminal status
  (``review_target``).

Both paths apply the same lifecycle bookkeeping through ``apply_status``.
"""

from typing import Optional, Tuple

from django.db import models
from django.utils import timezone

from .models import Milestone

Status = Milestone.Status


EDITOR_TRANSITIONS = {
    Status.NOT_STARTED: (Status.IN_PROGRESS, Status.BLOCKED, Status.CANCELLED),
    Status.IN_PROGRESS: (Status.COMPLETED, Status.BLOCKED, Status.NOT_STARTED),
    Status.BLOCKED: (Status.IN_PROGRESS, Status.CANCELLED),
    Status.COMPLETED: (Status.IN_PROGRESS,),
    Status.CANCELLED: (Status.NOT_STARTED,),
}


class ReviewAction(models.TextChoices):
    APPROVE = 'approve', 'Approve'
    REJECT = 'reject', 'Reject'
    REQUEST_CHANGES = 'request_changes', 'Request Changes'


REVIEW_TARGETS = {
    ReviewAction.APPROVE.value: Status.COMPLETED,
    ReviewAction.REJECT.value: Status.BLOCKED,
    ReviewAction.REQUEST_CHANGES.value: Status.IN_PROGRESS,
}


def editor_transitions(status: str) -> Tuple[str, ...]:
    """Workflow edges an editor is offered from ``status``."""
    return tuple(str(target) for target in EDITOR_TRANSITIONS.get(status, ()))


def is_reviewable(status: str) -> bool:
    """Reviewer actions are open on every status except completed and cancelled."""
    return status not in Milestone.TERMINAL_STATUSES


def review_target(action: str) -> str:
    """
    Status a reviewer action resolves to, independent of the current status.

    Raises:
        ValueError: for an unknown action
    """
    try:
        return str(REVIEW_TARGETS[str(action)])
    except KeyError:
        raise ValueError(f"Unknown review action: {action}")


def apply_status(milestone: Milestone, new_status: str, actor=None, now=None) -> Optional[str]:
    """
    Set ``milestone.status`` and maintain the lifecycle timestamps.

    Any target is accepted regardless of the prior status:

    * ``started_at`` is stamped once, the first time the milestone becomes
      in progress or completed;
    * ``completed_at``/``completed_by`` are stamped on entering completed and
      cleared whenever the status is anything else.

    Does not save. Returns the previous status.
    """
    if new_status not in Status.values:
        raise ValueError(f"Unknown milestone status: {new_status}")

    now = now or timezone.now()
    old_status = milestone.status
    milestone.status = new_status

    if new_status in (Status.IN_PROGRESS, Status.COMPLETED) and milestone.started_at is None:
        milestone.started_at = now

    if new_status == Status.COMPLETED:
        if old_status != Status.COMPLETED or milestone.completed_at is None:
            milestone.completed_at = now
            milestone.completed_by = actor
    else:
        milestone.completed_at = None
        milestone.completed_by = None

    return old_status
