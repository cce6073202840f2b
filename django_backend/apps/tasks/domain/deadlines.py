from collections import namedtuple
from datetime import timedelta

from .constants import Status

ALMOST_OVERDUE_WINDOW = timedelta(hours=24)

DeadlineFlags = namedtuple("DeadlineFlags", ["is_overdue", "is_almost_overdue"])


def deadline_flags(due_date, status, now):
    """
    Overdue: the due date has passed and the task is not completed.
    Almost overdue: not yet due, but due within the next 24 hours.
    """
    if due_date is None or status == Status.COMPLETED:
        return DeadlineFlags(False, False)
    remaining = due_date - now
    if remaining < timedelta(0):
        return DeadlineFlags(True, False)
    return DeadlineFlags(False, remaining <= ALMOST_OVERDUE_WINDOW)
