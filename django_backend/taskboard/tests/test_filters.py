from datetime import datetime, timedelta, timezone

from django.test import SimpleTestCase

from taskboard.entities import Task, User, UserRef
from taskboard.filters import HEADER_TABS, TaskFilter, date_range

from .fakes import NOW

ME, COLLEAGUE = 1, 2


def make(task_id, status="new", priority=3, assignees=(ME,), creator=COLLEAGUE, due_in=timedelta(hours=5), **extra):
    return Task(
        id=task_id,
        title=extra.pop("title", f"Task {task_id}"),
        status=status,
        priority=priority,
        due_date=NOW + due_in if due_in is not None else None,
        creator=UserRef(creator),
        assignees=[UserRef(i) for i in assignees],
        **extra,
    )


def ids(tasks):
    return [t.id for t in tasks]


class DateRangeTest(SimpleTestCase):
    """Test the view mode windows"""

    def test_windows(self):
        # NOW is Monday 2 March 2026, 12:00 UTC
        day = date_range("day", NOW)
        week = date_range("week", NOW)
        month = date_range("month", NOW)

        self.assertEqual(day[0], datetime(2026, 3, 2, tzinfo=timezone.utc))
        self.assertEqual(day[1], datetime(2026, 3, 2, 23, 59, 59, 999999, tzinfo=timezone.utc))
        self.assertEqual(week[0], datetime(2026, 3, 2, tzinfo=timezone.utc))
        self.assertEqual(week[1].date().isoformat(), "2026-03-08")
        self.assertEqual(month[0].day, 1)
        self.assertEqual(month[1].date().isoformat(), "2026-03-31")
        self.assertIsNone(date_range("all", NOW))

    def test_week_starts_on_monday(self):
        sunday = datetime(2026, 3, 8, 18, 0, tzinfo=timezone.utc)

        self.assertEqual(date_range("week", sunday)[0].date().isoformat(), "2026-03-02")


class TaskFilterTest(SimpleTestCase):
    """Test client-side filtering, tabs and sorting"""

    def setUp(self):
        self.employee = User(ME, "me", role="employee")
        self.head = User(ME, "me", role="department_head")
        self.tasks = [
            make(1, title="Quarterly report", tags=["finance"], is_overdue=True),
            make(2, status="in_progress", priority=1, assignees=(COLLEAGUE,), creator=ME, due_in=timedelta(days=3)),
            make(3, status="completed", priority=5, description="Call the client", tags=["client", "finance"]),
            make(4, is_deleted=True, deleted_at=NOW),
            make(5, priority=2, assignees=(ME, COLLEAGUE), due_in=None, is_almost_overdue=True),
        ]

    def test_trash_is_separate(self):
        self.assertEqual(ids(TaskFilter().apply(self.tasks, self.employee, NOW)), [1, 3, 2, 5])
        self.assertEqual(ids(TaskFilter(show_trash=True).apply(self.tasks, self.employee, NOW)), [4])

    def test_view_mode(self):
        result = TaskFilter(view_mode="day").apply(self.tasks, self.employee, NOW)

        self.assertEqual(ids(result), [1, 3])

    def test_field_filters(self):
        self.assertEqual(ids(TaskFilter(status="in_progress").apply(self.tasks, self.employee, NOW)), [2])
        self.assertEqual(ids(TaskFilter(priority="2").apply(self.tasks, self.employee, NOW)), [5])
        self.assertEqual(ids(TaskFilter(assignee=COLLEAGUE).apply(self.tasks, self.employee, NOW)), [2, 5])

    def test_search(self):
        self.assertEqual(ids(TaskFilter(search=" REPORT ").apply(self.tasks, self.employee, NOW)), [1])
        self.assertEqual(ids(TaskFilter(search="client").apply(self.tasks, self.employee, NOW)), [3])

    def test_tags(self):
        any_mode = TaskFilter(tags=["finance", "client"]).apply(self.tasks, self.employee, NOW)
        all_mode = TaskFilter(tags=["finance", "client"], tag_mode="all").apply(self.tasks, self.employee, NOW)

        self.assertEqual(ids(any_mode), [1, 3])
        self.assertEqual(ids(all_mode), [3])

    def test_tabs(self):
        cases = {
            "my": [1, 3, 5],
            "created": [2],
            "overdue": [1],
            "almost_overdue": [5],
            "completed": [3],
            "high_priority": [2, 5],
            "low_priority": [3],
        }
        for tab, expected in cases.items():
            with self.subTest(tab=tab):
                self.assertEqual(ids(TaskFilter(tab=tab).apply(self.tasks, self.employee, NOW)), expected)

    def test_team_tab_depends_on_role(self):
        self.assertEqual(TaskFilter(tab="team").apply(self.tasks, self.employee, NOW), [])
        self.assertEqual(ids(TaskFilter(tab="team").apply(self.tasks, self.head, NOW)), [2, 5])
        self.assertEqual(
            ids(TaskFilter(tab="team", team_tab_for_all=True).apply(self.tasks, self.employee, NOW)), [2, 5]
        )

    def test_sorting(self):
        by_priority = TaskFilter(sort_by="priority").apply(self.tasks, self.employee, NOW)
        by_status = TaskFilter(sort_by="status").apply(self.tasks, self.employee, NOW)
        by_title = TaskFilter(sort_by="title").apply(self.tasks, self.employee, NOW)

        self.assertEqual(ids(by_priority), [2, 5, 1, 3])
        self.assertEqual(ids(by_status), [1, 5, 2, 3])
        self.assertEqual(ids(by_title), [1, 2, 3, 5])

    def test_tab_counts(self):
        counts = TaskFilter().tab_counts(self.tasks, self.employee, NOW)
        head_counts = TaskFilter().tab_counts(self.tasks, self.head, NOW)

        self.assertNotIn("team", counts)
        self.assertEqual(counts, {"all": 4, "my": 3, "overdue": 1, "in_progress": 1, "completed": 1})
        self.assertEqual(list(head_counts), list(HEADER_TABS))
        self.assertEqual(head_counts["team"], 2)

    def test_available_tags(self):
        self.assertEqual(TaskFilter.available_tags(self.tasks), ["client", "finance"])
