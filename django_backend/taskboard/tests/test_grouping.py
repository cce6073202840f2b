import random
from datetime import date, datetime, timedelta, timezone

from django.test import SimpleTestCase

from taskboard import grouping
from taskboard.entities import BusinessProcess, Task

from .fakes import NOW

UTC_PLUS_3 = timezone(timedelta(hours=3))


def make(task_id, hour=None, process=None, priority=3, deleted_at=None):
    due = NOW.replace(hour=hour) if hour is not None else None
    return Task(
        id=task_id,
        title=f"Task {task_id}",
        status="new",
        priority=priority,
        due_date=due,
        process_id=process,
        is_deleted=deleted_at is not None,
        deleted_at=deleted_at,
    )


def summary(groups):
    return [(g.key, g.label, [t.id for t in g.tasks]) for g in groups]


class GroupByTimeTest(SimpleTestCase):
    """Test grouping by due hour"""

    def test_hours_ascending_and_no_deadline_last(self):
        tasks = [make(1, 15), make(2), make(3, 9), make(4, 15)]

        groups = grouping.group_tasks(tasks, grouping.TIME, now=NOW)

        self.assertEqual(
            summary(groups),
            [("9:00", "9:00", [3]), ("15:00", "15:00", [1, 4]), ("none", "No deadline", [2])],
        )

    def test_hours_are_local(self):
        groups = grouping.group_by_time([make(1, 22)], tz=UTC_PLUS_3)

        self.assertEqual(groups[0].key, "1:00")

    def test_same_input_same_output(self):
        tasks = [make(i, hour=i % 24, process=i % 3 or None, priority=i % 5 + 1) for i in range(1, 40)]
        processes = [BusinessProcess(1, "Sales"), BusinessProcess(2, "accounting")]

        for group_by in grouping.GROUP_BY_CHOICES:
            with self.subTest(group_by=group_by):
                first = grouping.build_rows(grouping.group_tasks(tasks, group_by, processes, now=NOW))
                second = grouping.build_rows(grouping.group_tasks(list(tasks), group_by, processes, now=NOW))
                self.assertEqual(first, second)

    def test_group_order_does_not_depend_on_input_order(self):
        tasks = [make(i, hour=i % 5 + 8) for i in range(1, 20)]
        shuffled = list(tasks)
        random.Random(4).shuffle(shuffled)

        keys = [g.key for g in grouping.group_tasks(tasks, now=NOW)]
        shuffled_keys = [g.key for g in grouping.group_tasks(shuffled, now=NOW)]

        self.assertEqual(keys, shuffled_keys)


class GroupByProcessAndPriorityTest(SimpleTestCase):
    """Test grouping by business process and priority"""

    def test_process_labels_and_order(self):
        processes = [BusinessProcess(1, "Sales"), BusinessProcess(2, "accounting")]
        tasks = [make(1, process=1), make(2), make(3, process=2), make(4, process=99)]

        groups = grouping.group_tasks(tasks, grouping.PROCESS, processes, now=NOW)

        self.assertEqual(
            summary(groups),
            [(2, "accounting", [3]), (1, "Sales", [1]), (99, "Unknown process", [4]), (None, "No process", [2])],
        )

    def test_priority(self):
        tasks = [make(1, priority=4), make(2, priority=1), make(3, priority=4)]

        groups = grouping.group_tasks(tasks, grouping.PRIORITY, now=NOW)

        self.assertEqual(summary(groups), [(1, "1 - Critical", [2]), (4, "4 - Low", [1, 3])])


class TrashGroupingTest(SimpleTestCase):
    """Test grouping of deleted tasks by deletion date"""

    def test_labels(self):
        today = date(2026, 3, 2)

        self.assertEqual(grouping.trash_label(today, today), "Today")
        self.assertEqual(grouping.trash_label(date(2026, 3, 1), today), "Yesterday")
        self.assertEqual(grouping.trash_label(date(2026, 2, 18), today), "18 February")
        self.assertEqual(grouping.trash_label(date(2025, 10, 18), today), "18 October 2025")

    def test_trash_view_ignores_group_by(self):
        tasks = [
            make(1, 10, deleted_at=NOW - timedelta(days=1)),
            make(2, 11, deleted_at=NOW),
            make(3, 12, deleted_at=NOW - timedelta(hours=1)),
        ]

        groups = grouping.group_tasks(tasks, grouping.PRIORITY, now=NOW)

        self.assertEqual(
            summary(groups),
            [("2026-03-02", "Today", [2, 3]), ("2026-03-01", "Yesterday", [1])],
        )

    def test_mixed_list_is_not_a_trash_view(self):
        tasks = [make(1, 10, deleted_at=NOW), make(2, 10)]

        self.assertFalse(grouping.is_trash_view(tasks))
        self.assertFalse(grouping.is_trash_view([]))


class BuildRowsTest(SimpleTestCase):
    """Test flattening groups into rows"""

    def test_rows(self):
        groups = grouping.group_tasks([make(1, 9), make(2, 10)], now=NOW)

        rows = grouping.build_rows(groups)

        self.assertEqual([r.key for r in rows], ["group:9:00", "task:1", "group:10:00", "task:2"])
        self.assertEqual([r.height for r in rows], [56, 192, 56, 192])
        self.assertIs(rows[1].group, groups[0])

    def test_trash_info_row(self):
        groups = grouping.group_tasks([make(1, deleted_at=NOW)], now=NOW)

        rows = grouping.build_rows(groups, trash_view=True)

        self.assertEqual([r.kind for r in rows], [grouping.TRASH_INFO, grouping.GROUP_HEADER, grouping.TASK])
        self.assertEqual(rows[0].height, 100)

    def test_empty(self):
        rows = grouping.build_rows([])

        self.assertEqual(rows, [grouping.Row(grouping.EMPTY, "empty", 200)])

    def test_row_height(self):
        rows = grouping.build_rows(grouping.group_tasks([make(1, 9)], now=NOW))
        height = grouping.row_height(rows)

        self.assertEqual([height(0), height(1), height(5)], [56, 192, 192])


class NowDefaultTest(SimpleTestCase):
    def test_now_defaults_to_current_time(self):
        deleted = make(1, deleted_at=datetime.now(timezone.utc))

        self.assertEqual(grouping.group_tasks([deleted])[0].label, "Today")
