from apps.tasks.domain import ChecklistBoundaryError
from taskboard.errors import ActionNotAllowed, ValidationFailed

from .fakes import NOW, task_data
from .test_store import ASSIGNEE, CREATOR, OUTSIDER, StoreTestCase


def item(item_id, order, level=0, parent=None, text=None, completed=False):
    return {
        "id": item_id,
        "task": 1,
        "text": text or f"Step {item_id}",
        "completed": completed,
        "level": level,
        "item_order": order,
        "parent_id": parent,
    }


class ChecklistControllerTest(StoreTestCase):
    """Test checklist editing through the store"""

    user_id = ASSIGNEE

    def setUp(self):
        super().setUp()
        checklist = [item(10, 0), item(11, 1, level=1, parent=10), item(12, 2)]
        self.serve(task_data(1, creator=CREATOR, assignees=(ASSIGNEE,), observers=(OUTSIDER,), checklist=checklist))
        self.checklist = self.store.checklist(1)

    def ids(self):
        return [i.id for i in self.checklist.items()]

    def test_items_are_ordered(self):
        self.assertEqual(self.ids(), [10, 11, 12])
        self.assertEqual(self.checklist.items()[1].parent_id, 10)

    def test_observer_cannot_edit(self):
        self.act_as(OUTSIDER)

        with self.assertRaises(ActionNotAllowed):
            self.checklist.add("Sneaky step")

        self.assertEqual(self.transport.calls, [])

    def test_add_validation(self):
        with self.assertRaises(ValidationFailed):
            self.checklist.add("  ")
        with self.assertRaises(ValidationFailed):
            self.checklist.add("Too deep", level=6)

    def test_add_shows_placeholder_at_the_end(self):
        local = []

        def accept(body):
            local.extend(self.checklist.items())
            return item(13, 3, level=body["level"], text=body["text"])

        self.transport.on("POST", "/tasks/1/checklist", 201, accept)

        self.checklist.add("Sub step", level=1)

        placeholder = local[-1]
        self.assertLess(placeholder.id, 0)
        self.assertEqual(placeholder.item_order, 3)
        self.assertEqual(placeholder.parent_id, 12)

    def test_toggle(self):
        self.transport.on("PUT", "/tasks/1/checklist/12", payload=item(12, 2, completed=True))
        toggled = []
        self.store.subscribe(lambda _: toggled.append(self.checklist.items()[2]))

        self.checklist.toggle(12)

        self.assertTrue(toggled[0].completed)
        self.assertEqual(toggled[0].completed_by, ASSIGNEE)
        self.assertEqual(toggled[0].completed_at, NOW)
        self.assertEqual(self.transport.writes, [("PUT", "/tasks/1/checklist/12", {"completed": True})])

    def test_failed_delete_restores_item(self):
        self.transport.on("DELETE", "/tasks/1/checklist/10", 500, {"detail": "down"})

        with self.assertLogs("taskboard.store", level="ERROR"):
            self.assertFalse(self.checklist.delete(10))

        self.assertEqual(self.ids(), [10, 11, 12])

    def test_boundaries_are_checked_before_sending(self):
        with self.assertRaises(ChecklistBoundaryError):
            self.checklist.outdent(10)
        with self.assertRaises(ChecklistBoundaryError):
            self.checklist.move_up(10)
        with self.assertRaises(ChecklistBoundaryError):
            self.checklist.move_down(12)

        self.assertEqual(self.transport.calls, [])

    def test_move_takes_server_ordering(self):
        reordered = [item(12, 0), item(10, 1), item(11, 2, level=1, parent=10)]
        self.transport.on("PATCH", "/tasks/1/checklist/12", payload=reordered)

        self.assertTrue(self.checklist.move_up(12))

        self.assertEqual(self.ids(), [12, 10, 11])
        self.assertEqual(self.transport.writes, [("PATCH", "/tasks/1/checklist/12", {"action": "move", "direction": "up"})])

    def test_indent(self):
        self.transport.on(
            "PATCH", "/tasks/1/checklist/12", payload=[item(10, 0), item(11, 1, 1, 10), item(12, 2, 1, 10)]
        )

        self.assertTrue(self.checklist.indent(12))

        self.assertEqual(self.checklist.items()[2].level, 1)
        self.assertEqual(self.transport.writes[0][2], {"action": "indent"})

    def test_server_side_block(self):
        self.transport.on("PATCH", "/tasks/1/checklist/11", 400, {"detail": "Item is already first", "blocked": "move"})

        with self.assertRaises(ChecklistBoundaryError):
            self.checklist.move_up(11)

        self.assertEqual(self.ids(), [10, 11, 12])

    def test_other_failures(self):
        self.transport.on("PATCH", "/tasks/1/checklist/11", 500, {"detail": "down"})

        with self.assertLogs("taskboard.checklist", level="ERROR"):
            self.assertFalse(self.checklist.outdent(11))

        self.assertEqual(self.checklist.items()[1].level, 1)

    def test_can_helpers(self):
        self.assertFalse(self.checklist.can_outdent(10))
        self.assertTrue(self.checklist.can_outdent(11))
        self.assertTrue(self.checklist.can_indent(12))
        self.assertFalse(self.checklist.can_move_up(10))
        self.assertTrue(self.checklist.can_move_down(10))
        self.assertFalse(self.checklist.can_move_down(12))
