from django.test import TestCase

from apps.common.events import EventPublisherFactory
from apps.tasks.domain import ChecklistBoundaryError
from apps.tasks.domain.transitions import ACKNOWLEDGE_COMMENT
from apps.tasks.models import ChecklistItem, Comment, HistoryActionType, TaskStatus
from apps.tasks.tests.factories import make_task, make_user
from apps.users.models import UserRole
from taskboard import dialogs
from taskboard.context import AppContext
from taskboard.debounce import Debouncer
from taskboard.errors import ActionNotAllowed

from .fakes import APIClientTransport, ManualTimer


class ClientAgainstApiTest(TestCase):
    """Test the client core against the real API"""

    def setUp(self):
        EventPublisherFactory.reset_publisher()
        ManualTimer.reset()
        self.head = make_user("head", role=UserRole.DEPARTMENT_HEAD)
        self.alice = make_user("alice")
        self.bob = make_user("bob")
        self.task = make_task(self.head, assignees=[self.alice], observers=[self.bob])
        self.transport = APIClientTransport()
        self.context = AppContext.create(self.transport, debouncer=Debouncer(0.3, timer_factory=ManualTimer))

    def login(self, user):
        self.context.login_as(user.id)
        self.context.bootstrap()
        self.transport.calls.clear()

    def test_bootstrap(self):
        self.login(self.alice)

        self.assertEqual(self.context.current_user.username, "alice")
        self.assertEqual([t.id for t in self.context.store.tasks()], [self.task.id])
        self.assertEqual(len(self.context.users), 3)

    def test_forbidden_edits_are_never_sent(self):
        self.login(self.alice)
        store = self.context.store

        with self.assertRaises(ActionNotAllowed):
            store.update_fields(self.task.id, title="Changed by assignee")
        with self.assertRaises(ActionNotAllowed):
            store.soft_delete(self.task.id)

        self.assertEqual(self.transport.writes, [])
        self.task.refresh_from_db()
        self.assertEqual(self.task.title, "Prepare report")

    def test_acknowledge(self):
        self.login(self.alice)

        state = self.context.status_flow(self.task.id).trigger("acknowledge")

        self.assertEqual(state, dialogs.DONE)
        self.task.refresh_from_db()
        self.assertEqual(self.task.status, TaskStatus.ACKNOWLEDGED)
        self.assertTrue(Comment.objects.filter(task=self.task, text=ACKNOWLEDGE_COMMENT).exists())
        self.assertEqual(self.task.history.filter(action_type=HistoryActionType.STATUS_CHANGED).count(), 1)
        self.assertEqual(self.context.store.get(self.task.id).status, TaskStatus.ACKNOWLEDGED)

    def test_creator_edit_round_trip(self):
        self.login(self.head)

        self.context.store.set_tags(self.task.id, ["client", "q3"])
        self.context.store.flush()

        self.task.refresh_from_db()
        self.assertEqual(sorted(self.task.tag_names), ["client", "q3"])
        self.assertEqual(self.context.store.get(self.task.id).tags, ["client", "q3"])

    def test_checklist(self):
        first = ChecklistItem.objects.create(task=self.task, text="Collect data", item_order=0)
        second = ChecklistItem.objects.create(task=self.task, text="Check data", item_order=1)
        self.login(self.alice)
        self.context.store.fetch_task(self.task.id)
        checklist = self.context.store.checklist(self.task.id)

        with self.assertRaises(ChecklistBoundaryError):
            checklist.outdent(first.id)
        self.assertEqual(self.transport.writes, [])

        self.assertTrue(checklist.indent(second.id))

        second.refresh_from_db()
        self.assertEqual((second.level, second.parent_id), (1, first.id))
        self.assertEqual(checklist.items()[1].parent_id, first.id)

    def test_trash_round_trip(self):
        self.login(self.head)
        store = self.context.store

        self.assertTrue(store.soft_delete(self.task.id))

        self.task.refresh_from_db()
        self.assertTrue(self.task.is_deleted)
        self.assertEqual(store.available_actions(self.task.id), [])
        with self.assertRaises(ActionNotAllowed):
            store.add_comment(self.task.id, "Too late")

        self.assertTrue(store.restore(self.task.id))
        self.task.refresh_from_db()
        self.assertFalse(self.task.is_deleted)
