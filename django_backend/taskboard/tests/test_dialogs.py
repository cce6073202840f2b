from apps.tasks.domain.transitions import ACKNOWLEDGE_COMMENT, START_COMMENT
from taskboard import dialogs
from taskboard.dialogs import StatusChangeFlow
from taskboard.errors import ActionNotAllowed, ValidationFailed

from .fakes import task_data
from .test_store import ASSIGNEE, CREATOR, OUTSIDER, StoreTestCase


class StatusChangeFlowTest(StoreTestCase):
    """Test the status change dialog flow"""

    user_id = ASSIGNEE

    def setUp(self):
        super().setUp()
        self.serve(
            task_data(1, status="new", creator=CREATOR, assignees=(ASSIGNEE,)),
            task_data(2, status="in_progress", creator=CREATOR, assignees=(ASSIGNEE,)),
        )
        self.transport.on("POST", "/tasks/1/comments", 201, lambda body: {"id": 50})
        self.transport.on("POST", "/tasks/2/comments", 201, lambda body: {"id": 51})
        self.transport.on("PUT", "/tasks/1/status", payload=lambda body: self.server[1])
        self.transport.on("PUT", "/tasks/2/status", payload=lambda body: self.server[2])

    def test_acknowledge_posts_comment_then_status(self):
        flow = StatusChangeFlow(self.store, 1)

        self.assertEqual(flow.trigger("acknowledge"), dialogs.DONE)

        self.assertEqual(flow.trail, [dialogs.IDLE, dialogs.WRITING_COMMENT, dialogs.WRITING_STATUS, dialogs.DONE])
        self.assertEqual(
            self.transport.writes,
            [
                ("POST", "/tasks/1/comments", {"text": ACKNOWLEDGE_COMMENT, "is_result": False}),
                ("PUT", "/tasks/1/status", {"status": "acknowledged"}),
            ],
        )
        self.assertTrue(flow.finished)

    def test_director_starts_directly(self):
        self.act_as(ASSIGNEE, role="director")

        StatusChangeFlow(self.store, 1).trigger("start")

        self.assertEqual(self.transport.writes[0][2]["text"], START_COMMENT)
        self.assertEqual(self.transport.writes[1][2], {"status": "in_progress"})

    def test_plain_action_skips_the_comment(self):
        flow = StatusChangeFlow(self.store, 2)

        flow.trigger("pause")

        self.assertEqual(flow.trail, [dialogs.IDLE, dialogs.WRITING_STATUS, dialogs.DONE])
        self.assertEqual(self.transport.writes, [("PUT", "/tasks/2/status", {"status": "paused"})])

    def test_completion_waits_for_result(self):
        flow = StatusChangeFlow(self.store, 2)

        self.assertEqual(flow.trigger("complete"), dialogs.AWAITING_RESULT)
        self.assertEqual(self.transport.writes, [])

        flow.submit_result("Report delivered", score=8, actual_hours="3.5")

        self.assertEqual(flow.state, dialogs.DONE)
        comment, change = self.transport.writes
        self.assertEqual(comment[2], {"text": "Report delivered", "is_result": True, "score": 8})
        self.assertEqual(change[2], {"status": "completed", "result": "Report delivered", "actual_hours": "3.5"})

    def test_result_validation(self):
        flow = StatusChangeFlow(self.store, 2)
        flow.trigger("complete")

        with self.assertRaises(ValidationFailed) as ctx:
            flow.submit_result(" ", score=11)

        self.assertEqual(set(ctx.exception.errors), {"result", "score"})
        self.assertEqual(flow.state, dialogs.AWAITING_RESULT)

    def test_cancel(self):
        flow = StatusChangeFlow(self.store, 2)
        flow.trigger("complete")

        self.assertEqual(flow.cancel(), dialogs.CANCELLED)
        with self.assertRaises(RuntimeError):
            flow.submit_result("late")
        self.assertEqual(self.transport.writes, [])

    def test_unavailable_action(self):
        self.act_as(OUTSIDER)

        with self.assertRaises(ActionNotAllowed):
            StatusChangeFlow(self.store, 1).trigger("acknowledge")

        self.assertEqual(self.transport.calls, [])

    def test_failed_comment_stops_the_flow(self):
        self.transport.on("POST", "/tasks/1/comments", 500, {"detail": "down"})
        flow = StatusChangeFlow(self.store, 1)

        with self.assertLogs("taskboard.store", level="ERROR"):
            self.assertEqual(flow.trigger("acknowledge"), dialogs.FAILED)

        self.assertEqual(self.transport.calls_to("PUT"), [])

    def test_failed_status_change_keeps_the_comment(self):
        self.transport.on("PUT", "/tasks/1/status", 400, {"detail": "conflict"})
        flow = StatusChangeFlow(self.store, 1)

        with self.assertLogs("taskboard.store", level="ERROR"):
            self.assertEqual(flow.trigger("acknowledge"), dialogs.FAILED)

        self.assertEqual(len(self.transport.calls_to("POST", "/tasks/1/comments")), 1)
        self.assertEqual(self.store.get(1).status, "new")

    def test_flow_starts_once(self):
        flow = StatusChangeFlow(self.store, 2)
        flow.trigger("pause")

        with self.assertRaises(RuntimeError):
            flow.trigger("pause")
