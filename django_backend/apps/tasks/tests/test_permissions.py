from types import SimpleNamespace

from django.test import SimpleTestCase

from apps.tasks.domain import Capabilities, compute_available_actions, evaluate_permissions
from apps.tasks.domain.constants import Role, Status
from apps.tasks.domain.permissions import can_manage_comment, can_manage_trash, can_view_task

from .factories import stub_task, stub_user

CREATOR, ASSIGNEE, OBSERVER, OUTSIDER = 1, 2, 3, 4


class EvaluatePermissionsTest(SimpleTestCase):
    """Test the capability flags per role and relationship"""

    def setUp(self):
        self.task = stub_task(creator_id=CREATOR, assignee_ids=[ASSIGNEE], observer_ids=[OBSERVER])

    def test_creator(self):
        """Test that the creator can edit, comment and change status but not complete"""
        caps = evaluate_permissions(self.task, stub_user(CREATOR))

        self.assertTrue(caps.can_edit)
        self.assertTrue(caps.can_comment)
        self.assertTrue(caps.can_change_status)
        self.assertTrue(caps.can_edit_checklist)
        self.assertFalse(caps.can_complete_task)

    def test_assignee(self):
        """Test that an assignee performs the task but cannot edit its fields"""
        caps = evaluate_permissions(self.task, stub_user(ASSIGNEE))

        self.assertFalse(caps.can_edit)
        self.assertTrue(caps.can_comment)
        self.assertTrue(caps.can_change_status)
        self.assertTrue(caps.can_complete_task)
        self.assertTrue(caps.can_edit_checklist)

    def test_observer_can_only_comment(self):
        """Test that an observer may comment and nothing else"""
        caps = evaluate_permissions(self.task, stub_user(OBSERVER))

        self.assertEqual(caps, Capabilities(can_comment=True))

    def test_outsider_employee_gets_nothing(self):
        """Test that an unrelated employee has no capabilities"""
        caps = evaluate_permissions(self.task, stub_user(OUTSIDER))

        self.assertEqual(caps, Capabilities())

    def test_director(self):
        """Test that a director can do everything with any task"""
        caps = evaluate_permissions(self.task, stub_user(OUTSIDER, Role.DIRECTOR))

        self.assertTrue(all(caps.as_dict().values()))

    def test_department_head(self):
        """Test that a department head manages status but cannot edit fields or checklist"""
        caps = evaluate_permissions(self.task, stub_user(OUTSIDER, Role.DEPARTMENT_HEAD))

        self.assertTrue(caps.can_change_status)
        self.assertTrue(caps.can_complete_task)
        self.assertTrue(caps.can_comment)
        self.assertFalse(caps.can_edit)
        self.assertFalse(caps.can_edit_checklist)

    def test_no_user(self):
        """Test that an anonymous caller gets nothing"""
        self.assertEqual(evaluate_permissions(self.task, None), Capabilities())


class DeletedTaskTest(SimpleTestCase):
    """Test that a task in the trash grants nothing to anyone"""

    def test_every_flag_false_for_every_actor(self):
        """Test all roles and relationships against a deleted task"""
        task = stub_task(
            status=Status.IN_PROGRESS,
            creator_id=CREATOR,
            assignee_ids=[ASSIGNEE, CREATOR],
            observer_ids=[OBSERVER],
            is_deleted=True,
        )
        for user_id in (CREATOR, ASSIGNEE, OBSERVER, OUTSIDER):
            for role in (Role.DIRECTOR, Role.DEPARTMENT_HEAD, Role.EMPLOYEE, Role.ADMIN):
                with self.subTest(user_id=user_id, role=role):
                    user = stub_user(user_id, role)
                    caps = evaluate_permissions(task, user)
                    self.assertFalse(any(caps.as_dict().values()))
                    self.assertEqual(compute_available_actions(task, user), [])

    def test_deleted_for_each_status(self):
        """Test that no status offers actions once the task is deleted"""
        director = stub_user(ASSIGNEE, Role.DIRECTOR)
        for status in Status.ALL:
            with self.subTest(status=status):
                task = stub_task(status=status, creator_id=ASSIGNEE, assignee_ids=[ASSIGNEE], is_deleted=True)
                self.assertEqual(compute_available_actions(task, director), [])


class HelperPermissionsTest(SimpleTestCase):
    """Test comment, trash and visibility helpers"""

    def test_comment_author_or_director(self):
        """Test that only the author or a director manage a comment"""
        comment = SimpleNamespace(author_id=ASSIGNEE)

        self.assertTrue(can_manage_comment(comment, stub_user(ASSIGNEE)))
        self.assertTrue(can_manage_comment(comment, stub_user(OUTSIDER, Role.DIRECTOR)))
        self.assertFalse(can_manage_comment(comment, stub_user(OUTSIDER, Role.DEPARTMENT_HEAD)))
        self.assertFalse(can_manage_comment(comment, None))

    def test_trash_management(self):
        """Test that the creator and managers may move tasks to the trash"""
        task = stub_task(creator_id=CREATOR, assignee_ids=[ASSIGNEE])

        self.assertTrue(can_manage_trash(task, stub_user(CREATOR)))
        self.assertTrue(can_manage_trash(task, stub_user(OUTSIDER, Role.DEPARTMENT_HEAD)))
        self.assertFalse(can_manage_trash(task, stub_user(ASSIGNEE)))

    def test_visibility(self):
        """Test that employees only see tasks they take part in"""
        task = stub_task(creator_id=CREATOR, assignee_ids=[ASSIGNEE], observer_ids=[OBSERVER])

        for user_id in (CREATOR, ASSIGNEE, OBSERVER):
            self.assertTrue(can_view_task(task, stub_user(user_id)))
        self.assertFalse(can_view_task(task, stub_user(OUTSIDER)))
        self.assertTrue(can_view_task(task, stub_user(OUTSIDER, Role.ADMIN)))
