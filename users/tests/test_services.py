import io

from django.contrib.auth.models import Group
from django.core.management import call_command
from django.test import TestCase, override_settings

from assessments.models import ExamAttempt
from cores.exceptions import ValidationError
from exams.models import Exam, Question
from users.accounts import AccountService
from users.models import Student, User
from users.services import (
    base_username,
    delete_student,
    provision_student,
    provision_students_from_csv,
)


class ProvisionStudentTests(TestCase):
    def test_credentials_are_derived_from_name_and_id(self):
        provisioned = provision_student("Jane  Doe", "SCH/2024/0042", gender="F", department="Science")

        self.assertEqual(provisioned.username, "JaneDoe0042")
        self.assertEqual(provisioned.password, "JaneDoe0042@HEMS")
        user = provisioned.student.user
        self.assertTrue(user.check_password("JaneDoe0042@HEMS"))
        self.assertTrue(user.must_change_password)
        self.assertEqual(user.role, User.Role.STUDENT)
        self.assertTrue(user.groups.filter(name="Student").exists())
        self.assertEqual(provisioned.student.department, "Science")

    @override_settings(STUDENT_PASSWORD_SUFFIX="EXAM")
    def test_password_suffix_is_configurable(self):
        self.assertEqual(provision_student("Li Wei", "77").password, "LiWei77@EXAM")

    def test_short_id_and_slashes(self):
        self.assertEqual(base_username("Bo Ek", "12"), "BoEk12")
        self.assertEqual(base_username("Bo Ek", "A/12"), "BoEkA12")

    def test_colliding_usernames_get_a_suffix(self):
        first = provision_student("Jane Doe", "0042")
        second = provision_student("Jane Doe", "X0042")
        third = provision_student("jane doe", "Y0042")

        self.assertEqual(first.username, "JaneDoe0042")
        self.assertEqual(second.username, "JaneDoe00422")
        self.assertEqual(third.username, "janedoe00423")

    def test_name_and_id_are_required(self):
        with self.assertRaises(ValidationError):
            provision_student("", "0042")
        with self.assertRaises(ValidationError):
            provision_student("Jane Doe", "  ")
        self.assertEqual(Student.objects.count(), 0)

    def test_rejected_account_leaves_nothing_behind(self):
        with override_settings(AUTH_PASSWORD_VALIDATORS=[{
            "NAME": "django.contrib.auth.password_validation.MinimumLengthValidator",
            "OPTIONS": {"min_length": 50},
        }]):
            with self.assertRaises(ValidationError):
                provision_student("Jane Doe", "0042")
        self.assertFalse(User.objects.filter(username="JaneDoe0042").exists())


class BulkProvisionTests(TestCase):
    def test_rows_are_provisioned_and_failures_reported(self):
        csv_file = io.BytesIO(
            "FullName,IdNumber,Gender,Department\n"
            "Ada Lovelace,STU/1815,F,Maths\n"
            ",STU/0000,,\n"
            "Charles Babbage,,M,Engineering\n"
            "Mary Somerville,STU/1780,F,\n".encode("utf-8")
        )

        result = provision_students_from_csv(csv_file)

        self.assertEqual([p.username for p in result.created], ["AdaLovelace1815", "MarySomerville1780"])
        self.assertEqual(result.skipped, 1)
        self.assertEqual(len(result.errors), 1)
        self.assertTrue(result.errors[0].startswith("Row 4:"))
        self.assertEqual(Student.objects.get(full_name="Ada Lovelace").department, "Maths")

    def test_missing_name_column(self):
        with self.assertRaises(ValidationError):
            provision_students_from_csv(io.BytesIO(b"Name,IdNumber\nAda,1\n"))


class DeleteStudentTests(TestCase):
    def test_student_without_attempts_is_removed_with_account(self):
        student = provision_student("Ada Lovelace", "STU/1815").student
        user_id = student.user_id

        delete_student(student)

        self.assertFalse(Student.objects.exists())
        self.assertFalse(User.objects.filter(pk=user_id).exists())

    def test_student_with_attempts_is_kept(self):
        student = provision_student("Ada Lovelace", "STU/1815").student
        exam = Exam.objects.create(title="Maths", academic_year=2024, duration_minutes=10)
        question = Question.objects.create(exam=exam, text="1 + 1?")
        ExamAttempt.objects.create(student=student, exam=exam, question=question)

        with self.assertRaises(ValidationError):
            delete_student(student)
        self.assertTrue(Student.objects.filter(pk=student.pk).exists())


class AccountServiceTests(TestCase):
    def setUp(self):
        self.accounts = AccountService()

    def test_duplicate_username_is_reported(self):
        self.accounts.create_account("ada", "secret-pass")

        result = self.accounts.create_account("ADA", "secret-pass")

        self.assertFalse(result.succeeded)
        self.assertIn("already taken", result.errors[0])

    def test_change_password_clears_flag(self):
        user = self.accounts.create_account("ada", "secret-pass").user
        self.accounts.require_password_change(user)

        self.assertFalse(self.accounts.change_password(user, "wrong", "new-secret").succeeded)
        result = self.accounts.change_password(user, "secret-pass", "new-secret")

        self.assertTrue(result.succeeded)
        user.refresh_from_db()
        self.assertFalse(user.must_change_password)
        self.assertTrue(user.check_password("new-secret"))

    def test_add_to_role(self):
        user = self.accounts.create_account("boss", "secret-pass").user
        self.accounts.add_to_role(user, User.Role.COORDINATOR)
        self.assertTrue(self.accounts.is_in_role(user, User.Role.COORDINATOR))
        self.assertTrue(user.groups.filter(name="Coordinator").exists())


class BootstrapPortalTests(TestCase):
    def test_groups_exist_after_migrate(self):
        self.assertTrue(Group.objects.filter(name="Coordinator").exists())
        students = Group.objects.get(name="Student")
        self.assertTrue(students.permissions.filter(codename="view_exam").exists())

    @override_settings(PORTAL_COORDINATOR_USERNAME="admin", PORTAL_COORDINATOR_PASSWORD="admin-pass")
    def test_command_creates_initial_coordinator_once(self):
        out = io.StringIO()
        call_command("bootstrap_portal", stdout=out)
        call_command("bootstrap_portal", stdout=out)

        coordinator = User.objects.get(username="admin")
        self.assertEqual(coordinator.role, User.Role.COORDINATOR)
        self.assertTrue(coordinator.is_coordinator)
        self.assertTrue(coordinator.check_password("admin-pass"))
        self.assertIn("Roles reconciled.", out.getvalue())
