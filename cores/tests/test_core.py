from decimal import Decimal

from django.contrib.auth.models import AnonymousUser
from django.core.cache import cache
from django.test import TestCase
from rest_framework import status
from rest_framework.test import APIClient

from cores.exceptions import ImportAborted, UploadError, ValidationError, error_response
from cores.models import AuditLog, PlatformSetting
from exams.models import Exam
from users.models import User
from users.services import provision_student


class PlatformSettingTests(TestCase):
    def setUp(self):
        cache.clear()

    def test_load_creates_singleton_with_defaults(self):
        settings = PlatformSetting.load()
        self.assertEqual(settings.pk, 1)
        self.assertEqual(settings.default_exam_duration, 60)
        self.assertEqual(settings.default_mark_weight, Decimal("1.00"))

    def test_save_always_targets_the_singleton(self):
        PlatformSetting(default_exam_duration=30).save()
        self.assertEqual(PlatformSetting.objects.count(), 1)
        self.assertEqual(PlatformSetting.load().default_exam_duration, 30)


class AuditLogTests(TestCase):
    def test_record_instance_target(self):
        user = User.objects.create_user(username="coord", password="coord-pass", role=User.Role.COORDINATOR)
        exam = Exam.objects.create(title="Art", academic_year=2024, duration_minutes=10)

        entry = AuditLog.record(user, "CREATE", exam, "Created Art")

        self.assertEqual(entry.target_model, "Exam")
        self.assertEqual(entry.target_object_id, str(exam.pk))
        self.assertEqual(entry.actor, user)

    def test_record_anonymous_actor_and_string_target(self):
        entry = AuditLog.record(AnonymousUser(), "SETTINGS", "PlatformSetting")
        self.assertIsNone(entry.actor)
        self.assertIsNone(entry.target_object_id)


class ErrorTranslationTests(TestCase):
    def test_import_aborted_takes_upload_status(self):
        aborted = ImportAborted("Import aborted", cause=UploadError("down"))
        self.assertEqual(aborted.status_code, 502)
        self.assertEqual(ImportAborted("Import aborted", cause=ValidationError("bad")).status_code, 400)

    def test_error_response_payload(self):
        response = error_response(ValidationError("Nope"))
        self.assertEqual(response.status_code, 400)
        self.assertEqual(response.data, {"error": "Nope"})


class CoreApiTests(TestCase):
    def setUp(self):
        cache.clear()
        self.coordinator = User.objects.create_user(
            username="coord", password="coord-pass", role=User.Role.COORDINATOR
        )
        self.client = APIClient()
        self.client.force_authenticate(self.coordinator)

    def test_update_settings(self):
        response = self.client.put("/api/core/settings/", {"default_exam_duration": 75}, format="json")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(PlatformSetting.load().default_exam_duration, 75)
        self.assertTrue(AuditLog.objects.filter(action="SETTINGS").exists())

    def test_settings_payload(self):
        response = self.client.get("/api/core/settings/")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual(
            set(response.data), {"default_exam_duration", "default_mark_weight", "access_code_length"}
        )

    def test_audit_log_filters(self):
        AuditLog.record(self.coordinator, "PUBLISH", "Exam")
        AuditLog.record(self.coordinator, "DELETE", "Choice")

        response = self.client.get("/api/core/audit-logs/?action=PUBLISH")

        self.assertEqual(response.status_code, status.HTTP_200_OK)
        self.assertEqual([e["action"] for e in response.data], ["PUBLISH"])

    def test_students_cannot_read_settings(self):
        client = APIClient()
        client.force_authenticate(provision_student("Ada Lovelace", "STU/1815").student.user)
        self.assertEqual(client.get("/api/core/settings/").status_code, status.HTTP_403_FORBIDDEN)

    def test_invalid_settings_are_rejected(self):
        response = self.client.put("/api/core/settings/", {"default_mark_weight": "0"}, format="json")
        self.assertEqual(response.status_code, status.HTTP_400_BAD_REQUEST)
        self.assertIn("default_mark_weight", response.data)

    def test_access_code_length_applies_to_new_codes(self):
        self.client.put("/api/core/settings/", {"access_code_length": 8}, format="json")
        exam = Exam.objects.create(title="Music", academic_year=2024, duration_minutes=10)

        exam.publish()

        self.assertEqual(len(exam.access_code), 8)

    def test_audit_log_detail_and_target_filter(self):
        entry = AuditLog.record(self.coordinator, "UPDATE", "Exam")
        AuditLog.objects.filter(pk=entry.pk).update(target_object_id="7")

        listing = self.client.get("/api/core/audit-logs/?target_id=7")
        detail = self.client.get(f"/api/core/audit-logs/{entry.pk}/")

        self.assertEqual([e["id"] for e in listing.data], [entry.pk])
        self.assertEqual(detail.data["actor_username"], "coord")
        self.assertEqual(detail.data["action_label"], "Update")
