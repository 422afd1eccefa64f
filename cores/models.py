from decimal import Decimal

from django.db import models
from django.core.cache import cache
from django.core.validators import MaxValueValidator, MinValueValidator
from django.conf import settings


def default_access_code_length():
    return settings.EXAM_ACCESS_CODE_LENGTH


class PlatformSetting(models.Model):
    # --- Exam Defaults ---
    default_exam_duration = models.PositiveIntegerField(default=60, help_text="Default duration in minutes")
    default_mark_weight = models.DecimalField(
        max_digits=6, decimal_places=2, default=Decimal("1.00"),
        help_text="Mark weight given to new exams when none is supplied",
    )
    access_code_length = models.PositiveSmallIntegerField(
        default=default_access_code_length,
        validators=[MinValueValidator(4), MaxValueValidator(16)],
        help_text="Length of access codes generated when an exam is first published",
    )

    def save(self, *args, **kwargs):
        self.pk = 1  # Singleton pattern
        super().save(*args, **kwargs)
        cache.set('platform_settings', self)

    def delete(self, *args, **kwargs):
        pass

    @classmethod
    def load(cls):
        obj = cache.get('platform_settings')
        if obj is None:
            obj, created = cls.objects.get_or_create(pk=1)
            cache.set('platform_settings', obj)
        return obj

    def __str__(self):
        return "Platform Settings"


class AuditLog(models.Model):
    ACTION_CHOICES = [
        ('CREATE', 'Create'),
        ('UPDATE', 'Update'),
        ('DELETE', 'Delete'),
        ('PUBLISH', 'Exam Published'),
        ('UNPUBLISH', 'Exam Unpublished'),
        ('IMPORT', 'Questions Imported'),
        ('PROVISION', 'Student Provisioned'),
        ('PASSWORD', 'Password Changed'),
        ('SETTINGS', 'Settings Changed'),
    ]

    actor = models.ForeignKey(settings.AUTH_USER_MODEL, on_delete=models.SET_NULL, null=True, related_name='audit_logs')
    action = models.CharField(max_length=20, choices=ACTION_CHOICES)
    target_model = models.CharField(max_length=50, help_text="e.g., Exam, Question, Student")
    target_object_id = models.CharField(max_length=100, blank=True, null=True)
    details = models.TextField(blank=True, help_text="Description of changes")
    timestamp = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-timestamp']

    def __str__(self):
        return f"{self.actor} - {self.action} - {self.timestamp}"

    @classmethod
    def record(cls, actor, action, target, details=""):
        """Log ``action`` on a model instance (or a model name string)."""
        if isinstance(target, str):
            target_model, target_id = target, None
        else:
            target_model, target_id = type(target).__name__, str(target.pk)
        if actor is not None and not getattr(actor, 'is_authenticated', False):
            actor = None
        return cls.objects.create(
            actor=actor,
            action=action,
            target_model=target_model,
            target_object_id=target_id,
            details=details,
        )
