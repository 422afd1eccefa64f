# exams/models.py
from decimal import Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models.functions import Lower, Trim
from django.utils.crypto import get_random_string

from cores.models import PlatformSetting

ACCESS_CODE_ALPHABET = "ABCDEFGHJKLMNPQRSTUVWXYZ23456789"


def normalize_text(text):
    """Comparison key for question and choice text."""
    return (text or "").strip().lower()


class NormalizedTextQuerySet(models.QuerySet):
    def with_text(self, text):
        """Rows whose ``text`` matches ignoring case and surrounding whitespace."""
        return self.annotate(normalized_text=Lower(Trim("text"))).filter(
            normalized_text=normalize_text(text)
        )


class Exam(models.Model):
    class Status(models.TextChoices):
        DRAFT = "draft", "Draft"
        PUBLISHED = "published", "Published"

    title = models.CharField(max_length=255)
    academic_year = models.PositiveIntegerField(
        validators=[MinValueValidator(2018), MaxValueValidator(2100)]
    )
    duration_minutes = models.PositiveIntegerField()
    default_mark = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal("1.00"))
    description = models.TextField(blank=True)

    status = models.CharField(max_length=20, choices=Status.choices, default=Status.DRAFT)
    # Assigned on first publish and never regenerated
    access_code = models.CharField(max_length=16, unique=True, null=True, blank=True)

    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['-academic_year', '-created_at']

    def __str__(self):
        return f"{self.title} ({self.academic_year})"

    def publish(self):
        if not self.access_code:
            self.access_code = self.generate_access_code()
        self.status = self.Status.PUBLISHED
        self.save(update_fields=['access_code', 'status'])

    def unpublish(self):
        self.status = self.Status.DRAFT
        self.save(update_fields=['status'])

    @classmethod
    def generate_access_code(cls):
        length = PlatformSetting.load().access_code_length
        while True:
            code = get_random_string(length, ACCESS_CODE_ALPHABET)
            if not cls.objects.filter(access_code=code).exists():
                return code


class Question(models.Model):
    exam = models.ForeignKey(Exam, related_name='questions', on_delete=models.CASCADE)
    text = models.TextField()
    mark_weight = models.DecimalField(max_digits=6, decimal_places=2, default=Decimal("1.00"))
    # Storage URL or relative path returned by the image store
    image_reference = models.CharField(max_length=500, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    objects = NormalizedTextQuerySet.as_manager()

    class Meta:
        # Creation order is the exam's question order
        ordering = ['id']

    def __str__(self):
        return f"{self.text[:50]}..."


class Choice(models.Model):
    question = models.ForeignKey(Question, related_name='choices', on_delete=models.CASCADE)
    text = models.CharField(max_length=500)
    is_answer = models.BooleanField(default=False)

    objects = NormalizedTextQuerySet.as_manager()

    class Meta:
        ordering = ['id']

    def __str__(self):
        return self.text
