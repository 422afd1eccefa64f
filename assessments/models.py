# assessments/models.py
from django.db import models
from django.utils import timezone

from exams.models import Exam, Question, Choice
from users.models import Student


class ExamAttempt(models.Model):
    """A student's current answer to one question of one exam."""
    student = models.ForeignKey(Student, related_name='exam_attempts', on_delete=models.PROTECT)
    exam = models.ForeignKey(Exam, related_name='attempts', on_delete=models.PROTECT)
    question = models.ForeignKey(Question, related_name='attempts', on_delete=models.PROTECT)

    # Null when the student skipped or only flagged the question
    choice = models.ForeignKey(Choice, null=True, blank=True, on_delete=models.PROTECT)
    is_correct = models.BooleanField(default=False)
    is_flagged = models.BooleanField(default=False)

    started_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        unique_together = ('student', 'exam', 'question')
        ordering = ['question_id']

    def __str__(self):
        return f"{self.student} - Q{self.question_id}"


class StudentExam(models.Model):
    """Final result of a student for an exam; created on first finalization."""
    student = models.ForeignKey(Student, related_name='student_exams', on_delete=models.PROTECT)
    exam = models.ForeignKey(Exam, related_name='results', on_delete=models.PROTECT)
    started_at = models.DateTimeField(default=timezone.now)
    ended_at = models.DateTimeField(null=True, blank=True)
    taken_exam = models.BooleanField(default=False)
    score = models.FloatField(default=0)

    # Stored only; nothing enforces it yet
    banned = models.BooleanField(default=False)

    class Meta:
        unique_together = ('student', 'exam')

    def __str__(self):
        return f"{self.student} - {self.exam.title}"
