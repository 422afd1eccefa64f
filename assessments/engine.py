"""
Exam session engine.

A student's progress through an exam is derived from storage alone:

    not_started  no attempts and no StudentExam
    in_progress  at least one ExamAttempt
    completed    StudentExam.taken_exam is set (terminal)

Once an exam is completed for a student, every entry point answers with a
``RedirectToResult`` instead of handing out questions or accepting answers.
The exam duration is returned as a hint for the client-side timer; no
deadline is enforced here.
"""

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from django.db import transaction
from django.utils import timezone

from cores.exceptions import NotFound
from exams.models import Exam, Question, Choice
from .models import ExamAttempt, StudentExam

logger = logging.getLogger(__name__)

NOT_STARTED = "not_started"
IN_PROGRESS = "in_progress"
COMPLETED = "completed"


@dataclass
class RedirectToResult:
    exam_id: int


@dataclass
class QuestionView:
    exam: Exam
    question: Question
    index: int
    total: int
    choices: List[Choice]
    selected_choice_id: Optional[int] = None
    flagged: bool = False
    answered_indices: List[int] = field(default_factory=list)
    flagged_indices: List[int] = field(default_factory=list)

    @property
    def duration_minutes(self):
        return self.exam.duration_minutes


@dataclass
class SubmittedAnswer:
    attempt: ExamAttempt
    next_index: Optional[int] = None


@dataclass
class ExamResult:
    student_exam: StudentExam
    total_questions: int

    @property
    def score(self):
        return self.student_exam.score

    @property
    def percentage(self):
        if not self.total_questions:
            return 0.0
        return round(self.student_exam.score / self.total_questions * 100, 2)


class ExamSessionEngine:
    """Question flow, answer recording and scoring for one student."""

    def __init__(self, student):
        self.student = student

    # --- Lookups ---

    def get_exam(self, exam_id) -> Exam:
        try:
            return Exam.objects.get(pk=exam_id)
        except Exam.DoesNotExist:
            raise NotFound(f"Exam {exam_id} not found.")

    def is_taken(self, exam) -> bool:
        return StudentExam.objects.filter(student=self.student, exam=exam, taken_exam=True).exists()

    def session_state(self, exam) -> str:
        if self.is_taken(exam):
            return COMPLETED
        if ExamAttempt.objects.filter(student=self.student, exam=exam).exists():
            return IN_PROGRESS
        return NOT_STARTED

    # --- Exam entry ---

    def available_exams(self):
        """Published exams this student has not completed yet."""
        taken = StudentExam.objects.filter(student=self.student, taken_exam=True).values('exam_id')
        return Exam.objects.filter(status=Exam.Status.PUBLISHED).exclude(pk__in=taken)

    def enter_exam(self, access_code):
        code = (access_code or "").strip()
        exam = Exam.objects.filter(status=Exam.Status.PUBLISHED, access_code__iexact=code).first()
        if not code or exam is None:
            raise NotFound("No published exam matches this access code.")
        if self.is_taken(exam):
            return RedirectToResult(exam.pk)
        return exam

    # --- Question flow ---

    def fetch_question(self, exam_id, index):
        exam = self.get_exam(exam_id)
        if self.is_taken(exam):
            return RedirectToResult(exam.pk)

        questions = list(exam.questions.all())
        if index < 0 or index >= len(questions):
            # Walking off either end means the student is done
            return RedirectToResult(exam.pk)

        attempts = {
            attempt.question_id: attempt
            for attempt in ExamAttempt.objects.filter(student=self.student, exam=exam)
        }
        question = questions[index]
        current = attempts.get(question.pk)

        return QuestionView(
            exam=exam,
            question=question,
            index=index,
            total=len(questions),
            choices=list(question.choices.all()),
            selected_choice_id=current.choice_id if current else None,
            flagged=current.is_flagged if current else False,
            answered_indices=[
                i for i, q in enumerate(questions)
                if q.pk in attempts and attempts[q.pk].choice_id is not None
            ],
            flagged_indices=[
                i for i, q in enumerate(questions)
                if q.pk in attempts and attempts[q.pk].is_flagged
            ],
        )

    def submit_answer(self, exam_id, question_id, choice_id=None, flagged=False, next_index=None):
        exam = self.get_exam(exam_id)
        if self.is_taken(exam):
            return RedirectToResult(exam.pk)

        try:
            question = exam.questions.get(pk=question_id)
        except Question.DoesNotExist:
            raise NotFound(f"Question {question_id} not found in exam {exam.pk}.")

        # 0, missing or unknown ids record "no answer"
        choice = Choice.objects.filter(pk=choice_id).first() if choice_id else None

        attempt, created = ExamAttempt.objects.update_or_create(
            student=self.student,
            exam=exam,
            question=question,
            defaults={
                'choice': choice,
                'is_correct': bool(choice and choice.is_answer),
                'is_flagged': bool(flagged),
            },
        )
        return SubmittedAnswer(attempt=attempt, next_index=next_index)

    # --- Results ---

    def finalize_result(self, exam_id) -> ExamResult:
        """Score the exam and mark it taken. Safe to call more than once."""
        exam = self.get_exam(exam_id)
        with transaction.atomic():
            score = ExamAttempt.objects.filter(student=self.student, exam=exam, is_correct=True).count()
            now = timezone.now()
            result, created = StudentExam.objects.select_for_update().get_or_create(
                student=self.student,
                exam=exam,
                defaults={'started_at': now, 'ended_at': now, 'taken_exam': True, 'score': score},
            )
            if not created:
                result.score = score
                result.ended_at = now
                result.taken_exam = True
                result.save(update_fields=['score', 'ended_at', 'taken_exam'])

        total = exam.questions.count()
        logger.info(f"Finalized exam {exam.pk} for student {self.student.pk}: {score}/{total}")
        return ExamResult(student_exam=result, total_questions=total)

    def result(self, exam_id) -> ExamResult:
        """The stored result, finalizing first if the exam is not taken yet."""
        exam = self.get_exam(exam_id)
        stored = StudentExam.objects.filter(student=self.student, exam=exam, taken_exam=True).first()
        if stored is None:
            return self.finalize_result(exam.pk)
        return ExamResult(student_exam=stored, total_questions=exam.questions.count())

    def history(self):
        return (
            StudentExam.objects.filter(student=self.student, taken_exam=True)
            .select_related('exam')
            .order_by('-ended_at')
        )
