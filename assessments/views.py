import logging

from django.urls import reverse
from rest_framework import generics, status, views
from rest_framework.response import Response

from cores.exceptions import PortalError, error_response
from users.permissions import IsStudent
from .engine import ExamSessionEngine, RedirectToResult
from .serializers import (
    AnswerSubmitSerializer,
    AvailableExamSerializer,
    EnterExamSerializer,
    ExamAttemptSerializer,
    ExamResultSerializer,
    QuestionViewSerializer,
    StudentExamSerializer,
)

logger = logging.getLogger(__name__)


def redirect_to_result(request, redirect):
    """303 pointing the client at the result endpoint of a finished exam."""
    logger.info(f"Redirecting user {request.user.pk} to the result of exam {redirect.exam_id}")
    result_url = request.build_absolute_uri(
        reverse('student-exam-result', kwargs={'exam_id': redirect.exam_id})
    )
    response = Response(
        {"redirect": "result", "result_url": result_url},
        status=status.HTTP_303_SEE_OTHER,
    )
    response['Location'] = result_url
    return response


class StudentEngineMixin:
    permission_classes = [IsStudent]

    def get_engine(self):
        return ExamSessionEngine(self.request.user.student_profile)


# --- STUDENT VIEWS ---

class AvailableExamsView(StudentEngineMixin, generics.ListAPIView):
    """Published exams the student has not taken yet."""
    serializer_class = AvailableExamSerializer

    def get_queryset(self):
        return self.get_engine().available_exams()


class EnterExamView(StudentEngineMixin, views.APIView):
    """
    Student enters an exam with its access code.
    Returns the exam and the URL of its first question.
    """

    def post(self, request):
        serializer = EnterExamSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        engine = self.get_engine()
        try:
            outcome = engine.enter_exam(serializer.validated_data['access_code'])
        except PortalError as e:
            return error_response(e)

        if isinstance(outcome, RedirectToResult):
            return redirect_to_result(request, outcome)

        data = AvailableExamSerializer(outcome).data
        data['state'] = engine.session_state(outcome)
        data['first_question_url'] = request.build_absolute_uri(
            reverse('student-exam-question', kwargs={'exam_id': outcome.pk, 'index': 0})
        )
        return Response(data)


class ExamQuestionView(StudentEngineMixin, views.APIView):
    def get(self, request, exam_id, index):
        try:
            outcome = self.get_engine().fetch_question(exam_id, index)
        except PortalError as e:
            return error_response(e)

        if isinstance(outcome, RedirectToResult):
            return redirect_to_result(request, outcome)
        return Response(QuestionViewSerializer(outcome).data)


class SubmitAnswerView(StudentEngineMixin, views.APIView):
    """
    Records (or replaces) the answer to one question.
    Payload: { "question_id": 3, "choice_id": 9, "flagged": false, "next_index": 1 }
    """

    def post(self, request, exam_id):
        serializer = AnswerSubmitSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        try:
            outcome = self.get_engine().submit_answer(exam_id, **serializer.validated_data)
        except PortalError as e:
            return error_response(e)

        if isinstance(outcome, RedirectToResult):
            return redirect_to_result(request, outcome)
        return Response({
            "attempt": ExamAttemptSerializer(outcome.attempt).data,
            "next_index": outcome.next_index,
        })


class ExamResultView(StudentEngineMixin, views.APIView):
    """
    GET returns the result, scoring the exam first if it is still open.
    POST submits the exam and (re)computes the score.
    """

    def get(self, request, exam_id):
        try:
            result = self.get_engine().result(exam_id)
        except PortalError as e:
            return error_response(e)
        return Response(ExamResultSerializer(result).data)

    def post(self, request, exam_id):
        try:
            result = self.get_engine().finalize_result(exam_id)
        except PortalError as e:
            return error_response(e)
        return Response(ExamResultSerializer(result).data)


class StudentResultsView(StudentEngineMixin, generics.ListAPIView):
    """All finished exams of the logged-in student, newest first."""
    serializer_class = StudentExamSerializer

    def get_queryset(self):
        return self.get_engine().history()
