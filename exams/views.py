import logging

from django.db.models import ProtectedError
from rest_framework import filters, mixins, status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response

from cores.exceptions import ConcurrencyConflict, NotFound, PortalError, error_response
from cores.models import AuditLog
from users.permissions import IsCoordinator
from .importer import QuestionImporter
from .models import Exam, Question, Choice
from .serializers import (
    ChoiceSerializer,
    ExamDetailSerializer,
    ExamImportSerializer,
    ExamSerializer,
    QuestionSerializer,
)

logger = logging.getLogger(__name__)


class AuditedModelViewSet(viewsets.ModelViewSet):
    """
    Coordinator CRUD with audit entries. Updates that lose a race with a
    delete come back as 404 instead of silently re-creating the row.
    """
    permission_classes = [IsCoordinator]

    def perform_create(self, serializer):
        instance = serializer.save()
        AuditLog.record(self.request.user, 'CREATE', instance, f"Created {instance}")

    def update(self, request, *args, **kwargs):
        try:
            return super().update(request, *args, **kwargs)
        except PortalError as e:
            return error_response(e)

    def perform_update(self, serializer):
        instance = serializer.instance
        try:
            instance = serializer.save()
        except ConcurrencyConflict:
            if not type(instance).objects.filter(pk=instance.pk).exists():
                raise NotFound(f"{type(instance).__name__} {instance.pk} no longer exists.")
            raise
        AuditLog.record(self.request.user, 'UPDATE', instance, f"Updated {instance}")

    def perform_destroy(self, instance):
        description = str(instance)
        target = type(instance).__name__
        instance.delete()
        AuditLog.record(self.request.user, 'DELETE', target, f"Deleted {description}")


class ExamViewSet(AuditedModelViewSet):
    # Enable search on title
    filter_backends = [filters.SearchFilter]
    search_fields = ['title', 'description']

    def get_queryset(self):
        queryset = Exam.objects.all()
        if self.action == 'retrieve':
            # One eager projection: exam -> questions -> choices
            queryset = queryset.prefetch_related('questions__choices')
        return queryset

    def get_serializer_class(self):
        if self.action == 'retrieve':
            return ExamDetailSerializer
        return ExamSerializer

    def destroy(self, request, *args, **kwargs):
        try:
            return super().destroy(request, *args, **kwargs)
        except ProtectedError:
            return Response(
                {"error": "Cannot delete an exam that students have already attempted."},
                status=status.HTTP_400_BAD_REQUEST,
            )

    @action(detail=True, methods=['post'])
    def publish(self, request, pk=None):
        """Publish the exam; the access code is generated on first publish only."""
        exam = self.get_object()
        exam.publish()
        AuditLog.record(request.user, 'PUBLISH', exam, f"Published with access code {exam.access_code}")
        logger.info(f"Exam {exam.pk} published")
        return Response(ExamSerializer(exam).data)

    @action(detail=True, methods=['post'])
    def unpublish(self, request, pk=None):
        exam = self.get_object()
        exam.unpublish()
        AuditLog.record(request.user, 'UNPUBLISH', exam, "Returned to draft")
        return Response(ExamSerializer(exam).data)

    @action(detail=True, methods=['post'], url_path='import',
            parser_classes=[MultiPartParser, FormParser])
    def import_questions(self, request, pk=None):
        """
        Bulk import questions from a zip archive (manifest.csv + images)
        or a bare manifest CSV. All rows are imported or none.
        """
        exam = self.get_object()
        upload = ExamImportSerializer(data=request.data)
        if not upload.is_valid():
            return Response({"error": "No file uploaded"}, status=status.HTTP_400_BAD_REQUEST)

        try:
            summary = QuestionImporter(exam).run(upload.validated_data['file'])
        except PortalError as e:
            return error_response(e)

        AuditLog.record(
            request.user, 'IMPORT', exam,
            f"Imported {summary.question_count} questions ({summary.choice_count} choices)",
        )
        return Response({
            "status": f"Successfully imported {summary.question_count} questions",
            "questions": summary.question_count,
            "choices": summary.choice_count,
            "images": summary.images,
        }, status=status.HTTP_201_CREATED)


class QuestionViewSet(AuditedModelViewSet):
    serializer_class = QuestionSerializer

    filter_backends = [filters.SearchFilter]
    search_fields = ['text']

    def get_queryset(self):
        queryset = Question.objects.select_related('exam').prefetch_related('choices')
        # Filter by Exam if provided ?exam_id=1
        exam_id = self.request.query_params.get('exam_id')
        if exam_id:
            queryset = queryset.filter(exam_id=exam_id)
        return queryset

    def destroy(self, request, *args, **kwargs):
        try:
            return super().destroy(request, *args, **kwargs)
        except ProtectedError:
            return Response(
                {"error": "Cannot delete a question that students have already answered."},
                status=status.HTTP_400_BAD_REQUEST,
            )

    @action(detail=True, methods=['post'])
    def choices(self, request, pk=None):
        """
        Adds a choice to this question.
        Payload: { "choice_text": "Paris", "is_answer": true }
        """
        question = self.get_object()
        serializer = ChoiceSerializer(data=request.data, context={'question': question})
        serializer.is_valid(raise_exception=True)
        choice = serializer.save(question=question)
        AuditLog.record(request.user, 'CREATE', choice, f"Added choice to question {question.pk}")
        return Response(ChoiceSerializer(choice).data, status=status.HTTP_201_CREATED)


class ChoiceViewSet(mixins.RetrieveModelMixin, mixins.DestroyModelMixin, viewsets.GenericViewSet):
    queryset = Choice.objects.all()
    serializer_class = ChoiceSerializer
    permission_classes = [IsCoordinator]

    def perform_destroy(self, instance):
        question_id = instance.question_id
        instance.delete()
        AuditLog.record(self.request.user, 'DELETE', 'Choice', f"Deleted choice from question {question_id}")

    def destroy(self, request, *args, **kwargs):
        try:
            return super().destroy(request, *args, **kwargs)
        except ProtectedError:
            return Response(
                {"error": "Cannot delete a choice that students have already picked."},
                status=status.HTTP_400_BAD_REQUEST,
            )
