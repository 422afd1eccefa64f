import logging

from rest_framework import generics, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.parsers import MultiPartParser, FormParser
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from cores.exceptions import PortalError, error_response
from cores.models import AuditLog
from .accounts import AccountService
from .models import Student, User
from .permissions import IsCoordinator
from .serializers import (
    ChangePasswordSerializer,
    CustomTokenObtainPairSerializer,
    StudentCsvUploadSerializer,
    StudentSerializer,
    UserSerializer,
)
from .services import delete_student, provision_student, provision_students_from_csv

logger = logging.getLogger(__name__)


# --- 1. Student Management (Coordinator) ---
class StudentViewSet(viewsets.ModelViewSet):
    """
    Coordinator endpoint to manage students.
    Creating a student also creates its login account; the generated
    credentials are only returned in the create response.
    """
    serializer_class = StudentSerializer
    permission_classes = [IsCoordinator]

    def get_queryset(self):
        # Coordinator accounts never carry a student profile in the listing
        return Student.objects.select_related('user').exclude(user__role=User.Role.COORDINATOR)

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = dict(serializer.validated_data)
        try:
            provisioned = provision_student(data.pop('full_name'), data.pop('id_number'), **data)
        except PortalError as e:
            return error_response(e)

        AuditLog.record(request.user, 'PROVISION', provisioned.student,
                        f"Provisioned student {provisioned.student.full_name} as {provisioned.username}")
        payload = StudentSerializer(provisioned.student).data
        payload['password'] = provisioned.password
        return Response(payload, status=status.HTTP_201_CREATED)

    def perform_update(self, serializer):
        student = serializer.save()
        AuditLog.record(self.request.user, 'UPDATE', student, f"Updated student {student.full_name}")

    def destroy(self, request, *args, **kwargs):
        student = self.get_object()
        try:
            delete_student(student)
        except PortalError as e:
            return error_response(e)
        AuditLog.record(request.user, 'DELETE', 'Student', f"Deleted student {student.full_name}")
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=False, methods=['post'], url_path='bulk-upload',
            parser_classes=[MultiPartParser, FormParser])
    def bulk_upload(self, request):
        """
        Provision students from a CSV file.
        Expected CSV Header: FullName, IdNumber[, Gender, AcademicYear, Department]
        """
        upload = StudentCsvUploadSerializer(data=request.data)
        upload.is_valid(raise_exception=True)
        try:
            result = provision_students_from_csv(upload.validated_data['file'])
        except PortalError as e:
            return error_response(e)

        for provisioned in result.created:
            AuditLog.record(request.user, 'PROVISION', provisioned.student,
                            f"Bulk provisioned {provisioned.username}")
        return Response({
            "created": [
                {"id": p.student.id, "full_name": p.student.full_name,
                 "username": p.username, "password": p.password}
                for p in result.created
            ],
            "skipped": result.skipped,
            "errors": result.errors,
        }, status=status.HTTP_201_CREATED if result.created else status.HTTP_200_OK)


# --- 2. Authentication Views ---
class CustomLoginView(TokenObtainPairView):
    serializer_class = CustomTokenObtainPairSerializer
    permission_classes = [permissions.AllowAny]

class ChangePasswordView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = ChangePasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = AccountService().change_password(
            request.user,
            serializer.validated_data['old_password'],
            serializer.validated_data['new_password'],
        )
        if not result.succeeded:
            return Response({"error": "; ".join(result.errors)}, status=status.HTTP_400_BAD_REQUEST)

        logger.info(f"User {request.user.pk} changed their password")
        AuditLog.record(request.user, 'PASSWORD', request.user, "Password changed")
        return Response({"status": "Your password has been updated successfully!"})

class UserProfileView(generics.RetrieveAPIView):
    serializer_class = UserSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_object(self):
        return self.request.user
