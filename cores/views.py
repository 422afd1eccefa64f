from rest_framework import generics, status
from rest_framework.views import APIView
from rest_framework.response import Response

from users.permissions import IsCoordinator
from .models import PlatformSetting, AuditLog
from .serializers import PlatformSettingSerializer, AuditLogSerializer

class PlatformSettingView(APIView):
    """Defaults applied to new exams and generated access codes."""
    permission_classes = [IsCoordinator]

    def get(self, request):
        platform = PlatformSetting.load()
        return Response(PlatformSettingSerializer(platform).data)

    def put(self, request):
        platform = PlatformSetting.load()
        serializer = PlatformSettingSerializer(platform, data=request.data, partial=True)
        if not serializer.is_valid():
            return Response(serializer.errors, status=status.HTTP_400_BAD_REQUEST)

        serializer.save()
        changed = ", ".join(sorted(serializer.validated_data))
        AuditLog.record(request.user, 'SETTINGS', 'PlatformSetting', f"Updated {changed}")
        return Response(serializer.data)

class AuditLogQuerysetMixin:
    # Select related avoids N+1 queries when fetching users
    queryset = AuditLog.objects.select_related('actor').order_by('-timestamp')
    serializer_class = AuditLogSerializer
    permission_classes = [IsCoordinator]

class AuditLogListView(AuditLogQuerysetMixin, generics.ListAPIView):
    """
    Audit trail, newest first.
    Filters: ?action=PUBLISH, ?target_model=Exam, ?target_id=3, ?actor=coord
    """

    def get_queryset(self):
        queryset = super().get_queryset()
        filters = {
            'action': 'action',
            'target_model': 'target_model',
            'target_id': 'target_object_id',
            'actor': 'actor__username',
        }
        for param, lookup in filters.items():
            value = self.request.query_params.get(param)
            if value:
                queryset = queryset.filter(**{lookup: value})
        return queryset

class AuditLogDetailView(AuditLogQuerysetMixin, generics.RetrieveAPIView):
    pass
