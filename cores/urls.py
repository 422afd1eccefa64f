from django.urls import path
from .views import PlatformSettingView, AuditLogListView, AuditLogDetailView

urlpatterns = [
    # --- Platform Defaults ---
    path('settings/', PlatformSettingView.as_view(), name='core-settings'),

    # --- Audit Trail (read only) ---
    path('audit-logs/', AuditLogListView.as_view(), name='core-audit-logs'),
    path('audit-logs/<int:pk>/', AuditLogDetailView.as_view(), name='core-audit-log-detail'),
]
