from django.conf import settings
from django.conf.urls.static import static
from django.contrib import admin
from django.urls import path, include

urlpatterns = [
    path('admin/', admin.site.urls),

    # --- Authentication & Student Management ---
    path('api/', include('users.urls')),

    # --- Exam Authoring (Coordinators) ---
    path('api/', include('exams.urls')),

    # --- Exam Taking (Students) ---
    path('api/', include('assessments.urls')),

    # --- Platform Settings & Audit Trail ---
    path('api/core/', include('cores.urls')),
]

if settings.DEBUG:
    # Images stored by FileSystemImageStore
    urlpatterns += static(settings.MEDIA_URL, document_root=settings.MEDIA_ROOT)
