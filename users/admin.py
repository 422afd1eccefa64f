from django.contrib import admin
from django.contrib.auth.admin import UserAdmin

from .models import User, Student


@admin.register(User)
class PortalUserAdmin(UserAdmin):
    fieldsets = UserAdmin.fieldsets + (
        ("Portal", {"fields": ("role", "must_change_password")}),
    )
    list_display = ("username", "role", "must_change_password", "is_staff")
    list_filter = ("role", "is_staff")


@admin.register(Student)
class StudentAdmin(admin.ModelAdmin):
    list_display = ("full_name", "id_number", "department", "academic_year")
    search_fields = ("full_name", "id_number")
