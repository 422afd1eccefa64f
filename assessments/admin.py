from django.contrib import admin
from .models import ExamAttempt, StudentExam


@admin.register(ExamAttempt)
class ExamAttemptAdmin(admin.ModelAdmin):
    list_display = ('student', 'exam', 'question', 'choice', 'is_correct', 'is_flagged', 'updated_at')
    list_filter = ('exam', 'is_correct', 'is_flagged')
    search_fields = ('student__full_name', 'student__id_number')


@admin.register(StudentExam)
class StudentExamAdmin(admin.ModelAdmin):
    list_display = ('student', 'exam', 'score', 'taken_exam', 'banned', 'ended_at')
    list_filter = ('exam', 'taken_exam', 'banned')
    search_fields = ('student__full_name', 'student__id_number')
