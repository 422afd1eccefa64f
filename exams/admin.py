from django.contrib import admin

from .models import Exam, Question, Choice


class ChoiceInline(admin.TabularInline):
    model = Choice
    extra = 0


@admin.register(Exam)
class ExamAdmin(admin.ModelAdmin):
    list_display = ('title', 'academic_year', 'status', 'access_code', 'duration_minutes')
    list_filter = ('status', 'academic_year')
    readonly_fields = ('access_code',)


@admin.register(Question)
class QuestionAdmin(admin.ModelAdmin):
    list_display = ('__str__', 'exam', 'mark_weight')
    list_filter = ('exam',)
    inlines = [ChoiceInline]
