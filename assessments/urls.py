from django.urls import path
from .views import (
    AvailableExamsView,
    EnterExamView,
    ExamQuestionView,
    ExamResultView,
    StudentResultsView,
    SubmitAnswerView,
)

urlpatterns = [
    # Student Exam Flow
    path('student/exams/', AvailableExamsView.as_view(), name='student-exams'),
    path('student/exams/enter/', EnterExamView.as_view(), name='student-exam-enter'),
    path('student/exams/<int:exam_id>/questions/<int:index>/', ExamQuestionView.as_view(), name='student-exam-question'),
    path('student/exams/<int:exam_id>/answers/', SubmitAnswerView.as_view(), name='student-exam-answers'),
    path('student/exams/<int:exam_id>/result/', ExamResultView.as_view(), name='student-exam-result'),

    path('student/results/', StudentResultsView.as_view(), name='student-results'),
]
