from rest_framework import serializers

from exams.models import Exam
from exams.serializers import StudentChoiceSerializer
from .models import ExamAttempt, StudentExam


class AvailableExamSerializer(serializers.ModelSerializer):
    """Exam card shown to students; the access code is never listed."""
    total_questions = serializers.IntegerField(source='questions.count', read_only=True)

    class Meta:
        model = Exam
        fields = ['id', 'title', 'academic_year', 'duration_minutes', 'description', 'total_questions']


class EnterExamSerializer(serializers.Serializer):
    access_code = serializers.CharField(max_length=16)


class AnswerSubmitSerializer(serializers.Serializer):
    question_id = serializers.IntegerField()
    # 0 or null means "no answer"
    choice_id = serializers.IntegerField(required=False, allow_null=True, default=None)
    flagged = serializers.BooleanField(required=False, default=False)
    next_index = serializers.IntegerField(required=False, allow_null=True, default=None)


class ExamAttemptSerializer(serializers.ModelSerializer):
    class Meta:
        model = ExamAttempt
        fields = ['id', 'exam', 'question', 'choice', 'is_flagged', 'started_at', 'updated_at']


class QuestionViewSerializer(serializers.Serializer):
    """Renders an engine QuestionView without the answer key."""
    exam_id = serializers.IntegerField(source='exam.id')
    exam_title = serializers.CharField(source='exam.title')
    index = serializers.IntegerField()
    total = serializers.IntegerField()
    question_id = serializers.IntegerField(source='question.id')
    question_text = serializers.CharField(source='question.text')
    image_reference = serializers.CharField(source='question.image_reference')
    mark_weight = serializers.DecimalField(source='question.mark_weight', max_digits=6, decimal_places=2)
    choices = StudentChoiceSerializer(many=True)
    selected_choice_id = serializers.IntegerField(allow_null=True)
    flagged = serializers.BooleanField()
    answered_indices = serializers.ListField(child=serializers.IntegerField())
    flagged_indices = serializers.ListField(child=serializers.IntegerField())
    duration_minutes = serializers.IntegerField()


class StudentExamSerializer(serializers.ModelSerializer):
    exam_title = serializers.CharField(source='exam.title', read_only=True)
    total_questions = serializers.SerializerMethodField()
    percentage = serializers.SerializerMethodField()

    class Meta:
        model = StudentExam
        fields = [
            'id', 'exam', 'exam_title', 'started_at', 'ended_at',
            'taken_exam', 'score', 'total_questions', 'percentage',
        ]

    def get_total_questions(self, obj):
        return obj.exam.questions.count()

    def get_percentage(self, obj):
        total = self.get_total_questions(obj)
        if not total:
            return 0.0
        return round(obj.score / total * 100, 2)


class ExamResultSerializer(serializers.Serializer):
    """Renders an engine ExamResult."""
    exam_id = serializers.IntegerField(source='student_exam.exam_id')
    exam_title = serializers.CharField(source='student_exam.exam.title')
    score = serializers.FloatField()
    total_questions = serializers.IntegerField()
    percentage = serializers.FloatField()
    started_at = serializers.DateTimeField(source='student_exam.started_at')
    ended_at = serializers.DateTimeField(source='student_exam.ended_at')
    taken_exam = serializers.BooleanField(source='student_exam.taken_exam')
