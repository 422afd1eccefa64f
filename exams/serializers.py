# exams/serializers.py
from rest_framework import serializers

from cores.exceptions import ConcurrencyConflict
from cores.models import PlatformSetting
from .models import Exam, Question, Choice, normalize_text

# --- Helper Serializers ---

class QueryUpdateMixin:
    """
    Writes updates with a single UPDATE on the primary key. A row deleted
    since it was loaded raises ConcurrencyConflict instead of being
    re-inserted by ``Model.save``.
    """
    def update(self, instance, validated_data):
        model = type(instance)
        if validated_data and not model.objects.filter(pk=instance.pk).update(**validated_data):
            raise ConcurrencyConflict(f"{model.__name__} {instance.pk} was changed or removed during the update.")
        for attr, value in validated_data.items():
            setattr(instance, attr, value)
        return instance

class ChoiceSerializer(serializers.ModelSerializer):
    choice_text = serializers.CharField(source='text')

    class Meta:
        model = Choice
        fields = ['id', 'question', 'choice_text', 'is_answer']
        read_only_fields = ['question']

    def validate_choice_text(self, value):
        question = self.context['question']
        if Choice.objects.filter(question=question).with_text(value).exists():
            raise serializers.ValidationError("Duplicate Choice: This option already exists for this question.")
        return value.strip()

class StudentChoiceSerializer(serializers.ModelSerializer):
    """Choices as shown while taking an exam: no answer key."""
    choice_text = serializers.CharField(source='text')

    class Meta:
        model = Choice
        fields = ['id', 'choice_text']

# --- Question Serializers ---

class QuestionSerializer(QueryUpdateMixin, serializers.ModelSerializer):
    question_text = serializers.CharField(source='text')
    # Optional choice texts on create; correct_answer names the right one
    choices = serializers.ListField(child=serializers.CharField(), required=False, write_only=True)
    correct_answer = serializers.CharField(required=False, write_only=True)
    choices_data = ChoiceSerializer(source='choices', many=True, read_only=True)

    exam_title = serializers.CharField(source='exam.title', read_only=True)

    class Meta:
        model = Question
        fields = [
            'id', 'exam', 'exam_title', 'question_text', 'mark_weight',
            'image_reference', 'choices', 'correct_answer', 'choices_data',
        ]
        extra_kwargs = {'mark_weight': {'required': False}}

    def validate(self, attrs):
        exam = attrs.get('exam') or getattr(self.instance, 'exam', None)
        text = attrs.get('text')
        if exam is not None and text is not None:
            duplicates = Question.objects.filter(exam=exam).with_text(text)
            if self.instance is not None:
                duplicates = duplicates.exclude(pk=self.instance.pk)
            if duplicates.exists():
                raise serializers.ValidationError(
                    {'question_text': "Duplicate Question: This text already exists in this exam."}
                )

        choices = attrs.get('choices')
        if choices:
            if len({normalize_text(c) for c in choices}) != len(choices):
                raise serializers.ValidationError({'choices': "Duplicate Choice: options must be unique."})
            correct = normalize_text(attrs.get('correct_answer'))
            if correct not in {normalize_text(c) for c in choices}:
                raise serializers.ValidationError({'correct_answer': "Must match one of the choices."})
        return attrs

    def create(self, validated_data):
        choices_text = validated_data.pop('choices', [])
        correct_ans = normalize_text(validated_data.pop('correct_answer', ''))
        validated_data.setdefault('mark_weight', validated_data['exam'].default_mark)

        question = Question.objects.create(**validated_data)

        Choice.objects.bulk_create([
            Choice(question=question, text=text.strip(), is_answer=(normalize_text(text) == correct_ans))
            for text in choices_text
        ])
        return question

    def update(self, instance, validated_data):
        validated_data.pop('choices', None)
        validated_data.pop('correct_answer', None)
        return super().update(instance, validated_data)

# --- Exam Serializers ---

class ExamSerializer(QueryUpdateMixin, serializers.ModelSerializer):
    # Read-only counts
    total_questions = serializers.IntegerField(source='questions.count', read_only=True)

    class Meta:
        model = Exam
        fields = [
            'id', 'title', 'academic_year', 'duration_minutes', 'default_mark',
            'description', 'status', 'access_code', 'total_questions', 'created_at',
        ]
        read_only_fields = ['status', 'access_code', 'created_at']
        extra_kwargs = {
            'duration_minutes': {'required': False},
            'default_mark': {'required': False},
        }

    def create(self, validated_data):
        defaults = PlatformSetting.load()
        validated_data.setdefault('duration_minutes', defaults.default_exam_duration)
        validated_data.setdefault('default_mark', defaults.default_mark_weight)
        return Exam.objects.create(**validated_data)

class ExamDetailSerializer(ExamSerializer):
    """Exam with its questions and their choices."""
    questions = QuestionSerializer(many=True, read_only=True)

    class Meta(ExamSerializer.Meta):
        fields = ExamSerializer.Meta.fields + ['questions']

class ExamImportSerializer(serializers.Serializer):
    file = serializers.FileField()
