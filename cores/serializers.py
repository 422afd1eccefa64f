from rest_framework import serializers
from .models import PlatformSetting, AuditLog

class PlatformSettingSerializer(serializers.ModelSerializer):
    class Meta:
        model = PlatformSetting
        fields = [
            'default_exam_duration', 'default_mark_weight', 'access_code_length',
        ]

    def validate_default_exam_duration(self, value):
        if value < 1:
            raise serializers.ValidationError("Exams must last at least one minute.")
        return value

    def validate_default_mark_weight(self, value):
        if value <= 0:
            raise serializers.ValidationError("Mark weight must be positive.")
        return value

class AuditLogSerializer(serializers.ModelSerializer):
    # Null for entries written by anonymous requests or deleted accounts
    actor_username = serializers.CharField(source='actor.username', read_only=True, default=None)
    actor_role = serializers.CharField(source='actor.role', read_only=True, default=None)
    action_label = serializers.CharField(source='get_action_display', read_only=True)

    class Meta:
        model = AuditLog
        fields = [
            'id', 'actor', 'actor_username', 'actor_role', 'action', 'action_label',
            'target_model', 'target_object_id', 'timestamp', 'details',
        ]
