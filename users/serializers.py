from rest_framework import serializers
from django.contrib.auth import get_user_model
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from .models import Student

User = get_user_model()

class UserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'first_name', 'last_name', 'role', 'must_change_password', 'is_staff']
        read_only_fields = ['username', 'role', 'must_change_password', 'is_staff']

class CustomTokenObtainPairSerializer(TokenObtainPairSerializer):
    def validate(self, attrs):
        data = super().validate(attrs)
        data['user'] = UserSerializer(self.user).data
        return data

class ChangePasswordSerializer(serializers.Serializer):
    old_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True)
    confirm_password = serializers.CharField(write_only=True)

    def validate(self, attrs):
        if attrs['new_password'] != attrs['confirm_password']:
            raise serializers.ValidationError("The new password and confirmation do not match.")
        return attrs

class StudentSerializer(serializers.ModelSerializer):
    username = serializers.CharField(source='user.username', read_only=True)
    must_change_password = serializers.BooleanField(source='user.must_change_password', read_only=True)

    class Meta:
        model = Student
        fields = [
            'id', 'full_name', 'gender', 'id_number', 'academic_year',
            'department', 'username', 'must_change_password', 'created_at',
        ]
        read_only_fields = ['created_at']

class StudentCsvUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
