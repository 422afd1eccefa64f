# users/models.py
from django.contrib.auth.models import AbstractUser
from django.db import models

class User(AbstractUser):
    class Role(models.TextChoices):
        COORDINATOR = "coordinator", "Coordinator"
        STUDENT = "student", "Student"

    role = models.CharField(max_length=20, choices=Role.choices, default=Role.STUDENT)

    # Set for generated student accounts until the first password change
    must_change_password = models.BooleanField(default=False)

    @property
    def is_coordinator(self):
        return self.is_staff or self.role == self.Role.COORDINATOR

    def __str__(self):
        return self.username


class Student(models.Model):
    user = models.OneToOneField(User, on_delete=models.CASCADE, related_name='student_profile')
    full_name = models.CharField(max_length=100)
    gender = models.CharField(max_length=10, blank=True)
    id_number = models.CharField(max_length=50)
    academic_year = models.CharField(max_length=20, blank=True)
    department = models.CharField(max_length=100, blank=True)
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ['full_name']

    def __str__(self):
        return f"{self.full_name} ({self.id_number})"
