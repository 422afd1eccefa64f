from decimal import Decimal

import cores.models
import django.core.validators
import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name='PlatformSetting',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('site_name', models.CharField(default='Exam Portal', max_length=100)),
                ('support_email', models.EmailField(default='support@example.edu', max_length=254)),
                ('default_exam_duration', models.PositiveIntegerField(default=60, help_text='Default duration in minutes')),
                ('default_mark_weight', models.DecimalField(decimal_places=2, default=Decimal('1.00'), help_text='Mark weight given to new exams when none is supplied', max_digits=6)),
                ('access_code_length', models.PositiveSmallIntegerField(default=cores.models.default_access_code_length, help_text='Length of access codes generated when an exam is first published', validators=[django.core.validators.MinValueValidator(4), django.core.validators.MaxValueValidator(16)])),
            ],
        ),
        migrations.CreateModel(
            name='AuditLog',
            fields=[
                ('id', models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name='ID')),
                ('action', models.CharField(choices=[('CREATE', 'Create'), ('UPDATE', 'Update'), ('DELETE', 'Delete'), ('PUBLISH', 'Exam Published'), ('UNPUBLISH', 'Exam Unpublished'), ('IMPORT', 'Questions Imported'), ('PROVISION', 'Student Provisioned'), ('PASSWORD', 'Password Changed'), ('SETTINGS', 'Settings Changed')], max_length=20)),
                ('target_model', models.CharField(help_text='e.g., Exam, Question, Student', max_length=50)),
                ('target_object_id', models.CharField(blank=True, max_length=100, null=True)),
                ('details', models.TextField(blank=True, help_text='Description of changes')),
                ('timestamp', models.DateTimeField(auto_now_add=True)),
                ('actor', models.ForeignKey(null=True, on_delete=django.db.models.deletion.SET_NULL, related_name='audit_logs', to=settings.AUTH_USER_MODEL)),
            ],
            options={
                'ordering': ['-timestamp'],
            },
        ),
    ]
