import django.db.models.deletion
from django.db import migrations, models


class Migration(migrations.Migration):

    dependencies = [
        ('assessments', '0001_initial'),
        ('exams', '0001_initial'),
    ]

    operations = [
        migrations.AlterField(
            model_name='examattempt',
            name='choice',
            field=models.ForeignKey(blank=True, null=True, on_delete=django.db.models.deletion.PROTECT, to='exams.choice'),
        ),
    ]
