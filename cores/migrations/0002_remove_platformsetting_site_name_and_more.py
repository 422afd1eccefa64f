from django.db import migrations


class Migration(migrations.Migration):

    dependencies = [
        ('cores', '0001_initial'),
    ]

    operations = [
        migrations.RemoveField(
            model_name='platformsetting',
            name='site_name',
        ),
        migrations.RemoveField(
            model_name='platformsetting',
            name='support_email',
        ),
    ]
