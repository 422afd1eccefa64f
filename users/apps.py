from django.apps import AppConfig
from django.db.models.signals import post_migrate


class UsersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "users"

    def ready(self):
        from .signals import reconcile_after_migrate

        post_migrate.connect(reconcile_after_migrate, dispatch_uid="users.reconcile_portal")
