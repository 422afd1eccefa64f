from django.apps import apps as django_apps

from .bootstrap import reconcile_portal


def reconcile_after_migrate(sender, app_config=None, **kwargs):
    # post_migrate fires once per app; wait for the last one so every
    # permission exists before the groups are filled.
    with_models = [c for c in django_apps.get_app_configs() if c.models_module is not None]
    if app_config is None or app_config.label != with_models[-1].label:
        return
    reconcile_portal()
