"""
Startup reconciliation: role groups, their permissions and the optional
initial coordinator. Every step is a get-or-create so it can run on each
deploy.
"""
import logging

from django.conf import settings
from django.contrib.auth.models import Group, Permission

from .accounts import ROLE_GROUPS, User

logger = logging.getLogger(__name__)

COORDINATOR_APPS = ["exams", "users", "assessments"]
STUDENT_PERMISSIONS = ["view_exam", "view_studentexam"]


def reconcile_roles():
    coordinators, _ = Group.objects.get_or_create(name=ROLE_GROUPS[User.Role.COORDINATOR])
    students, _ = Group.objects.get_or_create(name=ROLE_GROUPS[User.Role.STUDENT])

    coordinators.permissions.add(
        *Permission.objects.filter(content_type__app_label__in=COORDINATOR_APPS)
    )
    students.permissions.add(
        *Permission.objects.filter(codename__in=STUDENT_PERMISSIONS)
    )
    return coordinators, students


def ensure_initial_coordinator():
    username = settings.PORTAL_COORDINATOR_USERNAME
    password = settings.PORTAL_COORDINATOR_PASSWORD
    if not username or not password:
        return None

    user, created = User.objects.get_or_create(
        username=username,
        defaults={"role": User.Role.COORDINATOR, "is_staff": True},
    )
    if created:
        user.set_password(password)
        user.save()
        logger.info(f"Initial coordinator '{username}' created")

    group = Group.objects.get(name=ROLE_GROUPS[User.Role.COORDINATOR])
    user.groups.add(group)
    return user


def reconcile_portal():
    reconcile_roles()
    return ensure_initial_coordinator()
