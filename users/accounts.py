"""
Account collaborator used by student provisioning and the auth views.

Wraps the user model behind the small surface the rest of the portal needs:
create an account with validation errors reported instead of raised, role
membership, and the explicit must-change-password flag.
"""
import logging
from dataclasses import dataclass, field
from typing import List, Optional

from django.contrib.auth import get_user_model
from django.contrib.auth.models import Group
from django.contrib.auth.password_validation import validate_password
from django.core.exceptions import ValidationError as DjangoValidationError

logger = logging.getLogger(__name__)

User = get_user_model()

ROLE_GROUPS = {
    User.Role.COORDINATOR: "Coordinator",
    User.Role.STUDENT: "Student",
}


@dataclass
class AccountResult:
    succeeded: bool
    errors: List[str] = field(default_factory=list)
    user: Optional[User] = None


class AccountService:

    def create_account(self, username: str, password: str, **extra) -> AccountResult:
        errors = []
        if not username:
            errors.append("Username is required.")
        elif User.objects.filter(username__iexact=username).exists():
            errors.append(f"Username '{username}' is already taken.")

        try:
            validate_password(password, user=User(username=username, **extra))
        except DjangoValidationError as e:
            errors.extend(e.messages)

        if errors:
            logger.info(f"Account '{username}' rejected: {'; '.join(errors)}")
            return AccountResult(succeeded=False, errors=errors)

        user = User.objects.create_user(username=username, password=password, **extra)
        return AccountResult(succeeded=True, user=user)

    def is_in_role(self, user, role) -> bool:
        return user.role == role

    def add_to_role(self, user, role) -> None:
        user.role = role
        user.save(update_fields=["role"])
        group, _ = Group.objects.get_or_create(name=ROLE_GROUPS[role])
        user.groups.add(group)

    def require_password_change(self, user) -> None:
        user.must_change_password = True
        user.save(update_fields=["must_change_password"])

    def change_password(self, user, old_password: str, new_password: str) -> AccountResult:
        if not user.check_password(old_password):
            return AccountResult(succeeded=False, errors=["Current password is incorrect."], user=user)
        try:
            validate_password(new_password, user=user)
        except DjangoValidationError as e:
            return AccountResult(succeeded=False, errors=list(e.messages), user=user)

        user.set_password(new_password)
        user.must_change_password = False
        user.save(update_fields=["password", "must_change_password"])
        return AccountResult(succeeded=True, user=user)
