# users/services.py
import csv
import io
import logging
from dataclasses import dataclass, field
from typing import List

from django.conf import settings
from django.db import transaction

from cores.exceptions import ValidationError
from .accounts import AccountService, User
from .models import Student

logger = logging.getLogger(__name__)

PROFILE_COLUMNS = {
    'Gender': 'gender',
    'AcademicYear': 'academic_year',
    'Department': 'department',
}


@dataclass
class ProvisionedStudent:
    student: Student
    username: str
    password: str


@dataclass
class BulkProvisionResult:
    created: List[ProvisionedStudent] = field(default_factory=list)
    skipped: int = 0
    errors: List[str] = field(default_factory=list)


def base_username(full_name, id_number):
    """Name without whitespace followed by the last four id characters."""
    last4 = id_number[-4:] if len(id_number) >= 4 else id_number
    return "".join(full_name.split()) + last4.replace("/", "")


def unique_username(full_name, id_number):
    base = base_username(full_name, id_number)
    candidate, suffix = base, 2
    while User.objects.filter(username__iexact=candidate).exists():
        candidate = f"{base}{suffix}"
        suffix += 1
    return candidate


def provision_student(full_name, id_number, accounts=None, **profile):
    """
    Create a Student together with its login account.

    The username is derived from the name and id number, the password from
    the username, and the account is flagged to change it on first login.
    """
    full_name = (full_name or "").strip()
    id_number = (id_number or "").strip()
    if not full_name:
        raise ValidationError("Full name is required.")
    if not id_number:
        raise ValidationError("Id number is required.")

    accounts = accounts or AccountService()

    with transaction.atomic():
        username = unique_username(full_name, id_number)
        password = f"{username}@{settings.STUDENT_PASSWORD_SUFFIX}"

        result = accounts.create_account(username, password)
        if not result.succeeded:
            raise ValidationError("; ".join(result.errors))

        accounts.add_to_role(result.user, User.Role.STUDENT)
        accounts.require_password_change(result.user)

        student = Student.objects.create(
            user=result.user, full_name=full_name, id_number=id_number, **profile
        )

    logger.info(f"Provisioned student {student.pk} with username '{username}'")
    return ProvisionedStudent(student=student, username=username, password=password)


def provision_students_from_csv(file_obj, accounts=None):
    """
    Provision one student per CSV row (FullName, IdNumber, optional
    Gender/AcademicYear/Department). Rows without a name are skipped and
    rows that fail are reported; the others are kept.
    """
    try:
        decoded_file = file_obj.read().decode('utf-8-sig')
    except UnicodeDecodeError:
        raise ValidationError("Student file must be UTF-8 encoded CSV.")

    reader = csv.DictReader(io.StringIO(decoded_file))
    if not reader.fieldnames or 'FullName' not in [h.strip() for h in reader.fieldnames]:
        raise ValidationError("Student file must have a 'FullName' column.")

    result = BulkProvisionResult()
    for line_number, raw in enumerate(reader, start=2):
        row = {(k or '').strip(): (v or '').strip() for k, v in raw.items()}
        if not row.get('FullName'):
            result.skipped += 1
            continue

        profile = {attr: row[col] for col, attr in PROFILE_COLUMNS.items() if row.get(col)}
        try:
            result.created.append(
                provision_student(row['FullName'], row.get('IdNumber', ''), accounts=accounts, **profile)
            )
        except ValidationError as e:
            result.errors.append(f"Row {line_number}: {e.message}")

    logger.info(
        f"Bulk student upload: {len(result.created)} created, "
        f"{result.skipped} skipped, {len(result.errors)} failed"
    )
    return result


def delete_student(student):
    if student.exam_attempts.exists() or student.student_exams.exists():
        raise ValidationError(
            "Cannot delete a student with exam attempts or results. Remove those records first."
        )
    # Deleting the account cascades to the Student row
    student.user.delete()
