"""
Bulk question import.

An upload is a zip archive holding a manifest (``manifest.csv`` by default,
at any depth) and the image files its rows reference by name. Each manifest
row becomes one Question and its Choices. Rows are written in file order
inside a single transaction: either every row is imported or none is.

Two manifest layouts are understood:

    QuestionText, HasImage, ImageFileName, ChoiceA, ChoiceB, ChoiceC, ChoiceD, CorrectAnswer
    QuestionText, ImageName, Choices, CorrectChoiceIndex

``Choices`` is pipe-delimited. The correct-answer designator may be a letter
(A-D) or a zero-based index in either layout. An optional ``MarkWeight``
column overrides the exam's default mark.

Images are handed to the configured image store before their question is
saved; they are not removed again if a later row fails.
"""

import csv
import logging
import os
import shutil
import tempfile
import uuid
import zipfile
from dataclasses import dataclass, field
from decimal import Decimal, InvalidOperation
from typing import Dict, List, Optional

from django.conf import settings
from django.db import DatabaseError, transaction

from cores.exceptions import ImportAborted, PortalError, UploadError, ValidationError
from .models import Choice, Question, normalize_text
from .storage import get_image_store

logger = logging.getLogger(__name__)

IMAGE_FOLDER = "exam_questions"
CHOICE_COLUMNS = ["ChoiceA", "ChoiceB", "ChoiceC", "ChoiceD"]
CHOICE_LETTERS = "ABCD"
YES_VALUES = {"yes", "y", "true", "1"}
NO_VALUES = {"", "no", "n", "false", "0"}
MIN_CHOICES = 2
MAX_MARK_WEIGHT = Decimal("9999.99")


@dataclass
class ManifestRow:
    line_number: int
    question_text: str
    choices: List[str]
    correct_index: int
    image_name: Optional[str] = None
    mark_weight: Optional[Decimal] = None


@dataclass
class ImportSummary:
    exam_id: int
    questions: List[Question] = field(default_factory=list)
    choice_count: int = 0
    images: List[str] = field(default_factory=list)

    @property
    def question_count(self):
        return len(self.questions)


# --- Manifest parsing ---

def resolve_designator(value, choice_count, line_number):
    """Turn ``B`` or ``1`` into a zero-based index into the row's choices."""
    value = value.strip()
    # isdigit alone accepts digits int() rejects, such as superscripts
    if value.isascii() and value.isdigit():
        index = int(value)
    elif len(value) == 1 and value.upper() in CHOICE_LETTERS:
        index = CHOICE_LETTERS.index(value.upper())
    else:
        raise ValidationError(f"Line {line_number}: invalid correct answer '{value}'.")

    if index >= choice_count:
        raise ValidationError(
            f"Line {line_number}: correct answer '{value}' does not match any of the {choice_count} choices."
        )
    return index


def required(row, column, line_number):
    value = row.get(column, "")
    if not value:
        raise ValidationError(f"Line {line_number}: '{column}' is required.")
    return value


def parse_mark_weight(row, line_number):
    raw = row.get("MarkWeight", "")
    if not raw:
        return None
    try:
        weight = Decimal(raw)
    except InvalidOperation:
        raise ValidationError(f"Line {line_number}: MarkWeight '{raw}' is not a number.")
    if not weight.is_finite() or weight <= 0:
        raise ValidationError(f"Line {line_number}: MarkWeight must be a positive number.")
    # Must fit Question.mark_weight
    if weight > MAX_MARK_WEIGHT or weight.normalize().as_tuple().exponent < -2:
        raise ValidationError(
            f"Line {line_number}: MarkWeight must be at most {MAX_MARK_WEIGHT} with two decimal places."
        )
    return weight


def parse_fixed_row(row, line_number):
    has_image = row.get("HasImage", "").lower()
    if has_image not in YES_VALUES | NO_VALUES:
        raise ValidationError(f"Line {line_number}: HasImage must be Yes or No.")

    image_name = None
    if has_image in YES_VALUES:
        image_name = required(row, "ImageFileName", line_number)

    declared = [row.get(column, "") for column in CHOICE_COLUMNS]
    designated = resolve_designator(required(row, "CorrectAnswer", line_number), len(declared), line_number)
    if not declared[designated]:
        raise ValidationError(f"Line {line_number}: the correct answer points at an empty choice.")

    # Empty columns are not choices; shift the designator past them
    correct_index = sum(1 for text in declared[:designated] if text)
    return image_name, [text for text in declared if text], correct_index


def parse_delimited_row(row, line_number):
    choices = [text.strip() for text in required(row, "Choices", line_number).split("|")]
    if not all(choices):
        raise ValidationError(f"Line {line_number}: Choices contains an empty entry.")

    correct_index = resolve_designator(
        required(row, "CorrectChoiceIndex", line_number), len(choices), line_number
    )
    return row.get("ImageName") or None, choices, correct_index


def read_manifest(path) -> List[ManifestRow]:
    try:
        with open(path, newline="", encoding="utf-8-sig") as fh:
            reader = csv.DictReader(fh)
            headers = [(h or "").strip() for h in reader.fieldnames or []]

            if "QuestionText" not in headers:
                raise ValidationError("Manifest must have a 'QuestionText' column.")
            if all(column in headers for column in CHOICE_COLUMNS):
                parse_row = parse_fixed_row
            elif "Choices" in headers:
                parse_row = parse_delimited_row
            else:
                raise ValidationError("Manifest must have ChoiceA..ChoiceD columns or a 'Choices' column.")

            rows = []
            for raw in reader:
                line_number = reader.line_num
                row = {
                    key.strip(): (value or "").strip()
                    for key, value in raw.items()
                    if key is not None and not isinstance(value, list)
                }
                if not any(row.values()):
                    continue

                text = required(row, "QuestionText", line_number)
                image_name, choices, correct_index = parse_row(row, line_number)

                if len(choices) < MIN_CHOICES:
                    raise ValidationError(f"Line {line_number}: at least {MIN_CHOICES} choices are required.")
                if len({normalize_text(c) for c in choices}) != len(choices):
                    raise ValidationError(f"Line {line_number}: duplicate choice text.")

                rows.append(ManifestRow(
                    line_number=line_number,
                    question_text=text,
                    choices=choices,
                    correct_index=correct_index,
                    image_name=image_name,
                    mark_weight=parse_mark_weight(row, line_number),
                ))
    except UnicodeDecodeError:
        raise ValidationError("Manifest must be UTF-8 encoded.")
    except csv.Error as e:
        raise ValidationError(f"Manifest could not be parsed: {e}")

    if not rows:
        raise ValidationError("Manifest contains no questions.")
    return rows


# --- Import run ---

class QuestionImporter:
    """
    Imports one archive into one exam.

    ``run`` is the only entry point; it owns the working directory and the
    transaction, and reports every failure as a single ``ImportAborted``.
    """

    def __init__(self, exam, image_store=None):
        self.exam = exam
        self.image_store = image_store or get_image_store()
        self.manifest_name = settings.EXAM_IMPORT_MANIFEST_NAME

    def run(self, upload) -> ImportSummary:
        workdir = self.make_workdir()
        logger.info(f"Importing questions into exam {self.exam.pk} (workdir {workdir})")
        try:
            self.unpack(upload, workdir)
            rows = read_manifest(self.find_manifest(workdir))
            self.check_duplicates(rows)
            summary = self.persist(rows, index_assets(workdir))
        except PortalError as e:
            logger.error(f"Import into exam {self.exam.pk} aborted: {e.message}")
            raise ImportAborted(f"Import aborted, nothing was saved. {e.message}", cause=e) from e
        except DatabaseError as e:
            logger.exception(f"Import into exam {self.exam.pk} aborted by a database error")
            raise ImportAborted(f"Import aborted, nothing was saved. Database error: {e}", cause=e) from e
        finally:
            if os.path.isdir(workdir):
                shutil.rmtree(workdir)

        logger.info(
            f"Imported {summary.question_count} questions and {summary.choice_count} choices "
            f"into exam {self.exam.pk}"
        )
        return summary

    def make_workdir(self):
        root = settings.EXAM_IMPORT_TMP_DIR or tempfile.gettempdir()
        workdir = os.path.join(root, f"exam-import-{uuid.uuid4().hex}")
        os.makedirs(workdir)
        return workdir

    def unpack(self, upload, workdir):
        name = getattr(upload, "name", "") or ""
        if name.lower().endswith(".csv"):
            # A bare manifest: no images can be referenced
            with open(os.path.join(workdir, self.manifest_name), "wb") as out:
                chunks = upload.chunks() if hasattr(upload, "chunks") else [upload.read()]
                for chunk in chunks:
                    out.write(chunk)
            return

        root = os.path.realpath(workdir)
        try:
            with zipfile.ZipFile(upload) as archive:
                for member in archive.infolist():
                    target = os.path.realpath(os.path.join(root, member.filename))
                    if target != root and not target.startswith(root + os.sep):
                        raise ValidationError(f"Archive entry '{member.filename}' is outside the archive root.")
                archive.extractall(root)
        except zipfile.BadZipFile:
            raise ValidationError("Uploaded file is not a valid zip archive.")

    def find_manifest(self, workdir):
        wanted = self.manifest_name.lower()
        for dirpath, dirnames, filenames in os.walk(workdir):
            dirnames.sort()
            for filename in sorted(filenames):
                if filename.lower() == wanted:
                    return os.path.join(dirpath, filename)
        raise ValidationError(f"{self.manifest_name} missing from archive.")

    def check_duplicates(self, rows):
        existing = {normalize_text(text) for text in self.exam.questions.values_list("text", flat=True)}
        seen = {}
        for row in rows:
            key = normalize_text(row.question_text)
            if key in existing:
                raise ValidationError(
                    f"Line {row.line_number}: question '{row.question_text}' already exists in this exam."
                )
            if key in seen:
                raise ValidationError(
                    f"Line {row.line_number}: question repeats the one on line {seen[key]}."
                )
            seen[key] = row.line_number

    def persist(self, rows, assets) -> ImportSummary:
        summary = ImportSummary(exam_id=self.exam.pk)
        with transaction.atomic():
            for row in rows:
                question = Question(
                    exam=self.exam,
                    text=row.question_text,
                    mark_weight=row.mark_weight or self.exam.default_mark,
                )
                if row.image_name:
                    question.image_reference = self.store_image(row, assets)
                    summary.images.append(question.image_reference)

                # Choices need the question's primary key
                question.save()

                choices = Choice.objects.bulk_create([
                    Choice(question=question, text=text, is_answer=(index == row.correct_index))
                    for index, text in enumerate(row.choices)
                ])
                summary.questions.append(question)
                summary.choice_count += len(choices)
        return summary

    def store_image(self, row, assets):
        # Only the file name is trusted, never a path from the manifest
        image_name = os.path.basename(row.image_name.replace("\\", "/"))
        local_path = assets.get(image_name.lower())
        if local_path is None:
            raise ValidationError(
                f"Line {row.line_number}: image '{row.image_name}' is declared but not in the archive."
            )

        public_id = f"q_{uuid.uuid4().hex}"
        try:
            return self.image_store.store(local_path, IMAGE_FOLDER, public_id)
        except UploadError as e:
            raise UploadError(f"Line {row.line_number}: {e.message}") from e


def index_assets(workdir) -> Dict[str, str]:
    """Map lower-cased file names to paths; the first match in walk order wins."""
    assets = {}
    for dirpath, dirnames, filenames in os.walk(workdir):
        dirnames.sort()
        for filename in sorted(filenames):
            assets.setdefault(filename.lower(), os.path.join(dirpath, filename))
    return assets
