import io
import os
import shutil
import tempfile
import zipfile

from django.core.files.uploadedfile import SimpleUploadedFile
from django.test import TestCase, override_settings

from cores.exceptions import ImportAborted, UploadError
from exams.importer import QuestionImporter
from exams.models import Exam, Question, Choice
from exams.storage import ImageStore

FIXED_HEADER = "QuestionText,HasImage,ImageFileName,ChoiceA,ChoiceB,ChoiceC,ChoiceD,CorrectAnswer\n"
DELIMITED_HEADER = "QuestionText,ImageName,Choices,CorrectChoiceIndex\n"


class RecordingStore(ImageStore):
    def __init__(self):
        self.calls = []

    def store(self, local_path, folder, public_id):
        self.calls.append((os.path.basename(local_path), folder, public_id))
        return f"https://images.test/{folder}/{public_id}"


class FailingStore(ImageStore):
    def store(self, local_path, folder, public_id):
        raise UploadError("image service unavailable")


def make_zip(files, name="questions.zip"):
    buffer = io.BytesIO()
    with zipfile.ZipFile(buffer, "w") as archive:
        for path, content in files.items():
            archive.writestr(path, content)
    return SimpleUploadedFile(name, buffer.getvalue(), content_type="application/zip")


class QuestionImporterTests(TestCase):
    def setUp(self):
        self.tmp_root = tempfile.mkdtemp()
        self.addCleanup(shutil.rmtree, self.tmp_root, ignore_errors=True)
        override = override_settings(EXAM_IMPORT_TMP_DIR=self.tmp_root)
        override.enable()
        self.addCleanup(override.disable)

        self.exam = Exam.objects.create(title="Geography", academic_year=2024, duration_minutes=30)
        self.store = RecordingStore()

    def run_import(self, upload, store=None):
        return QuestionImporter(self.exam, image_store=store or self.store).run(upload)

    def test_delimited_manifest_marks_indexed_choice_correct(self):
        upload = make_zip({"manifest.csv": DELIMITED_HEADER + "Capital of France?,,Paris|London|Berlin,0\n"})

        summary = self.run_import(upload)

        self.assertEqual(summary.question_count, 1)
        question = Question.objects.get(exam=self.exam)
        choices = list(question.choices.all())
        self.assertEqual([c.text for c in choices], ["Paris", "London", "Berlin"])
        self.assertEqual([c.is_answer for c in choices], [True, False, False])

    def test_rows_times_choices_are_created_with_one_answer_each(self):
        rows = "".join(
            f"Question {n}?,No,,a{n},b{n},c{n},d{n},{letter}\n"
            for n, letter in zip(range(1, 4), "ABD")
        )
        summary = self.run_import(make_zip({"manifest.csv": FIXED_HEADER + rows}))

        self.assertEqual(summary.question_count, 3)
        self.assertEqual(summary.choice_count, 12)
        self.assertEqual(Choice.objects.filter(question__exam=self.exam).count(), 12)
        for question in self.exam.questions.all():
            self.assertEqual(question.choices.filter(is_answer=True).count(), 1)
        self.assertEqual(
            list(self.exam.questions.values_list("text", flat=True)),
            ["Question 1?", "Question 2?", "Question 3?"],
        )

    def test_letter_designator_skips_blank_choice_columns(self):
        upload = make_zip({"manifest.csv": FIXED_HEADER + "Pick one,No,,Red,,Blue,Green,C\n"})

        self.run_import(upload)

        question = self.exam.questions.get()
        self.assertEqual([c.text for c in question.choices.all()], ["Red", "Blue", "Green"])
        self.assertEqual(question.choices.get(is_answer=True).text, "Blue")

    def test_image_is_stored_and_referenced(self):
        upload = make_zip({
            "bundle/manifest.csv": FIXED_HEADER + "Which flag?,Yes,flag.png,Mali,Chad,Peru,Iran,B\n",
            "bundle/images/flag.png": b"\x89PNG fake",
        })

        summary = self.run_import(upload)

        question = self.exam.questions.get()
        self.assertTrue(question.image_reference.startswith("https://images.test/exam_questions/q_"))
        self.assertEqual(summary.images, [question.image_reference])
        self.assertEqual(self.store.calls[0][0], "flag.png")

    def test_missing_image_aborts_whole_batch(self):
        manifest = FIXED_HEADER + (
            "First,No,,a,b,c,d,A\n"
            "Second,Yes,missing.png,a,b,c,d,A\n"
        )

        with self.assertRaises(ImportAborted) as ctx:
            self.run_import(make_zip({"manifest.csv": manifest}))

        self.assertIn("missing.png", ctx.exception.message)
        self.assertIn("nothing was saved", ctx.exception.message)
        self.assertEqual(Question.objects.count(), 0)
        self.assertEqual(Choice.objects.count(), 0)

    def test_upload_failure_aborts_with_gateway_status(self):
        upload = make_zip({
            "manifest.csv": FIXED_HEADER + "Which flag?,Yes,flag.png,a,b,c,d,A\n",
            "flag.png": b"img",
        })

        with self.assertRaises(ImportAborted) as ctx:
            self.run_import(upload, store=FailingStore())

        self.assertEqual(ctx.exception.status_code, 502)
        self.assertIsInstance(ctx.exception.cause, UploadError)
        self.assertEqual(Question.objects.count(), 0)

    def test_working_directory_is_removed(self):
        self.run_import(make_zip({"manifest.csv": DELIMITED_HEADER + "Q,,x|y,1\n"}))
        with self.assertRaises(ImportAborted):
            self.run_import(make_zip({"notes.txt": "no manifest here"}))

        self.assertEqual(os.listdir(self.tmp_root), [])

    def test_missing_manifest(self):
        with self.assertRaises(ImportAborted) as ctx:
            self.run_import(make_zip({"questions.csv": DELIMITED_HEADER}))
        self.assertIn("manifest.csv missing", ctx.exception.message)

    def test_invalid_archive(self):
        upload = SimpleUploadedFile("questions.zip", b"this is not a zip")
        with self.assertRaises(ImportAborted) as ctx:
            self.run_import(upload)
        self.assertIn("not a valid zip", ctx.exception.message)

    def test_archive_entries_outside_root_are_rejected(self):
        upload = make_zip({
            "manifest.csv": DELIMITED_HEADER + "Q,,x|y,0\n",
            "../escape.txt": "nope",
        })
        with self.assertRaises(ImportAborted):
            self.run_import(upload)
        self.assertFalse(os.path.exists(os.path.join(os.path.dirname(self.tmp_root), "escape.txt")))
        self.assertEqual(Question.objects.count(), 0)

    def test_bare_csv_manifest_is_accepted(self):
        upload = SimpleUploadedFile(
            "manifest.csv", (DELIMITED_HEADER + "Two plus two?,,3|4|5,1\n").encode("utf-8")
        )

        self.run_import(upload)

        self.assertEqual(self.exam.questions.get().choices.get(is_answer=True).text, "4")

    def test_designator_out_of_range(self):
        upload = make_zip({"manifest.csv": DELIMITED_HEADER + "Q,,x|y,2\n"})
        with self.assertRaises(ImportAborted) as ctx:
            self.run_import(upload)
        self.assertIn("Line 2", ctx.exception.message)

    def test_single_choice_is_rejected(self):
        upload = make_zip({"manifest.csv": DELIMITED_HEADER + "Q,,only,0\n"})
        with self.assertRaises(ImportAborted):
            self.run_import(upload)

    def test_duplicate_choice_text_is_rejected(self):
        upload = make_zip({"manifest.csv": DELIMITED_HEADER + "Q,,Yes| yes |No,0\n"})
        with self.assertRaises(ImportAborted) as ctx:
            self.run_import(upload)
        self.assertIn("duplicate choice", ctx.exception.message)

    def test_question_already_in_exam_is_rejected(self):
        Question.objects.create(exam=self.exam, text="Capital of France?")
        upload = make_zip({"manifest.csv": DELIMITED_HEADER + "  capital of FRANCE?,,Paris|Rome,0\n"})

        with self.assertRaises(ImportAborted) as ctx:
            self.run_import(upload)

        self.assertIn("already exists", ctx.exception.message)
        self.assertEqual(self.exam.questions.count(), 1)

    def test_repeated_question_in_manifest_is_rejected(self):
        manifest = DELIMITED_HEADER + "Same?,,a|b,0\nsame?,,c|d,1\n"
        with self.assertRaises(ImportAborted) as ctx:
            self.run_import(make_zip({"manifest.csv": manifest}))
        self.assertIn("line 2", ctx.exception.message)

    def test_mark_weight_column_overrides_exam_default(self):
        manifest = "QuestionText,Choices,CorrectChoiceIndex,MarkWeight\nHard one,a|b,B,2.5\nEasy one,c|d,0,\n"

        self.run_import(make_zip({"manifest.csv": manifest}))

        weights = list(self.exam.questions.values_list("mark_weight", flat=True))
        self.assertEqual([str(w) for w in weights], ["2.50", "1.00"])
        self.assertEqual(self.exam.questions.get(text="Hard one").choices.get(is_answer=True).text, "b")

    def test_non_ascii_digit_designator_is_rejected(self):
        upload = make_zip({"manifest.csv": DELIMITED_HEADER + "Q,,a|b,²\n"})
        with self.assertRaises(ImportAborted) as ctx:
            self.run_import(upload)
        self.assertIn("invalid correct answer", ctx.exception.message)
        self.assertEqual(Question.objects.count(), 0)

    def test_unusable_mark_weights_are_rejected(self):
        header = "QuestionText,Choices,CorrectChoiceIndex,MarkWeight\n"
        for weight in ("NaN", "Infinity", "-Infinity", "0", "abc", "10000", "1.005"):
            with self.subTest(weight=weight):
                with self.assertRaises(ImportAborted) as ctx:
                    self.run_import(make_zip({"manifest.csv": header + f"Q,a|b,0,{weight}\n"}))
                self.assertIn("MarkWeight", ctx.exception.message)
        self.assertEqual(Question.objects.count(), 0)

    def test_largest_mark_weight_is_accepted(self):
        header = "QuestionText,Choices,CorrectChoiceIndex,MarkWeight\n"
        self.run_import(make_zip({"manifest.csv": header + "Q,a|b,0,9999.99\n"}))
        self.assertEqual(str(self.exam.questions.get().mark_weight), "9999.99")
