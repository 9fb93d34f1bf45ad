# edu_portal/routes/questions.py
"""Multiple-choice questions attached to a lesson.

The public listing never includes ``correct_answer``; students post one
answer at a time to the ``check`` endpoint, which looks the key up again on
every request.
"""

import zipfile

import pandas as pd
from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required
from sqlalchemy.exc import SQLAlchemyError

from edu_portal.database import database
from edu_portal.errors import NotFound, ValidationFailed, server_error_response
from edu_portal.extensions import csrf
from edu_portal.forms import AnswerForm, QuestionForm
from edu_portal.routes.lessons import get_lesson_or_404

questions_bp = Blueprint("questions", __name__, url_prefix="/api/lessons/<int:lesson_id>/questions")

QUESTION_NOT_FOUND = "السؤال غير موجود"
PUBLIC_COLUMNS = "id, lesson_id, question_text, option_a, option_b, option_c, option_d, display_order"

# Allowed extensions for question import files
ALLOWED_IMPORT_EXTENSIONS = {"csv", "xlsx"}
IMPORT_COLUMNS = ["question_text", "option_a", "option_b", "option_c", "option_d", "correct_answer"]


def allowed_import_file(filename):
    return ("." in filename and
            filename.rsplit(".", 1)[1].lower() in ALLOWED_IMPORT_EXTENSIONS)


def get_question_or_404(lesson_id, question_id):
    question = database.get(
        "SELECT * FROM questions WHERE id = ? AND lesson_id = ?",
        [question_id, lesson_id],
    )
    if not question:
        raise NotFound(QUESTION_NOT_FOUND, "QUESTION_NOT_FOUND")
    return question


def next_display_order(lesson_id):
    row = database.get(
        "SELECT COALESCE(MAX(display_order), -1) AS max_order FROM questions WHERE lesson_id = ?",
        [lesson_id],
    )
    return row["max_order"] + 1


def insert_question(lesson_id, form):
    display_order = form.display_order.data
    if display_order is None:
        display_order = next_display_order(lesson_id)
    result = database.run(
        "INSERT INTO questions (lesson_id, question_text, option_a, option_b, option_c, option_d, "
        "correct_answer, display_order) VALUES (?, ?, ?, ?, ?, ?, ?, ?)",
        [lesson_id, form.question_text.data, form.option_a.data, form.option_b.data,
         form.option_c.data, form.option_d.data, form.correct_answer.data, display_order],
    )
    return result.inserted_id


# --- Public --- #

@questions_bp.route("", methods=["GET"])
def list_questions(lesson_id):
    try:
        get_lesson_or_404(lesson_id)
        questions = database.all(
            f"SELECT {PUBLIC_COLUMNS} FROM questions WHERE lesson_id = ? ORDER BY display_order ASC, id ASC",
            [lesson_id],
        )
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error fetching questions for lesson {lesson_id}: {e}")
        return server_error_response()
    return jsonify(questions)


@questions_bp.route("/<int:question_id>/check", methods=["POST"])
@csrf.exempt
def check_answer(lesson_id, question_id):
    form = AnswerForm.from_request().validate_or_raise()
    try:
        question = database.get(
            "SELECT correct_answer FROM questions WHERE id = ? AND lesson_id = ?",
            [question_id, lesson_id],
        )
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error checking answer for question {question_id}: {e}")
        return server_error_response()

    if not question:
        raise NotFound(QUESTION_NOT_FOUND, "QUESTION_NOT_FOUND")
    correct_answer = question["correct_answer"].strip().upper()
    return jsonify(correct=form.answer.data == correct_answer, correctAnswer=correct_answer)


# --- Admin --- #

@questions_bp.route("/manage", methods=["GET"])
@login_required
def list_questions_with_answers(lesson_id):
    try:
        get_lesson_or_404(lesson_id)
        questions = database.all(
            "SELECT * FROM questions WHERE lesson_id = ? ORDER BY display_order ASC, id ASC",
            [lesson_id],
        )
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error fetching questions for lesson {lesson_id}: {e}")
        return server_error_response()
    return jsonify(questions)


@questions_bp.route("", methods=["POST"])
@login_required
def create_question(lesson_id):
    form = QuestionForm.from_request().validate_or_raise()
    try:
        get_lesson_or_404(lesson_id)
        question_id = insert_question(lesson_id, form)
        question = get_question_or_404(lesson_id, question_id)
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error adding question to lesson {lesson_id}: {e}")
        return server_error_response()

    current_app.logger.info(f"Question {question_id} added to lesson {lesson_id}.")
    return jsonify(question), 201


@questions_bp.route("/<int:question_id>", methods=["PUT"])
@login_required
def update_question(lesson_id, question_id):
    form = QuestionForm.from_request().validate_or_raise()
    try:
        existing = get_question_or_404(lesson_id, question_id)
        display_order = form.display_order.data
        if display_order is None:
            display_order = existing["display_order"]
        database.run(
            "UPDATE questions SET question_text = ?, option_a = ?, option_b = ?, option_c = ?, option_d = ?, "
            "correct_answer = ?, display_order = ? WHERE id = ?",
            [form.question_text.data, form.option_a.data, form.option_b.data, form.option_c.data,
             form.option_d.data, form.correct_answer.data, display_order, question_id],
        )
        question = get_question_or_404(lesson_id, question_id)
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error updating question {question_id}: {e}")
        return server_error_response()

    current_app.logger.info(f"Question {question_id} updated.")
    return jsonify(question)


@questions_bp.route("/<int:question_id>", methods=["DELETE"])
@login_required
def delete_question(lesson_id, question_id):
    try:
        result = database.run(
            "DELETE FROM questions WHERE id = ? AND lesson_id = ?",
            [question_id, lesson_id],
        )
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error deleting question {question_id}: {e}")
        return server_error_response()

    if result.rows_affected == 0:
        raise NotFound(QUESTION_NOT_FOUND, "QUESTION_NOT_FOUND")
    current_app.logger.info(f"Question {question_id} deleted from lesson {lesson_id}.")
    return jsonify(success=True, message="تم حذف السؤال بنجاح!")


def read_import_file(file):
    extension = file.filename.rsplit(".", 1)[1].lower()
    try:
        if extension == "csv":
            df = pd.read_csv(file.stream, dtype=str, keep_default_na=False, encoding="utf-8-sig")
        else:
            df = pd.read_excel(file.stream, dtype=str).fillna("")
    except (ValueError, UnicodeDecodeError, zipfile.BadZipFile) as e:
        current_app.logger.warning(f"Could not parse import file {file.filename}: {e}")
        raise ValidationFailed("تعذر قراءة الملف. تأكد من صيغته.", "INVALID_IMPORT_FILE") from e

    df.columns = [str(column).strip().lower() for column in df.columns]
    missing = [column for column in IMPORT_COLUMNS if column not in df.columns]
    if missing:
        raise ValidationFailed(f"الأعمدة التالية مفقودة: {', '.join(missing)}", "INVALID_IMPORT_FILE")
    return df


@questions_bp.route("/import", methods=["POST"])
@login_required
def import_questions(lesson_id):
    file = request.files.get("file")
    if not file or not file.filename:
        raise ValidationFailed("لم يتم اختيار ملف", "FILE_REQUIRED")
    if not allowed_import_file(file.filename):
        raise ValidationFailed("نوع الملف غير مسموح به. استخدم CSV أو XLSX.", "INVALID_FILE_TYPE")

    try:
        get_lesson_or_404(lesson_id)
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error loading lesson {lesson_id} for import: {e}")
        return server_error_response()

    df = read_import_file(file)
    current_app.logger.info(f"Importing {len(df)} rows into lesson {lesson_id} from {file.filename}.")

    imported = 0
    errors = []
    for index, row in df.iterrows():
        # Spreadsheet row number, header being row 1
        row_number = int(index) + 2
        payload = {key: value for key, value in row.to_dict().items() if value != ""}
        try:
            form = QuestionForm.from_payload(payload).validate_or_raise()
            insert_question(lesson_id, form)
            imported += 1
        except ValidationFailed as e:
            errors.append({"row": row_number, "error": e.message, "code": e.code})
        except SQLAlchemyError as e:
            current_app.logger.exception(f"Error importing row {row_number}: {e}")
            errors.append({"row": row_number, "error": "حدث خطأ في الخادم", "code": "SERVER_ERROR"})

    current_app.logger.info(f"Import into lesson {lesson_id} finished: {imported} imported, {len(errors)} rejected.")
    return jsonify(imported=imported, errors=errors)
