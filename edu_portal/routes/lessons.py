from flask import Blueprint, current_app, jsonify, request
from flask_login import login_required
from sqlalchemy.exc import SQLAlchemyError

from edu_portal.database import database
from edu_portal.errors import Conflict, NotFound, server_error_response
from edu_portal.forms import LessonForm
from edu_portal.routes.units import get_unit_or_404
from edu_portal.storage import upload_image

lessons_bp = Blueprint("lessons", __name__, url_prefix="/api/lessons")

LESSON_NOT_FOUND = "الدرس غير موجود"
DUPLICATE_LESSON_TITLE = "يوجد درس بهذا العنوان في هذه الوحدة. يرجى اختيار عنوان آخر"

LESSON_WITH_PARENTS_SQL = """
    SELECT l.*, u.title AS unit_title, u.class_id AS class_id, c.name AS class_name
    FROM lessons l
    JOIN units u ON l.unit_id = u.id
    JOIN classes c ON u.class_id = c.id
"""


def get_lesson_or_404(lesson_id):
    lesson = database.get("SELECT * FROM lessons WHERE id = ?", [lesson_id])
    if not lesson:
        raise NotFound(LESSON_NOT_FOUND, "LESSON_NOT_FOUND")
    return lesson


def ensure_unique_title(unit_id, title, exclude_id=None):
    sql = "SELECT id FROM lessons WHERE unit_id = ? AND title = ?"
    params = [unit_id, title]
    if exclude_id is not None:
        sql += " AND id != ?"
        params.append(exclude_id)
    if database.get(sql, params):
        raise Conflict(DUPLICATE_LESSON_TITLE, "DUPLICATE_LESSON_TITLE")


def load_media(lesson_id):
    videos = database.all(
        "SELECT * FROM videos WHERE lesson_id = ? ORDER BY display_order ASC, id ASC",
        [lesson_id],
    )
    images = database.all(
        "SELECT * FROM images WHERE lesson_id = ? ORDER BY display_order ASC, id ASC",
        [lesson_id],
    )
    return videos, images


def replace_media(lesson_id, videos, images):
    """Drop the lesson's videos/images and insert the submitted set as is."""
    database.run("DELETE FROM videos WHERE lesson_id = ?", [lesson_id])
    database.run("DELETE FROM images WHERE lesson_id = ?", [lesson_id])
    for video in videos:
        database.run(
            "INSERT INTO videos (lesson_id, video_url, position, size, explanation, display_order) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            [lesson_id, video["video_url"], video["position"], video["size"],
             video.get("explanation") or None, video["display_order"]],
        )
    for image in images:
        database.run(
            "INSERT INTO images (lesson_id, image_path, position, size, caption, display_order) "
            "VALUES (?, ?, ?, ?, ?, ?)",
            [lesson_id, image["image_path"], image["position"], image["size"],
             image.get("caption") or None, image["display_order"]],
        )


def discard_lesson(lesson_id):
    """Remove a lesson whose media failed to save so the title can be reused."""
    try:
        database.run("DELETE FROM lessons WHERE id = ?", [lesson_id])
        current_app.logger.warning(f"Half-created lesson {lesson_id} removed.")
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Could not remove half-created lesson {lesson_id}: {e}")


def lesson_payload(lesson_id):
    lesson = database.get(LESSON_WITH_PARENTS_SQL + " WHERE l.id = ?", [lesson_id])
    if not lesson:
        raise NotFound(LESSON_NOT_FOUND, "LESSON_NOT_FOUND")
    lesson["videos"], lesson["images"] = load_media(lesson_id)
    return lesson


# --- Public --- #

@lessons_bp.route("/unit/<int:unit_id>", methods=["GET"])
def list_lessons_by_unit(unit_id):
    try:
        lessons = database.all(
            "SELECT id, unit_id, title, title_en, created_at FROM lessons "
            "WHERE unit_id = ? ORDER BY created_at ASC, id ASC",
            [unit_id],
        )
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error fetching lessons for unit {unit_id}: {e}")
        return server_error_response()
    return jsonify(lessons)


@lessons_bp.route("/<int:lesson_id>", methods=["GET"])
def get_lesson(lesson_id):
    try:
        lesson = lesson_payload(lesson_id)
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error fetching lesson {lesson_id}: {e}")
        return server_error_response()
    return jsonify(lesson)


# --- Admin --- #

@lessons_bp.route("", methods=["GET"])
@login_required
def list_lessons():
    try:
        lessons = database.all(LESSON_WITH_PARENTS_SQL + " ORDER BY l.created_at DESC, l.id DESC")
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error fetching all lessons: {e}")
        return server_error_response()
    return jsonify(lessons)


@lessons_bp.route("", methods=["POST"])
@login_required
def create_lesson():
    form = LessonForm.from_request().validate_or_raise()
    unit_id = form.unit_id.data
    lesson_id = None
    try:
        get_unit_or_404(unit_id)
        ensure_unique_title(unit_id, form.title.data)
        result = database.run(
            "INSERT INTO lessons (title, title_en, unit_id, content) VALUES (?, ?, ?, ?)",
            [form.title.data, form.title_en.data or None, unit_id, form.content.data or ""],
        )
        lesson_id = result.inserted_id
        replace_media(lesson_id, form.media("videos"), form.media("images"))
        new_lesson = lesson_payload(lesson_id)
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error creating lesson: {e}")
        if lesson_id is not None:
            discard_lesson(lesson_id)
        return server_error_response()

    current_app.logger.info(
        f"Lesson {lesson_id} created in unit {unit_id} "
        f"({len(new_lesson['videos'])} videos, {len(new_lesson['images'])} images)."
    )
    return jsonify(new_lesson), 201


@lessons_bp.route("/<int:lesson_id>", methods=["PUT"])
@login_required
def update_lesson(lesson_id):
    form = LessonForm.from_request().validate_or_raise()
    unit_id = form.unit_id.data
    try:
        get_unit_or_404(unit_id)
        ensure_unique_title(unit_id, form.title.data, exclude_id=lesson_id)
        result = database.run(
            "UPDATE lessons SET title = ?, title_en = ?, unit_id = ?, content = ? WHERE id = ?",
            [form.title.data, form.title_en.data or None, unit_id, form.content.data or "", lesson_id],
        )
        if result.rows_affected == 0:
            raise NotFound(LESSON_NOT_FOUND, "LESSON_NOT_FOUND")
        # Full replace, last write wins
        replace_media(lesson_id, form.media("videos"), form.media("images"))
        updated_lesson = lesson_payload(lesson_id)
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error updating lesson {lesson_id}: {e}")
        return server_error_response()

    current_app.logger.info(f"Lesson {lesson_id} updated.")
    return jsonify(updated_lesson)


@lessons_bp.route("/<int:lesson_id>", methods=["DELETE"])
@login_required
def delete_lesson(lesson_id):
    try:
        result = database.run("DELETE FROM lessons WHERE id = ?", [lesson_id])
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error deleting lesson {lesson_id}: {e}")
        return server_error_response()

    if result.rows_affected == 0:
        raise NotFound(LESSON_NOT_FOUND, "LESSON_NOT_FOUND")
    current_app.logger.info(f"Lesson {lesson_id} deleted with its media and questions.")
    return jsonify(success=True, message="تم حذف الدرس بنجاح!")


@lessons_bp.route("/upload-image", methods=["POST"])
@login_required
def upload_lesson_image():
    image_url = upload_image(
        request.files.get("image"),
        folder=current_app.config["CLOUDINARY_FOLDER"],
        ready=current_app.config.get("IMAGE_STORAGE_READY", False),
    )
    return jsonify(url=image_url)
