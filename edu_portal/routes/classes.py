from flask import Blueprint, current_app, jsonify
from flask_login import login_required
from sqlalchemy.exc import SQLAlchemyError

from edu_portal.database import database
from edu_portal.errors import NotFound, server_error_response
from edu_portal.forms import ClassForm

classes_bp = Blueprint("classes", __name__, url_prefix="/api/classes")

CLASS_NOT_FOUND = "الصف الدراسي غير موجود"


def get_class_or_404(class_id):
    class_row = database.get("SELECT * FROM classes WHERE id = ?", [class_id])
    if not class_row:
        raise NotFound(CLASS_NOT_FOUND, "CLASS_NOT_FOUND")
    return class_row


# --- Public --- #

@classes_bp.route("", methods=["GET"])
def list_classes():
    try:
        classes = database.all("SELECT * FROM classes ORDER BY created_at DESC, id DESC")
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error fetching classes: {e}")
        return server_error_response()
    return jsonify(classes)


@classes_bp.route("/<int:class_id>", methods=["GET"])
def get_class(class_id):
    try:
        class_row = get_class_or_404(class_id)
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error fetching class {class_id}: {e}")
        return server_error_response()
    return jsonify(class_row)


# --- Admin --- #

@classes_bp.route("", methods=["POST"])
@login_required
def create_class():
    form = ClassForm.from_request().validate_or_raise()
    try:
        result = database.run(
            "INSERT INTO classes (name, name_en) VALUES (?, ?)",
            [form.name.data, form.name_en.data or None],
        )
        new_class = database.get("SELECT * FROM classes WHERE id = ?", [result.inserted_id])
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error creating class: {e}")
        return server_error_response()

    current_app.logger.info(f"Class {new_class['id']} created.")
    return jsonify(new_class), 201


@classes_bp.route("/<int:class_id>", methods=["PUT"])
@login_required
def update_class(class_id):
    form = ClassForm.from_request().validate_or_raise()
    try:
        result = database.run(
            "UPDATE classes SET name = ?, name_en = ? WHERE id = ?",
            [form.name.data, form.name_en.data or None, class_id],
        )
        if result.rows_affected == 0:
            raise NotFound(CLASS_NOT_FOUND, "CLASS_NOT_FOUND")
        updated_class = database.get("SELECT * FROM classes WHERE id = ?", [class_id])
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error updating class {class_id}: {e}")
        return server_error_response()

    current_app.logger.info(f"Class {class_id} updated.")
    return jsonify(updated_class)


@classes_bp.route("/<int:class_id>", methods=["DELETE"])
@login_required
def delete_class(class_id):
    try:
        # Units, lessons and their media/questions go with it (ON DELETE CASCADE)
        result = database.run("DELETE FROM classes WHERE id = ?", [class_id])
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error deleting class {class_id}: {e}")
        return server_error_response()

    if result.rows_affected == 0:
        raise NotFound(CLASS_NOT_FOUND, "CLASS_NOT_FOUND")
    current_app.logger.info(f"Class {class_id} deleted with all its content.")
    return jsonify(success=True, message="تم حذف الصف وجميع محتوياته بنجاح!")
