from flask import Blueprint, current_app, jsonify
from flask_login import login_required
from sqlalchemy.exc import SQLAlchemyError

from edu_portal.database import database
from edu_portal.errors import Conflict, NotFound, server_error_response
from edu_portal.forms import UnitForm
from edu_portal.routes.classes import get_class_or_404

units_bp = Blueprint("units", __name__, url_prefix="/api/units")

UNIT_NOT_FOUND = "الوحدة غير موجودة"
DUPLICATE_UNIT_TITLE = "هذا العنوان موجود بالفعل في هذا الصف. يرجى اختيار عنوان آخر"


def get_unit_or_404(unit_id):
    unit = database.get("SELECT * FROM units WHERE id = ?", [unit_id])
    if not unit:
        raise NotFound(UNIT_NOT_FOUND, "UNIT_NOT_FOUND")
    return unit


def ensure_unique_title(class_id, title, exclude_id=None):
    sql = "SELECT id FROM units WHERE class_id = ? AND title = ?"
    params = [class_id, title]
    if exclude_id is not None:
        sql += " AND id != ?"
        params.append(exclude_id)
    if database.get(sql, params):
        raise Conflict(DUPLICATE_UNIT_TITLE, "DUPLICATE_UNIT_TITLE")


# --- Public --- #

@units_bp.route("/class/<int:class_id>", methods=["GET"])
def list_units_by_class(class_id):
    try:
        units = database.all(
            "SELECT * FROM units WHERE class_id = ? ORDER BY created_at ASC, id ASC",
            [class_id],
        )
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error fetching units for class {class_id}: {e}")
        return server_error_response()
    return jsonify(units)


@units_bp.route("/<int:unit_id>", methods=["GET"])
def get_unit(unit_id):
    try:
        unit = get_unit_or_404(unit_id)
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error fetching unit {unit_id}: {e}")
        return server_error_response()
    return jsonify(unit)


# --- Admin --- #

@units_bp.route("", methods=["GET"])
@login_required
def list_units():
    try:
        units = database.all("""
            SELECT u.*, c.name AS class_name
            FROM units u
            JOIN classes c ON u.class_id = c.id
            ORDER BY u.created_at DESC, u.id DESC
        """)
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error fetching all units: {e}")
        return server_error_response()
    return jsonify(units)


@units_bp.route("", methods=["POST"])
@login_required
def create_unit():
    form = UnitForm.from_request().validate_or_raise()
    title = form.title.data
    class_id = form.class_id.data
    try:
        get_class_or_404(class_id)
        ensure_unique_title(class_id, title)
        result = database.run(
            "INSERT INTO units (title, title_en, class_id) VALUES (?, ?, ?)",
            [title, form.title_en.data or None, class_id],
        )
        new_unit = database.get("SELECT * FROM units WHERE id = ?", [result.inserted_id])
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error creating unit: {e}")
        return server_error_response()

    current_app.logger.info(f"Unit {new_unit['id']} created in class {class_id}.")
    return jsonify(new_unit), 201


@units_bp.route("/<int:unit_id>", methods=["PUT"])
@login_required
def update_unit(unit_id):
    form = UnitForm.from_request().validate_or_raise()
    title = form.title.data
    class_id = form.class_id.data
    try:
        get_class_or_404(class_id)
        ensure_unique_title(class_id, title, exclude_id=unit_id)
        result = database.run(
            "UPDATE units SET title = ?, title_en = ?, class_id = ? WHERE id = ?",
            [title, form.title_en.data or None, class_id, unit_id],
        )
        if result.rows_affected == 0:
            raise NotFound(UNIT_NOT_FOUND, "UNIT_NOT_FOUND")
        updated_unit = database.get("SELECT * FROM units WHERE id = ?", [unit_id])
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error updating unit {unit_id}: {e}")
        return server_error_response()

    current_app.logger.info(f"Unit {unit_id} updated.")
    return jsonify(updated_unit)


@units_bp.route("/<int:unit_id>", methods=["DELETE"])
@login_required
def delete_unit(unit_id):
    try:
        result = database.run("DELETE FROM units WHERE id = ?", [unit_id])
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error deleting unit {unit_id}: {e}")
        return server_error_response()

    if result.rows_affected == 0:
        raise NotFound(UNIT_NOT_FOUND, "UNIT_NOT_FOUND")
    current_app.logger.info(f"Unit {unit_id} deleted with all its lessons.")
    return jsonify(success=True, message="تم حذف الوحدة وجميع محتوياتها بنجاح!")
