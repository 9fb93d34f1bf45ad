from flask import Blueprint, current_app, jsonify
from flask_login import login_required
from sqlalchemy.exc import SQLAlchemyError

from edu_portal.database import database
from edu_portal.errors import server_error_response

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/stats")

COUNTED_TABLES = ("classes", "units", "lessons", "questions")


def get_dashboard_data():
    # Table names come from the fixed tuple above, never from the request
    return {
        f"{table}_count": database.get(f"SELECT COUNT(*) AS total FROM {table}")["total"]
        for table in COUNTED_TABLES
    }


@dashboard_bp.route("", methods=["GET"])
@login_required
def stats():
    try:
        data = get_dashboard_data()
    except SQLAlchemyError as e:
        current_app.logger.exception(f"Error computing dashboard stats: {e}")
        return server_error_response()
    return jsonify(data)
