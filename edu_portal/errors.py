# edu_portal/errors.py
import traceback

from flask import current_app, jsonify, request
from flask_wtf.csrf import CSRFError

from edu_portal.extensions import db

SERVER_ERROR_MESSAGE = "حدث خطأ في الخادم"


class ApiError(Exception):
    """Error surfaced to the client as ``{error, code}``."""

    status_code = 400
    default_code = "BAD_REQUEST"

    def __init__(self, message, code=None, status_code=None):
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        if status_code is not None:
            self.status_code = status_code

    def to_dict(self):
        return {"error": self.message, "code": self.code}


class ValidationFailed(ApiError):
    status_code = 400
    default_code = "VALIDATION_ERROR"


class NotFound(ApiError):
    status_code = 404
    default_code = "NOT_FOUND"


class Conflict(ApiError):
    status_code = 409
    default_code = "CONFLICT"


class UpstreamError(ApiError):
    status_code = 502
    default_code = "UPSTREAM_ERROR"


class ServiceUnavailable(ApiError):
    status_code = 503
    default_code = "SERVICE_UNAVAILABLE"


def server_error_response():
    return jsonify(error=SERVER_ERROR_MESSAGE), 500


def register_error_handlers(app):
    @app.errorhandler(ApiError)
    def handle_api_error(e):
        if e.status_code >= 500:
            current_app.logger.error(f"{e.code}: {e.message}")
        else:
            current_app.logger.warning(f"{request.method} {request.path} -> {e.status_code} {e.code}")
        return jsonify(e.to_dict()), e.status_code

    @app.errorhandler(CSRFError)
    def handle_csrf_error(e):
        current_app.logger.warning(f"CSRF check failed for {request.path}: {e.description}")
        return jsonify(error="رمز الحماية غير صالح، يرجى تحديث الصفحة", code="CSRF_FAILED"), 400

    @app.errorhandler(404)
    def page_not_found(e):
        return jsonify(error="Resource not found", code="NOT_FOUND"), 404

    @app.errorhandler(405)
    def method_not_allowed(e):
        return jsonify(error="Method not allowed", code="METHOD_NOT_ALLOWED"), 405

    @app.errorhandler(413)
    def request_too_large(e):
        return jsonify(error="حجم الملف أكبر من المسموح", code="FILE_TOO_LARGE"), 413

    @app.errorhandler(500)
    def internal_server_error(e):
        original = getattr(e, "original_exception", None) or e
        current_app.logger.error(f"Internal Server Error: {original}")
        db.session.rollback()
        body = {"error": SERVER_ERROR_MESSAGE}
        if current_app.config.get("APP_ENV") != "production":
            body["error"] = str(original) or SERVER_ERROR_MESSAGE
            body["stack"] = "".join(traceback.format_exception(type(original), original, original.__traceback__))
        return jsonify(body), 500
