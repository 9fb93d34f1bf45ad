from flask import Blueprint, current_app, jsonify, session
from flask_login import current_user, login_required, login_user, logout_user
from sqlalchemy.exc import SQLAlchemyError

from edu_portal.errors import ApiError, ValidationFailed, server_error_response
from edu_portal.extensions import db
from edu_portal.forms import ChangePasswordForm, LoginForm
from edu_portal.models.admin import Admin

auth_bp = Blueprint("auth", __name__, url_prefix="/api/auth")


@auth_bp.route("/login", methods=["POST"])
def login():
    form = LoginForm.from_request().validate_or_raise()
    username = form.username.data
    password = form.password.data

    admin = Admin.query.filter_by(username=username).first()
    if not admin or not admin.check_password(password):
        current_app.logger.warning(f"Failed login attempt for username: {username}")
        raise ApiError("اسم المستخدم أو كلمة المرور غير صحيحة.", "INVALID_CREDENTIALS", 401)

    # Permanent sessions expire after PERMANENT_SESSION_LIFETIME
    session.permanent = True
    login_user(admin)
    current_app.logger.info(f"Admin {admin.username} logged in.")
    return jsonify(success=True, admin=admin.to_dict())


@auth_bp.route("/logout", methods=["POST"])
def logout():
    if current_user.is_authenticated:
        current_app.logger.info(f"Admin {current_user.username} logged out.")
    logout_user()
    return jsonify(success=True, message="تم تسجيل الخروج بنجاح.")


@auth_bp.route("/verify", methods=["GET"])
def verify():
    if not current_user.is_authenticated:
        return jsonify(authenticated=False), 401
    return jsonify(authenticated=True, admin=current_user.to_dict())


@auth_bp.route("/change-password", methods=["POST"])
@login_required
def change_password():
    form = ChangePasswordForm.from_request().validate_or_raise()

    if not current_user.check_password(form.current_password.data):
        raise ValidationFailed("كلمة المرور الحالية غير صحيحة.", "WRONG_PASSWORD")
    if form.new_password.data == form.current_password.data:
        raise ValidationFailed("كلمة المرور الجديدة يجب أن تكون مختلفة عن الحالية.", "PASSWORD_UNCHANGED")

    try:
        current_user.set_password(form.new_password.data)
        db.session.commit()
    except SQLAlchemyError as e:
        db.session.rollback()
        current_app.logger.exception(f"Error updating admin password: {e}")
        return server_error_response()

    current_app.logger.info(f"Admin {current_user.username} changed the password.")
    return jsonify(success=True, message="تم تغيير كلمة المرور بنجاح!")
