import os
import logging

from flask import Flask, jsonify
from sqlalchemy.exc import SQLAlchemyError

from edu_portal.config import DEFAULT_ADMIN_PASSWORD, load_config
from edu_portal.extensions import csrf, db, login_manager
from edu_portal.errors import register_error_handlers
from edu_portal.models import Admin
from edu_portal.storage import init_storage

logger = logging.getLogger(__name__)


def configure_logging(app):
    level = getattr(logging, app.config.get("LOG_LEVEL", "INFO"), logging.INFO)
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    app.logger.setLevel(level)


def ensure_admin(app):
    """Create the single admin account from the environment when none exists."""
    existing_admin = Admin.query.first()
    if existing_admin:
        logger.info("Admin account already exists.")
        return existing_admin

    admin = Admin(username=app.config["ADMIN_USERNAME"])
    admin.set_password(app.config["ADMIN_PASSWORD"])
    db.session.add(admin)
    db.session.commit()
    logger.info(f"Default admin account created: {admin.username}")
    if app.config["ADMIN_PASSWORD"] == DEFAULT_ADMIN_PASSWORD:
        logger.warning("The admin account uses the default password. CHANGE IT IN PRODUCTION!")
    return admin


def init_database(app):
    with app.app_context():
        db.create_all()
        ensure_admin(app)


def create_app(config_overrides=None):
    app = Flask(__name__, template_folder="templates", static_folder="static")

    # Configuration
    app.config.update(load_config())
    if config_overrides:
        app.config.update(config_overrides)
    app.json.ensure_ascii = False

    configure_logging(app)

    database_uri = app.config["SQLALCHEMY_DATABASE_URI"]
    if database_uri.startswith("sqlite:///") and ":memory:" not in database_uri:
        os.makedirs(os.path.dirname(database_uri[len("sqlite:///"):]) or ".", exist_ok=True)
        logger.info("Using embedded SQLite database.")
    else:
        logger.info("Using hosted database.")

    # Initialize extensions with app
    db.init_app(app)
    login_manager.init_app(app)
    csrf.init_app(app)
    init_storage(app)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(Admin, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify(error="غير مصرح لك. يرجى تسجيل الدخول.", code="AUTH_REQUIRED"), 401

    # Import Blueprints (inside create_app to avoid circular imports)
    from edu_portal.routes.auth import auth_bp
    from edu_portal.routes.classes import classes_bp
    from edu_portal.routes.units import units_bp
    from edu_portal.routes.lessons import lessons_bp
    from edu_portal.routes.questions import questions_bp
    from edu_portal.routes.dashboard import dashboard_bp
    from edu_portal.routes.pages import pages_bp

    # Register Blueprints (prefixes live on the blueprints)
    app.register_blueprint(auth_bp)
    app.register_blueprint(classes_bp)
    app.register_blueprint(units_bp)
    app.register_blueprint(lessons_bp)
    app.register_blueprint(questions_bp)
    app.register_blueprint(dashboard_bp)
    app.register_blueprint(pages_bp)

    register_error_handlers(app)

    from edu_portal.cli import register_commands
    register_commands(app)

    # Create database tables and default admin if needed
    try:
        init_database(app)
    except SQLAlchemyError as e:
        logger.error(f"Error during database initialization or admin creation: {e}")
        raise

    return app
