from flask import Blueprint, abort, render_template

pages_bp = Blueprint("pages", __name__)


@pages_bp.route("/admin", defaults={"path": ""})
@pages_bp.route("/admin/<path:path>")
def admin_shell(path):
    # Protected on the API level; the shell itself holds no data
    return render_template("admin.html")


@pages_bp.route("/", defaults={"path": ""})
@pages_bp.route("/<path:path>")
def public_shell(path):
    if path.startswith("api/") or path == "api":
        abort(404)
    return render_template("index.html")
