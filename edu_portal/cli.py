# edu_portal/cli.py
import secrets

import click
from flask import current_app
from sqlalchemy import inspect

from edu_portal.database import database
from edu_portal.extensions import db
from edu_portal.models import Admin


def register_commands(app):
    @app.cli.command("init-db")
    def init_db_command():
        """Create missing tables and the default admin account."""
        from edu_portal.main import ensure_admin

        db.create_all()
        admin = ensure_admin(current_app)
        click.echo(f"Database ready. Admin account: {admin.username}")

    @app.cli.command("check-db")
    def check_db_command():
        """List every table with its columns and row count."""
        inspector = inspect(db.engine)
        click.echo(f"Database type: {db.engine.dialect.name}")
        for table in database.list_tables():
            columns = ", ".join(f"{column['name']} ({column['type']})" for column in inspector.get_columns(table))
            total = database.get(f'SELECT COUNT(*) AS total FROM "{table}"')["total"]
            click.echo(f"{table} [{total} rows]: {columns}")

    @app.cli.command("reset-admin-password")
    @click.option("--username", default=None, help="Admin username (defaults to the only admin).")
    @click.password_option()
    def reset_admin_password_command(username, password):
        """Store a new password hash for the admin account."""
        query = Admin.query.filter_by(username=username) if username else Admin.query
        admin = query.first()
        if not admin:
            raise click.ClickException("Admin account not found. Run `flask init-db` first.")
        if len(password) < 8:
            raise click.ClickException("Password must be at least 8 characters.")
        admin.set_password(password)
        db.session.commit()
        click.echo(f"Password updated for {admin.username}.")

    @app.cli.command("generate-secret")
    def generate_secret_command():
        """Print a random SECRET_KEY value."""
        click.echo(secrets.token_hex(64))
