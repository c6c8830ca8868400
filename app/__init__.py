import os
import logging

import click
from flask import Flask, jsonify
from werkzeug.security import generate_password_hash

from app.config import config_by_name
from app.extensions import db, migrate, login_manager, limiter, role_sessions


def create_app(config_name=None):
    """Application factory."""

    if config_name is None:
        config_name = os.environ.get("FLASK_ENV", "development")

    app = Flask(__name__)
    app.config.from_object(config_by_name[config_name])

    # --- Validate required env vars (skip in testing) ---
    if config_name != "testing":
        try:
            config_by_name[config_name].validate()
        except RuntimeError as e:
            app.logger.warning(f"Config validation: {e}")

    # --- Init extensions ---
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)
    limiter.init_app(app)
    role_sessions.init_app(app)

    # --- Import models so Alembic can discover them ---
    with app.app_context():
        from app import models  # noqa: F401

    # --- Register blueprints ---
    from app.blueprints.auth import auth_bp
    from app.blueprints.api import api_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(api_bp)

    # --- Root route ---
    @app.route("/")
    def index():
        """Liveness check."""
        return jsonify({"status": "ok"})

    # --- Error handlers ---
    @app.errorhandler(400)
    def bad_request(e):
        return jsonify({"error": "Bad request."}), 400

    @app.errorhandler(403)
    def forbidden(e):
        return jsonify({"error": "You do not have access to this."}), 403

    @app.errorhandler(404)
    def not_found(e):
        return jsonify({"error": "Not found."}), 404

    @app.errorhandler(429)
    def rate_limited(e):
        return jsonify({"error": "Too many attempts. Try again later."}), 429

    @app.errorhandler(500)
    def server_error(e):
        return jsonify({"error": "Something went wrong."}), 500

    # --- CLI commands ---
    register_cli(app)

    # --- Security headers ---
    @app.after_request
    def add_security_headers(response):
        """Add security headers to every response."""
        # Prevent MIME type sniffing
        response.headers["X-Content-Type-Options"] = "nosniff"
        # Prevent clickjacking
        response.headers["X-Frame-Options"] = "DENY"
        # Control referrer information
        response.headers["Referrer-Policy"] = "no-referrer"
        # JSON only: nothing to load, nothing to frame
        response.headers["Content-Security-Policy"] = (
            "default-src 'none'; frame-ancestors 'none';"
        )
        # Strict Transport Security (only in production)
        if not app.debug:
            response.headers["Strict-Transport-Security"] = (
                "max-age=31536000; includeSubDomains"
            )
        return response

    # --- Logging ---
    if not app.debug:
        level = app.config.get("LOG_LEVEL", "INFO")
        logging.basicConfig(level=getattr(logging, level, logging.INFO))

    return app


def register_cli(app):
    """Register custom CLI commands with the Flask app."""

    @app.cli.command("create-staff")
    @click.option("--email", required=True, help="Account email")
    @click.option("--password", required=True, help="Account password")
    @click.option("--full-name", default=None, help="Display name")
    @click.option(
        "--role",
        type=click.Choice(["employee", "manager", "admin"]),
        default="admin",
        show_default=True,
    )
    def create_staff(email, password, full_name, role):
        """Create an account + profile with a given role.

        This is the supported way to bootstrap the first admin or manager.

        Usage:
            flask create-staff --email admin@example.com --password s3cret
            flask create-staff --email lead@example.com --password s3cret --role manager
        """
        from app.models.account import Account
        from app.services import user_service

        email = email.lower().strip()
        full_name = full_name or ("System Administrator" if role == "admin" else "System Manager")

        account = Account.query.filter_by(email=email).first()
        if account:
            click.echo(f"Account already exists: {email}")
        else:
            account = Account(
                email=email,
                password_hash=generate_password_hash(password),
                display_name=full_name,
            )
            db.session.add(account)
            db.session.commit()
            click.echo(f"Created account: {email}")

        user_service.create_user(account.id, {
            "email": email,
            "fullName": full_name,
            "role": role,
        })
        click.echo(f"  UID:   {account.id}")
        click.echo(f"  Role:  {role}")

    @app.cli.command("set-role")
    @click.option("--email", required=True, help="Account email")
    @click.option(
        "--role",
        type=click.Choice(["employee", "manager", "admin"]),
        required=True,
    )
    def set_role(email, role):
        """Change the role of an existing account's profile.

        Usage:
            flask set-role --email someone@example.com --role manager
        """
        from app.models.account import Account
        from app.services import user_service

        account = Account.query.filter_by(email=email.lower().strip()).first()
        if account is None:
            click.echo(f"ERROR: no account for {email}")
            return

        try:
            user_service.update_user_role(account.id, role)
        except ValueError as e:
            click.echo(f"ERROR: {e}")
            return
        click.echo(f"{email} is now {role}")
