"""Initialize the Flask app and its extensions."""

import json
import os

import firebase_admin
from firebase_admin import credentials
from flask import Flask, jsonify
from werkzeug.middleware.proxy_fix import ProxyFix

from .extensions import csrf


def _env_flag(name, default="false"):
    return (os.environ.get(name) or default).lower() in ["true", "1", "t"]


def _initialize_firebase(app):
    """Initialize the Firebase Admin SDK from env, file, or default credentials."""
    cred = None
    project_id = None

    # First, try to load from environment variable (for production)
    cred_json = app.config.get("FIREBASE_CREDENTIALS_JSON")
    if cred_json:
        try:
            cred_info = json.loads(cred_json)
            project_id = cred_info.get("project_id")
            cred = credentials.Certificate(cred_info)
        except (json.JSONDecodeError, ValueError) as e:
            app.logger.error(f"Error parsing FIREBASE_CREDENTIALS_JSON: {e}")

    # If env var fails or is not present, try loading from file (for local dev)
    if not cred:
        cred_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)), "firebase_credentials.json"
        )
        if os.path.exists(cred_path):
            try:
                with open(cred_path, "r") as f:
                    cred_info = json.load(f)
                project_id = cred_info.get("project_id")
                cred = credentials.Certificate(cred_path)
            except (json.JSONDecodeError, ValueError) as e:
                app.logger.error(f"Error loading credentials from file: {e}")

    # If both methods fail, fallback to default credentials
    if not cred:
        try:
            cred = credentials.ApplicationDefault()
            project_id = app.config.get("FIREBASE_PROJECT_ID")
        except Exception as e:
            app.logger.error(
                f"Could not find any valid credentials (env, file, or default): {e}"
            )

    if cred and not firebase_admin._apps:
        try:
            firebase_options = {}
            if project_id:
                firebase_options["projectId"] = project_id
            firebase_admin.initialize_app(cred, firebase_options)
        except ValueError:
            # This can happen if the app is already initialized, which is fine.
            app.logger.info("Firebase app already initialized.")


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        FIREBASE_CREDENTIALS_JSON=os.environ.get("FIREBASE_CREDENTIALS_JSON"),
        FIREBASE_PROJECT_ID=os.environ.get("FIREBASE_PROJECT_ID"),
        # "optimistic" trusts a stored identity, "revalidate" asks Firebase
        RESTORATION_POLICY=os.environ.get("RESTORATION_POLICY") or "optimistic",
        # "session" keeps the identity in the cookie, "file" at IDENTITY_STORE_PATH
        IDENTITY_STORE=os.environ.get("IDENTITY_STORE") or "session",
        IDENTITY_STORE_PATH=os.environ.get("IDENTITY_STORE_PATH"),
        IDENTITY_STORE_RETRY_DELAY=float(
            os.environ.get("IDENTITY_STORE_RETRY_DELAY") or 0.2
        ),
        SESSION_COOKIE_SECURE=_env_flag("SESSION_COOKIE_SECURE"),
        SESSION_COOKIE_HTTPONLY=True,
        SESSION_COOKIE_SAMESITE="Lax",
        FIRESTORE_CLIENT=None,
    )

    if test_config:
        app.config.update(test_config)

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        _initialize_firebase(app)

    # Initialize extensions
    csrf.init_app(app)

    # Register blueprints
    from . import auth as auth_bp

    app.register_blueprint(auth_bp.bp)

    from . import family as family_bp

    app.register_blueprint(family_bp.bp)

    from . import activity as activity_bp

    app.register_blueprint(activity_bp.bp)

    from . import profile as profile_bp

    app.register_blueprint(profile_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    from .errors import RepositoryError
    from .repository import get_repository

    @app.route("/health")
    def health():
        """Liveness check; makes no remote calls."""
        return jsonify({"status": "ok"})

    @app.route("/health/ready")
    def ready():
        """Readiness check; fails while Firestore cannot be reached."""
        try:
            get_repository().check_available()
        except RepositoryError as e:
            app.logger.error(f"Readiness check failed: {e.message}")
            return jsonify({"status": "unavailable", "error": e.kind.value}), 503
        return jsonify({"status": "ok"})

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
