"""Initialize the Flask app and its extensions."""

import os

import firebase_admin
from firebase_admin import credentials, firestore
from flask import Flask, current_app, g, session
from werkzeug.middleware.proxy_fix import ProxyFix

from .core.constants import (
    DEFAULT_TOURNAMENT_FORMAT,
    PROGRESSION_TOP_N,
    USERS_COLLECTION,
)
from .extensions import csrf


def create_app(test_config=None):
    """Create and configure an instance of the Flask application."""
    app = Flask(__name__, instance_relative_config=True)

    # Load configuration
    app.config.from_mapping(
        SECRET_KEY=os.environ.get("SECRET_KEY") or "dev",
        DEFAULT_TOURNAMENT_FORMAT=os.environ.get("DEFAULT_TOURNAMENT_FORMAT")
        or DEFAULT_TOURNAMENT_FORMAT,
        PROGRESSION_TOP_N=int(os.environ.get("PROGRESSION_TOP_N") or PROGRESSION_TOP_N),
        LEADERBOARD_PAGE_SIZE=int(os.environ.get("LEADERBOARD_PAGE_SIZE") or 100),
    )

    if test_config:
        app.config.update(test_config)

    # Initialize Firebase Admin SDK only if not in testing mode
    if not app.config.get("TESTING"):
        cred = None
        project_id = None
        cred_info = {}

        # First, try to load from environment variable (for production)
        cred_json = os.environ.get("FIREBASE_CREDENTIALS_JSON")
        if cred_json:
            import json

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
                import json

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
                project_id = os.environ.get("FIREBASE_PROJECT_ID")
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

    # Initialize extensions
    csrf.init_app(app)

    # Register blueprints
    from . import bracket as bracket_bp

    app.register_blueprint(bracket_bp.bp)

    from . import admin as admin_bp

    app.register_blueprint(admin_bp.bp)

    from . import picks as picks_bp

    app.register_blueprint(picks_bp.bp)

    from . import leaderboard as leaderboard_bp

    app.register_blueprint(leaderboard_bp.bp)

    from . import achievements as achievements_bp

    app.register_blueprint(achievements_bp.bp)

    from . import error_handlers

    app.register_blueprint(error_handlers.error_handlers_bp)

    @app.before_request
    def load_logged_in_user():
        """If a user_id is in the session, load the user's profile into g."""
        user_id = session.get("user_id")
        g.user = None
        if user_id is None:
            return

        try:
            db = firestore.client()
            user_doc = db.collection(USERS_COLLECTION).document(user_id).get()
            g.user = (user_doc.to_dict() or {}) if user_doc.exists else {}
            g.user["uid"] = user_id  # Ensure uid is in the user object
        except Exception as e:
            current_app.logger.error(f"Error loading user from session: {e}")
            session.clear()  # Clear session on error to be safe

    app.wsgi_app = ProxyFix(app.wsgi_app, x_for=1, x_proto=1, x_host=1, x_prefix=1)

    return app
