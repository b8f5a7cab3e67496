import logging
from datetime import timedelta

from dotenv import load_dotenv
from flask import Flask, g, request, session
from sqlalchemy import inspect as sa_inspect
from werkzeug.exceptions import HTTPException

from app.customs.api import fail
from app.customs.config import load_config
from app.customs.db import init_db, teardown_db_session
from app.customs.routes import bp as routes_bp
from app.customs.auth import bp as auth_bp, load_current_user
from app.customs.admin import bp as admin_bp
from app.customs.functions import bp as functions_bp
from app.customs.modules.clients.admin import bp as clients_bp
from app.customs.modules.dispatches.admin import bp as dispatches_bp
from app.customs.modules.documents.admin import bp as documents_bp
from app.customs.modules.payments.admin import bp as payments_bp
from app.customs.modules.calendar.admin import bp as calendar_bp
from app.customs.modules.notifications.views import bp as notifications_bp
from app.customs.modules.portal.views import bp as portal_bp
from app.customs.modules.users.admin import bp as users_bp

_UNGUARDED_PREFIXES = ("/static/", "/health", "/healthz")


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())
    app.config["PERMANENT_SESSION_LIFETIME"] = timedelta(hours=8)
    app.config["SESSION_REFRESH_EACH_REQUEST"] = True

    from app.customs.security import ensure_csrf_token, validate_csrf

    @app.before_request
    def _csrf_guard():
        if request.path.startswith(_UNGUARDED_PREFIXES):
            return None
        # Bearer-token callers never ride on the session cookie.
        if request.headers.get("Authorization", "").lower().startswith("bearer "):
            return None
        ensure_csrf_token()
        session.permanent = True
        if request.method in ("POST", "PUT", "PATCH", "DELETE"):
            if (request.endpoint or "").startswith(("auth.", "functions.")):
                return None
            if not validate_csrf(request):
                return fail("CSRF token missing or invalid.", 400)
        return None

    # Production guardrails (fail fast with clear logs)
    env = (app.config.get("ENV") or "").strip().lower()
    if env in ("prod", "production"):
        if not app.config.get("DATABASE_URL") or str(app.config["DATABASE_URL"]).strip() == "":
            raise RuntimeError("DATABASE_URL is required in production.")
        if str(app.config["DATABASE_URL"]).startswith("sqlite"):
            raise RuntimeError("DATABASE_URL must be Postgres in production (not sqlite).")
        if not app.config.get("SECRET_KEY") or str(app.config["SECRET_KEY"]) in ("", "change-me"):
            raise RuntimeError("SECRET_KEY must be set to a strong value in production (not default).")

    init_db(app)

    def _dispose_engine_on_fork() -> None:
        import os

        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    # Storage health check (fail loudly on misconfiguration)
    if app.config.get("STORAGE_BACKEND") == "s3":
        missing_s3 = [
            key
            for key in ("S3_ENDPOINT", "S3_BUCKET", "S3_ACCESS_KEY_ID", "S3_SECRET_ACCESS_KEY")
            if not app.config.get(key)
        ]
        if missing_s3:
            app.logger.error("STORAGE CONFIG ERROR: Missing required S3 env vars: %s", ", ".join(missing_s3))
        else:
            try:
                from app.customs.storage import S3Storage, storage_from_config

                storage = storage_from_config(app.config)
                if isinstance(storage, S3Storage):
                    storage._client().head_bucket(Bucket=storage.bucket)
                    app.logger.info("Storage health check PASSED: S3 bucket '%s' accessible", storage.bucket)
            except Exception as e:
                app.logger.error("STORAGE CONFIG ERROR: Cannot access S3 bucket: %s", e)

    app.register_blueprint(routes_bp)
    app.register_blueprint(auth_bp, url_prefix="/auth")
    app.register_blueprint(admin_bp, url_prefix="/admin")
    app.register_blueprint(clients_bp, url_prefix="/admin")
    app.register_blueprint(dispatches_bp, url_prefix="/admin")
    app.register_blueprint(documents_bp, url_prefix="/admin")
    app.register_blueprint(payments_bp, url_prefix="/admin")
    app.register_blueprint(calendar_bp, url_prefix="/admin")
    app.register_blueprint(users_bp, url_prefix="/admin")
    app.register_blueprint(notifications_bp, url_prefix="/notifications")
    app.register_blueprint(portal_bp, url_prefix="/portal")
    app.register_blueprint(functions_bp, url_prefix="/functions/v1")

    app.before_request(load_current_user)
    app.teardown_appcontext(teardown_db_session)

    def _log_schema_drift() -> None:
        # Log only; tests and fresh installs create tables after boot.
        from app.customs.models import Base

        try:
            insp = sa_inspect(app.extensions["sqlalchemy_engine"])
            missing = [name for name in Base.metadata.tables if not insp.has_table(name)]
        except Exception as e:
            app.logger.exception("Schema health check failed: %s", e)
            return
        if missing:
            app.logger.warning("DB schema out of date; run `alembic upgrade head`. Missing: %s", ", ".join(sorted(missing)))

    _log_schema_drift()

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):
        if e.code == 403:
            missing = getattr(g, "missing_permission", None)
            if missing:
                app.logger.warning("Forbidden: missing_permission=%s request_id=%s", missing, getattr(g, "request_id", None))
                return fail("Forbidden.", 403, missing_permission=missing)
        if e.code == 413:
            limit_mb = int(app.config.get("MAX_UPLOAD_BYTES") or 0) // (1024 * 1024)
            return fail(f"File too large. Maximum size is {limit_mb}MB.", 413)
        return fail(e.description or e.name, e.code or 500)

    @app.errorhandler(500)
    def _err_500(e):
        rid = getattr(g, "request_id", None)
        app.logger.exception("Unhandled 500 (request_id=%s)", rid)
        return fail("Internal server error.", 500, request_id=rid)

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
