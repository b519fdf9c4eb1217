import logging
import os

from flask import Flask, g, jsonify
from dotenv import load_dotenv
from werkzeug.exceptions import HTTPException

from app.fieldops.config import load_config
from app.fieldops.db import init_db, teardown_db_session
from app.fieldops.errors import ShopServiceError, ValidationError
from app.fieldops.routes import bp as routes_bp
from app.fieldops.modules.shops.api import bp as shops_bp


def _rollback_request_session() -> None:
    s = getattr(g, "db_session", None)
    if s is not None:
        s.rollback()


def create_app() -> Flask:
    load_dotenv()
    app = Flask(__name__)
    app.config.from_mapping(load_config())

    level = getattr(logging, app.config.get("LOG_LEVEL") or "INFO", logging.INFO)
    logging.getLogger("app.fieldops").setLevel(level)
    app.logger.setLevel(level)

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
        if hasattr(os, "register_at_fork"):
            def _after_fork_child():
                engine = app.extensions.get("sqlalchemy_engine")
                if engine:
                    engine.dispose()
                    app.logger.info("Disposed DB engine after fork (pid=%s)", os.getpid())

            os.register_at_fork(after_in_child=_after_fork_child)

    _dispose_engine_on_fork()

    app.register_blueprint(routes_bp)
    app.register_blueprint(shops_bp, url_prefix="/api/mobile")

    app.teardown_appcontext(teardown_db_session)

    @app.errorhandler(ShopServiceError)
    def _err_shop_service(e: ShopServiceError):  # type: ignore[no-redef]
        _rollback_request_session()
        body: dict = {"success": False, "error": e.message}
        if isinstance(e, ValidationError):
            body["errors"] = [fe.as_dict() for fe in e.errors]
        return jsonify(body), e.status_code

    @app.errorhandler(HTTPException)
    def _err_http(e: HTTPException):  # type: ignore[no-redef]
        return jsonify({"success": False, "error": e.description or e.name}), e.code

    @app.errorhandler(Exception)
    def _err_500(e: Exception):  # type: ignore[no-redef]
        _rollback_request_session()
        app.logger.exception("Unhandled error (request_id=%s)", getattr(g, "request_id", None))
        return jsonify({"success": False, "error": "Server error"}), 500

    logging.getLogger(__name__).info("create_app() complete; app ready to serve")

    return app
