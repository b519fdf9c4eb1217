import logging

from flask import Blueprint, jsonify
from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from app.fieldops.db import db_session

bp = Blueprint("routes", __name__)
logger = logging.getLogger(__name__)


@bp.get("/health")
def health():
    """Readiness check. Runs a trivial query so a dead database reports 503."""
    try:
        db_session().execute(text("SELECT 1"))
    except SQLAlchemyError:
        logger.exception("Health check: database unreachable")
        return jsonify({"ok": False, "db": "unreachable"}), 503
    return jsonify({"ok": True, "db": "ok"})


@bp.get("/healthz")
def healthz():
    """
    Liveness probe. No DB access, minimal overhead.
    """
    return "ok", 200
