"""
Dashboard Blueprint.

Endpoints:
  GET /dashboard        project counters, urgent deadlines, stagnant steps
"""

from flask import Blueprint, current_app, jsonify

from metrica.blueprints import require_user
from metrica.models.workflow import Project
from metrica.services import deadline_service

dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/v1/dashboard")


@dashboard_bp.route("", methods=["GET"])
def dashboard():
    uid, err = require_user()
    if err:
        return err

    projects = Project.query.filter_by(user_id=uid).order_by(Project.id).all()
    summary = deadline_service.dashboard_summary(
        projects,
        urgent_days=current_app.config.get("URGENT_DEADLINE_DAYS", 7),
        stagnant_days=current_app.config.get("STAGNANT_STEP_DAYS", 5),
    )
    return jsonify(summary), 200
