from flask import Blueprint, request

from ..decorators import require_auth
from ..services import dashboard_service
from ..responses import ok, fail


dashboard_bp = Blueprint("dashboard", __name__, url_prefix="/api/dashboard")


@dashboard_bp.get("/stats")
@require_auth
def dashboard_stats_route():
    """
    Management dashboard snapshot.

    Query params:
    - timeRange: 7days | 30days | 90days (unknown values fall back to 7days)
    """
    try:
        report = dashboard_service.dashboard_stats(time_range=request.args.get("timeRange"))
    except dashboard_service.DashboardError as exc:
        return fail("Server error", 500, error=str(exc))
    return ok(report)
