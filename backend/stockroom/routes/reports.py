from flask import Blueprint, jsonify, request

from ..decorators import require_auth, require_role
from ..services import reporting_service
from ..validation import ValidationError


reports_bp = Blueprint("reports", __name__)


@reports_bp.get("/sales")
@require_auth
@require_role("VIEW_REPORTS")
def sales_for_day_route():
    """Total sales for ?date=YYYY-MM-DD (default today)."""
    try:
        total, day = reporting_service.sales_for_day(request.args.get("date"))
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify({"totalSales": total, "date": day.isoformat()}), 200


@reports_bp.get("/revenue/monthly")
@require_auth
@require_role("VIEW_REPORTS")
def monthly_revenue_route():
    """Twelve monthly totals, January first. Optional ?year=YYYY."""
    year_arg = request.args.get("year")
    year = None
    if year_arg:
        try:
            year = int(year_arg)
        except ValueError:
            return jsonify({"error": "year must be an integer"}), 400

    try:
        totals = reporting_service.monthly_revenue(year=year)
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    return jsonify({"monthlyTotals": totals}), 200
