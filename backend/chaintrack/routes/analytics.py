from flask import Blueprint, jsonify, request, current_app

from chaintrack.decorators import require_auth
from chaintrack.services import analytics_service
from chaintrack.services.concurrency import StoreError
from chaintrack.validation import ValidationError


analytics_bp = Blueprint("analytics", __name__, url_prefix="/api/analytics")


@analytics_bp.get("/overview")
@require_auth
def overview():
    timeframe = request.args.get("timeframe") or None
    if timeframe == "all":
        timeframe = None

    try:
        report = analytics_service.analytics_overview(timeframe=timeframe)
        return jsonify(report), 200
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    except analytics_service.ComputationError as exc:
        current_app.logger.warning("Analytics overview failed: %s", exc)
        return jsonify({"error": str(exc)}), 400
    except StoreError:
        current_app.logger.exception("Analytics overview could not read the store")
        return jsonify({"error": "Storage unavailable"}), 503


@analytics_bp.get("/trends")
@require_auth
def trends():
    group_by = request.args.get("group_by", "day")
    start = request.args.get("start")
    end = request.args.get("end")
    fill_gaps = request.args.get("fill_gaps", "false").lower() == "true"

    try:
        report = analytics_service.transaction_trend(
            group_by=group_by,
            start=start,
            end=end,
            fill_gaps=fill_gaps,
        )
        return jsonify(report), 200
    except ValueError as exc:
        # ValidationError, or an unparseable start/end
        return jsonify({"error": str(exc)}), 400
    except analytics_service.ComputationError as exc:
        return jsonify({"error": str(exc)}), 400


@analytics_bp.get("/dashboard")
@require_auth
def dashboard():
    try:
        return jsonify(analytics_service.dashboard_summary()), 200
    except analytics_service.ComputationError as exc:
        return jsonify({"error": str(exc)}), 400
    except StoreError:
        current_app.logger.exception("Dashboard summary could not read the store")
        return jsonify({"error": "Storage unavailable"}), 503
