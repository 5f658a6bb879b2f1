from flask import Blueprint, Response, jsonify, request, g, current_app

from chaintrack.decorators import require_auth, require_role, WRITE_ROLES
from chaintrack.models import Report
from chaintrack.services import reports_service
from chaintrack.services.analytics_service import ComputationError
from chaintrack.services.concurrency import StoreError
from chaintrack.validation import (
    ModelValidationPolicy,
    validate_payload,
    enforce_rules_report,
    ValidationError,
)

REPORT_POLICY = ModelValidationPolicy(
    writable_fields={"name", "type", "frequency", "status", "metadata"},
    required_on_create={"name", "type", "frequency"},
    field_aliases={"metadata": "extra_metadata"},
)

reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("")
@require_auth
def list_reports():
    return jsonify({"items": [r.to_dict() for r in reports_service.list_reports()]}), 200


@reports_bp.post("")
@require_auth
@require_role(*WRITE_ROLES)
def create_report():
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Report, payload=payload, policy=REPORT_POLICY, partial=False)
        enforce_rules_report(patch)
        report = reports_service.create_report(actor=g.current_user, patch=patch)
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    except StoreError:
        current_app.logger.exception("Failed to create report")
        return jsonify({"error": "Storage unavailable"}), 503
    return jsonify(report.to_dict()), 201


@reports_bp.put("/<int:report_id>")
@require_auth
@require_role(*WRITE_ROLES)
def update_report(report_id: int):
    payload = request.get_json(silent=True) or {}
    try:
        patch = validate_payload(model=Report, payload=payload, policy=REPORT_POLICY, partial=True)
        enforce_rules_report(patch)
        report = reports_service.update_report(report_id=report_id, patch=patch)
    except ValidationError as exc:
        return jsonify({"error": str(exc)}), 400
    if report is None:
        return jsonify({"error": "Report not found"}), 404
    return jsonify(report.to_dict()), 200


@reports_bp.delete("/<int:report_id>")
@require_auth
@require_role(*WRITE_ROLES)
def delete_report(report_id: int):
    if not reports_service.delete_report(report_id=report_id):
        return jsonify({"error": "Report not found"}), 404
    return jsonify({"ok": True}), 200


@reports_bp.post("/<int:report_id>/run")
@require_auth
@require_role(*WRITE_ROLES)
def run_report(report_id: int):
    report = reports_service.run_report(report_id=report_id)
    if report is None:
        return jsonify({"error": "Report not found"}), 404
    current_app.logger.info("Report %s run; next run at %s", report.id, report.next_run)
    return jsonify(report.to_dict()), 200


@reports_bp.get("/<int:report_id>/download")
@require_auth
def download_report(report_id: int):
    try:
        result = reports_service.export_report(report_id=report_id)
    except reports_service.ReportError as exc:
        return jsonify({"error": str(exc)}), 400
    except ComputationError as exc:
        return jsonify({"error": str(exc)}), 400

    if result is None:
        return jsonify({"error": "Report not found"}), 404

    report, csv_text = result
    filename = f"{report.type}-report-{report.id}.csv"
    return Response(
        csv_text,
        mimetype="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
