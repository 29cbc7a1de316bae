"""
Project Pulse
Audit log blueprint.

Endpoints:
    GET    /api/audit-logs            - newest first (?entity_id=, ?user_id=, ?limit=, ?offset=)
    GET    /api/audit-logs/<id>       - single entry
    POST   /api/audit-logs            - append an entry
    DELETE /api/audit-logs/<id>
"""

from flask import Blueprint, jsonify, request

from pulse.blueprints import paginate_query
from pulse.models import db
from pulse.models.audit import AuditLog
from pulse.utils.errors import E, api_error
from pulse.utils.helpers import db_commit_or_error, get_or_404, parse_timestamp

audit_bp = Blueprint("audit", __name__, url_prefix="/api")


@audit_bp.route("/audit-logs", methods=["GET"])
def list_audit_logs():
    q = AuditLog.query

    entity_id = request.args.get("entity_id")
    if entity_id:
        q = q.filter(AuditLog.entity_id == entity_id)

    user_id = request.args.get("user_id", type=int)
    if user_id is not None:
        q = q.filter(AuditLog.user_id == user_id)

    q = q.order_by(AuditLog.timestamp.desc(), AuditLog.id.desc())
    items, total = paginate_query(q)
    resp = jsonify([log.to_dict() for log in items])
    resp.headers["X-Total-Count"] = str(total)
    return resp


@audit_bp.route("/audit-logs/<int:log_id>", methods=["GET"])
def get_audit_log(log_id):
    log, err = get_or_404(AuditLog, log_id, "Audit log")
    if err:
        return err
    return jsonify(log.to_dict())


@audit_bp.route("/audit-logs", methods=["POST"])
def create_audit_log():
    data = request.get_json(silent=True) or {}
    action = (data.get("action") or "").strip()
    if not action:
        return api_error(E.VALIDATION_REQUIRED, "action is required")

    user_id = data.get("user_id")
    try:
        user_id = int(user_id) if user_id not in (None, "") else None
    except (TypeError, ValueError):
        return api_error(E.VALIDATION_INVALID, "user_id must be an integer")

    log = AuditLog(
        user_id=user_id,
        action=action,
        entity_type=data.get("entity_type") or "project",
        entity_id=str(data["entity_id"]) if data.get("entity_id") not in (None, "") else None,
        details=data.get("details") or "",
    )
    ts = parse_timestamp(data.get("timestamp"))
    if ts is not None:
        log.timestamp = ts
    db.session.add(log)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(log.to_dict()), 201


@audit_bp.route("/audit-logs/<int:log_id>", methods=["DELETE"])
def delete_audit_log(log_id):
    log, err = get_or_404(AuditLog, log_id, "Audit log")
    if err:
        return err
    db.session.delete(log)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Audit log deleted"})
