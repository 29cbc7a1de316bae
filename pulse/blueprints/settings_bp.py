"""
Project Pulse
Settings blueprint: dropdown lists and system configuration.

Endpoints (for each of tools, departments, project-phases, risk-levels):
    GET    /api/<resource>
    POST   /api/<resource>
    PUT    /api/<resource>/<id>
    DELETE /api/<resource>/<id>

    GET    /api/system-configuration
    PUT    /api/system-configuration
"""

from flask import Blueprint, jsonify, request

from pulse.blueprints import service_error
from pulse.core.exceptions import ValidationError
from pulse.models import db
from pulse.models.settings import (
    ITEM_STATUSES,
    Department,
    ProjectPhase,
    RiskLevel,
    SystemConfiguration,
    Tool,
)
from pulse.services.payload import apply_payload
from pulse.utils.helpers import db_commit_or_error, get_or_404

settings_bp = Blueprint("settings", __name__, url_prefix="/api")

# resource path -> (model, writable fields, required field, label)
_LIST_RESOURCES = {
    "tools": (Tool, {"name": "str", "status": "str"}, "name", "Tool"),
    "departments": (Department, {"name": "str", "description": "text", "status": "str"}, "name", "Department"),
    "project-phases": (ProjectPhase, {"name": "str", "description": "text", "status": "str"}, "name", "Project phase"),
    "risk-levels": (
        RiskLevel,
        {"level": "str", "description": "text", "color": "str", "status": "str"},
        "level",
        "Risk level",
    ),
}

_CONFIG_FIELDS = {
    "organization_name": "str",
    "notification_email": "str",
    "default_currency": "str",
    "auto_escalation_days": "int",
    "fiscal_year_start": "str",
    "backup_frequency": "str",
}


def _apply_item(item, data, fields, required):
    apply_payload(item, data, fields)
    if not (getattr(item, required) or "").strip():
        raise ValidationError(f"{required} is required", {required: "required"})
    if item.status not in ITEM_STATUSES:
        raise ValidationError(f"status must be one of {', '.join(ITEM_STATUSES)}", {"status": item.status})


def _make_views(resource, model, fields, required, label):
    endpoint = resource.replace("-", "_")

    def list_items():
        return jsonify([i.to_dict() for i in model.query.order_by(model.id).all()])

    def create_item():
        data = request.get_json(silent=True) or {}
        item = model(status="Active")
        try:
            _apply_item(item, data, fields, required)
        except ValidationError as e:
            return service_error(e)
        db.session.add(item)
        err = db_commit_or_error()
        if err:
            return err
        return jsonify(item.to_dict()), 201

    def update_item(item_id):
        item, err = get_or_404(model, item_id, label)
        if err:
            return err
        data = request.get_json(silent=True) or {}
        try:
            _apply_item(item, data, fields, required)
        except ValidationError as e:
            return service_error(e)
        err = db_commit_or_error()
        if err:
            return err
        return jsonify(item.to_dict())

    def delete_item(item_id):
        item, err = get_or_404(model, item_id, label)
        if err:
            return err
        db.session.delete(item)
        err = db_commit_or_error()
        if err:
            return err
        return jsonify({"message": f"{label} deleted", "id": item_id})

    settings_bp.add_url_rule(f"/{resource}", f"list_{endpoint}", list_items, methods=["GET"])
    settings_bp.add_url_rule(f"/{resource}", f"create_{endpoint}", create_item, methods=["POST"])
    settings_bp.add_url_rule(f"/{resource}/<int:item_id>", f"update_{endpoint}", update_item, methods=["PUT"])
    settings_bp.add_url_rule(f"/{resource}/<int:item_id>", f"delete_{endpoint}", delete_item, methods=["DELETE"])


for _resource, (_model, _fields, _required, _label) in _LIST_RESOURCES.items():
    _make_views(_resource, _model, _fields, _required, _label)


# ── System configuration ─────────────────────────────────────────────────────

@settings_bp.route("/system-configuration", methods=["GET"])
def get_system_configuration():
    cfg = SystemConfiguration.current()
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(cfg.to_dict())


@settings_bp.route("/system-configuration", methods=["PUT"])
def update_system_configuration():
    cfg = SystemConfiguration.current()
    data = request.get_json(silent=True) or {}
    try:
        apply_payload(cfg, data, _CONFIG_FIELDS)
    except ValidationError as e:
        return service_error(e)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(cfg.to_dict())
