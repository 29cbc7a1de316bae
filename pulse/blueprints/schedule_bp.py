"""
Project Pulse
Schedule blueprint: to-dos and leave.

Endpoints:
    GET    /api/todos               - all to-dos (?owner_id=)
    POST   /api/todos
    PUT    /api/todos/<id>
    DELETE /api/todos/<id>
    GET    /api/leaves              - all leave records (?member_id=)
    POST   /api/leaves
    DELETE /api/leaves/<id>
"""

from flask import Blueprint, jsonify, request

from pulse.blueprints import service_error
from pulse.core.exceptions import ValidationError
from pulse.models import db
from pulse.models.leave import Leave
from pulse.models.todo import ToDo
from pulse.services import schedule_service
from pulse.utils.helpers import db_commit_or_error, get_or_404

schedule_bp = Blueprint("schedule", __name__, url_prefix="/api")


# ── To-dos ───────────────────────────────────────────────────────────────────

@schedule_bp.route("/todos", methods=["GET"])
def list_todos():
    q = ToDo.query
    owner_id = request.args.get("owner_id", type=int)
    if owner_id is not None:
        q = q.filter(ToDo.owner_id == owner_id)
    return jsonify([t.to_dict() for t in q.order_by(ToDo.id).all()])


@schedule_bp.route("/todos", methods=["POST"])
def create_todo():
    data = request.get_json(silent=True) or {}
    try:
        todo = schedule_service.create_todo(data)
    except ValidationError as e:
        return service_error(e)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(todo.to_dict()), 201


@schedule_bp.route("/todos/<int:todo_id>", methods=["PUT"])
def update_todo(todo_id):
    todo, err = get_or_404(ToDo, todo_id, "To-do")
    if err:
        return err
    data = request.get_json(silent=True) or {}
    try:
        schedule_service.update_todo(todo, data)
    except ValidationError as e:
        return service_error(e)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(todo.to_dict())


@schedule_bp.route("/todos/<int:todo_id>", methods=["DELETE"])
def delete_todo(todo_id):
    todo, err = get_or_404(ToDo, todo_id, "To-do")
    if err:
        return err
    db.session.delete(todo)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "To-do deleted", "id": todo_id})


# ── Leave ────────────────────────────────────────────────────────────────────

@schedule_bp.route("/leaves", methods=["GET"])
def list_leaves():
    q = Leave.query
    member_id = request.args.get("member_id", type=int)
    if member_id is not None:
        q = q.filter(Leave.member_id == member_id)
    return jsonify([lv.to_dict() for lv in q.order_by(Leave.start_date).all()])


@schedule_bp.route("/leaves", methods=["POST"])
def create_leave():
    data = request.get_json(silent=True) or {}
    try:
        leave = schedule_service.create_leave(data)
    except ValidationError as e:
        return service_error(e)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(leave.to_dict()), 201


@schedule_bp.route("/leaves/<int:leave_id>", methods=["DELETE"])
def delete_leave(leave_id):
    leave, err = get_or_404(Leave, leave_id)
    if err:
        return err
    db.session.delete(leave)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Leave deleted", "id": leave_id})
