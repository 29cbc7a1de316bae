"""
Project Pulse
Task blueprint (tasks, risks and issues).

Endpoints:
    GET    /api/tasks               - active tasks (?project_id=, ?type=)
    POST   /api/tasks               - create
    PUT    /api/tasks/<id>          - partial update
    DELETE /api/tasks/<id>          - soft delete
"""

from flask import Blueprint, jsonify, request

from pulse.blueprints import service_error
from pulse.core.exceptions import ValidationError
from pulse.models.task import Task
from pulse.services import task_service
from pulse.utils.helpers import db_commit_or_error, get_or_404

task_bp = Blueprint("tasks", __name__, url_prefix="/api")


@task_bp.route("/tasks", methods=["GET"])
def list_tasks():
    q = Task.query_active()
    project_id = request.args.get("project_id", type=int)
    if project_id is not None:
        q = q.filter(Task.project_id == project_id)
    task_type = request.args.get("type")
    if task_type:
        q = q.filter(Task.type == task_type)
    return jsonify([t.to_dict() for t in q.order_by(Task.id).all()])


@task_bp.route("/tasks", methods=["POST"])
def create_task():
    data = request.get_json(silent=True) or {}
    try:
        task = task_service.create_task(data)
    except ValidationError as e:
        return service_error(e)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(task.to_dict()), 201


@task_bp.route("/tasks/<int:task_id>", methods=["PUT"])
def update_task(task_id):
    task, err = get_or_404(Task, task_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    try:
        task_service.update_task(task, data)
    except ValidationError as e:
        return service_error(e)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(task.to_dict())


@task_bp.route("/tasks/<int:task_id>", methods=["DELETE"])
def delete_task(task_id):
    task, err = get_or_404(Task, task_id)
    if err:
        return err
    task_service.delete_task(task)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Task deleted", "id": task_id})
