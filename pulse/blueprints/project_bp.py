"""
Project Pulse
Project blueprint.

Endpoints:
    GET    /api/projects            - active projects
    GET    /api/projects/<id>       - single project
    POST   /api/projects            - create
    PUT    /api/projects/<id>       - partial update
    DELETE /api/projects/<id>       - cascading soft delete
"""

from flask import Blueprint, jsonify, request

from pulse.blueprints import service_error
from pulse.core.exceptions import ValidationError
from pulse.models.project import Project
from pulse.services import project_service
from pulse.utils.helpers import db_commit_or_error, get_or_404

project_bp = Blueprint("projects", __name__, url_prefix="/api")


@project_bp.route("/projects", methods=["GET"])
def list_projects():
    projects = Project.query_active().order_by(Project.id).all()
    return jsonify([p.to_dict() for p in projects])


@project_bp.route("/projects/<int:project_id>", methods=["GET"])
def get_project(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    return jsonify(project.to_dict())


@project_bp.route("/projects", methods=["POST"])
def create_project():
    data = request.get_json(silent=True) or {}
    try:
        project = project_service.create_project(data)
    except ValidationError as e:
        return service_error(e)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict()), 201


@project_bp.route("/projects/<int:project_id>", methods=["PUT"])
def update_project(project_id):
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    try:
        project_service.update_project(project, data)
    except ValidationError as e:
        return service_error(e)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(project.to_dict())


@project_bp.route("/projects/<int:project_id>", methods=["DELETE"])
def delete_project(project_id):
    """Soft-delete the project and its subtree; returns the deleted ids."""
    project, err = get_or_404(Project, project_id)
    if err:
        return err
    ids = project_service.delete_project(project)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Project deleted", "deleted_project_ids": ids})
