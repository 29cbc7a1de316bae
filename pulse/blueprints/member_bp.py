"""
Project Pulse
Member blueprint: users, teams and performance.

Endpoints:
    GET    /api/users
    POST   /api/users
    PUT    /api/users/<id>
    DELETE /api/users/<id>
    GET    /api/users/<id>/performance
    GET    /api/teams
    POST   /api/teams
    PUT    /api/teams/<id>
    DELETE /api/teams/<id>
"""

from flask import Blueprint, jsonify, request

from pulse.blueprints import service_error
from pulse.core.exceptions import ConflictError, ValidationError
from pulse.models import db
from pulse.models.member import Team, User
from pulse.services import member_service
from pulse.utils.helpers import db_commit_or_error, get_or_404

member_bp = Blueprint("members", __name__, url_prefix="/api")


# ── Users ────────────────────────────────────────────────────────────────────

@member_bp.route("/users", methods=["GET"])
def list_users():
    q = User.query
    team_id = request.args.get("team_id", type=int)
    if team_id is not None:
        q = q.filter(User.team_id == team_id)
    return jsonify([u.to_dict() for u in q.order_by(User.id).all()])


@member_bp.route("/users", methods=["POST"])
def create_user():
    data = request.get_json(silent=True) or {}
    try:
        user = member_service.create_user(data)
    except (ValidationError, ConflictError) as e:
        return service_error(e)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(user.to_dict()), 201


@member_bp.route("/users/<int:user_id>", methods=["PUT"])
def update_user(user_id):
    user, err = get_or_404(User, user_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    try:
        member_service.update_user(user, data)
    except (ValidationError, ConflictError) as e:
        return service_error(e)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(user.to_dict())


@member_bp.route("/users/<int:user_id>", methods=["DELETE"])
def delete_user(user_id):
    user, err = get_or_404(User, user_id)
    if err:
        return err
    db.session.delete(user)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "User deleted", "id": user_id})


@member_bp.route("/users/<int:user_id>/performance", methods=["GET"])
def user_performance(user_id):
    user, err = get_or_404(User, user_id)
    if err:
        return err
    return jsonify(member_service.member_performance(user))


# ── Teams ────────────────────────────────────────────────────────────────────

@member_bp.route("/teams", methods=["GET"])
def list_teams():
    return jsonify([t.to_dict() for t in Team.query.order_by(Team.id).all()])


@member_bp.route("/teams", methods=["POST"])
def create_team():
    data = request.get_json(silent=True) or {}
    try:
        team = member_service.save_team(data)
    except ValidationError as e:
        return service_error(e)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(team.to_dict()), 201


@member_bp.route("/teams/<int:team_id>", methods=["PUT"])
def update_team(team_id):
    team, err = get_or_404(Team, team_id)
    if err:
        return err
    data = request.get_json(silent=True) or {}
    try:
        member_service.save_team(data, team)
    except ValidationError as e:
        return service_error(e)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify(team.to_dict())


@member_bp.route("/teams/<int:team_id>", methods=["DELETE"])
def delete_team(team_id):
    team, err = get_or_404(Team, team_id)
    if err:
        return err
    User.query.filter(User.team_id == team_id).update({User.team_id: None})
    db.session.delete(team)
    err = db_commit_or_error()
    if err:
        return err
    return jsonify({"message": "Team deleted", "id": team_id})
