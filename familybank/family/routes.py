from flask import g, jsonify

from familybank.auth.decorators import login_required
from familybank.repository import get_repository
from familybank.session import Role

from . import bp


@bp.route("/", methods=["GET"])
@login_required
def view_family():
    """Show the caller's family with its invite code."""
    data = g.family.to_json()
    data["role"] = g.role.value
    data["isCreator"] = g.role is Role.CREATOR
    return jsonify(data)


@bp.route("/members", methods=["GET"])
@login_required
def list_members():
    members = get_repository().list_family_members(g.family)
    members.sort(key=lambda member: member.name.lower())
    return jsonify({"members": [member.to_json() for member in members]})
