from __future__ import annotations

from flask import Blueprint, request, jsonify, make_response

from models.schemas.user import RolesSchema, UserOutSchema
from models.user import Role
from utils.decorators import get_services, roles_required

bp = Blueprint("users", __name__)

roles_schema = RolesSchema()
user_out_schema = UserOutSchema()


def parse_hard_flag() -> bool:
    return request.args.get("hard", "false").strip().lower() in ("1", "true", "yes")


@bp.post("/users/<user_id>/roles")
@roles_required(Role.ADMIN)
def set_roles(user_id: str, principal):
    """
    Admin-only: replace the roles of a user.
    Body: { "roles": ["ADMIN", "USER"] }
    ---
    tags:
      - Users
    security:
      - Bearer: []
    consumes:
      - application/json
    parameters:
      -  in: path
         name: user_id
         type: string
         required: true
      -  in: body
         name: body
         schema:
           type: object
           properties:
             roles:
               type: array
               items: { type: string, enum: [USER, ADMIN] }
    responses:
      200: { description: OK }
      403: { description: Forbidden }
      404: { description: User not found }
    """
    data = roles_schema.load(request.get_json(silent=True) or {})
    user = get_services().accounts.set_roles(principal, user_id, data["roles"])
    return jsonify({"data": user_out_schema.dump(user)}), 200


@bp.delete("/users/<user_id>")
@roles_required(Role.ADMIN)
def delete_user(user_id: str, principal):
    """
    Admin-only: delete an account (soft by default, ?hard=true purges it)
    ---
    tags:
      - Users
    security:
      - Bearer: []
    parameters:
      - in: path
        name: user_id
        type: string
        required: true
      - in: query
        name: hard
        type: boolean
        required: false
    responses:
      204: { description: Deleted }
      400: { description: Admin accounts cannot be deleted }
      403: { description: Forbidden }
      404: { description: User not found }
    """
    get_services().accounts.delete_account(principal, user_id, hard=parse_hard_flag())
    return make_response("", 204)
