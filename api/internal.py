"""Service-to-service lookups used by other backends."""
from __future__ import annotations

from flask import Blueprint, jsonify

from models.schemas.auth import LoginDetailOutSchema
from services.errors import SessionNotFound
from utils.decorators import get_services, internal_key_required

bp = Blueprint("internal", __name__, url_prefix="/internal")

login_detail_schema = LoginDetailOutSchema()


@bp.get("/login-details/<jti>")
@internal_key_required()
def login_detail(jti: str):
    """
    Look up a session by its id, enabled or not
    ---
    tags:
      - Internal
    parameters:
      - in: path
        name: jti
        type: string
        required: true
      - in: header
        name: X-Internal-Key
        type: string
        required: false
    responses:
      200:
        description: OK
        schema:
          type: object
          properties:
            jti: { type: string }
            enabled: { type: boolean }
            expires_at: { type: string, format: date-time }
            account: { type: object }
      404:
        description: Session not found
    """
    record = get_services().sessions.get(jti)
    if record is None:
        raise SessionNotFound()
    return jsonify({"data": login_detail_schema.dump(record)}), 200
