from __future__ import annotations

from flask import Blueprint, jsonify, abort

import models
from models.schemas.auth import MaintenanceStatusSchema
from models.user import Role
from services.users import active_emails
from utils.decorators import get_services, roles_required

bp = Blueprint("maintenance", __name__)

status_schema = MaintenanceStatusSchema()

_STATUS_VALUES = {"true": True, "on": True, "1": True, "false": False, "off": False, "0": False}


@bp.get("/config/maintenance/status")
def maintenance_status():
    """
    Maintenance status probe, reachable even while maintenance is on
    ---
    tags:
      - Maintenance
    responses:
      200:
        description: OK
        schema:
          type: object
          properties:
            maintenanceMode: { type: boolean }
            since: { type: string, format: date-time }
    """
    return jsonify(status_schema.dump(get_services().maintenance.status())), 200


@bp.post("/admin/config/maintenance/<status>")
@roles_required(Role.ADMIN)
def set_maintenance(status: str, principal):
    """
    Admin-only: switch maintenance mode on or off and notify every account
    ---
    tags:
      - Maintenance
    security:
      - Bearer: []
    parameters:
      - in: path
        name: status
        type: string
        enum: ["true", "false"]
        required: true
    responses:
      200: { description: New status }
      400: { description: Unknown status value }
      403: { description: Forbidden }
    """
    enabled = _STATUS_VALUES.get(status.strip().lower())
    if enabled is None:
        abort(400, description="status must be true or false")

    services = get_services()
    actor = services.accounts.current_user(principal)
    result = services.maintenance.set_mode(enabled, actor, active_emails(models.storage))
    return jsonify(status_schema.dump(result)), 200
