from marshmallow import Schema, fields, pre_load

from models.schemas.common import norm_email, validate_password
from utils.timezone_utils import as_naive_utc, isoformat


class LoginSchema(Schema):
    email = fields.String(required=True)
    password = fields.String(required=True, load_only=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data, email=norm_email(data["email"]))
        return data


class RefreshSchema(Schema):
    refresh_token = fields.String(load_default=None)


class ForgotPasswordSchema(Schema):
    email = fields.Email(required=True)

    @pre_load
    def normalize(self, data, **kwargs):
        if isinstance(data, dict) and "email" in data:
            data = dict(data, email=norm_email(data["email"]))
        return data


class ResetPasswordSchema(Schema):
    token = fields.String(required=True)
    new_password = fields.String(required=True, load_only=True, validate=validate_password)


class TokenPairSchema(Schema):
    access_token = fields.String()
    refresh_token = fields.String()
    token_type = fields.Constant("bearer")
    expires_in = fields.Integer(attribute="access_expires_in")
    refresh_expires_in = fields.Integer()


class MaintenanceStatusSchema(Schema):
    maintenanceMode = fields.Boolean(attribute="maintenance_mode")
    since = fields.Function(lambda status: isoformat(status.since))


class LoginDetailOutSchema(Schema):
    jti = fields.String()
    enabled = fields.Boolean()
    expires_at = fields.Function(lambda record: isoformat(as_naive_utc(record.expires_at)))
    account = fields.Method("get_account")

    def get_account(self, obj):
        user = obj.user
        if user is None:
            return None
        return {"id": user.id, "email": user.email, "roles": list(user.roles or [])}
