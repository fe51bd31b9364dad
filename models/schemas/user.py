from marshmallow import Schema, fields, pre_load, validate

from models.schemas.common import norm_email, norm_phone, validate_otp_code, validate_password, validate_phone
from models.user import Role, VerificationStatus


class _NormalizeContacts:
    """Lower-case emails and strip phone separators before validation."""

    EMAIL_FIELDS = ("email", "new_email")
    PHONE_FIELDS = ("phone_number", "old_phone", "new_phone")

    @pre_load
    def normalize(self, data, **kwargs):
        if not isinstance(data, dict):
            return data
        data = dict(data)
        for key in self.EMAIL_FIELDS:
            if key in data:
                data[key] = norm_email(data[key])
        for key in self.PHONE_FIELDS:
            if key in data:
                data[key] = norm_phone(data[key])
        return data


class RegisterSchema(_NormalizeContacts, Schema):
    full_name = fields.String(allow_none=True, validate=validate.Length(max=255))
    email = fields.Email(required=True)
    phone_number = fields.String(allow_none=True, validate=validate_phone)
    password = fields.String(required=True, load_only=True, validate=validate_password)


class EmailSchema(_NormalizeContacts, Schema):
    email = fields.Email(required=True)


class VerifyEmailSchema(_NormalizeContacts, Schema):
    email = fields.Email(required=True)
    code = fields.String(required=True, validate=validate_otp_code)


class VerifyPhoneSchema(_NormalizeContacts, Schema):
    phone_number = fields.String(required=True, validate=validate_phone)
    code = fields.String(required=True, validate=validate_otp_code)


class EmailChangeSchema(_NormalizeContacts, Schema):
    new_email = fields.Email(required=True)


class EmailChangeVerifySchema(_NormalizeContacts, Schema):
    new_email = fields.Email(required=True)
    code = fields.String(required=True, validate=validate_otp_code)


class PhoneChangeSchema(_NormalizeContacts, Schema):
    old_phone = fields.String(allow_none=True, load_default=None)
    new_phone = fields.String(required=True, validate=validate_phone)


class PhoneChangeVerifySchema(PhoneChangeSchema):
    code = fields.String(required=True, validate=validate_otp_code)


class ChangePasswordSchema(Schema):
    old_password = fields.String(required=True, load_only=True)
    new_password = fields.String(required=True, load_only=True, validate=validate_password)


class RolesSchema(Schema):
    roles = fields.List(fields.Enum(Role), required=True, validate=validate.Length(min=1))


class UserOutSchema(Schema):
    id = fields.String(allow_none=False)
    full_name = fields.String(allow_none=True)
    email = fields.String(allow_none=True)
    phone_number = fields.String(allow_none=True)
    roles = fields.List(fields.String(allow_none=True))
    verification_status = fields.Enum(VerificationStatus)
    created_at = fields.DateTime()
