"""
Account blueprint (self-service):
- POST /accounts/register
- POST /accounts/verify-email, /accounts/verify-email/resend
- POST /accounts/verify-phone
- POST /accounts/email/change, /accounts/email/verify
- POST /accounts/phone/change, /accounts/phone/verify
- POST /accounts/password/change
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify

from models.schemas.user import (
    ChangePasswordSchema,
    EmailChangeSchema,
    EmailChangeVerifySchema,
    EmailSchema,
    PhoneChangeSchema,
    PhoneChangeVerifySchema,
    RegisterSchema,
    UserOutSchema,
    VerifyEmailSchema,
    VerifyPhoneSchema,
)
from utils.decorators import get_services, jwt_required

bp = Blueprint("accounts", __name__, url_prefix="/accounts")

register_schema = RegisterSchema()
email_schema = EmailSchema()
verify_email_schema = VerifyEmailSchema()
verify_phone_schema = VerifyPhoneSchema()
email_change_schema = EmailChangeSchema()
email_change_verify_schema = EmailChangeVerifySchema()
phone_change_schema = PhoneChangeSchema()
phone_change_verify_schema = PhoneChangeVerifySchema()
change_password_schema = ChangePasswordSchema()
user_out_schema = UserOutSchema()


def _load(schema):
    return schema.load(request.get_json(silent=True) or {})


@bp.post("/register")
def register():
    """
    Register a new account; verification codes go to the email (and phone)
    ---
    tags:
      - Accounts
    consumes:
      - application/json
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            password: { type: string }
            full_name: { type: string }
            phone_number: { type: string }
    responses:
      201:
        description: Created
      409:
        description: Email or phone already registered
      422:
        description: Validation error
    """
    data = _load(register_schema)
    user = get_services().accounts.register(
        data["email"],
        data["password"],
        full_name=data.get("full_name"),
        phone_number=data.get("phone_number"),
    )
    return jsonify({"data": user_out_schema.dump(user)}), 201


@bp.post("/verify-email")
def verify_email():
    """
    Confirm the email with its OTP code
    ---
    tags:
      - Accounts
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
            code: { type: string }
    responses:
      200: { description: OK }
      400: { description: Code not found, invalid or expired }
    """
    data = _load(verify_email_schema)
    user = get_services().accounts.verify_email(data["code"], data["email"])
    return jsonify({"data": user_out_schema.dump(user)}), 200


@bp.post("/verify-email/resend")
def resend_email_verification():
    """
    Replace the pending email verification code
    ---
    tags:
      - Accounts
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            email: { type: string }
    responses:
      202: { description: Code sent }
      404: { description: Account not found }
    """
    data = _load(email_schema)
    get_services().accounts.resend_email_verification(data["email"])
    return jsonify({"message": "Verification code sent"}), 202


@bp.post("/verify-phone")
def verify_phone():
    """
    Confirm the phone number with its OTP code
    ---
    tags:
      - Accounts
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            phone_number: { type: string }
            code: { type: string }
    responses:
      200: { description: OK }
      400: { description: Code not found, invalid or expired }
    """
    data = _load(verify_phone_schema)
    user = get_services().accounts.verify_phone(data["code"], data["phone_number"])
    return jsonify({"data": user_out_schema.dump(user)}), 200


@bp.post("/email/change")
@jwt_required()
def request_email_change(principal):
    """
    Send a CHANGE_EMAIL code to the new address
    ---
    tags:
      - Accounts
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            new_email: { type: string }
    responses:
      202: { description: Code sent }
      409: { description: Email already registered }
    """
    data = _load(email_change_schema)
    get_services().accounts.request_email_change(principal, data["new_email"])
    return jsonify({"message": "Verification code sent"}), 202


@bp.post("/email/verify")
@jwt_required()
def confirm_email_change(principal):
    """
    Switch to the new email; every session of the account is signed out
    ---
    tags:
      - Accounts
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            new_email: { type: string }
            code: { type: string }
    responses:
      200: { description: OK }
      400: { description: Code not found, invalid or expired }
    """
    data = _load(email_change_verify_schema)
    services = get_services()
    user = services.accounts.confirm_email_change(principal, data["new_email"], data["code"])

    response = jsonify({"data": user_out_schema.dump(user)})
    services.flow.clear_cookies(response)
    return response, 200


@bp.post("/phone/change")
@jwt_required()
def request_phone_change(principal):
    """
    Send a CHANGE_PHONE code to the new number
    ---
    tags:
      - Accounts
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            old_phone: { type: string }
            new_phone: { type: string }
    responses:
      202: { description: Code sent }
      400: { description: Old phone does not match }
      409: { description: Phone already registered }
    """
    data = _load(phone_change_schema)
    get_services().accounts.request_phone_change(principal, data.get("old_phone"), data["new_phone"])
    return jsonify({"message": "Verification code sent"}), 202


@bp.post("/phone/verify")
@jwt_required()
def confirm_phone_change(principal):
    """
    Switch to the new phone number
    ---
    tags:
      - Accounts
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            old_phone: { type: string }
            new_phone: { type: string }
            code: { type: string }
    responses:
      200: { description: OK }
      400: { description: Code not found, invalid or expired }
    """
    data = _load(phone_change_verify_schema)
    user = get_services().accounts.confirm_phone_change(
        principal, data.get("old_phone"), data["new_phone"], data["code"]
    )
    return jsonify({"data": user_out_schema.dump(user)}), 200


@bp.post("/password/change")
@jwt_required()
def change_password(principal):
    """
    Change password; every session of the account is signed out
    ---
    tags:
      - Accounts
    security:
      - Bearer: []
    parameters:
      - in: body
        name: body
        schema:
          type: object
          properties:
            old_password: { type: string }
            new_password: { type: string }
    responses:
      200: { description: OK }
      400: { description: Wrong old password or unchanged password }
    """
    data = _load(change_password_schema)
    services = get_services()
    disabled = services.accounts.change_password(principal, data["old_password"], data["new_password"])

    response = jsonify({"message": "Password changed", "sessions_disabled": disabled})
    services.flow.clear_cookies(response)
    return response, 200
