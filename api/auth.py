"""
Authentication blueprint:
- POST /auth/login
- POST /auth/logout
- POST /auth/refresh
- GET  /auth/info
- POST /auth/password/forgot
- POST /auth/password/reset

The implementation:
- Tokens are HS512 JWTs carrying a session id (jti) recorded in login_details
- Both tokens are set as http-only cookies; Bearer headers are accepted too
- logout/refresh read the cookie first, then the request body
"""
from __future__ import annotations

from flask import Blueprint, request, jsonify, make_response

from models.schemas.auth import (
    ForgotPasswordSchema,
    LoginSchema,
    RefreshSchema,
    ResetPasswordSchema,
    TokenPairSchema,
)
from models.schemas.user import UserOutSchema
from services.auth_pipeline import REFRESH_COOKIE, extract_token
from utils.decorators import get_services, jwt_required

bp = Blueprint("auth", __name__, url_prefix="/auth")

login_schema = LoginSchema()
refresh_schema = RefreshSchema()
forgot_password_schema = ForgotPasswordSchema()
reset_password_schema = ResetPasswordSchema()
token_pair_schema = TokenPairSchema()
user_out_schema = UserOutSchema()


@bp.post("/login")
def login():
    """
    Login: sets the accessToken/refreshToken cookies and returns the pair
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
             password: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid credentials
      503:
        description: Maintenance mode, only admins may log in
    """
    payload = login_schema.load(request.get_json(silent=True) or {})
    services = get_services()
    pair = services.flow.login(payload["email"], payload["password"])

    response = jsonify({"data": token_pair_schema.dump(pair)})
    services.flow.apply_cookies(response, pair)
    return response, 200


@bp.post("/logout")
def logout():
    """
    Logout: disables the session behind the access token and clears cookies
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      204:
        description: ""
      401:
        description: Unauthorized
    """
    services = get_services()
    services.flow.logout(extract_token(request.headers, request.cookies))

    response = make_response("", 204)
    services.flow.clear_cookies(response)
    return response


@bp.post("/refresh")
def refresh():
    """
    Use the refresh token to obtain a new pair for the same session
    Reads the refreshToken cookie, else { "refresh_token": "<token>" }
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         required: false
         schema:
           type: object
           properties:
             refresh_token: { type: string }
    responses:
      200:
        description: OK (returns tokens)
      401:
        description: Invalid, expired or revoked refresh token
    """
    token = request.cookies.get(REFRESH_COOKIE)
    if not token:
        token = refresh_schema.load(request.get_json(silent=True) or {}).get("refresh_token")

    services = get_services()
    pair = services.flow.refresh(token)

    response = jsonify({"data": token_pair_schema.dump(pair)})
    services.flow.apply_cookies(response, pair)
    return response, 200


@bp.get("/info")
@jwt_required()
def info(principal):
    """
    Get current user info.
    ---
    tags:
      - Auth
    security:
      - Bearer: []
    responses:
      200:
        description: OK
      401:
        description: Unauthorized
    """
    user = get_services().accounts.current_user(principal)
    data = user_out_schema.dump(user)
    data["scope"] = principal.claims.scope
    return jsonify({"data": data}), 200


@bp.post("/password/forgot")
def forgot_password():
    """
    Send a one-shot password reset token to a verified account
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             email: { type: string }
    responses:
      202:
        description: Reset token sent
      403:
        description: Account not verified
      404:
        description: Account not found
    """
    payload = forgot_password_schema.load(request.get_json(silent=True) or {})
    get_services().flow.forgot_password(payload["email"])
    return jsonify({"message": "Password reset instructions sent"}), 202


@bp.post("/password/reset")
def reset_password():
    """
    Set a new password with a reset token; every session is signed out
    ---
    tags:
      - Auth
    consumes:
      - application/json
    parameters:
      -  in: body
         name: body
         schema:
           type: object
           properties:
             token: { type: string }
             new_password: { type: string }
    responses:
      200:
        description: Password reset
      401:
        description: Invalid, used or expired token
    """
    payload = reset_password_schema.load(request.get_json(silent=True) or {})
    services = get_services()
    services.flow.reset_password(payload["token"], payload["new_password"])

    response = jsonify({"message": "Password reset successful"})
    services.flow.clear_cookies(response)
    return response, 200
