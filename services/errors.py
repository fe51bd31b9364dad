"""
Domain errors.

Every failure raised by the token, session, OTP and maintenance code is an
AppError subclass carrying a stable numeric code, an error kind for the JSON
envelope, a user-facing message and the HTTP status the API maps it to.
api.errors turns them into responses; nothing in services/ knows about Flask.
"""
from __future__ import annotations

from enum import Enum


class AuthStep(str, Enum):
    """Decode-time validation steps, in the order AuthPipeline walks them."""

    PARSED = "PARSED"
    SIGNATURE_VERIFIED = "SIGNATURE_VERIFIED"
    NOT_EXPIRED = "NOT_EXPIRED"
    PURPOSE_CHECKED = "PURPOSE_CHECKED"
    SESSION_LIVE = "SESSION_LIVE"
    VALID = "VALID"


class AppError(Exception):
    code = 9999
    error = "UNCATEGORIZED_EXCEPTION"
    message = "Uncategorized error"
    status = 500

    def __init__(self, message: str | None = None, details: dict | None = None):
        self.message = message or self.message
        self.details = details
        super().__init__(self.message)


class UncategorizedError(AppError):
    pass


class SigningError(UncategorizedError):
    error = "SIGNING_ERROR"
    message = "Could not sign token"


# --- authentication (401) -------------------------------------------------

class Unauthenticated(AppError):
    code = 1006
    error = "UNAUTHENTICATED"
    message = "Unauthenticated"
    status = 401


class TokenError(Unauthenticated):
    """Base for failures of the decode pipeline; `step` is where it stopped."""

    step: AuthStep = AuthStep.PARSED


class MalformedToken(TokenError):
    code = 1062
    error = "TOKEN_MALFORMED"
    message = "Token could not be parsed"
    step = AuthStep.PARSED


class InvalidSignature(TokenError):
    code = 1061
    error = "TOKEN_INVALID_SIGNATURE"
    message = "Token signature is invalid"
    step = AuthStep.SIGNATURE_VERIFIED


class TokenExpired(TokenError):
    code = 1031
    error = "JWT_TOKEN_EXPIRED"
    message = "JWT token has expired."
    step = AuthStep.NOT_EXPIRED


class WrongTokenPurpose(TokenError):
    code = 1026
    error = "JWT_TOKEN_INVALID"
    message = "Token cannot be used for this operation"
    step = AuthStep.PURPOSE_CHECKED


class SessionRevoked(TokenError):
    code = 1060
    error = "SESSION_REVOKED"
    message = "Session has been logged out or revoked"
    step = AuthStep.SESSION_LIVE


class InvalidCredentials(Unauthenticated):
    code = 9997
    error = "LOGIN_ERROR"
    message = "Login failed, please double-check your email and password."


class Unauthorized(AppError):
    code = 1007
    error = "UNAUTHORIZED"
    message = "You do not have permission"
    status = 403


# --- sessions ---------------------------------------------------------------

class SessionNotFound(AppError):
    code = 1040
    error = "LOGINDETAIL_NOTFOUND"
    message = "Login session not found"
    status = 404


class SessionIdConflict(AppError):
    code = 1039
    error = "JTI_TOKEN_EXISTED"
    message = "Session id already exists"
    status = 500


# --- one-time passwords (400) ------------------------------------------------

class OtpError(AppError):
    status = 400


class OtpNotFound(OtpError):
    code = 1011
    error = "OTP_NOT_EXISTED"
    message = "No pending code for this contact; request a new one"


class OtpInvalid(OtpError):
    code = 1042
    error = "OTP_INVALID"
    message = "The code is incorrect"


class OtpExpired(OtpError):
    code = 1012
    error = "OTP_EXPIRED"
    message = "The code has expired; request a new one"


class OtpAlreadyExists(OtpError):
    code = 1043
    error = "OTP_IS_DUPLICATED"
    message = "A code was already sent and is still pending"


# --- maintenance (503) -------------------------------------------------------

class MaintenanceModeActive(AppError):
    code = 503
    error = "MAINTENANCE_MODE"
    message = "The system is under maintenance. Please try again later."
    status = 503


# --- accounts ----------------------------------------------------------------

class UserExisted(AppError):
    code = 1002
    error = "USER_EXISTED"
    message = "User existed"
    status = 409


class PhoneExisted(AppError):
    code = 1045
    error = "PHONE_EXISTED"
    message = "Phone existed"
    status = 409


class UserNotFound(AppError):
    code = 1005
    error = "USER_NOT_EXISTED"
    message = "User not existed"
    status = 404


class UserNotVerified(AppError):
    code = 1044
    error = "USER_NOT_VERIFIED"
    message = "User has not verified email or phone number"
    status = 403


class PasswordNotMatch(AppError):
    code = 1013
    error = "PASSWORD_NOT_MATCH"
    message = "Current password is incorrect"
    status = 400


class PasswordDuplicated(AppError):
    code = 1014
    error = "PASSWORD_DUPLICATED"
    message = "New password must be different from old password"
    status = 400


class ContactMismatch(AppError):
    code = 1048
    error = "CONTACT_MISMATCH"
    message = "The current contact does not match this account"
    status = 400


class CannotDeleteAdmin(AppError):
    code = 1047
    error = "CANNOT_DELETE_ADMIN"
    message = "You can not delete admin!"
    status = 400
