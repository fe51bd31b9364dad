import re

from marshmallow import ValidationError

MIN_PASSWORD_LENGTH = 8

_PHONE_RE = re.compile(r"^\+?[0-9]{7,15}$")
_OTP_RE = re.compile(r"^[0-9]{6}$")


def norm_email(v):
    return v.strip().lower() if isinstance(v, str) else v


def norm_phone(v):
    if not isinstance(v, str):
        return v
    # Drop the usual separators, keep a leading "+"
    return "".join(ch for ch in v.strip() if ch.isdigit() or ch == "+")


def validate_password(value: str) -> None:
    if len(value) < MIN_PASSWORD_LENGTH:
        raise ValidationError(f"Password must be at least {MIN_PASSWORD_LENGTH} characters long.")


def validate_phone(value: str) -> None:
    if value and not _PHONE_RE.match(value):
        raise ValidationError("Invalid phone number.")


def validate_otp_code(value: str) -> None:
    if not _OTP_RE.match(value or ""):
        raise ValidationError("Code must be 6 digits.")
