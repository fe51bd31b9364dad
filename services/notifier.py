"""
Narrow interfaces to the collaborators this service does not own:
- Notifier: delivers OTP codes, reset links and maintenance broadcasts
- AuditRecorder: records user actions for the activity log

The default implementations only log; deployments plug in real senders.
"""
from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable, Optional

from models.otp_verification import OtpPurpose

logger = logging.getLogger(__name__)
audit_logger = logging.getLogger("audit")


class UserAction(str, Enum):
    REGISTER = "REGISTER"
    LOGIN = "LOGIN"
    LOGOUT = "LOGOUT"
    EMAIL_VERIFICATION = "EMAIL_VERIFICATION"
    PHONE_VERIFICATION = "PHONE_VERIFICATION"
    CHANGED_EMAIL = "CHANGED_EMAIL"
    CHANGED_PHONE = "CHANGED_PHONE"
    PASSWORD_CHANGED = "PASSWORD_CHANGED"
    PASSWORD_RESET_REQUEST = "PASSWORD_RESET_REQUEST"
    PASSWORD_RESET_SUCCESS = "PASSWORD_RESET_SUCCESS"
    ROLES_UPDATED = "ROLES_UPDATED"
    ACCOUNT_DELETED = "ACCOUNT_DELETED"
    SYSTEM_MAINTENANCE_MODE = "SYSTEM_MAINTENANCE_MODE"


class Notifier:
    """Email/SMS sender. Transport and templates belong to the implementation."""

    def send_otp(self, contact: str, code: str, purpose: OtpPurpose) -> None:
        logger.info("Sending %s code to %s", OtpPurpose(purpose).value, contact)

    def send_password_reset(self, email: str, token: str) -> None:
        logger.info("Sending password reset link to %s", email)

    def send_notice(self, email: str, subject: str, body: str) -> None:
        logger.info("Sending notice '%s' to %s", subject, email)

    def broadcast_maintenance(self, emails: Iterable[str], enabled: bool) -> None:
        emails = list(emails)
        logger.info("Broadcasting maintenance=%s to %d account(s)", enabled, len(emails))


class AuditRecorder:
    def record(
        self,
        action: UserAction,
        user_id: Optional[str],
        email: Optional[str],
        details: str = "",
    ) -> None:
        audit_logger.info(
            "action=%s user_id=%s email=%s details=%s", UserAction(action).value, user_id, email, details
        )
