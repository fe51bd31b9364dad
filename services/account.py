"""
AccountService: the account mutations that touch OTPs or sessions.

- register / verify-email / verify-phone: VERIFY_* codes
- email and phone change: CHANGE_* codes sent to the new contact
- password change, email change, deletion: every session of the account is disabled
"""
from __future__ import annotations

import logging
from datetime import timedelta
from typing import Iterable, Optional

from sqlalchemy.exc import IntegrityError

import models
from models.otp_verification import OtpPurpose
from models.user import Role, User, VerificationStatus
from services.auth_pipeline import Principal
from services.errors import (
    CannotDeleteAdmin,
    ContactMismatch,
    PasswordDuplicated,
    PasswordNotMatch,
    PhoneExisted,
    UserExisted,
    UserNotFound,
)
from services.notifier import AuditRecorder, Notifier, UserAction
from services.otp_store import OtpStore
from services.session_registry import SessionRegistry
from services.users import get_user, get_user_by_email, get_user_by_phone, normalize_email
from utils.security import hash_password, verify_password

logger = logging.getLogger(__name__)


class AccountService:
    def __init__(
        self,
        otps: OtpStore,
        sessions: SessionRegistry,
        notifier: Notifier,
        audit: AuditRecorder,
        otp_ttl: timedelta,
        storage=None,
    ):
        self._otps = otps
        self._sessions = sessions
        self._notifier = notifier
        self._audit = audit
        self._otp_ttl = otp_ttl
        self._storage = storage or models.storage

    def _persist(self, user: User) -> User:
        self._storage.new(user)
        self._storage.save()
        return user

    def _send_code(self, contact: str, purpose: OtpPurpose) -> None:
        code = self._otps.generate_code()
        self._otps.create(contact, purpose, code, self._otp_ttl)
        self._notifier.send_otp(contact, code, purpose)

    def current_user(self, principal: Principal) -> User:
        user = get_user_by_email(self._storage, principal.subject)
        if user is None or user.is_deleted:
            raise UserNotFound()
        return user

    # --- registration & verification -----------------------------------

    def register(self, email: str, password: str, full_name: Optional[str] = None,
                 phone_number: Optional[str] = None) -> User:
        email = normalize_email(email)
        if get_user_by_email(self._storage, email):
            raise UserExisted()
        if phone_number and get_user_by_phone(self._storage, phone_number):
            raise PhoneExisted()

        user = User(
            email=email,
            full_name=full_name,
            phone_number=phone_number or None,
            password_hash=hash_password(password),
            roles=[Role.USER.value],
            verification_status=VerificationStatus.UNVERIFIED,
        )
        try:
            self._persist(user)
        except IntegrityError as exc:
            raise UserExisted() from exc

        # Supersedes codes left by a purged account with the same contacts
        self._otps.delete(email, OtpPurpose.VERIFY_EMAIL)
        self._send_code(email, OtpPurpose.VERIFY_EMAIL)
        if user.phone_number:
            self._otps.delete(user.phone_number, OtpPurpose.VERIFY_PHONE)
            self._send_code(user.phone_number, OtpPurpose.VERIFY_PHONE)

        self._audit.record(UserAction.REGISTER, user.id, user.email, f"User registered success with email: {email}")
        return user

    def resend_email_verification(self, email: str) -> None:
        """Replace any pending VERIFY_EMAIL code with a fresh one."""
        user = get_user_by_email(self._storage, email)
        if user is None or user.is_deleted:
            raise UserNotFound()
        self._otps.delete(user.email, OtpPurpose.VERIFY_EMAIL)
        self._send_code(user.email, OtpPurpose.VERIFY_EMAIL)

    def verify_email(self, code: str, email: str) -> User:
        email = normalize_email(email)
        self._otps.verify(code, email, OtpPurpose.VERIFY_EMAIL)
        user = get_user_by_email(self._storage, email)
        if user is None:
            raise UserNotFound()
        user.mark_verified(VerificationStatus.EMAIL_VERIFIED)
        self._persist(user)
        self._audit.record(UserAction.EMAIL_VERIFICATION, user.id, user.email, "User verified email")
        return user

    def verify_phone(self, code: str, phone_number: str) -> User:
        self._otps.verify(code, phone_number, OtpPurpose.VERIFY_PHONE)
        user = get_user_by_phone(self._storage, phone_number)
        if user is None:
            raise UserNotFound()
        user.mark_verified(VerificationStatus.PHONE_VERIFIED)
        self._persist(user)
        self._audit.record(UserAction.PHONE_VERIFICATION, user.id, user.email, "User verified phone")
        return user

    # --- credential changes --------------------------------------------

    def request_email_change(self, principal: Principal, new_email: str) -> None:
        user = self.current_user(principal)
        new_email = normalize_email(new_email)
        if get_user_by_email(self._storage, new_email):
            raise UserExisted("Mail existed")

        self._send_code(new_email, OtpPurpose.CHANGE_EMAIL)
        self._notifier.send_notice(
            user.email,
            "Email change requested",
            "Your account asked to change its email. Contact us if this was not you.",
        )
        self._audit.record(UserAction.CHANGED_EMAIL, user.id, user.email,
                           f"User requested email change to: {new_email}")

    def confirm_email_change(self, principal: Principal, new_email: str, code: str) -> User:
        """Swap the login email; every session is disabled so the user signs in again."""
        user = self.current_user(principal)
        new_email = normalize_email(new_email)
        self._otps.verify(code, new_email, OtpPurpose.CHANGE_EMAIL)

        old_email = user.email
        user.email = new_email
        try:
            self._persist(user)
        except IntegrityError as exc:
            raise UserExisted("Mail existed") from exc
        self._sessions.disable_all_for_account(user.id, actor=new_email)
        self._audit.record(UserAction.CHANGED_EMAIL, user.id, new_email,
                           f"User changed email from {old_email} to {new_email}")
        return user

    def request_phone_change(self, principal: Principal, old_phone: str, new_phone: str) -> None:
        user = self.current_user(principal)
        if (user.phone_number or "") != (old_phone or ""):
            raise ContactMismatch("Old phone is invalid")
        if get_user_by_phone(self._storage, new_phone):
            raise PhoneExisted()

        self._send_code(new_phone, OtpPurpose.CHANGE_PHONE)
        self._audit.record(UserAction.CHANGED_PHONE, user.id, user.email,
                           f"User requested phone change to: {new_phone}")

    def confirm_phone_change(self, principal: Principal, old_phone: str, new_phone: str, code: str) -> User:
        user = self.current_user(principal)
        if (user.phone_number or "") != (old_phone or ""):
            raise ContactMismatch("Old phone is invalid")
        self._otps.verify(code, new_phone, OtpPurpose.CHANGE_PHONE)

        user.phone_number = new_phone
        try:
            self._persist(user)
        except IntegrityError as exc:
            raise PhoneExisted() from exc
        self._audit.record(UserAction.PHONE_VERIFICATION, user.id, user.email,
                           f"User changed phone to: {new_phone}")
        return user

    def change_password(self, principal: Principal, old_password: str, new_password: str) -> int:
        """Returns how many sessions were disabled."""
        user = self.current_user(principal)
        if not verify_password(old_password or "", user.password_hash):
            raise PasswordNotMatch()
        if verify_password(new_password, user.password_hash):
            raise PasswordDuplicated()

        user.password_hash = hash_password(new_password)
        self._persist(user)
        disabled = self._sessions.disable_all_for_account(user.id, actor=user.email)
        self._audit.record(UserAction.PASSWORD_CHANGED, user.id, user.email, "User changed password")
        return disabled

    # --- administration --------------------------------------------------

    def set_roles(self, actor: Principal, user_id: str, roles: Iterable[Role]) -> User:
        user = get_user(self._storage, user_id)
        if user is None or user.is_deleted:
            raise UserNotFound()
        before = sorted(user.roles or [])
        user.roles = sorted({Role(r).value for r in roles})
        self._persist(user)
        self._audit.record(UserAction.ROLES_UPDATED, user.id, user.email,
                           f"{actor.subject} changed roles {before} -> {user.roles}")
        return user

    def delete_account(self, actor: Principal, user_id: str, hard: bool = False) -> None:
        """Soft delete disables sessions; hard delete also purges them with the row."""
        user = get_user(self._storage, user_id)
        if user is None or (user.is_deleted and not hard):
            raise UserNotFound()
        if user.is_admin:
            raise CannotDeleteAdmin()

        email = user.email
        phone_number = user.phone_number

        if hard:
            self._sessions.purge_for_account(user.id)
            for contact in filter(None, (email, phone_number)):
                self._otps.purge_contact(contact)
            self._storage.delete(user)
            self._storage.save()
        else:
            self._sessions.disable_all_for_account(user.id, actor=actor.subject)
            user.soft_delete()

        logger.info("Account %s deleted by %s (hard=%s)", user_id, actor.subject, hard)
        self._audit.record(UserAction.ACCOUNT_DELETED, user_id, email,
                           f"Deleted by {actor.subject} (hard={hard})")
