"""
AuthenticationFlow: login, logout, refresh and the password-reset token.

A login mints one session id shared by its ACCESS and REFRESH tokens and
records it in the SessionRegistry; refresh keeps that id for the life of the
session, so revoking the session kills both tokens at once.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError

import models
from models.user import User, VerificationStatus
from services.auth_pipeline import ACCESS_COOKIE, REFRESH_COOKIE
from services.errors import (
    AppError,
    InvalidCredentials,
    MaintenanceModeActive,
    SessionNotFound,
    SessionRevoked,
    TokenError,
    Unauthenticated,
    UncategorizedError,
    UserNotFound,
    UserNotVerified,
    WrongTokenPurpose,
)
from services.maintenance import MaintenanceService
from services.notifier import AuditRecorder, Notifier, UserAction
from services.session_registry import SessionRegistry
from services.users import get_user_by_email
from utils.security import TokenClaims, TokenCodec, TokenPurpose, generate_jti, hash_password, verify_password

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    session_id: str
    access_expires_in: int
    refresh_expires_in: int


class AuthenticationFlow:
    def __init__(
        self,
        codec: TokenCodec,
        sessions: SessionRegistry,
        maintenance: MaintenanceService,
        notifier: Notifier,
        audit: AuditRecorder,
        storage=None,
        cookie_secure: bool = True,
    ):
        self._codec = codec
        self._sessions = sessions
        self._maintenance = maintenance
        self._notifier = notifier
        self._audit = audit
        self._storage = storage or models.storage
        self._cookie_secure = cookie_secure

    def _seconds(self, purpose: TokenPurpose) -> int:
        return int(self._codec.duration(purpose).total_seconds())

    def _active_user(self, email: str) -> Optional[User]:
        user = get_user_by_email(self._storage, email)
        if user is None or user.is_deleted:
            return None
        return user

    def _issue_pair(self, user: User, session_id: str, renewing: bool = False) -> TokenPair:
        refresh = (
            self._codec.renew_refresh(user, session_id)
            if renewing
            else self._codec.issue(user, TokenPurpose.REFRESH, session_id)
        )
        return TokenPair(
            access_token=self._codec.issue(user, TokenPurpose.ACCESS, session_id),
            refresh_token=refresh,
            session_id=session_id,
            access_expires_in=self._seconds(TokenPurpose.ACCESS),
            refresh_expires_in=self._seconds(TokenPurpose.REFRESH),
        )

    def login(self, email: str, password: str) -> TokenPair:
        user = self._active_user(email)
        if user is None or not verify_password(password or "", user.password_hash):
            logger.info("Login failed for %s", email)
            raise InvalidCredentials()

        if self._maintenance.is_maintenance_mode() and not user.is_admin:
            logger.info("Login refused for %s: maintenance mode", user.email)
            raise MaintenanceModeActive()

        try:
            session_id = generate_jti()
            pair = self._issue_pair(user, session_id)
            expiry = self._codec.now() + self._codec.duration(TokenPurpose.REFRESH)
            self._sessions.create(session_id, user.id, expiry, actor=user.email)
        except AppError:
            raise
        except SQLAlchemyError as exc:
            logger.error("Error saving login session: %s", exc)
            raise UncategorizedError() from exc

        self._audit.record(UserAction.LOGIN, user.id, user.email, "User login success!!!")
        return pair

    def logout(self, access_token: Optional[str]) -> TokenClaims:
        """Revoke the session behind the token; purpose and liveness are not checked."""
        if not access_token:
            raise Unauthenticated()
        try:
            claims = self._codec.verify(access_token)
        except TokenError as exc:
            raise Unauthenticated() from exc

        try:
            self._sessions.disable(claims.session_id, actor=claims.subject)
        except SessionNotFound as exc:
            logger.info("Logout for unknown session %s", claims.session_id)
            raise Unauthenticated() from exc
        except SQLAlchemyError as exc:
            logger.error("Error disabling session %s: %s", claims.session_id, exc)
            raise UncategorizedError() from exc

        user = get_user_by_email(self._storage, claims.subject)
        self._audit.record(UserAction.LOGOUT, user.id if user else None, claims.subject, "User logout success!!!")
        return claims

    def refresh(self, refresh_token: Optional[str]) -> TokenPair:
        if not refresh_token:
            raise Unauthenticated()
        claims = self._codec.verify(refresh_token)
        if claims.purpose != TokenPurpose.REFRESH:
            logger.warning("Token is not a refresh token")
            raise WrongTokenPurpose()

        user = self._active_user(claims.subject)
        if user is None:
            raise Unauthenticated()

        try:
            expiry = self._codec.now() + self._codec.duration(TokenPurpose.REFRESH)
            self._sessions.renew(claims.session_id, expiry)
            return self._issue_pair(user, claims.session_id, renewing=True)
        except SessionNotFound as exc:
            raise SessionRevoked() from exc
        except SQLAlchemyError as exc:
            logger.error("Error renewing session %s: %s", claims.session_id, exc)
            raise UncategorizedError() from exc

    def forgot_password(self, email: str) -> None:
        """Mail a one-shot RESET_PASSWORD token to a fully verified account."""
        user = self._active_user(email)
        if user is None:
            raise UserNotFound()
        if user.verification_status != VerificationStatus.FULLY_VERIFIED:
            raise UserNotVerified()

        session_id = generate_jti()
        token = self._codec.issue(user, TokenPurpose.RESET_PASSWORD, session_id)
        expiry = self._codec.now() + self._codec.duration(TokenPurpose.RESET_PASSWORD)
        try:
            self._sessions.create(session_id, user.id, expiry, actor=user.email)
        except SQLAlchemyError as exc:
            raise UncategorizedError() from exc

        self._audit.record(
            UserAction.PASSWORD_RESET_REQUEST, user.id, user.email,
            f"User request reset password with email: {user.email}",
        )
        self._notifier.send_password_reset(user.email, token)

    def reset_password(self, token: Optional[str], new_password: str) -> None:
        if not token:
            raise Unauthenticated()
        claims = self._codec.verify(token)
        if claims.purpose != TokenPurpose.RESET_PASSWORD:
            raise WrongTokenPurpose()
        if self._sessions.find_enabled(claims.session_id) is None:
            raise SessionRevoked()

        user = self._active_user(claims.subject)
        if user is None:
            raise UserNotFound()

        try:
            user.password_hash = hash_password(new_password)
            self._storage.new(user)
            self._storage.save()
            # Also disables the reset session itself, so the token works once
            self._sessions.disable_all_for_account(user.id, actor=user.email)
        except SQLAlchemyError as exc:
            raise UncategorizedError() from exc

        self._audit.record(
            UserAction.PASSWORD_RESET_SUCCESS, user.id, user.email,
            f"User reset password success with email: {user.email}",
        )

    def apply_cookies(self, response, pair: TokenPair):
        """Set both tokens as http-only cookies living as long as the token."""
        for name, value, max_age in (
            (ACCESS_COOKIE, pair.access_token, pair.access_expires_in),
            (REFRESH_COOKIE, pair.refresh_token, pair.refresh_expires_in),
        ):
            logger.debug("Setting cookie %s, max-age %s", name, max_age)
            response.set_cookie(
                name,
                value,
                max_age=max_age,
                path="/",
                secure=self._cookie_secure,
                httponly=True,
            )
        return response

    def clear_cookies(self, response):
        for name in (ACCESS_COOKIE, REFRESH_COOKIE):
            response.delete_cookie(name, path="/", secure=self._cookie_secure, httponly=True)
        return response
