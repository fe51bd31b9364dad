"""
AuthPipeline: the decode-time checks run on every authenticated request.

    PARSED -> SIGNATURE_VERIFIED -> NOT_EXPIRED -> PURPOSE_CHECKED -> SESSION_LIVE -> VALID

The first three are TokenCodec.verify; the pipeline adds the purpose and
session checks. Any failure stops the walk and is raised as-is; callers must
re-authenticate, nothing is retried.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Mapping, Optional

from models.user import Role
from services.errors import AuthStep, SessionRevoked, TokenError, WrongTokenPurpose
from services.session_registry import SessionRegistry
from utils.security import TokenClaims, TokenCodec, TokenPurpose

logger = logging.getLogger(__name__)

ACCESS_COOKIE = "accessToken"
REFRESH_COOKIE = "refreshToken"


@dataclass(frozen=True)
class Principal:
    """The authenticated caller of one request."""

    subject: str
    roles: frozenset
    session_id: str
    claims: TokenClaims

    def has_role(self, role: Role) -> bool:
        return role in self.roles

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.roles


def extract_token(headers: Mapping[str, str], cookies: Mapping[str, str], cookie_name: str = ACCESS_COOKIE) -> Optional[str]:
    """Bearer header first (service-to-service calls), then the cookie."""
    auth = headers.get("Authorization", "") or ""
    if auth.startswith("Bearer "):
        token = auth.split(" ", 1)[1].strip()
        if token:
            return token
    return cookies.get(cookie_name) or None


class AuthPipeline:
    def __init__(self, codec: TokenCodec, sessions: SessionRegistry):
        self._codec = codec
        self._sessions = sessions

    def authenticate(self, token: Optional[str], purpose: TokenPurpose = TokenPurpose.ACCESS) -> Principal:
        purpose = TokenPurpose(purpose)
        try:
            claims = self._codec.verify(token)
            if claims.purpose is not purpose:
                raise WrongTokenPurpose()
            if self._sessions.find_enabled(claims.session_id) is None:
                raise SessionRevoked()
        except TokenError as exc:
            logger.info("Token rejected at %s: %s", exc.step.value, exc.message)
            raise

        logger.debug("Token accepted (%s) for %s", AuthStep.VALID.value, claims.subject)
        return Principal(
            subject=claims.subject,
            roles=claims.roles,
            session_id=claims.session_id,
            claims=claims,
        )

    def try_authenticate(self, token: Optional[str]) -> Optional[Principal]:
        """Soft variant: any token failure means an anonymous caller."""
        if not token:
            return None
        try:
            return self.authenticate(token)
        except TokenError:
            return None
