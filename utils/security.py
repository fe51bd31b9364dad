"""
security helpers:
- Argon2 password hashing via argon2-cffi
- Session id (JTI) and OTP code generation
- TokenCodec: HS512 JWT creation/verification via PyJWT
"""
from __future__ import annotations

import logging
import secrets
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Protocol

import jwt
from argon2 import PasswordHasher
from argon2.exceptions import InvalidHashError, VerificationError

from models.user import Role
from services.errors import InvalidSignature, MalformedToken, SigningError, TokenExpired
from utils.timezone_utils import Clock, from_timestamp, to_timestamp, utcnow

logger = logging.getLogger(__name__)

ph = PasswordHasher()

OTP_LENGTH = 6
REQUIRED_CLAIMS = ["sub", "iss", "iat", "exp", "jti", "type"]


def hash_password(password: str) -> str:
    """Hash a plaintext password using Argon2
    """
    return ph.hash(password)


def verify_password(password: str, password_hash: str) -> bool:
    """ Verify a plaintext password using argon2
    """
    try:
        return ph.verify(password_hash, password)
    except (VerificationError, InvalidHashError):
        return False


def generate_jti() -> str:
    """Generate a session id (random UUID4)."""
    return str(uuid.uuid4())


def generate_otp(length: int = OTP_LENGTH) -> str:
    """Zero-padded numeric code, e.g. '004217'."""
    return f"{secrets.randbelow(10 ** length):0{length}d}"


class TokenPurpose(str, Enum):
    ACCESS = "ACCESS"
    REFRESH = "REFRESH"
    RESET_PASSWORD = "RESET_PASSWORD"


class TokenSubject(Protocol):
    email: str

    @property
    def role_set(self) -> frozenset[Role]: ...


def build_scope(roles) -> str:
    """'ROLE_ADMIN ROLE_USER' style scope string, sorted for stable output."""
    return " ".join(sorted(Role(r).authority for r in roles))


def parse_scope(scope: str | None) -> frozenset[Role]:
    roles = set()
    for authority in (scope or "").split():
        try:
            roles.add(Role.from_authority(authority))
        except ValueError:
            logger.warning("Ignoring unknown authority in token scope: %s", authority)
    return frozenset(roles)


@dataclass(frozen=True)
class TokenClaims:
    subject: str
    issuer: str
    issued_at: datetime
    expires_at: datetime
    session_id: str
    scope: str
    purpose: TokenPurpose
    raw: Dict[str, Any] = field(default_factory=dict, compare=False, repr=False)

    @property
    def roles(self) -> frozenset[Role]:
        return parse_scope(self.scope)

    @classmethod
    def from_payload(cls, payload: Mapping[str, Any]) -> "TokenClaims":
        try:
            return cls(
                subject=str(payload["sub"]),
                issuer=str(payload["iss"]),
                issued_at=from_timestamp(payload["iat"]),
                expires_at=from_timestamp(payload["exp"]),
                session_id=str(payload["jti"]),
                scope=str(payload.get("scope", "")),
                purpose=TokenPurpose(payload["type"]),
                raw=dict(payload),
            )
        except (KeyError, TypeError, ValueError, OverflowError, OSError) as exc:
            raise MalformedToken(f"Invalid token claims: {exc}") from exc


class TokenCodec:
    """
    Builds and validates signed session tokens.

    Stateless beyond the shared secret, the per-purpose durations and the clock;
    purpose and session liveness are checked by AuthPipeline, not here.
    """

    def __init__(
        self,
        secret: str,
        durations: Mapping[TokenPurpose, timedelta],
        issuer: str = "library-auth",
        algorithm: str = "HS512",
        clock: Optional[Clock] = None,
    ):
        missing = [p.value for p in TokenPurpose if p not in durations]
        if missing:
            raise ValueError(f"missing token durations for: {', '.join(missing)}")
        self._secret = secret
        self._durations = dict(durations)
        self._issuer = issuer
        self._algorithm = algorithm
        self._clock = clock or utcnow

    @classmethod
    def from_config(cls, config: Mapping[str, Any], clock: Optional[Clock] = None) -> "TokenCodec":
        return cls(
            secret=config["JWT_SECRET"],
            durations={
                TokenPurpose.ACCESS: config["ACCESS_TOKEN_EXPIRES"],
                TokenPurpose.REFRESH: config["REFRESH_TOKEN_EXPIRES"],
                TokenPurpose.RESET_PASSWORD: config["RESET_TOKEN_EXPIRES"],
            },
            issuer=config.get("JWT_ISSUER", "library-auth"),
            algorithm=config.get("JWT_ALGORITHM", "HS512"),
            clock=clock,
        )

    def now(self) -> datetime:
        return self._clock()

    def duration(self, purpose: TokenPurpose) -> timedelta:
        return self._durations[TokenPurpose(purpose)]

    def issue(self, account: TokenSubject, purpose: TokenPurpose, session_id: str) -> str:
        purpose = TokenPurpose(purpose)
        duration = self.duration(purpose)
        logger.info("Generating token: %s, duration: %ss", purpose.value, int(duration.total_seconds()))
        issued_at = to_timestamp(self._clock())
        payload = {
            "sub": account.email,
            "iss": self._issuer,
            "iat": issued_at,
            "exp": issued_at + int(duration.total_seconds()),
            "jti": session_id,
            "scope": build_scope(account.role_set),
            "type": purpose.value,
        }
        try:
            return jwt.encode(payload, self._secret, algorithm=self._algorithm)
        except (jwt.PyJWTError, TypeError, ValueError) as exc:
            logger.error("Error creating token: %s", exc)
            raise SigningError() from exc

    def renew_refresh(self, account: TokenSubject, session_id: str) -> str:
        """REFRESH token that keeps the existing session id."""
        return self.issue(account, TokenPurpose.REFRESH, session_id)

    def verify(self, token: str) -> TokenClaims:
        """Parse, check the MAC, then check `now < exp`. Nothing else."""
        if not token or not isinstance(token, str):
            raise MalformedToken("Token is missing")
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "verify_aud": False,
                    "require": REQUIRED_CLAIMS,
                },
            )
        except (jwt.InvalidSignatureError, jwt.InvalidAlgorithmError) as exc:
            logger.warning("Invalid token signature")
            raise InvalidSignature() from exc
        except jwt.InvalidTokenError as exc:
            logger.warning("Malformed token: %s", exc)
            raise MalformedToken() from exc

        claims = TokenClaims.from_payload(payload)
        if not self._clock() < claims.expires_at:
            logger.info("Token expired for session %s", claims.session_id)
            raise TokenExpired()
        return claims
