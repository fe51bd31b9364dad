from __future__ import annotations

from enum import Enum

from models.base_model import Base, BaseModel, SoftDeleteMixin
from sqlalchemy import Column, String, JSON
from sqlalchemy.orm import relationship
from sqlalchemy.types import Enum as SAEnum

AUTHORITY_PREFIX = "ROLE_"


class Role(str, Enum):
    """Capabilities an account can hold. The ROLE_ prefix only exists on the wire."""

    USER = "USER"
    ADMIN = "ADMIN"

    @property
    def authority(self) -> str:
        return f"{AUTHORITY_PREFIX}{self.value}"

    @classmethod
    def from_authority(cls, authority: str) -> "Role":
        if not authority.startswith(AUTHORITY_PREFIX):
            raise ValueError(f"not a role authority: {authority!r}")
        return cls(authority[len(AUTHORITY_PREFIX):])


class VerificationStatus(str, Enum):
    UNVERIFIED = "UNVERIFIED"
    EMAIL_VERIFIED = "EMAIL_VERIFIED"
    PHONE_VERIFIED = "PHONE_VERIFIED"
    FULLY_VERIFIED = "FULLY_VERIFIED"


class User(SoftDeleteMixin, BaseModel, Base):
    __tablename__ = "users"
    full_name = Column(String(255), nullable=True)
    email = Column(String(255), nullable=False, unique=True, index=True)
    phone_number = Column(String(20), nullable=True, unique=True, index=True)
    password_hash = Column(String(255), nullable=False)
    roles = Column(JSON, nullable=False, default=lambda: [Role.USER.value])
    verification_status = Column(
        SAEnum(VerificationStatus, name="verification_status", native_enum=False),
        nullable=False,
        default=VerificationStatus.UNVERIFIED,
    )

    login_details = relationship(
        "LoginDetail",
        back_populates="user",
        passive_deletes=True,
    )

    @property
    def password(self):
        raise AttributeError("Password: Write-only field")

    @property
    def role_set(self) -> frozenset[Role]:
        """Stored role names as Role members; unknown names are dropped."""
        known = {r.value for r in Role}
        return frozenset(Role(name) for name in (self.roles or []) if name in known)

    @property
    def is_admin(self) -> bool:
        return Role.ADMIN in self.role_set

    def mark_verified(self, channel: VerificationStatus) -> None:
        """Fold an email/phone verification into the overall status."""
        current = self.verification_status or VerificationStatus.UNVERIFIED
        if current in (VerificationStatus.UNVERIFIED, channel):
            self.verification_status = channel
        else:
            self.verification_status = VerificationStatus.FULLY_VERIFIED
