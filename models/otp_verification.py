from enum import Enum

from sqlalchemy import Column, String, DateTime, UniqueConstraint
from sqlalchemy.types import Enum as SAEnum

from models.base_model import BaseModel, Base


class OtpPurpose(str, Enum):
    VERIFY_EMAIL = "VERIFY_EMAIL"
    VERIFY_PHONE = "VERIFY_PHONE"
    CHANGE_EMAIL = "CHANGE_EMAIL"
    CHANGE_PHONE = "CHANGE_PHONE"


class OtpVerification(BaseModel, Base):
    __tablename__ = "otp_verifications"

    contact = Column(String(255), nullable=False)  # email or phone number
    code = Column(String(6), nullable=False)
    purpose = Column(SAEnum(OtpPurpose, name="otp_purpose", native_enum=False), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)

    # At most one pending code per (contact, purpose); concurrent creates lose here
    __table_args__ = (
        UniqueConstraint("contact", "purpose", name="uq_otp_contact_purpose"),
    )

    def __repr__(self):
        return f"<OtpVerification contact={self.contact} purpose={self.purpose}>"
