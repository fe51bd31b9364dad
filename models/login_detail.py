"""
LoginDetail model: one revocable session per issued token pair.
Fields:
- jti (unique) - shared by the ACCESS and REFRESH token of a login
- enabled (bool) - false once logged out / revoked
- expires_at - pushed forward on every refresh
- user_id (String(36)) - FK to users.id
"""
from sqlalchemy import Column, String, Boolean, DateTime, ForeignKey, UniqueConstraint
from sqlalchemy.orm import relationship

from models.base_model import AuditMixin, BaseModel, Base


class LoginDetail(AuditMixin, BaseModel, Base):
    __tablename__ = "login_details"

    jti = Column(String(64), nullable=False, index=True)
    enabled = Column(Boolean, default=True, nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
    user_id = Column(String(36), ForeignKey("users.id", ondelete="CASCADE"), nullable=False, index=True)

    user = relationship("User", back_populates="login_details")

    __table_args__ = (
        UniqueConstraint("jti", name="uq_login_details_jti"),
    )

    def __repr__(self):
        return f"<LoginDetail jti={self.jti} enabled={self.enabled}>"
