"""Account lookups shared by the auth and account services."""
from __future__ import annotations

from typing import Optional

from models.user import User


def normalize_email(email: str | None) -> str:
    return (email or "").strip().lower()


def get_user(storage, user_id: str) -> Optional[User]:
    return storage.get(User, user_id)


def get_user_by_email(storage, email: str | None) -> Optional[User]:
    return storage.get_session().query(User).filter(User.email == normalize_email(email)).first()


def get_user_by_phone(storage, phone: str | None) -> Optional[User]:
    if not phone:
        return None
    return storage.get_session().query(User).filter(User.phone_number == phone.strip()).first()


def active_emails(storage) -> list[str]:
    """Emails of every account that has not been deleted."""
    rows = (
        storage.get_session()
        .query(User.email)
        .filter(User.deleted_at.is_(None))
        .all()
    )
    return [email for (email,) in rows if email]
