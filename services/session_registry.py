"""
SessionRegistry: revocable login sessions keyed by session id (jti).

Rows live in the login_details table. Uniqueness of the jti is enforced by the
table constraint, so create() is a plain insert that maps the IntegrityError.
"""
from __future__ import annotations

import logging
from datetime import datetime
from typing import Optional

from sqlalchemy.exc import IntegrityError

import models
from models.base_model import SYSTEM_ACTOR
from models.login_detail import LoginDetail
from services.errors import SessionIdConflict, SessionNotFound
from utils.timezone_utils import Clock, utcnow

logger = logging.getLogger(__name__)


class SessionRegistry:
    def __init__(self, storage=None, clock: Optional[Clock] = None):
        self._storage = storage or models.storage
        self._clock = clock or utcnow

    def _query(self):
        return self._storage.get_session().query(LoginDetail)

    def create(self, session_id: str, account_id: str, expiry: datetime, actor: str | None = None) -> LoginDetail:
        record = LoginDetail(
            jti=session_id,
            user_id=account_id,
            enabled=True,
            expires_at=expiry,
            created_by=actor or SYSTEM_ACTOR,
            updated_by=actor or SYSTEM_ACTOR,
        )
        self._storage.new(record)
        try:
            self._storage.save()
        except IntegrityError as exc:
            logger.error("Session id collision for account %s", account_id)
            raise SessionIdConflict() from exc
        logger.info("Session %s created for account %s", session_id, account_id)
        return record

    def get(self, session_id: str) -> Optional[LoginDetail]:
        return self._query().filter(LoginDetail.jti == session_id).first()

    def find_enabled(self, session_id: str) -> Optional[LoginDetail]:
        return (
            self._query()
            .filter(LoginDetail.jti == session_id, LoginDetail.enabled.is_(True))
            .first()
        )

    def disable(self, session_id: str, actor: str | None = None) -> LoginDetail:
        record = self.get(session_id)
        if record is None:
            raise SessionNotFound()
        record.enabled = False
        record.updated_by = actor or SYSTEM_ACTOR
        self._storage.new(record)
        self._storage.save()
        logger.info("Session %s disabled", session_id)
        return record

    def renew(self, session_id: str, new_expiry: datetime) -> LoginDetail:
        """Push the expiry of an enabled session forward; the id never changes."""
        record = self.find_enabled(session_id)
        if record is None:
            raise SessionNotFound()
        record.expires_at = new_expiry
        self._storage.new(record)
        self._storage.save()
        return record

    def disable_all_for_account(self, account_id: str, actor: str | None = None) -> int:
        count = (
            self._query()
            .filter(LoginDetail.user_id == account_id, LoginDetail.enabled.is_(True))
            .update(
                {"enabled": False, "updated_by": actor or SYSTEM_ACTOR, "updated_at": self._clock()},
                synchronize_session="fetch",
            )
        )
        self._storage.save()
        logger.info("Disabled %d session(s) for account %s", count, account_id)
        return count

    def purge_for_account(self, account_id: str) -> int:
        """Physically remove every session row of an account being removed."""
        count = (
            self._query()
            .filter(LoginDetail.user_id == account_id)
            .delete(synchronize_session="fetch")
        )
        self._storage.save()
        logger.info("Purged %d session(s) for account %s", count, account_id)
        return count
