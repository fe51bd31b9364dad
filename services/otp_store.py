"""
OtpStore: single-use numeric codes keyed by (contact, purpose).

"Insert if absent" is left to the uq_otp_contact_purpose constraint; the only
application-side step before the insert is clearing a record that has already
expired, which is a single DELETE and safe to race.
"""
from __future__ import annotations

import hmac
import logging
from datetime import timedelta
from typing import Optional

from sqlalchemy.exc import IntegrityError

import models
from models.otp_verification import OtpPurpose, OtpVerification
from services.errors import OtpAlreadyExists, OtpExpired, OtpInvalid, OtpNotFound
from utils.security import generate_otp
from utils.timezone_utils import Clock, as_naive_utc, utcnow

logger = logging.getLogger(__name__)


class OtpStore:
    def __init__(self, storage=None, clock: Optional[Clock] = None):
        self._storage = storage or models.storage
        self._clock = clock or utcnow

    def _query(self, contact: str, purpose: OtpPurpose):
        return (
            self._storage.get_session()
            .query(OtpVerification)
            .filter(OtpVerification.contact == contact, OtpVerification.purpose == OtpPurpose(purpose))
        )

    @staticmethod
    def generate_code() -> str:
        return generate_otp()

    def find(self, contact: str, purpose: OtpPurpose) -> Optional[OtpVerification]:
        return self._query(contact, purpose).first()

    def create(self, contact: str, purpose: OtpPurpose, code: str, ttl: timedelta) -> OtpVerification:
        now = self._clock()
        stale = (
            self._query(contact, purpose)
            .filter(OtpVerification.expires_at <= now)
            .delete(synchronize_session="fetch")
        )
        if stale:
            logger.info("Cleared expired %s code for %s", OtpPurpose(purpose).value, contact)

        record = OtpVerification(contact=contact, purpose=OtpPurpose(purpose), code=code, expires_at=now + ttl)
        self._storage.new(record)
        try:
            self._storage.save()
        except IntegrityError as exc:
            logger.warning("Pending %s code already exists for %s", OtpPurpose(purpose).value, contact)
            raise OtpAlreadyExists() from exc
        return record

    def verify(self, code: str, contact: str, purpose: OtpPurpose) -> bool:
        """Consume the pending code; every outcome but "not found" deletes it."""
        record = self.find(contact, purpose)
        if record is None:
            logger.warning("OTP not found for contact: %s, type: %s", contact, OtpPurpose(purpose).value)
            raise OtpNotFound()

        if not hmac.compare_digest(str(code or "").encode(), record.code.encode()):
            logger.warning("OTP mismatch for contact: %s, type: %s", contact, OtpPurpose(purpose).value)
            self.delete(contact, purpose)
            raise OtpInvalid()

        if as_naive_utc(record.expires_at) <= self._clock():
            logger.warning("OTP expired for contact: %s, type: %s", contact, OtpPurpose(purpose).value)
            self.delete(contact, purpose)
            raise OtpExpired()

        self.delete(contact, purpose)
        return True

    def delete(self, contact: str, purpose: OtpPurpose) -> int:
        count = self._query(contact, purpose).delete(synchronize_session="fetch")
        self._storage.save()
        return count

    def purge_contact(self, contact: str) -> int:
        """Drop every pending code addressed to the contact, whatever its purpose."""
        count = (
            self._storage.get_session()
            .query(OtpVerification)
            .filter(OtpVerification.contact == contact)
            .delete(synchronize_session="fetch")
        )
        self._storage.save()
        return count
