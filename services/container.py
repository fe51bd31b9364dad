"""
build_services() wires one instance of each collaborator from a Flask-style
config mapping; create_app stores the result in app.extensions.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Callable, Mapping, Optional

import models
from services.account import AccountService
from services.auth_flow import AuthenticationFlow
from services.auth_pipeline import AuthPipeline
from services.maintenance import MaintenanceService, MaintenanceState
from services.notifier import AuditRecorder, Notifier
from services.otp_store import OtpStore
from services.session_registry import SessionRegistry
from utils.security import TokenCodec
from utils.timezone_utils import Clock

EXTENSION_KEY = "library_auth"


@dataclass
class AuthServices:
    codec: TokenCodec
    sessions: SessionRegistry
    otps: OtpStore
    pipeline: AuthPipeline
    maintenance: MaintenanceService
    flow: AuthenticationFlow
    accounts: AccountService
    notifier: Notifier
    audit: AuditRecorder


def build_services(
    config: Mapping[str, Any],
    notifier: Optional[Notifier] = None,
    audit: Optional[AuditRecorder] = None,
    clock: Optional[Clock] = None,
    dispatch: Optional[Callable] = None,
    storage=None,
) -> AuthServices:
    storage = storage or models.storage
    notifier = notifier or Notifier()
    audit = audit or AuditRecorder()

    codec = TokenCodec.from_config(config, clock=clock)
    sessions = SessionRegistry(storage, clock=clock)
    otps = OtpStore(storage, clock=clock)
    maintenance = MaintenanceService(
        MaintenanceState(config.get("MAINTENANCE_MODE", False), clock=clock),
        notifier,
        audit,
        dispatch=dispatch,
    )
    flow = AuthenticationFlow(
        codec,
        sessions,
        maintenance,
        notifier,
        audit,
        storage=storage,
        cookie_secure=config.get("COOKIE_SECURE", True),
    )
    accounts = AccountService(otps, sessions, notifier, audit, config["OTP_TTL"], storage=storage)
    return AuthServices(
        codec=codec,
        sessions=sessions,
        otps=otps,
        pipeline=AuthPipeline(codec, sessions),
        maintenance=maintenance,
        flow=flow,
        accounts=accounts,
        notifier=notifier,
        audit=audit,
    )
