import os
import sys
from datetime import timedelta
from pathlib import Path

os.environ.setdefault("APP_ENV", "test")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest  # noqa: E402

ROOT = Path(__file__).resolve().parent.parent
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from api import create_app  # noqa: E402
from models import storage  # noqa: E402
from models.otp_verification import OtpPurpose  # noqa: E402
from models.user import Role, User, VerificationStatus  # noqa: E402
from services.container import EXTENSION_KEY  # noqa: E402
from services.notifier import AuditRecorder, Notifier  # noqa: E402
from utils.security import hash_password  # noqa: E402
from utils.timezone_utils import utcnow  # noqa: E402

PASSWORD = "Sup3r-secret-pw"


class FakeClock:
    """Naive-UTC clock the tests move by hand."""

    def __init__(self, start=None):
        self.now = (start or utcnow()).replace(microsecond=0)

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now = self.now + timedelta(**kwargs)
        return self.now


class RecordingNotifier(Notifier):
    def __init__(self):
        self.codes = {}
        self.reset_tokens = {}
        self.notices = []
        self.broadcasts = []
        self.fail_broadcast = False

    def send_otp(self, contact, code, purpose):
        self.codes[(contact, OtpPurpose(purpose))] = code

    def send_password_reset(self, email, token):
        self.reset_tokens[email] = token

    def send_notice(self, email, subject, body):
        self.notices.append((email, subject))

    def broadcast_maintenance(self, emails, enabled):
        if self.fail_broadcast:
            raise RuntimeError("mail server down")
        self.broadcasts.append((sorted(emails), enabled))


class RecordingAudit(AuditRecorder):
    def __init__(self):
        self.events = []

    def record(self, action, user_id, email, details=""):
        self.events.append((action, user_id, email))

    def actions(self):
        return [action for action, _, _ in self.events]


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def audit():
    return RecordingAudit()


@pytest.fixture
def app(clock, notifier, audit):
    app = create_app("test", notifier=notifier, audit=audit, clock=clock, dispatch=lambda fn: fn())
    yield app
    storage.close()
    storage.drop_all()


@pytest.fixture
def client(app):
    # Tokens are passed explicitly; the cookie jar would shadow request bodies
    return app.test_client(use_cookies=False)


@pytest.fixture
def cookie_client(app):
    return app.test_client()


@pytest.fixture
def services(app):
    return app.extensions[EXTENSION_KEY]


@pytest.fixture
def make_user(app):
    def _make_user(email, roles=(Role.USER,), password=PASSWORD,
                   status=VerificationStatus.FULLY_VERIFIED, phone_number=None):
        user = User(
            email=email,
            full_name=email.split("@")[0],
            phone_number=phone_number,
            password_hash=hash_password(password),
            roles=[Role(r).value for r in roles],
            verification_status=status,
        )
        storage.new(user)
        storage.save()
        return user

    return _make_user


@pytest.fixture
def user(make_user):
    return make_user("a@x.com")


@pytest.fixture
def admin(make_user):
    return make_user("root@x.com", roles=(Role.ADMIN, Role.USER))


def bearer(token):
    return {"Authorization": f"Bearer {token}"}


def login(client, email, password=PASSWORD):
    return client.post("/api/v1/auth/login", json={"email": email, "password": password})


def access_token_for(client, email, password=PASSWORD):
    resp = login(client, email, password)
    assert resp.status_code == 200, resp.get_json()
    return resp.get_json()["data"]["access_token"]
