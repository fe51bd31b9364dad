"""HTTP tests for /api/v1/accounts and the admin /api/v1/users routes."""

from datetime import timedelta

import pytest

from models.otp_verification import OtpPurpose
from models.user import VerificationStatus
from services.notifier import UserAction

from conftest import PASSWORD, access_token_for, bearer, login

NEW_PASSWORD = "Fresh-passw0rd"


def wrong_code(code):
    return "000000" if code != "000000" else "111111"


class TestRegistration:
    def test_register_then_verify_both_channels(self, client, notifier, audit):
        resp = client.post(
            "/api/v1/accounts/register",
            json={"email": "New@X.com", "password": PASSWORD, "full_name": "New", "phone_number": "+15550001"},
        )
        assert resp.status_code == 201
        data = resp.get_json()["data"]
        assert data["email"] == "new@x.com"
        assert data["roles"] == ["USER"]
        assert data["verification_status"] == "UNVERIFIED"
        assert "password" not in data

        email_code = notifier.codes[("new@x.com", OtpPurpose.VERIFY_EMAIL)]
        resp = client.post("/api/v1/accounts/verify-email", json={"email": "new@x.com", "code": email_code})
        assert resp.status_code == 200
        assert resp.get_json()["data"]["verification_status"] == "EMAIL_VERIFIED"

        phone_code = notifier.codes[("+15550001", OtpPurpose.VERIFY_PHONE)]
        resp = client.post("/api/v1/accounts/verify-phone", json={"phone_number": "+15550001", "code": phone_code})
        assert resp.status_code == 200
        assert resp.get_json()["data"]["verification_status"] == "FULLY_VERIFIED"

        assert UserAction.REGISTER in audit.actions()

    def test_duplicate_email(self, client, user):
        resp = client.post("/api/v1/accounts/register", json={"email": "a@x.com", "password": PASSWORD})
        assert resp.status_code == 409
        assert resp.get_json()["error"] == "USER_EXISTED"

    def test_weak_password(self, client):
        resp = client.post("/api/v1/accounts/register", json={"email": "n@x.com", "password": "short"})
        assert resp.status_code == 422

    def test_wrong_code_burns_the_pending_one(self, client, notifier):
        client.post("/api/v1/accounts/register", json={"email": "n@x.com", "password": PASSWORD})
        code = notifier.codes[("n@x.com", OtpPurpose.VERIFY_EMAIL)]

        resp = client.post("/api/v1/accounts/verify-email", json={"email": "n@x.com", "code": wrong_code(code)})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "OTP_INVALID"

        resp = client.post("/api/v1/accounts/verify-email", json={"email": "n@x.com", "code": code})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "OTP_NOT_EXISTED"

    def test_expired_code(self, client, notifier, clock):
        client.post("/api/v1/accounts/register", json={"email": "n@x.com", "password": PASSWORD})
        code = notifier.codes[("n@x.com", OtpPurpose.VERIFY_EMAIL)]
        clock.advance(minutes=5)

        resp = client.post("/api/v1/accounts/verify-email", json={"email": "n@x.com", "code": code})
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "OTP_EXPIRED"

    def test_leftover_code_does_not_block_registration(self, client, services, notifier):
        services.otps.create("n@x.com", OtpPurpose.VERIFY_EMAIL, "123456", timedelta(minutes=5))

        resp = client.post("/api/v1/accounts/register", json={"email": "n@x.com", "password": PASSWORD})

        assert resp.status_code == 201
        code = notifier.codes[("n@x.com", OtpPurpose.VERIFY_EMAIL)]
        assert services.otps.find("n@x.com", OtpPurpose.VERIFY_EMAIL).code == code

    def test_resend_replaces_the_code(self, client, notifier):
        client.post("/api/v1/accounts/register", json={"email": "n@x.com", "password": PASSWORD})
        notifier.codes.clear()

        resp = client.post("/api/v1/accounts/verify-email/resend", json={"email": "n@x.com"})
        assert resp.status_code == 202
        code = notifier.codes[("n@x.com", OtpPurpose.VERIFY_EMAIL)]

        ok = client.post("/api/v1/accounts/verify-email", json={"email": "n@x.com", "code": code})
        assert ok.status_code == 200

    def test_malformed_code(self, client):
        resp = client.post("/api/v1/accounts/verify-email", json={"email": "n@x.com", "code": "12ab"})
        assert resp.status_code == 422


class TestEmailChange:
    def test_change_signs_out_everywhere(self, client, user, notifier):
        other_session = access_token_for(client, "a@x.com")
        token = access_token_for(client, "a@x.com")

        resp = client.post("/api/v1/accounts/email/change", json={"new_email": "b@x.com"}, headers=bearer(token))
        assert resp.status_code == 202
        assert ("a@x.com", "Email change requested") in notifier.notices

        code = notifier.codes[("b@x.com", OtpPurpose.CHANGE_EMAIL)]
        resp = client.post(
            "/api/v1/accounts/email/verify", json={"new_email": "b@x.com", "code": code}, headers=bearer(token)
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["email"] == "b@x.com"

        for stale in (token, other_session):
            assert client.get("/api/v1/auth/info", headers=bearer(stale)).status_code == 401
        assert login(client, "a@x.com").status_code == 401
        assert login(client, "b@x.com").status_code == 200

    def test_taken_email(self, client, user, make_user):
        make_user("b@x.com")
        token = access_token_for(client, "a@x.com")

        resp = client.post("/api/v1/accounts/email/change", json={"new_email": "b@x.com"}, headers=bearer(token))
        assert resp.status_code == 409

    def test_requires_login(self, client):
        resp = client.post("/api/v1/accounts/email/change", json={"new_email": "b@x.com"})
        assert resp.status_code == 401


class TestPhoneChange:
    def test_change_phone(self, client, make_user, notifier):
        make_user("p@x.com", phone_number="+15550001")
        token = access_token_for(client, "p@x.com")

        resp = client.post(
            "/api/v1/accounts/phone/change",
            json={"old_phone": "+1 555 0001", "new_phone": "+15550002"},
            headers=bearer(token),
        )
        assert resp.status_code == 202

        code = notifier.codes[("+15550002", OtpPurpose.CHANGE_PHONE)]
        resp = client.post(
            "/api/v1/accounts/phone/verify",
            json={"old_phone": "+15550001", "new_phone": "+15550002", "code": code},
            headers=bearer(token),
        )
        assert resp.status_code == 200
        assert resp.get_json()["data"]["phone_number"] == "+15550002"

    def test_old_phone_must_match(self, client, make_user):
        make_user("p@x.com", phone_number="+15550001")
        token = access_token_for(client, "p@x.com")

        resp = client.post(
            "/api/v1/accounts/phone/change",
            json={"old_phone": "+15559999", "new_phone": "+15550002"},
            headers=bearer(token),
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "CONTACT_MISMATCH"

    def test_mismatch_on_confirm_keeps_the_code(self, client, make_user, notifier):
        make_user("p@x.com", phone_number="+15550001")
        token = access_token_for(client, "p@x.com")
        client.post(
            "/api/v1/accounts/phone/change",
            json={"old_phone": "+15550001", "new_phone": "+15550002"},
            headers=bearer(token),
        )
        code = notifier.codes[("+15550002", OtpPurpose.CHANGE_PHONE)]

        resp = client.post(
            "/api/v1/accounts/phone/verify",
            json={"old_phone": "+15559999", "new_phone": "+15550002", "code": code},
            headers=bearer(token),
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "CONTACT_MISMATCH"

        resp = client.post(
            "/api/v1/accounts/phone/verify",
            json={"old_phone": "+15550001", "new_phone": "+15550002", "code": code},
            headers=bearer(token),
        )
        assert resp.status_code == 200


class TestPasswordChange:
    def test_change_disables_all_sessions(self, client, user):
        first = access_token_for(client, "a@x.com")
        second = access_token_for(client, "a@x.com")

        resp = client.post(
            "/api/v1/accounts/password/change",
            json={"old_password": PASSWORD, "new_password": NEW_PASSWORD},
            headers=bearer(second),
        )
        assert resp.status_code == 200
        assert resp.get_json()["sessions_disabled"] == 2

        for token in (first, second):
            assert client.get("/api/v1/auth/info", headers=bearer(token)).status_code == 401
        assert login(client, "a@x.com", NEW_PASSWORD).status_code == 200

    def test_wrong_old_password(self, client, user):
        token = access_token_for(client, "a@x.com")
        resp = client.post(
            "/api/v1/accounts/password/change",
            json={"old_password": "not-my-password", "new_password": NEW_PASSWORD},
            headers=bearer(token),
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "PASSWORD_NOT_MATCH"

    def test_same_password(self, client, user):
        token = access_token_for(client, "a@x.com")
        resp = client.post(
            "/api/v1/accounts/password/change",
            json={"old_password": PASSWORD, "new_password": PASSWORD},
            headers=bearer(token),
        )
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "PASSWORD_DUPLICATED"


class TestAdmin:
    def test_set_roles(self, client, user, admin):
        token = access_token_for(client, "root@x.com")

        resp = client.post(f"/api/v1/users/{user.id}/roles", json={"roles": ["ADMIN", "USER"]}, headers=bearer(token))

        assert resp.status_code == 200
        assert resp.get_json()["data"]["roles"] == ["ADMIN", "USER"]
        promoted = access_token_for(client, "a@x.com")
        info = client.get("/api/v1/auth/info", headers=bearer(promoted)).get_json()["data"]
        assert info["scope"] == "ROLE_ADMIN ROLE_USER"

    def test_unknown_role(self, client, user, admin):
        token = access_token_for(client, "root@x.com")
        resp = client.post(f"/api/v1/users/{user.id}/roles", json={"roles": ["GOD"]}, headers=bearer(token))
        assert resp.status_code == 422

    def test_users_are_forbidden(self, client, user):
        token = access_token_for(client, "a@x.com")

        resp = client.post(f"/api/v1/users/{user.id}/roles", json={"roles": ["ADMIN"]}, headers=bearer(token))
        assert resp.status_code == 403
        assert resp.get_json()["error"] == "UNAUTHORIZED"

    def test_soft_delete_disables_sessions(self, client, user, admin):
        user_token = access_token_for(client, "a@x.com")
        token = access_token_for(client, "root@x.com")

        resp = client.delete(f"/api/v1/users/{user.id}", headers=bearer(token))

        assert resp.status_code == 204
        assert client.get("/api/v1/auth/info", headers=bearer(user_token)).status_code == 401
        assert login(client, "a@x.com").status_code == 401
        again = client.delete(f"/api/v1/users/{user.id}", headers=bearer(token))
        assert again.status_code == 404

    def test_hard_delete_purges(self, client, services, user, admin):
        pair = services.flow.login("a@x.com", PASSWORD)
        token = access_token_for(client, "root@x.com")

        resp = client.delete(f"/api/v1/users/{user.id}?hard=true", headers=bearer(token))

        assert resp.status_code == 204
        assert services.sessions.get(pair.session_id) is None
        assert client.post("/api/v1/accounts/register", json={"email": "a@x.com", "password": PASSWORD}).status_code == 201

    def test_register_again_after_hard_delete(self, client, services, admin, notifier):
        body = {"email": "n@x.com", "password": PASSWORD, "phone_number": "+15550001"}
        first = client.post("/api/v1/accounts/register", json=body)
        assert first.status_code == 201
        token = access_token_for(client, "root@x.com")

        resp = client.delete(f"/api/v1/users/{first.get_json()['data']['id']}?hard=true", headers=bearer(token))
        assert resp.status_code == 204
        assert services.otps.find("n@x.com", OtpPurpose.VERIFY_EMAIL) is None
        assert services.otps.find("+15550001", OtpPurpose.VERIFY_PHONE) is None

        again = client.post("/api/v1/accounts/register", json=body)
        assert again.status_code == 201
        code = notifier.codes[("n@x.com", OtpPurpose.VERIFY_EMAIL)]
        ok = client.post("/api/v1/accounts/verify-email", json={"email": "n@x.com", "code": code})
        assert ok.status_code == 200

    def test_admins_cannot_be_deleted(self, client, make_user, admin):
        other_admin = make_user("ops@x.com", roles=("ADMIN",))
        token = access_token_for(client, "root@x.com")

        resp = client.delete(f"/api/v1/users/{other_admin.id}", headers=bearer(token))
        assert resp.status_code == 400
        assert resp.get_json()["error"] == "CANNOT_DELETE_ADMIN"


@pytest.mark.parametrize(
    "current, channel, expected",
    [
        (VerificationStatus.UNVERIFIED, VerificationStatus.EMAIL_VERIFIED, VerificationStatus.EMAIL_VERIFIED),
        (VerificationStatus.EMAIL_VERIFIED, VerificationStatus.EMAIL_VERIFIED, VerificationStatus.EMAIL_VERIFIED),
        (VerificationStatus.EMAIL_VERIFIED, VerificationStatus.PHONE_VERIFIED, VerificationStatus.FULLY_VERIFIED),
        (VerificationStatus.PHONE_VERIFIED, VerificationStatus.EMAIL_VERIFIED, VerificationStatus.FULLY_VERIFIED),
    ],
)
def test_verification_status_folding(make_user, current, channel, expected):
    user = make_user("v@x.com", status=current)
    user.mark_verified(channel)
    assert user.verification_status is expected
