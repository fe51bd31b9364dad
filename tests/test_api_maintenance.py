"""Maintenance mode over HTTP: the probe, the admin toggle and the request gate."""

from conftest import access_token_for, bearer, login

STATUS = "/api/v1/config/maintenance/status"


def toggle(client, token, status):
    return client.post(f"/api/v1/admin/config/maintenance/{status}", headers=bearer(token))


def test_status_probe_defaults_to_off(client):
    resp = client.get(STATUS)

    assert resp.status_code == 200
    body = resp.get_json()
    assert body["maintenanceMode"] is False
    assert body["since"].endswith("Z")


def test_admin_toggles_and_everyone_is_told(client, user, admin, notifier, audit):
    token = access_token_for(client, "root@x.com")

    resp = toggle(client, token, "true")

    assert resp.status_code == 200
    assert resp.get_json()["maintenanceMode"] is True
    assert client.get(STATUS).get_json()["maintenanceMode"] is True
    assert notifier.broadcasts == [(["a@x.com", "root@x.com"], True)]

    assert toggle(client, token, "false").get_json()["maintenanceMode"] is False


def test_toggle_requires_admin(client, user):
    token = access_token_for(client, "a@x.com")

    assert toggle(client, token, "true").status_code == 403
    assert client.post("/api/v1/admin/config/maintenance/true").status_code == 401
    assert client.get(STATUS).get_json()["maintenanceMode"] is False


def test_unknown_status_value(client, admin):
    token = access_token_for(client, "root@x.com")
    assert toggle(client, token, "maybe").status_code == 400


def test_failing_broadcast_keeps_the_flag(client, admin, notifier):
    notifier.fail_broadcast = True
    token = access_token_for(client, "root@x.com")

    assert toggle(client, token, "true").status_code == 200
    assert client.get(STATUS).get_json()["maintenanceMode"] is True


class TestGate:
    def _enable(self, services):
        services.maintenance.state.set(True)

    def test_user_login_is_refused_and_admin_gets_in(self, client, services, user, admin):
        self._enable(services)

        refused = login(client, "a@x.com")
        assert refused.status_code == 503
        assert refused.get_json()["error"] == "MAINTENANCE_MODE"
        assert "Set-Cookie" not in refused.headers

        allowed = login(client, "root@x.com")
        assert allowed.status_code == 200
        assert allowed.get_json()["data"]["access_token"]
        assert any(h.startswith("accessToken=") for h in allowed.headers.getlist("Set-Cookie"))

    def test_probe_is_always_reachable(self, client, services, user):
        token = access_token_for(client, "a@x.com")
        self._enable(services)

        assert client.get(STATUS).status_code == 200
        assert client.get(STATUS, headers=bearer(token)).status_code == 200

    def test_user_requests_are_held_back(self, client, services, user):
        token = access_token_for(client, "a@x.com")
        self._enable(services)

        resp = client.post(
            "/api/v1/accounts/password/change",
            json={"old_password": "x", "new_password": "y"},
            headers=bearer(token),
        )
        assert resp.status_code == 503
        assert resp.get_json()["status"] == 503

        # user-info is allowlisted
        assert client.get("/api/v1/auth/info", headers=bearer(token)).status_code == 200

    def test_anonymous_requests_are_held_back(self, client, services):
        self._enable(services)
        assert client.post("/api/v1/accounts/register", json={}).status_code == 503

    def test_admin_requests_pass(self, client, services, user, admin):
        token = access_token_for(client, "root@x.com")
        self._enable(services)

        resp = client.post(f"/api/v1/users/{user.id}/roles", json={"roles": ["USER"]}, headers=bearer(token))
        assert resp.status_code == 200

    def test_garbage_token_counts_as_anonymous(self, client, services):
        self._enable(services)

        resp = client.get("/api/v1/health", headers=bearer("garbage"))
        assert resp.status_code == 503

    def test_refresh_stays_open(self, client, services, user):
        pair = login(client, "a@x.com").get_json()["data"]
        self._enable(services)

        resp = client.post("/api/v1/auth/refresh", json={"refresh_token": pair["refresh_token"]})
        assert resp.status_code == 200
