from conftest import bearer, login

URL = "/api/v1/internal/login-details/{}"


def test_lookup_live_session(client, services, user):
    pair = login(client, "a@x.com").get_json()["data"]
    jti = services.codec.verify(pair["access_token"]).session_id

    resp = client.get(URL.format(jti))

    assert resp.status_code == 200
    data = resp.get_json()["data"]
    assert data["jti"] == jti
    assert data["enabled"] is True
    assert data["expires_at"].endswith("Z")
    assert data["account"]["email"] == "a@x.com"
    assert data["account"]["id"] == user.id


def test_lookup_reports_disabled_sessions(client, services, user):
    pair = login(client, "a@x.com").get_json()["data"]
    jti = services.codec.verify(pair["access_token"]).session_id
    client.post("/api/v1/auth/logout", headers=bearer(pair["access_token"]))

    resp = client.get(URL.format(jti))

    assert resp.status_code == 200
    assert resp.get_json()["data"]["enabled"] is False


def test_unknown_session(client):
    resp = client.get(URL.format("nope"))

    assert resp.status_code == 404
    assert resp.get_json()["error"] == "LOGINDETAIL_NOTFOUND"


def test_internal_key_is_enforced_when_configured(app, client, services, user):
    app.config["INTERNAL_API_KEY"] = "sibling-service-key"
    pair = login(client, "a@x.com").get_json()["data"]
    jti = services.codec.verify(pair["access_token"]).session_id

    assert client.get(URL.format(jti)).status_code == 401
    assert client.get(URL.format(jti), headers={"X-Internal-Key": "wrong"}).status_code == 401
    assert client.get(URL.format(jti), headers={"X-Internal-Key": "sibling-service-key"}).status_code == 200
