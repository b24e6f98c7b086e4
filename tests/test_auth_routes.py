def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_register_rejects_duplicate_email(client):
    payload = {"email": "Dup@Example.com", "password": "long-enough-1"}

    first = client.post("/api/auth/register", json=payload)
    second = client.post("/api/auth/register", json={**payload, "email": "dup@example.com"})

    assert first.status_code == 201
    assert first.json()["email"] == "dup@example.com"
    assert second.status_code == 400
    assert second.json()["detail"] == "Email already in use"


def test_register_rejects_short_password(client):
    response = client.post(
        "/api/auth/register", json={"email": "short@example.com", "password": "abc"}
    )

    assert response.status_code == 422


def test_login_with_wrong_password(client, register_and_login):
    register_and_login(email="rider@example.com")

    response = client.post(
        "/api/auth/login", json={"email": "rider@example.com", "password": "wrong-password"}
    )

    assert response.status_code == 401


def test_login_returns_session_bound_token(client, register_and_login, store):
    login = register_and_login()

    session = store.get_by_token(login["access_token"])

    assert session.session_id == login["session_id"]
    assert session.user_id == str(login["user_id"])
    assert login["token_type"] == "bearer"
    assert login["expires_in_seconds"] == 3600


def test_logout_invalidates_token(client, register_and_login):
    login = register_and_login()

    response = client.post("/api/auth/logout", headers=bearer(login["access_token"]))

    assert response.status_code == 200
    assert client.get("/api/users/me", headers=bearer(login["access_token"])).status_code == 401


def test_logout_all_revokes_every_device(client, register_and_login):
    laptop = register_and_login(user_agent="laptop")
    phone = register_and_login(user_agent="phone")

    response = client.post("/auth/logout-all", headers=bearer(laptop["access_token"]))

    assert response.status_code == 200
    assert sorted(response.json()["revoked"]) == sorted(
        [laptop["session_id"], phone["session_id"]]
    )
    assert client.get("/api/user/sessions", headers=bearer(phone["access_token"])).status_code == 401


def test_me_returns_profile(client, register_and_login):
    login = register_and_login(email="me@example.com")

    response = client.get("/api/users/me", headers=bearer(login["access_token"]))

    assert response.status_code == 200
    assert response.json()["email"] == "me@example.com"
    assert response.json()["role"] == "member"


def test_health_reports_components(client):
    response = client.get("/api/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok", "redis": True, "database": True}
