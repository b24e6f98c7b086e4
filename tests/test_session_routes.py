from unittest.mock import MagicMock

from redis.exceptions import ConnectionError as RedisConnectionError

from app.dependencies import Identity, get_current_identity, get_redis, get_session_service
from app.schemas.sessions import SessionOwnershipError


def bearer(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def test_list_revoke_others_scenario(client, register_and_login):
    laptop = register_and_login(user_agent="laptop")
    phone = register_and_login(user_agent="phone")

    response = client.get("/api/user/sessions", headers=bearer(laptop["access_token"]))

    assert response.status_code == 200
    body = response.json()
    assert body["total"] == 2
    current = [s for s in body["sessions"] if s["is_current"]]
    assert [s["session_id"] for s in current] == [laptop["session_id"]]
    assert {s["user_agent"] for s in body["sessions"]} == {"laptop", "phone"}
    assert all("token" not in s for s in body["sessions"])

    response = client.post(
        "/api/user/sessions/revoke-others", headers=bearer(laptop["access_token"])
    )

    assert response.status_code == 200
    assert response.json() == {"revoked": [phone["session_id"]], "failed": []}

    remaining = client.get("/api/user/sessions", headers=bearer(laptop["access_token"]))
    assert [s["session_id"] for s in remaining.json()["sessions"]] == [laptop["session_id"]]
    assert client.get("/api/user/sessions", headers=bearer(phone["access_token"])).status_code == 401


def test_paths_without_api_prefix(client, register_and_login):
    login = register_and_login()

    response = client.get("/user/sessions", headers=bearer(login["access_token"]))

    assert response.status_code == 200
    assert response.json()["total"] == 1


def test_revoke_own_session(client, register_and_login):
    laptop = register_and_login(user_agent="laptop")
    phone = register_and_login(user_agent="phone")

    response = client.delete(
        f"/api/user/session/{phone['session_id']}", headers=bearer(laptop["access_token"])
    )

    assert response.status_code == 200
    listed = client.get("/api/user/sessions", headers=bearer(laptop["access_token"])).json()
    assert listed["total"] == 1


def test_revoke_twice_returns_not_found(client, register_and_login):
    laptop = register_and_login(user_agent="laptop")
    phone = register_and_login(user_agent="phone")
    path = f"/api/user/session/{phone['session_id']}"

    assert client.delete(path, headers=bearer(laptop["access_token"])).status_code == 200
    assert client.delete(path, headers=bearer(laptop["access_token"])).status_code == 404


def test_cannot_revoke_another_users_session(client, register_and_login, store):
    alice = register_and_login(email="alice@example.com")
    bob = register_and_login(email="bob@example.com")

    response = client.delete(
        f"/api/user/session/{alice['session_id']}", headers=bearer(bob["access_token"])
    )

    assert response.status_code == 403
    assert store.get_by_session_id(alice["session_id"]).session_id == alice["session_id"]


def test_sessions_require_authentication(client):
    assert client.get("/api/user/sessions").status_code == 401
    assert client.get(
        "/api/user/sessions", headers={"Authorization": "Token abc"}
    ).status_code == 401
    assert client.get("/api/user/sessions", headers=bearer("not-a-jwt")).status_code == 401


def test_request_records_activity(client, register_and_login, store):
    login = register_and_login()
    before = store.get_by_session_id(login["session_id"]).last_activity

    client.get("/api/user/sessions", headers=bearer(login["access_token"]))

    assert store.get_by_session_id(login["session_id"]).last_activity >= before


def test_session_routes_unavailable_without_redis(client):
    from app.main import app

    app.state.redis = None

    response = client.get("/api/user/sessions", headers=bearer("whatever"))

    assert response.status_code == 503


def test_storage_failure_on_valid_token_returns_500(client, register_and_login):
    from app.main import app

    login = register_and_login()
    broken = MagicMock()
    broken.get.side_effect = RedisConnectionError("secret-host:6379 refused")
    app.dependency_overrides[get_redis] = lambda: broken

    response = client.get("/api/user/sessions", headers=bearer(login["access_token"]))

    assert response.status_code == 500
    assert response.json() == {"detail": "Session storage unavailable"}
    assert "secret-host" not in response.text


def test_revoke_others_with_foreign_current_session_logs_ownership(client, caplog):
    from app.main import app

    service = MagicMock()
    service.revoke_other_sessions.side_effect = SessionOwnershipError(
        "Current session belongs to another user"
    )
    app.dependency_overrides[get_current_identity] = lambda: Identity(
        user_id="1", session_id="abc", token="foreign-token"
    )
    app.dependency_overrides[get_session_service] = lambda: service

    with caplog.at_level("ERROR", logger="app.routers.sessions"):
        response = client.post("/api/user/sessions/revoke-others")

    assert response.status_code == 401
    assert response.json() == {"detail": "Failed to get current session"}
    assert "Current session does not belong to user 1" in caplog.text
    assert "Current session not found" not in caplog.text
