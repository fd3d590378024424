from datetime import datetime, timedelta, timezone

import jwt

from conftest import PASSWORD, auth_headers
from study_vault.config import get_settings
from study_vault.models.user import User
from study_vault.services import auth_service


async def signup(client, email="new@example.com", password="secret123", full_name="New Reader"):
    return await client.post(
        "/api/auth/signup",
        json={"fullName": full_name, "email": email, "password": password},
    )


async def test_signup_returns_user_and_token(client):
    response = await signup(client, email="  New@Example.com ")

    assert response.status_code == 201
    body = response.json()
    assert body["success"] is True
    assert body["token"]
    assert body["user"]["email"] == "new@example.com"
    assert "password" not in body["user"]

    stored = await User.find_one({"email": "new@example.com"})
    assert stored.password != "secret123"
    assert stored.password.startswith("$2")
    assert stored.login_attempts == 0


async def test_signup_rejects_duplicate_email(client):
    await signup(client)
    response = await signup(client, email="NEW@example.com")

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "message": "User already exists with this email address",
    }


async def test_signup_allows_email_of_deactivated_user(client, make_user):
    await make_user(email="new@example.com", is_active=False)
    response = await signup(client)
    assert response.status_code == 201


async def test_signup_validation(client):
    response = await signup(client, password="123")
    assert response.status_code == 400
    assert response.json()["message"] == "Password must be at least 6 characters long"

    response = await signup(client, email="not-an-email")
    assert response.status_code == 400
    assert response.json()["message"] == "Please enter a valid email address"

    response = await signup(client, full_name=" A ")
    assert response.status_code == 400
    assert response.json()["success"] is False


async def test_signup_rejects_malformed_email(client):
    for email in ("ada@example..com", "ada@", "ada example.com"):
        response = await signup(client, email=email)
        assert response.status_code == 400
        assert response.json()["message"] == "Please enter a valid email address"

    assert await User.find_all().count() == 0


async def test_signup_race_on_same_email_is_a_conflict(client, make_user, monkeypatch):
    await make_user(email="new@example.com")

    async def not_found_yet(email):
        return None

    # Both requests passed the existence check before either inserted
    monkeypatch.setattr(auth_service, "find_active_user_by_email", not_found_yet)

    response = await signup(client)

    assert response.status_code == 400
    assert response.json() == {
        "success": False,
        "message": "User already exists with this email address",
    }
    assert await User.find({"email": "new@example.com"}).count() == 1


async def test_signin_success_resets_counters(client, make_user):
    user = await make_user(login_attempts=3)

    response = await client.post("/api/auth/signin", json={"email": "READER@example.com", "password": PASSWORD})

    assert response.status_code == 200
    body = response.json()
    assert body["success"] is True
    assert body["token"]
    stored = await User.get(user.id)
    assert stored.login_attempts == 0
    assert stored.last_login is not None


async def test_signin_unknown_email_and_wrong_password_look_the_same(client, make_user):
    await make_user()

    unknown = await client.post("/api/auth/signin", json={"email": "ghost@example.com", "password": PASSWORD})
    wrong = await client.post("/api/auth/signin", json={"email": "reader@example.com", "password": "nope-nope"})

    assert unknown.status_code == wrong.status_code == 401
    assert unknown.json() == wrong.json() == {"success": False, "message": "Invalid email or password"}


async def test_lockout_after_five_failures(client, make_user):
    user = await make_user()
    for _ in range(5):
        response = await client.post("/api/auth/signin", json={"email": "reader@example.com", "password": "wrong-pass"})
        assert response.status_code == 401

    stored = await User.get(user.id)
    assert stored.login_attempts == 5
    assert stored.is_locked

    response = await client.post("/api/auth/signin", json={"email": "reader@example.com", "password": PASSWORD})
    assert response.status_code == 401
    assert "temporarily locked" in response.json()["message"]


async def test_signin_works_again_after_lock_expires(client, make_user):
    user = await make_user(login_attempts=5, lock_until=datetime.utcnow() - timedelta(minutes=1))

    response = await client.post("/api/auth/signin", json={"email": "reader@example.com", "password": PASSWORD})

    assert response.status_code == 200
    stored = await User.get(user.id)
    assert stored.login_attempts == 0
    assert stored.lock_until is None


async def test_profile_with_token(client, make_user):
    user = await make_user()
    response = await client.get("/api/auth/profile", headers=auth_headers(user))

    assert response.status_code == 200
    assert response.json()["user"]["id"] == str(user.id)


async def test_profile_without_token(client):
    response = await client.get("/api/auth/profile")
    assert response.status_code == 401
    assert response.json() == {"success": False, "message": "No token provided"}


async def test_profile_with_garbage_token(client):
    response = await client.get("/api/auth/profile", headers={"Authorization": "Bearer not.a.jwt"})
    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token"


async def test_expired_token_is_invalid(client, make_user):
    user = await make_user()
    settings = get_settings()
    past = datetime.now(timezone.utc) - timedelta(days=8)
    token = jwt.encode(
        {"sub": str(user.id), "iat": past, "exp": past + timedelta(days=7)},
        settings.signing_key,
        algorithm=settings.jwt_algorithm,
    )

    response = await client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token"


async def test_token_signed_with_other_key_is_invalid(client, make_user):
    user = await make_user()
    token = jwt.encode({"sub": str(user.id)}, "some-other-key-that-is-long-enough-123", algorithm="HS256")

    response = await client.get("/api/auth/profile", headers={"Authorization": f"Bearer {token}"})

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token"


async def test_token_of_deactivated_user_is_invalid(client, make_user):
    user = await make_user()
    headers = auth_headers(user)
    user.is_active = False
    await user.save()

    response = await client.get("/api/auth/profile", headers=headers)

    assert response.status_code == 401
    assert response.json()["message"] == "Invalid token"
