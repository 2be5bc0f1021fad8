# tests/test_auth.py

"""
Tests for authentication endpoints and token decoding.
"""

import pytest
from fastapi.testclient import TestClient
from unittest.mock import patch, Mock


def supabase_session(token="test-token"):
    session = Mock()
    session.access_token = token
    session.refresh_token = "refresh-token"
    session.expires_in = 3600
    response = Mock()
    response.session = session
    return response


def auth_user(user_id="u-1", email="ana@example.com", metadata=None):
    user = Mock()
    user.id = user_id
    user.email = email
    user.user_metadata = metadata or {}
    response = Mock()
    response.user = user
    return response


@pytest.fixture
def token_client(monkeypatch):
    """Supabase client used by get_current_user to validate bearer tokens."""
    supabase = Mock()
    monkeypatch.setattr("dependencies.auth.get_supabase_client", lambda: supabase)
    return supabase


BEARER = {"Authorization": "Bearer some-token"}


# ------------------------------------------------------------------
# Login
# ------------------------------------------------------------------
def test_login_success(client: TestClient):
    """Test successful login."""
    with patch("routers.auth.get_supabase_client") as mock_supabase:
        mock_client = Mock()
        mock_client.auth.sign_in_with_password.return_value = supabase_session()
        mock_supabase.return_value = mock_client

        response = client.post(
            "/auth/login",
            json={"email": "Test@Example.com", "password": "password123"}
        )

        assert response.status_code == 200
        data = response.json()
        assert data["access_token"] == "test-token"
        assert data["refresh_token"] == "refresh-token"
        assert data["token_type"] == "bearer"

        credentials = mock_client.auth.sign_in_with_password.call_args.args[0]
        assert credentials["email"] == "test@example.com"


def test_login_invalid_credentials(client: TestClient):
    """Test login with invalid credentials."""
    with patch("routers.auth.get_supabase_client") as mock_supabase:
        mock_client = Mock()
        mock_client.auth.sign_in_with_password.side_effect = Exception("Invalid credentials")
        mock_supabase.return_value = mock_client

        response = client.post(
            "/auth/login",
            json={"email": "test@example.com", "password": "wrongpassword"}
        )

        assert response.status_code == 401
        assert "Invalid email or password" in response.json()["detail"]


def test_login_without_session(client: TestClient):
    with patch("routers.auth.get_supabase_client") as mock_supabase:
        mock_client = Mock()
        empty = Mock()
        empty.session = None
        mock_client.auth.sign_in_with_password.return_value = empty
        mock_supabase.return_value = mock_client

        response = client.post("/auth/login", json={"email": "test@example.com", "password": "x"})
        assert response.status_code == 401


def test_login_rate_limiting(client: TestClient):
    """Five attempts per address, then 429."""
    with patch("routers.auth.get_supabase_client") as mock_supabase:
        mock_client = Mock()
        mock_client.auth.sign_in_with_password.side_effect = Exception("Invalid credentials")
        mock_supabase.return_value = mock_client

        for _ in range(5):
            response = client.post("/auth/login", json={"email": "test@example.com", "password": "x"})
            assert response.status_code == 401

        response = client.post("/auth/login", json={"email": "test@example.com", "password": "x"})
        assert response.status_code == 429

        # Another address is counted separately
        response = client.post("/auth/login", json={"email": "other@example.com", "password": "x"})
        assert response.status_code == 401


# ------------------------------------------------------------------
# Token decoding
# ------------------------------------------------------------------
def test_me_reads_role_and_parks_from_metadata(client: TestClient, token_client):
    token_client.auth.get_user.return_value = auth_user(metadata={
        "role": "coordinador-parques",
        "full_name": "Ana Ruiz",
        "park_ids": [1, "2", "x"],
        "permissions": ["hr:write"],
    })

    response = client.get("/auth/me", headers=BEARER)
    assert response.status_code == 200
    me = response.json()
    assert me["id"] == "u-1"
    assert me["role"] == "coordinador-parques"
    assert me["park_ids"] == [1, 2]
    assert me["permissions"] == ["hr:write"]


def test_unknown_role_falls_back_to_auditor(client: TestClient, token_client):
    token_client.auth.get_user.return_value = auth_user(metadata={"role": "owner", "permissions": "all"})

    me = client.get("/auth/me", headers=BEARER).json()
    assert me["role"] == "consultor-auditor"
    assert me["permissions"] == []


def test_system_account(client: TestClient, token_client):
    token_client.auth.get_user.return_value = auth_user(metadata={"system": True})

    me = client.get("/auth/me", headers=BEARER).json()
    assert me["id"] == "system"
    assert me["role"] == "super-admin"
    assert me["permissions"] == ["*"]


def test_invalid_token(client: TestClient, token_client):
    token_client.auth.get_user.side_effect = Exception("JWT expired")

    response = client.get("/auth/me", headers=BEARER)
    assert response.status_code == 401
    assert response.headers["www-authenticate"] == "Bearer"


def test_missing_token(client: TestClient):
    assert client.get("/auth/me").status_code in (401, 403)


# ------------------------------------------------------------------
# Profile
# ------------------------------------------------------------------
def test_update_profile_merges_metadata(client: TestClient, db, login_as):
    login_as("operador-campo")
    db.auth.admin.get_user_by_id.return_value = auth_user(
        user_id="user-operador-campo",
        metadata={"role": "operador-campo", "phone": "333"},
    )

    response = client.patch("/auth/me", json={"full_name": "  Luis Pérez  ", "phone": ""})
    assert response.status_code == 200
    assert response.json()["full_name"] == "Luis Pérez"
    assert response.json()["phone"] is None

    user_id, attributes = db.auth.admin.update_user_by_id.call_args.args
    assert user_id == "user-operador-campo"
    assert attributes["user_metadata"] == {"role": "operador-campo", "phone": None, "full_name": "Luis Pérez"}


def test_empty_profile_update_is_a_no_op(client: TestClient, db, admin):
    response = client.patch("/auth/me", json={})
    assert response.status_code == 200
    db.auth.admin.update_user_by_id.assert_not_called()


def test_profile_update_for_unknown_user(client: TestClient, db, admin):
    missing = Mock()
    missing.user = None
    db.auth.admin.get_user_by_id.return_value = missing

    assert client.patch("/auth/me", json={"phone": "555"}).status_code == 404
