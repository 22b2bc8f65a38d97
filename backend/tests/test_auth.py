"""
Tests for authentication endpoints.
"""
import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from mindchat.models.audit_log import AuditLog
from mindchat.models.user import User
from mindchat.services.audit import AuditAction


class TestRegister:
    """Tests for user registration endpoint."""

    def test_register_success(self, client: TestClient):
        """Test successful user registration."""
        response = client.post(
            "/api/v1/auth/register",
            json={
                "username": "newuser",
                "password": "SecurePass123!",
                "display_name": "Ana",
            },
        )
        assert response.status_code == 201
        data = response.json()
        assert data["user"]["username"] == "newuser"
        assert data["user"]["display_name"] == "Ana"
        assert data["user"]["role"] == "user"
        assert data["user"]["response_style"] == "BREVE"
        assert data["token"]["token_type"] == "bearer"
        assert data["token"]["access_token"]

    @pytest.mark.parametrize(
        "password",
        [
            "weakpass",  # No uppercase, no special char, no digit
            "Ab1!",  # Too short
            "password123!",  # No uppercase
            "Password123",  # No special char
        ],
    )
    def test_register_weak_password(self, client: TestClient, password: str):
        """Test registration with passwords that miss a complexity rule."""
        response = client.post(
            "/api/v1/auth/register",
            json={"username": "newuser", "password": password, "display_name": "Ana"},
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Validation error"

    def test_register_invalid_username(self, client: TestClient):
        response = client.post(
            "/api/v1/auth/register",
            json={"username": "bad user!", "password": "SecurePass123!", "display_name": "Ana"},
        )
        assert response.status_code == 400

    def test_register_duplicate_username(self, client: TestClient, test_user: User):
        """Test registration with existing username."""
        response = client.post(
            "/api/v1/auth/register",
            json={
                "username": test_user.username,
                "password": "SecurePass123!",
                "display_name": "Another User",
            },
        )
        assert response.status_code == 400
        assert response.json()["detail"] == "Username is already taken"


class TestLogin:
    """Tests for login endpoint."""

    def test_login_success(self, client: TestClient, test_user: User):
        """Test successful login."""
        response = client.post(
            "/api/v1/auth/login",
            json={"username": "testuser", "password": "TestPassword123!"},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["user"]["id"] == str(test_user.id)
        assert data["token"]["access_token"]

    def test_login_wrong_password(self, client: TestClient, db: Session, test_user: User):
        """Test login with wrong password is rejected and audited."""
        response = client.post(
            "/api/v1/auth/login",
            json={"username": "testuser", "password": "WrongPassword123!"},
        )
        assert response.status_code == 401
        assert response.json()["detail"] == "Incorrect username or password"

        failed = db.query(AuditLog).filter(AuditLog.action == AuditAction.LOGIN_FAILED).all()
        assert len(failed) == 1

    def test_login_unknown_user(self, client: TestClient, db: Session):
        """Test login with non-existent user."""
        response = client.post(
            "/api/v1/auth/login",
            json={"username": "nobody", "password": "TestPassword123!"},
        )
        assert response.status_code == 401


class TestCurrentUser:
    """Tests for /auth/me and /auth/logout."""

    def test_me(self, authenticated_client: TestClient, test_user: User):
        response = authenticated_client.get("/api/v1/auth/me")
        assert response.status_code == 200
        data = response.json()
        assert data["username"] == "testuser"
        assert data["display_name"] == "Maria"

    def test_me_unauthenticated(self, client: TestClient, db: Session):
        """Test that requests without a token are rejected."""
        response = client.get("/api/v1/auth/me")
        assert response.status_code in (401, 403)

    def test_me_invalid_token(self, client: TestClient, db: Session):
        response = client.get(
            "/api/v1/auth/me",
            headers={"Authorization": "Bearer not-a-real-token"},
        )
        assert response.status_code == 401

    def test_logout(self, authenticated_client: TestClient, db: Session, test_user: User):
        response = authenticated_client.post("/api/v1/auth/logout")
        assert response.status_code == 200
        assert response.json() == {"message": "Logged out"}

        logouts = db.query(AuditLog).filter(AuditLog.action == AuditAction.LOGOUT).all()
        assert [entry.user_id for entry in logouts] == [test_user.id]
