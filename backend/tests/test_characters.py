"""
Tests for the character catalogue endpoints.
"""
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from mindchat.models.character import Character
from mindchat.services.character_seed import DEFAULT_CHARACTERS, seed_characters


NEW_CHARACTER = {
    "key": "davi",
    "name": "Rei Davi",
    "base_prompt": "Você é Davi, pastor, músico e rei de Israel.",
    "style_tags": ["coragem", "arrependimento"],
}


class TestListCharacters:
    """Tests for browsing the catalogue."""

    def test_list_characters(self, authenticated_client: TestClient, characters):
        response = authenticated_client.get("/api/v1/characters")
        assert response.status_code == 200
        data = response.json()
        assert data["count"] == 4
        names = [c["name"] for c in data["characters"]]
        assert names == sorted(names)
        assert "base_prompt" not in data["characters"][0]

    def test_list_hides_inactive(
        self, authenticated_client: TestClient, db: Session, characters
    ):
        """Deactivated characters are not listed, even when asked for by a user."""
        characters["freud"].is_active = False
        db.commit()

        response = authenticated_client.get("/api/v1/characters?include_inactive=true")

        keys = [c["key"] for c in response.json()["characters"]]
        assert "freud" not in keys

    def test_admin_can_list_inactive(
        self, client: TestClient, db: Session, admin_headers: dict, characters
    ):
        characters["freud"].is_active = False
        db.commit()

        response = client.get(
            "/api/v1/characters?include_inactive=true", headers=admin_headers
        )

        keys = [c["key"] for c in response.json()["characters"]]
        assert "freud" in keys

    def test_list_unauthenticated(self, client: TestClient, characters):
        response = client.get("/api/v1/characters")
        assert response.status_code in (401, 403)


class TestGetCharacter:
    def test_get_character(self, authenticated_client: TestClient, characters):
        response = authenticated_client.get("/api/v1/characters/jose-egito")
        assert response.status_code == 200
        assert response.json()["name"] == "José do Egito"

    def test_get_unknown_character(self, authenticated_client: TestClient, characters):
        response = authenticated_client.get("/api/v1/characters/nobody")
        assert response.status_code == 404

    def test_get_inactive_character(
        self, authenticated_client: TestClient, db: Session, characters
    ):
        characters["moises"].is_active = False
        db.commit()

        response = authenticated_client.get("/api/v1/characters/moises")
        assert response.status_code == 404


class TestManageCharacters:
    """Tests for the admin-only catalogue operations."""

    def test_create_character(self, client: TestClient, admin_headers: dict, characters):
        response = client.post("/api/v1/characters", json=NEW_CHARACTER, headers=admin_headers)
        assert response.status_code == 201
        data = response.json()
        assert data["key"] == "davi"
        assert data["is_active"] is True
        assert data["style_tags"] == ["coragem", "arrependimento"]

    def test_create_duplicate_key(self, client: TestClient, admin_headers: dict, characters):
        response = client.post(
            "/api/v1/characters",
            json={**NEW_CHARACTER, "key": "moises"},
            headers=admin_headers,
        )
        assert response.status_code == 409

    def test_create_invalid_key(self, client: TestClient, admin_headers: dict, characters):
        response = client.post(
            "/api/v1/characters",
            json={**NEW_CHARACTER, "key": "Rei Davi"},
            headers=admin_headers,
        )
        assert response.status_code == 400

    def test_create_requires_admin(self, authenticated_client: TestClient, characters):
        """Test that regular users cannot add characters."""
        response = authenticated_client.post("/api/v1/characters", json=NEW_CHARACTER)
        assert response.status_code == 403

    def test_update_character(self, client: TestClient, admin_headers: dict, characters):
        response = client.put(
            "/api/v1/characters/salomao",
            json={"avatar_url": "https://example.com/salomao.png"},
            headers=admin_headers,
        )
        assert response.status_code == 200
        data = response.json()
        assert data["avatar_url"] == "https://example.com/salomao.png"
        assert data["name"] == "Rei Salomão"

    def test_deactivate_and_reactivate(
        self, client: TestClient, db: Session, admin_headers: dict, characters
    ):
        """Deactivation is a soft delete that an update can undo."""
        response = client.delete("/api/v1/characters/freud", headers=admin_headers)
        assert response.status_code == 204

        db.expire_all()
        assert db.query(Character).filter(Character.key == "freud").one().is_active is False

        response = client.put(
            "/api/v1/characters/freud", json={"is_active": True}, headers=admin_headers
        )
        assert response.status_code == 200
        assert response.json()["is_active"] is True

    def test_deactivated_character_cannot_join_sessions(
        self, client: TestClient, admin_headers: dict, auth_headers: dict, characters
    ):
        client.delete("/api/v1/characters/freud", headers=admin_headers)

        response = client.post(
            "/api/v1/chat/sessions",
            json={"mode": "COUNCIL", "characters": ["moises", "freud"]},
            headers=auth_headers,
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Characters not found: freud"

    def test_delete_requires_admin(self, authenticated_client: TestClient, characters):
        response = authenticated_client.delete("/api/v1/characters/freud")
        assert response.status_code == 403


class TestSeedCharacters:
    def test_seed_is_idempotent(self, db: Session):
        first = seed_characters(db)
        second = seed_characters(db)

        assert len(first) == len(DEFAULT_CHARACTERS)
        assert second == []
        assert db.query(Character).count() == len(DEFAULT_CHARACTERS)

    def test_seed_keeps_edits(self, db: Session, characters):
        characters["moises"].name = "Moisés, o Legislador"
        db.commit()

        seed_characters(db)

        db.expire_all()
        assert db.query(Character).filter(Character.key == "moises").one().name == "Moisés, o Legislador"
