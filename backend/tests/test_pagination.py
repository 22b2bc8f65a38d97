"""
Tests for cursor pagination of session history.
"""
import base64
import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from mindchat.core.exceptions import BadRequestError
from mindchat.models.chat_message import ChatMessage, MessageRole
from mindchat.schemas.messages import CharacterMessage, SystemMessage, UserMessage
from mindchat.services import session_store
from mindchat.services.pagination import decode_cursor, encode_cursor, get_page_info


def add_exchange(db: Session, session_id, count: int) -> None:
    """Store ``count`` alternating user/character messages plus topics messages."""
    for i in range(count):
        if i % 2 == 0:
            session_store.append_message(db, session_id, UserMessage(content=f"mensagem {i}"))
        else:
            session_store.append_messages(
                db,
                session_id,
                [
                    CharacterMessage(
                        author_key="moises",
                        author_name="Moisés",
                        content=f"mensagem {i}",
                        mode="COUNCIL",
                        character_order=0,
                    ),
                    SystemMessage(suggested_topics=[f"tópico {i}"]),
                ],
            )


class TestCursor:
    """Tests for cursor encoding."""

    def test_round_trip(self):
        created_at = datetime(2025, 3, 14, 15, 9, 26, 535000, tzinfo=timezone.utc)
        message_id = uuid.uuid4()

        assert decode_cursor(encode_cursor(created_at, message_id)) == (created_at, message_id)

    def test_naive_datetime_is_utc(self):
        message_id = uuid.uuid4()
        cursor = encode_cursor(datetime(2025, 1, 1, 12, 0, 0), message_id)

        decoded_time, _ = decode_cursor(cursor)
        assert decoded_time == datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)

    def test_cursor_format(self):
        """The cursor is base64 of '<epoch millis>-<message id>'."""
        message_id = uuid.UUID("12345678-1234-5678-1234-567812345678")
        created_at = datetime(1970, 1, 1, 0, 0, 1, 500000, tzinfo=timezone.utc)

        raw = base64.b64decode(encode_cursor(created_at, message_id)).decode()

        assert raw == "1500-12345678-1234-5678-1234-567812345678"

    @pytest.mark.parametrize(
        "cursor",
        [
            "not base64!",
            base64.b64encode(b"no-separator-or-number").decode(),
            base64.b64encode(b"1500-not-a-uuid").decode(),
            base64.b64encode(b"1500").decode(),
        ],
    )
    def test_invalid_cursor(self, cursor: str):
        with pytest.raises(BadRequestError):
            decode_cursor(cursor)


class TestPageInfo:
    def test_page_info(self):
        info = get_page_info(page=2, page_size=10, total=25)
        assert info.offset == 10
        assert info.total_pages == 3
        assert info.has_next is True
        assert info.has_prev is True

    def test_page_info_clamps(self):
        info = get_page_info(page=0, page_size=500, total=0)
        assert info.page == 1
        assert info.page_size == 100
        assert info.total_pages == 0
        assert info.has_next is False


class TestMessagePages:
    """Tests for paging through a session's history."""

    def test_short_history_has_no_cursor(
        self, authenticated_client: TestClient, db: Session, council_session
    ):
        """Ten messages with limit 30 come back in one page without a cursor."""
        for i in range(10):
            session_store.append_message(db, council_session.id, UserMessage(content=f"mensagem {i}"))

        response = authenticated_client.get(
            f"/api/v1/chat/sessions/{council_session.id}?limit=30"
        )

        assert response.status_code == 200
        data = response.json()
        assert [m["content"] for m in data["messages"]] == [f"mensagem {i}" for i in range(10)]
        assert data["pagination"] == {"next_cursor": None, "has_more": False}

    def test_identical_timestamps_break_ties_by_id(self, db: Session, council_session):
        """Rows sharing a timestamp are ordered by id; none is skipped or repeated."""
        created_at = datetime(2026, 1, 5, 12, 0, 0, tzinfo=timezone.utc)
        for i in range(5):
            db.add(
                ChatMessage(
                    session_id=council_session.id,
                    role=MessageRole.USER,
                    content=f"mensagem {i}",
                    created_at=created_at,
                )
            )
        db.commit()
        expected = sorted(
            row.id
            for row in db.query(ChatMessage).filter(ChatMessage.session_id == council_session.id)
        )

        seen = []
        page_sizes = []
        cursor = None
        while True:
            rows, cursor = session_store.list_messages_page(db, council_session.id, cursor, limit=2)
            page_sizes.append(len(rows))
            seen = [row.id for row in rows] + seen
            if cursor is None:
                break

        assert page_sizes == [2, 2, 1]
        assert seen == expected
        assert len(set(seen)) == 5

    def test_walk_full_history(self, authenticated_client: TestClient, db: Session, council_session):
        """Following cursors visits every user-facing message exactly once."""
        add_exchange(db, council_session.id, 25)
        url = f"/api/v1/chat/sessions/{council_session.id}"

        pages = []
        cursor = None
        while True:
            params = {"limit": 10}
            if cursor:
                params["cursor"] = cursor
            data = authenticated_client.get(url, params=params).json()
            pages.append([m["content"] for m in data["messages"]])
            cursor = data["pagination"]["next_cursor"]
            if cursor is None:
                break

        assert [len(p) for p in pages] == [10, 10, 5]
        walked = [content for page in reversed(pages) for content in page]
        assert walked == [f"mensagem {i}" for i in range(25)]

        everything = authenticated_client.get(url, params={"limit": 100}).json()
        assert [m["content"] for m in everything["messages"]] == walked
        assert "SYSTEM" not in [m["role"] for m in everything["messages"]]

    def test_exact_multiple_ends_with_empty_page(
        self, authenticated_client: TestClient, db: Session, council_session
    ):
        """A full last page still carries a cursor; the page after it is empty."""
        for i in range(4):
            session_store.append_message(db, council_session.id, UserMessage(content=f"mensagem {i}"))
        url = f"/api/v1/chat/sessions/{council_session.id}"

        first = authenticated_client.get(url, params={"limit": 4}).json()
        assert first["pagination"]["has_more"] is True

        second = authenticated_client.get(
            url, params={"limit": 4, "cursor": first["pagination"]["next_cursor"]}
        ).json()
        assert second["messages"] == []
        assert second["pagination"] == {"next_cursor": None, "has_more": False}

    def test_invalid_cursor(self, authenticated_client: TestClient, council_session):
        response = authenticated_client.get(
            f"/api/v1/chat/sessions/{council_session.id}",
            params={"cursor": "garbage"},
        )
        assert response.status_code == 400
        assert response.json()["message"] == "Invalid cursor"

    @pytest.mark.parametrize("limit", [0, 101])
    def test_limit_bounds(self, authenticated_client: TestClient, council_session, limit: int):
        response = authenticated_client.get(
            f"/api/v1/chat/sessions/{council_session.id}",
            params={"limit": limit},
        )
        assert response.status_code == 400

    def test_message_views(self, authenticated_client: TestClient, db: Session, council_session):
        """Each role comes back with its own fields."""
        add_exchange(db, council_session.id, 2)

        data = authenticated_client.get(f"/api/v1/chat/sessions/{council_session.id}").json()

        user, character = data["messages"]
        assert user["role"] == "USER"
        assert user["flagged"] is False
        assert character["role"] == "CHARACTER"
        assert character["author_key"] == "moises"
        assert character["character_order"] == 0
