"""
Tests for the session store.
"""
import uuid

import pytest
from sqlalchemy.orm import Session

from mindchat.core.exceptions import BadRequestError, NotFoundError
from mindchat.models.chat_message import ChatMessage
from mindchat.schemas.messages import (
    CharacterMessage,
    SummaryMessage,
    SystemMessage,
    UserMessage,
)
from mindchat.services import session_store


def character_draft(key: str, name: str, content: str, order: int) -> CharacterMessage:
    return CharacterMessage(
        author_key=key,
        author_name=name,
        content=content,
        mode="COUNCIL",
        character_order=order,
    )


class TestOwnership:
    """Missing, foreign and closed sessions all look the same to the caller."""

    def test_owner_gets_session(self, db: Session, council_session, test_user):
        session = session_store.get_owned_session(db, council_session.id, test_user.id)
        assert session.id == council_session.id

    def test_missing_session(self, db: Session, test_user):
        with pytest.raises(NotFoundError) as exc_info:
            session_store.get_owned_session(db, uuid.uuid4(), test_user.id)
        assert exc_info.value.message == "Chat session not found"

    def test_foreign_session(self, db: Session, other_user_session, test_user):
        with pytest.raises(NotFoundError) as exc_info:
            session_store.get_owned_session(db, other_user_session.id, test_user.id)
        assert exc_info.value.message == "Chat session not found"

    def test_closed_session(self, db: Session, council_session, test_user):
        session_store.close_session(db, council_session)

        assert session_store.get_owned_session(db, council_session.id, test_user.id).closed
        with pytest.raises(NotFoundError) as exc_info:
            session_store.get_owned_session(
                db, council_session.id, test_user.id, require_open=True
            )
        assert exc_info.value.message == "Chat session not found or closed"


class TestCreateSession:
    def test_participants_in_given_order(self, db: Session, test_user, characters):
        session = session_store.create_session(
            db, test_user.id, "DECISION", ["freud", "moises", "jose-egito"]
        )

        assert [p.character.key for p in session.participants] == ["freud", "moises", "jose-egito"]
        assert [p.order_index for p in session.participants] == [0, 1, 2]
        assert session.title == "Decisão com 3 personagens"

    def test_unknown_keys(self, db: Session, test_user, characters):
        with pytest.raises(BadRequestError) as exc_info:
            session_store.create_session(db, test_user.id, "COUNCIL", ["moises", "paulo"])
        assert exc_info.value.message == "Characters not found: paulo"


class TestAppendMessages:
    """Tests for message persistence order."""

    def test_timestamps_strictly_increase(self, db: Session, council_session):
        saved = session_store.append_messages(
            db,
            council_session.id,
            [
                UserMessage(content="pergunta"),
                character_draft("moises", "Moisés", "primeira", 0),
                character_draft("salomao", "Rei Salomão", "segunda", 1),
                SystemMessage(suggested_topics=["Fé"]),
            ],
        )
        saved += session_store.append_messages(
            db, council_session.id, [UserMessage(content="de novo")]
        )

        times = [view.created_at for view in saved]
        assert times == sorted(times)
        assert len(set(times)) == len(times)
        assert all(t.microsecond % 1000 == 0 for t in times)

    def test_read_back_in_persistence_order(self, db: Session, council_session):
        drafts = [
            UserMessage(content="pergunta"),
            character_draft("salomao", "Rei Salomão", "a", 1),
            character_draft("moises", "Moisés", "b", 0),
        ]
        saved = session_store.append_messages(db, council_session.id, drafts)

        rows, _ = session_store.list_messages_page(db, council_session.id, limit=10)

        assert [str(r.id) for r in rows] == [view.id for view in saved]

    def test_views_carry_role_data(self, db: Session, decision_session):
        user, summary = session_store.append_messages(
            db,
            decision_session.id,
            [
                UserMessage(content="pergunta", moderation={"flagged": False, "categories": {}}),
                SummaryMessage(content="Decida com calma.", title="Calma", rationale="Tempo"),
            ],
        )

        assert user.role == "USER"
        assert user.session_id == str(decision_session.id)
        assert summary.role == "SUMMARY"
        assert summary.author_name == "Conselho"
        assert summary.title == "Calma"
        assert summary.rationale == "Tempo"

        row = db.get(ChatMessage, uuid.UUID(summary.id))
        assert row.meta["message_type"] == "final_decision"

    def test_empty_drafts(self, db: Session, council_session):
        assert session_store.append_messages(db, council_session.id, []) == []

    def test_require_open_rejects_closed_session(self, db: Session, council_session):
        session_store.close_session(db, council_session)

        with pytest.raises(NotFoundError):
            session_store.append_messages(
                db,
                council_session.id,
                [character_draft("moises", "Moisés", "tarde demais", 0)],
                require_open=True,
            )

        assert db.query(ChatMessage).filter(ChatMessage.session_id == council_session.id).count() == 0

    def test_require_open_rejects_deleted_session(self, db: Session, council_session):
        session_id = council_session.id
        session_store.delete_session(db, council_session)

        with pytest.raises(NotFoundError):
            session_store.append_messages(
                db, session_id, [SystemMessage(suggested_topics=["Fé"])], require_open=True
            )


class TestRecentHistory:
    def test_history_is_window_oldest_first(self, db: Session, council_session):
        for i in range(6):
            session_store.append_message(db, council_session.id, UserMessage(content=f"m{i}"))
        session_store.append_message(db, council_session.id, SystemMessage(suggested_topics=["x"]))

        history = session_store.get_recent_history(db, council_session.id, limit=4)

        assert [m.content for m in history] == ["m2", "m3", "m4", "m5"]

    def test_history_excludes_message(self, db: Session, council_session):
        session_store.append_message(db, council_session.id, UserMessage(content="antiga"))
        current = session_store.append_message(db, council_session.id, UserMessage(content="atual"))

        history = session_store.get_recent_history(
            db, council_session.id, limit=20, exclude_message_id=uuid.UUID(current.id)
        )

        assert [m.content for m in history] == ["antiga"]


class TestSuggestions:
    def test_latest_suggestions(self, db: Session, council_session):
        assert session_store.get_latest_suggestions(db, council_session.id) == []

        session_store.append_message(db, council_session.id, SystemMessage(suggested_topics=["a"]))
        session_store.append_message(db, council_session.id, SystemMessage(suggested_topics=["b", "c"]))

        assert session_store.get_latest_suggestions(db, council_session.id) == ["b", "c"]
