"""
Tests for the chat orchestrator, called directly rather than through the API.
"""
import asyncio
import uuid
from typing import Dict, List, Tuple

import pytest
from sqlalchemy.orm import Session

from mindchat.core.exceptions import BadRequestError, MalformedResponseError, NotFoundError
from mindchat.models.chat_message import ChatMessage
from mindchat.models.questionnaire import Questionnaire
from mindchat.services import session_store
from mindchat.services.chat_orchestrator import ChatOrchestrator


class RecordingSink:
    """Event sink that remembers events and how many completions preceded each."""

    def __init__(self, llm):
        self.llm = llm
        self.events: List[Tuple[str, Dict, int]] = []

    def send(self, event_type: str, data: Dict) -> None:
        self.events.append((event_type, data, len(self.llm.calls)))

    @property
    def types(self) -> List[str]:
        return [event_type for event_type, _, _ in self.events]


def council_payload(*keys: str) -> Dict:
    names = {"moises": "Moisés", "salomao": "Rei Salomão", "freud": "Sigmund Freud"}
    return {
        "mode": "COUNCIL",
        "messages": [
            {"characterKey": key, "characterName": names.get(key, key), "content": f"Resposta de {key}"}
            for key in keys
        ],
        "suggested_topics": ["Fé", "Família"],
    }


def run(coro):
    return asyncio.run(coro)


def message_count(db: Session, session) -> int:
    return db.query(ChatMessage).filter(ChatMessage.session_id == session.id).count()


class TestCouncil:
    def test_start_event_precedes_completion(self, db: Session, council_session, fake_llm):
        """council_start goes out before the completion call, the rest after the commit."""
        fake_llm.queue(council_payload("moises", "salomao"))
        sink = RecordingSink(fake_llm)

        result = run(ChatOrchestrator(fake_llm).orchestrate(db, council_session.id, "Olá", sink=sink))

        assert sink.types == [
            "council_start",
            "character_response",
            "character_response",
            "council_complete",
        ]
        assert [calls for _, _, calls in sink.events] == [0, 1, 1, 1]
        assert sink.events[0][1] == {
            "characters": [
                {"key": "moises", "name": "Moisés"},
                {"key": "salomao", "name": "Rei Salomão"},
            ]
        }
        assert [m.character_key for m in result.messages] == ["moises", "salomao"]
        assert result.final_decision is None

    def test_completion_request(self, db: Session, council_session, fake_llm):
        """One structured completion with the council schema."""
        fake_llm.queue(council_payload("moises", "salomao"))

        run(ChatOrchestrator(fake_llm).orchestrate(db, council_session.id, "Como orar?"))

        assert len(fake_llm.calls) == 1
        call = fake_llm.calls[0]
        assert call["schema_name"] == "council_response"
        assert call["response_format"]["properties"]["mode"]["enum"] == ["COUNCIL"]
        system_prompt = call["messages"][0]["content"]
        assert "CONSELHO EM GRUPO" in system_prompt
        assert "Moisés (moises), Rei Salomão (salomao)" in system_prompt
        assert "A pessoa que pergunta se chama Maria." in system_prompt

    def test_repeated_character_keeps_first_reply(self, db: Session, council_session, fake_llm):
        fake_llm.queue(council_payload("moises", "moises", "salomao"))

        result = run(ChatOrchestrator(fake_llm).orchestrate(db, council_session.id, "Olá"))

        assert len(result.messages) == 2
        assert result.messages[0].content == "Resposta de moises"

    def test_missing_character_is_tolerated(self, db: Session, council_session, fake_llm):
        """A participant the model skipped simply has no message this turn."""
        fake_llm.queue(council_payload("salomao"))

        result = run(ChatOrchestrator(fake_llm).orchestrate(db, council_session.id, "Olá"))

        assert [m.character_key for m in result.messages] == ["salomao"]

    def test_no_matching_character_writes_nothing(self, db: Session, council_session, fake_llm):
        fake_llm.queue(council_payload("freud"))

        with pytest.raises(MalformedResponseError):
            run(ChatOrchestrator(fake_llm).orchestrate(db, council_session.id, "Olá"))

        assert message_count(db, council_session) == 0

    def test_sink_gets_nothing_after_failure(self, db: Session, council_session, fake_llm):
        fake_llm.queue("{not json")
        sink = RecordingSink(fake_llm)

        with pytest.raises(MalformedResponseError):
            run(ChatOrchestrator(fake_llm).orchestrate(db, council_session.id, "Olá", sink=sink))

        assert sink.types == ["council_start"]


class TestDecision:
    def test_decision_events(self, db: Session, decision_session, fake_llm):
        fake_llm.queue(
            {
                "mode": "DECISION",
                "analyses": [
                    {"characterKey": "salomao", "characterName": "Rei Salomão", "summary": "Pese bem."},
                    {"characterKey": "jose-egito", "characterName": "José do Egito", "summary": "Planeje."},
                ],
                "final_decision": {"title": "Esperar", "content": "Espere um mês.", "rationale": "Prudência."},
                "suggested_topics": [],
            }
        )
        sink = RecordingSink(fake_llm)

        result = run(ChatOrchestrator(fake_llm).orchestrate(db, decision_session.id, "Mudo?", sink=sink))

        assert sink.types == [
            "decision_start",
            "character_analysis",
            "character_analysis",
            "final_decision",
            "decision_complete",
        ]
        assert [data["characterKey"] for _, data, _ in sink.events[1:3]] == ["jose-egito", "salomao"]
        assert result.final_decision.title == "Esperar"
        assert result.suggested_topics == []
        # Two analyses and the summary; no topics message for an empty list
        assert message_count(db, decision_session) == 3
        assert fake_llm.calls[0]["schema_name"] == "decision_response"


class TestContext:
    def test_questionnaire_reaches_prompt(self, db: Session, council_session, test_user, fake_llm):
        db.add(Questionnaire(user_id=test_user.id, age_range="25-34", challenge="Ansiedade"))
        test_user.response_style = "PRATICA"
        db.commit()
        fake_llm.queue(council_payload("moises", "salomao"))

        run(ChatOrchestrator(fake_llm).orchestrate(db, council_session.id, "Olá"))

        system_prompt = fake_llm.calls[0]["messages"][0]["content"]
        assert "CONTEXTO DO USUÁRIO:" in system_prompt
        assert "- Faixa etária: 25-34" in system_prompt
        assert "- Principal desafio: Ansiedade" in system_prompt
        assert "Foque em soluções práticas" in system_prompt

    def test_missing_session(self, db: Session, fake_llm):
        with pytest.raises(NotFoundError):
            run(ChatOrchestrator(fake_llm).orchestrate(db, uuid.uuid4(), "Olá"))

    def test_session_closed_during_completion(self, db: Session, council_session, fake_llm):
        """A session closed while the reply was being generated gets no AI rows."""
        fake_llm.queue(council_payload("moises", "salomao"))
        answer = fake_llm.create_structured_response

        async def close_then_answer(*args, **kwargs):
            session_store.close_session(db, council_session)
            return await answer(*args, **kwargs)

        fake_llm.create_structured_response = close_then_answer
        sink = RecordingSink(fake_llm)

        with pytest.raises(NotFoundError):
            run(ChatOrchestrator(fake_llm).orchestrate(db, council_session.id, "Olá", sink=sink))

        assert message_count(db, council_session) == 0
        assert sink.types == ["council_start"]

    def test_unsupported_mode(self, db: Session, council_session, fake_llm):
        council_session.mode = "FREESTYLE"
        db.commit()

        with pytest.raises(BadRequestError):
            run(ChatOrchestrator(fake_llm).orchestrate(db, council_session.id, "Olá"))

        assert fake_llm.calls == []
