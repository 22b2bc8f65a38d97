"""
Tests for prompt construction.
"""
from unittest.mock import patch

from mindchat.models.character import Character
from mindchat.models.questionnaire import Questionnaire
from mindchat.models.user import User
from mindchat.schemas.messages import CharacterMessage, SummaryMessage, UserMessage
from mindchat.services.prompt_builder import (
    UserContext,
    UserProfile,
    build_character_system_prompt,
    build_council_prompt,
    build_decision_prompt,
    build_llm_messages,
    build_profile_block,
    build_user_context,
    get_language_name,
    get_response_style_instructions,
)

MOISES = Character(key="moises", name="Moisés", base_prompt="Você é Moisés.")
SALOMAO = Character(key="salomao", name="Rei Salomão", base_prompt="Você é Salomão.")


def reply(content: str, name: str = "Moisés", key: str = "moises") -> CharacterMessage:
    return CharacterMessage(
        author_key=key, author_name=name, content=content, mode="COUNCIL", character_order=0
    )


class TestUserContext:
    def test_defaults_without_questionnaire(self):
        user = User(username="ana", password_hash="x", display_name="Ana")

        context = build_user_context(user)

        assert context.name == "Ana"
        assert context.response_style == "BREVE"
        assert context.language == "pt-BR"
        assert context.profile is None

    def test_profile_from_questionnaire(self):
        user = User(
            username="ana",
            password_hash="x",
            display_name="Ana",
            response_style="ESPIRITUAL",
            favorites=["salomao"],
        )
        user.questionnaire = Questionnaire(values=["família", "fé"], challenge="Mudança")

        context = build_user_context(user)

        assert context.response_style == "ESPIRITUAL"
        assert context.profile.values == ["família", "fé"]
        assert context.profile.motivation == []


class TestBlocks:
    def test_unknown_style_falls_back(self):
        assert get_response_style_instructions("POETICA") == get_response_style_instructions("BREVE")
        assert get_response_style_instructions(None) == get_response_style_instructions("BREVE")

    def test_profile_block(self):
        block = build_profile_block(UserProfile(age_range="35-44", values=["honestidade"]))

        assert block.startswith("CONTEXTO DO USUÁRIO:")
        assert "- Faixa etária: 35-44" in block
        assert "- Principais valores: honestidade" in block
        assert "- Situação atual: Não informado" in block

    def test_no_profile_block_without_questionnaire(self):
        assert build_profile_block(None) == ""

    def test_character_system_prompt(self):
        prompt = build_character_system_prompt(MOISES, UserContext(name="Ana"))

        assert prompt.startswith("Você é Moisés.")
        assert "REGRAS FUNDAMENTAIS:" in prompt
        assert "CONTEXTO DO USUÁRIO" not in prompt

    def test_answer_language(self):
        prompt = build_character_system_prompt(MOISES, UserContext(name="Ana"))
        assert "- Responda SEMPRE em português brasileiro" in prompt

        prompt = build_character_system_prompt(MOISES, UserContext(name="Ana", language="es"))
        assert "- Responda SEMPRE em espanhol" in prompt

    def test_unknown_language_falls_back(self):
        assert get_language_name("xx") == get_language_name("pt-BR")
        assert get_language_name(None) == "português brasileiro"

    def test_language_comes_from_settings(self):
        user = User(username="ana", password_hash="x", display_name="Ana")

        with patch("mindchat.services.prompt_builder.settings.CHAT_LANGUAGE", "en"):
            context = build_user_context(user)

        assert context.language == "en"


class TestCouncilPrompt:
    def test_lists_characters_in_order(self):
        prompt = build_council_prompt([SALOMAO, MOISES], [], "Como perdoar?", UserContext(name="Ana"))

        assert "personagens: Rei Salomão (salomao), Moisés (moises)." in prompt
        assert prompt.index("### 1. Rei Salomão") < prompt.index("### 2. Moisés")
        assert prompt.endswith("NOVA PERGUNTA DO USUÁRIO: Como perdoar?")
        assert '"mode": "COUNCIL"' in prompt

    def test_no_history_block_for_new_session(self):
        prompt = build_council_prompt([MOISES], [], "Olá", UserContext(name="Ana"))
        assert "HISTÓRICO DA CONVERSA" not in prompt

    def test_history_skips_summaries(self):
        history = [
            UserMessage(content="Pergunta antiga"),
            reply("Resposta antiga"),
            SummaryMessage(content="Decisão tomada", title="T", rationale="R"),
        ]

        prompt = build_council_prompt([MOISES], history, "Olá", UserContext(name="Ana"))

        assert "HISTÓRICO DA CONVERSA:\nUsuário: Pergunta antiga\nMoisés: Resposta antiga" in prompt
        assert "Decisão anterior" not in prompt

    def test_history_keeps_last_ten_turns(self):
        history = [UserMessage(content=f"pergunta {i}") for i in range(15)]

        prompt = build_council_prompt([MOISES], history, "Olá", UserContext(name="Ana"))

        assert "Usuário: pergunta 4\n" not in prompt
        assert "Usuário: pergunta 5\n" in prompt
        assert "Usuário: pergunta 14" in prompt

    def test_prompt_is_deterministic(self):
        args = ([MOISES, SALOMAO], [UserMessage(content="a")], "b", UserContext(name="Ana"))
        assert build_council_prompt(*args) == build_council_prompt(*args)


class TestDecisionPrompt:
    def test_decision_prompt(self):
        history = [SummaryMessage(content="Esperar um mês", title="Esperar", rationale="Prudência")]

        prompt = build_decision_prompt([MOISES, SALOMAO], history, "Devo mudar?", UserContext(name="Ana"))

        assert "DECISÃO EM GRUPO" in prompt
        assert "Decisão anterior: Esperar um mês" in prompt
        assert prompt.endswith("SITUAÇÃO PARA DECISÃO: Devo mudar?")
        assert '"final_decision"' in prompt


def test_build_llm_messages():
    assert build_llm_messages("sistema", "pergunta") == [
        {"role": "system", "content": "sistema"},
        {"role": "user", "content": "pergunta"},
    ]
