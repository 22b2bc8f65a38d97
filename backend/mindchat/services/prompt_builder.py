"""
Prompt construction for Council and Decision sessions.

Everything here is pure: the same characters, history, input and user
context always produce the same prompt text. The group prompt is sent
verbatim as the system message; the raw user input travels as the user
message next to it.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence

from mindchat.core.config import settings
from mindchat.models.character import Character
from mindchat.models.user import User
from mindchat.schemas.messages import MessageView

logger = logging.getLogger(__name__)

DEFAULT_RESPONSE_STYLE = "BREVE"

RESPONSE_STYLE_INSTRUCTIONS = {
    "BREVE": (
        "Mantenha suas respostas concisas e diretas, em 2 ou 3 parágrafos curtos. "
        "Vá direto ao ponto principal."
    ),
    "DETALHADA": (
        "Dê respostas completas e bem explicadas, com exemplos práticos e contexto "
        "detalhado quando fizer sentido."
    ),
    "ESPIRITUAL": (
        "Dê ênfase aos aspectos espirituais, aos princípios bíblicos e ao crescimento "
        "na fé. Use linguagem reverente e inspiradora."
    ),
    "PRATICA": (
        "Foque em soluções práticas e passos concretos que a pessoa possa aplicar "
        "imediatamente no dia a dia."
    ),
}

DEFAULT_LANGUAGE = "pt-BR"

LANGUAGE_NAMES = {
    "pt-BR": "português brasileiro",
    "pt-PT": "português europeu",
    "es": "espanhol",
    "en": "inglês",
}

BASE_RULES = """REGRAS FUNDAMENTAIS:
- Responda SEMPRE em {language}
- Use tom acolhedor, respeitoso e empático
- NUNCA forneça diagnósticos médicos ou psicológicos
- NUNCA prescreva medicamentos ou tratamentos
- Quando o tema exigir, recomende procurar ajuda profissional qualificada
- Evite linguagem que cause culpa, vergonha ou julgamento
- Mantenha o foco em orientação, encorajamento e sabedoria prática
- Use linguagem clara e acessível, sem pregação excessiva"""

NOT_INFORMED = "Não informado"


@dataclass
class UserProfile:
    age_range: Optional[str] = None
    current_situation: Optional[str] = None
    anxiety_frequency: Optional[str] = None
    sadness_handling: Optional[str] = None
    social_life: Optional[str] = None
    love_relationships: Optional[str] = None
    work_feeling: Optional[str] = None
    motivation: List[str] = field(default_factory=list)
    routine: Optional[str] = None
    sleep: Optional[str] = None
    self_knowledge_goal: List[str] = field(default_factory=list)
    values: List[str] = field(default_factory=list)
    challenge: Optional[str] = None
    childhood_influence: Optional[str] = None


@dataclass
class UserContext:
    """What the prompts know about the person asking."""

    name: str
    response_style: str = DEFAULT_RESPONSE_STYLE
    language: str = DEFAULT_LANGUAGE
    profile: Optional[UserProfile] = None


def _as_list(value) -> List[str]:
    if isinstance(value, list):
        return [str(v) for v in value]
    if value:
        logger.warning(f"Expected a list in user profile data, got {type(value).__name__}")
    return []


def build_user_context(user: User) -> UserContext:
    """Collect name, response style, answer language and questionnaire answers."""
    context = UserContext(
        name=user.display_name,
        response_style=user.response_style or DEFAULT_RESPONSE_STYLE,
        language=settings.CHAT_LANGUAGE,
    )

    q = user.questionnaire
    if q is not None:
        context.profile = UserProfile(
            age_range=q.age_range,
            current_situation=q.current_situation,
            anxiety_frequency=q.anxiety_frequency,
            sadness_handling=q.sadness_handling,
            social_life=q.social_life,
            love_relationships=q.love_relationships,
            work_feeling=q.work_feeling,
            motivation=_as_list(q.motivation),
            routine=q.routine,
            sleep=q.sleep,
            self_knowledge_goal=_as_list(q.self_knowledge_goal),
            values=_as_list(q.values),
            challenge=q.challenge,
            childhood_influence=q.childhood_influence,
        )

    return context


def get_response_style_instructions(response_style: Optional[str]) -> str:
    """Directive for the user's preferred style; unknown styles fall back to BREVE."""
    return RESPONSE_STYLE_INSTRUCTIONS.get(
        response_style or DEFAULT_RESPONSE_STYLE,
        RESPONSE_STYLE_INSTRUCTIONS[DEFAULT_RESPONSE_STYLE],
    )


def get_language_name(language: Optional[str]) -> str:
    """Language the rules ask for; unknown locales fall back to pt-BR."""
    if language in LANGUAGE_NAMES:
        return LANGUAGE_NAMES[language]
    if language:
        logger.warning(f"Unsupported chat language '{language}', using {DEFAULT_LANGUAGE}")
    return LANGUAGE_NAMES[DEFAULT_LANGUAGE]


def _join_or_default(items: Sequence[str]) -> str:
    return ", ".join(items) if items else NOT_INFORMED


def build_profile_block(profile: Optional[UserProfile]) -> str:
    """User context block, or an empty string when there is no questionnaire."""
    if profile is None:
        return ""

    return "\n".join(
        [
            "CONTEXTO DO USUÁRIO:",
            f"- Faixa etária: {profile.age_range or NOT_INFORMED}",
            f"- Situação atual: {profile.current_situation or NOT_INFORMED}",
            f"- Principais valores: {_join_or_default(profile.values)}",
            f"- Principal desafio: {profile.challenge or NOT_INFORMED}",
            f"- Motivações: {_join_or_default(profile.motivation)}",
            f"- Objetivos de autoconhecimento: {_join_or_default(profile.self_knowledge_goal)}",
            "",
            "Use estas informações para personalizar a resposta e torná-la mais relevante.",
        ]
    )


def build_guidance_block(user_context: UserContext) -> str:
    """Safety rules, style directive and profile shared by every persona."""
    parts = [
        BASE_RULES.format(language=get_language_name(user_context.language)),
        f"ESTILO DE RESPOSTA: {get_response_style_instructions(user_context.response_style)}",
    ]
    profile_block = build_profile_block(user_context.profile)
    if profile_block:
        parts.append(profile_block)
    return "\n\n".join(parts)


def build_character_system_prompt(character: Character, user_context: UserContext) -> str:
    """Full persona prompt for a single character."""
    prompt = "\n\n".join(
        [
            character.base_prompt.strip(),
            build_guidance_block(user_context),
            "Seja autêntico ao seu personagem, mas mantenha sempre o foco no bem-estar "
            "e no crescimento da pessoa.",
        ]
    )
    return prompt.strip()


def _format_history(
    message_history: Sequence[MessageView],
    include_summaries: bool,
    max_turns: Optional[int] = None,
) -> str:
    """Render the last turns of the conversation, or '' when there are none."""
    max_turns = settings.CHAT_PROMPT_HISTORY_TURNS if max_turns is None else max_turns

    lines: List[str] = []
    for msg in message_history:
        if msg.role == "USER":
            lines.append(f"Usuário: {msg.content}")
        elif msg.role == "CHARACTER":
            lines.append(f"{msg.author_name}: {msg.content}")
        elif msg.role == "SUMMARY" and include_summaries:
            lines.append(f"Decisão anterior: {msg.content}")

    lines = lines[-max_turns:] if max_turns > 0 else []
    if not lines:
        return ""
    return "HISTÓRICO DA CONVERSA:\n" + "\n".join(lines)


def _format_character_list(characters: Sequence[Character]) -> str:
    return ", ".join(f"{c.name} ({c.key})" for c in characters)


def _format_personas(characters: Sequence[Character]) -> str:
    blocks = [
        f"### {index + 1}. {c.name} ({c.key})\n{c.base_prompt.strip()}"
        for index, c in enumerate(characters)
    ]
    return "PERSONAGENS (na ordem em que devem responder):\n\n" + "\n\n".join(blocks)


def _assemble(sections: Sequence[str]) -> str:
    return "\n\n".join(s for s in sections if s)


def build_council_prompt(
    characters: Sequence[Character],
    message_history: Sequence[MessageView],
    user_input: str,
    user_context: UserContext,
) -> str:
    """System prompt for a Council turn: one answer per character."""
    header = (
        "Você está facilitando uma sessão de CONSELHO EM GRUPO com os seguintes "
        f"personagens: {_format_character_list(characters)}.\n"
        f"A pessoa que pergunta se chama {user_context.name}."
    )

    instructions = """INSTRUÇÕES:
1. Cada personagem deve responder de forma única, seguindo sua persona
2. As respostas devem ser complementares, não repetitivas
3. Mantenha exatamente a ordem dos personagens listada acima
4. Cada resposta deve ter entre 100 e 300 palavras
5. Inclua até 3 tópicos sugeridos para continuar a conversa"""

    response_format = """FORMATO DE RESPOSTA: Retorne um JSON válido seguindo exatamente esta estrutura:
{
  "mode": "COUNCIL",
  "messages": [
    {"characterKey": "chave-do-personagem", "characterName": "Nome", "content": "resposta..."}
  ],
  "suggested_topics": ["tópico 1", "tópico 2", "tópico 3"]
}"""

    return _assemble(
        [
            header,
            _format_personas(characters),
            build_guidance_block(user_context),
            instructions,
            response_format,
            _format_history(message_history, include_summaries=False),
            f"NOVA PERGUNTA DO USUÁRIO: {user_input}",
        ]
    )


def build_decision_prompt(
    characters: Sequence[Character],
    message_history: Sequence[MessageView],
    user_input: str,
    user_context: UserContext,
) -> str:
    """System prompt for a Decision turn: short analyses, then one decision."""
    header = (
        "Você está facilitando uma sessão de DECISÃO EM GRUPO com os seguintes "
        f"personagens: {_format_character_list(characters)}.\n"
        f"A pessoa que pergunta se chama {user_context.name}."
    )

    process = """PROCESSO:
1. ANÁLISE: cada personagem oferece uma análise curta (50 a 100 palavras) da situação, na ordem listada
2. DECISÃO FINAL: um moderador sintetiza uma decisão colaborativa a partir das análises

INSTRUÇÕES:
- Cada análise deve capturar a perspectiva única do personagem
- A decisão final deve integrar as perspectivas de forma coerente
- Inclua uma justificativa clara para a decisão
- Mantenha tom respeitoso e encorajador
- Inclua até 3 tópicos sugeridos para continuar"""

    response_format = """FORMATO DE RESPOSTA: Retorne um JSON válido seguindo exatamente esta estrutura:
{
  "mode": "DECISION",
  "analyses": [
    {"characterKey": "chave", "characterName": "Nome", "summary": "análise..."}
  ],
  "final_decision": {
    "title": "Título da decisão",
    "content": "Conteúdo da decisão...",
    "rationale": "Justificativa da decisão..."
  },
  "suggested_topics": ["tópico 1", "tópico 2", "tópico 3"]
}"""

    return _assemble(
        [
            header,
            _format_personas(characters),
            build_guidance_block(user_context),
            process,
            response_format,
            _format_history(message_history, include_summaries=True),
            f"SITUAÇÃO PARA DECISÃO: {user_input}",
        ]
    )


def build_llm_messages(system_prompt: str, user_input: str) -> List[Dict[str, str]]:
    """Messages array for the completion API."""
    return [
        {"role": "system", "content": system_prompt},
        {"role": "user", "content": user_input},
    ]
