"""
Default bible studies.

``seed_studies`` is idempotent by title: existing studies are left untouched.
"""
import logging
from typing import Dict, List

from sqlalchemy.orm import Session

from mindchat.models.study import Study
from mindchat.schemas.study import StudyCreate
from mindchat.services.study_service import create_study

logger = logging.getLogger(__name__)

DEFAULT_STUDIES: List[Dict] = [
    {
        "title": "Fortalecendo a Fé em Tempos Difíceis",
        "description": "Um estudo de 5 sessões sobre como manter e fortalecer a fé durante períodos de adversidade.",
        "category": "fe",
        "estimated_minutes": 150,
        "lessons": [
            {
                "title": "O que é a Fé?",
                "content": "Nesta primeira sessão, exploramos o conceito bíblico de fé e sua importância na jornada espiritual.",
                "verse": 'Hebreus 11:1 - "Ora, a fé é o firme fundamento das coisas que se esperam, e a prova das coisas que se não veem."',
                "reflection": "1. Como você definiria fé em suas próprias palavras? 2. Quais situações testaram sua fé recentemente?",
            },
            {
                "title": "Exemplos de Fé na Bíblia",
                "content": "Estudamos personagens bíblicos que demonstraram fé extraordinária em momentos desafiadores.",
                "verse": 'Hebreus 11:6 - "Ora, sem fé é impossível agradar-lhe."',
                "reflection": "1. Qual personagem bíblico mais inspira sua fé? 2. Que lições práticas você extrai desses exemplos?",
            },
            {
                "title": "Fé em Meio às Tribulações",
                "content": "Aprendemos como manter a fé quando enfrentamos dificuldades e sofrimentos.",
                "verse": 'Romanos 5:3-4 - "A tribulação produz a paciência, e a paciência a experiência, e a experiência a esperança."',
                "reflection": "1. Como as tribulações podem fortalecer a fé? 2. Como você pode encorajar outros em suas lutas?",
            },
            {
                "title": "Crescendo na Fé",
                "content": "Exploramos maneiras práticas de nutrir e desenvolver a fé continuamente.",
                "verse": 'Romanos 10:17 - "De sorte que a fé é pelo ouvir, e o ouvir pela palavra de Deus."',
                "reflection": "1. Quais disciplinas espirituais fortalecem sua fé? 2. Que passos práticos você pode tomar para crescer?",
            },
            {
                "title": "Vivendo pela Fé",
                "content": "Concluímos aprendendo a aplicar a fé no dia a dia.",
                "verse": '2 Coríntios 5:7 - "Porque andamos por fé, e não por vista."',
                "reflection": "1. Como viver mais pela fé e menos pelas circunstâncias? 2. Quais são seus próximos passos na jornada da fé?",
            },
        ],
    },
    {
        "title": "Buscando a Sabedoria Divina",
        "description": "Um estudo de 4 sessões sobre como buscar e aplicar a sabedoria de Deus na vida diária.",
        "category": "sabedoria",
        "estimated_minutes": 120,
        "lessons": [
            {
                "title": "O Temor do Senhor é o Princípio da Sabedoria",
                "content": "Compreendemos o que significa temer ao Senhor e como isso se relaciona com a verdadeira sabedoria.",
                "verse": 'Provérbios 9:10 - "O temor do Senhor é o princípio da sabedoria."',
                "reflection": '1. O que significa "temer ao Senhor" em termos práticos? 2. Como isso influencia suas decisões?',
            },
            {
                "title": "Pedindo Sabedoria a Deus",
                "content": "Aprendemos a buscar a sabedoria divina através da oração.",
                "verse": 'Tiago 1:5 - "Se algum de vós tem falta de sabedoria, peça-a a Deus, que a todos dá liberalmente."',
                "reflection": "1. Com que frequência você pede sabedoria a Deus? 2. Para que decisões você precisa dela agora?",
            },
            {
                "title": "Sabedoria nas Palavras e Ações",
                "content": "Estudamos como aplicar a sabedoria divina no falar e no agir cotidiano.",
                "verse": 'Provérbios 16:24 - "Palavras suaves são como favos de mel, doces para a alma e medicina para os ossos."',
                "reflection": "1. Como suas palavras refletem sabedoria? 2. Como a sabedoria pode melhorar seus relacionamentos?",
            },
            {
                "title": "Compartilhando Sabedoria com Outros",
                "content": "Concluímos aprendendo a ser canal de sabedoria para outras pessoas.",
                "verse": 'Provérbios 27:17 - "Ferro com ferro se afia, assim o homem afia o rosto do seu próximo."',
                "reflection": "1. Quem são as pessoas sábias em sua vida? 2. Que legado de sabedoria você quer deixar?",
            },
        ],
    },
]


def seed_studies(db: Session) -> List[Study]:
    """Create the default studies that are missing. Returns the ones created."""
    existing = {title for (title,) in db.query(Study.title).all()}
    created = []
    for data in DEFAULT_STUDIES:
        if data["title"] in existing:
            continue
        created.append(create_study(db, StudyCreate(**data)))

    if created:
        logger.info(f"Seeded {len(created)} studies")
    return created
