from mindchat.db.base import Base  # noqa: F401

from .user import User  # noqa: F401
from .questionnaire import Questionnaire  # noqa: F401
from .character import Character  # noqa: F401
from .chat_session import ChatSession  # noqa: F401
from .chat_participant import ChatParticipant  # noqa: F401
from .chat_message import ChatMessage  # noqa: F401
from .audit_log import AuditLog  # noqa: F401
from .prayer import Prayer  # noqa: F401
from .diary_entry import DiaryEntry  # noqa: F401
from .study import Study, StudyLesson, StudyParticipation  # noqa: F401
