"""Live session orchestration: registry, gateway, scoring and timers.

This package keeps no module-level state. The application factory builds
one registry and one gateway and hangs them off ``app.extensions``.
"""
from .errors import NotFound, SessionError, SessionFull, StaleSubmission, Unauthorized
from .gateway import ConnectionGateway, Emitter
from .registry import QuizLookup, SessionRegistry
from .state import AnswerRecord, Phase, Player, Question, QuizDefinition, Session, normalize_code
from .timers import BackgroundTimers, ScheduledTask

__all__ = [
    'AnswerRecord', 'BackgroundTimers', 'ConnectionGateway', 'Emitter', 'NotFound', 'Phase',
    'Player', 'Question', 'QuizDefinition', 'QuizLookup', 'ScheduledTask', 'Session',
    'SessionError', 'SessionFull', 'SessionRegistry', 'StaleSubmission', 'Unauthorized',
    'normalize_code',
]
