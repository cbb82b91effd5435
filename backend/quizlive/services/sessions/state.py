from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, Optional, Tuple

from .errors import SessionFull, StaleSubmission, Unauthorized


DEFAULT_MAX_PLAYERS = 30
DEFAULT_TIME_LIMIT = 10


def normalize_code(code) -> str:
    return str(code or '').strip().upper()


@dataclass(frozen=True)
class Question:
    prompt: str
    options: Tuple[str, ...]
    correct_answer: int
    points: int
    time_limit: Optional[int] = None

    def to_public_dict(self, index: int, total: int, default_time_limit: int = DEFAULT_TIME_LIMIT) -> dict:
        """Payload sent to players when the question opens (no answer)."""
        return {
            'index': index,
            'total': total,
            'prompt': self.prompt,
            'options': list(self.options),
            'points': self.points,
            'timeLimit': self.time_limit or default_time_limit,
        }


@dataclass(frozen=True)
class QuizDefinition:
    code: str
    title: str
    questions: Tuple[Question, ...]
    description: str = ''
    owner_id: Optional[str] = None

    @property
    def total_points(self) -> int:
        return sum(q.points for q in self.questions)

    def meta(self) -> dict:
        return {
            'code': self.code,
            'title': self.title,
            'description': self.description,
            'questionCount': len(self.questions),
            'totalPoints': self.total_points,
        }


@dataclass
class AnswerRecord:
    answer: object
    is_correct: bool
    points: int
    time_remaining: float

    def to_dict(self) -> dict:
        return {
            'answer': self.answer,
            'isCorrect': self.is_correct,
            'points': self.points,
            'timeRemaining': self.time_remaining,
        }


@dataclass
class Player:
    display_name: str
    connection_id: str
    score: int = 0
    # Sparse: question index -> record
    answers: Dict[int, AnswerRecord] = field(default_factory=dict)

    def has_answered(self, index: int) -> bool:
        return index in self.answers

    def to_dict(self) -> dict:
        size = max(self.answers) + 1 if self.answers else 0
        return {
            'id': self.connection_id,
            'name': self.display_name,
            'score': self.score,
            'answers': [self.answers[i].to_dict() if i in self.answers else None for i in range(size)],
        }


class Phase(str, Enum):
    IDLE = 'idle'
    QUESTION_OPEN = 'question_open'
    QUESTION_CLOSED = 'question_closed'
    TERMINAL = 'terminal'


class Session:
    """One live run of a quiz.

    The session only guards its own invariants; sequencing (who may call
    what, and when) lives in the gateway and the scheduler.
    """

    def __init__(self, definition: QuizDefinition, admin_id: Optional[str] = None,
                 code: Optional[str] = None, max_players: int = DEFAULT_MAX_PLAYERS):
        self.code = normalize_code(code or definition.code)
        self.definition = definition
        self.admin_id = admin_id
        self.max_players = max_players
        self.roster: Dict[str, Player] = {}
        self.current_index = -1
        self.is_active = False
        self.phase = Phase.IDLE
        self.pending_timer = None

    # ---- admin ----
    def claim_admin(self, connection_id: str) -> bool:
        """Set the admin once. Returns True if connection_id is (now) the admin."""
        if self.admin_id is None:
            self.admin_id = connection_id
        return self.admin_id == connection_id

    def require_admin(self, connection_id: str) -> None:
        if self.admin_id is None or connection_id != self.admin_id:
            raise Unauthorized(f'{connection_id} is not the admin of {self.code}')

    # ---- roster ----
    def find_by_name(self, display_name: str) -> Optional[Player]:
        for p in self.roster.values():
            if p.display_name == display_name:
                return p
        return None

    def add_player(self, connection_id: str, display_name: str) -> Player:
        """Admit a player, or return the existing entry holding display_name."""
        if len(self.roster) >= self.max_players:
            raise SessionFull(f'Quiz is full (max {self.max_players} players)')
        existing = self.find_by_name(display_name)
        if existing is not None:
            return existing
        player = Player(display_name=display_name, connection_id=connection_id)
        self.roster[connection_id] = player
        return player

    def remove_player(self, connection_id: str) -> Optional[Player]:
        return self.roster.pop(connection_id, None)

    def players(self) -> List[dict]:
        return [p.to_dict() for p in self.roster.values()]

    # ---- questions ----
    @property
    def total_questions(self) -> int:
        return len(self.definition.questions)

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_index < self.total_questions:
            return self.definition.questions[self.current_index]
        return None

    def has_next_question(self) -> bool:
        return self.current_index + 1 < self.total_questions

    def record_answer(self, connection_id: str, record: AnswerRecord) -> Player:
        """Store the first answer for the current question; later ones are stale."""
        if not self.is_active or self.current_question is None:
            raise StaleSubmission(f'session {self.code} is not accepting answers')
        player = self.roster.get(connection_id)
        if player is None:
            raise StaleSubmission(f'{connection_id} is not on the roster of {self.code}')
        if player.has_answered(self.current_index):
            raise StaleSubmission(f'{player.display_name} already answered question {self.current_index}')
        player.answers[self.current_index] = record
        player.score += record.points
        return player

    # ---- timer ----
    def arm_timer(self, task) -> None:
        """Store task as the pending deadline, cancelling any previous one."""
        self.cancel_timer()
        self.pending_timer = task

    def cancel_timer(self) -> None:
        task, self.pending_timer = self.pending_timer, None
        if task is not None:
            task.cancel()

    def snapshot(self) -> dict:
        return {
            'code': self.code,
            'quizMeta': self.definition.meta(),
            'isActive': self.is_active,
            'phase': self.phase.value,
            'currentQuestionIndex': self.current_index,
            'totalQuestions': self.total_questions,
            'totalPlayers': len(self.roster),
        }
