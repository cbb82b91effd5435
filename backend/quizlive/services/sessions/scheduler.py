import logging
import threading

from . import leaderboard
from .state import DEFAULT_TIME_LIMIT, Phase, Session


class QuestionScheduler:
    """Drives a session through its questions.

    idle -> question_open -> question_closed -> question_open ... -> terminal

    Every deadline is armed through ``Session.arm_timer`` so a session never
    has two live deadlines. Timer callbacks take the shared lock and re-check
    the session before acting, since they may fire after an admin already
    moved on or the session was dropped.
    """

    def __init__(self, registry, emitter, timers, lock=None,
                 default_time_limit: int = DEFAULT_TIME_LIMIT,
                 grace_sec: float = 300, logger=None):
        self.registry = registry
        self.emitter = emitter
        self.timers = timers
        self.lock = lock or threading.RLock()
        self.default_time_limit = default_time_limit
        self.grace_sec = grace_sec
        self.logger = logger or logging.getLogger(__name__)

    def start(self, session: Session) -> None:
        session.is_active = True
        session.current_index = 0
        self.logger.info(f"[session-start] code={session.code} questions={session.total_questions}")
        if session.current_question is None:
            # Nothing to ask
            self.finish(session)
            return
        self.open_question(session)

    def open_question(self, session: Session) -> None:
        question = session.current_question
        index = session.current_index
        duration = question.time_limit or self.default_time_limit
        session.phase = Phase.QUESTION_OPEN
        self.emitter.to_session(
            session.code,
            'question-start',
            question.to_public_dict(index, session.total_questions, self.default_time_limit),
        )
        task = self.timers.schedule(
            duration,
            lambda: self._on_deadline(session, index),
            label=f'deadline:{session.code}:{index}',
        )
        session.arm_timer(task)
        self.logger.info(f"[timer-set] code={session.code} question={index} duration={duration}s")

    def _on_deadline(self, session: Session, index: int) -> None:
        with self.lock:
            self.logger.info(
                f"[timer-fire] code={session.code} expected_question={index} actual_question={session.current_index}"
            )
            if (self.registry.get(session.code) is not session or not session.is_active
                    or session.current_index != index or session.phase != Phase.QUESTION_OPEN):
                self.logger.info(f"[timer-abort] code={session.code} question={index} session moved on")
                return
            self.close_question(session)

    def close_question(self, session: Session) -> None:
        """Reveal the correct answer for the open question."""
        session.pending_timer = None
        session.phase = Phase.QUESTION_CLOSED
        self.emitter.to_session(session.code, 'question-end', {
            'index': session.current_index,
            'correctAnswer': session.current_question.correct_answer,
        })

    def advance(self, session: Session) -> None:
        session.cancel_timer()
        session.phase = Phase.QUESTION_CLOSED
        session.current_index += 1
        if session.current_index < session.total_questions:
            self.logger.info(f"[advance] code={session.code} question={session.current_index}")
            self.open_question(session)
        else:
            self.finish(session)

    def finish(self, session: Session) -> None:
        session.cancel_timer()
        session.is_active = False
        session.phase = Phase.TERMINAL
        self.emitter.to_session(session.code, 'session-ended', {
            'finalLeaderboard': leaderboard.project_final(session.roster),
            'totalQuestions': session.total_questions,
        })
        self.logger.info(
            f"[session-end] code={session.code} players={len(session.roster)} expires_in={self.grace_sec}s"
        )
        # Not kept on the session: expiry is never cancelled
        self.timers.schedule(self.grace_sec, lambda: self._expire(session), label=f'expire:{session.code}')

    def _expire(self, session: Session) -> None:
        with self.lock:
            removed = self.registry.remove(session.code, expected=session)
            if removed is None:
                self.logger.info(f"[session-expire] code={session.code} already gone")
            else:
                self.logger.info(f"[session-expire] code={session.code} removed after grace window")
