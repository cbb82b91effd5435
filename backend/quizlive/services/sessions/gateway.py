import logging
import threading
from typing import Dict, NamedTuple, Optional

from . import leaderboard
from .errors import NotFound, SessionFull, StaleSubmission, Unauthorized
from .scheduler import QuestionScheduler
from .scoring import score_answer
from .state import AnswerRecord, Phase, Session, normalize_code


class Emitter:
    """Outbound side of the transport."""

    def to_connection(self, connection_id: str, event: str, payload) -> None:
        raise NotImplementedError

    def to_session(self, code: str, event: str, payload) -> None:
        raise NotImplementedError

    def enter_session(self, connection_id: str, code: str) -> None:
        raise NotImplementedError

    def leave_session(self, connection_id: str, code: str) -> None:
        raise NotImplementedError


class Binding(NamedTuple):
    code: str
    display_name: str


class ConnectionGateway:
    """Routes connection events to sessions and results back to clients.

    Handlers never raise: rejected joins become ``session-error`` events,
    everything else that is not allowed is dropped and logged.
    """

    def __init__(self, registry, emitter: Emitter, timers, default_time_limit: int = 10,
                 grace_sec: float = 300, logger=None):
        self.registry = registry
        self.emitter = emitter
        self.logger = logger or logging.getLogger(__name__)
        # All session mutations, including timer callbacks, go through this lock
        self.lock = threading.RLock()
        self.scheduler = QuestionScheduler(
            registry, emitter, timers, lock=self.lock,
            default_time_limit=default_time_limit, grace_sec=grace_sec, logger=self.logger,
        )
        self._bindings: Dict[str, Binding] = {}

    def binding_for(self, connection_id: str) -> Optional[Binding]:
        return self._bindings.get(connection_id)

    def _error(self, connection_id: str, message: str) -> None:
        self.emitter.to_connection(connection_id, 'session-error', {'message': message})

    def _broadcast_leaderboard(self, session: Session) -> None:
        self.emitter.to_session(session.code, 'leaderboard-update', leaderboard.project(session.roster))

    def _resolve(self, connection_id: str, code) -> Optional[Session]:
        """Load or fetch a session, reporting NotFound to the requester."""
        try:
            return self.registry.get_or_load(code)
        except NotFound as exc:
            self._error(connection_id, str(exc) or 'Quiz not found')
            return None

    # ---- players ----
    def on_join(self, connection_id: str, code, display_name) -> None:
        code = normalize_code(code)
        display_name = (display_name or '').strip() if isinstance(display_name, str) else ''
        if not code:
            self._error(connection_id, 'Quiz code is required')
            return
        if not display_name:
            self._error(connection_id, 'Player name is required')
            return
        self.logger.info(f"[join] code={code} sid={connection_id} name={display_name}")

        # May hit the store; done outside the lock
        session = self._resolve(connection_id, code)
        if session is None:
            return

        with self.lock:
            if self.registry.get(code) is not session:
                # Expired between load and admission
                self._error(connection_id, 'Quiz not found')
                return
            try:
                session.add_player(connection_id, display_name)
            except SessionFull as exc:
                self.logger.info(f"[join-full] code={code} sid={connection_id}")
                self._error(connection_id, str(exc))
                return

            self._leave_previous(connection_id, code)
            self._bindings[connection_id] = Binding(code, display_name)
            self.emitter.enter_session(connection_id, code)
            self.emitter.to_connection(connection_id, 'joined-session', {
                'quizMeta': session.definition.meta(),
                'playerIdentity': connection_id,
            })
            self.emitter.to_session(code, 'player-joined', {
                'displayName': display_name,
                'totalPlayers': len(session.roster),
            })
            self._broadcast_leaderboard(session)
            self.emitter.to_session(code, 'player-list', session.players())

    def _leave_previous(self, connection_id: str, code: str) -> None:
        """Drop a connection from the session it was bound to before joining code."""
        previous = self._bindings.get(connection_id)
        if previous is None or previous.code == code:
            return
        self.emitter.leave_session(connection_id, previous.code)
        old = self.registry.get(previous.code)
        if old is None or old.remove_player(connection_id) is None:
            return
        self.logger.info(f"[switch] sid={connection_id} from={previous.code} to={code}")
        self._broadcast_leaderboard(old)
        self.emitter.to_session(old.code, 'player-list', old.players())

    def on_get_player_list(self, connection_id: str, code) -> None:
        session = self.registry.get(code)
        if session is None:
            return
        with self.lock:
            self.emitter.to_connection(connection_id, 'player-list', session.players())

    def on_submit_answer(self, connection_id: str, answer, time_remaining) -> None:
        with self.lock:
            binding = self._bindings.get(connection_id)
            if binding is None:
                return
            session = self.registry.get(binding.code)
            if session is None:
                return
            question = session.current_question
            if question is None:
                return
            result = score_answer(answer, question, time_remaining)
            try:
                session.record_answer(connection_id, AnswerRecord(
                    answer=answer,
                    is_correct=result.is_correct,
                    points=result.points,
                    time_remaining=result.time_remaining,
                ))
            except StaleSubmission as exc:
                self.logger.debug(f"[answer-drop] code={session.code} sid={connection_id} {exc}")
                return

            self.emitter.to_connection(connection_id, 'answer-result', {
                'isCorrect': result.is_correct,
                'points': result.points,
                'correctAnswer': question.correct_answer,
            })
            self._broadcast_leaderboard(session)

    def on_disconnect(self, connection_id: str) -> None:
        with self.lock:
            binding = self._bindings.pop(connection_id, None)
            if binding is None:
                return
            session = self.registry.get(binding.code)
            if session is None:
                return
            if session.remove_player(connection_id) is not None:
                self.logger.info(f"[leave] code={session.code} sid={connection_id} name={binding.display_name}")
            self._broadcast_leaderboard(session)

    # ---- admin ----
    def on_host(self, connection_id: str, code) -> None:
        """Claim a session as its admin, creating it from the store if needed."""
        code = normalize_code(code)
        if not code:
            self._error(connection_id, 'Quiz code is required')
            return
        session = self._resolve(connection_id, code)
        if session is None:
            return
        with self.lock:
            if not session.claim_admin(connection_id):
                self.logger.info(f"[host-reject] code={code} sid={connection_id} admin={session.admin_id}")
                self._error(connection_id, 'Session already has a host')
                return
            self.logger.info(f"[host] code={code} sid={connection_id}")
            self.emitter.enter_session(connection_id, code)
            self.emitter.to_connection(connection_id, 'session-hosted', {
                'code': code,
                'quizMeta': session.definition.meta(),
                'players': session.players(),
            })

    def _admin_session(self, connection_id: str, code, action: str) -> Optional[Session]:
        session = self.registry.get(code)
        if session is None:
            return None
        try:
            session.require_admin(connection_id)
        except Unauthorized:
            self.logger.debug(f"[{action}-drop] code={session.code} sid={connection_id} not admin")
            return None
        return session

    def on_admin_start(self, connection_id: str, code) -> None:
        with self.lock:
            session = self._admin_session(connection_id, code, 'start')
            # A finished session stays terminal until it expires
            if session is None or session.is_active or session.phase == Phase.TERMINAL:
                return
            self.scheduler.start(session)

    def on_admin_advance(self, connection_id: str, code) -> None:
        with self.lock:
            session = self._admin_session(connection_id, code, 'advance')
            if session is None or not session.is_active:
                return
            self.scheduler.advance(session)

    def on_admin_end(self, connection_id: str, code) -> None:
        with self.lock:
            session = self._admin_session(connection_id, code, 'end')
            if session is None or not session.is_active:
                return
            self.scheduler.finish(session)
