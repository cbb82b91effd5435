import logging
import threading
from concurrent.futures import Future
from typing import Dict, List, Optional

from .errors import NotFound
from .state import DEFAULT_MAX_PLAYERS, QuizDefinition, Session, normalize_code


class QuizLookup:
    """Capability the registry uses to fetch quiz definitions on a cache miss.

    Implementations return ``None`` for unknown codes and may raise on
    store failures; the registry treats both the same way.
    """

    def find_by_code(self, code: str) -> Optional[QuizDefinition]:
        raise NotImplementedError


class SessionRegistry:
    """In-memory map of live sessions keyed by uppercase code.

    Built once per application and shared by the gateway, the scheduler and
    the HTTP snapshot routes.
    """

    def __init__(self, lookup: QuizLookup, max_players: int = DEFAULT_MAX_PLAYERS, logger=None):
        self.lookup = lookup
        self.max_players = max_players
        self.logger = logger or logging.getLogger(__name__)
        self._sessions: Dict[str, Session] = {}
        self._loading: Dict[str, Future] = {}
        self._lock = threading.Lock()

    def __len__(self):
        return len(self._sessions)

    def __contains__(self, code):
        return normalize_code(code) in self._sessions

    def codes(self) -> List[str]:
        return list(self._sessions)

    def get(self, code) -> Optional[Session]:
        return self._sessions.get(normalize_code(code))

    def create(self, definition: QuizDefinition, admin_id: Optional[str], code) -> Session:
        code = normalize_code(code)
        session = Session(definition, admin_id=admin_id, code=code, max_players=self.max_players)
        with self._lock:
            self._sessions[code] = session
        self.logger.info(f"[session-create] code={code} admin={admin_id} questions={session.total_questions}")
        return session

    def get_or_load(self, code) -> Session:
        """Return the live session for code, loading it from the store if needed.

        Concurrent callers for the same cold code wait on a single load.
        Raises NotFound when the store has no such quiz or fails.
        """
        code = normalize_code(code)
        if not code:
            raise NotFound('Quiz code is required')
        with self._lock:
            session = self._sessions.get(code)
            if session is not None:
                return session
            pending = self._loading.get(code)
            owner = pending is None
            if owner:
                pending = self._loading[code] = Future()
        if not owner:
            return pending.result()

        try:
            session = self._load(code)
        except Exception as exc:
            # Waiters see the same failure
            pending.set_exception(exc)
            raise
        else:
            pending.set_result(session)
            return session
        finally:
            with self._lock:
                self._loading.pop(code, None)

    def _load(self, code: str) -> Session:
        self.logger.info(f"[session-load] code={code} not live, checking store")
        try:
            definition = self.lookup.find_by_code(code)
        except Exception:
            self.logger.exception(f"[session-load] code={code} store lookup failed")
            raise NotFound('Quiz not found')
        if definition is None:
            self.logger.info(f"[session-load] code={code} not in store")
            raise NotFound('Quiz not found')
        return self.create(definition, None, code)

    def remove(self, code, expected: Optional[Session] = None) -> Optional[Session]:
        """Drop code from the registry.

        With ``expected``, only remove if the entry is still that session.
        """
        code = normalize_code(code)
        with self._lock:
            current = self._sessions.get(code)
            if current is None or (expected is not None and current is not expected):
                return None
            del self._sessions[code]
        self.logger.info(f"[session-remove] code={code}")
        return current

    def drain(self) -> List[Session]:
        """Cancel every pending deadline and empty the registry (shutdown)."""
        with self._lock:
            sessions = list(self._sessions.values())
            self._sessions.clear()
        for s in sessions:
            s.cancel_timer()
            self.logger.info(
                f"[registry-drain] code={s.code} active={s.is_active} players={len(s.roster)} question={s.current_index}"
            )
        return sessions
