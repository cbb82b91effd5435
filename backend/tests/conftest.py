import json
import os
import sys
from collections import defaultdict

import pytest

# Ensure the backend root (containing the `quizlive` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from quizlive import create_app, db, socketio
from quizlive.services.sessions import (
    ConnectionGateway, Emitter, Question, QuizDefinition, QuizLookup, ScheduledTask, SessionRegistry,
)


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:3000']
    SOCKETIO_NAMESPACE = '/ws'
    MAX_PLAYERS_PER_SESSION = 30
    DEFAULT_QUESTION_TIME_SEC = 10
    SESSION_GRACE_SEC = 300
    QUIZ_CODE_LENGTH = 6
    LOG_LEVEL = 'DEBUG'


class ManualTimers:
    """Timer factory driven by advance() instead of wall-clock time."""

    def __init__(self):
        self.now = 0.0
        self._seq = 0
        self._tasks = []

    def schedule(self, delay, callback, label=''):
        task = ScheduledTask(delay, callback, label)
        self._seq += 1
        self._tasks.append((self.now + delay, self._seq, task))
        return task

    def pending(self):
        return [t for _, _, t in self._tasks if not t.cancelled and not t.fired]

    def advance(self, seconds):
        target = self.now + seconds
        while True:
            due = sorted(
                (d, s, t) for d, s, t in self._tasks
                if d <= target and not t.cancelled and not t.fired
            )
            if not due:
                break
            self.now, _, task = due[0]
            task.fire()
        self.now = target


class RecordingEmitter(Emitter):
    def __init__(self):
        self.events = []
        self.rooms = defaultdict(set)

    def to_connection(self, connection_id, event, payload):
        self.events.append((connection_id, event, payload))

    def to_session(self, code, event, payload):
        self.events.append((f'quiz:{code}', event, payload))

    def enter_session(self, connection_id, code):
        self.rooms[code].add(connection_id)

    def leave_session(self, connection_id, code):
        self.rooms[code].discard(connection_id)

    def named(self, event, target=None):
        return [p for t, e, p in self.events if e == event and (target is None or t == target)]

    def last(self, event, target=None):
        found = self.named(event, target)
        return found[-1] if found else None

    def clear(self):
        self.events.clear()


class DictLookup(QuizLookup):
    def __init__(self, *definitions):
        self.definitions = {d.code: d for d in definitions}
        self.calls = 0
        self.fail = False
        self.gate = None  # threading.Event to hold lookups open

    def find_by_code(self, code):
        self.calls += 1
        if self.gate is not None:
            self.gate.wait(5)
        if self.fail:
            raise RuntimeError('store unavailable')
        return self.definitions.get(code)


def make_quiz(code='ABCD1'):
    return QuizDefinition(
        code=code,
        title='Capitals and sums',
        description='demo',
        questions=(
            Question(prompt='2 + 2 = ?', options=('3', '4', '5', '22'), correct_answer=1, points=100, time_limit=10),
            Question(prompt='Capital of France?', options=('Lyon', 'Nice', 'Paris', 'Lille'),
                     correct_answer=2, points=50, time_limit=5),
        ),
    )


@pytest.fixture()
def quiz():
    return make_quiz()


@pytest.fixture()
def lookup(quiz):
    return DictLookup(quiz)


@pytest.fixture()
def timers():
    return ManualTimers()


@pytest.fixture()
def emitter():
    return RecordingEmitter()


@pytest.fixture()
def registry(lookup):
    return SessionRegistry(lookup)


@pytest.fixture()
def gateway(registry, emitter, timers):
    return ConnectionGateway(registry, emitter, timers, grace_sec=300)


@pytest.fixture()
def hosted(gateway):
    """Gateway with session ABCD1 hosted by connection 'admin'."""
    gateway.on_host('admin', 'abcd1')
    return gateway


@pytest.fixture()
def flask_timers():
    return ManualTimers()


@pytest.fixture()
def flask_app(flask_timers):
    application = create_app(TestConfig, timers=flask_timers)
    with application.app_context():
        # Ensure models are imported so tables are created
        import quizlive.models  # noqa: F401
        db.create_all()
        yield application
        application.extensions['quiz_registry'].drain()
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def seeded_code(flask_app):
    from quizlive.models import Quiz, Question as QuestionRow
    quiz = Quiz(code='ABCD1', title='Capitals and sums', description='demo')
    quiz.questions = [
        QuestionRow(position=0, prompt='2 + 2 = ?', options=json.dumps(['3', '4', '5', '22']),
                    correct_answer=1, points=100, time_limit=10),
        QuestionRow(position=1, prompt='Capital of France?', options=json.dumps(['Lyon', 'Nice', 'Paris', 'Lille']),
                    correct_answer=2, points=50, time_limit=5),
    ]
    db.session.add(quiz)
    db.session.commit()
    return quiz.code


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def _connect():
        c = socketio.test_client(flask_app, flask_test_client=flask_app.test_client(), namespace='/ws')
        clients.append(c)
        return c

    yield _connect
    for c in clients:
        try:
            c.disconnect(namespace='/ws')
        except Exception:
            pass
