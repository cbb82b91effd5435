from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config, timers=None):
    """Build the Flask app and its live-session services.

    ``timers`` replaces the Socket.IO background timer factory; tests pass a
    manually driven clock.
    """
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    flask_app.logger.setLevel(flask_app.config.get('LOG_LEVEL', 'INFO'))

    from quizlive.models import QUIZ_CODE_MAX_LENGTH, QUIZ_CODE_MIN_LENGTH
    code_length = int(flask_app.config.get('QUIZ_CODE_LENGTH', 6))
    if not QUIZ_CODE_MIN_LENGTH <= code_length <= QUIZ_CODE_MAX_LENGTH:
        raise ValueError(
            f"QUIZ_CODE_LENGTH must be between {QUIZ_CODE_MIN_LENGTH} and {QUIZ_CODE_MAX_LENGTH}, got {code_length}"
        )
    flask_app.config['QUIZ_CODE_LENGTH'] = code_length

    allowed_origins = flask_app.config.get('CORS_ORIGINS', [])
    namespace = flask_app.config.get('SOCKETIO_NAMESPACE', '/ws')

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Live session services, one set per app
    from quizlive.services.sessions import BackgroundTimers, ConnectionGateway, SessionRegistry
    from quizlive.socketio_events import SocketIOEmitter, register_socketio_handlers
    from quizlive.store import SqlQuizLookup

    registry = SessionRegistry(
        SqlQuizLookup(flask_app),
        max_players=int(flask_app.config.get('MAX_PLAYERS_PER_SESSION', 30)),
        logger=flask_app.logger,
    )
    gateway = ConnectionGateway(
        registry,
        SocketIOEmitter(socketio, namespace=namespace),
        timers or BackgroundTimers(socketio, logger=flask_app.logger),
        default_time_limit=int(flask_app.config.get('DEFAULT_QUESTION_TIME_SEC', 10)),
        grace_sec=float(flask_app.config.get('SESSION_GRACE_SEC', 300)),
        logger=flask_app.logger,
    )
    flask_app.extensions['quiz_registry'] = registry
    flask_app.extensions['quiz_gateway'] = gateway

    # Import and register blueprints here
    from quizlive.api.quizzes import quizzes
    flask_app.register_blueprint(quizzes, url_prefix='/api/quizzes')

    from quizlive.api.sessions import sessions
    flask_app.register_blueprint(sessions, url_prefix='/api/sessions')

    register_socketio_handlers(namespace=namespace)

    @click.command('seed-demo')
    def seed_demo_command():
        """Creates a two-question demo quiz and prints its code."""
        from quizlive.models import Quiz, Question, generate_quiz_code
        import json
        with flask_app.app_context():
            db.create_all()
            quiz = Quiz(
                code=generate_quiz_code(int(flask_app.config.get('QUIZ_CODE_LENGTH', 6))),
                title='Demo quiz',
                description='Two quick questions',
            )
            quiz.questions = [
                Question(position=0, prompt='2 + 2 = ?', options=json.dumps(['3', '4', '5', '22']),
                         correct_answer=1, points=100, time_limit=10),
                Question(position=1, prompt='Capital of France?',
                         options=json.dumps(['Lyon', 'Nice', 'Paris', 'Lille']),
                         correct_answer=2, points=50, time_limit=5),
            ]
            db.session.add(quiz)
            db.session.commit()
            print(f'Demo quiz created with code {quiz.code}')

    flask_app.cli.add_command(seed_demo_command)

    return flask_app
