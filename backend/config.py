import os

class Config:
    SECRET_KEY = os.environ.get('SECRET_KEY') or 'you-will-never-guess'
    SQLALCHEMY_DATABASE_URI = os.environ.get('DATABASE_URL') or 'sqlite:///quizlive.db'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    # Origins allowed for both HTTP (CORS) and Socket.IO
    CORS_ORIGINS = [
        o.strip() for o in os.environ.get(
            'CORS_ORIGINS',
            'http://localhost:3000,http://127.0.0.1:3000,http://localhost:5173,http://127.0.0.1:5173',
        ).split(',') if o.strip()
    ]
    SOCKETIO_NAMESPACE = os.environ.get('SOCKETIO_NAMESPACE', '/ws')
    # Live session limits and timers (seconds)
    MAX_PLAYERS_PER_SESSION = int(os.environ.get('MAX_PLAYERS_PER_SESSION', '30'))
    DEFAULT_QUESTION_TIME_SEC = int(os.environ.get('DEFAULT_QUESTION_TIME_SEC', '10'))
    # How long a finished session stays readable before it is dropped
    SESSION_GRACE_SEC = int(os.environ.get('SESSION_GRACE_SEC', '300'))
    QUIZ_CODE_LENGTH = int(os.environ.get('QUIZ_CODE_LENGTH', '6'))
    LOG_LEVEL = os.environ.get('LOG_LEVEL', 'INFO')
