from quizlive import db
from datetime import datetime
import json
import string
import random

from quizlive.services.sessions.state import Question as LiveQuestion, QuizDefinition


# Width of the quiz.code column; generated codes must fit in it
QUIZ_CODE_MIN_LENGTH = 4
QUIZ_CODE_MAX_LENGTH = 8


def generate_quiz_code(length=6):
    """Generate a unique, short, uppercase quiz code."""
    while True:
        code = ''.join(random.choices(string.ascii_uppercase + string.digits, k=length))
        if not Quiz.query.filter_by(code=code).first():
            return code


class Quiz(db.Model):
    __tablename__ = 'quiz'
    id = db.Column(db.Integer, primary_key=True)
    code = db.Column(db.String(QUIZ_CODE_MAX_LENGTH), unique=True, nullable=False, index=True)
    title = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)
    # Opaque owner label supplied by the authoring client
    admin_id = db.Column(db.String(64), nullable=True, index=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    questions = db.relationship(
        'Question', back_populates='quiz', order_by='Question.position',
        cascade='all, delete-orphan',
    )

    @property
    def total_points(self):
        return sum(q.points for q in self.questions)

    def to_summary(self):
        return {
            'id': self.id,
            'title': self.title,
            'description': self.description,
            'questions_count': len(self.questions),
            'total_points': self.total_points,
            'quiz_code': self.code,
            'created_at': self.created_at.isoformat() if self.created_at else None,
        }

    def to_dict(self):
        data = self.to_summary()
        data['admin_id'] = self.admin_id
        data['questions'] = [q.to_dict() for q in self.questions]
        return data

    def to_definition(self):
        """Immutable snapshot handed to a live session."""
        return QuizDefinition(
            code=self.code,
            title=self.title,
            description=self.description or '',
            owner_id=self.admin_id,
            questions=tuple(q.to_live() for q in self.questions),
        )


class Question(db.Model):
    __tablename__ = 'question'
    id = db.Column(db.Integer, primary_key=True)
    quiz_id = db.Column(db.Integer, db.ForeignKey('quiz.id'), nullable=False, index=True)
    position = db.Column(db.Integer, nullable=False, default=0)
    prompt = db.Column(db.Text, nullable=False)
    options = db.Column(db.Text, nullable=False)  # JSON-encoded list of 4 strings
    correct_answer = db.Column(db.Integer, nullable=False)
    points = db.Column(db.Integer, nullable=False)
    time_limit = db.Column(db.Integer, nullable=False, default=10)
    quiz = db.relationship('Quiz', back_populates='questions')

    @property
    def option_list(self):
        try:
            return json.loads(self.options) if self.options else []
        except ValueError:
            return []

    def to_dict(self):
        return {
            'question': self.prompt,
            'options': self.option_list,
            'correct_answer': self.correct_answer,
            'points': self.points,
            'timer': self.time_limit,
        }

    def to_live(self):
        return LiveQuestion(
            prompt=self.prompt,
            options=tuple(self.option_list),
            correct_answer=self.correct_answer,
            points=self.points,
            time_limit=self.time_limit,
        )
