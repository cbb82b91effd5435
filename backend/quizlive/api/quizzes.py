from flask import Blueprint, jsonify, request, current_app
from quizlive import db
from quizlive.models import Quiz, Question, generate_quiz_code
import json


quizzes = Blueprint('quizzes', __name__)

MIN_TIME_LIMIT = 5
MAX_TIME_LIMIT = 60
DEFAULT_TIME_LIMIT = 10


def _validate_questions(questions):
    """Return an error message for the first malformed question, else None."""
    if not isinstance(questions, list) or not questions:
        return 'Title and questions are required'
    for i, q in enumerate(questions, start=1):
        if not isinstance(q, dict):
            return f'Question {i} is missing required fields'
        options = q.get('options')
        correct = q.get('correct_answer')
        points = q.get('points')
        if not q.get('question') or not isinstance(options, list) or len(options) != 4 \
                or correct is None or not points:
            return f'Question {i} is missing required fields'
        if not isinstance(correct, int) or isinstance(correct, bool) or not 0 <= correct <= 3:
            return f'Question {i} correct_answer must be between 0 and 3'
        if not isinstance(points, int) or points < 1:
            return f'Question {i} points must be at least 1'
        timer = q.get('timer', DEFAULT_TIME_LIMIT)
        if not isinstance(timer, int) or not MIN_TIME_LIMIT <= timer <= MAX_TIME_LIMIT:
            return f'Question {i} timer must be between {MIN_TIME_LIMIT} and {MAX_TIME_LIMIT} seconds'
    return None


def _build_questions(questions):
    return [
        Question(
            position=i,
            prompt=q['question'],
            options=json.dumps([str(o) for o in q['options']]),
            correct_answer=q['correct_answer'],
            points=q['points'],
            time_limit=q.get('timer', DEFAULT_TIME_LIMIT),
        )
        for i, q in enumerate(questions)
    ]


@quizzes.route('/create', methods=['POST'])
def create_quiz():
    data = request.get_json(silent=True) or {}
    title = (data.get('title') or '').strip()
    questions = data.get('questions')
    if not title:
        return jsonify({'error': 'Title and questions are required'}), 400
    error = _validate_questions(questions)
    if error:
        return jsonify({'error': error}), 400

    quiz = Quiz(
        code=generate_quiz_code(int(current_app.config.get('QUIZ_CODE_LENGTH', 6))),
        title=title,
        description=(data.get('description') or '').strip() or None,
        admin_id=data.get('admin_id'),
    )
    quiz.questions = _build_questions(questions)
    db.session.add(quiz)
    db.session.commit()
    current_app.logger.info(f"[quiz-create] id={quiz.id} code={quiz.code} questions={len(quiz.questions)}")

    return jsonify({
        'message': 'Quiz created successfully',
        'quiz': quiz.to_summary(),
        'quiz_code': quiz.code,
    }), 201


@quizzes.route('/', methods=['GET'])
def list_quizzes():
    query = Quiz.query
    admin_id = request.args.get('admin_id')
    if admin_id:
        query = query.filter_by(admin_id=admin_id)
    return jsonify([q.to_summary() for q in query.order_by(Quiz.created_at.desc(), Quiz.id.desc()).all()]), 200


@quizzes.route('/<int:quiz_id>', methods=['GET'])
def get_quiz(quiz_id):
    quiz = db.session.get(Quiz, quiz_id)
    if not quiz:
        return jsonify({'error': 'Quiz not found'}), 404
    return jsonify(quiz.to_dict()), 200


@quizzes.route('/<int:quiz_id>', methods=['PUT'])
def update_quiz(quiz_id):
    quiz = db.session.get(Quiz, quiz_id)
    if not quiz:
        return jsonify({'error': 'Quiz not found'}), 404
    data = request.get_json(silent=True) or {}

    if data.get('title'):
        quiz.title = data['title'].strip()
    if 'description' in data:
        quiz.description = (data.get('description') or '').strip() or None
    if data.get('questions') is not None:
        error = _validate_questions(data['questions'])
        if error:
            return jsonify({'error': error}), 400
        # Live sessions keep the definition they loaded
        quiz.questions = _build_questions(data['questions'])
    db.session.commit()

    return jsonify({'message': 'Quiz updated successfully', 'quiz': quiz.to_summary()}), 200


@quizzes.route('/<int:quiz_id>', methods=['DELETE'])
def delete_quiz(quiz_id):
    quiz = db.session.get(Quiz, quiz_id)
    if not quiz:
        return jsonify({'error': 'Quiz not found'}), 404
    db.session.delete(quiz)
    db.session.commit()
    return jsonify({'message': 'Quiz deleted successfully'}), 200


@quizzes.route('/join/<string:code>', methods=['GET'])
def join_lookup(code):
    """Check that a code exists before a player opens a socket."""
    quiz = Quiz.query.filter_by(code=code.upper()).first()
    if not quiz:
        return jsonify({'error': 'Quiz not found', 'can_join': False}), 404
    return jsonify({
        'message': 'Quiz found',
        'quiz_code': quiz.code,
        'can_join': True,
        'title': quiz.title,
        'description': quiz.description,
        'questions_count': len(quiz.questions),
    }), 200
