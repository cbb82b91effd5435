from flask import Blueprint, jsonify, current_app
from quizlive.services.sessions import Phase, leaderboard


sessions = Blueprint('sessions', __name__)


@sessions.route('/', methods=['GET'])
def list_sessions():
    registry = current_app.extensions['quiz_registry']
    return jsonify({'codes': registry.codes()}), 200


@sessions.route('/<string:code>', methods=['GET'])
def get_session(code):
    """Read-only view of a live session, including one that just ended."""
    registry = current_app.extensions['quiz_registry']
    gateway = current_app.extensions['quiz_gateway']
    session = registry.get(code)
    if session is None:
        return jsonify({'error': 'Session not found'}), 404
    with gateway.lock:
        data = session.snapshot()
        data['leaderboard'] = leaderboard.project(session.roster)
        if session.phase == Phase.TERMINAL:
            data['finalLeaderboard'] = leaderboard.project_final(session.roster)
    return jsonify(data), 200
