from flask import current_app, request
from flask_socketio import join_room, leave_room
from quizlive import socketio
from quizlive.services.sessions import Emitter


def session_room(code: str) -> str:
    return f"quiz:{code}"


class SocketIOEmitter(Emitter):
    """Emitter that talks to connected Socket.IO clients."""

    def __init__(self, sio, namespace: str = '/ws'):
        self.sio = sio
        self.namespace = namespace

    def to_connection(self, connection_id, event, payload):
        self.sio.emit(event, payload, to=connection_id, namespace=self.namespace)

    def to_session(self, code, event, payload):
        self.sio.emit(event, payload, to=session_room(code), namespace=self.namespace)

    def enter_session(self, connection_id, code):
        join_room(session_room(code), sid=connection_id, namespace=self.namespace)

    def leave_session(self, connection_id, code):
        leave_room(session_room(code), sid=connection_id, namespace=self.namespace)


def _gateway():
    return current_app.extensions['quiz_gateway']


def _get_sid() -> str:
    # type: ignore: request.sid exists in Socket.IO context
    return request.sid  # type: ignore


def _payload(data) -> dict:
    return data if isinstance(data, dict) else {}


def handle_connect():
    current_app.logger.debug(f"[connect] sid={_get_sid()}")


def handle_disconnect(*args):
    sid = _get_sid()
    current_app.logger.debug(f"[disconnect] sid={sid}")
    _gateway().on_disconnect(sid)


def handle_join_session(data):
    data = _payload(data)
    _gateway().on_join(_get_sid(), data.get('code'), data.get('displayName'))


def handle_get_player_list(data):
    _gateway().on_get_player_list(_get_sid(), _payload(data).get('code'))


def handle_submit_answer(data):
    data = _payload(data)
    _gateway().on_submit_answer(_get_sid(), data.get('answer'), data.get('timeRemaining'))


def handle_host_session(data):
    _gateway().on_host(_get_sid(), _payload(data).get('code'))


def handle_admin_start(data):
    _gateway().on_admin_start(_get_sid(), _payload(data).get('code'))


def handle_admin_advance(data):
    _gateway().on_admin_advance(_get_sid(), _payload(data).get('code'))


def handle_admin_end(data):
    _gateway().on_admin_end(_get_sid(), _payload(data).get('code'))


def handle_error(exc):
    # Keep the connection alive; a bad event must not take the server down
    current_app.logger.exception(f"[socket-error] sid={_get_sid()} {exc}")


def register_socketio_handlers(namespace: str = '/ws') -> None:
    """Register Socket.IO event handlers on ``namespace``.

    Handlers look the gateway up on the current app, so registering again
    for a new app instance is harmless.
    """
    socketio.on_event('connect', handle_connect, namespace=namespace)
    socketio.on_event('disconnect', handle_disconnect, namespace=namespace)
    socketio.on_event('join-session', handle_join_session, namespace=namespace)
    socketio.on_event('get-player-list', handle_get_player_list, namespace=namespace)
    socketio.on_event('submit-answer', handle_submit_answer, namespace=namespace)
    socketio.on_event('host-session', handle_host_session, namespace=namespace)
    socketio.on_event('admin-start', handle_admin_start, namespace=namespace)
    socketio.on_event('admin-advance', handle_admin_advance, namespace=namespace)
    socketio.on_event('admin-end', handle_admin_end, namespace=namespace)
    socketio.on_error(namespace)(handle_error)
