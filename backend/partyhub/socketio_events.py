from functools import wraps

from flask import current_app, request
from flask_socketio import emit

from partyhub.emitter import NAMESPACE

GENERIC_ERROR = {'error': 'Internal server error'}


def _service():
    return current_app.extensions['partyhub']


def _get_sid() -> str:
    # request.sid exists in Socket.IO handler context
    return request.sid  # type: ignore


def _payload(data) -> dict:
    return data if isinstance(data, dict) else {}


def guarded(handler):
    """Catch anything unexpected at the transport boundary.

    The client gets a generic error ack and the process keeps running.
    """

    @wraps(handler)
    def wrapper(*args):
        try:
            return handler(*args)
        except Exception:
            current_app.logger.exception(f"[handler-error] event={handler.__name__} sid={_get_sid()}")
            return dict(GENERIC_ERROR)

    return wrapper


def handle_connect(auth=None):
    emit('connected', {'message': f'Connected to {NAMESPACE}'})


def handle_disconnect(reason=None):
    try:
        _service().disconnect(_get_sid())
    except Exception:
        current_app.logger.exception(f"[disconnect-error] sid={_get_sid()}")


@guarded
def handle_create_lobby(data=None):
    return _service().create_lobby(_get_sid(), _payload(data).get('displayName'))


@guarded
def handle_join_lobby(data=None):
    data = _payload(data)
    return _service().join_lobby(_get_sid(), data.get('displayName'), data.get('lobbyCode'))


@guarded
def handle_leave_lobby(data=None):
    return _service().leave_lobby(_get_sid())


@guarded
def handle_list_games(data=None):
    return _service().list_games()


@guarded
def handle_start_round(data=None):
    return _service().start_round(_get_sid(), _payload(data).get('gameId'))


@guarded
def handle_game_action(data=None):
    data = _payload(data)
    return _service().game_action(_get_sid(), data.get('action'), data.get('data') or {})


@guarded
def handle_end_round(data=None):
    return _service().end_round(_get_sid())


@guarded
def handle_reconnect(data=None):
    data = _payload(data)
    return _service().reconnect(_get_sid(), data.get('playerId'), data.get('lobbyCode'))


def handle_ping(data=None):
    emit('pong', data or {})


EVENT_HANDLERS = {
    'connect': handle_connect,
    'disconnect': handle_disconnect,
    'create-lobby': handle_create_lobby,
    'join-lobby': handle_join_lobby,
    'leave-lobby': handle_leave_lobby,
    'list-games': handle_list_games,
    'start-round': handle_start_round,
    'game-action': handle_game_action,
    'end-round': handle_end_round,
    'reconnect': handle_reconnect,
    'ping': handle_ping,
}


def register_socketio_handlers(socketio) -> None:
    """Register every Socket.IO event handler on the '/ws' namespace."""
    for event, handler in EVENT_HANDLERS.items():
        socketio.on_event(event, handler, namespace=NAMESPACE)
