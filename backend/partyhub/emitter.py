NAMESPACE = '/ws'


class SocketIOEmitter:
    """Socket.IO rooms and outbound events, scoped to a lobby room or one connection.

    Uses ``socketio.emit`` rather than ``flask_socketio.emit`` so it works
    from background timer tasks as well as from inside handlers.
    """

    def __init__(self, socketio, namespace: str = NAMESPACE):
        self.socketio = socketio
        self.namespace = namespace

    def broadcast(self, room: str, event: str, payload=None, skip=None) -> None:
        self.socketio.emit(event, payload or {}, to=room, skip_sid=skip, namespace=self.namespace)

    def send(self, connection_id: str, event: str, payload=None) -> None:
        self.socketio.emit(event, payload or {}, to=connection_id, namespace=self.namespace)

    def join(self, connection_id: str, room: str) -> None:
        self.socketio.server.enter_room(connection_id, room, namespace=self.namespace)

    def leave(self, connection_id: str, room: str) -> None:
        self.socketio.server.leave_room(connection_id, room, namespace=self.namespace)
