import os
import sys
import threading
from collections import defaultdict, namedtuple

import pytest

# Ensure the backend root (containing the `partyhub` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from config import Config
from partyhub import create_app, socketio
from partyhub.directory import SessionDirectory
from partyhub.services.games import build_registry
from partyhub.services.games.puzzle import Puzzle
from partyhub.services.games.scheduler import TimerHandle
from partyhub.sessions import SessionService

# Regions 0-4 are single cells, which pins the only answer to
# (0,1) (1,3) (2,5) (3,0) (4,2) (5,4)
FIXED_REGIONS = [
    [5, 0, 5, 5, 5, 5],
    [5, 5, 5, 1, 5, 5],
    [5, 5, 5, 5, 5, 2],
    [3, 5, 5, 5, 5, 5],
    [5, 5, 4, 5, 5, 5],
    [5, 5, 5, 5, 5, 5],
]
FIXED_SOLUTION = [1, 3, 5, 0, 2, 4]


class TestConfig(Config):
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    ALLOWED_ORIGINS = ['http://localhost:3000']
    DISCONNECT_GRACE_SEC = 30
    QUEENS_TIME_LIMIT_SEC = 60
    QUEENS_TIMER_BUFFER_SEC = 1


class ManualScheduler:
    """Scheduler fake: callbacks only run when the test advances the clock."""

    def __init__(self, start: float = 1000.0):
        self.lock = threading.RLock()
        self.clock = start
        self._queue = []
        self._seq = 0

    def now(self):
        return self.clock

    def call_later(self, delay, callback, *args, name='timer'):
        handle = TimerHandle(name, self.clock + max(0.0, float(delay)))
        self._queue.append((handle.deadline, self._seq, handle, callback, args))
        self._seq += 1
        return handle

    def pending(self, name_prefix=''):
        return [entry[2] for entry in self._queue if entry[2].pending and entry[2].name.startswith(name_prefix)]

    def fire(self, handle):
        """Run one timer right now, as if its deadline had been reached."""
        for entry in list(self._queue):
            if entry[2] is handle:
                self._queue.remove(entry)
                self._run(entry)
                return

    def advance(self, seconds):
        target = self.clock + seconds
        while True:
            due = sorted(e for e in self._queue if e[0] <= target and e[2].pending)
            if not due:
                break
            entry = due[0]
            self._queue.remove(entry)
            self.clock = max(self.clock, entry[0])
            self._run(entry)
        self.clock = target

    def run_all(self, limit: float = 3600):
        self.advance(limit)

    def _run(self, entry):
        _, _, handle, callback, args = entry
        with self.lock:
            if handle.cancelled:
                return
            handle.fired = True
            callback(*args)


Sent = namedtuple('Sent', ['kind', 'target', 'event', 'payload', 'skip'])


class RecordingEmitter:
    def __init__(self):
        self.sent = []
        self.rooms = defaultdict(set)

    def broadcast(self, room, event, payload=None, skip=None):
        self.sent.append(Sent('room', room, event, payload or {}, skip))

    def send(self, connection_id, event, payload=None):
        self.sent.append(Sent('direct', connection_id, event, payload or {}, None))

    def join(self, connection_id, room):
        self.rooms[room].add(connection_id)

    def leave(self, connection_id, room):
        self.rooms[room].discard(connection_id)

    def named(self, event):
        return [s for s in self.sent if s.event == event]

    def payloads(self, event):
        return [s.payload for s in self.named(event)]

    def clear(self):
        self.sent.clear()


@pytest.fixture()
def scheduler():
    return ManualScheduler()


@pytest.fixture()
def emitter():
    return RecordingEmitter()


@pytest.fixture()
def fixed_puzzle(monkeypatch):
    """Skip generation in round tests; the rules are tested on their own."""
    puzzle = Puzzle([list(row) for row in FIXED_REGIONS], list(FIXED_SOLUTION))
    monkeypatch.setattr('partyhub.services.games.queens.generate_puzzle', lambda *a, **kw: puzzle)
    return puzzle


@pytest.fixture()
def settings():
    return {key: getattr(TestConfig, key) for key in dir(TestConfig) if key.isupper()}


@pytest.fixture()
def games(emitter, scheduler, settings):
    import random
    return build_registry(emitter, scheduler, settings=settings, rng=random.Random(7))


@pytest.fixture()
def service(emitter, scheduler, games):
    return SessionService(SessionDirectory(), games, emitter, scheduler, grace_sec=30)


@pytest.fixture()
def lobby_of(service):
    """Build a lobby with the given display names; returns (lobby, connection ids)."""

    def _build(*names):
        sids = [f'sid-{name}' for name in names]
        ack = service.create_lobby(sids[0], names[0])
        code = ack['lobbyCode']
        for sid, name in zip(sids[1:], names[1:]):
            joined = service.join_lobby(sid, name, code)
            assert joined.get('success'), joined
        return service.directory.get_lobby(code), sids

    return _build


@pytest.fixture()
def flask_app(scheduler):
    application = create_app(TestConfig, scheduler=scheduler)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def _connect():
        test_client = socketio.test_client(
            flask_app,
            flask_test_client=flask_app.test_client(),
            namespace='/ws',
        )
        clients.append(test_client)
        return test_client

    yield _connect
    for test_client in clients:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass
