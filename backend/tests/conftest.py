import os
import sys
import pytest

# Ensure the backend root (containing the `spyfall` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from spyfall import create_app, socketio


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    CORS_ORIGINS = 'http://localhost:5173'
    ROUND_DURATION_SEC = 480
    MIN_PLAYERS = 4
    MAX_PLAYERS = 15
    NAME_MIN_LENGTH = 2
    NAME_MAX_LENGTH = 20
    CHAT_MAX_LENGTH = 200
    CHAT_COOLDOWN_SEC = 3
    ROOM_MAX_AGE_SEC = 7200
    ROOM_SWEEP_INTERVAL_SEC = 1800
    # Every test client shares one remote address
    MAX_CONNECTIONS_PER_ADDRESS = 100
    TIMER_HEARTBEAT_SEC = 0


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        yield application


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def registry(flask_app):
    return flask_app.extensions['rooms']


@pytest.fixture()
def sent(monkeypatch):
    """Capture everything the server emits as (event, payload, to) tuples."""
    captured = []

    def _record(event, data=None, to=None, skip_sid=None, namespace=None, **kwargs):
        captured.append((event, data, to))

    monkeypatch.setattr(socketio, 'emit', _record)
    return captured


@pytest.fixture()
def seat(registry):
    """Create a lobby with ``n`` players; the first one hosts."""
    def _seat(n, prefix='sid'):
        sids = [f'{prefix}-{i}' for i in range(n)]
        game, _ = registry.create_room(sids[0], 'Player 0')
        for i, sid in enumerate(sids[1:], start=1):
            registry.join_room(sid, game.code, f'Player {i}')
        return game, sids
    return _seat


@pytest.fixture()
def sio_factory(flask_app):
    clients = []

    def _make():
        test_client = socketio.test_client(flask_app, namespace='/ws')
        clients.append(test_client)
        return test_client

    yield _make
    for test_client in clients:
        try:
            if test_client.is_connected('/ws'):
                test_client.disconnect(namespace='/ws')
        except Exception:
            pass


def events_named(received, name):
    return [pkt['args'][0] if pkt['args'] else None for pkt in received if pkt['name'] == name]
