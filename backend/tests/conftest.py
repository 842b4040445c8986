import os
import random
import sys
import pytest

# Ensure the backend root (containing the `bluffmaster` package) is on sys.path
CURRENT_DIR = os.path.dirname(__file__)
BACKEND_ROOT = os.path.abspath(os.path.join(CURRENT_DIR, '..'))
if BACKEND_ROOT not in sys.path:
    sys.path.insert(0, BACKEND_ROOT)

from bluffmaster import create_app, db, socketio
from bluffmaster.services.game import GameEngine, RoomStore


class TestConfig:
    TESTING = True
    SECRET_KEY = os.environ.get('SECRET_KEY', 'test-secret')
    SQLALCHEMY_DATABASE_URI = 'sqlite://'
    SQLALCHEMY_TRACK_MODIFICATIONS = False
    CORS_ORIGINS = ['http://localhost:3000']
    ROOM_TTL_SEC = 86400
    BOT_MOVE_DELAY_SEC = 0
    GAME_OVER_CLEANUP_SEC = 0
    MIN_PLAYERS = 2


class ScriptedRandom(random.Random):
    """Seeded random source whose random() first replays the given values."""

    def __init__(self, values=(), seed=7):
        super().__init__(seed)
        self.values = list(values)
        self.calls = 0

    def random(self):
        self.calls += 1
        if self.values:
            return self.values.pop(0)
        return super().random()


@pytest.fixture()
def flask_app():
    application = create_app(TestConfig)
    with application.app_context():
        # Ensure models are imported so tables are created
        import bluffmaster.models  # noqa: F401
        db.create_all()
        yield application
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(flask_app):
    return flask_app.test_client()


@pytest.fixture()
def engine_of(flask_app):
    return flask_app.extensions['game_engine']


@pytest.fixture()
def make_sio_client(flask_app):
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


@pytest.fixture()
def sio_client(make_sio_client):
    return make_sio_client()


@pytest.fixture()
def engine():
    """Engine with no durable store and a seeded random source."""
    return GameEngine(store=RoomStore(), rng=random.Random(1234))
