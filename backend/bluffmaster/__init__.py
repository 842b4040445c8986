from flask import Flask
from flask_sqlalchemy import SQLAlchemy
from flask_cors import CORS
from flask_migrate import Migrate
from flask_socketio import SocketIO
import click
from config import Config

db = SQLAlchemy()
migrate = Migrate()
socketio = SocketIO(async_mode=None)

def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('CORS_ORIGINS') or '*'

    db.init_app(flask_app)
    migrate.init_app(flask_app, db)
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # One engine per app: its room registry, store adapter and logger
    from bluffmaster.persistence import RoomPersistence
    from bluffmaster.services.game import GameEngine, RoomStore
    flask_app.extensions['game_engine'] = GameEngine(
        store=RoomStore(),
        persistence=RoomPersistence(ttl_seconds=flask_app.config.get('ROOM_TTL_SEC', 86400)),
        logger=flask_app.logger,
        min_players=flask_app.config.get('MIN_PLAYERS', 2),
    )

    from bluffmaster.main import main
    flask_app.register_blueprint(main)

    from bluffmaster.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api/rooms')

    from bluffmaster.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    @click.command('purge-rooms')
    def purge_rooms_command():
        """Deletes expired room snapshots from the database."""
        from bluffmaster.persistence import RoomPersistence
        with flask_app.app_context():
            removed = RoomPersistence().purge_expired()
            print(f'Purged {removed} expired room snapshot(s).')

    flask_app.cli.add_command(purge_rooms_command)

    return flask_app
