from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config
from spyfall.errors import GameError

socketio = SocketIO(async_mode=None)


def _allowed_origins(config):
    raw = config.get('CORS_ORIGINS') or ''
    if isinstance(raw, (list, tuple)):
        return list(raw)
    return [origin.strip() for origin in raw.split(',') if origin.strip()]


def create_app(config_class=Config):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)

    allowed_origins = _allowed_origins(flask_app.config)
    CORS(flask_app, origins=allowed_origins)

    # Initialize Socket.IO after app is created
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    # Room registry lives on the app so each app (and each test) gets its own
    from spyfall.services.rooms import RoomRegistry
    registry = RoomRegistry(flask_app)

    # Import and register blueprints here
    from spyfall.main import main
    flask_app.register_blueprint(main)

    from spyfall.api.rooms import rooms
    flask_app.register_blueprint(rooms, url_prefix='/api')

    # Register Socket.IO event handlers
    from spyfall.socketio_events import register_socketio_handlers
    register_socketio_handlers()

    if not flask_app.config.get('TESTING'):
        registry.start_sweeper()

    @click.command('rooms')
    def list_rooms_command():
        """Lists live rooms with their phase and roster size."""
        games = registry.list_rooms()
        if not games:
            click.echo('No live rooms.')
            return
        for game in games:
            click.echo(f'{game.code}  {game.phase:<8} players={len(game.players)} round={game.round}')

    @click.command('sweep-rooms')
    def sweep_rooms_command():
        """Destroys empty and expired rooms now."""
        with flask_app.app_context():
            removed = registry.sweep()
        click.echo(f'Removed {removed} room(s).')

    @click.command('close-room')
    @click.argument('room_code')
    def close_room_command(room_code):
        """Destroys one room, notifying anyone still in it."""
        with flask_app.app_context():
            try:
                registry.close_room(room_code)
            except GameError as exc:
                raise click.ClickException(exc.message)
        click.echo(f'Closed room {room_code.strip().upper()}.')

    flask_app.cli.add_command(list_rooms_command)
    flask_app.cli.add_command(sweep_rooms_command)
    flask_app.cli.add_command(close_room_command)

    return flask_app
