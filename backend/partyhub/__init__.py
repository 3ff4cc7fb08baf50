from flask import Flask
from flask_cors import CORS
from flask_socketio import SocketIO
import click
from config import Config

socketio = SocketIO(async_mode=None)


def create_app(config_class=Config, scheduler=None, emitter=None):
    flask_app = Flask(__name__)
    flask_app.config.from_object(config_class)
    allowed_origins = flask_app.config.get('ALLOWED_ORIGINS') or []

    CORS(flask_app, supports_credentials=True, origins=allowed_origins)
    socketio.init_app(flask_app, cors_allowed_origins=allowed_origins)

    from partyhub.main import main
    flask_app.register_blueprint(main)

    # Build the session engine; tests pass their own scheduler/emitter
    from partyhub.directory import SessionDirectory
    from partyhub.emitter import SocketIOEmitter
    from partyhub.services.games import build_registry
    from partyhub.services.games.scheduler import SocketIOScheduler
    from partyhub.sessions import SessionService

    cfg = flask_app.config
    scheduler = scheduler or SocketIOScheduler(
        socketio, logger=flask_app.logger, heartbeat_sec=float(cfg.get('TIMER_HEARTBEAT_SEC', 0) or 0)
    )
    emitter = emitter or SocketIOEmitter(socketio)
    directory = SessionDirectory(
        max_players=int(cfg.get('MAX_PLAYERS', 8)),
        min_players=int(cfg.get('MIN_PLAYERS', 2)),
    )
    games = build_registry(emitter, scheduler, settings=cfg, logger=flask_app.logger)
    flask_app.extensions['partyhub'] = SessionService(
        directory,
        games,
        emitter,
        scheduler,
        grace_sec=float(cfg.get('DISCONNECT_GRACE_SEC', 30)),
        logger=flask_app.logger,
    )

    # Register Socket.IO event handlers on the initialized socketio instance
    from partyhub.socketio_events import register_socketio_handlers
    register_socketio_handlers(socketio)

    @click.command('generate-puzzle')
    @click.option('--seed', type=int, default=None, help='Seed for a reproducible puzzle.')
    def generate_puzzle_command(seed):
        """Generates a Queens puzzle and prints its regions and solution."""
        import random
        from partyhub.services.games.puzzle import generate_puzzle

        puzzle = generate_puzzle(
            max_attempts=int(cfg.get('PUZZLE_MAX_ATTEMPTS', 2000)),
            rng=random.Random(seed),
        )
        for row, regions in enumerate(puzzle.grid):
            line = ' '.join(
                f'[{region}]' if puzzle.solution[row] == col else f' {region} '
                for col, region in enumerate(regions)
            )
            click.echo(line)

    @click.command('evaluate-hand')
    @click.argument('cards', nargs=-1, required=True)
    def evaluate_hand_command(cards):
        """Prints the best five-card hand from 5 to 7 cards such as AS KD 10H."""
        from partyhub.services.games.cards import parse_cards
        from partyhub.services.games.hand_evaluator import best_hand

        try:
            parsed = parse_cards(cards)
            hand = best_hand(parsed[:2], parsed[2:])
        except ValueError as exc:
            raise click.BadParameter(str(exc))
        click.echo(f"{hand.name}: {' '.join(str(c) for c in hand.cards)} {list(hand.tiebreak)}")

    flask_app.cli.add_command(generate_puzzle_command)
    flask_app.cli.add_command(evaluate_hand_command)

    return flask_app
