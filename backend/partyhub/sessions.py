"""Lobby and connection lifecycle.

``SessionService`` is what the Socket.IO handlers call into. Each public
method takes the caller's connection id, runs under the scheduler lock and
returns the acknowledgement payload. Validation happens before any state is
touched, so a ``GameError`` leaves lobbies exactly as they were.
"""
import logging
from functools import wraps
from typing import Optional, Tuple

from partyhub.errors import GameError, PreconditionError, ValidationError
from partyhub.models import (
    Lobby,
    Player,
    Removal,
    normalize_lobby_code,
    validate_display_name,
)

DISCONNECT_GRACE_SEC = 30


def acknowledged(method):
    """Serialize the call and turn a ``GameError`` into an error ack."""

    @wraps(method)
    def wrapper(self, *args, **kwargs):
        with self.lock:
            try:
                return method(self, *args, **kwargs)
            except GameError as exc:
                self.log.info(f"[rejected] op={method.__name__} reason={exc.message!r}")
                return exc.to_dict()

    return wrapper


class SessionService:
    def __init__(self, directory, games, emitter, scheduler,
                 grace_sec: float = DISCONNECT_GRACE_SEC, logger: Optional[logging.Logger] = None):
        self.directory = directory
        self.games = games
        self.emitter = emitter
        self.scheduler = scheduler
        self.grace_sec = grace_sec
        self.log = logger or logging.getLogger(__name__)

    @property
    def lock(self):
        return self.scheduler.lock

    # ---- lobby membership ----

    @acknowledged
    def create_lobby(self, connection_id: str, display_name) -> dict:
        name = validate_display_name(display_name)
        self._require_unbound(connection_id)

        player = Player(connection_id, name)
        lobby = self.directory.open_lobby(player)
        self.directory.bind(connection_id, player)
        self.emitter.join(connection_id, lobby.code)
        self.log.info(f"[lobby-create] code={lobby.code} player={player.display_name}")
        return {
            'success': True,
            'lobbyCode': lobby.code,
            'player': player.to_public(),
            'lobby': lobby.to_public(),
        }

    @acknowledged
    def join_lobby(self, connection_id: str, display_name, lobby_code) -> dict:
        name = validate_display_name(display_name)
        code = normalize_lobby_code(lobby_code)
        self._require_unbound(connection_id)

        lobby = self.directory.get_lobby(code)
        if lobby is None:
            raise ValidationError('Lobby not found')
        if lobby.has_display_name(name):
            raise ValidationError('Display name already taken in this lobby')

        player = Player(connection_id, name)
        lobby.add_player(player)
        self.directory.bind(connection_id, player)
        self.emitter.join(connection_id, lobby.code)
        self.log.info(f"[lobby-join] code={lobby.code} player={player.display_name} count={len(lobby.players)}")

        self.emitter.broadcast(lobby.code, 'player-joined', {
            'player': player.to_public(),
            'lobby': lobby.to_public(),
        }, skip=connection_id)
        return {'success': True, 'player': player.to_public(), 'lobby': lobby.to_public()}

    @acknowledged
    def leave_lobby(self, connection_id: str) -> dict:
        player = self.directory.unbind(connection_id)
        if player is None:
            return {'success': True}
        lobby = self.directory.get_lobby(player.lobby_code) if player.lobby_code else None
        if lobby is not None:
            self.emitter.leave(connection_id, lobby.code)
            self._remove_player(lobby, player)
        return {'success': True}

    def list_games(self) -> dict:
        return {'games': self.games.available()}

    # ---- rounds ----

    @acknowledged
    def start_round(self, connection_id: str, game_id) -> dict:
        player, lobby = self._require_member(connection_id)
        if not lobby.is_host(player.id):
            raise PreconditionError('Only the host can start a round')
        engine = self.games.get(game_id)
        if engine is None:
            raise ValidationError('Invalid game')
        if lobby.active_game_id:
            raise PreconditionError('A round is already in progress')

        lobby.start_round(game_id)
        try:
            engine.init(lobby)
        except Exception:
            lobby.end_round()
            self.log.warning(f"[round-init-failed] code={lobby.code} game={game_id}")
            raise

        self.log.info(f"[round-start] code={lobby.code} game={game_id} players={len(lobby.players)}")
        self.emitter.broadcast(lobby.code, 'round-started', {'gameId': game_id, 'lobby': lobby.to_public()})
        try:
            engine.start(lobby)
        except Exception:
            engine.end(lobby)
            self.emitter.broadcast(lobby.code, 'round-ended', {'lobby': lobby.to_public()})
            raise
        return {'success': True}

    @acknowledged
    def game_action(self, connection_id: str, action, data=None) -> dict:
        player, lobby = self._require_member(connection_id)
        if not lobby.active_game_id or lobby.round_state is None:
            raise PreconditionError('No round in progress')
        engine = self.games.get(lobby.active_game_id)
        if engine is None:
            raise PreconditionError('Invalid round state')
        if not action or not isinstance(action, str):
            raise ValidationError('Action is required')
        return engine.handle_action(lobby, player.id, action, data if isinstance(data, dict) else {})

    @acknowledged
    def end_round(self, connection_id: str) -> dict:
        player, lobby = self._require_member(connection_id)
        if not lobby.is_host(player.id):
            raise PreconditionError('Only the host can end the round')

        self._end_active_round(lobby)
        self.log.info(f"[round-end] code={lobby.code}")
        self.emitter.broadcast(lobby.code, 'round-ended', {'lobby': lobby.to_public()})
        return {'success': True}

    # ---- connection lifecycle ----

    def disconnect(self, connection_id: str) -> None:
        """Hold the player's seat for the grace period instead of evicting."""
        with self.lock:
            player = self.directory.unbind(connection_id)
            if player is None:
                return
            lobby = self.directory.get_lobby(player.lobby_code) if player.lobby_code else None
            if lobby is None:
                return

            player.disconnected = True
            player.connection_id = None
            self.emitter.broadcast(lobby.code, 'player-disconnected', {
                'player': player.to_public(),
                'lobby': lobby.to_public(),
            })
            if player.pending_removal is not None:
                player.pending_removal.cancel()
            player.pending_removal = self.scheduler.call_later(
                self.grace_sec, self._expire_grace, lobby.code, player, name=f'grace:{player.id[:8]}'
            )
            self.log.info(f"[disconnect] code={lobby.code} player={player.display_name} grace={self.grace_sec}s")

    def _expire_grace(self, lobby_code: str, player: Player) -> None:
        # cleared first so nothing else can try to cancel or reuse this removal
        player.pending_removal = None
        lobby = self.directory.get_lobby(lobby_code)
        if lobby is None or lobby.get_player(player.id) is not player or not player.disconnected:
            return
        self.log.info(f"[grace-expired] code={lobby_code} player={player.display_name}")
        self._remove_player(lobby, player)

    @acknowledged
    def reconnect(self, connection_id: str, player_id, lobby_code) -> dict:
        if not player_id or not lobby_code:
            raise ValidationError('Missing playerId or lobbyCode')
        lobby = self.directory.get_lobby(lobby_code)
        if lobby is None:
            raise ValidationError('Lobby not found')
        player = lobby.get_player(player_id) if isinstance(player_id, str) else None
        if player is None:
            raise ValidationError('Player not found in lobby')
        bound = self.directory.player_for(connection_id)
        if bound is not None and bound is not player:
            raise PreconditionError('Connection is already in a lobby')

        if player.pending_removal is not None:
            player.pending_removal.cancel()
            player.pending_removal = None
        if player.connection_id and player.connection_id != connection_id:
            # the old transport never reported its disconnect
            self.emitter.leave(player.connection_id, lobby.code)
            self.directory.unbind(player.connection_id)
        self.directory.bind(connection_id, player)
        player.disconnected = False
        self.emitter.join(connection_id, lobby.code)
        self.log.info(f"[reconnect] code={lobby.code} player={player.display_name}")

        self.emitter.broadcast(lobby.code, 'player-reconnected', {
            'player': player.to_public(),
            'lobby': lobby.to_public(),
        }, skip=connection_id)

        game_state = None
        if lobby.active_game_id:
            engine = self.games.get(lobby.active_game_id)
            game_state = {'gameId': lobby.active_game_id}
            if engine is not None:
                game_state.update(engine.get_reconnect_state(lobby, player.id))
        return {
            'success': True,
            'player': player.to_public(),
            'lobby': lobby.to_public(),
            'gameState': game_state,
        }

    # ---- helpers ----

    def _require_unbound(self, connection_id: str) -> None:
        player = self.directory.player_for(connection_id)
        if player is not None and player.lobby_code:
            raise PreconditionError('Already in a lobby')

    def _require_member(self, connection_id: str) -> Tuple[Player, Lobby]:
        player = self.directory.player_for(connection_id)
        if player is None or not player.lobby_code:
            raise PreconditionError('Not in a lobby')
        lobby = self.directory.get_lobby(player.lobby_code)
        if lobby is None:
            raise PreconditionError('Lobby not found')
        return player, lobby

    def _end_active_round(self, lobby: Lobby) -> None:
        engine = self.games.get(lobby.active_game_id) if lobby.active_game_id else None
        if engine is not None:
            engine.end(lobby)
        else:
            lobby.end_round()

    def _remove_player(self, lobby: Lobby, player: Player) -> Removal:
        """Shared by explicit leave and grace expiry."""
        if player.pending_removal is not None:
            player.pending_removal.cancel()
            player.pending_removal = None

        removal = lobby.remove_player(player.id)
        if not removal.removed:
            return removal

        if removal.destroyed:
            self._end_active_round(lobby)
            self.directory.close_lobby(lobby.code)
            self.log.info(f"[lobby-destroyed] code={lobby.code}")
            return removal

        if removal.new_host is not None:
            self.emitter.broadcast(lobby.code, 'host-changed', {
                'newHost': removal.new_host.to_public(),
                'lobby': lobby.to_public(),
            })
            self.log.info(f"[host-changed] code={lobby.code} host={removal.new_host.display_name}")

        self.emitter.broadcast(lobby.code, 'player-left', {
            'player': player.to_public(),
            'lobby': lobby.to_public(),
        })
        self.log.info(f"[lobby-leave] code={lobby.code} player={player.display_name} count={len(lobby.players)}")

        if lobby.active_game_id:
            engine = self.games.get(lobby.active_game_id)
            if engine is not None:
                engine.on_player_removed(lobby, player.id)
        return removal
