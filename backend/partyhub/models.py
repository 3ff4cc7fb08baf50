import random
import re
import time
import uuid
from collections import OrderedDict
from typing import Dict, Iterable, Optional

from partyhub.errors import InsufficientPlayers, LobbyFull, RoundInProgress, ValidationError

# A-Z without I and O, which read too much like 1 and 0
LOBBY_CODE_ALPHABET = 'ABCDEFGHJKLMNPQRSTUVWXYZ'
LOBBY_CODE_LENGTH = 4

DISPLAY_NAME_MIN = 3
DISPLAY_NAME_MAX = 20
_DISPLAY_NAME_RE = re.compile(r'^[A-Za-z0-9_]+$')


def generate_lobby_code(existing_codes: Iterable[str], rng=random) -> str:
    """Generate a short lobby code that is not in ``existing_codes``.

    There is no retry cap: with 24**4 possible codes the namespace is never
    expected to be anywhere near full.
    """
    taken = set(existing_codes)
    while True:
        code = ''.join(rng.choice(LOBBY_CODE_ALPHABET) for _ in range(LOBBY_CODE_LENGTH))
        if code not in taken:
            return code


def normalize_lobby_code(code) -> str:
    if not isinstance(code, str) or len(code.strip()) != LOBBY_CODE_LENGTH:
        raise ValidationError('Invalid lobby code')
    return code.strip().upper()


def validate_display_name(name) -> str:
    if not name or not isinstance(name, str):
        raise ValidationError('Display name is required')
    trimmed = name.strip()
    if len(trimmed) < DISPLAY_NAME_MIN:
        raise ValidationError(f'Display name must be at least {DISPLAY_NAME_MIN} characters')
    if len(trimmed) > DISPLAY_NAME_MAX:
        raise ValidationError(f'Display name must be {DISPLAY_NAME_MAX} characters or less')
    if not _DISPLAY_NAME_RE.match(trimmed):
        raise ValidationError('Display name can only contain letters, numbers, and underscores')
    return trimmed


class Player:
    def __init__(self, connection_id: Optional[str], display_name: str):
        self.id = uuid.uuid4().hex
        self.connection_id = connection_id
        self.display_name = display_name
        self.is_host = False
        self.lobby_code: Optional[str] = None
        self.disconnected = False
        self.pending_removal = None

    def to_public(self) -> dict:
        return {
            'id': self.id,
            'displayName': self.display_name,
            'isHost': self.is_host,
            'disconnected': self.disconnected,
        }

    def __repr__(self):
        return f'<Player {self.display_name} {self.id[:8]}>'


class Removal:
    """Outcome of ``Lobby.remove_player`` the caller has to broadcast."""

    def __init__(self, player: Optional[Player] = None, new_host: Optional[Player] = None,
                 destroyed: bool = False):
        self.player = player
        self.new_host = new_host
        self.destroyed = destroyed

    @property
    def removed(self) -> bool:
        return self.player is not None


class Lobby:
    def __init__(self, code: str, host: Player, max_players: int = 8, min_players: int = 2):
        self.code = code
        self.max_players = max_players
        self.min_players = min_players
        self.players: Dict[str, Player] = OrderedDict()
        self.host_id = host.id
        self.active_game_id: Optional[str] = None
        self.round_state = None
        self.created_at = time.time()

        self.add_player(host)
        host.is_host = True

    def add_player(self, player: Player) -> None:
        if len(self.players) >= self.max_players:
            raise LobbyFull(self.max_players)
        if self.active_game_id:
            raise RoundInProgress()
        self.players[player.id] = player
        player.lobby_code = self.code

    def remove_player(self, player_id: str) -> Removal:
        player = self.players.pop(player_id, None)
        if player is None:
            return Removal()
        player.lobby_code = None
        player.is_host = False

        if not self.players:
            return Removal(player, destroyed=True)
        if player_id == self.host_id:
            # OrderedDict keeps join order, so the first entry is the oldest member
            new_host = next(iter(self.players.values()))
            new_host.is_host = True
            self.host_id = new_host.id
            return Removal(player, new_host=new_host)
        return Removal(player)

    def get_player(self, player_id: str) -> Optional[Player]:
        return self.players.get(player_id)

    def is_host(self, player_id: str) -> bool:
        return self.host_id == player_id

    @property
    def host(self) -> Optional[Player]:
        return self.players.get(self.host_id)

    def has_display_name(self, name: str) -> bool:
        wanted = name.lower()
        return any(p.display_name.lower() == wanted for p in self.players.values())

    def start_round(self, game_id: str) -> None:
        if len(self.players) < self.min_players:
            raise InsufficientPlayers(self.min_players)
        self.active_game_id = game_id
        self.round_state = None

    def end_round(self) -> None:
        self.active_game_id = None
        self.round_state = None

    def to_public(self) -> dict:
        return {
            'code': self.code,
            'hostId': self.host_id,
            'players': [p.to_public() for p in self.players.values()],
            'activeGame': self.active_game_id,
            'playerCount': len(self.players),
        }
