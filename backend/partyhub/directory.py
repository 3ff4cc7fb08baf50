from typing import Dict, Optional

from partyhub.models import Lobby, Player, generate_lobby_code


class SessionDirectory:
    """Registry of live lobbies by code and connected players by connection id.

    One instance is owned by the session service; nothing here is module
    state, so tests can build as many directories as they need.
    """

    def __init__(self, max_players: int = 8, min_players: int = 2, rng=None):
        self.max_players = max_players
        self.min_players = min_players
        self._rng = rng
        self._lobbies: Dict[str, Lobby] = {}
        self._connections: Dict[str, Player] = {}

    # ---- lobbies ----

    def codes(self):
        return set(self._lobbies)

    def open_lobby(self, host: Player) -> Lobby:
        if self._rng is not None:
            code = generate_lobby_code(self._lobbies.keys(), rng=self._rng)
        else:
            code = generate_lobby_code(self._lobbies.keys())
        lobby = Lobby(code, host, max_players=self.max_players, min_players=self.min_players)
        self._lobbies[code] = lobby
        return lobby

    def get_lobby(self, code) -> Optional[Lobby]:
        if not isinstance(code, str):
            return None
        return self._lobbies.get(code.strip().upper())

    def close_lobby(self, code: str) -> None:
        self._lobbies.pop(code, None)

    def __len__(self):
        return len(self._lobbies)

    # ---- connections ----

    def bind(self, connection_id: str, player: Player) -> None:
        self._connections[connection_id] = player
        player.connection_id = connection_id

    def unbind(self, connection_id: str) -> Optional[Player]:
        return self._connections.pop(connection_id, None)

    def player_for(self, connection_id: str) -> Optional[Player]:
        return self._connections.get(connection_id)

    def lobby_for(self, connection_id: str) -> Optional[Lobby]:
        player = self.player_for(connection_id)
        if player is None or not player.lobby_code:
            return None
        return self.get_lobby(player.lobby_code)
