"""Round modules: the engine contract, timers and the playable games.

This package holds pure(ish) game logic called by the session service,
keeping Socket.IO transport concerns out of the game mechanics.
"""
from collections import OrderedDict
from typing import List, Optional

from .base import RESULTS, RoundEngine, RoundState
from .poker import DeadDrawPokerGame
from .queens import QueensGame

GAME_CLASSES = (DeadDrawPokerGame, QueensGame)


class GameRegistry:
    """Maps a game id to the engine that runs it."""

    def __init__(self, engines=()):
        self._engines = OrderedDict()
        for engine in engines:
            self.register(engine)

    def register(self, engine: RoundEngine) -> None:
        self._engines[engine.game_id] = engine

    def get(self, game_id) -> Optional[RoundEngine]:
        if not isinstance(game_id, str):
            return None
        return self._engines.get(game_id)

    def available(self) -> List[dict]:
        return [engine.describe() for engine in self._engines.values()]


def build_registry(emitter, scheduler, settings=None, logger=None, rng=None) -> GameRegistry:
    return GameRegistry(
        cls(emitter, scheduler, settings=settings, logger=logger, rng=rng) for cls in GAME_CLASSES
    )
