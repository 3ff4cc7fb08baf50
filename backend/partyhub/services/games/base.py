"""The contract every round module implements.

A module owns the round state it creates in ``init``: the phase, the phase
timers and whatever payload the game needs. The session service only ever
calls the methods below and never looks inside the payload.
"""
import logging
import random
from typing import Any, Mapping, Optional

from partyhub.errors import PreconditionError
from .scheduler import TimerSet

RESULTS = 'results'


class RoundState:
    def __init__(self, phase: str, started_at: float, timers: TimerSet):
        self.phase = phase
        self.phase_started_at = started_at
        self.timers = timers
        self.results: Optional[dict] = None

    @property
    def finished(self) -> bool:
        return self.phase == RESULTS


class RoundEngine:
    game_id = ''
    name = ''
    description = ''
    min_players = 2
    max_players = 8

    def __init__(self, emitter, scheduler, settings: Optional[Mapping[str, Any]] = None,
                 logger: Optional[logging.Logger] = None, rng=None):
        self.emitter = emitter
        self.scheduler = scheduler
        self.settings = settings or {}
        self.log = logger or logging.getLogger(__name__)
        self.rng = rng or random.Random()

    def setting(self, key: str, default):
        value = self.settings.get(key)
        return default if value is None else value

    def describe(self) -> dict:
        return {
            'id': self.game_id,
            'name': self.name,
            'description': self.description,
            'minPlayers': self.min_players,
            'maxPlayers': self.max_players,
        }

    # ---- lifecycle ----

    def init(self, lobby) -> RoundState:
        raise NotImplementedError

    def start(self, lobby) -> None:
        raise NotImplementedError

    def handle_action(self, lobby, player_id: str, action: str, data: dict) -> dict:
        raise NotImplementedError

    def score(self, lobby, state) -> dict:
        """Build the results payload: ranked ``players`` plus ``losers``."""
        raise NotImplementedError

    def get_reconnect_state(self, lobby, player_id: str) -> dict:
        state = lobby.round_state
        if state is None:
            return {}
        if state.finished:
            return {'phase': RESULTS, 'results': state.results}
        return {'phase': state.phase}

    def finish(self, lobby) -> Optional[dict]:
        """Enter the results phase. Safe to call any number of times.

        Both the phase timer and the "everyone has acted" path of an action
        handler end up here; whichever arrives second finds the round already
        in ``results`` and does nothing.
        """
        state = lobby.round_state
        if state is None or state.finished:
            return None
        state.phase = RESULTS
        state.phase_started_at = self.scheduler.now()
        state.timers.cancel_all()
        state.results = self.score(lobby, state)
        self.log.info(f"[round-finish] lobby={lobby.code} game={self.game_id} losers={len(state.results.get('losers', []))}")
        self.emitter.broadcast(lobby.code, 'phase', {'phase': RESULTS})
        self.emitter.broadcast(lobby.code, 'results', state.results)
        return state.results

    def end(self, lobby) -> None:
        state = lobby.round_state
        if state is not None:
            state.timers.cancel_all()
        lobby.end_round()

    def on_player_removed(self, lobby, player_id: str) -> None:
        """Hook for a member leaving mid-round; default does nothing."""

    # ---- helpers for subclasses ----

    def new_timers(self) -> TimerSet:
        return TimerSet(self.scheduler)

    def enter_phase(self, lobby, state: RoundState, phase: str, **payload) -> None:
        state.phase = phase
        state.phase_started_at = self.scheduler.now()
        self.emitter.broadcast(lobby.code, 'phase', dict(payload, phase=phase))

    def is_current(self, lobby, state: RoundState) -> bool:
        return lobby.round_state is state and lobby.active_game_id == self.game_id

    def require_phase(self, state: RoundState, phase: str) -> None:
        if state is None or state.phase != phase:
            raise PreconditionError(f'Round is not in the {phase} phase')
