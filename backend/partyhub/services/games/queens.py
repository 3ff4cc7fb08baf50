from collections import OrderedDict

from partyhub.errors import ValidationError
from .base import RoundEngine, RoundState
from .puzzle import GRID_SIZE, MAX_ATTEMPTS, generate_puzzle, solution_markers, verify_solution

PLAYING = 'playing'
ROUND_END_TIMER = 'round-end'


class QueensState(RoundState):
    def __init__(self, puzzle, started_at, timers):
        super().__init__(PLAYING, started_at, timers)
        self.grid = puzzle.grid
        self.solution = puzzle.solution
        # player id -> {'solveTime': ms, 'displayName': str}, in solve order
        self.solved = OrderedDict()


class QueensGame(RoundEngine):
    """Everyone races to solve the same region-queens puzzle.

    Phases: ``playing`` -> ``results``. The round ends when every member has
    solved it or the time limit runs out, whichever comes first.
    """

    game_id = 'queens'
    name = 'Queens'
    description = 'Place one queen in every row, column and region without any touching. Slowest solver loses!'

    @property
    def time_limit(self) -> float:
        return float(self.setting('QUEENS_TIME_LIMIT_SEC', 60))

    def init(self, lobby) -> QueensState:
        puzzle = generate_puzzle(
            GRID_SIZE,
            max_attempts=int(self.setting('PUZZLE_MAX_ATTEMPTS', MAX_ATTEMPTS)),
            rng=self.rng,
        )
        state = QueensState(puzzle, self.scheduler.now(), self.new_timers())
        lobby.round_state = state
        return state

    def start(self, lobby) -> None:
        state = lobby.round_state
        self.enter_phase(lobby, state, PLAYING, grid=state.grid, timeLimit=int(self.time_limit * 1000))
        # server-side deadline trails the client countdown to absorb latency
        buffer = float(self.setting('QUEENS_TIMER_BUFFER_SEC', 1))
        state.timers.schedule(ROUND_END_TIMER, self.time_limit + buffer, self._on_timeout, lobby, state)

    def _on_timeout(self, lobby, state) -> None:
        if not self.is_current(lobby, state):
            return
        self.log.info(f"[queens-timeout] lobby={lobby.code} solved={len(state.solved)}/{len(lobby.players)}")
        self.finish(lobby)

    def handle_action(self, lobby, player_id, action, data):
        if action == 'submit-solution':
            return self.submit_solution(lobby, player_id, (data or {}).get('queens'))
        raise ValidationError(f'Unknown action: {action}')

    def submit_solution(self, lobby, player_id, queens) -> dict:
        state = lobby.round_state
        self.require_phase(state, PLAYING)

        if player_id in state.solved:
            return {'correct': True, 'alreadySolved': True, 'solveTime': state.solved[player_id]['solveTime']}
        if not verify_solution(state.grid, queens):
            return {'correct': False}

        solve_time = int((self.scheduler.now() - state.phase_started_at) * 1000)
        player = lobby.get_player(player_id)
        display_name = player.display_name if player else 'Unknown'
        state.solved[player_id] = {'solveTime': solve_time, 'displayName': display_name}

        self.emitter.broadcast(lobby.code, 'player-solved', {
            'playerId': player_id,
            'displayName': display_name,
            'solveTime': solve_time,
        })
        self._finish_if_all_solved(lobby, state)
        return {'correct': True, 'solveTime': solve_time}

    def _finish_if_all_solved(self, lobby, state) -> None:
        if lobby.players and all(pid in state.solved for pid in lobby.players):
            state.timers.cancel(ROUND_END_TIMER)
            self.finish(lobby)

    def on_player_removed(self, lobby, player_id) -> None:
        state = lobby.round_state
        if state is None or state.finished:
            return
        self._finish_if_all_solved(lobby, state)

    def score(self, lobby, state) -> dict:
        players = []
        for pid, player in lobby.players.items():
            solved = state.solved.get(pid)
            players.append({
                'playerId': pid,
                'displayName': player.display_name,
                'solved': solved is not None,
                'solveTime': solved['solveTime'] if solved else None,
            })
        # solvers fastest first, then everyone who ran out of time in join order
        players.sort(key=lambda p: (not p['solved'], p['solveTime'] or 0))

        solvers = [p for p in players if p['solved']]
        non_solvers = [p for p in players if not p['solved']]
        if not solvers:
            losers = [dict(playerId=p['playerId'], displayName=p['displayName'], reason='no-solve') for p in players]
        elif non_solvers:
            losers = [dict(playerId=p['playerId'], displayName=p['displayName'], reason='no-solve') for p in non_solvers]
        else:
            slowest = solvers[-1]['solveTime']
            losers = [
                dict(playerId=p['playerId'], displayName=p['displayName'], reason='slowest', solveTime=p['solveTime'])
                for p in solvers if p['solveTime'] == slowest
            ]

        return {
            'players': players,
            'losers': losers,
            'solution': solution_markers(state.solution),
        }

    def get_reconnect_state(self, lobby, player_id) -> dict:
        state = lobby.round_state
        if state is None or state.phase != PLAYING:
            return super().get_reconnect_state(lobby, player_id)

        elapsed = self.scheduler.now() - state.phase_started_at
        remaining = max(0.0, self.time_limit - elapsed)
        return {
            'phase': PLAYING,
            'grid': state.grid,
            'timeLimit': int(remaining * 1000),
            'solved': player_id in state.solved,
            'solvedPlayers': [
                {'playerId': pid, 'displayName': info['displayName'], 'solveTime': info['solveTime']}
                for pid, info in state.solved.items()
            ],
        }
