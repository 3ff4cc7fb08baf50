from collections import OrderedDict
from functools import partial

from partyhub.errors import PreconditionError
from .base import RoundEngine, RoundState
from .cards import shuffled_deck
from .hand_evaluator import best_hand

DEALING = 'dealing'
DEALING_HOLE_CARDS = 'dealing-hole-cards'
FLOP = 'flop'
TURN = 'turn'
RIVER = 'river'
DEAL_TIMER = 'deal'


class PokerState(RoundState):
    def __init__(self, hands, community, started_at, timers):
        super().__init__(DEALING, started_at, timers)
        self.hands = hands
        self.community = community
        self.revealed = []
        self.dealt = set()
        self.steps = []
        self.next_step = 0


class DeadDrawPokerGame(RoundEngine):
    """Two hole cards each, five community cards, worst best-hand loses.

    Players take no actions; the round is a paced reveal. Each reveal step is
    scheduled on the round's timers so ending the round stops the deal.
    """

    game_id = 'dead-draw-poker'
    name = 'Dead Draw Poker'
    description = 'Everyone gets 2 cards, 5 community cards are dealt. Worst poker hand loses!'

    def init(self, lobby) -> PokerState:
        deck = shuffled_deck(self.rng)
        hands = OrderedDict()
        for pid in lobby.players:
            hands[pid] = [deck.pop(), deck.pop()]
        community = [deck.pop() for _ in range(5)]
        state = PokerState(hands, community, self.scheduler.now(), self.new_timers())
        lobby.round_state = state
        return state

    def start(self, lobby) -> None:
        state = lobby.round_state
        state.steps = self._deal_steps(lobby, state)
        state.next_step = 0
        self._advance_deal(lobby, state)

    def _pace(self, key: str, default: float) -> float:
        return float(self.setting(key, default))

    def _deal_steps(self, lobby, state):
        """Ordered ``(action, pause_after)`` pairs for the whole reveal."""
        hole = self._pace('DEAL_HOLE_CARD_SEC', 0.5)
        flop_card = self._pace('DEAL_FLOP_CARD_SEC', 0.8)

        steps = [(partial(self.enter_phase, lobby, state, DEALING_HOLE_CARDS), 0)]
        for pid in state.hands:
            steps.append((partial(self._send_hole_cards, lobby, state, pid), hole))
        steps.append((partial(self.emitter.broadcast, lobby.code, 'hole-cards-complete', {}),
                      self._pace('DEAL_FLOP_DELAY_SEC', 2)))
        steps.append((partial(self.enter_phase, lobby, state, FLOP), 0))
        steps.append((partial(self._reveal, lobby, state, 0), flop_card))
        steps.append((partial(self._reveal, lobby, state, 1), flop_card))
        steps.append((partial(self._reveal, lobby, state, 2), flop_card + self._pace('DEAL_TURN_DELAY_SEC', 2)))
        steps.append((partial(self._street, lobby, state, TURN, 3), self._pace('DEAL_RIVER_DELAY_SEC', 2)))
        steps.append((partial(self._street, lobby, state, RIVER, 4), self._pace('DEAL_REVEAL_DELAY_SEC', 3)))
        steps.append((partial(self.finish, lobby), 0))
        return steps

    def _advance_deal(self, lobby, state) -> None:
        while state.next_step < len(state.steps):
            if not self.is_current(lobby, state) or state.finished:
                return
            action, pause = state.steps[state.next_step]
            state.next_step += 1
            action()
            if pause > 0 and state.next_step < len(state.steps):
                state.timers.schedule(DEAL_TIMER, pause, self._advance_deal, lobby, state)
                return

    def _send_hole_cards(self, lobby, state, pid) -> None:
        state.dealt.add(pid)
        player = lobby.get_player(pid)
        if player is None or player.disconnected or not player.connection_id:
            # picked up from the reconnect snapshot instead
            return
        self.emitter.send(player.connection_id, 'hole-cards', {
            'cards': [c.to_dict() for c in state.hands[pid]],
        })

    def _reveal(self, lobby, state, position: int) -> None:
        card = state.community[position]
        state.revealed.append(card)
        self.emitter.broadcast(lobby.code, 'community-card', {
            'card': card.to_dict(),
            'position': position,
            'communityCards': [c.to_dict() for c in state.revealed],
        })

    def _street(self, lobby, state, phase: str, position: int) -> None:
        self.enter_phase(lobby, state, phase)
        self._reveal(lobby, state, position)

    def handle_action(self, lobby, player_id, action, data):
        raise PreconditionError('No actions available in Dead Draw Poker')

    def score(self, lobby, state) -> dict:
        entries = []
        for pid, player in lobby.players.items():
            hole = state.hands.get(pid)
            if hole is None:
                continue
            entries.append((pid, player, hole, best_hand(hole, state.community)))
        # weakest hand first
        entries.sort(key=lambda entry: entry[3].key)

        players = [
            {
                'playerId': pid,
                'displayName': player.display_name,
                'holeCards': [c.to_dict() for c in hole],
                'bestHand': hand.to_dict(),
                'handName': hand.name,
            }
            for pid, player, hole, hand in entries
        ]
        losers = []
        if entries:
            worst = entries[0][3].key
            losers = [
                {'playerId': pid, 'displayName': player.display_name, 'handName': hand.name}
                for pid, player, _, hand in entries if hand.key == worst
            ]
        return {
            'players': players,
            'losers': losers,
            'communityCards': [c.to_dict() for c in state.community],
        }

    def get_reconnect_state(self, lobby, player_id) -> dict:
        state = lobby.round_state
        if state is None:
            return {}
        snapshot = {
            'phase': state.phase,
            'communityCards': [c.to_dict() for c in state.revealed],
        }
        if player_id in state.dealt and player_id in state.hands:
            snapshot['holeCards'] = [c.to_dict() for c in state.hands[player_id]]
        if state.finished:
            snapshot['results'] = state.results
        return snapshot
